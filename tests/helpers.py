'''
Small helpers shared by the test modules.
'''
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.center_hub_backend.database import models as db_models
from src.center_hub_backend.services.security import JWTHandler
from tests.database.factories import (
    FeeHeadingFactory,
    FeeStructureFactory,
    FeeStructureItemFactory,
    FeeAssignmentFactory,
)


def auth_headers(user_id: UUID) -> dict[str, str]:
    """Bearer header for the given account, signed with the test secret."""
    token = JWTHandler.create_access_token(subject=str(user_id))
    return {"Authorization": f"Bearer {token}"}


async def seed_fee_structure(
    db: AsyncSession,
    center_id: UUID,
    amounts: list[Decimal],
    assign_to: list[UUID] = ()
) -> db_models.FeeStructures:
    """
    One fee structure with an item (and heading) per amount, assigned to
    the given students.
    """
    headings = [FeeHeadingFactory.build(center_id=center_id) for _ in amounts]
    structure = FeeStructureFactory.build(center_id=center_id)
    db.add_all(headings + [structure])
    await db.flush()

    db.add_all([
        FeeStructureItemFactory.build(fee_structure_id=structure.id, fee_heading_id=heading.id, amount=amount)
        for heading, amount in zip(headings, amounts)
    ])
    db.add_all([
        FeeAssignmentFactory.build(student_id=student_id, fee_structure_id=structure.id)
        for student_id in assign_to
    ])
    await db.commit()
    return structure
