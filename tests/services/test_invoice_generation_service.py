import pytest
import datetime
from decimal import Decimal
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.center_hub_backend.services.finance_service import InvoiceGenerationService
from src.center_hub_backend.database import models as db_models
from src.center_hub_backend.database.db_enums import GenerationStatusEnum, InvoiceStatusEnum, LedgerEntryTypeEnum
from src.center_hub_backend.models import finance as finance_models

from tests.constants import CENTER_A_ID, CENTER_B_ID, STUDENT_A1_ID, STUDENT_A2_ID, STUDENT_B1_ID
from tests.database.factories import CustomFeeFactory, InvoiceFactory
from tests.helpers import seed_fee_structure

SEPTEMBER_2024 = finance_models.InvoiceGenerationRequest(center_id=CENTER_A_ID, month=9, year=2024)


async def _seed_alice_fees(db: AsyncSession):
    """Alice: 300 + 200 structure, a 50 custom fee and a custom fee that starts next year."""
    structure = await seed_fee_structure(
        db, CENTER_A_ID, [Decimal("300.00"), Decimal("200.00")], assign_to=[STUDENT_A1_ID]
    )
    db.add_all([
        CustomFeeFactory.build(student_id=STUDENT_A1_ID, amount=Decimal("50.00")),
        CustomFeeFactory.build(student_id=STUDENT_A1_ID, amount=Decimal("999.00"), effective_from=datetime.date(2025, 1, 1)),
    ])
    await db.commit()
    return structure


async def _invoices_for(db: AsyncSession, student_id):
    stmt = select(db_models.Invoices).filter(db_models.Invoices.student_id == student_id)
    return list((await db.execute(stmt)).scalars().all())


@pytest.mark.anyio
class TestInvoiceGeneration:

    async def test_generates_invoice_and_reports_missing_structure(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        """Alice has a fee structure and gets an invoice; Bob has none and is reported."""
        await _seed_alice_fees(db_session)

        result = await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        print(result.model_dump_json(indent=2))

        assert result.success is True
        assert result.invoices_generated == 1
        assert result.status == GenerationStatusEnum.PARTIAL
        assert result.errors == [f"No fee structure for student {STUDENT_A2_ID}"]

        invoices = await _invoices_for(db_session, STUDENT_A1_ID)
        assert len(invoices) == 1
        invoice = invoices[0]
        assert invoice.total_amount == Decimal("550.00")
        assert invoice.paid_amount == Decimal("0.00")
        assert invoice.remaining_amount == Decimal("550.00")
        assert invoice.status == InvoiceStatusEnum.DUE.value
        assert invoice.invoice_date == datetime.date(2024, 9, 1)
        assert invoice.due_date == datetime.date(2024, 10, 10)
        assert invoice.invoice_number == f"INV-{str(CENTER_A_ID)[:8]}-202409-00001"

        assert await _invoices_for(db_session, STUDENT_A2_ID) == []

    async def test_invoice_items_snapshot_structure(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        await _seed_alice_fees(db_session)
        await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)

        invoice = (await _invoices_for(db_session, STUDENT_A1_ID))[0]
        stmt = select(db_models.InvoiceItems.amount).filter(db_models.InvoiceItems.invoice_id == invoice.id)
        amounts = sorted((await db_session.execute(stmt)).scalars().all())
        # Custom fees count towards the total but are not item rows.
        assert amounts == [Decimal("200.00"), Decimal("300.00")]

    async def test_ledger_entry_written(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        await _seed_alice_fees(db_session)
        await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.admin)

        invoice = (await _invoices_for(db_session, STUDENT_A1_ID))[0]
        stmt = select(db_models.LedgerEntries).filter(
            db_models.LedgerEntries.entry_type == LedgerEntryTypeEnum.INVOICE.value
        )
        entries = list((await db_session.execute(stmt)).scalars().all())
        assert len(entries) == 1
        entry = entries[0]
        assert entry.reference_id == invoice.id
        assert entry.reference_table == 'invoices'
        assert entry.amount == Decimal("550.00")
        assert entry.student_id == STUDENT_A1_ID
        assert entry.description == "Monthly invoice for September 2024"

    async def test_generation_log_written(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        await _seed_alice_fees(db_session)
        await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)

        logs = await invoice_generation_service.list_generation_logs(CENTER_A_ID, sandbox.center_user_a)
        assert len(logs) == 1
        assert logs[0].generation_date == datetime.date(2024, 9, 1)
        assert logs[0].invoices_generated == 1
        assert logs[0].status == GenerationStatusEnum.PARTIAL
        assert str(STUDENT_A2_ID) in logs[0].error_message

    async def test_success_when_every_student_is_billed(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        await seed_fee_structure(db_session, CENTER_B_ID, [Decimal("120.00")], assign_to=[STUDENT_B1_ID])

        data = finance_models.InvoiceGenerationRequest(center_id=CENTER_B_ID, month=12, year=2024)
        result = await invoice_generation_service.generate_monthly_invoices(data, sandbox.center_user_b)

        assert result.invoices_generated == 1
        assert result.status == GenerationStatusEnum.SUCCESS
        assert result.errors is None
        invoice = (await _invoices_for(db_session, STUDENT_B1_ID))[0]
        assert invoice.due_date == datetime.date(2025, 1, 10)

    async def test_repeat_of_successful_period_is_rejected(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        """A second run for a fully billed month must not double-bill."""
        await _seed_alice_fees(db_session)
        await seed_fee_structure(db_session, CENTER_A_ID, [Decimal("80.00")], assign_to=[STUDENT_A2_ID])
        result = await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        assert result.status == GenerationStatusEnum.SUCCESS
        await db_session.commit()

        with pytest.raises(HTTPException) as e:
            await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        assert e.value.status_code == 409
        assert len(await _invoices_for(db_session, STUDENT_A1_ID)) == 1
        assert len(await _invoices_for(db_session, STUDENT_A2_ID)) == 1

    async def test_partial_period_can_be_finished_later(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        """
        Bob was skipped for lack of a fee structure. Once he has one, a
        second run bills only him and the period's log becomes a success.
        """
        await _seed_alice_fees(db_session)
        first = await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        assert first.status == GenerationStatusEnum.PARTIAL
        await db_session.commit()

        await seed_fee_structure(db_session, CENTER_A_ID, [Decimal("80.00")], assign_to=[STUDENT_A2_ID])
        second = await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        await db_session.commit()
        print(second.model_dump_json(indent=2))

        assert second.invoices_generated == 1
        assert second.status == GenerationStatusEnum.SUCCESS
        assert second.errors is None

        alice_invoices = await _invoices_for(db_session, STUDENT_A1_ID)
        assert len(alice_invoices) == 1
        bob_invoices = await _invoices_for(db_session, STUDENT_A2_ID)
        assert len(bob_invoices) == 1
        assert bob_invoices[0].total_amount == Decimal("80.00")
        assert bob_invoices[0].invoice_number == f"INV-{str(CENTER_A_ID)[:8]}-202409-00002"

        logs = await invoice_generation_service.list_generation_logs(CENTER_A_ID, sandbox.center_user_a)
        assert len(logs) == 1
        assert logs[0].invoices_generated == 2
        assert logs[0].status == GenerationStatusEnum.SUCCESS
        assert logs[0].error_message is None

        with pytest.raises(HTTPException) as e:
            await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        assert e.value.status_code == 409

    async def test_rerun_without_changes_stays_partial(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        await _seed_alice_fees(db_session)
        await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        await db_session.commit()

        result = await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)

        assert result.invoices_generated == 0
        assert result.status == GenerationStatusEnum.PARTIAL
        assert result.errors == [f"No fee structure for student {STUDENT_A2_ID}"]
        assert len(await _invoices_for(db_session, STUDENT_A1_ID)) == 1

        logs = await invoice_generation_service.list_generation_logs(CENTER_A_ID, sandbox.center_user_a)
        assert len(logs) == 1
        assert logs[0].invoices_generated == 1

    async def test_next_month_is_allowed(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        await _seed_alice_fees(db_session)
        await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)

        october = finance_models.InvoiceGenerationRequest(center_id=CENTER_A_ID, month=10, year=2024)
        result = await invoice_generation_service.generate_monthly_invoices(october, sandbox.center_user_a)
        assert result.invoices_generated == 1
        assert len(await _invoices_for(db_session, STUDENT_A1_ID)) == 2

    async def test_one_student_failure_does_not_abort_batch(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        """
        Alice's invoice number is already taken, so her insert fails.
        Bob is still billed and Alice is left with no partial rows.
        """
        await _seed_alice_fees(db_session)
        await seed_fee_structure(db_session, CENTER_A_ID, [Decimal("80.00")], assign_to=[STUDENT_A2_ID])
        taken = InvoiceFactory.build(
            center_id=CENTER_B_ID,
            student_id=STUDENT_B1_ID,
            invoice_number=f"INV-{str(CENTER_A_ID)[:8]}-202409-00001"
        )
        db_session.add(taken)
        await db_session.commit()

        result = await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_a)
        print(result.model_dump_json(indent=2))

        assert result.invoices_generated == 1
        assert result.status == GenerationStatusEnum.PARTIAL
        assert len(result.errors) == 1
        assert result.errors[0].startswith(f"Error for student {STUDENT_A1_ID}:")

        assert await _invoices_for(db_session, STUDENT_A1_ID) == []
        bob_invoices = await _invoices_for(db_session, STUDENT_A2_ID)
        assert len(bob_invoices) == 1
        assert bob_invoices[0].invoice_number == f"INV-{str(CENTER_A_ID)[:8]}-202409-00002"

        stmt = select(db_models.LedgerEntries).filter(db_models.LedgerEntries.student_id == STUDENT_A1_ID)
        assert (await db_session.execute(stmt)).scalars().all() == []

    async def test_inactive_items_are_not_billed(
        self,
        invoice_generation_service: InvoiceGenerationService,
        db_session: AsyncSession,
        sandbox
    ):
        structure = await seed_fee_structure(
            db_session, CENTER_B_ID, [Decimal("100.00"), Decimal("40.00")], assign_to=[STUDENT_B1_ID]
        )
        stmt = select(db_models.FeeStructureItems).filter(
            db_models.FeeStructureItems.fee_structure_id == structure.id,
            db_models.FeeStructureItems.amount == Decimal("40.00")
        )
        item = (await db_session.execute(stmt)).scalars().one()
        item.is_active = False
        await db_session.commit()

        data = finance_models.InvoiceGenerationRequest(center_id=CENTER_B_ID, month=9, year=2024)
        await invoice_generation_service.generate_monthly_invoices(data, sandbox.admin)

        invoice = (await _invoices_for(db_session, STUDENT_B1_ID))[0]
        assert invoice.total_amount == Decimal("100.00")

    async def test_other_center_is_forbidden(self, invoice_generation_service: InvoiceGenerationService, sandbox):
        with pytest.raises(HTTPException) as e:
            await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.center_user_b)
        assert e.value.status_code == 403

    async def test_parent_is_forbidden(self, invoice_generation_service: InvoiceGenerationService, sandbox):
        with pytest.raises(HTTPException) as e:
            await invoice_generation_service.generate_monthly_invoices(SEPTEMBER_2024, sandbox.parent_a)
        assert e.value.status_code == 403

    async def test_unknown_center_returns_404(self, invoice_generation_service: InvoiceGenerationService, sandbox):
        data = finance_models.InvoiceGenerationRequest(center_id=STUDENT_A1_ID, month=9, year=2024)
        with pytest.raises(HTTPException) as e:
            await invoice_generation_service.generate_monthly_invoices(data, sandbox.admin)
        assert e.value.status_code == 404

    async def test_one_log_row_per_center_and_period(self, db_session: AsyncSession, sandbox):
        db_session.add_all([
            db_models.InvoiceGenerationLogs(
                center_id=CENTER_A_ID,
                generation_date=datetime.date(2024, 9, 1),
                invoices_generated=0,
                status=GenerationStatusEnum.PARTIAL.value
            )
            for _ in range(2)
        ])
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()
