'''

'''
from datetime import datetime, timezone
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..common.logger import log
from ..models import user as user_models

# Roles that manage a single center's data.
CENTER_MANAGER_ROLES = [UserRole.CENTER, UserRole.PRINCIPAL]


class CenterScopedService:
    """
    Base for services whose data belongs to one center (tenant).
    Holds the shared authorization helpers.
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    def _authorize(self, current_user: db_models.Users, allowed_roles: list[UserRole]):
        """
        A simple, private helper to check roles.
        Raises a 403 HTTPException if the user's role is not in the list.
        """
        allowed_role_values = [role.value for role in allowed_roles]

        if current_user.role not in allowed_role_values:
            log.warning(f"Unauthorized action by user {current_user.id} (Role: {current_user.role}). Required one of: {allowed_role_values}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action."
            )

    def _authorize_center(self, current_user: db_models.Users, center_id: UUID):
        """
        Admins manage every center; center and principal accounts only their own.
        """
        if current_user.role == UserRole.ADMIN.value:
            return
        self._authorize(current_user, CENTER_MANAGER_ROLES)
        if current_user.center_id != center_id:
            log.warning(f"SECURITY: User {current_user.id} tried to manage center {center_id} (own center: {current_user.center_id}).")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only manage your own center."
            )

    async def _get_center_or_404(self, center_id: UUID) -> db_models.Centers:
        center = await self.db.get(db_models.Centers, center_id)
        if not center:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Center not found.")
        return center


class UserService:
    """
    Base service for user-related database operations.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def get_user_by_username(self, username: str) -> db_models.Users | None:
        """Fetches a user (including the password hash) by login name."""
        log.info(f"Fetching user by username: {username}")
        try:
            stmt = select(db_models.Users).filter(db_models.Users.username == username)
            result = await self.db.execute(stmt)
            return result.scalars().first()
        except Exception as e:
            log.error(f"Database error fetching user by username {username}: {e}", exc_info=True)
            raise

    async def get_user_by_id(self, user_id: UUID) -> db_models.Users | None:
        log.info(f"Fetching user profile for ID: {user_id}")
        try:
            return await self.db.get(db_models.Users, user_id)
        except Exception as e:
            log.error(f"Database error fetching user by ID {user_id}: {e}", exc_info=True)
            raise

    async def record_login(self, user: db_models.Users, password_hash: Optional[str] = None) -> None:
        """Stamps `last_login`; also stores an upgraded password hash when given."""
        user.last_login = datetime.now(timezone.utc)
        if password_hash:
            user.password = password_hash
        self.db.add(user)
        await self.db.flush()

    async def get_linked_student_ids(self, parent_user_id: UUID) -> list[UUID]:
        stmt = select(db_models.ParentStudents.student_id).filter(
            db_models.ParentStudents.parent_user_id == parent_user_id
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class ParentLinkService(CenterScopedService):
    """
    Links and unlinks children (students) to parent accounts.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    async def _get_existing_link(self, parent_user_id: UUID, student_id: UUID) -> Optional[db_models.ParentStudents]:
        stmt = select(db_models.ParentStudents).filter(
            db_models.ParentStudents.parent_user_id == parent_user_id,
            db_models.ParentStudents.student_id == student_id
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def link_child(self, data: user_models.ParentLinkRequest, current_user: db_models.Users) -> user_models.ParentLinkRead:
        log.info(f"User {current_user.id} linking student {data.student_id} to parent {data.parent_user_id}")

        student = await self.db.get(db_models.Students, data.student_id)
        if not student:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")
        self._authorize_center(current_user, student.center_id)

        parent = await self.db.get(db_models.Users, data.parent_user_id)
        if not parent or parent.role != UserRole.PARENT.value:
            log.warning(f"Attempted to link a child to a non-existent or non-parent user: {data.parent_user_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Parent not found.")

        if await self._get_existing_link(data.parent_user_id, data.student_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This child is already linked to this parent."
            )

        link = db_models.ParentStudents(parent_user_id=data.parent_user_id, student_id=data.student_id)
        self.db.add(link)
        await self.db.flush()
        log.info(f"Successfully linked student {data.student_id} to parent {data.parent_user_id}")
        return user_models.ParentLinkRead.model_validate(link)

    async def unlink_child(self, data: user_models.ParentLinkRequest, current_user: db_models.Users) -> bool:
        log.info(f"User {current_user.id} unlinking student {data.student_id} from parent {data.parent_user_id}")

        student = await self.db.get(db_models.Students, data.student_id)
        if not student:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")
        self._authorize_center(current_user, student.center_id)

        link = await self._get_existing_link(data.parent_user_id, data.student_id)
        if not link:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found.")

        await self.db.delete(link)
        await self.db.flush()
        return True
