'''
The feature permission cascade: admin -> center -> teacher.
'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, PermissionState, TeacherFeature
from ..common.exceptions import FeatureDisabledError
from ..common.logger import log
from ..models import permissions as perm_models
from .user_service import CenterScopedService


def cascade(center_state: PermissionState, teacher_state: PermissionState) -> bool:
    """A teacher feature is usable only when both levels resolve to enabled."""
    return center_state.resolve() and teacher_state.resolve()


class FeaturePermissionService(CenterScopedService):
    """
    Reads and writes the center and teacher feature flags.
    Every check is a fresh read; nothing is cached.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    # --- State lookups ---

    async def get_center_state(self, center_id: UUID, feature_name: str) -> PermissionState:
        stmt = select(db_models.CenterFeaturePermissions.is_enabled).filter(
            db_models.CenterFeaturePermissions.center_id == center_id,
            db_models.CenterFeaturePermissions.feature_name == feature_name
        )
        result = await self.db.execute(stmt)
        return PermissionState.from_flag(result.scalars().first())

    async def get_teacher_state(self, teacher_id: UUID, feature_name: str) -> PermissionState:
        stmt = select(db_models.TeacherFeaturePermissions.is_enabled).filter(
            db_models.TeacherFeaturePermissions.teacher_id == teacher_id,
            db_models.TeacherFeaturePermissions.feature_name == feature_name
        )
        result = await self.db.execute(stmt)
        return PermissionState.from_flag(result.scalars().first())

    async def get_center_permissions(self, center_id: UUID) -> dict[str, PermissionState]:
        """
        Returns the state of every known feature for a center, plus any
        extra feature rows stored for it.
        """
        stmt = select(db_models.CenterFeaturePermissions).filter(
            db_models.CenterFeaturePermissions.center_id == center_id
        )
        result = await self.db.execute(stmt)
        states = {name: PermissionState.UNSET for name in TeacherFeature.get_all_names()}
        for row in result.scalars().all():
            states[row.feature_name] = PermissionState.from_flag(row.is_enabled)
        return states

    async def get_teacher_permissions(self, teacher_id: UUID) -> dict[str, PermissionState]:
        stmt = select(db_models.TeacherFeaturePermissions).filter(
            db_models.TeacherFeaturePermissions.teacher_id == teacher_id
        )
        result = await self.db.execute(stmt)
        states = {name: PermissionState.UNSET for name in TeacherFeature.get_all_names()}
        for row in result.scalars().all():
            states[row.feature_name] = PermissionState.from_flag(row.is_enabled)
        return states

    async def _get_teacher_center_id(self, teacher_id: UUID) -> Optional[UUID]:
        teacher = await self.db.get(db_models.Teachers, teacher_id)
        return teacher.center_id if teacher else None

    # --- Resolution ---

    async def resolve(self, actor_role: UserRole | str, actor_id: Optional[UUID], feature_name: str) -> bool:
        """
        Decides whether an actor may use a feature.

        `actor_id` is the center id for center actors and the teacher
        profile id for teacher actors; it is ignored for other roles.
        """
        try:
            role = UserRole(actor_role)
        except ValueError:
            log.warning(f"Permission check for unknown role '{actor_role}' on feature '{feature_name}' denied.")
            return False

        if role == UserRole.ADMIN:
            return True
        if role == UserRole.PARENT:
            return True

        if role == UserRole.CENTER:
            if actor_id is None:
                return False
            state = await self.get_center_state(actor_id, feature_name)
            return state.resolve()

        if role == UserRole.TEACHER:
            if actor_id is None:
                return False
            center_id = await self._get_teacher_center_id(actor_id)
            if center_id is None:
                log.warning(f"Teacher profile {actor_id} not found while resolving '{feature_name}'.")
                return False
            center_state = await self.get_center_state(center_id, feature_name)
            teacher_state = await self.get_teacher_state(actor_id, feature_name)
            return cascade(center_state, teacher_state)

        return False

    @staticmethod
    def _actor_id_for(user: db_models.Users) -> Optional[UUID]:
        if user.role == UserRole.CENTER.value:
            return user.center_id
        if user.role == UserRole.TEACHER.value:
            return user.teacher_id
        return user.id

    async def has_feature_access(self, user: db_models.Users, feature_name: str) -> bool:
        log.info(f"Checking feature '{feature_name}' for user {user.id} (Role: {user.role})")
        return await self.resolve(user.role, self._actor_id_for(user), feature_name)

    async def get_permission_snapshot(self, user: db_models.Users) -> perm_models.PermissionSnapshot:
        """
        The three permission maps sent to the client at login.
        """
        center_id = user.center_id
        if user.role == UserRole.TEACHER.value and user.teacher_id:
            center_id = await self._get_teacher_center_id(user.teacher_id) or center_id

        center_states = await self.get_center_permissions(center_id) if center_id else {}
        teacher_states = await self.get_teacher_permissions(user.teacher_id) if user.teacher_id else {}

        effective = {}
        for feature_name in TeacherFeature.get_all_names():
            effective[feature_name] = await self.has_feature_access(user, feature_name)

        return perm_models.PermissionSnapshot(
            center_permissions={name: state.resolve() for name, state in center_states.items()},
            teacher_permissions={name: state.resolve() for name, state in teacher_states.items()},
            effective_permissions=effective
        )

    # --- Manager views ---

    async def list_center_permissions(self, center_id: UUID, current_user: db_models.Users) -> list[perm_models.FeaturePermissionRead]:
        await self._get_center_or_404(center_id)
        self._authorize_center(current_user, center_id)
        states = await self.get_center_permissions(center_id)
        return [
            perm_models.FeaturePermissionRead(feature_name=name, state=state, is_enabled=state.resolve())
            for name, state in states.items()
        ]

    async def list_teacher_permissions(self, teacher_id: UUID, current_user: db_models.Users) -> list[perm_models.TeacherFeaturePermissionRead]:
        teacher = await self.db.get(db_models.Teachers, teacher_id)
        if not teacher:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found.")
        if not (current_user.role == UserRole.TEACHER.value and current_user.teacher_id == teacher_id):
            self._authorize_center(current_user, teacher.center_id)

        center_states = await self.get_center_permissions(teacher.center_id)
        teacher_states = await self.get_teacher_permissions(teacher_id)
        rows = []
        for name, state in teacher_states.items():
            center_state = center_states.get(name, PermissionState.UNSET)
            rows.append(perm_models.TeacherFeaturePermissionRead(
                feature_name=name,
                state=state,
                is_enabled=state.resolve(),
                center_enabled=center_state.resolve(),
                effective=cascade(center_state, state)
            ))
        return rows

    # --- Toggles ---

    async def toggle_center_feature(
        self,
        center_id: UUID,
        data: perm_models.FeatureToggle,
        current_user: db_models.Users
    ) -> perm_models.FeatureToggleResult:
        """
        Upserts a center-level flag. Admin only.
        """
        log.info(f"User {current_user.id} setting center {center_id} feature '{data.feature_name}' to {data.is_enabled}")
        self._authorize(current_user, [UserRole.ADMIN])
        await self._get_center_or_404(center_id)

        try:
            stmt = select(db_models.CenterFeaturePermissions).filter(
                db_models.CenterFeaturePermissions.center_id == center_id,
                db_models.CenterFeaturePermissions.feature_name == data.feature_name
            )
            row = (await self.db.execute(stmt)).scalars().first()
            if row:
                row.is_enabled = data.is_enabled
            else:
                row = db_models.CenterFeaturePermissions(
                    center_id=center_id,
                    feature_name=data.feature_name,
                    is_enabled=data.is_enabled
                )
                self.db.add(row)
            await self.db.flush()
        except Exception as e:
            log.error(f"Error toggling center feature '{data.feature_name}' for {center_id}: {e}", exc_info=True)
            raise

        return perm_models.FeatureToggleResult(
            success=True, owner_id=center_id, feature_name=data.feature_name, is_enabled=data.is_enabled
        )

    async def _set_teacher_flag(self, teacher: db_models.Teachers, feature_name: str, is_enabled: bool) -> None:
        """
        Writes a teacher flag. Enabling is refused while the center flag is off.
        """
        if is_enabled:
            center_state = await self.get_center_state(teacher.center_id, feature_name)
            if not center_state.resolve():
                raise FeatureDisabledError(feature_name)

        stmt = select(db_models.TeacherFeaturePermissions).filter(
            db_models.TeacherFeaturePermissions.teacher_id == teacher.id,
            db_models.TeacherFeaturePermissions.feature_name == feature_name
        )
        row = (await self.db.execute(stmt)).scalars().first()
        if row:
            row.is_enabled = is_enabled
        else:
            self.db.add(db_models.TeacherFeaturePermissions(
                teacher_id=teacher.id,
                feature_name=feature_name,
                is_enabled=is_enabled
            ))
        await self.db.flush()

    async def toggle_teacher_feature(
        self,
        teacher_id: UUID,
        data: perm_models.FeatureToggle,
        current_user: db_models.Users
    ) -> perm_models.FeatureToggleResult:
        """
        Upserts a teacher-level flag. Only managers of the teacher's center
        may do this, and only while the center-level flag is enabled.
        """
        log.info(f"User {current_user.id} setting teacher {teacher_id} feature '{data.feature_name}' to {data.is_enabled}")

        teacher = await self.db.get(db_models.Teachers, teacher_id)
        if not teacher:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found.")
        self._authorize_center(current_user, teacher.center_id)

        try:
            await self._set_teacher_flag(teacher, data.feature_name, data.is_enabled)
        except FeatureDisabledError as e:
            log.warning(f"Refused to enable '{data.feature_name}' for teacher {teacher_id}: center flag is disabled.")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
        except Exception as e:
            log.error(f"Error toggling teacher feature '{data.feature_name}' for {teacher_id}: {e}", exc_info=True)
            raise

        return perm_models.FeatureToggleResult(
            success=True, owner_id=teacher_id, feature_name=data.feature_name, is_enabled=data.is_enabled
        )
