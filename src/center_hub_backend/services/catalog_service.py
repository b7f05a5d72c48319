'''
Center-scoped catalogs: discipline categories and activity types.
'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..models import catalogs as catalog_models
from ..common.logger import log
from .user_service import CenterScopedService


class CatalogService(CenterScopedService):
    """
    CRUD over the small per-center lookup tables.
    Both catalogs share the same lifecycle, so the table is a parameter.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    @staticmethod
    def _dump(data) -> dict:
        values = data.model_dump(exclude_unset=True)
        return {key: getattr(value, 'value', value) for key, value in values.items()}

    async def _get_entry_or_404(self, model, entry_id: UUID):
        entry = await self.db.get(model, entry_id)
        if not entry:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{model.__tablename__} entry not found.")
        return entry

    async def _list(self, model, center_id: UUID, current_user: db_models.Users, active_only: bool):
        self._authorize_center(current_user, center_id)
        stmt = select(model).filter(model.center_id == center_id)
        if active_only:
            stmt = stmt.filter(model.is_active.is_(True))
        stmt = stmt.order_by(model.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _create(self, model, data, current_user: db_models.Users):
        await self._get_center_or_404(data.center_id)
        self._authorize_center(current_user, data.center_id)
        log.info(f"User {current_user.id} adding {model.__tablename__} entry '{data.name}' for center {data.center_id}")
        entry = model(**self._dump(data))
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def _update(self, model, entry_id: UUID, data, current_user: db_models.Users):
        entry = await self._get_entry_or_404(model, entry_id)
        self._authorize_center(current_user, entry.center_id)
        for key, value in self._dump(data).items():
            setattr(entry, key, value)
        await self.db.flush()
        return entry

    async def _delete(self, model, entry_id: UUID, current_user: db_models.Users) -> bool:
        entry = await self._get_entry_or_404(model, entry_id)
        self._authorize_center(current_user, entry.center_id)
        log.info(f"User {current_user.id} deleting {model.__tablename__} entry {entry_id}")
        await self.db.delete(entry)
        await self.db.flush()
        return True

    # --- Discipline Categories ---

    async def list_discipline_categories(self, center_id: UUID, current_user: db_models.Users, active_only: bool = False) -> list[catalog_models.DisciplineCategoryRead]:
        rows = await self._list(db_models.DisciplineCategories, center_id, current_user, active_only)
        return [catalog_models.DisciplineCategoryRead.model_validate(row) for row in rows]

    async def create_discipline_category(self, data: catalog_models.DisciplineCategoryCreate, current_user: db_models.Users) -> catalog_models.DisciplineCategoryRead:
        entry = await self._create(db_models.DisciplineCategories, data, current_user)
        return catalog_models.DisciplineCategoryRead.model_validate(entry)

    async def update_discipline_category(self, entry_id: UUID, data: catalog_models.DisciplineCategoryUpdate, current_user: db_models.Users) -> catalog_models.DisciplineCategoryRead:
        entry = await self._update(db_models.DisciplineCategories, entry_id, data, current_user)
        return catalog_models.DisciplineCategoryRead.model_validate(entry)

    async def delete_discipline_category(self, entry_id: UUID, current_user: db_models.Users) -> bool:
        return await self._delete(db_models.DisciplineCategories, entry_id, current_user)

    # --- Activity Types ---

    async def list_activity_types(self, center_id: UUID, current_user: db_models.Users, active_only: bool = False) -> list[catalog_models.ActivityTypeRead]:
        rows = await self._list(db_models.ActivityTypes, center_id, current_user, active_only)
        return [catalog_models.ActivityTypeRead.model_validate(row) for row in rows]

    async def create_activity_type(self, data: catalog_models.ActivityTypeCreate, current_user: db_models.Users) -> catalog_models.ActivityTypeRead:
        entry = await self._create(db_models.ActivityTypes, data, current_user)
        return catalog_models.ActivityTypeRead.model_validate(entry)

    async def update_activity_type(self, entry_id: UUID, data: catalog_models.ActivityTypeUpdate, current_user: db_models.Users) -> catalog_models.ActivityTypeRead:
        entry = await self._update(db_models.ActivityTypes, entry_id, data, current_user)
        return catalog_models.ActivityTypeRead.model_validate(entry)

    async def delete_activity_type(self, entry_id: UUID, current_user: db_models.Users) -> bool:
        return await self._delete(db_models.ActivityTypes, entry_id, current_user)
