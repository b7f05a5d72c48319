'''
API endpoints for the discipline-category and activity-type catalogs.
'''
from typing import Annotated
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from ..database import models as db_models
from ..models import catalogs as catalog_models
from ..services.security import verify_token_and_get_user
from ..services.catalog_service import CatalogService


class DisciplineCategoriesAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/discipline-categories",
            tags=["Catalogs"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_entries,
                methods=["GET"],
                response_model=list[catalog_models.DisciplineCategoryRead])
        self.router.add_api_route(
                "/",
                self.create_entry,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=catalog_models.DisciplineCategoryRead)
        self.router.add_api_route(
                "/{entry_id}",
                self.update_entry,
                methods=["PATCH"],
                response_model=catalog_models.DisciplineCategoryRead)
        self.router.add_api_route(
                "/{entry_id}",
                self.delete_entry,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_entries(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)],
        active_only: Annotated[bool, Query()] = False
    ):
        """Lists a center's discipline categories, newest first."""
        return await catalog_service.list_discipline_categories(center_id, current_user, active_only)

    async def create_entry(
        self,
        entry_data: catalog_models.DisciplineCategoryCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)]
    ):
        return await catalog_service.create_discipline_category(entry_data, current_user)

    async def update_entry(
        self,
        entry_id: UUID,
        entry_data: catalog_models.DisciplineCategoryUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)]
    ):
        return await catalog_service.update_discipline_category(entry_id, entry_data, current_user)

    async def delete_entry(
        self,
        entry_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)]
    ):
        await catalog_service.delete_discipline_category(entry_id, current_user)


class ActivityTypesAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/activity-types",
            tags=["Catalogs"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_entries,
                methods=["GET"],
                response_model=list[catalog_models.ActivityTypeRead])
        self.router.add_api_route(
                "/",
                self.create_entry,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=catalog_models.ActivityTypeRead)
        self.router.add_api_route(
                "/{entry_id}",
                self.update_entry,
                methods=["PATCH"],
                response_model=catalog_models.ActivityTypeRead)
        self.router.add_api_route(
                "/{entry_id}",
                self.delete_entry,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_entries(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)],
        active_only: Annotated[bool, Query()] = False
    ):
        """Lists a center's activity types, newest first."""
        return await catalog_service.list_activity_types(center_id, current_user, active_only)

    async def create_entry(
        self,
        entry_data: catalog_models.ActivityTypeCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)]
    ):
        return await catalog_service.create_activity_type(entry_data, current_user)

    async def update_entry(
        self,
        entry_id: UUID,
        entry_data: catalog_models.ActivityTypeUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)]
    ):
        return await catalog_service.update_activity_type(entry_id, entry_data, current_user)

    async def delete_entry(
        self,
        entry_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        catalog_service: Annotated[CatalogService, Depends(CatalogService)]
    ):
        await catalog_service.delete_activity_type(entry_id, current_user)


# Instantiate the classes and export their routers
discipline_categories_api = DisciplineCategoriesAPI()
activity_types_api = ActivityTypesAPI()

router = APIRouter()
router.include_router(discipline_categories_api.router)
router.include_router(activity_types_api.router)
