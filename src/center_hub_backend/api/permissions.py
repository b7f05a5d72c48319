'''
API endpoints for the center and teacher feature flags.
'''
from typing import Annotated
from uuid import UUID
from fastapi import APIRouter, Depends

from ..database import models as db_models
from ..models import permissions as perm_models
from ..services.security import verify_token_and_get_user
from ..services.permission_service import FeaturePermissionService


class PermissionsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/permissions",
            tags=["Permissions"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/me/{feature_name}",
                self.check_feature,
                methods=["GET"],
                response_model=perm_models.FeatureAccessRead)
        self.router.add_api_route(
                "/centers/{center_id}",
                self.list_center_features,
                methods=["GET"],
                response_model=list[perm_models.FeaturePermissionRead])
        self.router.add_api_route(
                "/centers/{center_id}",
                self.set_center_feature,
                methods=["PUT"],
                response_model=perm_models.FeatureToggleResult)
        self.router.add_api_route(
                "/teachers/{teacher_id}",
                self.list_teacher_features,
                methods=["GET"],
                response_model=list[perm_models.TeacherFeaturePermissionRead])
        self.router.add_api_route(
                "/teachers/{teacher_id}",
                self.set_teacher_feature,
                methods=["PUT"],
                response_model=perm_models.FeatureToggleResult)

    async def check_feature(
        self,
        feature_name: str,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        permission_service: Annotated[FeaturePermissionService, Depends(FeaturePermissionService)]
    ):
        """
        Tells whether the current user may use a feature.
        """
        has_access = await permission_service.has_feature_access(current_user, feature_name)
        return perm_models.FeatureAccessRead(feature_name=feature_name, has_access=has_access)

    async def list_center_features(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        permission_service: Annotated[FeaturePermissionService, Depends(FeaturePermissionService)]
    ):
        return await permission_service.list_center_permissions(center_id, current_user)

    async def set_center_feature(
        self,
        center_id: UUID,
        toggle: perm_models.FeatureToggle,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        permission_service: Annotated[FeaturePermissionService, Depends(FeaturePermissionService)]
    ):
        """
        Enables or disables a feature for a whole center. Admin only.
        """
        return await permission_service.toggle_center_feature(center_id, toggle, current_user)

    async def list_teacher_features(
        self,
        teacher_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        permission_service: Annotated[FeaturePermissionService, Depends(FeaturePermissionService)]
    ):
        return await permission_service.list_teacher_permissions(teacher_id, current_user)

    async def set_teacher_feature(
        self,
        teacher_id: UUID,
        toggle: perm_models.FeatureToggle,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        permission_service: Annotated[FeaturePermissionService, Depends(FeaturePermissionService)]
    ):
        """
        Enables or disables a feature for one teacher. Enabling is refused
        with 403 while the center has the feature disabled.
        """
        return await permission_service.toggle_teacher_feature(teacher_id, toggle, current_user)


# Instantiate the class and export its router
permissions_api = PermissionsAPI()
router = permissions_api.router
