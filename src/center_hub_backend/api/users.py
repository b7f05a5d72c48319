'''
API endpoints for user profiles and parent-child links.
'''
from typing import Annotated
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import user as user_models
from ..services.security import verify_token_and_get_user
from ..services.user_service import ParentLinkService


class UserAPI:
    """Endpoints for general user actions."""
    def __init__(self):
        self.router = APIRouter(prefix="/users", tags=["Users"])
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route("/me", self.read_users_me, methods=["GET"], response_model=user_models.UserRead)
        self.router.add_api_route(
                "/parent-links",
                self.link_child,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=user_models.ParentLinkRead)
        self.router.add_api_route(
                "/parent-links",
                self.unlink_child,
                methods=["DELETE"])

    async def read_users_me(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ):
        """
        Returns the profile information for the currently authenticated user.
        """
        return current_user

    async def link_child(
        self,
        link_data: user_models.ParentLinkRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        link_service: Annotated[ParentLinkService, Depends(ParentLinkService)]
    ):
        """
        Links a student to a parent account. Center managers only.
        """
        return await link_service.link_child(link_data, current_user)

    async def unlink_child(
        self,
        link_data: user_models.ParentLinkRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        link_service: Annotated[ParentLinkService, Depends(ParentLinkService)]
    ):
        await link_service.unlink_child(link_data, current_user)
        return {"success": True, "message": "Child unlinked successfully."}


# Instantiate the class and export its router
user_api = UserAPI()
router = user_api.router
