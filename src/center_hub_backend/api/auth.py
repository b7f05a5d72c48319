'''
API endpoints for Authentication: login and the current session.
'''
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from ..database import models as db_models
from ..services.auth_service import LoginService
from ..services.security import verify_token_and_get_user
from ..models import user as user_models
from ..common.logger import log

class AuthRoutes:
    """
    A class to encapsulate all authentication endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/auth",
            tags=["Authentication"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/login",
            self.login_for_access_token,
            methods=["POST"],
            response_model=user_models.LoginResponse,
            summary="Login for Access Token"
        )
        self.router.add_api_route(
            "/me",
            self.read_current_session,
            methods=["GET"],
            response_model=user_models.SessionUserRead,
            summary="Current user and permissions"
        )

    async def login_for_access_token(
        self,
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        login_service: Annotated[LoginService, Depends(LoginService)]
    ):
        """
        Authenticates a user and returns an access token together with the
        user's cascaded permissions.
        Uses OAuth2PasswordRequestForm (username & password fields).
        """
        try:
            return await login_service.login_user(form_data)
        except HTTPException as e:
            raise e
        except Exception as e:
            log.error(f"Unexpected error during login: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal server error occurred during login.",
            )

    async def read_current_session(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        login_service: Annotated[LoginService, Depends(LoginService)]
    ):
        return await login_service.build_session_user(current_user)

# Create an instance of the class and export its router
auth_routes = AuthRoutes()
router = auth_routes.router
