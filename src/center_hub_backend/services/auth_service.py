'''
Login and session assembly: credentials in, bearer token plus the
cascaded permission snapshot out.
'''
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from .security import HashedPassword, JWTHandler
from .user_service import UserService
from .permission_service import FeaturePermissionService
from ..database import models as db_models
from ..models import user as user_models
from ..common.logger import log

class LoginService:
    """
    Service for handling user login and authentication.
    Depends on the UserService to fetch user data and on the permission
    service to assemble the session's permission snapshot.
    """
    def __init__(
        self,
        user_service: Annotated[UserService, Depends(UserService)],
        permission_service: Annotated[FeaturePermissionService, Depends(FeaturePermissionService)]
    ):
        self.user_service = user_service
        self.permission_service = permission_service

    async def build_session_user(self, user: db_models.Users) -> user_models.SessionUserRead:
        snapshot = await self.permission_service.get_permission_snapshot(user)
        base = user_models.UserRead.model_validate(user)
        return user_models.SessionUserRead(**base.model_dump(), **snapshot.model_dump())

    async def login_user(self, form_data: OAuth2PasswordRequestForm) -> user_models.LoginResponse:
        log.info(f"Attempting login for user: {form_data.username}")

        user = await self.user_service.get_user_by_username(form_data.username)

        if not user or not HashedPassword.verify(form_data.password, user.password):
            log.warning(f"Login failed for user: {form_data.username} - Incorrect username or password")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect username or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_active:
            log.warning(f"Login failed for user: {form_data.username} - User is inactive.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Inactive user."
            )

        new_hash = None
        if HashedPassword.needs_rehash(user.password):
            log.info(f"Upgrading password hash for user: {form_data.username}")
            new_hash = HashedPassword.get_hash(form_data.password)
        await self.user_service.record_login(user, password_hash=new_hash)
        access_token = JWTHandler.create_access_token(subject=str(user.id))
        log.info(f"Login successful for user: {form_data.username}")

        return user_models.LoginResponse(
            access_token=access_token,
            token_type="bearer",
            user=await self.build_session_user(user)
        )
