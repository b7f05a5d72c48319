'''

'''
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from uuid import UUID
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from ..common.config import settings
from ..common.security_utils import HashedPassword
from ..models.token import TokenPayload
from ..common.logger import log
from ..database import models as db_models
from .user_service import UserService

__all__ = ["HashedPassword", "JWTHandler", "oauth2_scheme", "verify_token_and_get_user", "get_user_from_token"]


# --- JWT Handling ---
class JWTHandler:
    @staticmethod
    def create_access_token(
        subject: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(subject), "exp": expire}
        encoded_jwt = jwt.encode(
            to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )
        return encoded_jwt

    @staticmethod
    def decode_token(token: str) -> TokenPayload | None:
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
            return TokenPayload(**payload)
        except (JWTError, ValueError) as e:  # pydantic validation errors are ValueErrors
            log.warning(f"JWT decode/validation error: {e}")
            return None


# --- JWT Verification Dependency Function ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_user_from_token(token: str, user_service: UserService) -> db_models.Users | None:
    """
    Resolves a raw token to an active user, or None.
    Shared by the bearer dependency and the websocket handshake.
    """
    token_data = JWTHandler.decode_token(token)
    if not token_data or not token_data.sub:
        log.warning("JWT decode failed or invalid token structure.")
        return None

    try:
        user_id = UUID(token_data.sub)
    except ValueError:
        log.warning(f"JWT subject '{token_data.sub}' is not a user id.")
        return None

    user = await user_service.get_user_by_id(user_id)
    if user is None:
        log.warning(f"User '{token_data.sub}' not found during token verification.")
        return None

    if not user.is_active:
        log.warning(f"User '{token_data.sub}' is not active.")
        return None

    return user


async def verify_token_and_get_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    user_service: Annotated[UserService, Depends(UserService)]
    ) -> db_models.Users:
    """
    Dependency to verify the bearer JWT and fetch the acting user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = await get_user_from_token(token, user_service)
    if user is None:
        raise credentials_exception

    log.info(f"JWT verified successfully for user: {user.username} (Role: {user.role})")
    return user
