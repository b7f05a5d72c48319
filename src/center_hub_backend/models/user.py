# In models/user.py

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import UserRole
from .token import Token


# --- User API Read Models ---

class UserRead(BaseModel):
    """
    Base Pydantic model for reading user data.
    Corresponds to the db_models.Users ORM model.
    """
    id: UUID
    username: str
    role: UserRole
    center_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SessionUserRead(UserRead):
    """
    The user as returned by login: identity plus the cascaded permission
    snapshot assembled on the server.
    """
    center_permissions: dict[str, bool] = Field(default_factory=dict)
    teacher_permissions: dict[str, bool] = Field(default_factory=dict)
    effective_permissions: dict[str, bool] = Field(default_factory=dict)

class LoginResponse(Token):
    user: SessionUserRead


# --- Parent / Child Links ---

class ParentLinkRequest(BaseModel):
    parent_user_id: UUID
    student_id: UUID

class ParentLinkRead(BaseModel):
    id: UUID
    parent_user_id: UUID
    student_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
