'''
API models for the feature permission cascade.
'''
from uuid import UUID
from pydantic import BaseModel, Field

from ..database.db_enums import PermissionState


class FeatureToggle(BaseModel):
    """
    Validates the request body for flipping a center or teacher feature flag.
    """
    feature_name: str = Field(..., min_length=1, max_length=100)
    is_enabled: bool


class FeatureToggleResult(BaseModel):
    success: bool
    owner_id: UUID
    feature_name: str
    is_enabled: bool


class FeatureAccessRead(BaseModel):
    feature_name: str
    has_access: bool


class FeaturePermissionRead(BaseModel):
    """
    One row of a permission table as seen by a manager.
    `state` keeps UNSET visible; `is_enabled` is the resolved value.
    """
    feature_name: str
    state: PermissionState
    is_enabled: bool


class TeacherFeaturePermissionRead(FeaturePermissionRead):
    """A teacher feature shown together with the center-level flag that gates it."""
    center_enabled: bool
    effective: bool


class PermissionSnapshot(BaseModel):
    center_permissions: dict[str, bool] = Field(default_factory=dict)
    teacher_permissions: dict[str, bool] = Field(default_factory=dict)
    effective_permissions: dict[str, bool] = Field(default_factory=dict)
