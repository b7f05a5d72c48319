'''
API models for the center-scoped catalogs (discipline categories, activity types).
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import SeverityEnum


class DisciplineCategoryCreate(BaseModel):
    center_id: UUID
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    default_severity: SeverityEnum = SeverityEnum.MINOR
    is_active: bool = True

class DisciplineCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    default_severity: Optional[SeverityEnum] = None
    is_active: Optional[bool] = None

class DisciplineCategoryRead(BaseModel):
    id: UUID
    center_id: UUID
    name: str
    description: Optional[str] = None
    default_severity: SeverityEnum
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ActivityTypeCreate(BaseModel):
    center_id: UUID
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_active: bool = True

class ActivityTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    is_active: Optional[bool] = None

class ActivityTypeRead(BaseModel):
    id: UUID
    center_id: UUID
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
