'''
API models for meetings, attendee rosters and conclusions.
'''
from datetime import date, time, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import MeetingTypeEnum, MeetingStatusEnum, AttendanceStatusEnum


# --- Input Models ---

class AttendeeSelection(BaseModel):
    """
    The invitees picked in the meeting form. Which list is used depends
    on the meeting type.
    """
    student_ids: list[UUID] = Field(default_factory=list)
    teacher_ids: list[UUID] = Field(default_factory=list)

class MeetingCreate(AttendeeSelection):
    center_id: UUID
    title: str = Field(..., min_length=1)
    agenda: Optional[str] = None
    meeting_date: date
    meeting_time: Optional[time] = None
    meeting_type: MeetingTypeEnum
    status: MeetingStatusEnum = MeetingStatusEnum.SCHEDULED

class MeetingUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    agenda: Optional[str] = None
    meeting_date: Optional[date] = None
    meeting_time: Optional[time] = None
    meeting_type: Optional[MeetingTypeEnum] = None
    status: Optional[MeetingStatusEnum] = None

class RelinkRequest(AttendeeSelection):
    meeting_type: MeetingTypeEnum

class AttendanceUpdate(BaseModel):
    attendee_id: UUID
    attendance_status: AttendanceStatusEnum
    notes: Optional[str] = None

class AttendanceRecordRequest(BaseModel):
    records: list[AttendanceUpdate]

class ConclusionUpsert(BaseModel):
    conclusion_notes: str = Field(..., min_length=1)


# --- Output Models ---

class MeetingRead(BaseModel):
    id: UUID
    center_id: UUID
    title: str
    agenda: Optional[str] = None
    meeting_date: date
    meeting_time: Optional[time] = None
    meeting_type: MeetingTypeEnum
    status: MeetingStatusEnum

    model_config = ConfigDict(from_attributes=True)

class MeetingAttendeeRead(BaseModel):
    id: UUID
    meeting_id: UUID
    student_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    attendance_status: AttendanceStatusEnum
    attended: bool
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class MeetingConclusionRead(BaseModel):
    id: UUID
    meeting_id: UUID
    conclusion_notes: str
    recorded_by: Optional[UUID] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
