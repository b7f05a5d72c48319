'''
API models for parent/center messaging.
'''
from datetime import datetime
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import ChangeEventType


class ConversationCreate(BaseModel):
    """
    Parents open conversations about their own children. Center staff
    name the parent, or get the student's first linked parent.
    """
    student_id: UUID
    parent_user_id: Optional[UUID] = None

class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ConversationRead(BaseModel):
    id: UUID
    center_id: UUID
    student_id: UUID
    parent_user_id: UUID
    updated_at: datetime
    student_name: Optional[str] = None
    parent_username: Optional[str] = None
    unread_count: int = 0

class MessageRead(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_user_id: UUID
    content: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChangeEvent(BaseModel):
    """
    A row-level change notification. `conversation_id` is the identity the
    conversation list needs to patch a single entry.
    """
    table: str
    event_type: ChangeEventType
    row_id: UUID
    conversation_id: Optional[UUID] = None
    center_id: Optional[UUID] = None


class ConversationPatch(BaseModel):
    """Feed frame that replaces (or inserts) one conversation in the client list."""
    kind: Literal['patch'] = 'patch'
    conversation: ConversationRead

class ConversationSnapshot(BaseModel):
    """Feed frame carrying the full list; sent on connect and on unrecognized events."""
    kind: Literal['snapshot'] = 'snapshot'
    conversations: list[ConversationRead]
