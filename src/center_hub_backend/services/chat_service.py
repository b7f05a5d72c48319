'''

'''
from datetime import datetime, timezone
from typing import Optional, Annotated, Callable
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, ChangeEventType
from ..models import chat as chat_models
from ..common.logger import log
from .user_service import CenterScopedService, UserService, CENTER_MANAGER_ROLES
from .notifier import stage_change_event

CONVERSATIONS_TABLE = db_models.ChatConversations.__tablename__
MESSAGES_TABLE = db_models.ChatMessages.__tablename__


class ChatService(CenterScopedService):
    """
    Conversations between a parent and a center about one student,
    and the messages inside them.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        super().__init__(db)
        self.user_service = user_service

    # --- Authorization Helpers ---

    def _authorize_participant(self, current_user: db_models.Users, conversation: db_models.ChatConversations):
        if current_user.role == UserRole.PARENT.value:
            if conversation.parent_user_id == current_user.id:
                return
            log.warning(f"SECURITY: Parent {current_user.id} tried to access conversation {conversation.id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view this conversation."
            )
        self._authorize_center(current_user, conversation.center_id)

    async def _get_conversation_or_404(self, conversation_id: UUID) -> db_models.ChatConversations:
        conversation = await self.db.get(db_models.ChatConversations, conversation_id)
        if not conversation:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found.")
        return conversation

    # --- Conversation List ---

    async def _get_unread_counts(self, conversation_ids: list[UUID], reader_id: UUID) -> dict[UUID, int]:
        if not conversation_ids:
            return {}
        stmt = select(
            db_models.ChatMessages.conversation_id,
            func.count(db_models.ChatMessages.id)
        ).filter(
            db_models.ChatMessages.conversation_id.in_(conversation_ids),
            db_models.ChatMessages.sender_user_id != reader_id,
            db_models.ChatMessages.is_read.is_(False)
        ).group_by(db_models.ChatMessages.conversation_id)
        result = await self.db.execute(stmt)
        return {conversation_id: count for conversation_id, count in result.all()}

    async def list_conversations(
        self,
        current_user: db_models.Users,
        center_id: Optional[UUID] = None,
        conversation_id: Optional[UUID] = None
    ) -> list[chat_models.ConversationRead]:
        """
        Conversations visible to the user, newest activity first, each with
        the number of unread messages written by someone else.

        Parents see their own conversations, center staff their center's,
        and admins the requested center (or every center).
        """
        log.info(f"Listing conversations for user {current_user.id} (Role: {current_user.role}, center={center_id})")

        stmt = select(db_models.ChatConversations).options(
            selectinload(db_models.ChatConversations.student),
            selectinload(db_models.ChatConversations.parent)
        )

        if current_user.role == UserRole.PARENT.value:
            stmt = stmt.filter(db_models.ChatConversations.parent_user_id == current_user.id)
        elif current_user.role in [role.value for role in CENTER_MANAGER_ROLES]:
            if current_user.center_id is None:
                return []
            stmt = stmt.filter(db_models.ChatConversations.center_id == current_user.center_id)
        elif current_user.role == UserRole.ADMIN.value:
            if center_id:
                stmt = stmt.filter(db_models.ChatConversations.center_id == center_id)
        else:
            log.warning(f"Unauthorized conversation list by user {current_user.id} (Role: {current_user.role}).")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view conversations."
            )

        if conversation_id:
            stmt = stmt.filter(db_models.ChatConversations.id == conversation_id)

        stmt = stmt.order_by(db_models.ChatConversations.updated_at.desc())

        try:
            conversations = list((await self.db.execute(stmt)).scalars().all())
            unread = await self._get_unread_counts([c.id for c in conversations], current_user.id)
        except Exception as e:
            log.error(f"Error listing conversations for user {current_user.id}: {e}", exc_info=True)
            raise

        return [
            chat_models.ConversationRead(
                id=c.id,
                center_id=c.center_id,
                student_id=c.student_id,
                parent_user_id=c.parent_user_id,
                updated_at=c.updated_at,
                student_name=c.student.name if c.student else None,
                parent_username=c.parent.username if c.parent else None,
                unread_count=unread.get(c.id, 0)
            )
            for c in conversations
        ]

    # --- Conversation Lifecycle ---

    async def _resolve_conversation_parent(self, data: chat_models.ConversationCreate, current_user: db_models.Users, student: db_models.Students) -> UUID:
        if current_user.role == UserRole.PARENT.value:
            child_ids = await self.user_service.get_linked_student_ids(current_user.id)
            if student.id not in child_ids:
                log.warning(f"SECURITY: Parent {current_user.id} tried to open a conversation about unlinked student {student.id}.")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You can only message the center about your own children."
                )
            return current_user.id

        self._authorize_center(current_user, student.center_id)
        stmt = select(db_models.ParentStudents.parent_user_id).filter(
            db_models.ParentStudents.student_id == student.id
        ).order_by(db_models.ParentStudents.parent_user_id)
        parent_ids = list((await self.db.execute(stmt)).scalars().all())

        if data.parent_user_id:
            if data.parent_user_id not in parent_ids:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="This parent is not linked to the student."
                )
            return data.parent_user_id
        if not parent_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The student has no linked parent account."
            )
        return parent_ids[0]

    async def get_or_create_conversation(
        self,
        data: chat_models.ConversationCreate,
        current_user: db_models.Users
    ) -> chat_models.ConversationRead:
        """
        Returns the conversation for (center, parent, student), creating it
        the first time.
        """
        student = await self.db.get(db_models.Students, data.student_id)
        if not student:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")

        parent_user_id = await self._resolve_conversation_parent(data, current_user, student)

        stmt = select(db_models.ChatConversations.id).filter(
            db_models.ChatConversations.center_id == student.center_id,
            db_models.ChatConversations.parent_user_id == parent_user_id,
            db_models.ChatConversations.student_id == student.id
        )
        conversation_id = (await self.db.execute(stmt)).scalars().first()

        if conversation_id is None:
            log.info(f"Opening conversation for parent {parent_user_id} about student {student.id}")
            conversation = db_models.ChatConversations(
                center_id=student.center_id,
                student_id=student.id,
                parent_user_id=parent_user_id
            )
            self.db.add(conversation)
            await self.db.flush()
            conversation_id = conversation.id
            stage_change_event(self.db, chat_models.ChangeEvent(
                table=CONVERSATIONS_TABLE,
                event_type=ChangeEventType.INSERT,
                row_id=conversation.id,
                conversation_id=conversation.id,
                center_id=conversation.center_id
            ))

        rows = await self.list_conversations(current_user, center_id=student.center_id, conversation_id=conversation_id)
        return rows[0]

    # --- Messages ---

    async def list_messages(self, conversation_id: UUID, current_user: db_models.Users) -> list[chat_models.MessageRead]:
        conversation = await self._get_conversation_or_404(conversation_id)
        self._authorize_participant(current_user, conversation)
        stmt = select(db_models.ChatMessages).filter(
            db_models.ChatMessages.conversation_id == conversation_id
        ).order_by(db_models.ChatMessages.created_at)
        result = await self.db.execute(stmt)
        return [chat_models.MessageRead.model_validate(m) for m in result.scalars().all()]

    async def send_message(
        self,
        conversation_id: UUID,
        data: chat_models.MessageCreate,
        current_user: db_models.Users
    ) -> chat_models.MessageRead:
        conversation = await self._get_conversation_or_404(conversation_id)
        self._authorize_participant(current_user, conversation)
        log.info(f"User {current_user.id} sending message in conversation {conversation_id}")

        try:
            message = db_models.ChatMessages(
                conversation_id=conversation.id,
                sender_user_id=current_user.id,
                content=data.content,
                is_read=False
            )
            self.db.add(message)
            conversation.updated_at = datetime.now(timezone.utc)
            await self.db.flush()
        except Exception as e:
            log.error(f"Error sending message in conversation {conversation_id}: {e}", exc_info=True)
            raise

        stage_change_event(self.db, chat_models.ChangeEvent(
            table=MESSAGES_TABLE,
            event_type=ChangeEventType.INSERT,
            row_id=message.id,
            conversation_id=conversation.id,
            center_id=conversation.center_id
        ))
        return chat_models.MessageRead.model_validate(message)

    async def mark_read(self, conversation_id: UUID, current_user: db_models.Users) -> int:
        """Marks every message written by others as read. Returns how many changed."""
        conversation = await self._get_conversation_or_404(conversation_id)
        self._authorize_participant(current_user, conversation)

        stmt = update(db_models.ChatMessages).where(
            db_models.ChatMessages.conversation_id == conversation_id,
            db_models.ChatMessages.sender_user_id != current_user.id,
            db_models.ChatMessages.is_read.is_(False)
        ).values(is_read=True).execution_options(synchronize_session="evaluate")
        result = await self.db.execute(stmt)
        updated = result.rowcount or 0

        if updated:
            stage_change_event(self.db, chat_models.ChangeEvent(
                table=CONVERSATIONS_TABLE,
                event_type=ChangeEventType.UPDATE,
                row_id=conversation.id,
                conversation_id=conversation.id,
                center_id=conversation.center_id
            ))
        log.info(f"User {current_user.id} marked {updated} message(s) read in conversation {conversation_id}")
        return updated


class ConversationFeed:
    """
    Turns change events into frames for one subscriber's conversation list.

    Events on the chat tables that name a conversation become a single-row
    patch; anything else triggers a full snapshot. Each frame is built in
    its own short-lived session.
    """
    PATCHABLE_TABLES = {CONVERSATIONS_TABLE, MESSAGES_TABLE}

    def __init__(
        self,
        session_factory: Callable,
        current_user: db_models.Users,
        center_id: Optional[UUID] = None
    ):
        self.session_factory = session_factory
        self.current_user = current_user
        self.center_id = center_id

    async def _list(self, conversation_id: Optional[UUID] = None) -> list[chat_models.ConversationRead]:
        async with self.session_factory() as session:
            service = ChatService(session, UserService(session))
            return await service.list_conversations(self.current_user, self.center_id, conversation_id)

    async def snapshot(self) -> chat_models.ConversationSnapshot:
        return chat_models.ConversationSnapshot(conversations=await self._list())

    async def frame_for(
        self,
        change: chat_models.ChangeEvent
    ) -> chat_models.ConversationPatch | chat_models.ConversationSnapshot | None:
        """
        Returns the frame to send for `change`, or None when the change
        concerns a conversation this subscriber cannot see.
        """
        patchable = (
            change.table in self.PATCHABLE_TABLES
            and change.conversation_id is not None
            and change.event_type != ChangeEventType.DELETE
        )
        if not patchable:
            log.info(f"Change on '{change.table}' ({change.event_type.value}) cannot be patched; sending full snapshot.")
            return await self.snapshot()

        rows = await self._list(change.conversation_id)
        if not rows:
            return None
        return chat_models.ConversationPatch(conversation=rows[0])
