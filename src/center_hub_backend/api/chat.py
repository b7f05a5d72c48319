'''
API endpoints for parent/center conversations, plus the live
conversation-list websocket.
'''
from typing import Annotated
from uuid import UUID
import anyio
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import models as db_models
from ..database.engine import get_session_factory
from ..models import chat as chat_models
from ..services.security import verify_token_and_get_user, get_user_from_token
from ..services.user_service import UserService
from ..services.chat_service import ChatService, ConversationFeed
from ..services.notifier import notifier
from ..common.logger import log


class ChatAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/chat",
            tags=["Chat"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/conversations",
                self.list_conversations,
                methods=["GET"],
                response_model=list[chat_models.ConversationRead])
        self.router.add_api_route(
                "/conversations",
                self.open_conversation,
                methods=["POST"],
                response_model=chat_models.ConversationRead)
        self.router.add_api_route(
                "/conversations/{conversation_id}/messages",
                self.list_messages,
                methods=["GET"],
                response_model=list[chat_models.MessageRead])
        self.router.add_api_route(
                "/conversations/{conversation_id}/messages",
                self.send_message,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=chat_models.MessageRead)
        self.router.add_api_route(
                "/conversations/{conversation_id}/read",
                self.mark_read,
                methods=["POST"])
        self.router.add_api_websocket_route("/ws", self.conversation_feed)

    async def list_conversations(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        chat_service: Annotated[ChatService, Depends(ChatService)],
        center_id: Annotated[UUID | None, Query(description="Admins only: restrict to one center")] = None
    ):
        """
        Lists the user's conversations, most recently active first, with unread counts.
        """
        return await chat_service.list_conversations(current_user, center_id=center_id)

    async def open_conversation(
        self,
        conversation_data: chat_models.ConversationCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        chat_service: Annotated[ChatService, Depends(ChatService)]
    ):
        return await chat_service.get_or_create_conversation(conversation_data, current_user)

    async def list_messages(
        self,
        conversation_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        chat_service: Annotated[ChatService, Depends(ChatService)]
    ):
        return await chat_service.list_messages(conversation_id, current_user)

    async def send_message(
        self,
        conversation_id: UUID,
        message_data: chat_models.MessageCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        chat_service: Annotated[ChatService, Depends(ChatService)]
    ):
        return await chat_service.send_message(conversation_id, message_data, current_user)

    async def mark_read(
        self,
        conversation_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        chat_service: Annotated[ChatService, Depends(ChatService)]
    ):
        updated = await chat_service.mark_read(conversation_id, current_user)
        return {"success": True, "messages_updated": updated}

    async def conversation_feed(
        self,
        websocket: WebSocket,
        session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
        token: Annotated[str | None, Query()] = None,
        center_id: Annotated[UUID | None, Query()] = None
    ):
        """
        Streams the user's conversation list: a snapshot on connect, then
        one frame per committed change (a single-row patch when possible).
        """
        user = None
        if token:
            async with session_factory() as session:
                user = await get_user_from_token(token, UserService(session))
        if user is None:
            log.warning("Rejected conversation feed connection: invalid or missing token.")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        feed = ConversationFeed(session_factory, user, center_id)

        async with notifier.subscribe() as queue:
            try:
                initial = await feed.snapshot()
            except HTTPException as e:
                log.warning(f"Rejected conversation feed for user {user.id}: {e.detail}")
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                return

            await websocket.accept()
            await websocket.send_json(initial.model_dump(mode="json"))

            async with anyio.create_task_group() as task_group:

                async def watch_disconnect():
                    try:
                        while True:
                            await websocket.receive_text()
                    except WebSocketDisconnect:
                        log.info(f"Conversation feed closed by user {user.id}.")
                    task_group.cancel_scope.cancel()

                async def forward_changes():
                    while True:
                        change = await queue.get()
                        frame = await feed.frame_for(change)
                        if frame is not None:
                            await websocket.send_json(frame.model_dump(mode="json"))

                task_group.start_soon(watch_disconnect)
                task_group.start_soon(forward_changes)


# Instantiate the class and export its router
chat_api = ChatAPI()
router = chat_api.router
