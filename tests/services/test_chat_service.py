import pytest
import asyncio
import datetime
from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.center_hub_backend.services.chat_service import ChatService, ConversationFeed
from src.center_hub_backend.services.notifier import ChangeNotifier, notifier
from src.center_hub_backend.database import models as db_models
from src.center_hub_backend.database.db_enums import ChangeEventType
from src.center_hub_backend.models import chat as chat_models

from tests.constants import (
    CENTER_A_ID, CENTER_B_ID, STUDENT_A1_ID, STUDENT_A2_ID, STUDENT_B1_ID,
    PARENT_A_USER_ID, PARENT_B_USER_ID, CENTER_A_USER_ID
)
from tests.database.factories import ConversationFactory, MessageFactory

UTC = datetime.timezone.utc


async def _seed_conversations(db: AsyncSession):
    """
    Center A: one conversation with parent A (older, two unread messages
    from the center, one from the parent). Center B: one conversation
    with parent B (newer).
    """
    conv_a = ConversationFactory.build(
        center_id=CENTER_A_ID, student_id=STUDENT_A1_ID, parent_user_id=PARENT_A_USER_ID,
        updated_at=datetime.datetime(2024, 9, 1, 9, 0, tzinfo=UTC)
    )
    conv_b = ConversationFactory.build(
        center_id=CENTER_B_ID, student_id=STUDENT_B1_ID, parent_user_id=PARENT_B_USER_ID,
        updated_at=datetime.datetime(2024, 9, 2, 9, 0, tzinfo=UTC)
    )
    db.add_all([conv_a, conv_b])
    await db.flush()
    db.add_all([
        MessageFactory.build(conversation_id=conv_a.id, sender_user_id=CENTER_A_USER_ID),
        MessageFactory.build(conversation_id=conv_a.id, sender_user_id=CENTER_A_USER_ID),
        MessageFactory.build(conversation_id=conv_a.id, sender_user_id=PARENT_A_USER_ID),
        MessageFactory.build(conversation_id=conv_b.id, sender_user_id=PARENT_B_USER_ID),
    ])
    await db.commit()
    return conv_a, conv_b


def _drain(queue: asyncio.Queue) -> list[chat_models.ChangeEvent]:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


@pytest.mark.anyio
class TestConversationList:

    async def test_parent_sees_own_conversation_with_unread_count(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, _ = await _seed_conversations(db_session)

        rows = await chat_service.list_conversations(sandbox.parent_a)
        print([row.model_dump() for row in rows])

        assert [row.id for row in rows] == [conv_a.id]
        assert rows[0].unread_count == 2
        assert rows[0].student_name == "Alice Adams"
        assert rows[0].parent_username == sandbox.parent_a.username

    async def test_center_counts_only_messages_from_others(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, _ = await _seed_conversations(db_session)

        rows = await chat_service.list_conversations(sandbox.center_user_a)
        assert [row.id for row in rows] == [conv_a.id]
        assert rows[0].unread_count == 1

    async def test_admin_sees_all_newest_first(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, conv_b = await _seed_conversations(db_session)

        rows = await chat_service.list_conversations(sandbox.admin)
        assert [row.id for row in rows] == [conv_b.id, conv_a.id]

        rows = await chat_service.list_conversations(sandbox.admin, center_id=CENTER_A_ID)
        assert [row.id for row in rows] == [conv_a.id]

    @pytest.mark.parametrize("user_attr", ["teacher_user_a", "vendor"])
    async def test_other_roles_are_forbidden(self, chat_service: ChatService, sandbox, user_attr):
        with pytest.raises(HTTPException) as e:
            await chat_service.list_conversations(getattr(sandbox, user_attr))
        assert e.value.status_code == 403

    async def test_empty_list(self, chat_service: ChatService, sandbox):
        assert await chat_service.list_conversations(sandbox.parent_a) == []


@pytest.mark.anyio
class TestConversationLifecycle:

    async def test_parent_opens_conversation_once(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        data = chat_models.ConversationCreate(student_id=STUDENT_A1_ID)
        first = await chat_service.get_or_create_conversation(data, sandbox.parent_a)
        second = await chat_service.get_or_create_conversation(data, sandbox.parent_a)

        assert first.id == second.id
        assert first.center_id == CENTER_A_ID
        assert first.parent_user_id == PARENT_A_USER_ID
        assert first.unread_count == 0

        count = (await db_session.execute(select(func.count(db_models.ChatConversations.id)))).scalar_one()
        assert count == 1

    async def test_parent_cannot_open_conversation_for_unlinked_student(self, chat_service: ChatService, sandbox):
        data = chat_models.ConversationCreate(student_id=STUDENT_A2_ID)
        with pytest.raises(HTTPException) as e:
            await chat_service.get_or_create_conversation(data, sandbox.parent_a)
        assert e.value.status_code == 403

    async def test_center_opens_conversation_with_linked_parent(self, chat_service: ChatService, sandbox):
        conversation = await chat_service.get_or_create_conversation(
            chat_models.ConversationCreate(student_id=STUDENT_A1_ID), sandbox.center_user_a
        )
        assert conversation.parent_user_id == PARENT_A_USER_ID

    async def test_center_cannot_pick_unlinked_parent(self, chat_service: ChatService, sandbox):
        data = chat_models.ConversationCreate(student_id=STUDENT_A1_ID, parent_user_id=PARENT_B_USER_ID)
        with pytest.raises(HTTPException) as e:
            await chat_service.get_or_create_conversation(data, sandbox.center_user_a)
        assert e.value.status_code == 400

    async def test_student_without_parent_cannot_be_messaged(self, chat_service: ChatService, sandbox):
        data = chat_models.ConversationCreate(student_id=STUDENT_A2_ID)
        with pytest.raises(HTTPException) as e:
            await chat_service.get_or_create_conversation(data, sandbox.center_user_a)
        assert e.value.status_code == 400

    async def test_other_center_cannot_open_conversation(self, chat_service: ChatService, sandbox):
        data = chat_models.ConversationCreate(student_id=STUDENT_A1_ID)
        with pytest.raises(HTTPException) as e:
            await chat_service.get_or_create_conversation(data, sandbox.center_user_b)
        assert e.value.status_code == 403

    async def test_unknown_student_returns_404(self, chat_service: ChatService, sandbox):
        data = chat_models.ConversationCreate(student_id=CENTER_A_ID)
        with pytest.raises(HTTPException) as e:
            await chat_service.get_or_create_conversation(data, sandbox.admin)
        assert e.value.status_code == 404


@pytest.mark.anyio
class TestMessages:

    async def test_send_message_moves_conversation_to_top(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, conv_b = await _seed_conversations(db_session)

        message = await chat_service.send_message(
            conv_a.id, chat_models.MessageCreate(content="Is Alice coming tomorrow?"), sandbox.center_user_a
        )
        await db_session.commit()

        assert message.sender_user_id == CENTER_A_USER_ID
        assert message.is_read is False
        rows = await chat_service.list_conversations(sandbox.admin)
        assert [row.id for row in rows] == [conv_a.id, conv_b.id]

        messages = await chat_service.list_messages(conv_a.id, sandbox.parent_a)
        assert len(messages) == 4

    async def test_mark_read(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, _ = await _seed_conversations(db_session)

        assert await chat_service.mark_read(conv_a.id, sandbox.parent_a) == 2
        await db_session.commit()
        assert await chat_service.mark_read(conv_a.id, sandbox.parent_a) == 0

        rows = await chat_service.list_conversations(sandbox.parent_a)
        assert rows[0].unread_count == 0
        # The parent's own message is still unread for the center.
        rows = await chat_service.list_conversations(sandbox.center_user_a)
        assert rows[0].unread_count == 1

    async def test_other_parent_cannot_read_or_write(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, _ = await _seed_conversations(db_session)

        with pytest.raises(HTTPException) as e:
            await chat_service.list_messages(conv_a.id, sandbox.parent_b)
        assert e.value.status_code == 403

        with pytest.raises(HTTPException) as e:
            await chat_service.send_message(conv_a.id, chat_models.MessageCreate(content="hi"), sandbox.parent_b)
        assert e.value.status_code == 403

    async def test_unknown_conversation_returns_404(self, chat_service: ChatService, sandbox):
        with pytest.raises(HTTPException) as e:
            await chat_service.list_messages(CENTER_A_ID, sandbox.admin)
        assert e.value.status_code == 404


@pytest.mark.anyio
class TestChangeNotifications:

    async def test_events_are_published_after_commit(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, _ = await _seed_conversations(db_session)

        async with notifier.subscribe() as queue:
            message = await chat_service.send_message(
                conv_a.id, chat_models.MessageCreate(content="hello"), sandbox.parent_a
            )
            assert queue.empty()

            await db_session.commit()
            events = _drain(queue)

        assert len(events) == 1
        assert events[0].table == "chat_messages"
        assert events[0].event_type == ChangeEventType.INSERT
        assert events[0].row_id == message.id
        assert events[0].conversation_id == conv_a.id

    async def test_events_are_dropped_on_rollback(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        conv_a, _ = await _seed_conversations(db_session)

        async with notifier.subscribe() as queue:
            await chat_service.send_message(conv_a.id, chat_models.MessageCreate(content="oops"), sandbox.parent_a)
            await db_session.rollback()
            await db_session.commit()
            assert queue.empty()

    async def test_new_conversation_and_read_receipts_are_announced(
        self,
        chat_service: ChatService,
        db_session: AsyncSession,
        sandbox
    ):
        async with notifier.subscribe() as queue:
            conversation = await chat_service.get_or_create_conversation(
                chat_models.ConversationCreate(student_id=STUDENT_A1_ID), sandbox.parent_a
            )
            await chat_service.send_message(conversation.id, chat_models.MessageCreate(content="hi"), sandbox.center_user_a)
            await chat_service.mark_read(conversation.id, sandbox.parent_a)
            await db_session.commit()
            events = _drain(queue)

        assert [(e.table, e.event_type) for e in events] == [
            ("chat_conversations", ChangeEventType.INSERT),
            ("chat_messages", ChangeEventType.INSERT),
            ("chat_conversations", ChangeEventType.UPDATE),
        ]
        assert events[2].row_id == conversation.id
        assert events[2].conversation_id == conversation.id

    async def test_subscriber_is_removed_on_exit(self):
        hub = ChangeNotifier()
        async with hub.subscribe():
            assert hub.subscriber_count == 1
        assert hub.subscriber_count == 0

    async def test_full_queue_drops_event_for_that_subscriber(self):
        hub = ChangeNotifier(max_queue_size=1)
        change = chat_models.ChangeEvent(table="chat_messages", event_type=ChangeEventType.INSERT, row_id=CENTER_A_ID)
        async with hub.subscribe() as queue:
            assert hub.publish(change) == 1
            assert hub.publish(change) == 0
            assert queue.qsize() == 1


@pytest.mark.anyio
class TestConversationFeed:

    async def test_snapshot(self, session_factory, db_session: AsyncSession, sandbox):
        conv_a, _ = await _seed_conversations(db_session)
        feed = ConversationFeed(session_factory, sandbox.parent_a)

        snapshot = await feed.snapshot()
        assert snapshot.kind == "snapshot"
        assert [c.id for c in snapshot.conversations] == [conv_a.id]

    async def test_message_event_becomes_single_row_patch(self, session_factory, db_session: AsyncSession, sandbox):
        conv_a, _ = await _seed_conversations(db_session)
        feed = ConversationFeed(session_factory, sandbox.center_user_a)

        change = chat_models.ChangeEvent(
            table="chat_messages", event_type=ChangeEventType.INSERT,
            row_id=CENTER_A_ID, conversation_id=conv_a.id, center_id=CENTER_A_ID
        )
        frame = await feed.frame_for(change)
        print(frame.model_dump_json(indent=2))

        assert frame.kind == "patch"
        assert frame.conversation.id == conv_a.id
        assert frame.conversation.unread_count == 1

    async def test_event_for_invisible_conversation_is_skipped(self, session_factory, db_session: AsyncSession, sandbox):
        _, conv_b = await _seed_conversations(db_session)
        feed = ConversationFeed(session_factory, sandbox.center_user_a)

        change = chat_models.ChangeEvent(
            table="chat_messages", event_type=ChangeEventType.INSERT,
            row_id=conv_b.id, conversation_id=conv_b.id, center_id=CENTER_B_ID
        )
        assert await feed.frame_for(change) is None

    @pytest.mark.parametrize("table, event_type, with_conversation", [
        ("chat_conversations", ChangeEventType.DELETE, True),
        ("students", ChangeEventType.UPDATE, True),
        ("chat_messages", ChangeEventType.UPDATE, False),
    ])
    async def test_unpatchable_events_send_snapshot(
        self,
        session_factory,
        db_session: AsyncSession,
        sandbox,
        table,
        event_type,
        with_conversation
    ):
        conv_a, _ = await _seed_conversations(db_session)
        feed = ConversationFeed(session_factory, sandbox.parent_a)

        change = chat_models.ChangeEvent(
            table=table, event_type=event_type, row_id=conv_a.id,
            conversation_id=conv_a.id if with_conversation else None
        )
        frame = await feed.frame_for(change)
        assert frame.kind == "snapshot"
        assert [c.id for c in frame.conversations] == [conv_a.id]
