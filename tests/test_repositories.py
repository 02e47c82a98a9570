"""Query-layer behaviour against a real SQLite database."""
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from api.features.conversations.repository import ConversationRepository
from api.features.messages.entities.message import MessageType
from api.features.messages.repository import MessageRepository


async def test_create_and_find_conversation_with_aggregates(db_session):
    conversations = ConversationRepository(db_session)
    messages = MessageRepository(db_session)

    conversation = await conversations.create_conversation("Wheat rust")
    await messages.create_message(conversation.id, "What is rust?", MessageType.USER)
    last = await messages.create_message(conversation.id, "A fungus.", MessageType.AI)
    await db_session.commit()

    row = await conversations.find_by_id(conversation.id)
    assert row["title"] == "Wheat rust"
    assert row["message_count"] == 2
    assert row["last_message_time"] is not None
    assert last.id is not None
    assert await conversations.find_by_id(conversation.id + 1000) is None


async def test_find_all_orders_by_recent_activity(db_session):
    conversations = ConversationRepository(db_session)
    messages = MessageRepository(db_session)

    older = await conversations.create_conversation("Older")
    newer = await conversations.create_conversation("Newer")
    await db_session.commit()
    assert [c["id"] for c in await conversations.find_all()] == [newer.id, older.id]

    await messages.create_message(older.id, "bump", MessageType.USER)
    await db_session.commit()
    rows = await conversations.find_all()
    assert [c["id"] for c in rows] == [older.id, newer.id]

    page = await conversations.find_all(limit=1, offset=1)
    assert [c["id"] for c in page] == [newer.id]


async def test_update_title_reports_missing_rows(db_session):
    conversations = ConversationRepository(db_session)
    conversation = await conversations.create_conversation("Draft")
    await db_session.commit()

    assert await conversations.update_title(conversation.id, "Final") is True
    assert await conversations.update_title(conversation.id + 1000, "Nope") is False
    await db_session.commit()
    row = await conversations.find_by_id(conversation.id)
    assert row["title"] == "Final"
    assert row["updated_at"] >= row["created_at"]


async def test_delete_conversation_cascades_to_messages(db_session):
    conversations = ConversationRepository(db_session)
    messages = MessageRepository(db_session)
    conversation = await conversations.create_conversation("Soil")
    await messages.create_message(conversation.id, "pH?", MessageType.USER)
    await db_session.commit()

    assert await conversations.delete(conversation.id) is True
    await db_session.commit()
    assert await messages.get_count(conversation.id) == 0
    assert await conversations.delete(conversation.id) is False


async def test_search_matches_title_or_content_once(db_session):
    conversations = ConversationRepository(db_session)
    messages = MessageRepository(db_session)
    by_title = await conversations.create_conversation("Tomato blight")
    by_content = await conversations.create_conversation("Misc")
    await messages.create_message(by_content.id, "tomato leaves curl", MessageType.USER)
    await messages.create_message(by_content.id, "TOMATO again", MessageType.USER)
    await messages.create_message(by_content.id, "unrelated", MessageType.AI)
    await conversations.create_conversation("Maize")
    await db_session.commit()

    rows = await conversations.search("tomato")
    assert sorted(r["id"] for r in rows) == sorted([by_title.id, by_content.id])
    misc = next(r for r in rows if r["id"] == by_content.id)
    assert misc["message_count"] == 3


async def test_search_treats_like_wildcards_literally(db_session):
    conversations = ConversationRepository(db_session)
    await conversations.create_conversation("100% organic")
    await conversations.create_conversation("1000 hectares")
    await conversations.create_conversation("snake_case")
    await conversations.create_conversation("snakecase")
    await db_session.commit()

    assert [r["title"] for r in await conversations.search("100%")] == ["100% organic"]
    assert [r["title"] for r in await conversations.search("e_c")] == ["snake_case"]


async def test_recent_messages_are_returned_oldest_first(db_session):
    conversations = ConversationRepository(db_session)
    messages = MessageRepository(db_session)
    conversation = await conversations.create_conversation("Chat")
    for i in range(5):
        await messages.create_message(conversation.id, f"m{i}", MessageType.USER)
    await db_session.commit()

    recent = await messages.get_recent_messages(conversation.id, count=3)
    assert [m.content for m in recent] == ["m2", "m3", "m4"]
    listed = await messages.find_by_conversation_id(conversation.id, limit=2, offset=1)
    assert [m.content for m in listed] == ["m1", "m2"]


async def test_message_stats_and_search(db_session):
    conversations = ConversationRepository(db_session)
    messages = MessageRepository(db_session)
    conversation = await conversations.create_conversation("Irrigation")
    await messages.create_message(conversation.id, "drip", MessageType.USER)
    await messages.create_message(conversation.id, "drip lines", MessageType.AI)
    await messages.create_message(conversation.id, "failed", MessageType.ERROR)
    await db_session.commit()

    stats = await messages.get_stats(conversation_id=conversation.id)
    assert stats["total_messages"] == 3
    assert (stats["user_messages"], stats["ai_messages"], stats["error_messages"]) == (1, 1, 1)
    assert stats["avg_message_length"] == (4 + 10 + 6) / 3

    totals = await conversations.get_stats(conversation_id=conversation.id)
    assert totals["total_conversations"] == 1
    assert totals["avg_user_message_length"] == 4

    hits = await messages.search("DRIP")
    assert [h["content"] for h in hits] == ["drip lines", "drip"]
    assert all(h["conversation_title"] == "Irrigation" for h in hits)


async def test_message_create_survives_touch_failure(db_session, monkeypatch):
    conversations = ConversationRepository(db_session)
    conversation = await conversations.create_conversation("Fragile")
    await db_session.commit()

    messages = MessageRepository(db_session)
    monkeypatch.setattr(
        messages.conversations,
        "touch",
        AsyncMock(side_effect=OperationalError("UPDATE conversations", {}, Exception("locked"))),
    )
    message = await messages.create_message(conversation.id, "still saved", MessageType.USER)
    await db_session.commit()

    assert message.id is not None
    assert await messages.get_count(conversation.id) == 1


async def test_update_and_delete_message(db_session):
    conversations = ConversationRepository(db_session)
    messages = MessageRepository(db_session)
    conversation = await conversations.create_conversation("Edits")
    message = await messages.create_message(conversation.id, "typo", MessageType.USER)
    await db_session.commit()

    assert await messages.update(message.id, "fixed") is True
    await db_session.commit()
    await db_session.refresh(message)
    assert message.content == "fixed"

    assert await messages.delete(message.id) is True
    assert await messages.delete(message.id) is False
    assert await messages.delete_by_conversation_id(conversation.id) == 0
