"""Remote-first persistence client with local fallback."""
from unittest.mock import MagicMock

import pytest
import requests

from client.local_storage import LocalStorage, StorageQuotaExceededError
from client.persistence import PersistenceClient
from core.settings import ClientSettings

BASE = "http://api.test/api"


def _response(status_code=200, payload=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if payload is None:
        response.json.side_effect = ValueError("no body")
    else:
        response.json.return_value = payload
    return response


def _session(online=True):
    session = MagicMock(spec=requests.Session)
    if online:
        session.get.return_value = _response(200, {"success": True, "data": {"status": "healthy"}})
    else:
        session.get.side_effect = requests.ConnectionError("refused")
    return session


def _client(session, storage=None, **settings):
    return PersistenceClient(
        settings=ClientSettings(API_BASE_URL=BASE, **settings),
        session=session,
        storage=storage or LocalStorage(),
    )


@pytest.fixture
def offline():
    return _client(_session(online=False))


def test_probe_uses_health_endpoint():
    session = _session()
    client = _client(session)

    assert client.is_backend_available() is True
    assert session.get.call_args.args[0] == f"{BASE}/health"


def test_offline_messages_keep_order_and_update_conversation(offline):
    created = offline.create_conversation("Offline chat")
    assert created["success"] is True
    assert created["source"] == "local"
    conversation_id = created["conversation"]["id"]
    assert isinstance(conversation_id, float)
    assert offline.get_current_conversation() == conversation_id

    first = offline.add_message(conversation_id, " first ", "user")
    second = offline.add_message(conversation_id, "second", "ai")
    assert first["message"]["content"] == "first"
    assert first["message"]["id"] != second["message"]["id"]

    listed = offline.get_messages(conversation_id)
    assert [m["content"] for m in listed["messages"]] == ["first", "second"]
    assert listed["pagination"] == {"limit": 100, "offset": 0, "count": 2}

    conversation = offline.get_conversation(conversation_id)["conversation"]
    assert conversation["message_count"] == 2
    assert conversation["last_message_time"] == second["message"]["timestamp"]

    recent = offline.get_recent_messages(conversation_id, count=1)
    assert [m["content"] for m in recent["messages"]] == ["second"]


def test_offline_conversations_listed_by_recency(offline):
    older = offline.create_conversation("Older")["conversation"]
    newer = offline.create_conversation()["conversation"]
    assert newer["title"] == "New Conversation"

    offline.add_message(older["id"], "bump", "user")
    listed = offline.get_conversations(limit=10)
    assert [c["id"] for c in listed["conversations"]] == [older["id"], newer["id"]]

    page = offline.get_conversations(limit=1, offset=1)
    assert [c["id"] for c in page["conversations"]] == [newer["id"]]


def test_offline_title_update_and_delete(offline):
    conversation = offline.create_conversation("Draft")["conversation"]
    offline.add_message(conversation["id"], "hello", "user")

    updated = offline.update_conversation_title(conversation["id"], "  ")
    assert updated["conversation"]["title"] == "New Conversation"

    assert offline.delete_conversation(conversation["id"])["success"] is True
    assert offline.get_current_conversation() is None
    assert offline.get_messages(conversation["id"])["messages"] == []
    missing = offline.delete_conversation(conversation["id"])
    assert missing == {"success": False, "error": "Conversation not found", "source": "local"}


def test_offline_search_matches_title_or_content_once(offline):
    by_title = offline.create_conversation("Mango flowering")["conversation"]
    by_content = offline.create_conversation("Orchard")["conversation"]
    offline.add_message(by_content["id"], "MANGO thrips", "user")
    offline.add_message(by_content["id"], "mango again", "ai")
    offline.create_conversation("Citrus")

    result = offline.search_conversations("mango")
    assert result["count"] == 2
    assert result["query"] == "mango"
    assert {c["id"] for c in result["conversations"]} == {by_title["id"], by_content["id"]}


def test_offline_stats_shape_matches_server(offline):
    conversation = offline.create_conversation("Stats")["conversation"]
    offline.add_message(conversation["id"], "abcd", "user")
    offline.add_message(conversation["id"], "abcdef", "ai")
    offline.add_message(conversation["id"], "err", "error")

    stats = offline.get_conversation_stats(conversation["id"])["stats"]
    assert stats["conversation"]["total_conversations"] == 1
    assert stats["conversation"]["avg_user_message_length"] == 4
    assert stats["messages"]["total_messages"] == 3
    assert stats["messages"]["error_messages"] == 1
    assert stats["messages"]["avg_message_length"] == (4 + 6 + 3) / 3

    overall = offline.get_stats()["stats"]
    assert overall["conversations"]["total_conversations"] == 1
    assert overall["messages"]["ai_messages"] == 1


def test_offline_message_edit_and_delete(offline):
    conversation = offline.create_conversation()["conversation"]
    message = offline.add_message(conversation["id"], "typo", "user")["message"]

    edited = offline.update_message(conversation["id"], message["id"], "fixed")
    assert edited["message"]["content"] == "fixed"

    assert offline.delete_message(conversation["id"], message["id"])["success"] is True
    assert offline.get_conversation(conversation["id"])["conversation"]["message_count"] == 0
    assert offline.delete_message(conversation["id"], message["id"])["success"] is False


def test_invalid_input_reaches_neither_store():
    session = _session()
    storage = LocalStorage()
    client = _client(session, storage=storage)

    for content, message_type in (("", "user"), ("   ", "ai"), ("hi", "bot"), ("x" * 1001, "user")):
        result = client.add_message(1, content, message_type)
        assert result["success"] is False

    assert client.update_message(1, 2, "")["success"] is False
    assert client.create_conversation("t" * 256)["success"] is False
    assert client.search_conversations(" ")["success"] is False
    session.request.assert_not_called()
    assert storage.keys() == []


def test_remote_success_is_tagged_remote():
    session = _session()
    session.request.return_value = _response(
        201, {"success": True, "data": {"id": 7, "title": "Remote", "message_count": 0}}
    )
    client = _client(session)

    result = client.create_conversation("Remote")
    assert result == {
        "success": True,
        "source": "remote",
        "conversation": {"id": 7, "title": "Remote", "message_count": 0},
    }
    assert client.get_current_conversation() == 7
    method, url = session.request.call_args.args
    assert (method, url) == ("POST", f"{BASE}/conversations")
    assert session.request.call_args.kwargs["json"] == {"title": "Remote"}


def test_search_query_is_url_encoded():
    session = _session()
    session.request.return_value = _response(
        200, {"success": True, "data": [], "query": "50% off", "count": 0}
    )
    client = _client(session)

    client.search_conversations("50% off", limit=5)
    assert session.request.call_args.args[1] == f"{BASE}/conversations/search/50%25%20off"
    assert session.request.call_args.kwargs["params"] == {"limit": 5}


def test_transport_failure_mid_session_demotes_to_local():
    session = _session()
    session.request.side_effect = requests.ConnectionError("server died")
    client = _client(session)

    created = client.create_conversation("Survives")
    assert created["success"] is True
    assert created["source"] == "local"
    assert client.is_backend_available() is False

    client.add_message(created["conversation"]["id"], "still recorded", "user")
    assert session.request.call_count == 1
    messages = client.get_messages(created["conversation"]["id"])["messages"]
    assert [m["content"] for m in messages] == ["still recorded"]


def test_server_error_demotes_but_client_error_does_not():
    session = _session()
    session.request.return_value = _response(404, {"success": False, "error": "Conversation not found"})
    client = _client(session)

    result = client.get_conversation(12)
    assert result["source"] == "local"
    assert result["success"] is False
    assert client.is_backend_available() is True

    session.request.return_value = _response(500, {"success": False, "error": "boom"})
    assert client.get_conversations()["source"] == "local"
    assert client.is_backend_available() is False


def test_demotion_can_be_disabled():
    session = _session()
    session.request.return_value = _response(503)
    client = _client(session, DEMOTE_ON_FAILURE=False)

    assert client.get_stats()["source"] == "local"
    assert client.is_backend_available() is True


def test_check_connection_restores_remote_mode():
    session = _session(online=False)
    client = _client(session)
    assert client.is_backend_available() is False

    session.get.side_effect = None
    session.get.return_value = _response(200, {"success": True})
    assert client.check_connection() is True

    session.request.return_value = _response(200, {"success": True, "data": []})
    assert client.get_conversations()["source"] == "remote"


def test_unhealthy_probe_means_local_mode():
    session = _session()
    session.get.return_value = _response(503, {"success": True, "data": {"status": "degraded"}})
    client = _client(session)
    assert client.is_backend_available() is False


def test_quota_overflow_returns_failure_without_raising(offline):
    offline.storage.quota_bytes = 600
    conversation = offline.create_conversation("Tiny")["conversation"]

    result = {"success": True}
    for _ in range(10):
        result = offline.add_message(conversation["id"], "x" * 80, "user")
        if not result["success"]:
            break

    assert result["success"] is False
    assert result["source"] == "local"
    assert "quota" in result["error"]


def test_clear_local_data_removes_only_chat_keys(offline):
    conversation = offline.create_conversation()["conversation"]
    offline.add_message(conversation["id"], "hello", "user")
    offline.storage.set_item("unrelated", "keep")

    assert offline.clear_local_data()["success"] is True
    assert offline.storage.keys() == ["unrelated"]
    assert offline.get_conversations()["conversations"] == []


def test_current_conversation_can_be_set(offline):
    offline.set_current_conversation(42)
    assert offline.get_current_conversation() == 42


def test_failed_local_add_message_leaves_no_partial_write():
    failures = 0
    for quota in range(200, 2000, 16):
        client = _client(_session(online=False), storage=LocalStorage(quota_bytes=quota))
        created = client.create_conversation("Quota sweep")
        if not created["success"]:
            continue
        conversation_id = created["conversation"]["id"]

        result = client.add_message(conversation_id, "m" * 50, "user")
        if result["success"]:
            continue
        failures += 1
        assert client.get_messages(conversation_id)["messages"] == []
        assert client.get_conversation(conversation_id)["conversation"]["message_count"] == 0

    assert failures > 0


def test_failed_local_delete_message_restores_messages(offline):
    conversation = offline.create_conversation("Rollback")["conversation"]
    message = offline.add_message(conversation["id"], "keep me", "user")["message"]

    storage = offline.storage
    original_set_item = storage.set_item

    def reject_conversation_writes(key, value):
        if key == "agrichat_conversations":
            raise StorageQuotaExceededError(len(value), 0)
        original_set_item(key, value)

    storage.set_item = reject_conversation_writes
    result = offline.delete_message(conversation["id"], message["id"])
    storage.set_item = original_set_item

    assert result["success"] is False
    assert [m["content"] for m in offline.get_messages(conversation["id"])["messages"]] == ["keep me"]
    assert offline.get_conversation(conversation["id"])["conversation"]["message_count"] == 1


def test_failed_local_delete_conversation_keeps_its_messages(offline):
    conversation = offline.create_conversation("Stays")["conversation"]
    offline.add_message(conversation["id"], "still here", "user")

    storage = offline.storage
    original_set_item = storage.set_item

    def reject_conversation_writes(key, value):
        if key == "agrichat_conversations":
            raise StorageQuotaExceededError(len(value), 0)
        original_set_item(key, value)

    storage.set_item = reject_conversation_writes
    result = offline.delete_conversation(conversation["id"])
    storage.set_item = original_set_item

    assert result["success"] is False
    assert offline.get_conversation(conversation["id"])["success"] is True
    assert [m["content"] for m in offline.get_messages(conversation["id"])["messages"]] == ["still here"]


def test_corrupt_local_records_do_not_raise(offline):
    offline.storage.set_json("agrichat_conversations", [{"title": "no id"}, "junk"])

    for result in (offline.get_stats(), offline.get_conversation_stats(1)):
        assert result["source"] == "local"
        assert isinstance(result["success"], bool)


def test_search_query_with_slash_keeps_it_encoded():
    session = _session()
    session.request.return_value = _response(
        200, {"success": True, "data": [], "query": "kg/ha", "count": 0}
    )
    client = _client(session)

    client.search_conversations("kg/ha")
    assert session.request.call_args.args[1] == f"{BASE}/conversations/search/kg%2Fha"
