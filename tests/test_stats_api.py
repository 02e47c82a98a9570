"""Aggregate endpoints."""


def test_conversation_stats(client, create_conversation, add_message):
    conversation = create_conversation("Stats")
    add_message(conversation["id"], "abcd", "user")
    add_message(conversation["id"], "ab", "user")
    add_message(conversation["id"], "abcdef", "ai")
    add_message(conversation["id"], "oops", "error")

    response = client.get(f"/api/conversations/{conversation['id']}/stats")
    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["conversation"]["total_conversations"] == 1
    assert stats["conversation"]["total_messages"] == 4
    assert stats["conversation"]["avg_user_message_length"] == 3
    assert stats["conversation"]["avg_ai_message_length"] == 6
    assert stats["messages"]["user_messages"] == 2
    assert stats["messages"]["error_messages"] == 1
    assert stats["messages"]["first_message_time"] is not None


def test_conversation_stats_unknown_id(client):
    assert client.get("/api/conversations/321/stats").status_code == 404


def test_global_stats(client, create_conversation, add_message):
    empty = client.get("/api/stats").json()["data"]
    assert empty["conversations"]["total_conversations"] == 0
    assert empty["messages"]["avg_message_length"] is None

    first = create_conversation()
    create_conversation()
    add_message(first["id"], "hello", "user")
    add_message(first["id"], "hi there", "ai")

    stats = client.get("/api/stats").json()["data"]
    assert stats["conversations"]["total_conversations"] == 2
    assert stats["conversations"]["total_messages"] == 2
    assert stats["messages"]["ai_messages"] == 1


def test_conversation_stats_out_of_range_id(client):
    response = client.get("/api/conversations/99999999999/stats")
    assert response.status_code == 400
    assert response.json()["success"] is False
