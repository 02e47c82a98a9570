"""Persistence façade for the chat frontend.

Every operation goes to the AgriChat API while it is reachable and falls back
to `LocalStorage` otherwise. Results are plain dicts that always carry
`success` and `source` (`"remote"` or `"local"`); no public method raises.
"""
import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests
import structlog
from requests.exceptions import RequestException

from api.shared.utils import normalize_title
from client.local_storage import LocalStorage, LocalStorageError
from core.constants import (
    LOCAL_CONVERSATIONS_KEY,
    LOCAL_MESSAGES_KEY_PREFIX,
    MAX_MESSAGE_LENGTH,
    MAX_TITLE_LENGTH,
    MESSAGE_TYPES,
)
from core.settings import ClientSettings

logger = structlog.get_logger("agrichat.client")

Result = Dict[str, Any]

REMOTE = "remote"
LOCAL = "local"


class RemoteCallError(Exception):
    """A call to the API did not produce a successful envelope."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500


class ClientValidationError(ValueError):
    """Input rejected before it reaches either store."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _local_id() -> float:
    return time.time() * 1000 + random.random()


def _same_id(a: Any, b: Any) -> bool:
    return str(a) == str(b)


def _validate_content(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ClientValidationError("Content must be a non-empty string")
    content = content.strip()
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ClientValidationError(
            f"Content must be at most {MAX_MESSAGE_LENGTH} characters"
        )
    return content


def _validate_type(message_type: Any) -> str:
    if message_type not in MESSAGE_TYPES:
        raise ClientValidationError("Type must be one of: user, ai, error")
    return message_type


def _validate_title(title: Any) -> str:
    if title is not None and not isinstance(title, str):
        raise ClientValidationError("Title must be a string")
    if title is not None and len(title) > MAX_TITLE_LENGTH:
        raise ClientValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
    return normalize_title(title)


def _validate_query(query: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ClientValidationError("Search query is required")
    return query.strip()


def _avg(values: List[int]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _length(message: Dict[str, Any]) -> int:
    return len(message.get("content") or "")


class PersistenceClient:
    """Remote-first conversation store with a local fallback.

    The backend is probed once on construction. A transport error or 5xx
    response demotes the client to local mode for the rest of the session
    (unless `demote_on_failure` is off); a 4xx response only sends that one
    call to the local store. `check_connection()` probes again.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        session: Optional[requests.Session] = None,
        storage: Optional[LocalStorage] = None,
        probe: bool = True,
    ):
        self.settings = settings or ClientSettings()
        self.base_url = self.settings.API_BASE_URL.rstrip("/")
        self.timeout = self.settings.REQUEST_TIMEOUT
        self.demote_on_failure = self.settings.DEMOTE_ON_FAILURE
        self.session = session or requests.Session()
        self.storage = storage or LocalStorage(
            self.settings.LOCAL_STORAGE_PATH,
            quota_bytes=self.settings.LOCAL_STORAGE_QUOTA_BYTES,
        )
        self.current_conversation_id: Any = None
        self.connected = False
        if probe:
            self.check_connection()

    # ===== connection =====

    def check_connection(self) -> bool:
        """Probe the health endpoint and cache the outcome."""
        url = f"{self.base_url}{self.settings.HEALTH_ENDPOINT}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            self.connected = response.ok
        except RequestException as e:
            logger.warning("backend.unavailable", url=url, error=str(e))
            self.connected = False
        if self.connected:
            logger.info("backend.connected", url=self.base_url)
        else:
            logger.warning("backend.fallback.local", url=self.base_url)
        return self.connected

    def is_backend_available(self) -> bool:
        return self.connected

    # ===== plumbing =====

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, json=json, params=params, timeout=self.timeout
            )
        except RequestException as e:
            raise RemoteCallError(f"{method} {path} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.ok:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise RemoteCallError(
                error or f"HTTP {response.status_code}", status_code=response.status_code
            )
        if not isinstance(payload, dict) or not payload.get("success", False):
            raise RemoteCallError(f"{method} {path} returned an invalid envelope")
        return payload

    def _run(
        self,
        operation: str,
        remote: Callable[[], Result],
        local: Callable[[], Result],
    ) -> Result:
        if self.connected:
            try:
                result = remote()
                result.setdefault("success", True)
                result["source"] = REMOTE
                return result
            except RemoteCallError as e:
                if not e.is_client_error and self.demote_on_failure:
                    self.connected = False
                logger.warning(
                    "remote.call.failed",
                    operation=operation,
                    status_code=e.status_code,
                    error=str(e),
                    demoted=not self.connected,
                )
        return self._run_local(operation, local)

    def _run_local(self, operation: str, local: Callable[[], Result]) -> Result:
        try:
            result = local()
        except LocalStorageError as e:
            logger.error("local.call.failed", operation=operation, error=str(e))
            return {"success": False, "error": str(e), "source": LOCAL}
        except (KeyError, TypeError, AttributeError) as e:
            logger.error("local.record.invalid", operation=operation, error=repr(e))
            return {"success": False, "error": "Local data is corrupt", "source": LOCAL}
        result.setdefault("success", True)
        result["source"] = LOCAL
        return result

    @staticmethod
    def _rejected(error: ClientValidationError) -> Result:
        return {"success": False, "error": str(error), "source": LOCAL}

    @staticmethod
    def _missing(resource: str) -> Result:
        return {"success": False, "error": f"{resource} not found"}

    # ===== local records =====

    def _messages_key(self, conversation_id: Any) -> str:
        return f"{LOCAL_MESSAGES_KEY_PREFIX}{conversation_id}"

    def _load_conversations(self) -> List[Dict[str, Any]]:
        return self.storage.get_json(LOCAL_CONVERSATIONS_KEY, default=[]) or []

    def _save_conversations(self, conversations: List[Dict[str, Any]]) -> None:
        self.storage.set_json(LOCAL_CONVERSATIONS_KEY, conversations)

    def _load_messages(self, conversation_id: Any) -> List[Dict[str, Any]]:
        return self.storage.get_json(self._messages_key(conversation_id), default=[]) or []

    def _save_messages(self, conversation_id: Any, messages: List[Dict[str, Any]]) -> None:
        self.storage.set_json(self._messages_key(conversation_id), messages)

    def _write_messages_then(
        self,
        conversation_id: Any,
        messages: Optional[List[Dict[str, Any]]],
        write_conversations: Callable[[], None],
    ) -> None:
        """Store `messages` (or drop the key when None), then `write_conversations`.

        If the second write fails the message key is put back as it was.
        """
        key = self._messages_key(conversation_id)
        previous = self.storage.get_item(key)
        if messages is None:
            self.storage.remove_item(key)
        else:
            self._save_messages(conversation_id, messages)
        try:
            write_conversations()
        except LocalStorageError:
            if previous is None:
                self.storage.remove_item(key)
            else:
                self.storage.set_item(key, previous)
            raise

    @staticmethod
    def _find(records: List[Dict[str, Any]], record_id: Any) -> Optional[Dict[str, Any]]:
        return next((r for r in records if _same_id(r.get("id"), record_id)), None)

    def _refresh_aggregates(
        self, conversation: Dict[str, Any], messages: List[Dict[str, Any]]
    ) -> None:
        conversation["message_count"] = len(messages)
        conversation["last_message_time"] = max(
            (m["timestamp"] for m in messages if m.get("timestamp")), default=None
        )

    @staticmethod
    def _by_recency(conversations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        # ISO-8601 UTC strings sort chronologically
        return sorted(
            conversations,
            key=lambda c: (c.get("updated_at") or "", str(c.get("id"))),
            reverse=True,
        )

    def _local_conversation_stats(
        self, conversations: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        messages = [m for c in conversations for m in self._load_messages(c.get("id"))]
        by_type = {t: [m for m in messages if m.get("type") == t] for t in MESSAGE_TYPES}
        return {
            "total_conversations": len(conversations),
            "total_messages": len(messages),
            "user_messages": len(by_type["user"]),
            "ai_messages": len(by_type["ai"]),
            "error_messages": len(by_type["error"]),
            "avg_user_message_length": _avg([_length(m) for m in by_type["user"]]),
            "avg_ai_message_length": _avg([_length(m) for m in by_type["ai"]]),
        }

    @staticmethod
    def _local_message_stats(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        timestamps = [m["timestamp"] for m in messages if m.get("timestamp")]
        return {
            "total_messages": len(messages),
            "user_messages": sum(1 for m in messages if m.get("type") == "user"),
            "ai_messages": sum(1 for m in messages if m.get("type") == "ai"),
            "error_messages": sum(1 for m in messages if m.get("type") == "error"),
            "avg_message_length": _avg([_length(m) for m in messages]),
            "first_message_time": min(timestamps, default=None),
            "last_message_time": max(timestamps, default=None),
        }

    # ===== conversations =====

    def create_conversation(self, title: Optional[str] = None) -> Result:
        try:
            title = _validate_title(title)
        except ClientValidationError as e:
            return self._rejected(e)

        def remote() -> Result:
            payload = self._request("POST", "/conversations", json={"title": title})
            return {"conversation": payload.get("data")}

        def local() -> Result:
            now = _now()
            conversation = {
                "id": _local_id(),
                "user_id": None,
                "title": title,
                "created_at": now,
                "updated_at": now,
                "message_count": 0,
                "last_message_time": None,
            }
            conversations = self._load_conversations()
            conversations.insert(0, conversation)
            self._save_conversations(conversations)
            return {"conversation": conversation}

        result = self._run("create_conversation", remote, local)
        if result["success"] and result.get("conversation"):
            self.current_conversation_id = result["conversation"].get("id")
        return result

    def get_conversations(self, limit: int = 50, offset: int = 0) -> Result:
        def remote() -> Result:
            payload = self._request(
                "GET", "/conversations", params={"limit": limit, "offset": offset}
            )
            return {"conversations": payload.get("data"), "pagination": payload.get("pagination")}

        def local() -> Result:
            page = self._by_recency(self._load_conversations())[offset:offset + limit]
            return {
                "conversations": page,
                "pagination": {"limit": limit, "offset": offset, "count": len(page)},
            }

        return self._run("get_conversations", remote, local)

    def get_conversation(self, conversation_id: Any) -> Result:
        def remote() -> Result:
            payload = self._request("GET", f"/conversations/{conversation_id}")
            return {"conversation": payload.get("data")}

        def local() -> Result:
            conversation = self._find(self._load_conversations(), conversation_id)
            if conversation is None:
                return self._missing("Conversation")
            return {"conversation": conversation}

        return self._run("get_conversation", remote, local)

    def update_conversation_title(self, conversation_id: Any, title: Optional[str]) -> Result:
        try:
            title = _validate_title(title)
        except ClientValidationError as e:
            return self._rejected(e)

        def remote() -> Result:
            payload = self._request(
                "PUT", f"/conversations/{conversation_id}", json={"title": title}
            )
            return {"conversation": payload.get("data")}

        def local() -> Result:
            conversations = self._load_conversations()
            conversation = self._find(conversations, conversation_id)
            if conversation is None:
                return self._missing("Conversation")
            conversation["title"] = title
            conversation["updated_at"] = _now()
            self._save_conversations(conversations)
            return {"conversation": conversation}

        return self._run("update_conversation_title", remote, local)

    def delete_conversation(self, conversation_id: Any) -> Result:
        def remote() -> Result:
            self._request("DELETE", f"/conversations/{conversation_id}")
            return {}

        def local() -> Result:
            conversations = self._load_conversations()
            remaining = [c for c in conversations if not _same_id(c.get("id"), conversation_id)]
            if len(remaining) == len(conversations):
                return self._missing("Conversation")
            self._write_messages_then(
                conversation_id, None, lambda: self._save_conversations(remaining)
            )
            return {}

        result = self._run("delete_conversation", remote, local)
        if result["success"] and _same_id(self.current_conversation_id, conversation_id):
            self.current_conversation_id = None
        return result

    def search_conversations(self, query: str, limit: int = 20) -> Result:
        try:
            query = _validate_query(query)
        except ClientValidationError as e:
            return self._rejected(e)

        def remote() -> Result:
            payload = self._request(
                "GET",
                f"/conversations/search/{quote(query, safe='')}",
                params={"limit": limit},
            )
            return {
                "conversations": payload.get("data"),
                "query": payload.get("query", query),
                "count": payload.get("count", len(payload.get("data") or [])),
            }

        def local() -> Result:
            needle = query.lower()
            matches = [
                c
                for c in self._by_recency(self._load_conversations())
                if needle in (c.get("title") or "").lower()
                or any(
                    needle in m.get("content", "").lower()
                    for m in self._load_messages(c.get("id"))
                )
            ][:limit]
            return {"conversations": matches, "query": query, "count": len(matches)}

        return self._run("search_conversations", remote, local)

    # ===== messages =====

    def add_message(self, conversation_id: Any, content: str, type: str) -> Result:
        try:
            content = _validate_content(content)
            message_type = _validate_type(type)
        except ClientValidationError as e:
            return self._rejected(e)

        def remote() -> Result:
            payload = self._request(
                "POST",
                f"/conversations/{conversation_id}/messages",
                json={"content": content, "type": message_type},
            )
            return {"message": payload.get("data")}

        def local() -> Result:
            message = {
                "id": _local_id(),
                "conversation_id": conversation_id,
                "content": content,
                "type": message_type,
                "timestamp": _now(),
            }
            messages = self._load_messages(conversation_id)
            messages.append(message)

            # Messages for a conversation only the server knows about are kept too
            conversations = self._load_conversations()
            conversation = self._find(conversations, conversation_id)

            def write_conversations() -> None:
                if conversation is not None:
                    conversation["updated_at"] = message["timestamp"]
                    self._refresh_aggregates(conversation, messages)
                    self._save_conversations(conversations)

            self._write_messages_then(conversation_id, messages, write_conversations)
            return {"message": message}

        return self._run("add_message", remote, local)

    def get_messages(self, conversation_id: Any, limit: int = 100, offset: int = 0) -> Result:
        def remote() -> Result:
            payload = self._request(
                "GET",
                f"/conversations/{conversation_id}/messages",
                params={"limit": limit, "offset": offset},
            )
            return {"messages": payload.get("data"), "pagination": payload.get("pagination")}

        def local() -> Result:
            page = self._load_messages(conversation_id)[offset:offset + limit]
            return {
                "messages": page,
                "pagination": {"limit": limit, "offset": offset, "count": len(page)},
            }

        return self._run("get_messages", remote, local)

    def get_recent_messages(self, conversation_id: Any, count: int = 50) -> Result:
        def remote() -> Result:
            payload = self._request(
                "GET",
                f"/conversations/{conversation_id}/messages/recent",
                params={"count": count},
            )
            return {"messages": payload.get("data"), "count": payload.get("count")}

        def local() -> Result:
            messages = self._load_messages(conversation_id)
            recent = messages[-count:] if count > 0 else []
            return {"messages": recent, "count": len(recent)}

        return self._run("get_recent_messages", remote, local)

    def update_message(self, conversation_id: Any, message_id: Any, content: str) -> Result:
        try:
            content = _validate_content(content)
        except ClientValidationError as e:
            return self._rejected(e)

        def remote() -> Result:
            payload = self._request("PUT", f"/messages/{message_id}", json={"content": content})
            return {"message": payload.get("data")}

        def local() -> Result:
            messages = self._load_messages(conversation_id)
            message = self._find(messages, message_id)
            if message is None:
                return self._missing("Message")
            message["content"] = content
            self._save_messages(conversation_id, messages)
            return {"message": message}

        return self._run("update_message", remote, local)

    def delete_message(self, conversation_id: Any, message_id: Any) -> Result:
        def remote() -> Result:
            self._request("DELETE", f"/messages/{message_id}")
            return {}

        def local() -> Result:
            messages = self._load_messages(conversation_id)
            remaining = [m for m in messages if not _same_id(m.get("id"), message_id)]
            if len(remaining) == len(messages):
                return self._missing("Message")
            conversations = self._load_conversations()
            conversation = self._find(conversations, conversation_id)

            def write_conversations() -> None:
                if conversation is not None:
                    self._refresh_aggregates(conversation, remaining)
                    self._save_conversations(conversations)

            self._write_messages_then(conversation_id, remaining, write_conversations)
            return {}

        return self._run("delete_message", remote, local)

    # ===== stats =====

    def get_conversation_stats(self, conversation_id: Any) -> Result:
        def remote() -> Result:
            payload = self._request("GET", f"/conversations/{conversation_id}/stats")
            return {"stats": payload.get("data")}

        def local() -> Result:
            conversation = self._find(self._load_conversations(), conversation_id)
            if conversation is None:
                return self._missing("Conversation")
            messages = self._load_messages(conversation_id)
            return {
                "stats": {
                    "conversation": self._local_conversation_stats([conversation]),
                    "messages": self._local_message_stats(messages),
                }
            }

        return self._run("get_conversation_stats", remote, local)

    def get_stats(self) -> Result:
        def remote() -> Result:
            payload = self._request("GET", "/stats")
            return {"stats": payload.get("data")}

        def local() -> Result:
            conversations = self._load_conversations()
            messages = [m for c in conversations for m in self._load_messages(c.get("id"))]
            return {
                "stats": {
                    "conversations": self._local_conversation_stats(conversations),
                    "messages": self._local_message_stats(messages),
                }
            }

        return self._run("get_stats", remote, local)

    # ===== session state =====

    def set_current_conversation(self, conversation_id: Any) -> None:
        self.current_conversation_id = conversation_id

    def get_current_conversation(self) -> Any:
        return self.current_conversation_id

    def clear_local_data(self) -> Result:
        """Drop every locally stored conversation and message list."""

        def local() -> Result:
            for key in self.storage.keys():
                if key == LOCAL_CONVERSATIONS_KEY or key.startswith(LOCAL_MESSAGES_KEY_PREFIX):
                    self.storage.remove_item(key)
            return {}

        return self._run_local("clear_local_data", local)
