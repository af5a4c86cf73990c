"""Forum-topic details pulled out of raw Telegram update JSON."""

from __future__ import annotations

import json
import threading
from typing import Any, Optional, Union


def _as_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected an integer, got {value!r}")
    return value


def _as_object(value: Any) -> Optional[dict]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"expected an object, got {value!r}")
    return value


class ForumCache:
    """Remembers thread IDs, closed-topic events and topic names seen in updates.

    Thread IDs and closed-topic flags are keyed by message ID; topic names are
    keyed by thread ID.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._thread_ids: dict[int, int] = {}
        self._closed: set[int] = set()
        self._topic_names: dict[int, str] = {}

    def extract(self, data: Union[str, bytes]) -> None:
        """Record the forum fields of one raw update; malformed updates are ignored."""
        try:
            raw = _as_object(json.loads(data))
            if raw is None:
                return
            message = _as_object(raw.get("message"))
            callback = _as_object(raw.get("callback_query"))
            callback_message = (
                _as_object(callback.get("message")) if callback is not None else None
            )
            message_fields = self._message_fields(message) if message else None
            callback_fields = (
                self._message_fields(callback_message) if callback_message else None
            )
        except (ValueError, TypeError):
            return

        with self._lock:
            if message_fields is not None:
                message_id, thread_id, closed, topic_name = message_fields
                if thread_id != 0:
                    self._thread_ids[message_id] = thread_id
                if closed:
                    self._closed.add(message_id)
                if thread_id != 0 and topic_name:
                    self._topic_names[thread_id] = topic_name
            if callback_fields is not None:
                message_id, thread_id, _, _ = callback_fields
                if thread_id != 0:
                    self._thread_ids[message_id] = thread_id

    @staticmethod
    def _message_fields(message: dict) -> tuple[int, int, bool, str]:
        message_id = _as_int(message.get("message_id"))
        thread_id = _as_int(message.get("message_thread_id"))
        closed = _as_object(message.get("forum_topic_closed")) is not None
        topic_name = ""
        reply = _as_object(message.get("reply_to_message"))
        if reply is not None:
            created = _as_object(reply.get("forum_topic_created"))
            if created is not None:
                name = created.get("name")
                if name is not None and not isinstance(name, str):
                    raise ValueError(f"expected a string, got {name!r}")
                topic_name = name or ""
        return message_id, thread_id, closed, topic_name

    def thread_id(self, message_id: Optional[int]) -> int:
        """Return the thread ID of a message, or 0 if unknown or None."""
        if message_id is None:
            return 0
        with self._lock:
            return self._thread_ids.get(message_id, 0)

    def is_topic_closed(self, message_id: Optional[int]) -> bool:
        """Return True if the message announced that its topic was closed."""
        if message_id is None:
            return False
        with self._lock:
            return message_id in self._closed

    def topic_name(self, thread_id: int) -> str:
        """Return the cached name of a topic, or "" if unknown."""
        with self._lock:
            return self._topic_names.get(thread_id, "")

    def cleanup(self, keep_above: int) -> None:
        """Forget message-keyed entries whose message ID is below keep_above."""
        with self._lock:
            self._thread_ids = {
                mid: tid for mid, tid in self._thread_ids.items() if mid >= keep_above
            }
            self._closed = {mid for mid in self._closed if mid >= keep_above}