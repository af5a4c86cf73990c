"""Task and planner event notifications and their dispatch to handlers."""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

log = logging.getLogger(__name__)

TASK_CHANNEL = "task_events"
PLANNER_CHANNEL = "planner_events"


def _decode(payload: Union[str, bytes]) -> dict:
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("event payload must be a JSON object")
    return data


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


def _number(data: dict, key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r} must be a number, got {value!r}")
    return float(value)


def _int(data: dict, key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class TaskEvent:
    """A change of a task's status."""

    task_id: str = ""
    title: str = ""
    status: str = ""
    old_status: str = ""
    project_id: str = ""
    agent_id: str = ""
    ts: float = 0.0

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> "TaskEvent":
        """Decode a notification payload; raises ValueError if it is malformed."""
        data = _decode(payload)
        return cls(
            task_id=_str(data, "task_id"),
            title=_str(data, "title"),
            status=_str(data, "status"),
            old_status=_str(data, "old_status"),
            project_id=_str(data, "project_id"),
            agent_id=_str(data, "agent_id"),
            ts=_number(data, "ts"),
        )


@dataclass(frozen=True)
class PlannerEvent:
    """A change of a planner session's status."""

    session_id: str = ""
    topic_id: int = 0
    project_id: str = ""
    status: str = ""
    old_status: str = ""

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> "PlannerEvent":
        """Decode a notification payload; raises ValueError if it is malformed."""
        data = _decode(payload)
        return cls(
            session_id=_str(data, "session_id"),
            topic_id=_int(data, "topic_id"),
            project_id=_str(data, "project_id"),
            status=_str(data, "status"),
            old_status=_str(data, "old_status"),
        )


def backoff(attempt: int) -> float:
    """Seconds to wait before reconnect attempt number attempt: its square, 1 to 30."""
    return max(min(float(attempt * attempt), 30.0), 1.0)


class EventListener:
    """Receives notification payloads and queues the decoded events."""

    TASK_QUEUE_SIZE = 64
    PLANNER_QUEUE_SIZE = 16

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.task_events: "queue.Queue[TaskEvent]" = queue.Queue(self.TASK_QUEUE_SIZE)
        self.planner_events: "queue.Queue[PlannerEvent]" = queue.Queue(
            self.PLANNER_QUEUE_SIZE
        )

    def publish(self, channel: str, payload: Union[str, bytes]) -> bool:
        """Decode a payload from channel and queue it.

        Returns False when the payload is malformed, the queue is full or the
        channel is unknown.
        """
        if channel == TASK_CHANNEL:
            try:
                task_event = TaskEvent.from_json(payload)
            except ValueError as exc:
                log.warning("listener: bad task_events payload: %s", exc)
                return False
            try:
                self.task_events.put_nowait(task_event)
            except queue.Full:
                log.warning(
                    "listener: task_events channel full, dropping event for %s",
                    task_event.task_id,
                )
                return False
            return True
        if channel == PLANNER_CHANNEL:
            try:
                planner_event = PlannerEvent.from_json(payload)
            except ValueError as exc:
                log.warning("listener: bad planner_events payload: %s", exc)
                return False
            try:
                self.planner_events.put_nowait(planner_event)
            except queue.Full:
                log.warning(
                    "listener: planner_events channel full, dropping event for %s",
                    planner_event.session_id,
                )
                return False
            return True
        return False


class ApprovalHandler(Protocol):
    def handle_pending_approval(self, event: TaskEvent) -> None: ...


class QueueHandler(Protocol):
    def handle_task_update(self, event: TaskEvent) -> None: ...


class PlannerCrashHandler(Protocol):
    def handle_planner_crash(self, event: PlannerEvent) -> None: ...


class EventRouter:
    """Sends queued events to the handlers that want them; any handler may be None."""

    _POLL_INTERVAL = 0.05

    def __init__(
        self,
        listener: EventListener,
        approval: Optional[ApprovalHandler] = None,
        queue_handler: Optional[QueueHandler] = None,
        crash: Optional[PlannerCrashHandler] = None,
    ):
        self.listener = listener
        self.approval = approval
        self.queue_handler = queue_handler
        self.crash = crash

    def dispatch_task_event(self, event: TaskEvent) -> None:
        """Route a task event: pending approvals to approval, others to the queue handler."""
        if event.status == "pending_approval":
            if self.approval is not None:
                self.approval.handle_pending_approval(event)
            else:
                log.info("router: no approval handler for task %s", event.task_id)
        elif self.queue_handler is not None:
            self.queue_handler.handle_task_update(event)

    def dispatch_planner_event(self, event: PlannerEvent) -> None:
        """Route a planner event; only crashes are handled."""
        if event.status != "crashed":
            return
        if self.crash is not None:
            self.crash.handle_planner_crash(event)
        else:
            log.info("router: no crash handler for planner session %s", event.session_id)

    def run(self, stop_event: threading.Event) -> None:
        """Dispatch queued events until stop_event is set."""
        while not stop_event.is_set():
            handled = False
            item: Any
            try:
                item = self.listener.task_events.get_nowait()
            except queue.Empty:
                pass
            else:
                self.dispatch_task_event(item)
                handled = True
            try:
                item = self.listener.planner_events.get_nowait()
            except queue.Empty:
                pass
            else:
                self.dispatch_planner_event(item)
                handled = True
            if not handled:
                stop_event.wait(self._POLL_INTERVAL)