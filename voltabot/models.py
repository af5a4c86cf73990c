"""Task records and the dependency tree built from them."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def format_time(value: datetime) -> str:
    """Format a timestamp as RFC 3339 with trailing fractional zeros dropped.

    Naive timestamps are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _put_optional(data: dict, key: str, value: Any) -> None:
    if value is None:
        return
    data[key] = format_time(value) if isinstance(value, datetime) else value


def _dumps(data: dict) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


@dataclass
class Task:
    """A unit of work stored in the tasks table."""

    id: str = ""
    title: str = ""
    body: str = ""
    status: str = ""
    priority: int = 0
    claimed_by: Optional[str] = None
    claimed_at: Optional[datetime] = None
    done_at: Optional[datetime] = None
    created_at: datetime = ZERO_TIME
    attempt: int = 0
    max_attempts: int = 0
    project_id: Optional[str] = None
    metadata: Any = None
    requires_approval: bool = False
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    def to_dict(self) -> dict:
        """Return the JSON form of the task; unset optional fields are left out."""
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "status": self.status,
            "priority": self.priority,
        }
        _put_optional(data, "claimed_by", self.claimed_by)
        _put_optional(data, "claimed_at", self.claimed_at)
        _put_optional(data, "done_at", self.done_at)
        data["created_at"] = format_time(self.created_at)
        data["attempt"] = self.attempt
        data["max_attempts"] = self.max_attempts
        _put_optional(data, "project_id", self.project_id)
        _put_optional(data, "metadata", self.metadata)
        data["requires_approval"] = self.requires_approval
        _put_optional(data, "approved_by", self.approved_by)
        _put_optional(data, "approved_at", self.approved_at)
        _put_optional(data, "rejection_reason", self.rejection_reason)
        return data

    def to_json(self) -> str:
        """Return the task as compact JSON."""
        return _dumps(self.to_dict())


@dataclass
class TaskContext:
    """A persistent context entry attached to a task."""

    id: int = 0
    task_id: str = ""
    agent_id: Optional[str] = None
    kind: str = ""
    content: str = ""
    source_task: Optional[str] = None
    created_at: datetime = ZERO_TIME

    def to_dict(self) -> dict:
        """Return the JSON form of the entry; unset optional fields are left out."""
        data: dict[str, Any] = {"id": self.id, "task_id": self.task_id}
        _put_optional(data, "agent_id", self.agent_id)
        data["kind"] = self.kind
        data["content"] = self.content
        _put_optional(data, "source_task", self.source_task)
        data["created_at"] = format_time(self.created_at)
        return data

    def to_json(self) -> str:
        """Return the entry as compact JSON."""
        return _dumps(self.to_dict())


@dataclass
class TreeNode:
    """A task with the tasks that depend on it."""

    task: Task
    children: list["TreeNode"] = field(default_factory=list)


def build_dependency_tree(
    tasks: Iterable[Task], deps: Iterable[tuple[str, str]]
) -> list[TreeNode]:
    """Build a forest from tasks and (task_id, depends_on) edges.

    A task's children are the listed tasks that depend on it, in edge order.
    Roots are the tasks that depend on nothing, in task order.
    """
    task_list = list(tasks)
    parents: dict[str, list[str]] = {}
    children: dict[str, list[str]] = {}
    for task_id, depends_on in deps:
        parents.setdefault(task_id, []).append(depends_on)
        children.setdefault(depends_on, []).append(task_id)

    nodes = {task.id: TreeNode(task) for task in task_list}

    for task in task_list:
        node = nodes[task.id]
        node.children.extend(
            nodes[child_id] for child_id in children.get(task.id, []) if child_id in nodes
        )

    return [nodes[task.id] for task in task_list if not parents.get(task.id)]