"""Agent records and merge-queue entries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from voltabot.models import ZERO_TIME, format_time


def _put_optional(data: dict, key: str, value: Any) -> None:
    if value is None:
        return
    data[key] = format_time(value) if isinstance(value, datetime) else value


def _dumps(data: dict) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


@dataclass
class Agent:
    """A running agent instance in a tmux window."""

    id: str = ""
    tmux_session: str = ""
    tmux_window: str = ""
    task_id: Optional[str] = None
    status: str = ""
    started_at: datetime = ZERO_TIME
    last_seen: Optional[datetime] = None
    worktree_dir: Optional[str] = None
    branch: Optional[str] = None
    runner_type: str = ""
    runner_config: Optional[str] = None
    role: str = ""

    def to_dict(self) -> dict:
        """Return the JSON form of the agent; unset optional fields are left out."""
        data: dict[str, Any] = {
            "id": self.id,
            "tmux_session": self.tmux_session,
            "tmux_window": self.tmux_window,
        }
        _put_optional(data, "task_id", self.task_id)
        data["status"] = self.status
        data["started_at"] = format_time(self.started_at)
        _put_optional(data, "last_seen", self.last_seen)
        _put_optional(data, "worktree_dir", self.worktree_dir)
        _put_optional(data, "branch", self.branch)
        data["runner_type"] = self.runner_type
        _put_optional(data, "runner_config", self.runner_config)
        data["role"] = self.role
        return data

    def to_json(self) -> str:
        """Return the agent as compact JSON."""
        return _dumps(self.to_dict())


@dataclass
class MergeQueueEntry:
    """A branch waiting to be merged back into its base branch."""

    id: int = 0
    task_id: str = ""
    agent_id: str = ""
    branch: str = ""
    worktree_dir: str = ""
    base_branch: str = ""
    status: str = ""
    commit_sha: Optional[str] = None
    merge_sha: Optional[str] = None
    conflict_files: list[str] = field(default_factory=list)
    error_msg: Optional[str] = None
    enqueued_at: datetime = ZERO_TIME
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Return the JSON form of the entry; unset optional fields are left out."""
        data: dict[str, Any] = {
            "id": self.id,
            "task_id": self.task_id,
            "agent_id": self.agent_id,
            "branch": self.branch,
            "worktree_dir": self.worktree_dir,
            "base_branch": self.base_branch,
            "status": self.status,
        }
        _put_optional(data, "commit_sha", self.commit_sha)
        _put_optional(data, "merge_sha", self.merge_sha)
        if self.conflict_files:
            data["conflict_files"] = list(self.conflict_files)
        _put_optional(data, "error_msg", self.error_msg)
        data["enqueued_at"] = format_time(self.enqueued_at)
        _put_optional(data, "started_at", self.started_at)
        _put_optional(data, "completed_at", self.completed_at)
        return data

    def to_json(self) -> str:
        """Return the entry as compact JSON."""
        return _dumps(self.to_dict())