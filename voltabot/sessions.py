"""Planner sessions, recurring schedules and topic-to-agent bindings."""

from __future__ import annotations

import json
from dataclasses import dataclass
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
class PlannerSession:
    """A planner agent session attached to a Telegram topic."""

    id: str = ""
    topic_id: int = 0
    project_id: Optional[str] = None
    tmux_window: Optional[str] = None
    status: str = ""
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    created_at: datetime = ZERO_TIME

    def to_dict(self) -> dict:
        """Return the JSON form of the session; unset optional fields are left out."""
        data: dict[str, Any] = {"id": self.id, "topic_id": self.topic_id}
        _put_optional(data, "project_id", self.project_id)
        _put_optional(data, "tmux_window", self.tmux_window)
        data["status"] = self.status
        _put_optional(data, "started_at", self.started_at)
        _put_optional(data, "stopped_at", self.stopped_at)
        data["created_at"] = format_time(self.created_at)
        return data

    def to_json(self) -> str:
        """Return the session as compact JSON."""
        return _dumps(self.to_dict())


@dataclass
class Schedule:
    """A recurring job that creates tasks from a template on a cron schedule.

    The template is kept as decoded JSON; None is written as null.
    """

    id: str = ""
    name: str = ""
    description: Optional[str] = None
    cron: str = ""
    template: Any = None
    project_id: Optional[str] = None
    enabled: bool = False
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    created_at: datetime = ZERO_TIME

    def to_dict(self) -> dict:
        """Return the JSON form of the schedule; unset optional fields are left out."""
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        _put_optional(data, "description", self.description)
        data["cron"] = self.cron
        data["template"] = self.template
        _put_optional(data, "project_id", self.project_id)
        data["enabled"] = self.enabled
        _put_optional(data, "last_run", self.last_run)
        _put_optional(data, "next_run", self.next_run)
        data["created_at"] = format_time(self.created_at)
        return data

    def to_json(self) -> str:
        """Return the schedule as compact JSON."""
        return _dumps(self.to_dict())


@dataclass
class TopicAgentBinding:
    """A Telegram topic observing an agent."""

    topic_id: int = 0
    agent_id: str = ""
    binding_type: str = "observe"
    created_at: datetime = ZERO_TIME

    def to_dict(self) -> dict:
        """Return the JSON form of the binding."""
        return {
            "topic_id": self.topic_id,
            "agent_id": self.agent_id,
            "binding_type": self.binding_type,
            "created_at": format_time(self.created_at),
        }

    def to_json(self) -> str:
        """Return the binding as compact JSON."""
        return _dumps(self.to_dict())