"""Runtime configuration loaded from the environment and optional .env files."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ConfigError(ValueError):
    """Raised when the configuration is missing or invalid."""


@dataclass
class Config:
    """Settings for the bot, its tmux session and its helpers."""

    telegram_bot_token: str
    allowed_users: list[int]
    allowed_groups: list[int] = field(default_factory=list)
    queue_topic_id: int = 0
    approvals_topic_id: int = 0
    volta_dir: str = ""
    tmux_session_name: str = "volta"
    claude_command: str = "claude"
    monitor_poll_interval: float = 2.0
    volta_bin: str = "volta"
    database_url: str = ""
    scripts_dir: str = ""
    default_project: str = ""
    planner_prompt_path: str = ""
    default_runner: str = "claude"

    def is_allowed_user(self, user_id: int) -> bool:
        """Return True if the user is on the allow list."""
        return user_id in self.allowed_users

    def is_allowed_group(self, group_id: int) -> bool:
        """Return True if the group is allowed; an empty list allows every group."""
        if not self.allowed_groups:
            return True
        return group_id in self.allowed_groups


def _parse_int64(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid syntax: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"value out of range: {text!r}")
    return value


def parse_int_list(s: str) -> list[int]:
    """Parse a comma-separated list of integers, skipping blank entries."""
    result = []
    for part in s.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            result.append(_parse_int64(part))
        except ValueError as exc:
            raise ConfigError(f"parsing {part!r}: {exc}") from exc
    if not result:
        raise ConfigError("empty list")
    return result


def expand_home(path: str) -> str:
    """Replace a leading "~/" with the user's home directory."""
    if path.startswith("~/"):
        try:
            home = Path.home()
        except RuntimeError:
            return path
        return str(home / path[2:])
    return path


def _optional_int(name: str) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return 0
    try:
        return _parse_int64(raw)
    except ValueError:
        return 0


def load(*args: str) -> Config:
    """Load the configuration from the given .env files, ./.env and the environment."""
    for env_file in args:
        load_dotenv(env_file)
    load_dotenv(".env")

    token = os.environ.get("TELEGRAM_BOT_TOKEN", "")
    if not token:
        raise ConfigError("TELEGRAM_BOT_TOKEN is required")

    users_str = os.environ.get("ALLOWED_USERS", "")
    if not users_str:
        raise ConfigError("ALLOWED_USERS is required")
    try:
        users = parse_int_list(users_str)
    except ConfigError as exc:
        raise ConfigError(f"invalid ALLOWED_USERS: {exc}") from exc

    groups: list[int] = []
    groups_str = os.environ.get("ALLOWED_GROUPS", "")
    if groups_str:
        try:
            groups = parse_int_list(groups_str)
        except ConfigError as exc:
            raise ConfigError(f"invalid ALLOWED_GROUPS: {exc}") from exc

    volta_dir = expand_home(os.environ.get("VOLTA_DIR", "") or "~/.volta")
    try:
        os.makedirs(volta_dir, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"creating volta dir: {exc}") from exc

    poll_interval = 2.0
    poll_str = os.environ.get("MONITOR_POLL_INTERVAL", "")
    if poll_str:
        try:
            poll_interval = float(poll_str)
        except ValueError as exc:
            raise ConfigError(f"invalid MONITOR_POLL_INTERVAL: {exc}") from exc

    return Config(
        telegram_bot_token=token,
        allowed_users=users,
        allowed_groups=groups,
        volta_dir=volta_dir,
        tmux_session_name=os.environ.get("TMUX_SESSION_NAME", "") or "volta",
        claude_command=os.environ.get("CLAUDE_COMMAND", "") or "claude",
        volta_bin=os.environ.get("VOLTA_BIN", "") or "volta",
        monitor_poll_interval=poll_interval,
        database_url=os.environ.get("DATABASE_URL", ""),
        scripts_dir=os.environ.get("VOLTA_SCRIPTS_DIR", ""),
        queue_topic_id=_optional_int("VOLTA_QUEUE_TOPIC_ID"),
        approvals_topic_id=_optional_int("VOLTA_APPROVALS_TOPIC_ID"),
        default_project=os.environ.get("VOLTA_DEFAULT_PROJECT", ""),
        planner_prompt_path=os.environ.get("VOLTA_PLANNER_PROMPT", ""),
        default_runner=os.environ.get("VOLTA_DEFAULT_RUNNER", "") or "claude",
    )