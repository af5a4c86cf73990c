import os
from pathlib import Path

import pytest

from voltabot.config import Config, ConfigError, expand_home, load, parse_int_list

_KEYS = [
    "TELEGRAM_BOT_TOKEN",
    "ALLOWED_USERS",
    "ALLOWED_GROUPS",
    "VOLTA_DIR",
    "TMUX_SESSION_NAME",
    "CLAUDE_COMMAND",
    "VOLTA_BIN",
    "MONITOR_POLL_INTERVAL",
    "DATABASE_URL",
    "VOLTA_SCRIPTS_DIR",
    "VOLTA_QUEUE_TOPIC_ID",
    "VOLTA_APPROVALS_TOPIC_ID",
    "VOLTA_DEFAULT_PROJECT",
    "VOLTA_PLANNER_PROMPT",
    "VOLTA_DEFAULT_RUNNER",
]


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    saved = dict(os.environ)
    for key in _KEYS:
        os.environ.pop(key, None)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def base_env(clean_env):
    os.environ["TELEGRAM_BOT_TOKEN"] = "token"
    os.environ["ALLOWED_USERS"] = "1, 2"
    os.environ["VOLTA_DIR"] = str(clean_env / "volta")
    return clean_env


def test_parse_int_list_values():
    assert parse_int_list("1, 2,3") == [1, 2, 3]


def test_parse_int_list_skips_blanks():
    assert parse_int_list(" , 7 ,, ") == [7]


def test_parse_int_list_negative():
    assert parse_int_list("-100") == [-100]


@pytest.mark.parametrize("text", ["", " , ", "abc", "1,x", "1_000", "1.5"])
def test_parse_int_list_errors(text):
    with pytest.raises(ConfigError):
        parse_int_list(text)


def test_expand_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert expand_home("~/data") == str(tmp_path / "data")


def test_expand_home_untouched():
    assert expand_home("/abs/path") == "/abs/path"
    assert expand_home("~other") == "~other"


def test_load_defaults(base_env):
    cfg = load()
    assert cfg.telegram_bot_token == "token"
    assert cfg.allowed_users == [1, 2]
    assert cfg.allowed_groups == []
    assert cfg.tmux_session_name == "volta"
    assert cfg.claude_command == "claude"
    assert cfg.volta_bin == "volta"
    assert cfg.default_runner == "claude"
    assert cfg.monitor_poll_interval == 2.0
    assert cfg.queue_topic_id == 0
    assert cfg.database_url == ""
    assert Path(cfg.volta_dir).is_dir()


def test_load_missing_token(clean_env):
    os.environ["ALLOWED_USERS"] = "1"
    with pytest.raises(ConfigError, match="TELEGRAM_BOT_TOKEN"):
        load()


def test_load_missing_users(clean_env):
    os.environ["TELEGRAM_BOT_TOKEN"] = "token"
    with pytest.raises(ConfigError, match="ALLOWED_USERS"):
        load()


def test_load_invalid_users(base_env):
    os.environ["ALLOWED_USERS"] = "abc"
    with pytest.raises(ConfigError, match="invalid ALLOWED_USERS"):
        load()


def test_load_invalid_groups(base_env):
    os.environ["ALLOWED_GROUPS"] = "x"
    with pytest.raises(ConfigError, match="invalid ALLOWED_GROUPS"):
        load()


def test_load_invalid_poll_interval(base_env):
    os.environ["MONITOR_POLL_INTERVAL"] = "fast"
    with pytest.raises(ConfigError, match="MONITOR_POLL_INTERVAL"):
        load()


def test_load_overrides(base_env):
    os.environ["ALLOWED_GROUPS"] = "-5"
    os.environ["TMUX_SESSION_NAME"] = "sess"
    os.environ["MONITOR_POLL_INTERVAL"] = "0.5"
    os.environ["VOLTA_QUEUE_TOPIC_ID"] = "42"
    os.environ["VOLTA_APPROVALS_TOPIC_ID"] = "not-a-number"
    os.environ["VOLTA_DEFAULT_RUNNER"] = "opencode"
    cfg = load()
    assert cfg.allowed_groups == [-5]
    assert cfg.tmux_session_name == "sess"
    assert cfg.monitor_poll_interval == 0.5
    assert cfg.queue_topic_id == 42
    assert cfg.approvals_topic_id == 0
    assert cfg.default_runner == "opencode"


def test_load_from_env_file(clean_env):
    env_file = clean_env / "custom.env"
    env_file.write_text(
        "TELEGRAM_BOT_TOKEN=token\n"
        "ALLOWED_USERS=9\n"
        f"VOLTA_DIR={clean_env / 'state'}\n"
    )
    cfg = load(str(env_file))
    assert cfg.allowed_users == [9]
    assert cfg.volta_dir == str(clean_env / "state")


def test_env_file_does_not_override_environment(base_env):
    env_file = base_env / "custom.env"
    env_file.write_text("ALLOWED_USERS=9\n")
    cfg = load(str(env_file))
    assert cfg.allowed_users == [1, 2]


def test_load_expands_home(base_env, monkeypatch):
    monkeypatch.setenv("HOME", str(base_env))
    os.environ["VOLTA_DIR"] = "~/vd"
    cfg = load()
    assert cfg.volta_dir == str(base_env / "vd")
    assert (base_env / "vd").is_dir()


def test_is_allowed_user():
    cfg = Config(telegram_bot_token="token", allowed_users=[10, 20])
    assert cfg.is_allowed_user(10)
    assert not cfg.is_allowed_user(30)


def test_is_allowed_group():
    open_cfg = Config(telegram_bot_token="token", allowed_users=[1])
    assert open_cfg.is_allowed_group(-99)
    cfg = Config(telegram_bot_token="token", allowed_users=[1], allowed_groups=[-5])
    assert cfg.is_allowed_group(-5)
    assert not cfg.is_allowed_group(-6)