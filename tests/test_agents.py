import json
from datetime import datetime, timezone

from voltabot.agents import Agent, MergeQueueEntry


def _now():
    return datetime.now(timezone.utc)


def test_agent_json_required_fields():
    agent = Agent(
        id="agent-1",
        tmux_session="minuano",
        tmux_window="agent-1",
        status="idle",
        started_at=_now(),
    )
    s = agent.to_json()
    for f in ['"id"', '"tmux_session"', '"tmux_window"', '"status"', '"started_at"']:
        assert f in s


def test_agent_json_omits_unset_worktree_fields():
    agent = Agent(
        id="agent-1",
        tmux_session="minuano",
        tmux_window="agent-1",
        status="idle",
        started_at=_now(),
    )
    s = agent.to_json()
    for f in ['"worktree_dir"', '"branch"']:
        assert f not in s


def test_agent_json_includes_worktree_fields_when_set():
    agent = Agent(
        id="agent-2",
        tmux_session="minuano",
        tmux_window="agent-2",
        status="idle",
        started_at=_now(),
        worktree_dir="/tmp/worktree",
        branch="minuano/agent-1",
    )
    data = json.loads(agent.to_json())
    assert data["worktree_dir"] == "/tmp/worktree"
    assert data["branch"] == "minuano/agent-1"


def test_agent_to_dict_key_order_and_values():
    agent = Agent(
        id="a",
        tmux_session="s",
        tmux_window="w",
        task_id="t-1",
        status="working",
        started_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        runner_type="claude",
        role="executor",
    )
    data = agent.to_dict()
    assert list(data) == [
        "id",
        "tmux_session",
        "tmux_window",
        "task_id",
        "status",
        "started_at",
        "runner_type",
        "role",
    ]
    assert data["started_at"] == "2024-01-02T03:04:05Z"
    assert data["task_id"] == "t-1"


def test_agent_zero_started_at():
    data = Agent(id="a").to_dict()
    assert data["started_at"] == "0001-01-01T00:00:00Z"
    assert "last_seen" not in data
    assert "runner_config" not in data


def test_merge_entry_omits_optional_fields():
    entry = MergeQueueEntry(
        id=7,
        task_id="t",
        agent_id="a",
        branch="b",
        worktree_dir="/w",
        base_branch="main",
        status="pending",
        enqueued_at=datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
    )
    data = entry.to_dict()
    for key in ["commit_sha", "merge_sha", "conflict_files", "error_msg",
                "started_at", "completed_at"]:
        assert key not in data
    assert data["enqueued_at"] == "2024-05-06T07:08:09Z"
    assert data["id"] == 7


def test_merge_entry_includes_conflicts_and_times():
    entry = MergeQueueEntry(
        id=1,
        status="conflict",
        conflict_files=["a.go", "b.go"],
        error_msg="boom",
        started_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        completed_at=datetime(2024, 1, 1, 0, 0, 1, tzinfo=timezone.utc),
    )
    data = json.loads(entry.to_json())
    assert data["conflict_files"] == ["a.go", "b.go"]
    assert data["error_msg"] == "boom"
    assert data["started_at"] == "2024-01-01T00:00:00Z"
    assert data["completed_at"] == "2024-01-01T00:00:01Z"


def test_merge_entry_json_is_compact():
    entry = MergeQueueEntry(id=3, task_id="t")
    assert entry.to_json().startswith('{"id":3,"task_id":"t",')