import pytest
from conftest import T0, end_entry, snapshot_payload, start_entry
from pydantic import ValidationError

from forge_watch.models.agent import AgentStatus
from forge_watch.models.events import (
    AgentStateUpdate,
    CostUpdate,
    InterruptAcknowledged,
    InterruptFailed,
    ServerErrorEvent,
    TaskDiffUpdate,
    TokenCount,
    ToolLogAppend,
)
from forge_watch.models.task import RemoveTask, TaskStatus
from forge_watch.models.tool_log import ToolLogKind
from forge_watch.transport.codec import (
    decode_event,
    decode_snapshot,
    encode_chat_message,
    encode_interrupt,
    encode_join,
)


def test_agent_state_update():
    event = decode_event("agent_state_update", {
        "sessionId": "s1",
        "agentState": {"status": "tool_running", "activeToolCallId": "t1", "startTime": T0, "statusText": "Running Bash"},
    })
    assert isinstance(event, AgentStateUpdate)
    assert event.session_id == "s1"
    assert event.agent_state.status is AgentStatus.TOOL_RUNNING
    assert event.agent_state.active_tool_call_id == "t1"
    assert event.agent_state.status_text == "Running Bash"


def test_stale_tool_id_is_stripped_from_non_running_state():
    event = decode_event("agent_state_update", {
        "sessionId": "s1",
        "agentState": {"status": "thinking", "activeToolCallId": "t1"},
    })
    assert event.agent_state.active_tool_call_id is None


def test_running_state_without_tool_id_is_dropped():
    assert decode_event("agent_state_update", {"sessionId": "s1", "agentState": {"status": "tool_running"}}) is None


def test_tool_log_append():
    event = decode_event("tool_log_append", {"sessionId": "s1", "logEntry": end_entry("t1", T0, result={"error": "x"})})
    assert isinstance(event, ToolLogAppend)
    assert event.entry.kind is ToolLogKind.END
    assert event.entry.failed


def test_task_diff_update():
    event = decode_event("task_diff_update", {"sessionId": "s1", "type": "remove", "taskId": "t9"})
    assert isinstance(event, TaskDiffUpdate)
    assert event.diff == RemoveTask(task_id="t9")


def test_cost_arrives_as_string():
    event = decode_event("cost_update", {"sessionId": "s1", "totalUSD": "0.0421"})
    assert isinstance(event, CostUpdate)
    assert event.total_usd == pytest.approx(0.0421)


def test_token_count_forms():
    direct = decode_event("token_count", {"sessionId": "s1", "current": 500, "max": 200_000})
    assert isinstance(direct, TokenCount)
    assert (direct.current, direct.max) == (500, 200_000)

    from_accounting = decode_event("token_count", {"sessionId": "s1", "accounting": {"input": 30, "output": 12}})
    assert (from_accounting.current, from_accounting.max) == (42, 1_000_000)


def test_interrupt_and_error_events():
    assert isinstance(decode_event("interrupt_acknowledged", {"sessionId": "s1"}), InterruptAcknowledged)

    failed = decode_event("interrupt_error", {"message": "nothing running"})
    assert isinstance(failed, InterruptFailed)
    assert failed.session_id is None
    assert failed.message == "nothing running"

    error = decode_event("error", {})
    assert isinstance(error, ServerErrorEvent)
    assert error.message == "Unknown error occurred"


@pytest.mark.parametrize("name,raw", [
    ("no_such_event", {"sessionId": "s1"}),
    ("tool_log_append", {"sessionId": "s1"}),
    ("tool_log_append", {"sessionId": "s1", "logEntry": {"type": "TOOL_MIDDLE", "toolCallId": "t1"}}),
    ("task_diff_update", {"sessionId": "s1", "type": "explode"}),
    ("cost_update", {"sessionId": "s1", "totalUSD": "lots"}),
    ("agent_state_update", "not a dict"),
])
def test_unknown_or_malformed_events_are_dropped(name, raw):
    assert decode_event(name, raw) is None


def test_snapshot_from_accounting():
    snap = decode_snapshot(snapshot_payload(
        "s1",
        toolLogs=[start_entry("t1"), {"type": "NOTE", "text": "skip me"}, end_entry("t1", T0 + 5)],
        tasks=[{"id": "a", "title": "First", "status": "in-progress"}, {"id": "b", "description": "Second"}],
        accounting={"totalUSD": "1.5000", "input": 1000, "output": 234},
        agentState=None,
        tasksPinned=True,
    ))
    assert snap.session_id == "s1"
    assert snap.project_id == "p1"
    assert len(snap.tool_log_entries) == 2
    assert [(t.id, t.text, t.status) for t in snap.tasks] == [
        ("a", "First", TaskStatus.IN_PROGRESS),
        ("b", "Second", TaskStatus.PENDING),
    ]
    assert snap.cost.total_usd == 1.5
    assert snap.token_info.current == 1234
    assert snap.agent_state.status is AgentStatus.IDLE
    assert snap.tasks_pinned


def test_snapshot_prefers_explicit_token_info():
    snap = decode_snapshot(snapshot_payload(tokenInfo={"current": 7, "max": 100}))
    assert (snap.token_info.current, snap.token_info.max) == (7, 100)


def test_snapshot_requires_session_id():
    with pytest.raises(ValidationError):
        decode_snapshot({"toolLogs": []})


def test_encoders():
    assert encode_join("p1", "s1") == ("join_session", {"sessionId": "s1", "projectId": "p1"})
    assert encode_interrupt("s1") == ("interrupt_session", {"sessionId": "s1"})
    assert encode_chat_message("s1", "hi") == ("chat_message", {"sessionId": "s1", "content": "hi"})
