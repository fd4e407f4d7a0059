"""Tests for the audit trail and guarded error handling."""

import pytest
from fastapi import HTTPException

from tictactoe.audit import MAX_LOGS, AuditLog
from tictactoe.errors import AppError, safe_guard


def test_event_defaults():
    audit = AuditLog()
    event = audit.log_event("START", before=None, after={"board": []})
    assert event["userId"] == "anonymous"
    assert event["timestamp"]
    assert "metadata" not in event
    assert audit.entries() == [event]


def test_explicit_timestamp_is_kept():
    audit = AuditLog()
    event = audit.log_event(
        "MOVE", None, None, metadata={"index": 4}, timestamp="2024-01-01T00:00:00Z"
    )
    assert event["timestamp"] == "2024-01-01T00:00:00Z"
    assert event["metadata"] == {"index": 4}


def test_ring_buffer_drops_oldest():
    audit = AuditLog()
    for i in range(MAX_LOGS + 5):
        audit.log_event("MOVE", None, None, reason=f"event {i}")
    assert len(audit) == MAX_LOGS
    entries = audit.entries()
    assert entries[0]["reason"] == "event 5"
    assert entries[-1]["reason"] == f"event {MAX_LOGS + 4}"


def test_entries_is_a_copy():
    audit = AuditLog()
    audit.log_event("RESET", None, None)
    audit.entries().clear()
    assert len(audit) == 1
    audit.clear()
    assert len(audit) == 0


def test_safe_guard_returns_value():
    assert safe_guard(lambda: 42) == 42


def test_safe_guard_wraps_unexpected_errors():
    audit = AuditLog()

    def boom():
        raise RuntimeError("disk on fire")

    with pytest.raises(AppError) as info:
        safe_guard(boom, "Could not restart", audit)

    assert info.value.type == "unexpected"
    assert info.value.message == "Could not restart"
    assert isinstance(info.value.__cause__, RuntimeError)
    (event,) = audit.entries()
    assert event["action"] == "ERROR"
    assert event["metadata"] == {"name": "RuntimeError", "message": "disk on fire"}


@pytest.mark.parametrize(
    "error", [AppError("invalid", "nope"), HTTPException(status_code=400, detail="x")]
)
def test_safe_guard_passes_through_known_errors(error):
    audit = AuditLog()

    def fail():
        raise error

    with pytest.raises(type(error)):
        safe_guard(fail, audit=audit)
    assert len(audit) == 0
