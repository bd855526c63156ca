"""Tests for session events and metrics."""

import pytest

from script_resume.monitoring import EventFactory, EventType, SessionMonitor, StageTimer


def test_monitor_counts_and_dispatches():
    """Test metrics and handler dispatch."""
    monitor = SessionMonitor()
    received = []
    monitor.register_handler(EventType.CHECKPOINT_SAVED, received.append)

    monitor.emit(EventFactory.stage(EventType.STAGE_SKIPPED, "/job.py", "/job.py:3", 0))
    monitor.emit(EventFactory.checkpoint_saved("/job.py", "/job.py:7", "/job.py.resume.json"))

    assert monitor.metrics["skipped"] == 1
    assert monitor.metrics["checkpoints"] == 1
    assert [event.data["stage"] for event in received] == ["/job.py:7"]
    assert "1 skipped" in monitor.summary()


def test_handler_errors_do_not_propagate(caplog):
    """Test that a failing handler is logged and ignored."""
    monitor = SessionMonitor()

    def broken(event):
        raise RuntimeError("handler bug")

    monitor.register_handler(EventType.SESSION_STARTED, broken)
    with caplog.at_level("ERROR"):
        monitor.emit(EventFactory.session_started("/job.py", "abc", 2))

    assert "handler bug" in caplog.text
    assert len(monitor.events) == 1


def test_stage_timer_success():
    """Test events around a successful stage."""
    monitor = SessionMonitor()

    with StageTimer(monitor, "/job.py", "/job.py:3", 0) as timer:
        pass

    types = [event.event_type for event in monitor.events]
    assert types == [EventType.STAGE_STARTED, EventType.STAGE_COMPLETED]
    assert timer.duration_ms is not None
    assert monitor.metrics["executed"] == 1


def test_stage_timer_failure():
    """Test events around a failing stage."""
    monitor = SessionMonitor()

    with pytest.raises(KeyError):
        with StageTimer(monitor, "/job.py", "/job.py:3", 0):
            raise KeyError("missing")

    failed = monitor.events_of(EventType.STAGE_FAILED)[0]
    assert failed.data["error"].startswith("KeyError")
    assert monitor.metrics["failed"] == 1


def test_event_to_dict():
    """Test event serialization."""
    event = EventFactory.checkpoint_cleared("/job.py", existed=True)
    payload = event.to_dict()

    assert payload["event_type"] == "checkpoint_cleared"
    assert payload["script_path"] == "/job.py"
    assert payload["data"] == {"existed": True}
