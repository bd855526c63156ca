"""Event definitions for the monitoring system.

This module defines the events that can occur while a script runs under
an execution session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..core.models import utc_now


class EventType(str, Enum):
    """Types of events that can occur during a launch."""

    # Session lifecycle events
    SESSION_STARTED = "session_started"
    SESSION_RESTORED = "session_restored"
    SESSION_FINALIZED = "session_finalized"

    # Stage events
    STAGE_STARTED = "stage_started"
    STAGE_SKIPPED = "stage_skipped"
    STAGE_COMPLETED = "stage_completed"
    STAGE_FAILED = "stage_failed"
    RESTORE_TARGET_REACHED = "restore_target_reached"

    # Checkpoint events
    CHECKPOINT_SAVED = "checkpoint_saved"
    CHECKPOINT_WRITE_FAILED = "checkpoint_write_failed"
    CHECKPOINT_CLEARED = "checkpoint_cleared"

    # Scan events
    NON_RESUMABLE_CODE_FOUND = "non_resumable_code_found"
    SCRIPT_REWRITTEN = "script_rewritten"


@dataclass
class MonitoringEvent:
    """Base monitoring event."""

    script_path: str
    event_type: Optional[EventType] = None
    timestamp: datetime = field(default_factory=utc_now)
    data: Dict[str, Any] = field(default_factory=dict)
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "event_type": self.event_type.value if self.event_type else None,
            "script_path": self.script_path,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "metadata": self.metadata
        }


@dataclass
class StageEvent(MonitoringEvent):
    """Stage-related event."""

    stage: str = ""
    ordinal: Optional[int] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None

    def __post_init__(self):
        self.data.update({
            "stage": self.stage,
            "ordinal": self.ordinal,
            "duration_ms": self.duration_ms,
            "error": self.error
        })


class EventFactory:
    """Factory for creating monitoring events."""

    @staticmethod
    def session_started(script_path: str, script_hash: str, total_stages: int) -> MonitoringEvent:
        """Create session started event."""
        return MonitoringEvent(
            event_type=EventType.SESSION_STARTED,
            script_path=script_path,
            data={"script_hash": script_hash, "total_stages": total_stages}
        )

    @staticmethod
    def session_restored(script_path: str, target_stage: str, shared_keys: int) -> MonitoringEvent:
        """Create session restored event."""
        return MonitoringEvent(
            event_type=EventType.SESSION_RESTORED,
            script_path=script_path,
            data={"target_stage": target_stage, "shared_keys": shared_keys}
        )

    @staticmethod
    def session_finalized(script_path: str, metrics: Dict[str, int]) -> MonitoringEvent:
        """Create session finalized event."""
        return MonitoringEvent(
            event_type=EventType.SESSION_FINALIZED,
            script_path=script_path,
            data={"metrics": dict(metrics)}
        )

    @staticmethod
    def stage(
        event_type: EventType,
        script_path: str,
        stage: str,
        ordinal: Optional[int] = None,
        duration_ms: Optional[int] = None,
        error: Optional[str] = None
    ) -> StageEvent:
        """Create a stage event of the given type."""
        return StageEvent(
            event_type=event_type,
            script_path=script_path,
            stage=stage,
            ordinal=ordinal,
            duration_ms=duration_ms,
            error=error
        )

    @staticmethod
    def checkpoint_saved(script_path: str, stage: str, checkpoint_path: str) -> MonitoringEvent:
        """Create checkpoint saved event."""
        return MonitoringEvent(
            event_type=EventType.CHECKPOINT_SAVED,
            script_path=script_path,
            data={"stage": stage, "checkpoint_path": checkpoint_path}
        )

    @staticmethod
    def checkpoint_write_failed(script_path: str, stage: str, error: str) -> MonitoringEvent:
        """Create checkpoint write failure event."""
        return MonitoringEvent(
            event_type=EventType.CHECKPOINT_WRITE_FAILED,
            script_path=script_path,
            data={"stage": stage, "error": error}
        )

    @staticmethod
    def checkpoint_cleared(script_path: str, existed: bool) -> MonitoringEvent:
        """Create checkpoint cleared event."""
        return MonitoringEvent(
            event_type=EventType.CHECKPOINT_CLEARED,
            script_path=script_path,
            data={"existed": existed}
        )

    @staticmethod
    def non_resumable_code_found(script_path: str, start: int, end: int) -> MonitoringEvent:
        """Create non-resumable code event."""
        return MonitoringEvent(
            event_type=EventType.NON_RESUMABLE_CODE_FOUND,
            script_path=script_path,
            data={"start": start, "end": end}
        )

    @staticmethod
    def script_rewritten(script_path: str, actions: Dict[str, str]) -> MonitoringEvent:
        """Create script rewritten event."""
        return MonitoringEvent(
            event_type=EventType.SCRIPT_REWRITTEN,
            script_path=script_path,
            data={"actions": actions}
        )
