"""Monitoring module for script execution tracking.

This module provides:
- Session and stage events
- Event handlers
- Per-launch metrics
"""

from .events import EventFactory, EventType, MonitoringEvent, StageEvent
from .monitor import SessionMonitor, StageTimer

__all__ = [
    # Events
    "EventType",
    "MonitoringEvent",
    "StageEvent",
    "EventFactory",
    # Monitor
    "SessionMonitor",
    "StageTimer",
]
