"""Core module for the script resumption engine.

This module contains the fundamental building blocks:
- Data models with validation
- Stage and script fingerprinting
- Shared data and the execution session
"""

from .context import SharedData
from .fingerprint import hash_source, identify_call_site, read_source
from .models import (
    CheckpointDetails,
    CheckpointRecord,
    CheckpointStatus,
    NonResumableBlock,
    RemediationAction,
    ResumeAnalysis,
    ResumeChoice,
    ResumePlan,
    ScriptLayout,
    StageIdentity,
    StageSpan,
)
from .session import ExecutionSession

__all__ = [
    # Models
    "StageIdentity",
    "CheckpointRecord",
    "CheckpointStatus",
    "ResumeChoice",
    "RemediationAction",
    "NonResumableBlock",
    "StageSpan",
    "ScriptLayout",
    "ResumeAnalysis",
    "CheckpointDetails",
    "ResumePlan",
    # Fingerprinting
    "identify_call_site",
    "hash_source",
    "read_source",
    # Session
    "SharedData",
    "ExecutionSession",
]
