"""Resumption module for interrupted scripts.

This module provides:
- Checkpoint analysis against the live script
- The resume / fresh / details / quit decision
"""

from .analyzer import CheckpointAnalyzer
from .manager import ResumeDecisionFlow

__all__ = [
    "CheckpointAnalyzer",
    "ResumeDecisionFlow",
]
