"""Checkpoint analyzer for resumption decisions.

This module compares a stored checkpoint with the script as it is now to
determine:
- Whether the script changed since the checkpoint
- How far the previous run got
- Which choice to offer as the default
"""

import difflib
import reprlib
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

from ..core.models import (
    CheckpointDetails,
    CheckpointRecord,
    CheckpointStatus,
    ResumeAnalysis,
    ResumeChoice,
    StageIdentity,
)
from ..errors import ScriptParseError
from ..scanning.grammar import StageGrammar, split_lines

PROMPT_CHOICES = [
    ResumeChoice.RESUME,
    ResumeChoice.FRESH,
    ResumeChoice.DETAILS,
    ResumeChoice.QUIT,
]

_summary_repr = reprlib.Repr()
_summary_repr.maxstring = 60
_summary_repr.maxother = 60


class CheckpointAnalyzer:
    """Analyzes checkpoints for resumption capabilities."""

    def __init__(self, stale_after_days: int = 7):
        """Initialize the analyzer.

        Args:
            stale_after_days: Age after which a checkpoint is reported as stale
        """
        self.stale_after = timedelta(days=stale_after_days)

    def analyze(
        self,
        script_path: str,
        record: Optional[CheckpointRecord],
        current_hash: str,
        identities: Sequence[StageIdentity],
        checkpoint_path: Optional[str] = None
    ) -> ResumeAnalysis:
        """Analyze a checkpoint against the current script.

        Args:
            script_path: Script file path
            record: Stored checkpoint, or None when there is none
            current_hash: Fingerprint of the script as it is now
            identities: Stage identities of the current layout
            checkpoint_path: Location of the checkpoint, for display

        Returns:
            Analysis with status, default choice and recommendations
        """
        if record is None:
            return ResumeAnalysis(
                script_path=script_path,
                checkpoint_path=checkpoint_path,
                status=CheckpointStatus.NONE,
                current_hash=current_hash,
                total_stages=len(identities),
            )

        status = (
            CheckpointStatus.MATCHING
            if record.script_hash == current_hash
            else CheckpointStatus.MODIFIED
        )
        target = record.last_completed_stage
        keys = [identity.key for identity in identities]
        target_in_layout = target.key in keys
        all_complete = bool(keys) and target_in_layout and target.key == keys[-1]

        if status == CheckpointStatus.MATCHING and not all_complete:
            default = ResumeChoice.RESUME
        else:
            default = ResumeChoice.FRESH

        return ResumeAnalysis(
            script_path=script_path,
            checkpoint_path=checkpoint_path,
            status=status,
            current_hash=current_hash,
            record=record,
            default_choice=default,
            available_choices=list(PROMPT_CHOICES),
            completed_stages=record.completed_stages,
            total_stages=len(identities),
            all_stages_complete=all_complete,
            target_in_layout=target_in_layout,
            recommendations=self._recommendations(
                status, record, identities, target_in_layout, all_complete
            ),
        )

    def _recommendations(
        self,
        status: CheckpointStatus,
        record: CheckpointRecord,
        identities: Sequence[StageIdentity],
        target_in_layout: bool,
        all_complete: bool
    ) -> List[Dict[str, str]]:
        """Generate recommendations based on analysis."""
        recommendations = []

        if status == CheckpointStatus.MODIFIED:
            recommendations.append({
                "type": "warning",
                "message": "The script changed since the checkpoint; stage count and line "
                           "mapping may no longer align. Resuming may produce inconsistent results."
            })
            if not target_in_layout:
                ordinal = record.last_completed_stage.ordinal
                if ordinal is not None and ordinal < len(identities):
                    message = (
                        f"The recorded stage {record.last_completed_stage} no longer starts a stage; "
                        f"resuming would continue after stage #{ordinal + 1} by position"
                    )
                else:
                    message = (
                        f"The recorded stage {record.last_completed_stage} cannot be found "
                        f"in the current script; resuming would start fresh"
                    )
                recommendations.append({"type": "info", "message": message})

        if all_complete:
            recommendations.append({
                "type": "info",
                "message": "All stages already completed but the run was never finalized; "
                           "starting fresh is recommended"
            })

        if record.age() > self.stale_after:
            recommendations.append({
                "type": "info",
                "message": f"The checkpoint is {record.age().days} days old"
            })

        if status == CheckpointStatus.MATCHING and not all_complete:
            done = record.completed_stages
            progress = f" ({done} of {len(identities)} stages done)" if done is not None else ""
            recommendations.append({
                "type": "optimal",
                "message": f"Resume after {record.last_completed_stage}{progress}"
            })

        return recommendations

    def describe(
        self,
        record: CheckpointRecord,
        analysis: ResumeAnalysis,
        current_source: Optional[str],
        grammar: StageGrammar
    ) -> CheckpointDetails:
        """Build the read-only details view of a checkpoint.

        Args:
            record: Stored checkpoint
            analysis: Result of analyze() for the same checkpoint
            current_source: Script source as it is now, if readable
            grammar: Grammar used to locate the last stage's source

        Returns:
            Details for display; nothing is modified
        """
        summary = {
            key: f"{type(value).__name__} {_summary_repr.repr(value)}"
            for key, value in record.shared_data.items()
        }

        # Prefer the snapshot: it shows the stage as it was when it ran
        source = record.script_source
        if source is None and analysis.status == CheckpointStatus.MATCHING:
            source = current_source

        diff: List[str] = []
        if analysis.status == CheckpointStatus.MODIFIED and record.script_source and current_source:
            diff = [
                line.rstrip("\r\n")
                for line in difflib.unified_diff(
                    split_lines(record.script_source),
                    split_lines(current_source),
                    fromfile="checkpoint",
                    tofile="current",
                )
            ]

        return CheckpointDetails(
            last_stage=record.last_completed_stage.key,
            timestamp=record.timestamp,
            status=analysis.status,
            shared_data_summary=summary,
            stage_source=self._stage_source(source, record.last_completed_stage, grammar),
            source_diff=diff,
        )

    @staticmethod
    def _stage_source(
        source: Optional[str],
        identity: StageIdentity,
        grammar: StageGrammar
    ) -> List[str]:
        if not source:
            return []
        try:
            layout = grammar.parse(source)
        except ScriptParseError:
            lines = split_lines(source)
            if identity.line <= len(lines):
                return [lines[identity.line - 1].rstrip("\r\n")]
            return []

        span = layout.stage_at(identity.line)
        if span is None:
            return []
        return layout.text_of(span)
