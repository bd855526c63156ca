"""Resume decision flow.

This module decides, once per launch, how a script starts:
- Fresh, when there is no checkpoint or the operator discards it
- Resumed after the last completed stage, restoring shared data
- Not at all, when the operator quits
"""

import os
from typing import Optional, Sequence, Tuple

import logging
logger = logging.getLogger(__name__)

from ..core.fingerprint import read_source
from ..core.models import (
    CheckpointDetails,
    CheckpointStatus,
    ResumeAnalysis,
    ResumeChoice,
    ResumePlan,
    StageIdentity,
)
from ..errors import LaunchStopped, ScriptParseError
from ..prompting import Prompter
from ..scanning.grammar import PythonStageGrammar, StageGrammar
from ..storage.base import CheckpointStore
from .analyzer import CheckpointAnalyzer


class ResumeDecisionFlow:
    """Drives the resume / fresh / details / quit choice."""

    def __init__(
        self,
        store: CheckpointStore,
        prompter: Prompter,
        analyzer: Optional[CheckpointAnalyzer] = None,
        grammar: Optional[StageGrammar] = None
    ):
        """Initialize the decision flow.

        Args:
            store: Checkpoint store
            prompter: Operator prompt boundary
            analyzer: Checkpoint analyzer (default settings if not provided)
            grammar: Stage grammar used for the details view
        """
        self.store = store
        self.prompter = prompter
        self.analyzer = analyzer or CheckpointAnalyzer()
        self.grammar = grammar or PythonStageGrammar()

    def decide(
        self,
        script_path: str,
        current_hash: str,
        identities: Sequence[StageIdentity],
        source: Optional[str] = None
    ) -> ResumePlan:
        """Decide how this launch starts.

        Args:
            script_path: Script file path
            current_hash: Fingerprint of the script as it is now
            identities: Stage identities of the current layout
            source: Current source text, used by the details view

        Returns:
            Plan for the execution session

        Raises:
            LaunchStopped: If the operator quit; nothing was changed
        """
        record = self.store.load(script_path)
        analysis = self.analyzer.analyze(
            script_path,
            record,
            current_hash,
            identities,
            checkpoint_path=self.store.checkpoint_path(script_path),
        )

        if analysis.status == CheckpointStatus.NONE:
            logger.info(f"No checkpoint for {script_path}; starting fresh")
            return ResumePlan.fresh()

        if analysis.status == CheckpointStatus.MODIFIED:
            logger.warning(f"{script_path} was modified since its checkpoint was written")

        while True:
            choice = self.prompter.choose_resume(analysis)

            if choice == ResumeChoice.DETAILS:
                details = self.analyzer.describe(record, analysis, source, self.grammar)
                self.prompter.show_details(details)
                continue

            if choice == ResumeChoice.QUIT:
                raise LaunchStopped(f"Stopped before running {script_path}; checkpoint kept")

            if choice == ResumeChoice.FRESH:
                self.store.delete(script_path)
                logger.info(f"Discarded checkpoint for {script_path}; starting fresh")
                return ResumePlan.fresh()

            if choice == ResumeChoice.RESUME:
                return self._resume_plan(analysis)

            raise ValueError(f"Unsupported resume choice: {choice!r}")

    def _resume_plan(self, analysis: ResumeAnalysis) -> ResumePlan:
        record = analysis.record
        target = record.last_completed_stage
        modified = analysis.status == CheckpointStatus.MODIFIED
        match_by_ordinal = modified and not analysis.target_in_layout

        if match_by_ordinal and (target.ordinal is None or target.ordinal >= analysis.total_stages):
            # Nothing in the edited script can stop restore mode
            logger.warning(
                f"Cannot locate stage {target} in the modified {analysis.script_path}; "
                f"starting fresh instead of skipping every stage"
            )
            return ResumePlan.fresh()

        if modified:
            logger.warning(
                f"Resuming {analysis.script_path} after {target} although the script changed; "
                f"this may produce inconsistent results"
            )
        else:
            logger.info(f"Resuming {analysis.script_path} after {target}")

        return ResumePlan(
            choice=ResumeChoice.RESUME,
            restore_mode=True,
            target_stage=target,
            match_by_ordinal=match_by_ordinal,
            script_unchanged=not modified,
            shared_data=dict(record.shared_data),
        )

    def inspect(self, script_path: str) -> Tuple[ResumeAnalysis, Optional[CheckpointDetails]]:
        """Analyze a script's checkpoint without prompting or changing anything.

        Args:
            script_path: Script file path

        Returns:
            Tuple of (analysis, details); details is None without a checkpoint

        Raises:
            OSError: If the script cannot be read
        """
        script_path = os.path.abspath(script_path)
        source, current_hash = read_source(script_path)
        try:
            identities = self.grammar.parse(source).identities(script_path)
        except ScriptParseError as e:
            logger.warning(f"Cannot parse {script_path}: {e}")
            identities = []

        record = self.store.load(script_path)
        analysis = self.analyzer.analyze(
            script_path,
            record,
            current_hash,
            identities,
            checkpoint_path=self.store.checkpoint_path(script_path),
        )
        if record is None:
            return analysis, None
        return analysis, self.analyzer.describe(record, analysis, source, self.grammar)
