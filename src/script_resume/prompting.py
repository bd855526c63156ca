"""Operator prompts.

The engine never talks to the console itself. It hands blocks of
non-resumable code and checkpoint analyses to a Prompter and receives one
choice back for each.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

import logging
logger = logging.getLogger(__name__)

from .config import EngineSettings
from .core.models import (
    CheckpointDetails,
    CheckpointStatus,
    NonResumableBlock,
    RemediationAction,
    ResumeAnalysis,
    ResumeChoice,
)

REMEDIATION_KEYS: Dict[str, RemediationAction] = {
    "w": RemediationAction.WRAP,
    "m": RemediationAction.MOVE,
    "i": RemediationAction.MARK_IGNORED,
    "d": RemediationAction.DELETE,
    "s": RemediationAction.IGNORE,
    "q": RemediationAction.QUIT,
}

REMEDIATION_LABELS: Dict[RemediationAction, str] = {
    RemediationAction.WRAP: "wrap the lines in a new stage",
    RemediationAction.MOVE: "move the lines after the finalize call",
    RemediationAction.MARK_IGNORED: "mark the lines as intentionally outside stages",
    RemediationAction.DELETE: "delete the lines",
    RemediationAction.IGNORE: "leave them for this run only",
    RemediationAction.QUIT: "quit without changing anything",
}

RESUME_KEYS: Dict[str, ResumeChoice] = {
    "r": ResumeChoice.RESUME,
    "f": ResumeChoice.FRESH,
    "d": ResumeChoice.DETAILS,
    "q": ResumeChoice.QUIT,
}


class Prompter(ABC):
    """Abstract base class for operator interaction."""

    @abstractmethod
    def choose_remediation(
        self,
        block: NonResumableBlock,
        source: List[str],
        allowed: List[RemediationAction]
    ) -> RemediationAction:
        """Pick an action for a block of non-resumable code.

        Args:
            block: The block found by the scanner
            source: Source lines of the block
            allowed: Actions valid for this block

        Returns:
            One of the allowed actions
        """
        pass

    @abstractmethod
    def choose_resume(self, analysis: ResumeAnalysis) -> ResumeChoice:
        """Pick how to proceed when a checkpoint exists."""
        pass

    @abstractmethod
    def show_details(self, details: CheckpointDetails) -> None:
        """Present the read-only checkpoint details."""
        pass


class NonInteractivePrompter(Prompter):
    """Answers every prompt with a configured default."""

    def __init__(self, remediation: RemediationAction = RemediationAction.IGNORE):
        self.remediation = remediation

    def choose_remediation(self, block, source, allowed):
        action = self.remediation if self.remediation in allowed else RemediationAction.IGNORE
        logger.info(f"Non-interactive: lines {block.start}-{block.end} -> {action.value}")
        return action

    def choose_resume(self, analysis):
        logger.info(f"Non-interactive: {analysis.status.value} checkpoint -> {analysis.default_choice.value}")
        return analysis.default_choice

    def show_details(self, details):
        logger.info(f"Checkpoint details: last stage {details.last_stage} at {details.timestamp.isoformat()}")


class ConsolePrompter(Prompter):
    """Prompts on the terminal."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print
    ):
        self._input = input_func
        self._output = output_func

    def _ask(self, question: str, keys: Dict[str, object], default: Optional[str] = None):
        while True:
            try:
                answer = self._input(question).strip().lower()
            except EOFError:
                answer = "q"
            if not answer and default:
                answer = default
            if answer in keys:
                return keys[answer]
            self._output(f"Please answer one of: {', '.join(keys)}")

    def choose_remediation(self, block, source, allowed):
        self._output("")
        self._output(
            f"Lines {block.start}-{block.end} run outside any stage and will re-run on every launch:"
        )
        for number, line in zip(block.lines, source):
            self._output(f"  {number:>5} | {line}")

        keys = {key: action for key, action in REMEDIATION_KEYS.items() if action in allowed}
        for key, action in keys.items():
            self._output(f"  [{key}] {REMEDIATION_LABELS[action]}")
        return self._ask("Choice: ", keys)

    def choose_resume(self, analysis):
        record = analysis.record
        self._output("")
        if analysis.status == CheckpointStatus.MATCHING:
            self._output(f"Found a checkpoint for {analysis.script_path}.")
        else:
            self._output(
                f"Found a checkpoint for {analysis.script_path}, but the script was modified since."
            )
        if record is not None:
            self._output(
                f"  Last completed stage: {record.last_completed_stage} "
                f"({record.timestamp.isoformat(timespec='seconds')})"
            )
        for recommendation in analysis.recommendations:
            self._output(f"  [{recommendation['type']}] {recommendation['message']}")

        labels = {
            ResumeChoice.RESUME: "resume" if analysis.status == CheckpointStatus.MATCHING else "resume anyway",
            ResumeChoice.FRESH: "start fresh",
            ResumeChoice.DETAILS: "more details",
            ResumeChoice.QUIT: "quit",
        }
        keys = {key: choice for key, choice in RESUME_KEYS.items() if choice in analysis.available_choices}
        default_key = next(key for key, choice in keys.items() if choice == analysis.default_choice)
        options = ", ".join(
            f"[{key.upper() if key == default_key else key}] {labels[choice]}"
            for key, choice in keys.items()
        )
        return self._ask(f"{options}: ", keys, default=default_key)

    def show_details(self, details):
        self._output("")
        self._output(f"Last completed stage: {details.last_stage}")
        self._output(f"Saved at: {details.timestamp.isoformat(timespec='seconds')}")
        if details.shared_data_summary:
            self._output("Shared data:")
            for key, summary in details.shared_data_summary.items():
                self._output(f"  {key}: {summary}")
        else:
            self._output("Shared data: (empty)")
        if details.stage_source:
            self._output("Source of the last completed stage:")
            for line in details.stage_source:
                self._output(f"  {line}")
        if details.source_diff:
            self._output("Changes since the checkpoint:")
            for line in details.source_diff:
                self._output(f"  {line}")


def default_prompter(settings: EngineSettings) -> Prompter:
    """Console prompter when interactive, otherwise configured defaults."""
    if settings.is_interactive:
        return ConsolePrompter()
    return NonInteractivePrompter(settings.non_interactive_remediation)
