"""Operator review of non-resumable code.

Runs once per launch, before any checkpoint is trusted. Each flagged block
is shown to the prompter, and the chosen actions are applied in a single
rewrite. A rewrite makes every line number computed so far stale, so the
launch stops and the operator must start the script again.
"""

from typing import Dict, List, Optional

import logging
logger = logging.getLogger(__name__)

from ..core.models import NonResumableBlock, RemediationAction, ScriptLayout
from ..errors import LaunchStopped, RelaunchRequired
from ..monitoring import EventFactory, SessionMonitor
from ..prompting import Prompter
from .grammar import StageGrammar
from .rewriter import ScriptRewriter
from .scanner import NonResumableScanner


class NonResumableCodeReview:
    """Scans a script and applies the operator's remediation choices."""

    def __init__(
        self,
        prompter: Prompter,
        grammar: StageGrammar,
        scanner: Optional[NonResumableScanner] = None,
        rewriter: Optional[ScriptRewriter] = None,
        monitor: Optional[SessionMonitor] = None
    ):
        self.prompter = prompter
        self.grammar = grammar
        self.scanner = scanner or NonResumableScanner()
        self.rewriter = rewriter or ScriptRewriter(grammar)
        self.monitor = monitor

    @staticmethod
    def allowed_actions(block: NonResumableBlock, layout: ScriptLayout) -> List[RemediationAction]:
        """Actions the operator may pick for a block.

        MOVE is offered only for code between the last stage and the
        finalize call.
        """
        can_move = block.is_trailing and layout.finalize is not None
        return [
            action for action in RemediationAction
            if action != RemediationAction.MOVE or can_move
        ]

    def run(self, script_path: str, layout: ScriptLayout) -> Dict[NonResumableBlock, RemediationAction]:
        """Review every non-resumable block of a script.

        Args:
            script_path: Script file path
            layout: Layout parsed from the script's current source

        Returns:
            The decision for each block, when nothing was rewritten

        Raises:
            LaunchStopped: If the operator quit
            RelaunchRequired: If the script was rewritten
            ScriptRewriteError: If the rewrite failed; the script is unchanged
        """
        blocks = self.scanner.scan(layout)
        if not blocks:
            return {}

        logger.info(f"Found {len(blocks)} block(s) of non-resumable code in {script_path}")
        decisions: Dict[NonResumableBlock, RemediationAction] = {}
        for block in blocks:
            self._emit(EventFactory.non_resumable_code_found(script_path, block.start, block.end))

            allowed = self.allowed_actions(block, layout)
            action = self.prompter.choose_remediation(block, layout.text_of(block.span), allowed)
            if action not in allowed:
                raise ValueError(f"Action {action.value} is not allowed for lines {block.start}-{block.end}")

            if action == RemediationAction.QUIT:
                raise LaunchStopped(f"Stopped during review of {script_path}; nothing was changed")
            if action == RemediationAction.IGNORE:
                logger.warning(
                    f"Lines {block.start}-{block.end} of {script_path} will re-run on every launch"
                )
            decisions[block] = action

        if self.rewriter.apply(script_path, layout, decisions):
            changed = {
                f"{block.start}-{block.end}": action.value
                for block, action in decisions.items()
                if action.rewrites_script
            }
            self._emit(EventFactory.script_rewritten(script_path, changed))
            raise RelaunchRequired(f"{script_path} was rewritten; launch it again to continue")

        return decisions

    def _emit(self, event) -> None:
        if self.monitor is not None:
            self.monitor.emit(event)
