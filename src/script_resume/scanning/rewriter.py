"""Rewrites a script to apply remediations to non-resumable blocks.

All edits are computed against the layout the blocks were found in and
written in a single atomic replace. If anything fails the script on disk is
left exactly as it was.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Mapping, Set

import logging
logger = logging.getLogger(__name__)

from ..core.models import NonResumableBlock, RemediationAction, ScriptLayout
from ..errors import ScriptParseError, ScriptRewriteError
from .grammar import StageGrammar


def _terminated(line: str, newline: str) -> str:
    return line if line.endswith(("\n", "\r")) else line + newline


def _indent_of(line: str) -> str:
    return line[:len(line) - len(line.lstrip())]


class ScriptRewriter:
    """Applies remediation actions to a script file."""

    def __init__(self, grammar: StageGrammar):
        """Initialize the rewriter.

        Args:
            grammar: Grammar used to render new constructs and validate the result
        """
        self.grammar = grammar

    def render(
        self,
        layout: ScriptLayout,
        decisions: Mapping[NonResumableBlock, RemediationAction]
    ) -> str:
        """Compute the rewritten source without touching the file.

        Args:
            layout: Layout the blocks were scanned from
            decisions: Action chosen for each block

        Returns:
            New source text

        Raises:
            ScriptRewriteError: If a decision cannot be applied
        """
        newline = layout.newline
        replacements: Dict[int, List[str]] = {}
        removed: Set[int] = set()
        moved: List[str] = []

        for block, action in sorted(decisions.items(), key=lambda item: item[0].start):
            if not action.rewrites_script:
                continue
            self._check_block(layout, block, removed)

            original = [_terminated(layout.lines[n - 1], newline) for n in block.lines]
            removed.update(block.lines)
            indent = _indent_of(original[0])

            if action == RemediationAction.WRAP:
                body = [line.rstrip("\r\n") for line in original]
                name = f"resumable_lines_{block.start}_{block.end}"
                rendered = self.grammar.render_stage(body, layout, name)
                replacements[block.start] = [
                    f"{indent}{line}{newline}" if line else newline for line in rendered
                ]

            elif action == RemediationAction.MARK_IGNORED:
                begin, end = self.grammar.render_ignore_markers(indent)
                replacements[block.start] = [begin + newline, *original, end + newline]

            elif action == RemediationAction.MOVE:
                if not block.is_trailing or layout.finalize is None:
                    raise ScriptRewriteError(
                        f"Lines {block.start}-{block.end} cannot be moved: "
                        "only code between the last stage and the finalize call can move"
                    )
                moved.extend(original)

            elif action == RemediationAction.DELETE:
                pass

        output: List[str] = []
        for number, line in enumerate(layout.lines, start=1):
            output.extend(replacements.get(number, []))
            if number not in removed:
                output.append(line)
            if moved and layout.finalize is not None and number == layout.finalize.end:
                output[-1] = _terminated(output[-1], newline)
                output.extend(moved)
        return "".join(output)

    def apply(
        self,
        path: str,
        layout: ScriptLayout,
        decisions: Mapping[NonResumableBlock, RemediationAction]
    ) -> bool:
        """Apply decisions and rewrite the script file.

        Args:
            path: Script file path
            layout: Layout the blocks were scanned from
            decisions: Action chosen for each block

        Returns:
            True if the file was rewritten, False if nothing needed writing

        Raises:
            ScriptRewriteError: If the rewrite failed; the file is unchanged
        """
        actions = set(decisions.values())
        if RemediationAction.QUIT in actions:
            logger.info(f"Rewrite of {path} aborted; nothing written")
            return False
        if not any(action.rewrites_script for action in actions):
            return False

        new_source = self.render(layout, decisions)
        try:
            self.grammar.validate(new_source)
        except ScriptParseError as e:
            raise ScriptRewriteError(f"Rewritten script would not parse: {e}") from e

        target = Path(path)
        original_source = "".join(layout.lines)
        try:
            on_disk = target.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ScriptRewriteError(f"Cannot read {path}: {e}") from e
        if on_disk != original_source:
            raise ScriptRewriteError(f"{path} changed since it was scanned; scan it again")

        self._atomic_write(target, new_source)

        summary = ", ".join(
            f"{block.start}-{block.end}:{action.value}"
            for block, action in sorted(decisions.items(), key=lambda item: item[0].start)
            if action.rewrites_script
        )
        logger.info(f"Rewrote {path} ({summary})")
        return True

    @staticmethod
    def _check_block(layout: ScriptLayout, block: NonResumableBlock, taken: Set[int]) -> None:
        if block.end > layout.line_count:
            raise ScriptRewriteError(
                f"Lines {block.start}-{block.end} are outside the script ({layout.line_count} lines)"
            )
        if taken.intersection(block.lines):
            raise ScriptRewriteError(f"Lines {block.start}-{block.end} overlap another block")

    @staticmethod
    def _atomic_write(target: Path, content: str) -> None:
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                delete=False,
                dir=str(target.parent),
                prefix=target.name + ".",
                suffix=".tmp",
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(content.encode("utf-8"))
            shutil.copymode(target, temp_path)
            os.replace(temp_path, target)
        except OSError as e:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()
            raise ScriptRewriteError(f"Cannot write {target}: {e}") from e
