"""Command line tool for inspecting script checkpoints.

Usage:
    script-resume status pipeline.py
    script-resume show pipeline.py
    script-resume scan pipeline.py
    script-resume clear pipeline.py

Nothing here runs stages or rewrites scripts; ``clear`` only deletes the
checkpoint file.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)

from .config import EngineSettings
from .core.fingerprint import read_source
from .core.models import CheckpointStatus
from .errors import ScriptParseError
from .resumption import CheckpointAnalyzer, ResumeDecisionFlow
from .scanning import NonResumableScanner, PythonStageGrammar
from .storage import create_checkpoint_store
from .prompting import NonInteractivePrompter


class CheckpointInspector:
    """Read-only operations on the checkpoint of a script."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings.from_environment()
        self.store = create_checkpoint_store(settings=self.settings)
        self.grammar = PythonStageGrammar()
        self.flow = ResumeDecisionFlow(
            self.store,
            NonInteractivePrompter(),
            analyzer=CheckpointAnalyzer(self.settings.stale_after_days),
            grammar=self.grammar,
        )

    def status(self, script_path: str) -> int:
        """Print whether the script has a checkpoint and how it relates to the script."""
        analysis, _ = self.flow.inspect(script_path)
        print(f"📄 Script: {analysis.script_path}")
        print(f"   Checkpoint: {analysis.checkpoint_path}")

        if analysis.status == CheckpointStatus.NONE:
            print("   Status: no checkpoint")
            return 0

        record = analysis.record
        label = "matches script" if analysis.status == CheckpointStatus.MATCHING else "script modified"
        print(f"   Status: {label}")
        print(f"   Last completed stage: {record.last_completed_stage}")
        if analysis.completed_stages is not None:
            print(f"   Progress: {analysis.completed_stages}/{analysis.total_stages} stages")
        print(f"   Saved at: {record.timestamp.isoformat(timespec='seconds')}")
        print(f"   Shared data keys: {', '.join(sorted(record.shared_data)) or '(none)'}")
        print(f"   Default on next launch: {analysis.default_choice.value}")
        for recommendation in analysis.recommendations:
            print(f"   [{recommendation['type']}] {recommendation['message']}")
        return 0

    def show(self, script_path: str) -> int:
        """Print the full details view of a checkpoint."""
        analysis, details = self.flow.inspect(script_path)
        if details is None:
            print(f"No checkpoint for {analysis.script_path}")
            return 0

        print(f"📄 Checkpoint for {analysis.script_path} ({details.status.value})")
        print(f"   Last completed stage: {details.last_stage}")
        print(f"   Saved at: {details.timestamp.isoformat(timespec='seconds')}")
        print("   Shared data:")
        for key, summary in details.shared_data_summary.items():
            print(f"     {key}: {summary}")
        if details.stage_source:
            print("   Last completed stage source:")
            for line in details.stage_source:
                print(f"     {line}")
        if details.source_diff:
            print("   Changes since the checkpoint:")
            for line in details.source_diff:
                print(f"     {line}")
        return 0

    def scan(self, script_path: str) -> int:
        """List code outside stages without changing the script."""
        source, _ = read_source(script_path)
        try:
            layout = self.grammar.parse(source)
        except ScriptParseError as e:
            print(f"❌ {e}")
            return 1

        blocks = NonResumableScanner().scan(layout)
        print(f"🔍 {os.path.abspath(script_path)}: {len(layout.stages)} stage(s)")
        if not blocks:
            print("   No non-resumable code found")
            return 0

        for block in blocks:
            where = " (between last stage and finalize)" if block.is_trailing else ""
            print(f"   Lines {block.start}-{block.end}{where}:")
            for number, line in zip(block.lines, layout.text_of(block.span)):
                print(f"     {number:>5} | {line}")
        return 0

    def clear(self, script_path: str) -> int:
        """Delete the checkpoint of a script."""
        if self.store.delete(script_path):
            print(f"🗑️  Deleted {self.store.checkpoint_path(script_path)}")
        else:
            print(f"No checkpoint for {os.path.abspath(script_path)}")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="script-resume",
        description="Inspect checkpoints of resumable scripts"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    status_parser = subparsers.add_parser("status", help="Show checkpoint status")
    status_parser.add_argument("script", help="Path to the script")

    show_parser = subparsers.add_parser("show", help="Show checkpoint details")
    show_parser.add_argument("script", help="Path to the script")

    scan_parser = subparsers.add_parser("scan", help="List code outside stages")
    scan_parser.add_argument("script", help="Path to the script")

    clear_parser = subparsers.add_parser("clear", help="Delete the checkpoint")
    clear_parser.add_argument("script", help="Path to the script")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line tool.

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    if not args.command:
        parser.print_help()
        return 1

    inspector = CheckpointInspector()

    try:
        if args.command == "status":
            return inspector.status(args.script)

        elif args.command == "show":
            return inspector.show(args.script)

        elif args.command == "scan":
            return inspector.scan(args.script)

        elif args.command == "clear":
            return inspector.clear(args.script)

    except (OSError, UnicodeDecodeError) as e:
        print(f"❌ Cannot read {args.script}: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
