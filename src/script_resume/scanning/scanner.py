"""Scanner for code that lives outside every stage.

Such code re-executes on every launch, including resumed ones, so its side
effects repeat even though the stages around it are skipped.
"""

from typing import List, Optional, Tuple

from ..core.models import NonResumableBlock, ScriptLayout
from .grammar import PythonStageGrammar, StageGrammar

# (first line, last line, trailing)
Region = Tuple[int, int, bool]


class NonResumableScanner:
    """Finds blocks of live code between and around stages."""

    def scan(self, layout: ScriptLayout) -> List[NonResumableBlock]:
        """Group live lines outside stages into blocks.

        Only three regions are scanned: before the first stage, between
        consecutive stages, and between the last stage and the finalize
        call (or the end of the file when there is none).

        Args:
            layout: Parsed script layout

        Returns:
            Blocks in source order; empty when the script has no stages
        """
        if not layout.stages:
            return []

        blocks: List[NonResumableBlock] = []
        for start, end, trailing in self.regions(layout):
            run: List[int] = []
            for line in range(start, end + 1):
                if self._is_live(layout, line):
                    run.append(line)
                elif run:
                    blocks.append(NonResumableBlock(lines=tuple(run), is_trailing=trailing))
                    run = []
            if run:
                blocks.append(NonResumableBlock(lines=tuple(run), is_trailing=trailing))
        return blocks

    @staticmethod
    def regions(layout: ScriptLayout) -> List[Region]:
        """Line ranges outside stages that are subject to scanning."""
        stages = sorted(layout.stages, key=lambda span: span.start)
        regions: List[Region] = [(1, stages[0].start - 1, False)]

        for previous, following in zip(stages, stages[1:]):
            regions.append((previous.end + 1, following.start - 1, False))

        last_end = stages[-1].end
        finalize = layout.finalize
        if finalize is not None and finalize.start > last_end:
            regions.append((last_end + 1, finalize.start - 1, True))
        else:
            regions.append((last_end + 1, layout.line_count, False))

        return [region for region in regions if region[1] >= region[0]]

    @staticmethod
    def _is_live(layout: ScriptLayout, line: int) -> bool:
        return line in layout.live_lines and line not in layout.ignored_lines


def scan_source(source: str, grammar: Optional[StageGrammar] = None) -> List[NonResumableBlock]:
    """Parse and scan source text in one step."""
    grammar = grammar or PythonStageGrammar()
    return NonResumableScanner().scan(grammar.parse(source))
