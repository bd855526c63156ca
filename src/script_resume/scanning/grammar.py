"""Stage grammars: how stage constructs look in a script's source.

A grammar turns source text into a ScriptLayout (stage spans, the finalize
call, and which lines hold live code) and knows how to render the
constructs the rewriter inserts. The scanner and rewriter work only on
the layout, so other script syntaxes can be supported with another grammar.
"""

import ast
import io
import textwrap
from abc import ABC, abstractmethod
from typing import FrozenSet, List, Optional, Sequence, Set, Tuple

from ..core.models import LineSpan, ScriptLayout, StageSpan
from ..errors import ScriptParseError

IGNORE_BEGIN = "resume: ignore-begin"
IGNORE_END = "resume: ignore-end"


def split_lines(source: str) -> List[str]:
    """Split source into lines, keeping the original line terminators."""
    return io.StringIO(source, newline="").readlines()


def detect_newline(lines: Sequence[str]) -> str:
    for line in lines:
        if line.endswith("\r\n"):
            return "\r\n"
        if line.endswith("\n"):
            return "\n"
        if line.endswith("\r"):
            return "\r"
    return "\n"


class StageGrammar(ABC):
    """Base class for stage grammars."""

    comment_prefix = "#"

    @abstractmethod
    def parse(self, source: str) -> ScriptLayout:
        """Parse source text into a layout.

        Raises:
            ScriptParseError: If the source is not valid for this grammar
        """
        pass

    @abstractmethod
    def render_stage(self, body: List[str], layout: ScriptLayout, name: str) -> List[str]:
        """Render a new stage construct whose body is the given lines.

        Args:
            body: Body lines without terminators
            layout: Layout of the script being rewritten
            name: Name for the new stage

        Returns:
            Lines of the construct without terminators
        """
        pass

    def validate(self, source: str) -> None:
        """Check that rewritten source is still valid. No-op by default."""

    def render_ignore_markers(self, indent: str = "") -> Tuple[str, str]:
        """Opening and closing lines of an ignore region."""
        return (
            f"{indent}{self.comment_prefix} {IGNORE_BEGIN}",
            f"{indent}{self.comment_prefix} {IGNORE_END}",
        )

    def ignored_lines(self, lines: Sequence[str]) -> FrozenSet[int]:
        """Lines inside ignore regions, markers included.

        Regions may nest; an unclosed region runs to the end of the file.
        """
        ignored: Set[int] = set()
        depth = 0
        for number, line in enumerate(lines, start=1):
            text = line.strip()
            if self._is_marker(text, IGNORE_BEGIN):
                depth += 1
                ignored.add(number)
            elif depth and self._is_marker(text, IGNORE_END):
                depth -= 1
                ignored.add(number)
            elif depth:
                ignored.add(number)
        return frozenset(ignored)

    def _is_marker(self, text: str, marker: str) -> bool:
        if not text.startswith(self.comment_prefix):
            return False
        return text[len(self.comment_prefix):].strip() == marker


class PythonStageGrammar(StageGrammar):
    """Grammar for Python scripts driving an ExecutionSession.

    Recognized at module level:

        @session.stage            # stage: decorator through end of body
        def load(data): ...

        session.stage(step)       # stage: statement call
        session.finalize()        # finalize call

    Imports, plain function and class definitions, docstrings and session
    setup calls are inert. Every other top-level statement is live code.
    """

    def __init__(
        self,
        stage_names: Sequence[str] = ("stage",),
        finalize_names: Sequence[str] = ("finalize",),
        setup_names: Sequence[str] = ("open_session", "ExecutionSession"),
    ):
        """Initialize the grammar.

        Args:
            stage_names: Names whose call or decorator opens a stage
            finalize_names: Names whose call is the finalization call
            setup_names: Names whose call sets up the engine
        """
        self.stage_names = frozenset(stage_names)
        self.finalize_names = frozenset(finalize_names)
        self.setup_names = frozenset(setup_names)

    def parse(self, source: str) -> ScriptLayout:
        tree = self._parse_tree(source)
        lines = split_lines(source)

        stages: List[StageSpan] = []
        finalize: Optional[LineSpan] = None
        live: Set[int] = set()
        opener: Optional[str] = None

        for node in tree.body:
            start = self._start_line(node)
            end = node.end_lineno or start

            stage_opener = self._stage_opener(node)
            if stage_opener is not None:
                stages.append(StageSpan(
                    start=start,
                    end=end,
                    ordinal=len(stages),
                    name=getattr(node, "name", None),
                ))
                opener = opener or stage_opener
                continue

            if self._is_finalize(node):
                finalize = LineSpan(start=start, end=end)
                continue

            if not self._is_inert(node):
                live.update(range(start, end + 1))

        return ScriptLayout(
            lines=lines,
            stages=stages,
            finalize=finalize,
            live_lines=frozenset(live),
            ignored_lines=self.ignored_lines(lines),
            stage_opener=opener,
            newline=detect_newline(lines),
        )

    def render_stage(self, body: List[str], layout: ScriptLayout, name: str) -> List[str]:
        opener = layout.stage_opener or "stage"
        dedented = textwrap.dedent("\n".join(body)).split("\n")
        rendered = [f"@{opener}", f"def {name}(data):"]
        rendered.extend(f"    {line}" if line.strip() else "" for line in dedented)
        return rendered

    def validate(self, source: str) -> None:
        self._parse_tree(source)

    def _parse_tree(self, source: str) -> ast.Module:
        try:
            return ast.parse(source)
        except SyntaxError as e:
            raise ScriptParseError(f"Cannot parse script at line {e.lineno}: {e.msg}") from e

    @staticmethod
    def _start_line(node: ast.stmt) -> int:
        decorators = getattr(node, "decorator_list", None) or []
        return min([node.lineno] + [d.lineno for d in decorators])

    @staticmethod
    def _dotted_name(expr: ast.expr) -> List[str]:
        parts: List[str] = []
        while isinstance(expr, ast.Attribute):
            parts.append(expr.attr)
            expr = expr.value
        if isinstance(expr, ast.Name):
            parts.append(expr.id)
        return list(reversed(parts))

    def _stage_opener(self, node: ast.stmt) -> Optional[str]:
        """Expression that opens a stage, if this statement is a stage."""
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            for decorator in node.decorator_list:
                name = self._dotted_name(decorator)
                if name and name[-1] in self.stage_names:
                    return ".".join(name)
            return None

        if isinstance(node, ast.Expr) and isinstance(node.value, ast.Call):
            name = self._dotted_name(node.value.func)
            if name and name[-1] in self.stage_names:
                return ".".join(name)
        return None

    def _is_finalize(self, node: ast.stmt) -> bool:
        if not (isinstance(node, ast.Expr) and isinstance(node.value, ast.Call)):
            return False
        name = self._dotted_name(node.value.func)
        return bool(name) and name[-1] in self.finalize_names

    def _is_setup_call(self, value: Optional[ast.expr]) -> bool:
        if not isinstance(value, ast.Call):
            return False
        name = self._dotted_name(value.func)
        if not name:
            return False
        if name[-1] in self.setup_names:
            return True
        return len(name) >= 2 and name[-2] in self.setup_names

    def _is_inert(self, node: ast.stmt) -> bool:
        """Whether a statement only declares things and has no side effects."""
        if isinstance(node, (
            ast.Import,
            ast.ImportFrom,
            ast.FunctionDef,
            ast.AsyncFunctionDef,
            ast.ClassDef,
            ast.Pass,
            ast.Global,
            ast.Nonlocal,
        )):
            return True

        if isinstance(node, ast.Expr):
            # Docstrings and bare string literals
            if isinstance(node.value, ast.Constant) and isinstance(node.value.value, str):
                return True
            return self._is_setup_call(node.value)

        if isinstance(node, (ast.Assign, ast.AnnAssign)):
            return self._is_setup_call(node.value)

        return False
