"""Core data models for the script resumption engine.

These models define the structure of checkpoint records, stage identities
and scan results, and validate them on construction.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


CHECKPOINT_FORMAT_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CheckpointStatus(str, Enum):
    """Relation between the stored checkpoint and the live script."""

    NONE = "none"
    MATCHING = "matching"
    MODIFIED = "modified"


class ResumeChoice(str, Enum):
    """Operator choices offered when a checkpoint is found."""

    RESUME = "resume"
    FRESH = "fresh"
    DETAILS = "details"
    QUIT = "quit"


class RemediationAction(str, Enum):
    """Operator choices for a block of non-resumable code."""

    WRAP = "wrap"
    MOVE = "move"
    MARK_IGNORED = "mark_ignored"
    DELETE = "delete"
    IGNORE = "ignore"
    QUIT = "quit"

    @property
    def rewrites_script(self) -> bool:
        """Whether applying this action changes the script file."""
        return self not in (RemediationAction.IGNORE, RemediationAction.QUIT)


class StageIdentity(BaseModel):
    """Names a stage by its lexical position in a script.

    The string form is ``"path:line"``. ``ordinal`` is the position of the
    stage call among all stage calls of one launch, when known. Stages
    called repeatedly from one line share a key and differ by ordinal.
    """

    model_config = ConfigDict(frozen=True)

    script_path: str
    line: int = Field(ge=1)
    ordinal: Optional[int] = Field(default=None, ge=0)

    @property
    def key(self) -> str:
        return f"{self.script_path}:{self.line}"

    def __str__(self) -> str:
        return self.key

    @classmethod
    def parse(cls, key: str, ordinal: Optional[int] = None) -> "StageIdentity":
        """Rebuild an identity from its ``"path:line"`` key.

        Args:
            key: Identity key
            ordinal: Optional stage ordinal

        Returns:
            The parsed identity

        Raises:
            ValueError: If the key has no line number suffix
        """
        path, _, line = key.rpartition(":")
        if not path or not line.isdigit():
            raise ValueError(f"Not a stage identity key: {key!r}")
        return cls(script_path=path, line=int(line), ordinal=ordinal)


class CheckpointRecord(BaseModel):
    """Persisted state after the last successfully completed stage."""

    format_version: int = CHECKPOINT_FORMAT_VERSION
    script_path: str
    script_hash: str
    script_source: Optional[str] = None
    last_completed_stage: StageIdentity
    timestamp: datetime = Field(default_factory=utc_now)
    shared_data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def completed_stages(self) -> Optional[int]:
        """Number of stages completed, if the stage ordinal was recorded."""
        ordinal = self.last_completed_stage.ordinal
        return None if ordinal is None else ordinal + 1

    def age(self, now: Optional[datetime] = None) -> timedelta:
        """Time elapsed since the checkpoint was written."""
        now = now or utc_now()
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return now - timestamp


class LineSpan(BaseModel):
    """Inclusive, 1-based range of source lines."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=1)
    end: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_order(self) -> "LineSpan":
        if self.end < self.start:
            raise ValueError(f"Span ends before it starts: {self.start}-{self.end}")
        return self


class StageSpan(LineSpan):
    """Source lines of one stage construct."""

    ordinal: int = Field(ge=0)
    name: Optional[str] = None


class ScriptLayout(BaseModel):
    """Parsed view of a script: where its stages, finalize call and live code are."""

    lines: List[str]
    stages: List[StageSpan] = Field(default_factory=list)
    finalize: Optional[LineSpan] = None
    live_lines: FrozenSet[int] = frozenset()
    ignored_lines: FrozenSet[int] = frozenset()
    stage_opener: Optional[str] = None
    newline: str = "\n"

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def identities(self, script_path: str) -> List[StageIdentity]:
        """Stage identities of this layout, in source order."""
        return [
            StageIdentity(script_path=script_path, line=span.start, ordinal=span.ordinal)
            for span in self.stages
        ]

    def text_of(self, span: LineSpan) -> List[str]:
        """Source lines of a span, without line terminators."""
        return [line.rstrip("\r\n") for line in self.lines[span.start - 1:span.end]]

    def stage_at(self, line: int) -> Optional[StageSpan]:
        """Stage span starting at the given line, if any."""
        for span in self.stages:
            if span.start == line:
                return span
        return None


class NonResumableBlock(BaseModel):
    """Maximal contiguous run of live lines outside every stage."""

    model_config = ConfigDict(frozen=True)

    lines: Tuple[int, ...]
    is_trailing: bool = False

    @field_validator("lines")
    def validate_lines(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        """Ensure lines are non-empty, ascending and contiguous."""
        if not v:
            raise ValueError("A block needs at least one line")
        for previous, current in zip(v, v[1:]):
            if current != previous + 1:
                raise ValueError(f"Block lines are not contiguous: {v}")
        return v

    @property
    def start(self) -> int:
        return self.lines[0]

    @property
    def end(self) -> int:
        return self.lines[-1]

    @property
    def span(self) -> LineSpan:
        return LineSpan(start=self.start, end=self.end)


class ResumeAnalysis(BaseModel):
    """Comparison of a stored checkpoint with the live script."""

    script_path: str
    checkpoint_path: Optional[str] = None
    status: CheckpointStatus
    current_hash: str
    record: Optional[CheckpointRecord] = None
    default_choice: ResumeChoice = ResumeChoice.FRESH
    available_choices: List[ResumeChoice] = Field(default_factory=list)
    completed_stages: Optional[int] = None
    total_stages: int = 0
    all_stages_complete: bool = False
    target_in_layout: bool = False
    recommendations: List[Dict[str, str]] = Field(default_factory=list)


class CheckpointDetails(BaseModel):
    """Read-only view of a checkpoint for the "more details" choice."""

    last_stage: str
    timestamp: datetime
    status: CheckpointStatus
    shared_data_summary: Dict[str, str] = Field(default_factory=dict)
    stage_source: List[str] = Field(default_factory=list)
    source_diff: List[str] = Field(default_factory=list)


class ResumePlan(BaseModel):
    """Outcome of the resume decision, applied by the execution session."""

    choice: ResumeChoice
    restore_mode: bool = False
    target_stage: Optional[StageIdentity] = None
    match_by_ordinal: bool = False
    script_unchanged: bool = False
    shared_data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def fresh(cls) -> "ResumePlan":
        return cls(choice=ResumeChoice.FRESH)
