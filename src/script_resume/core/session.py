"""Execution session for resumable scripts.

One session lives for one launch of one script. It decides, for every
stage call, whether to skip the stage (it completed in a previous launch)
or to run it and checkpoint the result.

Usage::

    session = open_session()

    @session.stage
    def load(data):
        data["rows"] = read_rows()

    session.finalize()
"""

import inspect
import os
from typing import Any, Callable, List, Optional

import logging
logger = logging.getLogger(__name__)

from ..config import EngineSettings
from ..errors import (
    CheckpointWriteError,
    LaunchStopped,
    ScriptParseError,
    ScriptResumeError,
    StageExecutionError,
)
from ..monitoring import EventFactory, EventType, SessionMonitor, StageTimer
from ..prompting import Prompter, default_prompter
from ..resumption import CheckpointAnalyzer, ResumeDecisionFlow
from ..scanning import NonResumableCodeReview, PythonStageGrammar, StageGrammar
from ..storage import CheckpointLock, CheckpointStore, create_checkpoint_store
from .context import SharedData
from .fingerprint import identify_call_site, read_source
from .models import CheckpointRecord, ResumePlan, ScriptLayout, StageIdentity

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.VAR_POSITIONAL,
)


class ExecutionSession:
    """Per-launch state machine deciding skip or execute for each stage.

    The session starts on the first stage call (or an explicit start()):
    the script is read and fingerprinted, reviewed for non-resumable code,
    and the resume decision is taken. A stage call made from inside the
    next parsed stage construct takes that construct's line; any other
    call is identified by call site.
    """

    def __init__(
        self,
        script_path: str,
        store: Optional[CheckpointStore] = None,
        prompter: Optional[Prompter] = None,
        grammar: Optional[StageGrammar] = None,
        settings: Optional[EngineSettings] = None,
        monitor: Optional[SessionMonitor] = None
    ):
        """Initialize the session.

        Args:
            script_path: Path of the script being run
            store: Checkpoint store (created from settings if not provided)
            prompter: Operator prompt boundary (console or defaults per settings)
            grammar: Stage grammar used to parse the script
            settings: Engine settings (read from the environment if not provided)
            monitor: Session monitor (creates one if not provided)
        """
        self.settings = settings or EngineSettings.from_environment()
        self.script_path = os.path.abspath(script_path)
        self.store = store or create_checkpoint_store(settings=self.settings)
        self.prompter = prompter or default_prompter(self.settings)
        self.grammar = grammar or PythonStageGrammar()
        self.monitor = monitor or SessionMonitor()

        self.data = SharedData()
        self.checkpoint_path = self.store.checkpoint_path(self.script_path)

        self.initialized = False
        self.finalized = False
        self.restore_mode = False
        self.target_stage: Optional[StageIdentity] = None
        self.match_by_ordinal = False
        self.script_unchanged = False
        self.current_fingerprint: Optional[str] = None

        self._source: Optional[str] = None
        self._layout: Optional[ScriptLayout] = None
        self._identities: List[StageIdentity] = []
        self._calls = 0
        self._next_span = 0
        self._lock = (
            CheckpointLock(self.checkpoint_path, self.script_path)
            if self.settings.use_lock
            else None
        )

    @classmethod
    def open(cls, script_path: Optional[str] = None, **kwargs) -> "ExecutionSession":
        """Create a session for the calling script.

        Args:
            script_path: Script path; defaults to the file of the calling frame
            **kwargs: Passed to the constructor

        Returns:
            A new, not yet started session
        """
        if script_path is None:
            script_path = identify_call_site().script_path
        return cls(script_path, **kwargs)

    @property
    def layout(self) -> Optional[ScriptLayout]:
        return self._layout

    def start(self) -> None:
        """Review the script and decide how this launch starts.

        Called implicitly by the first stage call. Does nothing once the
        session has started.

        Raises:
            LaunchStopped: If the operator quit
            RelaunchRequired: If the script was rewritten
            CheckpointLockError: If another process is running this script
        """
        if self.initialized:
            return

        source, fingerprint = read_source(self.script_path)
        self._source = source
        self.current_fingerprint = fingerprint

        try:
            self._layout = self.grammar.parse(source)
        except ScriptParseError as e:
            logger.warning(f"Cannot parse {self.script_path}, stages are identified by call site: {e}")
            self._layout = None

        if self._layout is not None:
            if self.settings.scan_enabled:
                review = NonResumableCodeReview(self.prompter, self.grammar, monitor=self.monitor)
                review.run(self.script_path, self._layout)
            self._identities = self._layout.identities(self.script_path)

        if self._lock is not None:
            self._lock.acquire()

        flow = ResumeDecisionFlow(
            self.store,
            self.prompter,
            analyzer=CheckpointAnalyzer(self.settings.stale_after_days),
            grammar=self.grammar,
        )
        try:
            plan = flow.decide(self.script_path, fingerprint, self._identities, source)
        except LaunchStopped:
            self._release_lock()
            raise

        self._apply_plan(plan)
        self.initialized = True
        self.monitor.emit(EventFactory.session_started(
            self.script_path, fingerprint, len(self._identities)
        ))
        logger.info(
            f"Session started for {self.script_path} "
            f"({len(self._identities)} stage(s), restore mode: {self.restore_mode})"
        )

    def _apply_plan(self, plan: ResumePlan) -> None:
        self.restore_mode = plan.restore_mode
        self.target_stage = plan.target_stage
        self.match_by_ordinal = plan.match_by_ordinal
        self.script_unchanged = plan.script_unchanged
        self.data.restore(plan.shared_data if plan.restore_mode else {})

        if plan.restore_mode:
            self.monitor.emit(EventFactory.session_restored(
                self.script_path, str(plan.target_stage), len(self.data)
            ))

    def next_identity(self) -> StageIdentity:
        """Identity of the stage being called now.

        The ordinal is the number of stage calls made before this one. The
        line is the start of the next parsed stage construct when the call
        comes from inside it; calls made elsewhere (in loops, functions or
        conditionals) are named by their call site and leave the parsed
        constructs for the calls that follow.
        """
        ordinal = self._calls
        self._calls += 1
        call_site = identify_call_site(ordinal=ordinal)

        stages = self._layout.stages if self._layout is not None else []
        if self._next_span < len(stages):
            span = stages[self._next_span]
            if call_site.script_path == self.script_path and span.start <= call_site.line <= span.end:
                self._next_span += 1
                return StageIdentity(script_path=self.script_path, line=span.start, ordinal=ordinal)
        return call_site

    def _matches_target(self, identity: StageIdentity) -> bool:
        target = self.target_stage
        if self.match_by_ordinal:
            return identity.ordinal == target.ordinal
        if identity.key != target.key:
            return False
        # An unchanged script repeats its calls in order
        if self.script_unchanged and target.ordinal is not None:
            return identity.ordinal == target.ordinal
        return True

    def stage(self, body: Callable[..., Any]) -> None:
        """Run one stage, or skip it if it completed in a previous launch.

        Usable as a plain call or as a decorator. The body receives the
        shared data when it accepts a positional argument.

        Args:
            body: Stage body

        Raises:
            StageExecutionError: If the body raised; the checkpoint is unchanged
        """
        if self.finalized:
            raise ScriptResumeError(f"Session for {self.script_path} is already finalized")

        self.start()
        identity = self.next_identity()

        if self.restore_mode:
            if self._matches_target(identity):
                self.restore_mode = False
                logger.info(f"Skipping stage {identity}: last completed stage, resuming after it")
                self.monitor.emit(EventFactory.stage(
                    EventType.RESTORE_TARGET_REACHED, self.script_path, identity.key, identity.ordinal
                ))
            else:
                logger.info(f"Skipping stage {identity}: completed in a previous run")
            self.monitor.emit(EventFactory.stage(
                EventType.STAGE_SKIPPED, self.script_path, identity.key, identity.ordinal
            ))
            return None

        self._execute(identity, body)
        return None

    def _execute(self, identity: StageIdentity, body: Callable[..., Any]) -> None:
        name = getattr(body, "__name__", repr(body))
        logger.info(f"Running stage {identity} ({name})")

        try:
            with StageTimer(self.monitor, self.script_path, identity.key, identity.ordinal):
                self._call_body(body)
        except Exception as e:
            logger.error(
                f"Stage {identity} ({name}) failed: {e}. "
                f"Relaunch the script to resume from this stage.",
                exc_info=True
            )
            self._release_lock()
            raise StageExecutionError(identity) from e

        self._save_checkpoint(identity)

    def _call_body(self, body: Callable[..., Any]) -> None:
        try:
            parameters = inspect.signature(body).parameters.values()
        except (TypeError, ValueError):
            body(self.data)
            return

        if any(parameter.kind in _POSITIONAL for parameter in parameters):
            body(self.data)
        else:
            body()

    def _save_checkpoint(self, identity: StageIdentity) -> None:
        record = CheckpointRecord(
            script_path=self.script_path,
            script_hash=self.current_fingerprint,
            script_source=self._source if self.settings.snapshot_source else None,
            last_completed_stage=identity,
            shared_data=self.data.snapshot(),
        )
        try:
            self.store.save(self.script_path, record)
        except CheckpointWriteError as e:
            logger.warning(f"{e}; resuming after stage {identity} is not guaranteed")
            self.monitor.emit(EventFactory.checkpoint_write_failed(
                self.script_path, identity.key, str(e)
            ))
            return

        logger.info(f"Checkpoint saved after stage {identity}")
        self.monitor.emit(EventFactory.checkpoint_saved(
            self.script_path, identity.key, self.checkpoint_path
        ))

    def checkpoint(self) -> Optional[CheckpointRecord]:
        """The checkpoint currently stored for this script, if any."""
        return self.store.load(self.script_path)

    def finalize(self) -> None:
        """Mark the whole run as complete and delete its checkpoint.

        Safe to call more than once.
        """
        if self.restore_mode:
            logger.warning(
                f"Finalizing {self.script_path} before reaching the last completed stage "
                f"{self.target_stage}; it no longer matches any stage call"
            )
            self.restore_mode = False

        existed = self.store.delete(self.script_path)
        self.finalized = True
        self._release_lock()

        self.monitor.emit(EventFactory.checkpoint_cleared(self.script_path, existed))
        self.monitor.emit(EventFactory.session_finalized(self.script_path, self.monitor.metrics))
        logger.info(f"Finalized {self.script_path}: {self.monitor.summary()}")

    def _release_lock(self) -> None:
        if self._lock is not None:
            self._lock.release()
