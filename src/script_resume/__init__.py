"""Script Resume - checkpoint and resume for long-running scripts.

A multi-stage script that gets interrupted (crash, manual stop, failed
environment) can be launched again and run only the stages that did not
complete:
- Stages are identified by their position in the script's source
- A checkpoint with the shared data is saved after every successful stage
- On the next launch the operator chooses to resume, start fresh or quit
- Code outside stages, which would re-run on every launch, is flagged
  and can be rewritten before anything runs
"""

# Load environment variables from .env file if it exists
from dotenv import find_dotenv, load_dotenv
load_dotenv(find_dotenv(usecwd=True))

import logging
from typing import Optional

logger = logging.getLogger(__name__)

from .core import (
    CheckpointRecord,
    CheckpointStatus,
    ExecutionSession,
    NonResumableBlock,
    RemediationAction,
    ResumeChoice,
    SharedData,
    StageIdentity,
)
from .config import EngineSettings
from .errors import (
    CheckpointLoadError,
    CheckpointLockError,
    CheckpointWriteError,
    IdentityResolutionError,
    LaunchStopped,
    RelaunchRequired,
    ScriptParseError,
    ScriptResumeError,
    ScriptRewriteError,
    StageExecutionError,
)
from .monitoring import EventType, SessionMonitor
from .prompting import ConsolePrompter, NonInteractivePrompter, Prompter
from .scanning import NonResumableScanner, PythonStageGrammar, ScriptRewriter, StageGrammar
from .storage import (
    CheckpointStore,
    InMemoryCheckpointStore,
    JsonFileCheckpointStore,
    create_checkpoint_store,
)

__version__ = "1.0.0"

__all__ = [
    # Session
    "open_session",
    "ExecutionSession",
    "SharedData",
    # Models
    "StageIdentity",
    "CheckpointRecord",
    "CheckpointStatus",
    "ResumeChoice",
    "RemediationAction",
    "NonResumableBlock",
    # Configuration
    "EngineSettings",
    # Storage
    "CheckpointStore",
    "JsonFileCheckpointStore",
    "InMemoryCheckpointStore",
    "create_checkpoint_store",
    # Scanning
    "StageGrammar",
    "PythonStageGrammar",
    "NonResumableScanner",
    "ScriptRewriter",
    # Prompting
    "Prompter",
    "ConsolePrompter",
    "NonInteractivePrompter",
    # Monitoring
    "EventType",
    "SessionMonitor",
    # Errors
    "ScriptResumeError",
    "IdentityResolutionError",
    "ScriptParseError",
    "CheckpointLoadError",
    "CheckpointWriteError",
    "CheckpointLockError",
    "ScriptRewriteError",
    "StageExecutionError",
    "LaunchStopped",
    "RelaunchRequired",
]


def open_session(script_path: Optional[str] = None, **kwargs) -> ExecutionSession:
    """Open an execution session for the calling script.

    Args:
        script_path: Script path; defaults to the file calling this function
        **kwargs: Session options (store, prompter, grammar, settings, monitor)

    Returns:
        Execution session; it starts on the first stage call
    """
    return ExecutionSession.open(script_path, **kwargs)
