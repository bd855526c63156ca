"""Exception types for the script resumption engine.

Failures fall into two groups:
- Recoverable file and serialization problems (load/write of checkpoints),
  which callers log and then treat as "no checkpoint"
- Fatal problems (unknown caller, failed stage body, broken rewrite),
  which end the current launch
"""

from typing import Optional


class ScriptResumeError(Exception):
    """Base class for all engine errors."""


class IdentityResolutionError(ScriptResumeError):
    """No frame on the call stack belongs to user script code."""


class ScriptParseError(ScriptResumeError):
    """The script source could not be parsed by the stage grammar."""


class CheckpointLoadError(ScriptResumeError):
    """A checkpoint file exists but cannot be read or decoded."""


class CheckpointWriteError(ScriptResumeError):
    """A checkpoint record could not be written to disk."""


class CheckpointLockError(ScriptResumeError):
    """Another live process holds the checkpoint lock for this script."""


class ScriptRewriteError(ScriptResumeError):
    """A remediation rewrite failed; the script file was left untouched."""


class StageExecutionError(ScriptResumeError):
    """A stage body raised. The original exception is the ``__cause__``."""

    def __init__(self, identity, message: Optional[str] = None):
        self.identity = identity
        super().__init__(
            message
            or f"Stage at {identity} failed; relaunch the script to resume from this stage"
        )


class LaunchStopped(SystemExit):
    """Ends the current launch without running further stages.

    Subclasses SystemExit so that an operator's "quit" terminates a script
    without a traceback.
    """

    def __init__(self, reason: str, code: int = 0):
        super().__init__(code)
        self.reason = reason

    def __str__(self) -> str:
        return self.reason


class RelaunchRequired(LaunchStopped):
    """The script was rewritten and must be launched again."""

    def __init__(self, reason: str):
        super().__init__(reason, code=1)
