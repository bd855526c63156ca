"""Engine configuration read from the environment.

Environment Variables:
    SCRIPT_RESUME_STORE: Checkpoint backend ("json" or "memory")
    SCRIPT_RESUME_SUFFIX: Suffix appended to the script path for the checkpoint file
    SCRIPT_RESUME_INTERACTIVE: Prompt the operator ("true"/"false", default: stdin is a TTY)
    SCRIPT_RESUME_SCAN: Scan for non-resumable code at startup (default: true)
    SCRIPT_RESUME_SNAPSHOT_SOURCE: Keep a copy of the script in each checkpoint (default: true)
    SCRIPT_RESUME_LOCK: Hold a single-writer lock while the script runs (default: true)
    SCRIPT_RESUME_REMEDIATION: Action taken on non-resumable code when not interactive
    SCRIPT_RESUME_STALE_DAYS: Age in days after which a checkpoint is reported as stale
"""

import os
import sys
from typing import Optional

from pydantic import BaseModel, Field

from .core.models import RemediationAction

DEFAULT_SUFFIX = ".resume.json"


def _env_flag(name: str, default: Optional[bool]) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class EngineSettings(BaseModel):
    """Settings shared by the session, the store and the prompters."""

    store_backend: str = "json"
    state_suffix: str = DEFAULT_SUFFIX
    interactive: Optional[bool] = None
    scan_enabled: bool = True
    snapshot_source: bool = True
    use_lock: bool = True
    non_interactive_remediation: RemediationAction = RemediationAction.IGNORE
    stale_after_days: int = Field(default=7, ge=0)

    @property
    def is_interactive(self) -> bool:
        """Whether to prompt; auto-detected from stdin when unset."""
        if self.interactive is not None:
            return self.interactive
        return bool(sys.stdin and sys.stdin.isatty())

    @classmethod
    def from_environment(cls) -> "EngineSettings":
        """Create settings from ``SCRIPT_RESUME_*`` environment variables."""
        remediation = os.getenv("SCRIPT_RESUME_REMEDIATION", RemediationAction.IGNORE.value)
        return cls(
            store_backend=os.getenv("SCRIPT_RESUME_STORE", "json").lower(),
            state_suffix=os.getenv("SCRIPT_RESUME_SUFFIX", DEFAULT_SUFFIX),
            interactive=_env_flag("SCRIPT_RESUME_INTERACTIVE", None),
            scan_enabled=_env_flag("SCRIPT_RESUME_SCAN", True),
            snapshot_source=_env_flag("SCRIPT_RESUME_SNAPSHOT_SOURCE", True),
            use_lock=_env_flag("SCRIPT_RESUME_LOCK", True),
            non_interactive_remediation=RemediationAction(remediation.lower()),
            stale_after_days=int(os.getenv("SCRIPT_RESUME_STALE_DAYS", "7")),
        )
