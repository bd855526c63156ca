"""Single-writer lock for a script's checkpoint.

The lock is a small JSON file next to the checkpoint naming the owning
process. A lock whose process is gone, or which cannot be read, is stale
and gets replaced.
"""

import atexit
import getpass
import json
import os
import socket
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import logging
logger = logging.getLogger(__name__)

from ..core.models import utc_now
from ..errors import CheckpointLockError

LOCK_SUFFIX = ".lock"


@dataclass(frozen=True)
class LockPayload:
    pid: int
    host: str
    user: str
    script_path: str
    acquired_at: str

    def to_json(self) -> str:
        return json.dumps(asdict(self), sort_keys=True)


def _pid_active(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        return True


def _read_payload(lock_file: Path) -> dict:
    try:
        payload = json.loads(lock_file.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class CheckpointLock:
    """PID lock file guarding one script's checkpoint."""

    def __init__(self, checkpoint_path: str, script_path: str):
        """Initialize the lock.

        Args:
            checkpoint_path: Checkpoint location the lock protects
            script_path: Script that owns the checkpoint
        """
        self.lock_file = Path(checkpoint_path + LOCK_SUFFIX)
        self.script_path = script_path
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def holder(self) -> Optional[dict]:
        """Payload of the current lock file, if one exists."""
        if not self.lock_file.exists():
            return None
        return _read_payload(self.lock_file)

    def acquire(self) -> LockPayload:
        """Take the lock, replacing stale locks.

        Returns:
            Payload written to the lock file

        Raises:
            CheckpointLockError: If another live process holds the lock
        """
        prior = self.holder()
        if prior is not None:
            prior_pid = prior.get("pid") if isinstance(prior.get("pid"), int) else 0
            same_host = prior.get("host", socket.gethostname()) == socket.gethostname()
            if prior_pid != os.getpid() and same_host and _pid_active(prior_pid):
                raise CheckpointLockError(
                    f"Checkpoint for {self.script_path} is locked by pid={prior_pid} "
                    f"user={prior.get('user', '?')} since {prior.get('acquired_at', '?')}"
                )
            if prior_pid != os.getpid():
                logger.warning(f"Replacing stale checkpoint lock {self.lock_file}: {prior}")

        payload = LockPayload(
            pid=os.getpid(),
            host=socket.gethostname(),
            user=_current_user(),
            script_path=self.script_path,
            acquired_at=utc_now().isoformat(),
        )
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        self.lock_file.write_text(payload.to_json() + "\n", encoding="utf-8")
        if not self._held:
            atexit.register(self.release)
        self._held = True
        return payload

    def release(self) -> None:
        """Remove the lock file if this process holds it."""
        if not self._held:
            return
        self._held = False
        atexit.unregister(self.release)

        prior = _read_payload(self.lock_file)
        if prior.get("pid") not in (None, os.getpid()):
            logger.warning(f"Lock {self.lock_file} was taken over by pid={prior.get('pid')}")
            return
        try:
            self.lock_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Cannot remove checkpoint lock {self.lock_file}: {e}")
