"""Base checkpoint store interface.

This abstract base class defines the contract that all checkpoint stores
must follow, so the execution session can run against disk or memory
without changing its logic.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..core.models import CheckpointRecord


class CheckpointStore(ABC):
    """Abstract base class for checkpoint stores.

    A store holds at most one record per script path. The location of that
    record is derived only from the script path.
    """

    @abstractmethod
    def checkpoint_path(self, script_path: str) -> str:
        """Location of the checkpoint for a script."""
        pass

    @abstractmethod
    def load(self, script_path: str) -> Optional[CheckpointRecord]:
        """Load the checkpoint for a script.

        Returns None when no checkpoint exists or it cannot be decoded;
        decoding problems are logged, not raised.
        """
        pass

    @abstractmethod
    def save(self, script_path: str, record: CheckpointRecord) -> None:
        """Replace the checkpoint for a script.

        Raises:
            CheckpointWriteError: If the record could not be written
        """
        pass

    @abstractmethod
    def delete(self, script_path: str) -> bool:
        """Delete the checkpoint for a script. Returns True if one was removed."""
        pass

    def exists(self, script_path: str) -> bool:
        """Check whether a checkpoint exists for a script."""
        return self.load(script_path) is not None
