"""In-memory checkpoint store.

Suitable for tests and dry runs. Records are round-tripped through the
same encoding as the JSON store so that they behave like persisted copies.
"""

import os
from typing import Any, Dict, Optional

from ..core.models import CheckpointRecord
from ..errors import CheckpointWriteError
from .base import CheckpointStore
from .json_file import record_from_payload, record_to_payload


class InMemoryCheckpointStore(CheckpointStore):
    """Checkpoint store keeping records in a dict."""

    def __init__(self, suffix: str = ".resume"):
        self.suffix = suffix
        self._records: Dict[str, Dict[str, Any]] = {}

    def checkpoint_path(self, script_path: str) -> str:
        return os.path.abspath(script_path) + self.suffix

    def load(self, script_path: str) -> Optional[CheckpointRecord]:
        payload = self._records.get(self.checkpoint_path(script_path))
        if payload is None:
            return None
        return record_from_payload(payload)

    def save(self, script_path: str, record: CheckpointRecord) -> None:
        try:
            payload = record_to_payload(record)
        except (TypeError, ValueError) as e:
            raise CheckpointWriteError(f"Cannot serialize checkpoint for {script_path}: {e}") from e
        self._records[self.checkpoint_path(script_path)] = payload

    def delete(self, script_path: str) -> bool:
        return self._records.pop(self.checkpoint_path(script_path), None) is not None
