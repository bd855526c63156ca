"""JSON file checkpoint store.

Each script gets one checkpoint file next to it, named by appending a fixed
suffix to the script path. Writes go to a temporary file in the same
directory which then replaces the checkpoint, so a crash mid-write leaves
the previous checkpoint intact.
"""

import json
import os
import pickle
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import logging
logger = logging.getLogger(__name__)

from ..config import DEFAULT_SUFFIX
from ..core.models import CheckpointRecord
from ..errors import CheckpointLoadError, CheckpointWriteError
from .base import CheckpointStore
from .codec import decode_shared_data, encode_shared_data

_DECODE_ERRORS = (
    ValueError,
    TypeError,
    KeyError,
    AttributeError,
    ImportError,
    IndexError,
    EOFError,
    pickle.UnpicklingError,
)


def record_to_payload(record: CheckpointRecord) -> Dict[str, Any]:
    """Convert a record to a JSON-serializable dict."""
    payload = record.model_dump(mode="json", exclude={"shared_data"})
    payload["shared_data"] = encode_shared_data(record.shared_data)
    return payload


def record_from_payload(payload: Dict[str, Any]) -> CheckpointRecord:
    """Rebuild a record from a decoded JSON dict."""
    if not isinstance(payload, dict):
        raise ValueError("Checkpoint payload is not an object")
    payload = dict(payload)
    payload["shared_data"] = decode_shared_data(payload.get("shared_data") or {})
    return CheckpointRecord.model_validate(payload)


class JsonFileCheckpointStore(CheckpointStore):
    """Checkpoint store writing one JSON file per script."""

    def __init__(self, suffix: str = DEFAULT_SUFFIX):
        """Initialize the store.

        Args:
            suffix: Suffix appended to the script path to name its checkpoint file
        """
        if not suffix:
            raise ValueError("Checkpoint suffix must not be empty")
        self.suffix = suffix

    def checkpoint_path(self, script_path: str) -> str:
        return os.path.abspath(script_path) + self.suffix

    def read(self, script_path: str) -> Optional[CheckpointRecord]:
        """Load the checkpoint, raising on decode problems.

        Returns:
            The record, or None if no checkpoint file exists

        Raises:
            CheckpointLoadError: If the file exists but cannot be decoded
        """
        path = Path(self.checkpoint_path(script_path))
        if not path.exists():
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return record_from_payload(payload)
        except (OSError, *_DECODE_ERRORS) as e:
            raise CheckpointLoadError(f"Cannot read checkpoint {path}: {e}") from e

    def load(self, script_path: str) -> Optional[CheckpointRecord]:
        try:
            return self.read(script_path)
        except CheckpointLoadError as e:
            logger.warning(f"{e}; treating as no prior run")
            return None

    def save(self, script_path: str, record: CheckpointRecord) -> None:
        path = Path(self.checkpoint_path(script_path))

        try:
            content = json.dumps(record_to_payload(record), ensure_ascii=False, indent=2) + "\n"
        except (TypeError, ValueError) as e:
            raise CheckpointWriteError(f"Cannot serialize checkpoint for {script_path}: {e}") from e

        temp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                delete=False,
                dir=str(path.parent),
                prefix=path.name + ".",
                suffix=".tmp",
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, path)
        except OSError as e:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()
            raise CheckpointWriteError(f"Cannot write checkpoint {path}: {e}") from e

        logger.debug(f"Saved checkpoint {path}")

    def delete(self, script_path: str) -> bool:
        path = Path(self.checkpoint_path(script_path))
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Cannot delete checkpoint {path}: {e}")
            return False
        return True

    def exists(self, script_path: str) -> bool:
        return Path(self.checkpoint_path(script_path)).exists()
