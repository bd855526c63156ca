"""Storage module for script checkpoints.

This module provides:
- Abstract checkpoint store interface
- JSON file and in-memory store implementations
- Shared data encoding
- Single-writer checkpoint locking
"""

from typing import Optional

from ..config import EngineSettings
from .base import CheckpointStore
from .json_file import JsonFileCheckpointStore
from .locking import CheckpointLock
from .memory import InMemoryCheckpointStore


def create_checkpoint_store(
    backend_type: Optional[str] = None,
    settings: Optional[EngineSettings] = None
) -> CheckpointStore:
    """Create a checkpoint store based on configuration.

    Args:
        backend_type: Type of store ("json", "memory", or None to use settings)
        settings: Engine settings (read from the environment if not provided)

    Returns:
        Configured checkpoint store

    Environment Variables:
        SCRIPT_RESUME_STORE: Store type (json, memory)
        SCRIPT_RESUME_SUFFIX: Checkpoint file suffix for the json store
    """
    settings = settings or EngineSettings.from_environment()
    backend_type = (backend_type or settings.store_backend).lower()

    if backend_type == "json":
        return JsonFileCheckpointStore(suffix=settings.state_suffix)

    elif backend_type == "memory":
        return InMemoryCheckpointStore()

    else:
        raise ValueError(
            f"Unknown checkpoint store type: {backend_type}. "
            f"Supported types: json, memory"
        )


__all__ = [
    "CheckpointStore",
    "JsonFileCheckpointStore",
    "InMemoryCheckpointStore",
    "CheckpointLock",
    "create_checkpoint_store",
]
