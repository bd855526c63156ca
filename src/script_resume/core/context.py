"""Shared data passed to every stage body."""

from collections import UserDict
from typing import Any, Dict, Mapping


class SharedData(UserDict):
    """Key/value store visible to all stages of one script.

    A snapshot is persisted with every checkpoint and restored before the
    first stage of a resumed launch runs. Keys must be strings.
    """

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise TypeError(f"Shared data keys must be strings, got {type(key).__name__}")
        super().__setitem__(key, value)

    def snapshot(self) -> Dict[str, Any]:
        """Shallow copy of the current contents, for persisting."""
        return dict(self.data)

    def restore(self, values: Mapping[str, Any]) -> None:
        """Replace the current contents with restored values."""
        self.data.clear()
        for key, value in values.items():
            self[key] = value
