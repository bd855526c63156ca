"""JSON-safe encoding of shared data.

Values of the exact JSON types (str, int, float, bool, None, list and dicts
with str keys) pass through unchanged so that checkpoint files stay
readable. Subclasses of those types, such as enums or OrderedDict, and all
other values are wrapped in a tagged object:

    {"__resume_type__": "tuple", "value": [...]}

Values with no dedicated tag are pickled and stored base64 encoded.
"""

import base64
import pickle
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict
from uuid import UUID

TYPE_TAG = "__resume_type__"

_PRIMITIVES = (str, bool, int, float)
_CONCRETE_PATH = type(Path())


def encode_value(obj: Any) -> Any:
    """Convert a value to a JSON-serializable structure.

    Args:
        obj: Any picklable Python value

    Returns:
        JSON-serializable structure

    Raises:
        TypeError: If the value has no tag and cannot be pickled
    """
    # Exact types only: subclasses such as enums or OrderedDict are pickled
    kind = type(obj)
    if obj is None or kind in _PRIMITIVES:
        return obj

    if kind is list:
        return [encode_value(item) for item in obj]

    if kind is dict:
        if all(type(key) is str for key in obj) and TYPE_TAG not in obj:
            return {key: encode_value(value) for key, value in obj.items()}
        return _tagged("dict", [[encode_value(k), encode_value(v)] for k, v in obj.items()])

    if kind is tuple:
        return _tagged("tuple", [encode_value(item) for item in obj])
    if kind is frozenset:
        return _tagged("frozenset", [encode_value(item) for item in obj])
    if kind is set:
        return _tagged("set", [encode_value(item) for item in obj])
    if kind is bytes:
        return _tagged("bytes", base64.b64encode(obj).decode("ascii"))
    if kind is datetime:
        return _tagged("datetime", obj.isoformat())
    if kind is date:
        return _tagged("date", obj.isoformat())
    if kind is time:
        return _tagged("time", obj.isoformat())
    if kind is Decimal:
        return _tagged("decimal", str(obj))
    if kind is UUID:
        return _tagged("uuid", str(obj))
    if kind is _CONCRETE_PATH:
        return _tagged("path", str(obj))
    if kind is complex:
        return _tagged("complex", [obj.real, obj.imag])

    try:
        payload = pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise TypeError(f"Cannot persist value of type {type(obj).__name__}: {e}") from e
    return _tagged("pickle", base64.b64encode(payload).decode("ascii"))


def decode_value(obj: Any) -> Any:
    """Inverse of :func:`encode_value`."""
    if isinstance(obj, list):
        return [decode_value(item) for item in obj]

    if not isinstance(obj, dict):
        return obj

    if TYPE_TAG not in obj:
        return {key: decode_value(value) for key, value in obj.items()}

    kind = obj[TYPE_TAG]
    value = obj.get("value")

    if kind == "dict":
        return {decode_value(k): decode_value(v) for k, v in value}
    if kind == "tuple":
        return tuple(decode_value(item) for item in value)
    if kind == "set":
        return {decode_value(item) for item in value}
    if kind == "frozenset":
        return frozenset(decode_value(item) for item in value)
    if kind == "bytes":
        return base64.b64decode(value)
    if kind == "datetime":
        return datetime.fromisoformat(value)
    if kind == "date":
        return date.fromisoformat(value)
    if kind == "time":
        return time.fromisoformat(value)
    if kind == "decimal":
        return Decimal(value)
    if kind == "uuid":
        return UUID(value)
    if kind == "path":
        return Path(value)
    if kind == "complex":
        return complex(value[0], value[1])
    if kind == "pickle":
        try:
            return pickle.loads(base64.b64decode(value))
        except Exception as e:
            raise ValueError(f"Cannot unpickle stored value: {e}") from e

    raise ValueError(f"Unknown encoded type: {kind}")


def encode_shared_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Encode a shared data mapping for a checkpoint file."""
    return {key: encode_value(value) for key, value in data.items()}


def decode_shared_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Decode a shared data mapping read from a checkpoint file."""
    return {key: decode_value(value) for key, value in data.items()}


def _tagged(kind: str, value: Any) -> Dict[str, Any]:
    return {TYPE_TAG: kind, "value": value}
