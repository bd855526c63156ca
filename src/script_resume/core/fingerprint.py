"""Stage and script fingerprinting.

Two kinds of fingerprint are used:
- A stage identity, the ``"path:line"`` of a call site in user code
- A script fingerprint, the SHA-256 digest of the script file's bytes
"""

import hashlib
import inspect
import os
from pathlib import Path
from typing import Optional, Tuple

from ..errors import IdentityResolutionError
from .models import StageIdentity

ENGINE_ROOT = Path(__file__).resolve().parent.parent


def is_engine_frame(filename: str) -> bool:
    """Check whether a frame's source file belongs to the engine itself.

    Synthetic frames (``<string>``, ``<frozen runpy>``) count as engine
    frames since they carry no user source position.
    """
    if not filename or filename.startswith("<"):
        return True
    try:
        path = Path(filename).resolve()
    except OSError:
        return False
    return path == ENGINE_ROOT or ENGINE_ROOT in path.parents


def identify_call_site(ordinal: Optional[int] = None) -> StageIdentity:
    """Find the innermost frame on the call stack that is user script code.

    Args:
        ordinal: Optional stage ordinal to attach to the identity

    Returns:
        Identity of the user frame as ``path:line``

    Raises:
        IdentityResolutionError: If every frame belongs to the engine
    """
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = frame.f_code.co_filename
            if not is_engine_frame(filename):
                return StageIdentity(
                    script_path=os.path.abspath(filename),
                    line=frame.f_lineno,
                    ordinal=ordinal,
                )
            frame = frame.f_back
    finally:
        del frame
    raise IdentityResolutionError("Could not find a calling frame outside the engine")


def hash_bytes(content: bytes) -> str:
    """Hex SHA-256 digest of raw script content."""
    return hashlib.sha256(content).hexdigest()


def hash_source(path) -> str:
    """Compute the fingerprint of a script file.

    The digest covers the raw bytes, so whitespace and line ending changes
    produce a different fingerprint.

    Args:
        path: Script file path

    Returns:
        Hex SHA-256 digest
    """
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def read_source(path) -> Tuple[str, str]:
    """Read a script once and fingerprint exactly what was read.

    Line endings are kept as they are on disk.

    Args:
        path: Script file path

    Returns:
        Tuple of (source text, fingerprint)
    """
    with open(path, "rb") as f:
        content = f.read()
    return content.decode("utf-8"), hash_bytes(content)
