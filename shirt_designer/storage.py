"""Storage backend for uploaded and exported image bytes.

Files are written to the local filesystem under a base directory and
addressed by relative URLs (``/uploads/<name>``, ``/exports/<name>``) which
the FastAPI app serves as static files.

A *raster sink* is anything with ``deliver(data, filename) -> str`` that
accepts encoded PNG bytes from the compositor and returns where they ended
up. :class:`FileSystemSink` is what the app uses; :class:`MemorySink` keeps
bytes in memory for callers that want them directly.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Protocol

from shirt_designer.errors import ExportIOError

logger = logging.getLogger(__name__)


def _ensure_dir(path: str) -> None:
    """Create parent directories for the given path if they do not exist."""
    os.makedirs(path, exist_ok=True)


def _safe_join(base_dir: str, path: str) -> str:
    base = os.path.realpath(base_dir)
    dest = os.path.realpath(os.path.join(base, path.lstrip("/\\")))
    if os.path.commonpath([base, dest]) != base:
        raise ValueError(f"Path escapes storage directory: {path!r}")
    return dest


def save_bytes(base_dir: str, path: str, data: bytes, url_prefix: str) -> str:
    """Persist a byte string under ``base_dir``.

    Args:
        base_dir: Directory that backs ``url_prefix``.
        path: Relative path within ``base_dir``, e.g. 'export-1234.png'.
        data: Raw byte content to write.
        url_prefix: Public prefix the directory is served under, e.g. '/exports'.

    Returns:
        A URL string that can be used by the frontend to retrieve the data.

    Raises:
        OSError: If the file cannot be written.
        ValueError: If ``path`` points outside ``base_dir``.
    """
    dest_path = _safe_join(base_dir, path)
    _ensure_dir(os.path.dirname(dest_path))
    with open(dest_path, "wb") as f:
        f.write(data)
    rel = os.path.relpath(dest_path, os.path.realpath(base_dir))
    return f"{url_prefix.rstrip('/')}/{rel}".replace("\\", "/")


def delete_file(base_dir: str, url_prefix: str, url: str) -> bool:
    """Remove the file behind ``url`` if it lives under ``url_prefix``.

    Returns True when a file was removed.
    """
    prefix = url_prefix.rstrip("/") + "/"
    if not url.startswith(prefix):
        return False
    try:
        path = _safe_join(base_dir, url[len(prefix):])
    except ValueError:
        logger.warning("Refusing to delete %s outside %s", url, base_dir)
        return False
    if not os.path.isfile(path):
        return False
    os.remove(path)
    return True


class RasterSink(Protocol):
    def deliver(self, data: bytes, filename: str) -> str:
        ...


class FileSystemSink:
    """Writes exports into a directory served under ``url_prefix``."""

    def __init__(self, base_dir: str, url_prefix: str = "/exports"):
        self.base_dir = base_dir
        self.url_prefix = url_prefix

    def deliver(self, data: bytes, filename: str) -> str:
        try:
            return save_bytes(self.base_dir, filename, data, self.url_prefix)
        except (OSError, ValueError) as e:
            raise ExportIOError(f"Could not write export {filename!r}: {e}") from e


class MemorySink:
    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}

    def deliver(self, data: bytes, filename: str) -> str:
        self.files[filename] = data
        return f"memory://{filename}"
