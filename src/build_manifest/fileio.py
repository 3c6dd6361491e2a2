from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

from .errors import ParseError, ReadError, WriteError

_DEFAULT_MODE = 0o664


def read_existing_text(path: Path) -> str | None:
    """Return the manifest text at *path*, or ``None`` when it does not exist.

    Raises:
        ReadError: If the file exists but cannot be read.
        ParseError: If the file is not valid UTF-8.
    """
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ReadError(path, f"Unable to open {path} for reading: {exc}") from exc
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(path, f"Unable to parse content from {path}: invalid UTF-8 data ({exc})") from exc


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return _DEFAULT_MODE & ~umask


def atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* atomically.

    Writes to a temporary file in the same directory, then renames
    (``os.replace``) into place, so readers never observe a partial manifest.
    An existing file keeps its permission bits; new files get 0664 minus umask.
    A symlinked manifest is written through: its target is replaced and the
    link is left in place.

    Raises:
        WriteError: On any filesystem failure.
    """
    try:
        target = path.resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = _target_mode(target)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(target.parent),
            prefix=f".{target.name}.",
            suffix=".tmp",
        )
    except OSError as exc:
        raise WriteError(path, f"Unable to write {path}: {exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, str(target))
    except BaseException as exc:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        if isinstance(exc, OSError):
            raise WriteError(path, f"Unable to write {path}: {exc}") from exc
        raise
