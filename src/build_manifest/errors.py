from __future__ import annotations

from pathlib import Path


class ManifestError(RuntimeError):
    """Base class for failures while recording into a manifest file."""

    def __init__(self, path: Path | str, message: str) -> None:
        super().__init__(message)
        self.path = Path(path)


class ReadError(ManifestError):
    """Raised when an existing manifest exists but cannot be read."""


class ParseError(ManifestError):
    """Raised when manifest content is present but malformed for its format."""


class WriteError(ManifestError):
    """Raised when the updated manifest cannot be persisted."""


class LockTimeoutError(ManifestError):
    """Describes an exhausted lock acquisition. Logged, never raised by the recorder."""
