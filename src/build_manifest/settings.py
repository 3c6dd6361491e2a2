from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

DEFAULT_OUTPUT_PATH = "packer-manifest.json"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class RecorderSettings:
    """Recorder settings loaded from environment with fail-fast validation."""

    output_path: str = DEFAULT_OUTPUT_PATH
    strip_path: bool = False
    strip_time: bool = False
    force: bool = False
    run_id: str = ""

    @classmethod
    def from_env(cls) -> "RecorderSettings":
        return cls(
            output_path=os.getenv("MANIFEST_OUTPUT_PATH", DEFAULT_OUTPUT_PATH),
            strip_path=_get_env_bool("MANIFEST_STRIP_PATH", default=False),
            strip_time=_get_env_bool("MANIFEST_STRIP_TIME", default=False),
            force=_get_env_bool("PACKER_FORCE", default=False),
            # Shared by every post-processor started within one build run.
            run_id=os.getenv("PACKER_RUN_UUID", ""),
        ).normalized()

    @property
    def output_file(self) -> Path:
        return Path(self.output_path)

    def with_overrides(self, **changes: object) -> "RecorderSettings":
        """Return a copy with the non-``None`` *changes* applied, re-validated."""
        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied).normalized()

    def normalized(self) -> "RecorderSettings":
        """Validate and normalize all fields. Raises ValueError on invalid configuration."""
        output_path = self.output_path.strip() or DEFAULT_OUTPUT_PATH
        if output_path.endswith(os.sep):
            raise ValueError(f"MANIFEST_OUTPUT_PATH must name a file, got: {output_path!r}")
        return replace(self, output_path=output_path)


def _get_env_bool(name: str, default: bool) -> bool:
    """Parse a boolean from an environment variable.

    Args:
        name: Environment variable name.
        default: Value to return if the variable is unset or blank.

    Returns:
        The parsed boolean.

    Raises:
        ValueError: If the value is not a recognized boolean spelling.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false/1/0/yes/no/on/off), got: {raw!r}")
