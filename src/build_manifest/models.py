from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Serialized key order of a build record; keys in _OMIT_WHEN_EMPTY are dropped
# when they carry no data.
_RECORD_KEY_ORDER = (
    "artifact_id",
    "custom_data",
    "files",
    "builder_type",
    "build_name",
    "build_time",
    "packer_run_uuid",
)
_OMIT_WHEN_EMPTY = frozenset({"custom_data", "files", "builder_type", "build_name", "packer_run_uuid"})


class ArtifactFile(BaseModel):
    """One file produced by a build, with its best-effort size in bytes."""

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str
    size: int = 0


class BuildRecord(BaseModel):
    """Immutable record of one recorded artifact.

    Unknown keys read from an existing manifest are kept so a rewrite does not
    drop data written by other tools.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    artifact_id: str = ""
    custom_data: dict[str, str] = Field(default_factory=dict)
    files: list[ArtifactFile] = Field(default_factory=list)
    builder_type: str = ""
    build_name: str = ""
    build_time: int = 0
    packer_run_uuid: str = ""

    @field_validator("custom_data", "files", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return {} if info.field_name == "custom_data" else []
        return value

    @field_validator("builder_type", "build_name", "packer_run_uuid", "artifact_id", mode="before")
    @classmethod
    def _null_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_manifest_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping written into the ``builds`` list."""
        payload = self.model_dump(mode="json")
        ordered: dict[str, Any] = {}
        for key in _RECORD_KEY_ORDER:
            value = payload.pop(key)
            if key in _OMIT_WHEN_EMPTY and not value:
                continue
            ordered[key] = value
        ordered.update(payload)
        return ordered


class ManifestDocument(BaseModel):
    """The JSON manifest: accumulated builds plus the last run identifier written."""

    model_config = ConfigDict(extra="allow")

    builds: list[BuildRecord] = Field(default_factory=list)
    last_run_uuid: str = ""

    @field_validator("builds", mode="before")
    @classmethod
    def _null_builds(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("last_run_uuid", mode="before")
    @classmethod
    def _null_run(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_json(self) -> str:
        payload: dict[str, Any] = {
            "builds": [build.to_manifest_dict() for build in self.builds],
            "last_run_uuid": self.last_run_uuid,
        }
        payload.update(self.model_extra or {})
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
