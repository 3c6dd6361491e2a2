from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from .models import ArtifactFile, BuildRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceArtifact:
    """The artifact handed over by the build tool."""

    artifact_id: str
    files: tuple[str, ...] = ()


@dataclass(frozen=True)
class BuildContext:
    """Which build produced the artifact, plus already-interpolated custom data."""

    builder_type: str = ""
    build_name: str = ""
    build_group_name: str = ""
    custom_data: Mapping[str, str] = field(default_factory=dict)


def artifact_files(names: Iterable[str], *, strip_path: bool) -> list[ArtifactFile]:
    """Describe each produced file; a file that cannot be stat'd gets size 0."""
    files: list[ArtifactFile] = []
    for name in names:
        size = 0
        try:
            size = os.stat(name).st_size
        except OSError as exc:
            logger.debug("Unable to stat artifact file %s: %s", name, exc)
        files.append(ArtifactFile(name=os.path.basename(name) if strip_path else name, size=size))
    return files


def build_record(
    source: SourceArtifact,
    context: BuildContext,
    *,
    run_id: str,
    strip_path: bool = False,
    strip_time: bool = False,
    now: Callable[[], float] = time.time,
) -> BuildRecord:
    """Assemble the record for one post-processing invocation.

    ``build_time`` is 0 when *strip_time* is set so manifests from different
    runs can be compared byte for byte.
    """
    return BuildRecord(
        artifact_id=source.artifact_id,
        files=artifact_files(source.files, strip_path=strip_path),
        builder_type=context.builder_type,
        build_name=context.build_name,
        custom_data=dict(context.custom_data),
        build_time=0 if strip_time else int(now()),
        packer_run_uuid=run_id,
    )


def manifest_entry(record: BuildRecord) -> dict[str, Any]:
    """Entry stored under ``manifest[group][type][name]`` in a variables file."""
    entry: dict[str, Any] = {
        "artifact_id": record.artifact_id,
        "packer_run_uuid": record.packer_run_uuid,
    }
    if record.custom_data:
        entry["custom_data"] = dict(record.custom_data)
    if record.files:
        entry["files"] = [{"name": item.name, "size": item.size} for item in record.files]
    return entry
