from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from . import hcl_store, json_store
from .locking import manifest_lock
from .models import BuildRecord
from .records import BuildContext, SourceArtifact, build_record, manifest_entry
from .settings import RecorderSettings

logger = logging.getLogger(__name__)

VARIANT_JSON = "json"
VARIANT_HCL = "hcl"


@dataclass(frozen=True)
class RecordResult:
    record: BuildRecord
    manifest_path: Path
    variant: str
    build_count: int | None = None
    lock_acquired: bool = True
    # Recording never gates the artifact's lifecycle: it is always kept.
    keep_artifact: bool = True


def record_artifact(
    source: SourceArtifact,
    context: BuildContext,
    settings: RecorderSettings,
    *,
    sleep: Callable[[float], None] = time.sleep,
    now: Callable[[], float] = time.time,
) -> RecordResult:
    """Record *source* into the manifest named by ``settings.output_path``.

    The whole read-merge-write runs under the sentinel lock. Paths ending in
    ``.pkrvars.hcl`` are written as a variables file, anything else as JSON.

    Raises:
        ReadError: If an existing manifest cannot be read.
        ParseError: If an existing manifest is malformed.
        WriteError: If the updated manifest cannot be written.
    """
    path = settings.output_file
    logger.debug("Recording artifact %s into %s (run %r)", source.artifact_id, path, settings.run_id)
    record = build_record(
        source,
        context,
        run_id=settings.run_id,
        strip_path=settings.strip_path,
        strip_time=settings.strip_time,
        now=now,
    )

    with manifest_lock(path, sleep=sleep) as lock:
        if hcl_store.is_hcl_path(path):
            document = hcl_store.load(path)
            hcl_store.merge_entry(
                document.manifest,
                context.build_group_name,
                context.builder_type,
                context.build_name,
                manifest_entry(record),
            )
            hcl_store.persist(path, document)
            return RecordResult(
                record=record,
                manifest_path=path,
                variant=VARIANT_HCL,
                lock_acquired=lock.acquired,
            )

        current = json_store.load(path)
        merged = json_store.merge(current, record, settings.run_id, settings.force)
        json_store.persist(path, merged)
        return RecordResult(
            record=record,
            manifest_path=path,
            variant=VARIANT_JSON,
            build_count=len(merged.builds),
            lock_acquired=lock.acquired,
        )
