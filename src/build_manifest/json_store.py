from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from .errors import ParseError
from .fileio import atomic_write_text, read_existing_text
from .models import BuildRecord, ManifestDocument

logger = logging.getLogger(__name__)


def load(path: Path) -> ManifestDocument:
    """Read the JSON manifest at *path*.

    A missing or zero-byte file yields an empty document.

    Raises:
        ReadError: If the file exists but cannot be read.
        ParseError: If the content is not a JSON manifest document.
    """
    text = read_existing_text(path)
    if text is None:
        logger.debug("No manifest at %s, starting from an empty document", path)
        return ManifestDocument()
    if not text:
        logger.debug("Manifest at %s is empty, starting from an empty document", path)
        return ManifestDocument()
    try:
        return ManifestDocument.model_validate_json(text)
    except ValidationError as exc:
        raise ParseError(path, f"Unable to parse content from {path}: {exc}") from exc


def merge(document: ManifestDocument, record: BuildRecord, run_id: str, force: bool) -> ManifestDocument:
    """Return *document* with *record* appended.

    Each post-processor runs in its own process, so runs are told apart by the
    run identifier stored in the file. When *force* is set and the stored
    identifier differs from *run_id*, builds left by the previous run are
    discarded first; later steps of the same run keep accumulating.
    """
    builds = list(document.builds)
    if force and run_id != document.last_run_uuid:
        logger.info(
            "Discarding %d build(s) from previous run %r (current run %r)",
            len(builds),
            document.last_run_uuid,
            run_id,
        )
        builds = []
    builds.append(record)
    return document.model_copy(update={"builds": builds, "last_run_uuid": run_id})


def persist(path: Path, document: ManifestDocument) -> None:
    """Write *document* to *path* as 2-space indented JSON.

    Raises:
        WriteError: If the file cannot be written.
    """
    atomic_write_text(path, document.to_json())
    logger.info("Wrote %d build(s) to %s", len(document.builds), path)
