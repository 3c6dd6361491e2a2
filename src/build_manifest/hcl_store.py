from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from . import hcl
from .errors import ParseError, WriteError
from .fileio import atomic_write_text, read_existing_text

logger = logging.getLogger(__name__)

HCL_SUFFIX = ".pkrvars.hcl"
MANIFEST_ATTRIBUTE = "manifest"


def is_hcl_path(path: Path | str) -> bool:
    return str(path).endswith(HCL_SUFFIX)


@dataclass
class HclManifest:
    """Top-level attributes of a variables file plus its decoded ``manifest`` mapping."""

    attributes: dict[str, hcl.Value] = field(default_factory=dict)
    manifest: dict[str, Any] = field(default_factory=dict)


def load(path: Path) -> HclManifest:
    """Parse the variables file at *path*.

    A missing or empty file has no attributes. A ``manifest`` attribute that is
    missing or does not evaluate to a mapping starts out empty.

    Raises:
        ReadError: If the file exists but cannot be read.
        ParseError: If the file is not valid attribute-only HCL.
    """
    text = read_existing_text(path)
    try:
        attributes = hcl.loads(text or "", filename=str(path))
    except hcl.HclSyntaxError as exc:
        raise ParseError(path, f"Failed to parse output file {path}: {exc}") from exc

    manifest = hcl.as_mapping(attributes.get(MANIFEST_ATTRIBUTE))
    if manifest is None:
        if MANIFEST_ATTRIBUTE in attributes:
            logger.debug("Attribute %r in %s is not a mapping, starting from an empty one", MANIFEST_ATTRIBUTE, path)
        manifest = {}
    return HclManifest(attributes=attributes, manifest=copy.deepcopy(manifest))


def merge_entry(
    mapping: dict[str, Any],
    group_name: str,
    builder_type: str,
    build_name: str,
    entry: dict[str, Any],
) -> dict[str, Any]:
    """Set ``mapping[group_name][builder_type][build_name] = entry`` in place.

    Empty group or builder segments are skipped, so the entry lands one level
    shallower. The build name is always used as the final key. Whatever was
    stored at that key before is replaced.
    """
    target = mapping
    for key in (group_name, builder_type):
        if key == "":
            continue
        value = target.get(key)
        if not isinstance(value, dict):
            if key in target:
                logger.warning("Replacing non-mapping value at manifest key %r", key)
            value = {}
            target[key] = value
        target = value
    target[build_name] = entry
    return mapping


def persist(path: Path, document: HclManifest) -> None:
    """Write every top-level attribute back, with ``manifest`` replaced.

    Raises:
        WriteError: If the document cannot be encoded or written.
    """
    attributes = dict(document.attributes)
    attributes[MANIFEST_ATTRIBUTE] = document.manifest
    try:
        text = hcl.dumps(attributes)
    except (TypeError, ValueError) as exc:
        raise WriteError(path, f"Unable to encode {path}: {exc}") from exc
    atomic_write_text(path, text)
    logger.info("Wrote manifest attribute to %s", path)
