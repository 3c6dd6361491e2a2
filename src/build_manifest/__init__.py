from importlib.metadata import version

from .errors import LockTimeoutError, ManifestError, ParseError, ReadError, WriteError
from .hcl_store import HclManifest, merge_entry
from .locking import LockHandle, acquire_lock, manifest_lock
from .models import ArtifactFile, BuildRecord, ManifestDocument
from .recorder import RecordResult, record_artifact
from .records import BuildContext, SourceArtifact, artifact_files, build_record, manifest_entry
from .settings import RecorderSettings


def get_version() -> str:
    try:
        return version("build-manifest")
    except Exception:
        return "0.0.0"


__all__ = [
    "ArtifactFile",
    "BuildContext",
    "BuildRecord",
    "HclManifest",
    "LockHandle",
    "LockTimeoutError",
    "ManifestDocument",
    "ManifestError",
    "ParseError",
    "ReadError",
    "RecordResult",
    "RecorderSettings",
    "SourceArtifact",
    "WriteError",
    "acquire_lock",
    "artifact_files",
    "build_record",
    "get_version",
    "manifest_entry",
    "manifest_lock",
    "merge_entry",
    "record_artifact",
]
