"""Entry point for `python -m build_manifest` and the `build-manifest` CLI script."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from build_manifest.errors import ManifestError
from build_manifest.records import BuildContext, SourceArtifact
from build_manifest.recorder import record_artifact
from build_manifest.settings import RecorderSettings


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Record a build artifact into a shared manifest file")
    parser.add_argument("--artifact-id", required=True, help="Identifier of the artifact being recorded")
    parser.add_argument(
        "--file",
        dest="files",
        action="append",
        default=[],
        help="File produced by the build (repeatable)",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Manifest path; a '.pkrvars.hcl' suffix selects the variables-file format",
    )
    parser.add_argument("--builder-type", default="", help="Type of the builder that produced the artifact")
    parser.add_argument("--build-name", default="", help="Name of the build source")
    parser.add_argument("--build-group", default="", help="Name of the build group (variables-file format only)")
    parser.add_argument(
        "--custom-data",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Arbitrary data to add to the record (repeatable)",
    )
    parser.add_argument("--strip-path", action=argparse.BooleanOptionalAction, default=None, help="Record file basenames only")
    parser.add_argument("--strip-time", action=argparse.BooleanOptionalAction, default=None, help="Record build_time as 0")
    parser.add_argument(
        "--force",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Discard builds left by a different run before recording",
    )
    parser.add_argument("--run-id", default=None, help="Run identifier (default: $PACKER_RUN_UUID)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def parse_custom_data(pairs: Sequence[str]) -> dict[str, str]:
    custom_data: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"custom data must look like KEY=VALUE, got: {pair!r}")
        custom_data[key.strip()] = value
    return custom_data


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    env_path = Path.cwd() / ".env"
    if env_path.is_file():
        load_dotenv(env_path)

    try:
        settings = RecorderSettings.from_env().with_overrides(
            output_path=args.output,
            strip_path=args.strip_path,
            strip_time=args.strip_time,
            force=args.force,
            run_id=args.run_id,
        )
        custom_data = parse_custom_data(args.custom_data)
    except ValueError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    source = SourceArtifact(artifact_id=args.artifact_id, files=tuple(args.files))
    context = BuildContext(
        builder_type=args.builder_type,
        build_name=args.build_name,
        build_group_name=args.build_group,
        custom_data=custom_data,
    )
    try:
        result = record_artifact(source, context, settings)
    except ManifestError as exc:
        logging.error("Unable to record artifact: %s", exc)
        return 1

    print(f"manifest_path={result.manifest_path}")
    print(f"variant={result.variant}")
    if result.build_count is not None:
        print(f"builds={result.build_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
