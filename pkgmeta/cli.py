"""CLI entrypoints for pkgmeta commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .config import ConfigError, load_config
from .errors import MetadataError
from .logging import configure_logging
from .tasks import AssemblyMetadataTask, GetPackageMetadata, ResolvePackageReference

_TASKS = {
    "package": GetPackageMetadata,
    "reference": ResolvePackageReference,
}


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_resolution_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "project",
        help="Path to the project file to read metadata from.",
    )
    parser.add_argument(
        "-p",
        "--property",
        dest="properties",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a global property; may be repeated.",
    )
    parser.add_argument(
        "--version-suffix",
        default=None,
        help="Suffix that replaces any pre-release suffix in the resolved version.",
    )
    parser.add_argument(
        "--pattern",
        default=None,
        help="Regular expression matching assembly information files (default: .*AssemblyInfo.cs).",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format for the resolved fields.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkgmeta",
        description="Resolve package metadata from project properties and assembly attributes.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    package_parser = subparsers.add_parser(
        "package",
        help="Resolve version, author and description for a package manifest.",
    )
    _add_verbose_option(package_parser, suppress_default=True)
    _add_resolution_options(package_parser)

    reference_parser = subparsers.add_parser(
        "reference",
        help="Resolve the package version of a referenced project.",
    )
    _add_verbose_option(reference_parser, suppress_default=True)
    _add_resolution_options(reference_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for pkgmeta commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        global_properties = _parse_properties(args.properties)
    except ValueError as exc:
        parser.error(str(exc))

    project_path = Path(args.project)
    try:
        config = load_config(project_path)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    properties: Dict[str, str] = dict(config.properties)
    properties.update(global_properties)
    version_suffix = args.version_suffix if args.version_suffix is not None else config.version_suffix
    if version_suffix is not None:
        properties["VersionSuffix"] = version_suffix

    task: AssemblyMetadataTask = _TASKS[args.command](
        project_path,
        assembly_info_file_pattern=args.pattern or config.assembly_info_pattern,
        global_properties=properties,
    )

    try:
        valid = task.execute()
    except FileNotFoundError as exc:
        parser.exit(1, f"{exc}\n")
    except MetadataError as exc:
        parser.exit(1, f"pkgmeta {args.command} failed: {exc}\nRun with --verbose for more details.\n")
    except Exception as exc:  # pragma: no cover - defensive guard
        parser.exit(1, f"pkgmeta {args.command} failed: {exc}\nRun with --verbose for more details.\n")

    outputs = task.outputs()
    print(_render(outputs, valid, args.format))
    if not valid:
        parser.exit(1)


def _parse_properties(values: List[str]) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    for value in values:
        name, separator, text = value.partition("=")
        if not separator or not name.strip():
            raise ValueError(f"Invalid property '{value}'; expected NAME=VALUE")
        properties[name.strip()] = text
    return properties


def _render(outputs: Dict[str, Optional[str]], valid: bool, output_format: str) -> str:
    if output_format == "json":
        payload: Dict[str, object] = dict(outputs)
        payload["IsValid"] = valid
        return json.dumps(payload, indent=2)
    return "\n".join(f"{name}={value or ''}" for name, value in outputs.items())


if __name__ == "__main__":
    main(sys.argv[1:])
