"""Collection Hub CLI entry points.
This module exposes the fetch, build, run, and list commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.config import HubConfig, parse_log_level
from core.errors import HubError
from core.logging_config import configure_logging
from core.types import FetchReport, PipelineReport
from sdk.hub_client import HubClient

FATAL_EXIT_CODE = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="collection-hub",
        description="Fetch API collections and build canonical documents",
    )
    parser.add_argument("--registry", help="Override HUB_REGISTRY_FILE for this command")
    parser.add_argument(
        "--collections-root",
        help="Override HUB_COLLECTIONS_ROOT for this command",
    )
    parser.add_argument("--output-root", help="Override HUB_OUTPUT_ROOT for this command")
    parser.add_argument("--log-level", help="Override HUB_LOG_LEVEL for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_fetch_command(subparsers)
    _add_build_command(subparsers)
    _add_run_command(subparsers)
    _add_list_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Collection Hub CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args)
        configure_logging(config.log_level)
        client = HubClient(config)
        if args.command == "fetch":
            return _run_fetch_command(client)
        if args.command == "build":
            return _run_build_command(client)
        if args.command == "run":
            return _run_run_command(client)
        if args.command == "list":
            return _run_list_command(client)
    except HubError as error:
        print(f"error: {error}", file=sys.stderr)
        return FATAL_EXIT_CODE
    parser.error(f"Unsupported command: {args.command}")
    return FATAL_EXIT_CODE


def _build_config(args: argparse.Namespace) -> HubConfig:
    """Build config with optional command-line overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured runtime config.
    """
    config = HubConfig.from_env()
    overrides: dict[str, Any] = {}
    if args.registry:
        overrides["registry_file"] = _resolve(args.registry)
    if args.collections_root:
        overrides["collections_root"] = _resolve(args.collections_root)
    if args.output_root:
        overrides["output_root"] = _resolve(args.output_root)
    if args.log_level:
        overrides["log_level"] = parse_log_level(args.log_level)
    if getattr(args, "keep_stale_output", False):
        overrides["prune_stale_output"] = False
    return replace(config, **overrides)


def _run_fetch_command(client: HubClient) -> int:
    """Handle fetch command.

    Args:
        client: SDK client.

    Returns:
        Exit code.
    """
    registry = client.load_registry()
    if registry.is_empty:
        print("registry is empty; nothing to fetch")
        return 0
    report = client.fetch(registry)
    _print_fetch_report(report)
    print(f"collections_root={client.config.collections_root}")
    return 0


def _run_build_command(client: HubClient) -> int:
    """Handle build command."""
    report = client.build()
    _print_pipeline_report(report)
    return report.exit_code


def _run_run_command(client: HubClient) -> int:
    """Handle run command."""
    report = client.run()
    if report.fetch is not None:
        _print_fetch_report(report.fetch)
    _print_pipeline_report(report)
    return report.exit_code


def _run_list_command(client: HubClient) -> int:
    """Handle list command."""
    registry = client.load_registry()
    for collection in registry.collections:
        for version in collection.versions:
            print(f"{collection.name}\t{version.name}\t{version.source_location or '-'}")
    return 0


def _print_fetch_report(report: FetchReport) -> None:
    print(f"fetched={len(report.materialized)}")
    print(f"skipped={len(report.skipped)}")
    print(f"fetch_failed={len(report.failed)}")


def _print_pipeline_report(report: PipelineReport) -> None:
    if report.registry_empty:
        print("registry is empty; nothing to build")
        return
    for outcome in report.outcomes:
        if not outcome.succeeded:
            print(
                f"failed\t{outcome.collection_name}/{outcome.version_name}\t"
                f"{outcome.failure_kind}\t{outcome.message}"
            )
    print(f"output_root={report.output_root}")
    print(f"successful={report.result.success_count}")
    print(f"failed={report.result.failure_count}")
    for collection_name, version_name in report.aliases:
        print(f"latest\t{collection_name}\t{version_name}")
    for pruned_path in report.pruned:
        print(f"pruned\t{pruned_path}")


def _resolve(raw_path: str) -> Path:
    return Path(raw_path).expanduser().resolve()


def _add_fetch_command(subparsers: Any) -> None:
    """Register fetch subcommand."""
    subparsers.add_parser("fetch", help="Rebuild the collections root from the registry")


def _add_build_command(subparsers: Any) -> None:
    """Register build subcommand."""
    parser = subparsers.add_parser(
        "build",
        help="Convert fetched collections into canonical documents",
    )
    _add_keep_stale_output_flag(parser)


def _add_run_command(subparsers: Any) -> None:
    """Register run subcommand."""
    parser = subparsers.add_parser("run", help="Fetch and build in one pass")
    _add_keep_stale_output_flag(parser)


def _add_list_command(subparsers: Any) -> None:
    """Register list subcommand."""
    subparsers.add_parser("list", help="List registry collections and versions")


def _add_keep_stale_output_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--keep-stale-output",
        action="store_true",
        help="Keep output directories for versions no longer in the registry",
    )
