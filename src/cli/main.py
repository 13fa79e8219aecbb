"""Bundler CLI entry points.
This module exposes create, list, and download commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from core.config import BundlerConfig
from core.constants import DEFAULT_DOWNLOAD_DIR
from core.errors import BundlerError
from store.bundle_sdk import BundlerClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="bundler",
        description="Create, list, and download content-addressed file bundles",
    )
    parser.add_argument("--data-root", help="Override BUNDLER_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_create_command(subparsers)
    _add_list_command(subparsers)
    _add_download_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the bundler CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root)
        if args.command == "create":
            return _run_create_command(client, args)
        if args.command == "list":
            return _run_list_command(client)
        if args.command == "download":
            return _run_download_command(client, args)
    except BundlerError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None) -> BundlerClient:
    """Build SDK client with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = BundlerConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return BundlerClient(config)


def _run_create_command(client: BundlerClient, args: argparse.Namespace) -> int:
    """Handle create command."""
    bundle_id = client.create_bundle_from_paths(args.paths)
    print(json.dumps({"bundle_id": bundle_id}, indent=2))
    return 0


def _run_list_command(client: BundlerClient) -> int:
    """Handle list command."""
    payload = [summary.to_payload() for summary in client.list_bundles()]
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def _run_download_command(client: BundlerClient, args: argparse.Namespace) -> int:
    """Handle download command."""
    output_path = client.save_bundle_archive(args.bundle_id, args.out)
    print(f"Saved bundle archive {args.bundle_id} at {output_path}")
    return 0


def _add_create_command(subparsers: Any) -> None:
    """Register create subcommand."""
    parser = subparsers.add_parser("create", help="Create a bundle from files or directories")
    parser.add_argument("paths", nargs="+", help="Files or directories to bundle")


def _add_list_command(subparsers: Any) -> None:
    """Register list subcommand."""
    subparsers.add_parser("list", help="List all existing bundles")


def _add_download_command(subparsers: Any) -> None:
    """Register download subcommand."""
    parser = subparsers.add_parser("download", help="Download a bundle archive (tar.gz)")
    parser.add_argument("bundle_id", help="Bundle id to download")
    parser.add_argument(
        "--out",
        default=DEFAULT_DOWNLOAD_DIR,
        help="Output directory for the downloaded archive",
    )
