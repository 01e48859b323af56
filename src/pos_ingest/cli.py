"""Command-line interface for POS upload ingestion.

Usage:
    $ python -m pos_ingest upload --store cafe-1 --file export.csv
    $ python -m pos_ingest upload --store new-salon --file bookings.xlsx \\
          --platform booker --store-name "New Salon"
    $ python -m pos_ingest status
    $ python -m pos_ingest recompute

Store name and platform come from stores.json when the store is registered;
--store-name and --platform override them (and are required otherwise).
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from pos_ingest.config import DataPaths, IngestSettings
from pos_ingest.exceptions import ConfigError, ValidationError
from pos_ingest.models import Platform, StoreContext
from pos_ingest.stores import StoreRegistry
from pos_ingest.transactions import aggregate
from pos_ingest.transactions.api import list_uploads, upload_path

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pos_ingest",
        description="Ingest POS exports (takemypayments / booker) and rebuild analytics marts.",
    )
    parser.add_argument(
        "--data-root",
        type=str,
        default="data",
        help="Root directory for ingestion data (default: 'data').",
    )
    parser.add_argument(
        "--stores-json",
        type=str,
        default="utils/stores.json",
        help="Path to stores.json (default: 'utils/stores.json').",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")

    sub = parser.add_subparsers(dest="command", required=True)

    up = sub.add_parser("upload", help="Replace a store's transactions with an export file.")
    up.add_argument("--store", required=True, help="Store id.")
    up.add_argument("--file", required=True, help="CSV or XLSX export to ingest.")
    up.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=None,
        help="Source platform (default: from stores.json).",
    )
    up.add_argument("--store-name", default=None, help="Store display name (default: from stores.json).")
    up.add_argument(
        "--no-recompute",
        action="store_true",
        help="Do not rebuild the analytics marts after the upload.",
    )

    sub.add_parser("status", help="Show the last upload of every store.")
    sub.add_parser("recompute", help="Rebuild the analytics marts from stored transactions.")
    return parser


def _resolve_context(paths: DataPaths, args: argparse.Namespace) -> StoreContext:
    """Store context from stores.json, falling back to command-line values."""
    if paths.stores_json.exists():
        registry = StoreRegistry(paths)
        if args.store in registry:
            return registry.context_for(args.store, store_name=args.store_name, platform=args.platform)

    if not args.store_name or not args.platform:
        raise ConfigError(
            f"Store '{args.store}' is not in {paths.stores_json}; pass --store-name and --platform."
        )
    return StoreContext(
        store_id=args.store,
        store_name=args.store_name,
        platform=Platform.coerce(args.platform),
    )


def _cmd_upload(paths: DataPaths, args: argparse.Namespace) -> int:
    try:
        context = _resolve_context(paths, args)
    except (ConfigError, ValidationError) as e:
        print(f"Error: {e}")
        return 1

    result = upload_path(
        paths,
        Path(args.file),
        context,
        settings=IngestSettings.from_env(),
        recompute=not args.no_recompute,
    )
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if result.rejected:
        skipped = ", ".join(f"{k}={v}" for k, v in sorted(result.rejected.items()))
        print(f"Skipped rows: {skipped}")
    return 0 if result.success else 1


def _cmd_status(paths: DataPaths) -> int:
    uploads = list_uploads(paths)
    if not uploads:
        print("No uploads yet.")
        return 0
    print(f"{'store':<20} {'platform':<15} {'transactions':>12}  last uploaded")
    for meta in uploads:
        print(f"{meta.store_id:<20} {meta.platform:<15} {meta.transaction_count:>12}  {meta.last_uploaded}")
    return 0


def _cmd_recompute(paths: DataPaths) -> int:
    marts = aggregate.recompute_marts(paths)
    print(f"Rebuilt {len(marts)} marts in {paths.mart_analytics}")
    for name, df in marts.items():
        print(f"  - {name}: {len(df)} rows")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point.

    Returns:
        Process exit code: 0 on success, 1 on a failed upload or
        configuration error.
    """
    args = _build_parser().parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    paths = DataPaths.from_root(args.data_root, args.stores_json)

    try:
        if args.command == "upload":
            return _cmd_upload(paths, args)
        if args.command == "status":
            return _cmd_status(paths)
        return _cmd_recompute(paths)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1
