from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from stockrecon.app import catalog_stats, credential_stats, storage_stats, sync_tenants
from stockrecon.config import configure_logging
from stockrecon.domain.reconciliation import unique_missing_items

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from stockrecon.domain.model import ReconciliationStatus

log = logging.getLogger(__name__)


def _tenant_arg(value: str) -> int:
    try:
        tenant = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid tenant id: {value}") from exc
    if tenant <= 0:
        raise argparse.ArgumentTypeError(f"Invalid tenant id: {value}")
    return tenant


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compare the remote product catalog with the image store"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Reconcile tenants and report missing products")
    sync.add_argument(
        "--tenant",
        dest="tenants",
        action="append",
        type=_tenant_arg,
        help="Tenant to reconcile; repeat for several (defaults to SYNC_TENANTS)",
    )
    sync.add_argument(
        "--show-missing",
        action="store_true",
        help="Log every missing product, deduplicated across tenants",
    )
    sync.add_argument(
        "--sort-by-id",
        action="store_true",
        help="Order the missing product listing by product id",
    )

    subparsers.add_parser("tokens", help="Summarise the cached tenant credentials")
    subparsers.add_parser("storage-stats", help="Summarise the image-association store")

    catalog = subparsers.add_parser("catalog-stats", help="Probe the catalog for one tenant")
    catalog.add_argument(
        "--tenant",
        type=_tenant_arg,
        required=True,
        help="Tenant to inspect",
    )

    return parser.parse_args(list(argv))


def _report_sync(status: ReconciliationStatus, *, show_missing: bool, sort_by_id: bool) -> None:
    for tenant_id, result in sorted(status.results.items()):
        if not result.succeeded:
            log.error("Tenant %s failed: %s", tenant_id, "; ".join(result.errors))
            continue
        log.info(
            "Tenant %s: remote=%s, local=%s, missing=%s",
            tenant_id,
            result.total_remote,
            result.total_local,
            len(result.missing_items),
        )
    for message in status.errors:
        log.warning(message)

    if show_missing:
        for info in unique_missing_items(status.results, sort_by_id=sort_by_id):
            log.info(
                "Missing %s [tenant %s] %s (stock %s, ean %s)",
                info.id,
                info.tenant_id,
                info.description,
                info.stock,
                info.barcode or "-",
            )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    # argparse exits with status 2 on invalid arguments
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "sync":
            status = asyncio.run(sync_tenants(parsed_args.tenants))
            _report_sync(
                status,
                show_missing=parsed_args.show_missing,
                sort_by_id=parsed_args.sort_by_id,
            )
        elif parsed_args.command == "tokens":
            stats = asyncio.run(credential_stats())
            log.info(
                "Credentials: total=%s, valid=%s, expired=%s, tenants=%s",
                stats.total,
                stats.valid,
                stats.expired,
                ", ".join(map(str, stats.tenants)) or "-",
            )
        elif parsed_args.command == "storage-stats":
            stored = asyncio.run(storage_stats())
            log.info(
                "Store: total=%s, unique=%s, successful=%s, failed=%s",
                stored.total,
                stored.unique_original_ids,
                stored.successful,
                stored.failed,
            )
            for status_name, amount in sorted(stored.download_status.items()):
                log.info("  %s: %s", status_name, amount)
        elif parsed_args.command == "catalog-stats":
            remote = asyncio.run(catalog_stats(parsed_args.tenant))
            log.info(
                "Catalog for tenant %s: connected=%s, items=%s, pages=%s",
                parsed_args.tenant,
                remote.has_connection,
                remote.total_items,
                remote.total_pages,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
