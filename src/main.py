"""Command-line entry point for Resale Arbitrage Catalog."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from src.core.catalog import CatalogReadService
from src.core.config import Settings, get_config_dir
from src.core.dashboard import DashboardAggregator
from src.core.models import ShopType
from src.core.reconcile import ReconciliationEngine
from src.core.reference_importer import ReferenceImporter
from src.db.repository import CatalogRepository, StoreError
from src.db.session import Database

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    log_dir = get_config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "catalog.log"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resale-catalog",
        description="Reconcile scraped shop listings and report resale profit.",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create or upgrade the database schema")

    reconcile = commands.add_parser("reconcile", help="Merge a scraped JSON batch into the catalog")
    reconcile.add_argument("shop_type", choices=ShopType.values())
    reconcile.add_argument("shop_name")
    reconcile.add_argument("items_file", type=Path, help="JSON file holding a list of scraped items")

    importer = commands.add_parser("import-references", help="Import marketplace references")
    importer.add_argument("file", type=Path, help="CSV or XLSX export")

    summary = commands.add_parser("summary", help="Print dashboard figures")
    summary.add_argument("--shops", action="store_true", help="Include per-shop statistics")

    dedup = commands.add_parser("deduplicate", help="Delete duplicate listings")
    dedup.add_argument("--shop-type", choices=ShopType.values())
    dedup.add_argument("--shop-name")

    commands.add_parser("serve", help="Run the JSON API")
    return parser


def _print_json(data: object) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def run(args: argparse.Namespace, settings: Settings, database: Database) -> int:
    """Run one parsed command against an initialized database."""
    repository = CatalogRepository(database)

    if args.command == "init-db":
        print(f"Database ready: {database.url}")
        return 0

    if args.command == "reconcile":
        try:
            items = json.loads(args.items_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            print(f"Error: cannot read {args.items_file}: {e}", file=sys.stderr)
            return 2
        if isinstance(items, dict):
            items = items.get("items")
        if not isinstance(items, list):
            print("Error: expected a JSON list of items", file=sys.stderr)
            return 2

        engine = ReconciliationEngine(repository, settings)
        result = engine.reconcile(ShopType.from_string(args.shop_type), args.shop_name, items)
        _print_json(result.to_dict())
        return 0 if result.success else 1

    if args.command == "import-references":
        importer = ReferenceImporter(repository, settings)
        try:
            result = importer.import_file(args.file)
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        _print_json({
            "success": result.success,
            "items_imported": result.items_imported,
            "items_skipped": result.items_skipped,
            "errors": [{"row": row, "message": message} for row, message in result.errors],
        })
        return 0 if result.success else 1

    if args.command == "summary":
        rows = CatalogReadService(repository, settings).list_enriched()
        aggregator = DashboardAggregator()
        output: dict = {"summary": aggregator.summary(rows).to_dict()}
        if args.shops:
            output["shops"] = [stats.to_dict() for stats in aggregator.shop_stats(rows)]
        _print_json(output)
        return 0

    if args.command == "deduplicate":
        engine = ReconciliationEngine(repository, settings)
        shop_type = ShopType.from_string(args.shop_type) if args.shop_type else None
        result = engine.deduplicate(shop_type, args.shop_name)
        _print_json({
            "deleted_count": result.deleted_count,
            "copies_skipped": result.copies_skipped,
            "errors": result.errors,
        })
        return 0 if result.success else 1

    if args.command == "serve":
        from src.web.server import serve

        serve(repository, settings)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    settings = Settings.load()
    setup_logging(args.log_level or settings.log_level)
    logger.info(f"Config dir: {get_config_dir()}")

    database = Database.from_settings(settings)
    try:
        database.init_schema()
    except Exception as e:
        logger.exception("Failed to initialize database")
        print(f"Error: Failed to initialize database: {e}", file=sys.stderr)
        return 1

    try:
        return run(args, settings, database)
    except StoreError as e:
        logger.error(f"Catalog store error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        database.close()


if __name__ == "__main__":
    sys.exit(main())
