#!/usr/bin/env python3
"""
filepath: main.py

Command-line entry point for the Indonesian regions fuzzy search service.

    python main.py ingest [--regions data/wilayah.sql] [--postal data/wilayah_kodepos.sql] [--db data/regions.db]
    python main.py serve  [--host 0.0.0.0] [--port 8080] [--db data/regions.db]

`ingest` reads the raw hierarchy and postal tables, denormalizes them and swaps
a fresh region store into place. It must finish before `serve` starts; the
server only ever opens the store read-only.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from administrative_regions import denormalize, read_postal_records, read_region_records
from administrative_regions_repository import AdministrativeRegionsRepository, build_region_store
from config import Settings, get_settings
from errors import IngestionError, StoreFailureError
from region_search import RegionSearchService

logger = logging.getLogger("main")


def run_ingest(regions_path: str, postal_path: Optional[str], db_path: str) -> int:
    """Read -> denormalize -> build store. Returns the number of regions written."""
    regions = read_region_records(regions_path)
    postals = read_postal_records(postal_path) if postal_path else []
    rows = denormalize(regions, postals)
    if not rows:
        raise IngestionError(f"no subdistrict records found in {regions_path}")
    count = build_region_store(db_path, rows)
    logger.info("Data ingestion and preparation completed: %d regions in %s", count, db_path)
    return count


def run_serve(settings: Settings) -> None:
    import uvicorn

    from api import create_app

    repository = AdministrativeRegionsRepository(settings.DB_PATH, read_only=True)
    try:
        logger.info("Serving %d regions from %s", repository.count(), settings.DB_PATH)
        app = create_app(RegionSearchService(repository), settings=settings)
        logger.info("Server starting on %s:%d", settings.HOST, settings.PORT)
        uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
    finally:
        repository.close()


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="regions", description="Indonesian regions fuzzy search")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="build the region store from raw data")
    ingest.add_argument("--regions", default=settings.REGIONS_SOURCE,
                        help="region table: CSV (code,name) or wilayah.sql dump")
    ingest.add_argument("--postal", default=settings.POSTAL_SOURCE,
                        help="postal code table: CSV (code,postal_code) or wilayah_kodepos.sql; '' to skip")
    ingest.add_argument("--db", default=settings.DB_PATH, help="region store to (re)create")

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default=settings.HOST)
    serve.add_argument("--port", type=int, default=settings.PORT)
    serve.add_argument("--db", default=settings.DB_PATH, help="region store to serve (read-only)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser(settings).parse_args(argv)

    if args.command == "ingest":
        try:
            run_ingest(args.regions, args.postal or None, args.db)
        except IngestionError as e:
            logger.error("Ingestion aborted, region store left unchanged: %s", e)
            return 1
        return 0

    serve_settings = settings.model_copy(update={"HOST": args.host, "PORT": args.port, "DB_PATH": args.db})
    try:
        run_serve(serve_settings)
    except StoreFailureError as e:
        logger.error("Cannot serve: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
