from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.api import create_app
from src.ingest.registry import register_adapters
from src.io.store import ParquetScholarshipStore
from src.orchestrate.orchestrator import Orchestrator
from src.orchestrate.scheduler import PeriodicTrigger
from src.orchestrate.settings import load_settings

DEFAULT_STORE_PATH = ROOT_DIR / "data" / "processed" / "scholarships.parquet"
DEFAULT_SETTINGS_PATH = ROOT_DIR / "config" / "pipeline.json"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the scraping control plane.")
    parser.add_argument("--settings", type=Path, default=DEFAULT_SETTINGS_PATH)
    parser.add_argument("--store-path", type=Path, default=DEFAULT_STORE_PATH)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = load_settings(args.settings)
    orchestrator = Orchestrator(
        register_adapters(disabled=settings.disabled_adapters),
        ParquetScholarshipStore(args.store_path),
        settings=settings,
    )
    scheduler = None
    if settings.schedule_interval_minutes is not None:
        scheduler = PeriodicTrigger(orchestrator, interval_minutes=settings.schedule_interval_minutes)

    uvicorn.run(create_app(orchestrator, scheduler), host=args.host, port=args.port, log_level="info", workers=1)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
