from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.ingest.registry import register_adapters
from src.io.atomic import write_json_atomic
from src.io.store import ParquetScholarshipStore
from src.orchestrate.orchestrator import Orchestrator
from src.orchestrate.settings import PipelineSettings, load_settings
from src.orchestrate.summary import RunSummary

logger = logging.getLogger("run_scrape")

DEFAULT_STORE_PATH = ROOT_DIR / "data" / "processed" / "scholarships.parquet"
DEFAULT_REPORT_DIR = ROOT_DIR / "reports" / "scrape_runs"
DEFAULT_SETTINGS_PATH = ROOT_DIR / "config" / "pipeline.json"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run every scholarship scraper once and persist verified listings.")
    parser.add_argument("--settings", type=Path, default=DEFAULT_SETTINGS_PATH)
    parser.add_argument("--store-path", type=Path, default=DEFAULT_STORE_PATH)
    parser.add_argument("--report-dir", type=Path, default=DEFAULT_REPORT_DIR)
    parser.add_argument("--quality-threshold", type=int, default=None)
    parser.add_argument("--adapter-timeout-seconds", type=float, default=None)
    parser.add_argument("--validation-delay-seconds", type=float, default=None)
    parser.add_argument("--max-adapter-workers", type=int, default=None)
    parser.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="ADAPTER",
        help="Adapter name to skip for this run. Repeatable.",
    )
    return parser.parse_args(argv)


def _resolve_repo_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return ROOT_DIR / path


def apply_overrides(settings: PipelineSettings, args: argparse.Namespace) -> PipelineSettings:
    overrides: dict[str, Any] = {}
    for field_name in (
        "quality_threshold",
        "adapter_timeout_seconds",
        "validation_delay_seconds",
        "max_adapter_workers",
    ):
        value = getattr(args, field_name)
        if value is not None:
            overrides[field_name] = value
    if args.disable:
        overrides["disabled_adapters"] = tuple(dict.fromkeys([*settings.disabled_adapters, *args.disable]))
    return replace(settings, **overrides) if overrides else settings


def _run_status(summary: RunSummary) -> str:
    if summary.all_invoked_failed:
        return "failed"
    if summary.adapters_failed or summary.persistence_errors or summary.stopped:
        return "partial"
    return "success"


def run_scrape(
    *,
    settings: PipelineSettings,
    store_path: Path,
    report_dir: Path,
) -> dict[str, Any]:
    store = ParquetScholarshipStore(_resolve_repo_path(store_path))
    registry = register_adapters(disabled=settings.disabled_adapters)
    orchestrator = Orchestrator(registry, store, settings=settings)

    summary = orchestrator.run_once()
    report_path = _resolve_repo_path(report_dir) / f"scrape_run_{summary.started_at.strftime('%Y%m%dT%H%M%SZ')}_{summary.run_id}.json"
    report_payload = {
        "status": _run_status(summary),
        "summary": summary.to_dict(),
        "breakers": {name: state.to_dict() for name, state in orchestrator.breakers.snapshot().items()},
        "validation_stats": orchestrator.validator.stats(),
        "config": settings.to_dict(),
        "records": {"stored_total": store.count()},
        "artifact_paths": {
            "store": str(store.path.resolve()),
            "report": str(report_path.resolve()),
        },
    }
    write_json_atomic(report_payload, report_path)
    return report_payload


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = apply_overrides(load_settings(_resolve_repo_path(args.settings)), args)
    report = run_scrape(settings=settings, store_path=args.store_path, report_dir=args.report_dir)

    summary = report["summary"]
    print(f"Run status: {report['status']}")
    print(
        "Adapters: "
        f"invoked={len(summary['adapters_invoked'])}, "
        f"skipped={len(summary['adapters_skipped'])}, "
        f"disabled={len(summary['adapters_disabled'])}, "
        f"failed={len(summary['adapters_failed'])}"
    )
    print(
        "Candidates: "
        f"accepted={summary['total_accepted']}, "
        f"rejected={summary['total_rejected']}, "
        f"duplicates={summary['total_duplicates']}, "
        f"persistence_errors={summary['persistence_errors']}"
    )
    print(f"Wrote run report: {report['artifact_paths']['report']}")
    return 0 if report["status"] != "failed" else 1


if __name__ == "__main__":
    raise SystemExit(main())
