"""Persistence for verified scholarships and atomic report writes."""

from src.io.atomic import write_json_atomic, write_parquet_atomic
from src.io.store import (
    InMemoryScholarshipStore,
    ParquetScholarshipStore,
    ScholarshipStore,
    build_record,
    load_records,
)

__all__ = [
    "InMemoryScholarshipStore",
    "ParquetScholarshipStore",
    "ScholarshipStore",
    "build_record",
    "load_records",
    "write_json_atomic",
    "write_parquet_atomic",
]
