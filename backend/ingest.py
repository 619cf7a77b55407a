"""SafeNet Backend — Ingestion Pipeline

Batch pass: read raw export → tokenize → parse → build a new table → swap
it into the store (and optionally persist it). A failed or empty pass is
reported as a warning and leaves the previously swapped-in table alone.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from block_parser import parse_block
from crime_store import CsvRecordFile, NormalizedStore, SqliteRecordFile, open_record_file

logger = logging.getLogger("safenet.ingest")


@dataclass
class IngestReport:
    source: str
    records: int = 0
    cities: int = 0
    lines_seen: int = 0
    dropped_lines: int = 0
    dropped_pairs: int = 0
    degraded: bool = False
    swapped: bool = False
    persisted: int = 0
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str):
        self.warnings.append(message)
        logger.warning(f"[{self.source}] {message}")


def ingest_text(
    text: str,
    store: NormalizedStore,
    source: str = "<text>",
    merge: bool = False,
    persist: Optional[CsvRecordFile | SqliteRecordFile] = None,
) -> IngestReport:
    """Parse a raw export block and swap the result into the store."""
    report = IngestReport(source=source)
    result = parse_block(text)

    report.records = len(result.records)
    report.cities = len(result.cities)
    report.lines_seen = result.lines_seen
    report.dropped_lines = result.dropped_lines
    report.dropped_pairs = result.dropped_pairs
    report.degraded = result.degraded

    if result.city_lines == 0:
        report.warn("No city lines found; check the export format")
    if not result.records:
        report.warn("Parse produced 0 records; keeping the current table")
        return report
    if result.degraded:
        report.warn(f"Dropped {result.dropped_lines} of {result.lines_seen} lines as noise")

    table = store.upsert(result.records) if merge else store.replace(result.records)
    report.swapped = True

    if persist is not None:
        try:
            report.persisted = persist.save(table, replace=True)
        except (OSError, sqlite3.Error) as e:
            report.warn(f"Could not persist normalized table to {persist.path}: {e}")

    logger.info(
        f"Ingested {source}: {report.records} records, {report.cities} cities "
        f"(table now {len(table)} records)"
    )
    return report


def ingest_file(
    path: Path,
    store: NormalizedStore,
    merge: bool = False,
    persist_path: Optional[Path] = None,
) -> IngestReport:
    """Read a raw export file and ingest it. Unreadable sources are reported, not raised."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        report = IngestReport(source=path.name)
        report.warn(f"Unreadable source {path}: {e}")
        return report

    logger.info(f"Read {len(text):,} characters from {path.name}")
    persist = open_record_file(persist_path) if persist_path is not None else None
    return ingest_text(text, store, source=path.name, merge=merge, persist=persist)


def load_persisted(path: Path, store: NormalizedStore) -> int:
    """Swap a previously persisted normalized table into the store. Returns its size."""
    record_file = open_record_file(path)
    if not record_file.exists():
        return 0
    try:
        records = record_file.load()
    except Exception as e:
        logger.warning(f"Failed to load persisted table {path}: {e}")
        return 0
    if not records:
        logger.warning(f"Persisted table {path.name} is empty")
        return 0
    return len(store.replace(records))
