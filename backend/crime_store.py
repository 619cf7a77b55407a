"""SafeNet Backend — Normalized Crime Store

In-memory table of crime records keyed by (city, crime_type, year), last
write wins. Readers always see a complete CrimeTable snapshot: writers
build a new table off to the side and swap the reference in one step, so
no reader ever observes a half-rewritten table and reads never take a lock.

Persistence is pluggable: a flat CSV (City,Crime_Type,Year,Count) or a
SQLite table. Both support upsert-by-key and full-table read.
"""

import csv
import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, Iterator

from block_parser import CrimeRecord
from config import NORMALIZED_CSV_HEADER
from tokenizer import normalize_city

logger = logging.getLogger("safenet.store")

RecordKey = tuple[str, str, int]

# Years are four ASCII digits, same as the header guard in block_parser
MIN_YEAR, MAX_YEAR = 1000, 9999
_YEAR_TEXT_RE = re.compile(r"\d{4}", re.ASCII)


class CrimeTable:
    """Immutable snapshot of the normalized table, indexed by city."""

    def __init__(self, rows: dict[RecordKey, int] | None = None, version: int = 0):
        self._rows: dict[RecordKey, int] = dict(rows or {})
        self.version = version
        self._by_city: dict[str, list[CrimeRecord]] = {}
        for (city, crime_type, year), count in sorted(self._rows.items()):
            self._by_city.setdefault(city, []).append(CrimeRecord(city, crime_type, year, count))

    @classmethod
    def from_records(cls, records: Iterable[CrimeRecord], base: "CrimeTable | None" = None,
                     version: int = 0) -> "CrimeTable":
        rows = dict(base._rows) if base is not None else {}
        for r in records:
            city = normalize_city(r.city)
            if not city or r.count < 0 or not MIN_YEAR <= r.year <= MAX_YEAR:
                continue
            rows[(city, r.crime_type, r.year)] = r.count
        return cls(rows, version=version)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[CrimeRecord]:
        for city in self._by_city:
            yield from self._by_city[city]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CrimeTable) and self._rows == other._rows

    def cities(self) -> list[str]:
        return sorted(self._by_city)

    def has_city(self, city: str) -> bool:
        return normalize_city(city) in self._by_city

    def records_for_city(self, city: str) -> list[CrimeRecord]:
        return list(self._by_city.get(normalize_city(city), []))

    def records_in_years(self, city: str, first_year: int, last_year: int) -> list[CrimeRecord]:
        """Records for a city with first_year <= year <= last_year."""
        return [r for r in self.records_for_city(city) if first_year <= r.year <= last_year]

    def years_for_city(self, city: str) -> list[int]:
        return sorted({r.year for r in self.records_for_city(city)})


class NormalizedStore:
    """Holds the current CrimeTable and swaps in rebuilt tables atomically."""

    def __init__(self, table: CrimeTable | None = None):
        self._table = table or CrimeTable()
        self._write_lock = threading.Lock()

    def snapshot(self) -> CrimeTable:
        return self._table

    def replace(self, records: Iterable[CrimeRecord]) -> CrimeTable:
        """Rebuild the table from scratch and swap it in."""
        with self._write_lock:
            table = CrimeTable.from_records(records, version=self._table.version + 1)
            self._table = table
        logger.info(f"Store swapped in table v{table.version}: {len(table)} records, "
                    f"{len(table.cities())} cities")
        return table

    def upsert(self, records: Iterable[CrimeRecord]) -> CrimeTable:
        """Merge records over the current table (last write wins) and swap it in."""
        with self._write_lock:
            table = CrimeTable.from_records(records, base=self._table, version=self._table.version + 1)
            self._table = table
        logger.info(f"Store upserted into table v{table.version}: {len(table)} records")
        return table

    def cities(self) -> list[str]:
        return self._table.cities()


# ─────────────────────────── Persistence ────────────────────────


class CsvRecordFile:
    """Flat City,Crime_Type,Year,Count file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> list[CrimeRecord]:
        if not self.path.exists():
            return []
        records = []
        with open(self.path, "r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            for row in reader:
                try:
                    year = row["Year"].strip()
                    if not _YEAR_TEXT_RE.fullmatch(year):
                        raise ValueError(f"year {year!r} is not four digits")
                    records.append(CrimeRecord(
                        city=normalize_city(row["City"]),
                        crime_type=row["Crime_Type"].strip(),
                        year=int(year),
                        count=int(row["Count"]),
                    ))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping malformed row in {self.path.name}: {row} ({e})")
        return records

    def save(self, records: Iterable[CrimeRecord], replace: bool = False) -> int:
        """Upsert records into the file (or overwrite it). Returns the total row count."""
        base = None if replace else CrimeTable.from_records(self.load())
        table = CrimeTable.from_records(records, base=base)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(NORMALIZED_CSV_HEADER)
            for r in table:
                writer.writerow([r.city, r.crime_type, r.year, r.count])
        tmp.replace(self.path)
        return len(table)


class SqliteRecordFile:
    """SQLite table with a (city, crime_type, year) primary key."""

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS crime_records (
            city TEXT NOT NULL,
            crime_type TEXT NOT NULL,
            year INTEGER NOT NULL,
            count INTEGER NOT NULL CHECK (count >= 0),
            PRIMARY KEY (city, crime_type, year)
        )
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path), timeout=10)
        conn.execute(self._SCHEMA)
        return conn

    def load(self) -> list[CrimeRecord]:
        if not self.path.exists():
            return []
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT city, crime_type, year, count FROM crime_records "
                "ORDER BY city, crime_type, year"
            ).fetchall()
        finally:
            conn.close()
        return [CrimeRecord(city, crime_type, year, count) for city, crime_type, year, count in rows]

    def save(self, records: Iterable[CrimeRecord], replace: bool = False) -> int:
        conn = self._connect()
        try:
            with conn:
                if replace:
                    conn.execute("DELETE FROM crime_records")
                conn.executemany("""
                    INSERT INTO crime_records (city, crime_type, year, count)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (city, crime_type, year) DO UPDATE SET count = excluded.count
                """, [(normalize_city(r.city), r.crime_type, r.year, r.count) for r in records])
            total = conn.execute("SELECT COUNT(*) FROM crime_records").fetchone()[0]
        finally:
            conn.close()
        return total


def open_record_file(path: Path) -> CsvRecordFile | SqliteRecordFile:
    """Pick the persistence backend from the file suffix."""
    if Path(path).suffix.lower() in (".db", ".sqlite", ".sqlite3"):
        return SqliteRecordFile(path)
    return CsvRecordFile(path)
