"""SafeNet Backend — Block Parser

Folds the classified line stream into canonical crime records. The only
state carried between lines is the current city and the current header
row; it lives in an immutable ParseState threaded through the fold, so a
fresh parse always starts from an empty state.

Malformed input never raises: unusable lines and column pairs are dropped
and counted.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from config import HEADER_KEYWORD
from tokenizer import ClassifiedLine, LineKind, tokenize

logger = logging.getLogger("safenet.parser")

_YEAR_RE = re.compile(r"\d{4}", re.ASCII)
_COUNT_RE = re.compile(r"\d+", re.ASCII)


@dataclass(frozen=True, order=True)
class CrimeRecord:
    city: str
    crime_type: str
    year: int
    count: int

    @property
    def key(self) -> tuple[str, str, int]:
        return (self.city, self.crime_type, self.year)


@dataclass(frozen=True)
class ParseState:
    current_city: str = ""
    current_headers: tuple[str, ...] = ()


@dataclass
class ParseResult:
    records: list[CrimeRecord] = field(default_factory=list)
    lines_seen: int = 0
    city_lines: int = 0
    header_lines: int = 0
    data_lines: int = 0
    dropped_lines: int = 0
    dropped_pairs: int = 0

    @property
    def degraded(self) -> bool:
        return self.dropped_lines > 0

    @property
    def cities(self) -> list[str]:
        return sorted({r.city for r in self.records})


def records_from_row(state: ParseState, columns: tuple[str, ...]) -> tuple[list[CrimeRecord], int]:
    """Pair a data row with the active header. Returns (records, dropped_pairs)."""
    crime_type = columns[0] if columns else ""
    if not crime_type or crime_type == HEADER_KEYWORD:
        return [], 0

    records: list[CrimeRecord] = []
    dropped = 0
    width = min(len(state.current_headers), len(columns))
    for j in range(1, width):
        # A blank cell under a year header means no cases that year
        year, count = state.current_headers[j], columns[j] or "0"
        if _YEAR_RE.fullmatch(year) and _COUNT_RE.fullmatch(count):
            records.append(CrimeRecord(state.current_city, crime_type, int(year), int(count)))
        else:
            dropped += 1
    return records, dropped


def advance(state: ParseState, line: ClassifiedLine) -> tuple[ParseState, list[CrimeRecord], int]:
    """One fold step: (state, line) → (next state, emitted records, dropped pairs)."""
    if line.kind is LineKind.CITY:
        return ParseState(line.city, state.current_headers), [], 0
    if line.kind is LineKind.HEADER:
        return ParseState(state.current_city, line.columns), [], 0
    if line.kind is LineKind.DATA and state.current_city and len(state.current_headers) > 1:
        records, dropped = records_from_row(state, line.columns)
        return state, records, dropped
    return state, [], 0


def parse_lines(lines: Iterable[ClassifiedLine]) -> ParseResult:
    result = ParseResult()
    state = ParseState()
    for line in lines:
        result.lines_seen += 1
        state, records, dropped = advance(state, line)
        result.dropped_pairs += dropped

        if line.kind is LineKind.CITY:
            result.city_lines += 1
        elif line.kind is LineKind.HEADER:
            result.header_lines += 1
        elif line.kind is LineKind.DATA and records:
            result.data_lines += 1
        else:
            # Banners, noise and data rows with no usable context or values
            result.dropped_lines += 1
        result.records.extend(records)

    if result.city_lines == 0:
        logger.warning(f"Parse pass saw no city lines ({result.lines_seen} lines) — 0 records")
    elif result.degraded:
        logger.info(
            f"Parse pass degraded: dropped {result.dropped_lines} of {result.lines_seen} lines, "
            f"{result.dropped_pairs} column pairs"
        )
    return result


def parse_block(text: str) -> ParseResult:
    """Tokenize and parse a raw export block in a single pass."""
    return parse_lines(tokenize(text))
