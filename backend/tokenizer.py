"""SafeNet Backend — Record Tokenizer

Splits a raw crime-statistics export into logical lines and classifies each
one by shape. The exports interleave free-text city names, "Crime Head"
year headers, section banners and tab-delimited count rows with no explicit
record delimiters, so classification is heuristic and line-local:

  1. starts with the header keyword        → HEADER
  2. contains a section banner             → BANNER
  3. no tab, shorter than 30 characters    → CITY
  4. contains a tab                        → DATA
  5. anything else                         → NOISE

Blank lines are discarded before classification.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from config import (
    CITY_EXCLUDED_PHRASE,
    CITY_LINE_MAX_LENGTH,
    FIELD_DELIMITER,
    HEADER_KEYWORD,
    SECTION_BANNERS,
)


class LineKind(str, Enum):
    CITY = "city"
    HEADER = "header"
    BANNER = "banner"
    DATA = "data"
    NOISE = "noise"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    line_number: int
    text: str
    columns: tuple[str, ...] = ()

    @property
    def city(self) -> str:
        """Normalized city name (only meaningful for CITY lines)."""
        return normalize_city(self.text) if self.kind is LineKind.CITY else ""


def normalize_city(name: str) -> str:
    """First character upper-cased, remainder lower-cased."""
    name = name.strip()
    if not name:
        return ""
    return name[0].upper() + name[1:].lower()


def split_columns(line: str) -> list[str]:
    return [part.strip() for part in line.split(FIELD_DELIMITER)]


def classify(line: str) -> LineKind:
    """Classify a single trimmed, non-empty line."""
    if line.startswith(HEADER_KEYWORD):
        return LineKind.HEADER
    if any(banner in line for banner in SECTION_BANNERS):
        return LineKind.BANNER
    if (
        FIELD_DELIMITER not in line
        and len(line) < CITY_LINE_MAX_LENGTH
        and HEADER_KEYWORD not in line
        and CITY_EXCLUDED_PHRASE not in line
    ):
        return LineKind.CITY
    if FIELD_DELIMITER in line:
        return LineKind.DATA
    return LineKind.NOISE


def tokenize(text: str) -> Iterator[ClassifiedLine]:
    """Yield classified lines from a raw export block, starting at line one."""
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        kind = classify(line)
        if kind is LineKind.HEADER:
            # Header columns drop empties so column j always lines up with a year
            columns = tuple(c for c in split_columns(line) if c)
        elif kind is LineKind.DATA:
            columns = tuple(split_columns(line))
        else:
            columns = ()
        yield ClassifiedLine(kind=kind, line_number=number, text=line, columns=columns)
