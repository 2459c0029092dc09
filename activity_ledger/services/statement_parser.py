"""Section-marked activity statement parser.

Activity statements interleave many unrelated tables in one CSV file. Every
row is tagged in its first two cells with ``(SectionName, RowKind)``::

    Statement,Header,Field Name,Field Value
    Statement,Data,Period,"January 1, 2026 - January 31, 2026"
    Trades,Header,DataDiscriminator,Asset Category,Currency,Symbol,Date/Time,...
    Trades,Data,Order,Stocks,USD,AAPL,"2026-01-05, 10:15:00",10,100,...

Scanning is a small state machine. A ``Header`` row makes its section the
active one and captures the remaining cells as that section's column index;
a ``Data`` row is kept only when it belongs to the active section. The state
is an explicit value passed into and returned from :func:`scan_row`, so each
step can be exercised on its own.
"""

import csv
import logging
from dataclasses import dataclass, field
from io import StringIO

from activity_ledger.constants import RowKind, SectionName
from activity_ledger.services.errors import FatalParseError, RowError

logger = logging.getLogger(__name__)


class HeaderIndex:
    """Column lookup for one section header, by case-insensitive substring.

    Header text varies between statement vintages ("T. Price" vs "Trade
    Price"), so a logical name matches any column containing it. Candidates
    are tried in order and the first matching column wins. Lookups are
    memoized so the scan over the header cells runs once per name.
    """

    def __init__(self, columns: list[str]) -> None:
        self.columns = tuple(c.strip().lower() for c in columns)
        self._cache: dict[tuple, int | None] = {}

    @classmethod
    def from_cells(cls, cells: list[str]) -> "HeaderIndex":
        return cls(cells)

    def find(self, *names: str, exclude: frozenset[int] = frozenset()) -> int | None:
        """Return the index of the first column matching any of ``names``."""
        key = (names, exclude)
        if key in self._cache:
            return self._cache[key]

        found = None
        for name in names:
            needle = name.lower()
            for idx, column in enumerate(self.columns):
                if idx not in exclude and needle in column:
                    found = idx
                    break
            if found is not None:
                break

        self._cache[key] = found
        return found

    def __contains__(self, name: str) -> bool:
        return self.find(name) is not None

    def __repr__(self) -> str:
        return f"<HeaderIndex({', '.join(self.columns)})>"


@dataclass(frozen=True)
class RawRow:
    """A data row of a captured section, with the header it was declared under."""

    section: str
    line_number: int
    cells: tuple[str, ...]
    header: HeaderIndex

    def get(self, *names: str, exclude: frozenset[int] = frozenset()) -> str:
        """Value of the first column matching ``names``; empty when missing."""
        idx = self.header.find(*names, exclude=exclude)
        return self.cell(idx)

    def cell(self, idx: int | None) -> str:
        if idx is None or idx >= len(self.cells):
            return ""
        return self.cells[idx].strip()


@dataclass(frozen=True)
class InSection:
    """Scan state: a section header has been seen and is active."""

    name: str
    header: HeaderIndex


# Scan state before any header row (None) or inside a declared section
ScanState = InSection | None
NO_SECTION: ScanState = None


@dataclass
class RawStatement:
    """Captured data rows per section, plus non-fatal row errors."""

    sections: dict[str, list[RawRow]] = field(default_factory=dict)
    errors: list[RowError] = field(default_factory=list)
    row_count: int = 0

    def rows(self, section: str) -> list[RawRow]:
        return self.sections.get(section, [])


def tokenize_statement(content: bytes) -> list[list[str]]:
    """Split a statement buffer into CSV rows.

    Raises:
        FatalParseError: If the buffer is empty, binary, or not valid CSV
    """
    if not content or not content.strip():
        raise FatalParseError("Statement file is empty")

    if b"\x00" in content:
        raise FatalParseError("Statement file is not a text export (binary content)")

    # Try UTF-8 first (with or without BOM), then latin-1 as fallback
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    try:
        rows = list(csv.reader(StringIO(text)))
    except csv.Error as e:
        raise FatalParseError(f"Failed to tokenize statement: {e}") from e

    rows = [row for row in rows if any(cell.strip() for cell in row)]
    if not rows:
        raise FatalParseError("Statement file contains no rows")

    return rows


def scan_row(
    state: ScanState, cells: list[str], line_number: int
) -> tuple[ScanState, RawRow | RowError | None]:
    """Advance the scan by one row.

    Returns the new state and what the row produced: a captured ``RawRow``,
    a ``RowError`` for an orphan data row, or ``None`` when the row is
    structural or belongs to a section that is not captured.
    """
    if len(cells) < 2:
        return state, None

    section = cells[0].strip()
    kind = cells[1].strip()

    if kind == RowKind.HEADER:
        return InSection(section, HeaderIndex.from_cells(cells[2:])), None

    if kind != RowKind.DATA or section not in SectionName.ALL:
        return state, None

    if state is None or state.name != section:
        active = state.name if state is not None else "none"
        return state, RowError(
            line_number=line_number,
            section=section,
            message=f"Data row outside its section (active section: {active})",
        )

    return state, RawRow(
        section=section,
        line_number=line_number,
        cells=tuple(cells[2:]),
        header=state.header,
    )


def parse_statement(content: bytes) -> RawStatement:
    """Parse a statement buffer into captured rows per section.

    Raises:
        FatalParseError: If the buffer cannot be tokenized, or carries no
            section-marked rows at all
    """
    rows = tokenize_statement(content)

    if not any(len(r) >= 2 and r[1].strip() in (RowKind.HEADER, RowKind.DATA) for r in rows):
        raise FatalParseError("No section-marked rows found; not an activity statement")

    result = RawStatement(row_count=len(rows))
    state: ScanState = NO_SECTION

    for line_number, cells in enumerate(rows, start=1):
        state, produced = scan_row(state, cells, line_number)

        if isinstance(produced, RawRow):
            result.sections.setdefault(produced.section, []).append(produced)
        elif isinstance(produced, RowError):
            logger.warning(f"Skipping row: {produced}")
            result.errors.append(produced)

    logger.info(
        "Parsed statement: %s",
        ", ".join(f"{name}={len(rows)}" for name, rows in result.sections.items()) or "no sections",
    )
    return result
