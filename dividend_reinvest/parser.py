"""Dividend report parsing.

Broker tax/P&L reports are free-form spreadsheets: a dividend table sits
somewhere below a label row such as "Equity Dividends", preceded by other
sections and with column names that differ between report versions. The
parser works on grids (a list of rows per sheet) and tries two strategies
in order:

* ``parse_sections`` walks every grid with a small state machine
  (OUTSIDE_SECTION -> HEADER_SEARCH -> DATA_ROWS) and reads the columns
  found in the header row of each dividend section.
* ``parse_positional`` treats the first grid as a plain
  ``symbol, company, amount`` table with a header row.

The first strategy that yields any entries wins.
"""

import csv
import io
import logging
import numbers
import re
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

import pandas as pd

from . import symbols
from . import utils
from .models import BrokerInfo, DividendEntry, ParsedDividendData

logger = logging.getLogger(__name__)

Row = Sequence[Any]
Grid = List[Row]

TEXT_FORMATS = ("csv",)
SPREADSHEET_FORMATS = ("xlsx", "xls")

SECTION_MARKER = "dividend"

_NON_NUMERIC = re.compile(r"[^\d.-]")
_NUMBER_PREFIX = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


class DividendParseError(ValueError):
    """Raised when a report cannot be decoded into rows."""


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------

def _is_number(cell: Any) -> bool:
    return isinstance(cell, numbers.Real) and not isinstance(cell, bool)


def cell_text(cell: Any) -> str:
    """Stringify a cell and trim it. Blank and NaN cells become ``""``."""
    if cell is None:
        return ""
    if _is_number(cell):
        if cell != cell:
            return ""
        # Spreadsheet engines hand back 500325.0 for a BSE scrip code.
        if float(cell).is_integer():
            return str(int(cell))
    return str(cell).strip()


def parse_amount(cell: Any) -> float:
    """Read a money amount such as ``"1,250.50"`` or ``"INR 1,00,000"``.

    Numeric cells are used as they are. Text is stripped of everything but
    digits, ``.`` and ``-`` and its leading number is taken; anything
    unreadable counts as ``0``.
    """
    if _is_number(cell):
        value = float(cell)
        return value if value == value else 0.0
    text = _NON_NUMERIC.sub("", cell_text(cell).replace(",", ""))
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return 0.0
    return float(match.group())


def _cell_at(row: Row, index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return cell_text(row[index])


# ---------------------------------------------------------------------------
# Header detection
# ---------------------------------------------------------------------------

def is_symbol_header(h: str) -> bool:
    return "symbol" in h or "scrip" in h


def is_company_header(h: str) -> bool:
    return "company" in h or "name" in h


def is_isin_header(h: str) -> bool:
    return "isin" in h


def is_net_amount_header(h: str) -> bool:
    return "net" in h and ("amount" in h or "dividend" in h)


def is_total_amount_header(h: str) -> bool:
    return "total" in h and "amount" in h


def is_amount_header(h: str) -> bool:
    return ("amount" in h or "value" in h) and "per share" not in h


def is_any_amount_header(h: str) -> bool:
    return "amount" in h or "value" in h


def is_date_header(h: str) -> bool:
    return "date" in h


# Rules are tried in order; within a rule the leftmost matching column wins.
SYMBOL_RULES = (is_symbol_header,)
COMPANY_RULES = (is_company_header,)
ISIN_RULES = (is_isin_header,)
AMOUNT_RULES = (
    is_net_amount_header,
    is_total_amount_header,
    is_amount_header,
    is_any_amount_header,
)
DATE_RULES = (is_date_header,)


def find_column(header: Sequence[str], rules: Sequence[Callable[[str], bool]]) -> Optional[int]:
    """Return the index of the first column matched by the first rule that matches."""
    for rule in rules:
        for index, name in enumerate(header):
            if rule(name):
                return index
    return None


@dataclass(frozen=True)
class ColumnMap:
    symbol: Optional[int]
    company: Optional[int]
    amount: int
    isin: Optional[int] = None
    date: Optional[int] = None


def resolve_columns(row: Row) -> Optional[ColumnMap]:
    """Interpret ``row`` as a dividend table header.

    Returns ``None`` unless a symbol, company or ISIN column is present. A
    missing symbol or company column borrows the other's index; a missing
    amount column defaults to the last column of the row.
    """
    header = [cell_text(cell).lower() for cell in row]
    symbol = find_column(header, SYMBOL_RULES)
    company = find_column(header, COMPANY_RULES)
    isin = find_column(header, ISIN_RULES)
    if symbol is None and company is None and isin is None:
        return None

    amount = find_column(header, AMOUNT_RULES)
    return ColumnMap(
        symbol=symbol if symbol is not None else company,
        company=company if company is not None else symbol,
        amount=amount if amount is not None else len(row) - 1,
        isin=isin,
        date=find_column(header, DATE_RULES),
    )


# ---------------------------------------------------------------------------
# Section-aware scan
# ---------------------------------------------------------------------------

class Phase(Enum):
    OUTSIDE_SECTION = "outside_section"
    HEADER_SEARCH = "header_search"
    DATA_ROWS = "data_rows"


@dataclass(frozen=True)
class ScanState:
    phase: Phase = Phase.OUTSIDE_SECTION
    columns: Optional[ColumnMap] = None


def extract_entry(row: Row, columns: ColumnMap) -> Optional[DividendEntry]:
    """Build an entry from a data row, or ``None`` if the row does not qualify."""
    symbol_raw = _cell_at(row, columns.symbol)
    if not symbol_raw:
        return None
    amount = parse_amount(row[columns.amount]) if columns.amount < len(row) else 0.0
    if amount <= 0:
        return None
    symbol = symbols.normalize(symbol_raw)
    if not symbol:
        return None

    return DividendEntry(
        symbol=symbol,
        company_name=_cell_at(row, columns.company) or symbol_raw,
        amount=amount,
        isin=_cell_at(row, columns.isin) or None,
        date=_cell_at(row, columns.date) or None,
    )


def advance(state: ScanState, row: Row) -> Tuple[ScanState, Optional[DividendEntry]]:
    """Feed one row to the scanner and return the next state and any entry."""
    if not row:
        return state, None

    if SECTION_MARKER in cell_text(row[0]).lower():
        return ScanState(Phase.HEADER_SEARCH), None

    if state.phase is Phase.OUTSIDE_SECTION:
        return state, None

    if state.phase is Phase.HEADER_SEARCH:
        columns = resolve_columns(row)
        if columns is None:
            return state, None
        return ScanState(Phase.DATA_ROWS, columns), None

    return state, extract_entry(row, state.columns)


def scan_grid(grid: Grid) -> List[DividendEntry]:
    state = ScanState()
    entries = []
    for row in grid:
        state, entry = advance(state, row)
        if entry is not None:
            entries.append(entry)
    return entries


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def parse_sections(grids: Sequence[Grid]) -> List[DividendEntry]:
    """Extract entries from every dividend section of every grid."""
    return [entry for grid in grids for entry in scan_grid(grid)]


def parse_positional(grids: Sequence[Grid]) -> List[DividendEntry]:
    """Read the first grid as ``symbol, company, amount`` below a header row."""
    if not grids:
        return []

    entries = []
    for row in grids[0][1:]:
        if not row or len(row) < 2:
            continue
        symbol = symbols.normalize(cell_text(row[0]))
        company_name = cell_text(row[1]) or symbol
        amount_cell = row[2] if len(row) > 2 and cell_text(row[2]) else row[1]
        amount = parse_amount(amount_cell)
        if symbol and amount > 0:
            entries.append(DividendEntry(symbol=symbol, company_name=company_name, amount=amount))
    return entries


STRATEGIES = (parse_sections, parse_positional)


def parse_grids(grids: Sequence[Grid], strategies=STRATEGIES) -> List[DividendEntry]:
    """Run ``strategies`` in order and return the first non-empty result."""
    for strategy in strategies:
        entries = strategy(grids)
        if entries:
            logger.debug("%s extracted %d entries", strategy.__name__, len(entries))
            return entries
    logger.debug("No dividend entries found in %d grid(s)", len(grids))
    return []


# ---------------------------------------------------------------------------
# File ingestion
# ---------------------------------------------------------------------------

def detect_format(path, fmt: Optional[str] = None) -> str:
    """Return the declared format of ``path``: ``fmt`` if given, else its extension."""
    fmt = (fmt or Path(path).suffix.lstrip(".")).lower()
    if fmt not in TEXT_FORMATS + SPREADSHEET_FORMATS:
        raise DividendParseError(f"Unsupported file format: {fmt or 'unknown'}")
    return fmt


def read_csv_grid(text: str) -> Grid:
    try:
        return list(csv.reader(io.StringIO(text), strict=True))
    except csv.Error as e:
        raise DividendParseError(f"CSV parsing error: {e}") from e


def frame_to_grid(frame: pd.DataFrame) -> Grid:
    """Turn a header-less sheet into ragged rows with ``None`` for blanks."""
    grid = []
    for values in frame.itertuples(index=False, name=None):
        row = [None if pd.isna(value) else value for value in values]
        while row and row[-1] is None:
            row.pop()
        grid.append(row)
    return grid


def read_spreadsheet_grids(path) -> List[Grid]:
    try:
        sheets = pd.read_excel(path, sheet_name=None, header=None, dtype=object)
    except (ValueError, zipfile.BadZipFile) as e:
        raise DividendParseError(f"Spreadsheet parsing error: {e}") from e
    return [frame_to_grid(frame) for frame in sheets.values()]


def read_grids(path, fmt: Optional[str] = None) -> List[Grid]:
    """Load ``path`` as one grid per sheet (a single grid for CSV)."""
    fmt = detect_format(path, fmt)
    if fmt in SPREADSHEET_FORMATS:
        return read_spreadsheet_grids(path)

    try:
        text = Path(path).read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DividendParseError(f"CSV parsing error: {e}") from e
    return [read_csv_grid(text)]


def parse_file(path, fmt: Optional[str] = None) -> ParsedDividendData:
    """Parse a broker report into entries and per-symbol totals."""
    entries = parse_grids(read_grids(path, fmt))
    return ParsedDividendData(entries=entries, aggregated=utils.aggregate(entries))


# ---------------------------------------------------------------------------
# Broker registry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BrokerParser:
    info: BrokerInfo
    parse: Callable[..., ParsedDividendData]

    def can_parse(self, path) -> bool:
        return Path(path).suffix.lstrip(".").lower() in self.info.supported_formats


ZERODHA = BrokerParser(
    info=BrokerInfo(
        id="zerodha",
        name="Zerodha",
        description="Parse Zerodha Tax P&L reports (CSV/Excel)",
        supported_formats=TEXT_FORMATS + SPREADSHEET_FORMATS,
        country="IN",
    ),
    parse=parse_file,
)

PARSERS = {parser.info.id: parser for parser in (ZERODHA,)}


def get_parser(broker_id: str) -> Optional[BrokerParser]:
    return PARSERS.get(broker_id)


def parsers_for_country(country: str) -> List[BrokerParser]:
    return [parser for parser in PARSERS.values() if parser.info.country == country]
