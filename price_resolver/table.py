"""Price Table.

The reference price spreadsheet has one row per day and one column per
price series:

    A         B            C             D ...
    (unused)  DATA         PLATTS AUTO   Q8 GASOLIO ROMA ...
              01/15/2025   0.61234       0.90000

Row 1 is the header. Column B holds the date as an Excel serial number, a
date cell, ISO text or US-style month/day/year text (two or four digit
year). Only positive prices are kept, so an empty or zero cell is the same
as a missing one.

The table is built once and never mutated; it is passed explicitly to the
resolver.
"""

import re
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from openpyxl import load_workbook
from pydantic import BaseModel, ConfigDict, Field

from core.normalize import parse_plain_number, to_date
from core.observability import get_logger


logger = get_logger(__name__)

DATE_COLUMN = 1      # B
FIRST_SERIES = 2     # C


class PriceTableError(Exception):
    """The price spreadsheet is missing, unreadable or has no usable rows."""
    pass


def label_key(label: Any) -> str:
    """Case- and spacing-insensitive key for a column label."""
    return re.sub(r"\s+", " ", str(label or "")).strip().upper()


class PriceTableRow(BaseModel):
    """One dated row: column label -> positive price."""
    model_config = ConfigDict(frozen=True)

    price_date: date
    prices: Dict[str, Decimal] = Field(default_factory=dict)

    def price(self, label: str) -> Optional[Decimal]:
        """Price under a label (matched case-insensitively), or None."""
        key = label_key(label)
        for name, value in self.prices.items():
            if label_key(name) == key:
                return value
        return None


class PriceTable:
    """Immutable, date-sorted collection of price rows."""

    def __init__(self, rows: Iterable[PriceTableRow], labels: Sequence[str] = ()):
        by_date: Dict[date, PriceTableRow] = {}
        for row in rows:
            if row.price_date in by_date:
                # Same date twice: the later row wins
                logger.debug("Duplicate price date", extra_fields={"date": row.price_date.isoformat()})
            by_date[row.price_date] = row
        self._rows: Tuple[PriceTableRow, ...] = tuple(by_date[d] for d in sorted(by_date))
        self._labels: Tuple[str, ...] = tuple(labels)

    @property
    def rows(self) -> Tuple[PriceTableRow, ...]:
        return self._rows

    @property
    def labels(self) -> Tuple[str, ...]:
        return self._labels

    def __len__(self) -> int:
        return len(self._rows)

    def has_column(self, label: str) -> bool:
        key = label_key(label)
        return any(label_key(name) == key for name in self._labels)

    def find_row(self, on_date: date, window_days: int = 7) -> Optional[PriceTableRow]:
        """
        Row for a date: the exact date, else the nearest within window_days.

        Distance is the absolute number of days; on a tie the earlier date
        is used. Returns None when no row is close enough.
        """
        best: Optional[PriceTableRow] = None
        best_distance: Optional[int] = None
        for row in self._rows:
            distance = abs((row.price_date - on_date).days)
            if distance == 0:
                return row
            if distance > window_days:
                continue
            # Rows are ascending, so a strict comparison keeps the earlier date on a tie
            if best_distance is None or distance < best_distance:
                best, best_distance = row, distance
        return best

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[Any]]) -> "PriceTable":
        """
        Build a table from spreadsheet rows (values only).

        Args:
            rows: Rows as sequences of cell values; the first row is the header

        Returns:
            PriceTable (possibly empty)
        """
        iterator = iter(rows)
        header = next(iterator, None)
        if header is None:
            return cls([], ())

        series: List[Tuple[int, str]] = [
            (index, str(name).strip())
            for index, name in enumerate(header)
            if index >= FIRST_SERIES and name is not None and str(name).strip()
        ]

        parsed: List[PriceTableRow] = []
        skipped = 0
        for values in iterator:
            if values is None or len(values) <= DATE_COLUMN:
                skipped += 1
                continue
            price_date = to_date(values[DATE_COLUMN], dayfirst=False)
            if price_date is None:
                skipped += 1
                continue

            prices: Dict[str, Decimal] = {}
            for index, name in series:
                if index >= len(values):
                    continue
                value = parse_plain_number(values[index])
                if value > 0:
                    prices[name] = value
            parsed.append(PriceTableRow(price_date=price_date, prices=prices))

        if skipped:
            logger.debug("Skipped price rows without a readable date", extra_fields={"skipped": skipped})

        return cls(parsed, [name for _, name in series])


def load_price_table(path: Union[str, Path]) -> PriceTable:
    """
    Load the price spreadsheet (.xlsx) from its first worksheet.

    Raises:
        PriceTableError: Missing/unreadable file or no usable rows
    """
    path = Path(path)
    if not path.exists():
        raise PriceTableError(f"Price table not found: {path}")

    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except Exception as e:
        raise PriceTableError(f"Cannot read price table {path}: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        table = PriceTable.from_rows(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not len(table):
        raise PriceTableError(f"Price table has no dated rows: {path}")

    logger.info(
        "Loaded price table",
        extra_fields={"path": str(path), "rows": len(table), "columns": len(table.labels)},
    )
    return table
