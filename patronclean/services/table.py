"""
Tabular data source.

Addresses use spreadsheet A1 notation: column letters ("A", "AB"), 1-based
rows, row 1 being the header. ``DataFrameTable`` keeps the header as the
DataFrame's column labels, so sheet row ``n`` is DataFrame position ``n - 2``.
"""

import math
import re
from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple

import numpy as np
import pandas as pd

from patronclean.config import settings
from patronclean.exceptions import InvalidReferenceError


COLUMN_PATTERN = re.compile(r'^[A-Z]{1,3}$')
CELL_PATTERN = re.compile(r'^([A-Z]{1,3})([1-9]\d*)$')


# ============================================================================
# A1 NOTATION HELPERS
# ============================================================================

def column_letter_to_index(letter: str) -> int:
    """'A' -> 0, 'Z' -> 25, 'AA' -> 26."""
    if not isinstance(letter, str):
        raise InvalidReferenceError(f"Invalid column letter: {letter!r}")
    cleaned = letter.strip().upper()
    if not COLUMN_PATTERN.match(cleaned):
        raise InvalidReferenceError(f"Invalid column letter: {letter!r}")

    index = 0
    for ch in cleaned:
        index = index * 26 + (ord(ch) - ord('A') + 1)
    return index - 1


def index_to_column_letter(index: int) -> str:
    """0 -> 'A', 26 -> 'AA'."""
    if index < 0:
        raise InvalidReferenceError(f"Invalid column index: {index}")
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord('A') + rem) + letters
    return letters


def normalize_column_letter(letter: str) -> str:
    return index_to_column_letter(column_letter_to_index(letter))


def parse_column_list(text: str) -> List[str]:
    """Parse operator input such as 'A, c' into ['A', 'C']."""
    if not text or not str(text).strip():
        raise InvalidReferenceError("No column letters given")
    return [normalize_column_letter(part) for part in str(text).split(',')]


def parse_cell_address(address: str) -> Tuple[int, int]:
    """'C12' -> (column_index=2, row=12)."""
    match = CELL_PATTERN.match(str(address).strip().upper())
    if not match:
        raise InvalidReferenceError(f"Invalid cell address: {address!r}")
    return column_letter_to_index(match.group(1)), int(match.group(2))


def parse_range(a1: str) -> Tuple[int, int, int, int]:
    """'A2:C50' -> (first_col, first_row, last_col, last_row), corners ordered."""
    parts = str(a1).strip().split(':')
    if len(parts) == 1:
        parts = parts * 2
    if len(parts) != 2:
        raise InvalidReferenceError(f"Invalid range: {a1!r}")

    col1, row1 = parse_cell_address(parts[0])
    col2, row2 = parse_cell_address(parts[1])
    return min(col1, col2), min(row1, row2), max(col1, col2), max(row1, row2)


def cell_address(letter: str, row: int) -> str:
    return f"{letter}{row}"


# ============================================================================
# DATA SOURCE
# ============================================================================

class TabularDataSource(Protocol):
    name: str

    @property
    def column_count(self) -> int: ...

    def add_column(self, header: str) -> str: ...

    def get_column(self, letter: str) -> List[Any]: ...

    def set_column(self, letter: str, values: Sequence[Any]) -> None: ...

    def delete_row(self, row: int) -> None: ...

    def clear_cells(self, addresses: Iterable[str]) -> None: ...

    def get_range(self, a1: str) -> List[List[Any]]: ...

    def set_range(self, a1: str, rows: Sequence[Sequence[Any]]) -> None: ...


def to_cell_value(value: Any) -> Any:
    """Convert pandas/NumPy storage values into plain Python cell values."""
    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).to_pydatetime() if not pd.isna(value) else ""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return ""
    return value


class DataFrameTable:
    """In-memory table over a pandas DataFrame (all columns stored as object)."""

    def __init__(self, df: pd.DataFrame, name: Optional[str] = None):
        self.df = df.astype(object).reset_index(drop=True)
        self.name = name or settings.SHEET_NAME

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]], name: Optional[str] = None) -> "DataFrameTable":
        """Build a table from sheet rows; rows[0] is the header."""
        if not rows:
            raise InvalidReferenceError("A table needs at least a header row")
        header = list(rows[0])
        data = []
        for row in rows[1:]:
            padded = list(row)[:len(header)]
            padded += [""] * (len(header) - len(padded))
            data.append(padded)
        df = pd.DataFrame(data, columns=header, dtype=object)
        return cls(df, name=name)

    def to_rows(self) -> List[List[Any]]:
        rows = [list(self.df.columns)]
        for record in self.df.itertuples(index=False, name=None):
            rows.append([to_cell_value(v) for v in record])
        return rows

    @property
    def row_count(self) -> int:
        """Number of sheet rows including the header."""
        return len(self.df) + 1

    @property
    def column_count(self) -> int:
        return len(self.df.columns)

    def _position(self, letter: str) -> int:
        index = column_letter_to_index(letter)
        if index >= self.column_count:
            raise InvalidReferenceError(
                f"Column {letter} is outside the table (last column is "
                f"{index_to_column_letter(self.column_count - 1) if self.column_count else 'none'})"
            )
        return index

    def _check_row(self, row: int, allow_header: bool = False) -> None:
        first = 1 if allow_header else 2
        if not first <= row <= self.row_count:
            raise InvalidReferenceError(f"Row {row} is outside the table")

    def has_column(self, letter: str) -> bool:
        return column_letter_to_index(letter) < self.column_count

    def add_column(self, header: str) -> str:
        """Append an empty column and return its letter."""
        position = self.column_count
        self.df.insert(position, header, pd.Series([""] * len(self.df), dtype=object), allow_duplicates=True)
        return index_to_column_letter(position)

    def get_column(self, letter: str) -> List[Any]:
        index = self._position(letter)
        header = self.df.columns[index]
        return [header] + [to_cell_value(v) for v in self.df.iloc[:, index].tolist()]

    def set_column(self, letter: str, values: Sequence[Any]) -> None:
        index = self._position(letter)
        if len(values) != self.row_count:
            raise ValueError(f"Expected {self.row_count} values for column {letter}, got {len(values)}")

        if values[0] != self.df.columns[index]:
            columns = list(self.df.columns)
            columns[index] = values[0]
            self.df.columns = columns
        self.df.isetitem(index, pd.Series(list(values[1:]), index=self.df.index, dtype=object))

    def delete_row(self, row: int) -> None:
        self._check_row(row)
        self.df = self.df.drop(index=row - 2).reset_index(drop=True)

    def clear_cells(self, addresses: Iterable[str]) -> None:
        # Validate every address before touching anything
        targets = []
        for address in addresses:
            col, row = parse_cell_address(address)
            if col >= self.column_count:
                raise InvalidReferenceError(f"Cell {address} is outside the table")
            self._check_row(row)
            targets.append((row - 2, col))

        for position, col in targets:
            self.df.iat[position, col] = ""

    def get_range(self, a1: str) -> List[List[Any]]:
        col1, row1, col2, row2 = parse_range(a1)
        if col2 >= self.column_count:
            raise InvalidReferenceError(f"Range {a1} is outside the table")
        self._check_row(row1, allow_header=True)
        self._check_row(row2, allow_header=True)

        rows = []
        for row in range(row1, row2 + 1):
            if row == 1:
                rows.append(list(self.df.columns[col1:col2 + 1]))
            else:
                rows.append([to_cell_value(v) for v in self.df.iloc[row - 2, col1:col2 + 1].tolist()])
        return rows

    def set_range(self, a1: str, rows: Sequence[Sequence[Any]]) -> None:
        col1, row1, col2, row2 = parse_range(a1)
        if col2 >= self.column_count:
            raise InvalidReferenceError(f"Range {a1} is outside the table")
        self._check_row(row1, allow_header=True)
        self._check_row(row2, allow_header=True)
        if len(rows) != row2 - row1 + 1 or any(len(r) != col2 - col1 + 1 for r in rows):
            raise ValueError(f"Value grid does not match range {a1}")

        for offset, values in enumerate(rows):
            row = row1 + offset
            if row == 1:
                columns = list(self.df.columns)
                columns[col1:col2 + 1] = list(values)
                self.df.columns = columns
                continue
            for col_offset, value in enumerate(values):
                self.df.iat[row - 2, col1 + col_offset] = value
