"""Cell coordinates and rectangular regions.

``Position`` is a zero-based ``(row, col)`` pair ordered row-major.
``Dimensions`` is an inclusive ``start``/``end`` rectangle; constructing one
with ``start`` past ``end`` on either axis is rejected, never swapped.

A1-style references are converted with ``openpyxl.utils.cell``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

from openpyxl.utils.cell import (
    column_index_from_string,
    coordinate_from_string,
    get_column_letter,
    range_boundaries,
)
from pydantic import BaseModel, ConfigDict, model_validator

MAX_INDEX = 0xFFFF_FFFF


class Position(NamedTuple):
    """Zero-based ``(row, col)`` coordinate."""

    row: int
    col: int

    @classmethod
    def of(cls, row: int, col: int) -> Position:
        """Build a position, rejecting values outside the unsigned 32-bit range."""
        if not (0 <= row <= MAX_INDEX and 0 <= col <= MAX_INDEX):
            raise ValueError(f"Position out of range: ({row}, {col})")
        return cls(row, col)

    @classmethod
    def from_a1(cls, ref: str) -> Position:
        """Parse an A1 reference such as ``"B3"`` (``$`` markers allowed)."""
        column, row = coordinate_from_string(ref.replace("$", ""))
        return cls.of(row - 1, column_index_from_string(column) - 1)

    def to_a1(self) -> str:
        return f"{get_column_letter(self.col + 1)}{self.row + 1}"


class Dimensions(BaseModel):
    """Inclusive rectangular region from ``start`` to ``end``."""

    model_config = ConfigDict(frozen=True)

    start: Position
    end: Position

    @model_validator(mode="after")
    def _check_order(self) -> Dimensions:
        for pos in (self.start, self.end):
            if not (0 <= pos.row <= MAX_INDEX and 0 <= pos.col <= MAX_INDEX):
                raise ValueError(f"Position out of range: {tuple(pos)}")
        if self.start.row > self.end.row or self.start.col > self.end.col:
            raise ValueError(
                f"Dimensions start {tuple(self.start)} is past end {tuple(self.end)}"
            )
        return self

    @classmethod
    def new(
        cls, start: tuple[int, int], end: tuple[int, int]
    ) -> Dimensions:
        return cls(start=Position(*start), end=Position(*end))

    @classmethod
    def from_a1(cls, ref: str) -> Dimensions:
        """Parse ``"A1:C3"`` (or a single cell ``"B2"``)."""
        min_col, min_row, max_col, max_row = range_boundaries(ref.replace("$", ""))
        if min_col is None or min_row is None:
            raise ValueError(f"Not a bounded cell range: {ref!r}")
        return cls.new((min_row - 1, min_col - 1), (max_row - 1, max_col - 1))

    @classmethod
    def bounding(cls, positions: Iterable[tuple[int, int]]) -> Dimensions | None:
        """Minimal region covering *positions*; ``None`` when there are none."""
        it = iter(positions)
        first = next(it, None)
        if first is None:
            return None
        min_row = max_row = first[0]
        min_col = max_col = first[1]
        for row, col in it:
            if row < min_row:
                min_row = row
            elif row > max_row:
                max_row = row
            if col < min_col:
                min_col = col
            elif col > max_col:
                max_col = col
        return cls.new((min_row, min_col), (max_row, max_col))

    def width(self) -> int:
        return self.end.col - self.start.col + 1

    def height(self) -> int:
        return self.end.row - self.start.row + 1

    def len(self) -> int:
        return self.width() * self.height()

    def contains(self, row: int, col: int) -> bool:
        return (
            self.start.row <= row <= self.end.row
            and self.start.col <= col <= self.end.col
        )

    def to_a1(self) -> str:
        return f"{self.start.to_a1()}:{self.end.to_a1()}"

    def __repr__(self) -> str:
        return f"Dimensions({tuple(self.start)}, {tuple(self.end)})"
