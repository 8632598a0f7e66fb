"""Positioned values and rectangular cell containers.

A :class:`Range` is built either *dense* (a row-major grid where every slot
holds a value, unpopulated ones the empty default) or *sparse* (only the
supplied cells, bounding box computed from their positions).  Both expose
the same API and iterate in row-major order; the only observable difference
is that ``get_value`` returns ``None`` for an unrecorded position inside a
sparse range, while a dense range returns the stored default.

:meth:`Range.deserialize` turns a range with a header row into records,
optionally validated by a pydantic model.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import pandas as pd
from pydantic import BaseModel, ValidationError

from ingestkit_sheets.datatypes import Data
from ingestkit_sheets.dimensions import Dimensions, Position
from ingestkit_sheets.errors import DeError, DeErrorCode

logger = logging.getLogger("ingestkit_sheets")

T = TypeVar("T")


@dataclass(frozen=True)
class Cell(Generic[T]):
    """A value at a position."""

    pos: Position
    value: T

    def __post_init__(self) -> None:
        if not isinstance(self.pos, Position):
            object.__setattr__(self, "pos", Position.of(*self.pos))


def _plain(value: Any) -> Any:
    to_python = getattr(value, "to_python", None)
    return to_python() if to_python is not None else value


def _header_name(value: Any) -> str:
    plain = _plain(value)
    return "" if plain is None else str(plain)


class Range(Generic[T]):
    """Rectangular container of cell values.

    Use the ``new`` / ``from_fn`` / ``from_rows`` (dense) or ``from_sparse``
    classmethods; the constructor is internal.
    """

    __slots__ = ("_dims", "_dense", "_sparse", "_sorted_keys")

    def __init__(
        self,
        dims: Dimensions | None,
        dense: list[T] | None = None,
        sparse: dict[Position, T] | None = None,
    ) -> None:
        self._dims = dims
        self._dense = dense
        self._sparse = sparse
        self._sorted_keys: list[Position] | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> Range[T]:
        return cls(None, sparse={})

    @classmethod
    def new(
        cls,
        start: tuple[int, int],
        end: tuple[int, int],
        default: T | None = None,
    ) -> Range[T]:
        """Dense range over ``start..=end`` with every slot set to *default*.

        *default* falls back to ``Data.empty()``.
        """
        dims = Dimensions.new(start, end)
        fill = Data.empty() if default is None else default
        return cls(dims, dense=[fill] * dims.len())

    @classmethod
    def from_fn(cls, dims: Dimensions, fn: Callable[[Position], T]) -> Range[T]:
        """Dense range whose slots are produced by ``fn(position)``."""
        values = [
            fn(Position(row, col))
            for row in range(dims.start.row, dims.end.row + 1)
            for col in range(dims.start.col, dims.end.col + 1)
        ]
        return cls(dims, dense=values)

    @classmethod
    def from_rows(
        cls,
        start: tuple[int, int],
        rows: Sequence[Sequence[T]],
        default: T | None = None,
    ) -> Range[T]:
        """Dense range from row lists; short rows are padded with *default*."""
        width = max((len(r) for r in rows), default=0)
        if not rows or width == 0:
            return cls.empty()
        fill = Data.empty() if default is None else default
        values: list[T] = []
        for row in rows:
            values.extend(row)
            values.extend([fill] * (width - len(row)))
        end = (start[0] + len(rows) - 1, start[1] + width - 1)
        return cls(Dimensions.new(start, end), dense=values)

    @classmethod
    def from_sparse(cls, cells: Iterable[Cell[T]]) -> Range[T]:
        """Sparse range holding exactly *cells*.

        The dimensions are the bounding box of the supplied positions.  When
        two cells share a position the later one wins.
        """
        stored: dict[Position, T] = {}
        for cell in cells:
            stored[cell.pos] = cell.value
        return cls(Dimensions.bounding(stored), sparse=stored)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def dimensions(self) -> Dimensions | None:
        return self._dims

    @property
    def start(self) -> Position | None:
        return self._dims.start if self._dims is not None else None

    @property
    def end(self) -> Position | None:
        return self._dims.end if self._dims is not None else None

    @property
    def is_sparse(self) -> bool:
        return self._sparse is not None

    def width(self) -> int:
        return self._dims.width() if self._dims is not None else 0

    def height(self) -> int:
        return self._dims.height() if self._dims is not None else 0

    def get_size(self) -> tuple[int, int]:
        """``(height, width)``."""
        return self.height(), self.width()

    def is_empty(self) -> bool:
        return self._dims is None

    def __len__(self) -> int:
        """Number of stored cells (every slot for a dense range)."""
        if self._sparse is not None:
            return len(self._sparse)
        return len(self._dense)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_value(self, pos: tuple[int, int]) -> T | None:
        """Value at absolute *pos*, or ``None`` outside / unrecorded."""
        dims = self._dims
        if dims is None or not dims.contains(pos[0], pos[1]):
            return None
        if self._sparse is not None:
            return self._sparse.get(Position(pos[0], pos[1]))
        idx = (pos[0] - dims.start.row) * dims.width() + (pos[1] - dims.start.col)
        return self._dense[idx]

    def get(self, rel: tuple[int, int]) -> T | None:
        """Value at *rel*, relative to :attr:`start`."""
        if self._dims is None or rel[0] < 0 or rel[1] < 0:
            return None
        return self.get_value((self._dims.start.row + rel[0], self._dims.start.col + rel[1]))

    def _keys(self) -> list[Position]:
        if self._sorted_keys is None:
            self._sorted_keys = sorted(self._sparse)
        return self._sorted_keys

    def cells(self) -> Iterator[tuple[Position, T]]:
        """Stored ``(position, value)`` pairs in row-major order.

        Each call returns a fresh iterator.
        """
        dims = self._dims
        if dims is None:
            return
        if self._sparse is not None:
            for pos in self._keys():
                yield pos, self._sparse[pos]
            return
        width = dims.width()
        for idx, value in enumerate(self._dense):
            row, col = divmod(idx, width)
            yield Position(dims.start.row + row, dims.start.col + col), value

    def __iter__(self) -> Iterator[tuple[Position, T]]:
        return self.cells()

    def used_cells(self) -> Iterator[tuple[Position, T]]:
        """Like :meth:`cells` but skipping empty values."""
        for pos, value in self.cells():
            is_empty = getattr(value, "is_empty", None)
            if value is None or (is_empty is not None and is_empty()):
                continue
            yield pos, value

    def rows(self, default: Any = None) -> Iterator[list[Any]]:
        """Row lists covering the full width.

        Absent sparse slots are filled with *default*.
        """
        dims = self._dims
        if dims is None:
            return
        width = dims.width()
        if self._sparse is None:
            for offset in range(0, len(self._dense), width):
                yield self._dense[offset:offset + width]
            return
        current: list[Any] | None = None
        current_row = dims.start.row
        for pos in self._keys():
            while current_row < pos.row:
                yield current if current is not None else [default] * width
                current = None
                current_row += 1
            if current is None:
                current = [default] * width
            current[pos.col - dims.start.col] = self._sparse[pos]
        while current_row <= dims.end.row:
            yield current if current is not None else [default] * width
            current = None
            current_row += 1

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_dense(self, default: T | None = None) -> Range[T]:
        """Dense copy; unrecorded sparse slots take *default* (``Data.empty()``)."""
        if self._sparse is None:
            return self
        if self._dims is None:
            return Range.empty()
        fill = Data.empty() if default is None else default
        dims = self._dims
        width = dims.width()
        values: list[T] = [fill] * dims.len()
        for pos, value in self._sparse.items():
            values[(pos.row - dims.start.row) * width + (pos.col - dims.start.col)] = value
        return Range(dims, dense=values)

    def to_sparse(self) -> Range[T]:
        """Sparse copy keeping only non-empty cells.

        The bounding box shrinks to the kept cells.
        """
        if self._sparse is not None:
            return self
        return Range.from_sparse(Cell(pos, value) for pos, value in self.used_cells())

    def range(self, start: tuple[int, int], end: tuple[int, int]) -> Range[T]:
        """Sub-range over absolute ``start..=end``, keeping the storage kind.

        The result always spans exactly the requested box.  Dense slots
        outside this range are filled with ``Data.empty()``; sparse ones stay
        unrecorded.
        """
        dims = Dimensions.new(start, end)
        if self._sparse is not None:
            return Range(
                dims,
                sparse={
                    pos: value
                    for pos, value in self._sparse.items()
                    if dims.contains(pos.row, pos.col)
                },
            )

        def _value(pos: Position) -> T:
            value = self.get_value(pos)
            return Data.empty() if value is None else value

        return Range.from_fn(dims, _value)

    def to_dataframe(self) -> pd.DataFrame:
        """``pandas.DataFrame`` of plain Python values, one row per sheet row."""
        data = [[_plain(v) for v in row] for row in self.rows()]
        columns = range(self.start.col, self.end.col + 1) if self._dims else None
        frame = pd.DataFrame(data, columns=columns)
        if self._dims is not None:
            frame.index = pd.RangeIndex(self.start.row, self.end.row + 1)
        return frame

    def deserialize(
        self,
        model: type[BaseModel] | None = None,
        headers: bool | Sequence[str] = True,
    ) -> RangeDeserializer:
        """Iterate data rows as dicts, tuples, or validated *model* instances."""
        return RangeDeserializer(self, model=model, headers=headers)

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return self._dims == other._dims and list(self.cells()) == list(other.cells())

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        kind = "sparse" if self.is_sparse else "dense"
        if self._dims is None:
            return "Range(empty)"
        return f"Range({self._dims.to_a1()}, {kind}, cells={len(self)})"


class RangeDeserializer:
    """Iterator over the data rows of a range.

    With ``headers=True`` the first row names the columns and every later row
    becomes a dict (or a *model* instance).  ``headers`` may also be a list of
    required column names, looked up in the first row.  With
    ``headers=False`` rows are tuples, or *model* instances built from the
    model's field order.
    """

    def __init__(
        self,
        rng: Range[Any],
        model: type[BaseModel] | None = None,
        headers: bool | Sequence[str] = True,
    ) -> None:
        self._model = model
        self._rows = rng.rows()
        self._row_index = rng.start.row if rng.start is not None else 0
        self._columns: list[tuple[str, int]] | None = None

        if headers is False:
            if model is not None:
                self._columns = [(name, i) for i, name in enumerate(model.model_fields)]
            return

        header_row = next(self._rows, None)
        if header_row is None:
            raise DeError(DeErrorCode.E_DE_HEADER_NOT_FOUND, "Range has no header row")
        self._row_index += 1
        names = [_header_name(v) for v in header_row]

        if headers is True:
            self._columns = [(name, i) for i, name in enumerate(names)]
            return

        columns: list[tuple[str, int]] = []
        for wanted in headers:
            if wanted not in names:
                raise DeError(
                    DeErrorCode.E_DE_HEADER_NOT_FOUND,
                    f"Header {wanted!r} not found in {names}",
                    row=self._row_index - 1,
                )
            columns.append((wanted, names.index(wanted)))
        self._columns = columns

    def __iter__(self) -> RangeDeserializer:
        return self

    def __next__(self) -> Any:
        row = next(self._rows)
        row_index = self._row_index
        self._row_index += 1
        values = [_plain(v) for v in row]

        if self._columns is None:
            return tuple(values)

        record: dict[str, Any] = {}
        for name, idx in self._columns:
            if idx >= len(values):
                raise DeError(
                    DeErrorCode.E_DE_UNEXPECTED_END_OF_ROW,
                    f"Row {row_index} has no column {idx} ({name!r})",
                    row=row_index,
                    column=idx,
                )
            record[name] = values[idx]

        if self._model is None:
            return record
        try:
            return self._model.model_validate(record)
        except ValidationError as exc:
            logger.debug("ingestkit_sheets | deserialize failed | row=%d", row_index)
            raise DeError(
                DeErrorCode.E_DE_INVALID_VALUE,
                f"Row {row_index}: {exc.errors()[0]['msg']}",
                row=row_index,
            ) from exc
