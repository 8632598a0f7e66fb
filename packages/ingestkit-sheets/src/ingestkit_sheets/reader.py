"""Reader contract shared by every format decoder.

``Reader`` and ``ReaderRef`` are the structural-subtyping interfaces callers
program against; both are ``@runtime_checkable``.  ``BaseReader`` implements
the whole contract on top of three decoder hooks (``_open``,
``_read_cells`` and optionally ``_read_formulas`` / ``_read_merge_cells``),
so a decoder only has to translate its library's cells into
``(row, col, value)`` triples.

Ranges are always built through ``Range.from_sparse`` (or densified with
``Range.to_dense`` when every slot of the bounding box was recorded), so
absence and row-major ordering hold for every format.
"""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel

from ingestkit_sheets.config import SheetsReaderConfig
from ingestkit_sheets.datatypes import Data, DataRef, SharedStrings
from ingestkit_sheets.detection import SheetFormat
from ingestkit_sheets.dimensions import Dimensions
from ingestkit_sheets.errors import FormatError
from ingestkit_sheets.range import Cell, Range

logger = logging.getLogger("ingestkit_sheets")


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


class SheetType(str, Enum):
    """Kind of a workbook tab."""

    WORKSHEET = "WorkSheet"
    CHART_SHEET = "ChartSheet"
    DIALOG_SHEET = "DialogSheet"
    MACRO_SHEET = "MacroSheet"
    VBA = "Vba"


class SheetVisible(str, Enum):
    """Visibility of a workbook tab."""

    VISIBLE = "Visible"
    HIDDEN = "Hidden"
    VERY_HIDDEN = "VeryHidden"


class Sheet(BaseModel):
    """A workbook tab as declared by the workbook."""

    name: str
    typ: SheetType = SheetType.WORKSHEET
    visible: SheetVisible = SheetVisible.VISIBLE


class Metadata(BaseModel):
    """Workbook-level metadata owned by a reader session.

    ``sheets`` keeps workbook tab order; duplicate names are kept as-is.
    """

    sheets: list[Sheet] = []
    names: list[tuple[str, str]] = []
    is_1904: bool = False

    def add_sheet(self, sheet: Sheet) -> None:
        self.sheets.append(sheet)

    def sheet_names(self) -> list[str]:
        return [s.name for s in self.sheets]


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Reader(Protocol):
    """Owned-data access to a workbook."""

    def metadata(self) -> Metadata:
        """Return the workbook metadata."""
        ...

    def sheet_names(self) -> list[str]:
        """Return sheet names in workbook order."""
        ...

    def worksheet_range(self, name: str) -> Range[Data]:
        """Return the cells of sheet *name*; raises a not-found error if absent."""
        ...

    def worksheet_range_at(self, index: int) -> Range[Data]:
        """Return the cells of the sheet at *index* in workbook order."""
        ...


@runtime_checkable
class ReaderRef(Reader, Protocol):
    """Reader that can also hand out values tied to its shared-string pool."""

    def worksheet_range_ref(self, name: str) -> Range[DataRef]:
        """Return the cells of sheet *name* as :class:`DataRef` values."""
        ...


# ---------------------------------------------------------------------------
# Base implementation
# ---------------------------------------------------------------------------


class BaseReader(ABC):
    """Common implementation of :class:`ReaderRef` for concrete decoders.

    Parameters
    ----------
    data:
        Complete file contents.
    config:
        Reader configuration.  Uses defaults when *None*.
    """

    format: ClassVar[SheetFormat]
    error_type: ClassVar[type[FormatError]]
    not_found_code: ClassVar[Enum]
    unsupported_code: ClassVar[Enum]

    def __init__(self, data: bytes, config: SheetsReaderConfig | None = None) -> None:
        self._config = config or SheetsReaderConfig()
        self._metadata = Metadata()
        self._strings = SharedStrings()
        self._open(data)
        logger.info(
            "ingestkit_sheets | parser=%s | format=%s | sheets=%d",
            self._config.parser_version,
            self.format.value,
            len(self._metadata.sheets),
        )

    # -- decoder hooks -------------------------------------------------------

    @abstractmethod
    def _open(self, data: bytes) -> None:
        """Parse the container and populate ``self._metadata``."""

    @abstractmethod
    def _read_cells(self, name: str) -> Iterable[tuple[int, int, Any]]:
        """Yield ``(row, col, value)`` for recorded cells, row-major.

        *value* is a native Python value or a :class:`Data`; ``None`` values
        are skipped.
        """

    def _read_formulas(self, name: str) -> Iterable[tuple[int, int, str]]:
        raise self.error_type(
            self.unsupported_code,
            f"{self.format.value} reader does not expose formulas",
            sheet_name=name,
        )

    def _read_merge_cells(self, name: str) -> list[Dimensions]:
        return []

    def _close(self) -> None:
        """Release library resources held by the decoder."""

    # -- metadata ------------------------------------------------------------

    def metadata(self) -> Metadata:
        return self._metadata

    def sheets_metadata(self) -> list[Sheet]:
        return list(self._metadata.sheets)

    def sheet_names(self) -> list[str]:
        return self._metadata.sheet_names()

    def defined_names(self) -> list[tuple[str, str]]:
        return list(self._metadata.names)

    # -- ranges --------------------------------------------------------------

    def worksheet_range(self, name: str) -> Range[Data]:
        is_1904 = self._metadata.is_1904
        rng = self._build_range(
            Cell((row, col), Data.from_python(value, is_1904=is_1904))
            for row, col, value in self._recorded(name)
        )
        logger.debug(
            "ingestkit_sheets | sheet=%s | range=%r",
            name,
            rng,
        )
        if self._config.log_sample_data:
            sample = [str(v) for _, v in itertools.islice(rng.used_cells(), 5)]
            logger.debug("ingestkit_sheets | sheet=%s | sample=%s", name, sample)
        return rng

    def worksheet_range_ref(self, name: str) -> Range[DataRef]:
        return self._build_range(self._ref_cells(name))

    def worksheet_range_at(self, index: int) -> Range[Data]:
        return self.worksheet_range(self._name_at(index))

    def worksheet_formula(self, name: str) -> Range[str]:
        """Formula text per cell (no evaluation), as a sparse range."""
        self._check_sheet(name)
        return Range.from_sparse(
            Cell((row, col), formula)
            for row, col, formula in self._limit_rows(name, self._read_formulas(name))
        )

    def worksheet_merge_cells(self, name: str) -> list[Dimensions]:
        """Merged regions as supplied by the decoder."""
        self._check_sheet(name)
        return self._read_merge_cells(name)

    def worksheets(self) -> Iterator[tuple[str, Range[Data]]]:
        """Lazily yield ``(name, range)`` for every sheet in workbook order."""
        for name in self.sheet_names():
            yield name, self.worksheet_range(name)

    # -- lifecycle -----------------------------------------------------------

    def close(self) -> None:
        self._close()

    def __enter__(self) -> BaseReader:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- helpers -------------------------------------------------------------

    def _name_at(self, index: int) -> str:
        names = self.sheet_names()
        if not 0 <= index < len(names):
            raise self.error_type(
                self.not_found_code,
                f"No sheet at index {index} (workbook has {len(names)})",
            )
        return names[index]

    def _check_sheet(self, name: str) -> None:
        if name not in self.sheet_names():
            raise self.error_type(
                self.not_found_code, f"Worksheet '{name}' not found", sheet_name=name
            )

    def _to_ref(self, value: Any) -> DataRef:
        data = Data.from_python(value, is_1904=self._metadata.is_1904)
        if data.is_string():
            return DataRef.shared(self._strings, self._strings.intern(data.get_string()))
        return DataRef.from_data(data)

    def _recorded(self, name: str) -> Iterator[tuple[int, int, Any]]:
        self._check_sheet(name)
        for row, col, value in self._limit_rows(name, self._read_cells(name)):
            if value is not None:
                yield row, col, value

    def _ref_cells(self, name: str) -> Iterator[Cell[DataRef]]:
        for row, col, value in self._recorded(name):
            yield Cell((row, col), self._to_ref(value))

    def _limit_rows(self, name: str, items: Iterable[tuple]) -> Iterator[tuple]:
        max_rows = self._config.max_rows
        for item in items:
            if max_rows is not None and item[0] >= max_rows:
                logger.warning(
                    "ingestkit_sheets | sheet=%s | rows truncated at max_rows=%d",
                    name,
                    max_rows,
                )
                return
            yield item

    def _build_range(self, cells: Iterable[Cell[Any]]) -> Range[Any]:
        rng = Range.from_sparse(cells)
        dims = rng.dimensions
        if dims is not None and len(rng) >= dims.len() * self._config.sparse_fill_ratio:
            return rng.to_dense()
        return rng
