"""AutoWorkbook -- format-detecting facade over the concrete decoders.

Opening runs a one-way state machine::

    UNOPENED -> DETECTING -> OPENED | FAILED

1. Read the source into memory and enforce the configured size limit.
2. Detect the format from the leading bytes, then from the ZIP member
   names when the container is ambiguous.
3. Instantiate the decoder registered for that format.

Any failure is terminal: the workbook keeps the :class:`SheetsError` and
every later call raises it.  Decoder errors are converted with
:meth:`FormatError.to_error` so the specific code survives.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import IO, Any, Union

from ingestkit_sheets.config import SheetsReaderConfig
from ingestkit_sheets.datatypes import Data, DataRef
from ingestkit_sheets.detection import (
    SheetFormat,
    detect_format,
    is_zip,
    resolve_zip_format,
)
from ingestkit_sheets.dimensions import Dimensions
from ingestkit_sheets.errors import FormatError, SheetsError
from ingestkit_sheets.range import Range
from ingestkit_sheets.reader import BaseReader, Metadata, Sheet
from ingestkit_sheets.readers import OdsReader, XlsbReader, XlsReader, XlsxReader

logger = logging.getLogger("ingestkit_sheets")

Source = Union[bytes, bytearray, memoryview, str, os.PathLike, IO[bytes]]

_READERS: dict[SheetFormat, type[BaseReader]] = {
    SheetFormat.XLSX: XlsxReader,
    SheetFormat.XLS: XlsReader,
    SheetFormat.XLSB: XlsbReader,
    SheetFormat.ODS: OdsReader,
}


class WorkbookState(str, Enum):
    """Lifecycle of an :class:`AutoWorkbook`."""

    UNOPENED = "unopened"
    DETECTING = "detecting"
    OPENED = "opened"
    FAILED = "failed"


def _read_source(source: Source, config: SheetsReaderConfig) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    elif isinstance(source, (str, os.PathLike)):
        try:
            data = Path(source).read_bytes()
        except OSError as exc:
            raise SheetsError.io(f"Cannot read {source}: {exc}") from exc
    elif hasattr(source, "read"):
        try:
            if hasattr(source, "seek"):
                source.seek(0)
            data = source.read()
        except OSError as exc:
            raise SheetsError.io(f"Cannot read stream: {exc}") from exc
    else:
        raise SheetsError.msg(f"Unsupported source type {type(source).__name__}")

    if not data:
        raise SheetsError.msg("File is empty (0 bytes).")
    max_bytes = config.max_file_size_mb * 1024 * 1024
    if len(data) > max_bytes:
        raise SheetsError.msg(
            f"File size {len(data)} bytes exceeds limit of {max_bytes} bytes"
        )
    return data


class AutoWorkbook:
    """Single entry point that picks the right decoder for a workbook.

    Implements the ``ReaderRef`` contract by delegating to the decoder chosen
    at open time.

    Parameters
    ----------
    config:
        Reader configuration.  Uses defaults when *None*.
    """

    def __init__(self, config: SheetsReaderConfig | None = None) -> None:
        self._config = config or SheetsReaderConfig()
        self._state = WorkbookState.UNOPENED
        self._format = SheetFormat.UNKNOWN
        self._reader: BaseReader | None = None
        self._error: SheetsError | None = None

    @classmethod
    def open(
        cls, source: Source, config: SheetsReaderConfig | None = None
    ) -> AutoWorkbook:
        """Open *source* (bytes, path or binary stream); raises :class:`SheetsError`."""
        workbook = cls(config)
        workbook.load(source)
        return workbook

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> WorkbookState:
        return self._state

    @property
    def format(self) -> SheetFormat:
        return self._format

    @property
    def error(self) -> SheetsError | None:
        return self._error

    @property
    def reader(self) -> BaseReader | None:
        return self._reader

    def load(self, source: Source) -> None:
        """Detect the format of *source* and open it with the matching decoder."""
        if self._state is not WorkbookState.UNOPENED:
            raise SheetsError.msg(f"Workbook cannot be opened again (state={self._state.value})")
        self._state = WorkbookState.DETECTING

        try:
            data = _read_source(source, self._config)
            verdict = detect_format(data[: self._config.detection_prefix_bytes])
            if verdict is SheetFormat.UNKNOWN and is_zip(data):
                verdict = resolve_zip_format(data)
            if verdict is SheetFormat.UNKNOWN:
                raise SheetsError.msg("Cannot detect spreadsheet format from file signature")
            self._format = verdict
            self._reader = _READERS[verdict](data, self._config)
        except FormatError as exc:
            self._fail(exc.to_error())
            raise self._error from exc
        except SheetsError as exc:
            self._fail(exc)
            raise

        self._state = WorkbookState.OPENED
        logger.info(
            "ingestkit_sheets | opened | format=%s | sheets=%d",
            self._format.value,
            len(self._reader.sheet_names()),
        )

    def _fail(self, error: SheetsError) -> None:
        self._state = WorkbookState.FAILED
        self._error = error
        logger.error(
            "ingestkit_sheets | open failed | code=%s | detail=%s",
            error.code,
            error.message,
        )

    def _opened(self) -> BaseReader:
        if self._state is WorkbookState.FAILED:
            raise self._error
        if self._reader is None:
            raise SheetsError.msg(f"Workbook is not open (state={self._state.value})")
        return self._reader

    def _call(self, method: str, *args: Any) -> Any:
        reader = self._opened()
        try:
            return getattr(reader, method)(*args)
        except FormatError as exc:
            raise exc.to_error() from exc

    # ------------------------------------------------------------------
    # Reader contract
    # ------------------------------------------------------------------

    def metadata(self) -> Metadata:
        return self._call("metadata")

    def sheets_metadata(self) -> list[Sheet]:
        return self._call("sheets_metadata")

    def sheet_names(self) -> list[str]:
        return self._call("sheet_names")

    def defined_names(self) -> list[tuple[str, str]]:
        return self._call("defined_names")

    def worksheet_range(self, name: str) -> Range[Data]:
        return self._call("worksheet_range", name)

    def worksheet_range_at(self, index: int) -> Range[Data]:
        return self._call("worksheet_range_at", index)

    def worksheet_range_ref(self, name: str) -> Range[DataRef]:
        return self._call("worksheet_range_ref", name)

    def worksheet_formula(self, name: str) -> Range[str]:
        return self._call("worksheet_formula", name)

    def worksheet_merge_cells(self, name: str) -> list[Dimensions]:
        return self._call("worksheet_merge_cells", name)

    def worksheets(self) -> Iterator[tuple[str, Range[Data]]]:
        for name in self.sheet_names():
            yield name, self.worksheet_range(name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()

    def __enter__(self) -> AutoWorkbook:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"AutoWorkbook(state={self._state.value}, format={self._format.value})"


def open_workbook(
    source: Source, config: SheetsReaderConfig | None = None
) -> AutoWorkbook:
    """Open a workbook of any supported format."""
    return AutoWorkbook.open(source, config)
