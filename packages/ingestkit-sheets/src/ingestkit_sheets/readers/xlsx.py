"""XLSX decoder backed by openpyxl.

Values are read with ``data_only=True`` (cached results of formulas).
Formula text is read on demand from a second, formula-preserving load.
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Iterator
from typing import Any

import openpyxl
from openpyxl.chartsheet import Chartsheet
from openpyxl.utils.datetime import MAC_EPOCH
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook

from ingestkit_sheets.datatypes import CellErrorType, Data
from ingestkit_sheets.detection import SheetFormat
from ingestkit_sheets.dimensions import Dimensions
from ingestkit_sheets.errors import XlsxError, XlsxErrorCode
from ingestkit_sheets.reader import BaseReader, Sheet, SheetType, SheetVisible

logger = logging.getLogger("ingestkit_sheets")

_VISIBILITY = {
    "visible": SheetVisible.VISIBLE,
    "hidden": SheetVisible.HIDDEN,
    "veryHidden": SheetVisible.VERY_HIDDEN,
}


def _load(data: bytes, data_only: bool) -> Workbook:
    try:
        return openpyxl.load_workbook(io.BytesIO(data), data_only=data_only)
    except zipfile.BadZipFile as exc:
        raise XlsxError(
            XlsxErrorCode.E_XLSX_INVALID_SIGNATURE, f"Not a ZIP container: {exc}"
        ) from exc
    except InvalidFileException as exc:
        raise XlsxError(XlsxErrorCode.E_XLSX_UNSUPPORTED, str(exc)) from exc
    except KeyError as exc:
        raise XlsxError(
            XlsxErrorCode.E_XLSX_MISSING_PART, f"Missing workbook part: {exc}"
        ) from exc
    except UnicodeDecodeError as exc:
        raise XlsxError(XlsxErrorCode.E_XLSX_ENCODING, str(exc)) from exc
    except Exception as exc:
        exc_msg = str(exc).lower()
        if "password" in exc_msg or "encrypted" in exc_msg:
            raise XlsxError(
                XlsxErrorCode.E_XLSX_PASSWORD, f"Workbook is password-protected: {exc}"
            ) from exc
        if "xml" in exc_msg or "syntax" in exc_msg:
            raise XlsxError(XlsxErrorCode.E_XLSX_XML, str(exc)) from exc
        raise XlsxError(XlsxErrorCode.E_XLSX_CORRUPT, str(exc)) from exc


class XlsxReader(BaseReader):
    """Reader for Office Open XML workbooks (``.xlsx``, ``.xlsm``)."""

    format = SheetFormat.XLSX
    error_type = XlsxError
    not_found_code = XlsxErrorCode.E_XLSX_WORKSHEET_NOT_FOUND
    unsupported_code = XlsxErrorCode.E_XLSX_UNSUPPORTED

    def _open(self, data: bytes) -> None:
        self._data = data
        self._wb = _load(data, data_only=True)
        self._formula_wb: Workbook | None = None

        self._metadata.is_1904 = self._wb.epoch == MAC_EPOCH
        for name in self._wb.sheetnames:
            ws = self._wb[name]
            typ = SheetType.CHART_SHEET if isinstance(ws, Chartsheet) else SheetType.WORKSHEET
            self._metadata.add_sheet(
                Sheet(
                    name=name,
                    typ=typ,
                    visible=_VISIBILITY.get(ws.sheet_state, SheetVisible.VISIBLE),
                )
            )
        for name, defn in self._wb.defined_names.items():
            self._metadata.names.append((name, defn.attr_text))

    def _read_cells(self, name: str) -> Iterator[tuple[int, int, Any]]:
        ws = self._wb[name]
        if isinstance(ws, Chartsheet):
            return
        for row in ws.iter_rows(min_row=ws.min_row, min_col=ws.min_column):
            for cell in row:
                if cell.value is None:
                    continue
                yield cell.row - 1, cell.column - 1, self._cell_value(cell, name)

    def _cell_value(self, cell: Any, sheet_name: str) -> Any:
        if cell.data_type == "e":
            error = CellErrorType.from_text(str(cell.value))
            if error is None:
                logger.debug(
                    "ingestkit_sheets | sheet=%s | unrecognised error value kept as text",
                    sheet_name,
                )
                return Data.string(str(cell.value))
            return error
        return cell.value

    def _read_formulas(self, name: str) -> Iterator[tuple[int, int, str]]:
        if self._formula_wb is None:
            self._formula_wb = _load(self._data, data_only=False)
        ws = self._formula_wb[name]
        if isinstance(ws, Chartsheet):
            return
        for row in ws.iter_rows(min_row=ws.min_row, min_col=ws.min_column):
            for cell in row:
                if cell.data_type != "f":
                    continue
                text = getattr(cell.value, "text", cell.value)
                if text is None:
                    continue
                yield cell.row - 1, cell.column - 1, str(text).lstrip("=")

    def _read_merge_cells(self, name: str) -> list[Dimensions]:
        ws = self._wb[name]
        if isinstance(ws, Chartsheet):
            return []
        return [
            Dimensions.new((r.min_row - 1, r.min_col - 1), (r.max_row - 1, r.max_col - 1))
            for r in ws.merged_cells.ranges
        ]

    def _close(self) -> None:
        self._wb.close()
        if self._formula_wb is not None:
            self._formula_wb.close()
