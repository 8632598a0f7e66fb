"""Legacy binary workbook (BIFF / ``.xls``) decoder backed by xlrd.

xlrd opens the OLE2 compound file and parses the BIFF record stream; this
module maps its cell types onto :class:`~ingestkit_sheets.datatypes.Data`
and its exceptions onto :class:`~ingestkit_sheets.errors.XlsError` codes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import xlrd  # type: ignore[import-untyped]
from xlrd.compdoc import CompDocError  # type: ignore[import-untyped]

from ingestkit_sheets.datatypes import CellErrorType, Data, ExcelDateTime
from ingestkit_sheets.detection import SheetFormat
from ingestkit_sheets.dimensions import Dimensions
from ingestkit_sheets.errors import XlsError, XlsErrorCode
from ingestkit_sheets.reader import BaseReader, Sheet, SheetVisible

logger = logging.getLogger("ingestkit_sheets")

_VISIBILITY = {
    0: SheetVisible.VISIBLE,
    1: SheetVisible.HIDDEN,
    2: SheetVisible.VERY_HIDDEN,
}

# Stream name of an encrypted OOXML package stored in an OLE2 container.
_ENCRYPTION_INFO = "EncryptionInfo".encode("utf-16-le")


class _DebugLog:
    """File-like sink that routes xlrd diagnostics to the package logger."""

    def write(self, text: str) -> None:
        if text.strip():
            logger.debug("ingestkit_sheets | xlrd | %s", text.strip())


def _classify_xlrd_error(exc: Exception, data: bytes) -> XlsError:
    msg = str(exc)
    lowered = msg.lower()
    if "encrypted" in lowered or "password" in lowered:
        return XlsError(XlsErrorCode.E_XLS_PASSWORD, f"Workbook is encrypted: {msg}")
    if "can't find workbook" in lowered:
        if _ENCRYPTION_INFO in data:
            return XlsError(
                XlsErrorCode.E_XLS_PASSWORD,
                "Compound file holds an encrypted OOXML package",
            )
        return XlsError(XlsErrorCode.E_XLS_MISSING_PART, msg)
    if "biff version" in lowered or ("biff" in lowered and "not supported" in lowered):
        return XlsError(XlsErrorCode.E_XLS_BIFF_VERSION, msg)
    if "bof" in lowered:
        return XlsError(XlsErrorCode.E_XLS_INVALID_BOF, msg)
    if "xlsx file" in lowered or "signature" in lowered:
        return XlsError(XlsErrorCode.E_XLS_INVALID_SIGNATURE, msg)
    return XlsError(XlsErrorCode.E_XLS_CORRUPT, msg)


class XlsReader(BaseReader):
    """Reader for BIFF5/BIFF8 workbooks in an OLE2 compound file."""

    format = SheetFormat.XLS
    error_type = XlsError
    not_found_code = XlsErrorCode.E_XLS_WORKSHEET_NOT_FOUND
    unsupported_code = XlsErrorCode.E_XLS_UNSUPPORTED

    def _open(self, data: bytes) -> None:
        try:
            self._book = xlrd.open_workbook(
                file_contents=data,
                formatting_info=self._config.xls_formatting_info,
                logfile=_DebugLog(),
            )
        except UnicodeDecodeError as exc:
            raise XlsError(XlsErrorCode.E_XLS_ENCODING, str(exc)) from exc
        except NotImplementedError as exc:
            raise XlsError(XlsErrorCode.E_XLS_UNSUPPORTED, str(exc)) from exc
        except xlrd.XLRDError as exc:
            raise _classify_xlrd_error(exc, data) from exc
        except (CompDocError, AssertionError, IndexError, ValueError) as exc:
            raise XlsError(XlsErrorCode.E_XLS_CORRUPT, str(exc)) from exc

        self._metadata.is_1904 = self._book.datemode == 1
        for sheet in self._book.sheets():
            self._metadata.add_sheet(
                Sheet(
                    name=sheet.name,
                    visible=_VISIBILITY.get(sheet.visibility, SheetVisible.VISIBLE),
                )
            )
        for name in self._book.name_obj_list:
            formula = getattr(name, "formula_text", None) or ""
            self._metadata.names.append((name.name, formula))

    def _read_cells(self, name: str) -> Iterator[tuple[int, int, Any]]:
        sheet = self._book.sheet_by_name(name)
        for row in range(sheet.nrows):
            for col in range(sheet.row_len(row)):
                ctype = sheet.cell_type(row, col)
                if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                    continue
                yield row, col, self._cell_value(ctype, sheet.cell_value(row, col), name)

    def _cell_value(self, ctype: int, value: Any, sheet_name: str) -> Any:
        if ctype == xlrd.XL_CELL_DATE:
            return Data.datetime(
                ExcelDateTime(value=float(value), is_1904=self._metadata.is_1904)
            )
        if ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(value)
        if ctype == xlrd.XL_CELL_ERROR:
            text = xlrd.error_text_from_code.get(value, "")
            error = CellErrorType.from_text(text)
            if error is None:
                raise XlsError(
                    XlsErrorCode.E_XLS_CORRUPT,
                    f"Unknown error code 0x{value:02X}",
                    sheet_name=sheet_name,
                )
            return error
        # XL_CELL_TEXT or XL_CELL_NUMBER
        return value

    def _read_merge_cells(self, name: str) -> list[Dimensions]:
        sheet = self._book.sheet_by_name(name)
        # (rlo, rhi, clo, chi) with exclusive upper bounds
        return [
            Dimensions.new((rlo, clo), (rhi - 1, chi - 1))
            for rlo, rhi, clo, chi in sheet.merged_cells
        ]

    def _close(self) -> None:
        self._book.release_resources()
