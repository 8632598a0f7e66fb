"""Binary workbook (``.xlsb``) decoder backed by pandas' calamine engine.

``pandas.ExcelFile(engine="calamine")`` parses the record stream; cell
values arrive as pandas/numpy scalars and are normalised to plain Python
values here.  Cell errors are surfaced by the engine as missing values and
are therefore not recorded.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from typing import Any

import numpy as np
import pandas as pd

from ingestkit_sheets.detection import SheetFormat
from ingestkit_sheets.errors import XlsbError, XlsbErrorCode
from ingestkit_sheets.reader import BaseReader, Sheet, SheetType, SheetVisible

logger = logging.getLogger("ingestkit_sheets")


def _enum_value(member: Any) -> str:
    """``SheetTypeEnum.WorkSheet`` -> ``"WorkSheet"``."""
    return str(member).rsplit(".", 1)[-1]


def _plain(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, pd.Timedelta):
        return value.to_pytimedelta()
    if isinstance(value, np.generic):
        return value.item()
    return value


class XlsbReader(BaseReader):
    """Reader for Excel binary workbooks."""

    format = SheetFormat.XLSB
    error_type = XlsbError
    not_found_code = XlsbErrorCode.E_XLSB_WORKSHEET_NOT_FOUND
    unsupported_code = XlsbErrorCode.E_XLSB_UNSUPPORTED

    def _open(self, data: bytes) -> None:
        try:
            self._file = pd.ExcelFile(io.BytesIO(data), engine="calamine")
        except ImportError as exc:
            raise XlsbError(
                XlsbErrorCode.E_XLSB_ENGINE_UNAVAILABLE,
                "python-calamine is required to read .xlsb files. "
                "Install it with: pip install python-calamine",
            ) from exc
        except Exception as exc:
            exc_msg = str(exc).lower()
            if "password" in exc_msg or "encrypted" in exc_msg:
                raise XlsbError(
                    XlsbErrorCode.E_XLSB_PASSWORD, f"Workbook is password-protected: {exc}"
                ) from exc
            if "zip" in exc_msg:
                raise XlsbError(XlsbErrorCode.E_XLSB_INVALID_SIGNATURE, str(exc)) from exc
            raise XlsbError(XlsbErrorCode.E_XLSB_CORRUPT, str(exc)) from exc

        for meta in self._sheet_metadata():
            self._metadata.add_sheet(meta)

    def _sheet_metadata(self) -> list[Sheet]:
        book_meta = getattr(self._file.book, "sheets_metadata", None)
        if not book_meta:
            logger.debug("ingestkit_sheets | xlsb | no sheet metadata, using sheet names")
            return [Sheet(name=name) for name in self._file.sheet_names]
        sheets: list[Sheet] = []
        for meta in book_meta:
            try:
                typ = SheetType(_enum_value(meta.typ))
            except ValueError:
                typ = SheetType.WORKSHEET
            try:
                visible = SheetVisible(_enum_value(meta.visible))
            except ValueError:
                visible = SheetVisible.VISIBLE
            sheets.append(Sheet(name=meta.name, typ=typ, visible=visible))
        return sheets

    def _read_cells(self, name: str) -> Iterator[tuple[int, int, Any]]:
        try:
            # dtype=object keeps text such as "00123" or "True" as stored and
            # na_filter=False keeps "NA"; empty cells then arrive as "".
            frame = self._file.parse(name, header=None, dtype=object, na_filter=False)
        except Exception as exc:
            raise XlsbError(XlsbErrorCode.E_XLSB_RECORD, str(exc), sheet_name=name) from exc
        values = frame.to_numpy(dtype=object)
        for row_idx, row in enumerate(values):
            for col_idx, value in enumerate(row):
                if isinstance(value, str):
                    if not value:
                        continue
                elif pd.isna(value):
                    continue
                yield row_idx, col_idx, _plain(value)

    def _close(self) -> None:
        self._file.close()
