"""OpenDocument spreadsheet (``.ods``) decoder backed by odfpy.

Cell values are taken from the typed ``office:*-value`` attributes: dates
become ``DATETIME_ISO`` and times ``DURATION_ISO`` text, exactly as stored.
Repeated rows/columns (``number-*-repeated``) are expanded only when they
carry a value.
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Iterator
from typing import Any

from odf import teletype
from odf.namespaces import OFFICENS, TABLENS
from odf.opendocument import load
from odf.table import NamedExpression, NamedRange, Table, TableRow
from odf.text import P

from ingestkit_sheets.datatypes import CellErrorType, Data
from ingestkit_sheets.detection import ODS_MIMETYPE, SheetFormat
from ingestkit_sheets.dimensions import Dimensions
from ingestkit_sheets.errors import OdsError, OdsErrorCode
from ingestkit_sheets.reader import BaseReader, Sheet

logger = logging.getLogger("ingestkit_sheets")

_CELL_TAGS = ("table-cell", "covered-table-cell")
_NUMERIC_TYPES = ("float", "percentage", "currency")
# Style-only cells (often repeated across whole rows/columns) carry none of these.
_CONTENT_ATTRS = frozenset(
    {"value-type", "formula", "number-columns-spanned", "number-rows-spanned"}
)


def _attr(element: Any, ns: str, name: str) -> str | None:
    return element.attributes.get((ns, name))


def _count(element: Any, name: str) -> int:
    value = _attr(element, TABLENS, name)
    try:
        return max(int(value), 1) if value else 1
    except ValueError as exc:
        raise OdsError(OdsErrorCode.E_ODS_INVALID_VALUE, f"Bad {name}: {value!r}") from exc


def _cell_text(cell: Any) -> str:
    return "\n".join(teletype.extractText(p) for p in cell.getElementsByType(P))


def _is_error_cell(cell: Any) -> bool:
    # LibreOffice marks formula errors with calcext:value-type="error".
    return any(
        name == "value-type" and ns != OFFICENS and value == "error"
        for (ns, name), value in cell.attributes.items()
    )


def _check_container(data: bytes) -> None:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = set(zf.namelist())
            if "content.xml" not in names:
                raise OdsError(OdsErrorCode.E_ODS_MISSING_PART, "Missing content.xml")
            if "mimetype" in names:
                mimetype = zf.read("mimetype").decode("ascii", errors="ignore").strip()
                if mimetype != ODS_MIMETYPE:
                    raise OdsError(
                        OdsErrorCode.E_ODS_MIMETYPE_MISMATCH,
                        f"Unexpected mimetype {mimetype!r}",
                    )
            if "META-INF/manifest.xml" in names:
                manifest = zf.read("META-INF/manifest.xml")
                if b"encryption-data" in manifest:
                    raise OdsError(
                        OdsErrorCode.E_ODS_PASSWORD, "Document is password-protected"
                    )
    except zipfile.BadZipFile as exc:
        raise OdsError(OdsErrorCode.E_ODS_INVALID_SIGNATURE, str(exc)) from exc


class OdsReader(BaseReader):
    """Reader for OpenDocument spreadsheets."""

    format = SheetFormat.ODS
    error_type = OdsError
    not_found_code = OdsErrorCode.E_ODS_WORKSHEET_NOT_FOUND
    unsupported_code = OdsErrorCode.E_ODS_UNSUPPORTED

    def _open(self, data: bytes) -> None:
        _check_container(data)
        try:
            self._doc = load(io.BytesIO(data))
        except UnicodeDecodeError as exc:
            raise OdsError(OdsErrorCode.E_ODS_ENCODING, str(exc)) from exc
        except Exception as exc:
            raise OdsError(OdsErrorCode.E_ODS_XML, str(exc)) from exc

        spreadsheet = self._doc.spreadsheet
        self._tables: dict[str, Any] = {}
        for table in spreadsheet.getElementsByType(Table):
            name = _attr(table, TABLENS, "name") or f"Sheet{len(self._metadata.sheets) + 1}"
            self._tables.setdefault(name, table)
            self._metadata.add_sheet(Sheet(name=name))

        for named in spreadsheet.getElementsByType(NamedRange):
            self._metadata.names.append(
                (_attr(named, TABLENS, "name"), _attr(named, TABLENS, "cell-range-address") or "")
            )
        for named in spreadsheet.getElementsByType(NamedExpression):
            self._metadata.names.append(
                (_attr(named, TABLENS, "name"), _attr(named, TABLENS, "expression") or "")
            )

    def _iter_cells(self, name: str) -> Iterator[tuple[int, int, Any]]:
        """Yield ``(row, col, cell_element)`` for every cell carrying content."""
        row_idx = 0
        for row in self._tables[name].getElementsByType(TableRow):
            row_repeat = _count(row, "number-rows-repeated")
            recorded: list[tuple[int, Any]] = []
            col_idx = 0
            for cell in row.childNodes:
                if getattr(cell, "qname", (None, None))[1] not in _CELL_TAGS:
                    continue
                col_repeat = _count(cell, "number-columns-repeated")
                if any(attr in _CONTENT_ATTRS for _ns, attr in cell.attributes):
                    recorded.extend((col_idx + k, cell) for k in range(col_repeat))
                col_idx += col_repeat
            if recorded:
                for k in range(row_repeat):
                    for col, cell in recorded:
                        yield row_idx + k, col, cell
            row_idx += row_repeat

    def _read_cells(self, name: str) -> Iterator[tuple[int, int, Any]]:
        for row, col, cell in self._iter_cells(name):
            value = self._cell_value(cell, name)
            if value is not None:
                yield row, col, value

    def _cell_value(self, cell: Any, sheet_name: str) -> Any:
        value_type = _attr(cell, OFFICENS, "value-type")
        if _is_error_cell(cell):
            text = _cell_text(cell)
            error = CellErrorType.from_text(text)
            if error is None:
                logger.debug(
                    "ingestkit_sheets | sheet=%s | unrecognised error value kept as text",
                    sheet_name,
                )
                return Data.string(text)
            return error
        if value_type in _NUMERIC_TYPES:
            raw = _attr(cell, OFFICENS, "value")
            try:
                return float(raw)
            except (TypeError, ValueError) as exc:
                raise OdsError(
                    OdsErrorCode.E_ODS_INVALID_VALUE,
                    f"Invalid {value_type} value {raw!r}",
                    sheet_name=sheet_name,
                ) from exc
        if value_type == "boolean":
            return _attr(cell, OFFICENS, "boolean-value") == "true"
        if value_type == "date":
            return Data.datetime_iso(_attr(cell, OFFICENS, "date-value"))
        if value_type == "time":
            return Data.duration_iso(_attr(cell, OFFICENS, "time-value"))
        if value_type == "string":
            string_value = _attr(cell, OFFICENS, "string-value")
            return string_value if string_value is not None else _cell_text(cell)
        if value_type is None:
            return None
        raise OdsError(
            OdsErrorCode.E_ODS_UNSUPPORTED,
            f"Unknown value type {value_type!r}",
            sheet_name=sheet_name,
        )

    def _read_formulas(self, name: str) -> Iterator[tuple[int, int, str]]:
        for row, col, cell in self._iter_cells(name):
            formula = _attr(cell, TABLENS, "formula")
            if not formula:
                continue
            if formula.startswith("of:"):
                formula = formula[3:]
            yield row, col, formula.lstrip("=")

    def _read_merge_cells(self, name: str) -> list[Dimensions]:
        merged: list[Dimensions] = []
        for row, col, cell in self._iter_cells(name):
            rows = _count(cell, "number-rows-spanned")
            cols = _count(cell, "number-columns-spanned")
            if rows > 1 or cols > 1:
                merged.append(Dimensions.new((row, col), (row + rows - 1, col + cols - 1)))
        return merged
