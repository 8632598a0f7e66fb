"""Shared test fixtures for ingestkit-sheets tests.

Workbooks are generated in memory with openpyxl (XLSX) and odfpy (ODS) so
the suite needs no binary fixtures on disk.
"""

from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path

import openpyxl
import pytest
from odf.opendocument import OpenDocumentSpreadsheet
from odf.table import CoveredTableCell, Table, TableCell, TableRow
from odf.text import P
from openpyxl.workbook.defined_name import DefinedName

from ingestkit_sheets.config import SheetsReaderConfig

# OLE2 magic bytes used by .xls files
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


@pytest.fixture
def default_config() -> SheetsReaderConfig:
    """Return a default SheetsReaderConfig."""
    return SheetsReaderConfig()


@pytest.fixture
def ole2_bytes() -> bytes:
    """OLE2 magic header + padding (not a valid XLS file)."""
    return _OLE2_MAGIC + b"\x00" * 504


@pytest.fixture
def xlsx_bytes() -> bytes:
    """A three-sheet XLSX workbook.

    * ``Data`` -- header row, two records, a date and a ``#N/A`` error cell,
      a merged region ``A5:B5``.
    * ``Hidden`` -- hidden sheet with a single bool at ``C5``.
    * ``Formulas`` -- two numbers and a ``SUM`` formula (no cached value).
    """
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Data"
    ws["A1"] = "name"
    ws["B1"] = "qty"
    ws["A2"] = "apple"
    ws["B2"] = 3
    ws["A3"] = "pear"
    ws["B3"] = 4.5
    ws["D1"] = datetime(2024, 1, 15, 12, 0)
    ws["C2"] = "#N/A"
    ws["A5"] = "merged"
    ws.merge_cells("A5:B5")

    hidden = wb.create_sheet("Hidden")
    hidden.sheet_state = "hidden"
    hidden["C5"] = True

    formulas = wb.create_sheet("Formulas")
    formulas["A1"] = 1
    formulas["A2"] = 2
    formulas["A3"] = "=SUM(A1:A2)"

    wb.defined_names["Quantities"] = DefinedName("Quantities", attr_text="Data!$B$2:$B$3")

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _string_cell(text: str, **attrs) -> TableCell:
    cell = TableCell(valuetype="string", **attrs)
    cell.addElement(P(text=text))
    return cell


@pytest.fixture
def ods_bytes() -> bytes:
    """A two-sheet ODS workbook.

    * ``People`` -- header row, two records, a repeated row, a date, a
      duration, a bool, a formula and a merged region ``A7:B7``.
    * ``Empty`` -- a sheet with no content cells.
    """
    doc = OpenDocumentSpreadsheet()

    table = Table(name="People")

    header = TableRow()
    header.addElement(_string_cell("name"))
    header.addElement(_string_cell("age"))
    table.addElement(header)

    row = TableRow()
    row.addElement(_string_cell("Ada"))
    row.addElement(TableCell(valuetype="float", value="36"))
    table.addElement(row)

    row = TableRow()
    row.addElement(_string_cell("Bob"))
    row.addElement(TableCell(valuetype="float", value="41.5"))
    table.addElement(row)

    # Rows 3 and 4 (zero-based): identical, stored once with a repeat count.
    row = TableRow(numberrowsrepeated="2")
    row.addElement(TableCell(valuetype="boolean", booleanvalue="true"))
    table.addElement(row)

    # Row 5: date, duration, formula with cached value.
    row = TableRow()
    row.addElement(TableCell(valuetype="date", datevalue="2024-01-15"))
    row.addElement(TableCell(valuetype="time", timevalue="PT12H30M00S"))
    row.addElement(
        TableCell(valuetype="float", value="77.5", formula="of:=[.B2]+[.B3]")
    )
    table.addElement(row)

    # Row 6 (A7:B7): merged.
    row = TableRow()
    row.addElement(_string_cell("merged", numbercolumnsspanned="2"))
    row.addElement(CoveredTableCell())
    table.addElement(row)

    doc.spreadsheet.addElement(table)

    empty = Table(name="Empty")
    empty_row = TableRow()
    empty_row.addElement(TableCell(numbercolumnsrepeated="3"))
    empty.addElement(empty_row)
    doc.spreadsheet.addElement(empty)

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def tmp_sheet_file(tmp_path: Path):
    """Factory fixture to write binary content to a temp file and return the path."""

    def _write(content: bytes, filename: str = "test.xlsx") -> str:
        file_path = tmp_path / filename
        file_path.write_bytes(content)
        return str(file_path)

    return _write
