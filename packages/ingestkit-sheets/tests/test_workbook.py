"""Tests for ingestkit_sheets.workbook (AutoWorkbook facade)."""

from __future__ import annotations

import io
import zipfile
from unittest.mock import patch

import pytest
import xlrd

from ingestkit_sheets.config import SheetsReaderConfig
from ingestkit_sheets.datatypes import Data
from ingestkit_sheets.detection import SheetFormat
from ingestkit_sheets.errors import (
    SheetsError,
    SheetsErrorKind,
    XlsErrorCode,
    XlsxError,
    XlsxErrorCode,
)
from ingestkit_sheets.reader import Reader, ReaderRef
from ingestkit_sheets.readers import OdsReader, XlsxReader
from ingestkit_sheets.workbook import AutoWorkbook, WorkbookState, open_workbook


class TestOpen:
    def test_xlsx_bytes(self, xlsx_bytes):
        with AutoWorkbook.open(xlsx_bytes) as wb:
            assert wb.state is WorkbookState.OPENED
            assert wb.format is SheetFormat.XLSX
            assert isinstance(wb.reader, XlsxReader)
            assert wb.sheet_names() == ["Data", "Hidden", "Formulas"]

    def test_ods_stream(self, ods_bytes):
        stream = io.BytesIO(ods_bytes)
        stream.read(10)
        wb = open_workbook(stream)
        assert wb.format is SheetFormat.ODS
        assert isinstance(wb.reader, OdsReader)
        assert wb.worksheet_range("People").get_value((1, 0)) == Data.string("Ada")

    def test_path(self, xlsx_bytes, tmp_sheet_file):
        wb = open_workbook(tmp_sheet_file(xlsx_bytes, "book.bin"))
        assert wb.format is SheetFormat.XLSX

    def test_satisfies_protocols(self, xlsx_bytes):
        wb = AutoWorkbook.open(xlsx_bytes)
        assert isinstance(wb, Reader)
        assert isinstance(wb, ReaderRef)

    def test_initial_state(self):
        wb = AutoWorkbook()
        assert wb.state is WorkbookState.UNOPENED
        assert wb.format is SheetFormat.UNKNOWN
        assert wb.error is None


class TestDelegation:
    def test_ranges(self, xlsx_bytes):
        wb = AutoWorkbook.open(xlsx_bytes)
        assert wb.worksheet_range_at(0) == wb.worksheet_range("Data")
        ref = wb.worksheet_range_ref("Data")
        assert ref.get_value((0, 0)).is_shared()

    def test_worksheets(self, xlsx_bytes):
        wb = AutoWorkbook.open(xlsx_bytes)
        assert [name for name, _ in wb.worksheets()] == ["Data", "Hidden", "Formulas"]

    def test_metadata_and_names(self, xlsx_bytes):
        wb = AutoWorkbook.open(xlsx_bytes)
        assert wb.metadata().sheet_names() == wb.sheet_names()
        assert len(wb.sheets_metadata()) == 3
        assert ("Quantities", "Data!$B$2:$B$3") in wb.defined_names()

    def test_formulas_and_merges(self, xlsx_bytes):
        wb = AutoWorkbook.open(xlsx_bytes)
        assert wb.worksheet_formula("Formulas").get_value((2, 0)) == "SUM(A1:A2)"
        assert len(wb.worksheet_merge_cells("Data")) == 1

    def test_not_found_is_converted(self, xlsx_bytes):
        wb = AutoWorkbook.open(xlsx_bytes)
        with pytest.raises(SheetsError) as exc_info:
            wb.worksheet_range("Nope")
        err = exc_info.value
        assert err.kind is SheetsErrorKind.XLSX
        assert err.is_not_found
        assert isinstance(err.inner, XlsxError)
        assert err.code == XlsxErrorCode.E_XLSX_WORKSHEET_NOT_FOUND.value
        # The session stays usable after a lookup error.
        assert wb.state is WorkbookState.OPENED


class TestFailures:
    def test_empty_input(self):
        wb = AutoWorkbook()
        with pytest.raises(SheetsError) as exc_info:
            wb.load(b"")
        assert exc_info.value.kind is SheetsErrorKind.MSG
        assert wb.state is WorkbookState.FAILED

    def test_oversized_input(self, xlsx_bytes):
        with pytest.raises(SheetsError) as exc_info:
            AutoWorkbook.open(xlsx_bytes, SheetsReaderConfig(max_file_size_mb=0))
        assert "exceeds limit" in str(exc_info.value)

    def test_unknown_format(self):
        wb = AutoWorkbook()
        with pytest.raises(SheetsError) as exc_info:
            wb.load(b"INVALID")
        assert exc_info.value.code == "E_MSG"
        assert wb.format is SheetFormat.UNKNOWN

    def test_plain_zip_is_unknown(self):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("readme.txt", "hello")
        with pytest.raises(SheetsError) as exc_info:
            AutoWorkbook.open(buf.getvalue())
        assert exc_info.value.kind is SheetsErrorKind.MSG

    def test_decoder_error_keeps_code(self):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("xl/workbook.xml", "<workbook/>")
        wb = AutoWorkbook()
        with pytest.raises(SheetsError) as exc_info:
            wb.load(buf.getvalue())
        assert exc_info.value.kind is SheetsErrorKind.XLSX
        assert exc_info.value.code == XlsxErrorCode.E_XLSX_MISSING_PART.value
        assert wb.error is exc_info.value

    def test_xls_decoder_error(self, ole2_bytes):
        with patch(
            "ingestkit_sheets.readers.xls.xlrd.open_workbook",
            side_effect=xlrd.XLRDError("Workbook is encrypted"),
        ):
            with pytest.raises(SheetsError) as exc_info:
                AutoWorkbook.open(ole2_bytes)
        assert exc_info.value.kind is SheetsErrorKind.XLS
        assert exc_info.value.code == XlsErrorCode.E_XLS_PASSWORD.value

    def test_missing_path(self, tmp_path):
        with pytest.raises(SheetsError) as exc_info:
            AutoWorkbook.open(tmp_path / "missing.xlsx")
        assert exc_info.value.kind is SheetsErrorKind.IO

    def test_unsupported_source(self):
        with pytest.raises(SheetsError):
            AutoWorkbook.open(12345)

    def test_failed_is_terminal(self):
        wb = AutoWorkbook()
        with pytest.raises(SheetsError):
            wb.load(b"INVALID")
        with pytest.raises(SheetsError) as exc_info:
            wb.sheet_names()
        assert exc_info.value is wb.error
        with pytest.raises(SheetsError):
            wb.load(b"INVALID")
        assert wb.state is WorkbookState.FAILED

    def test_unopened_calls_rejected(self):
        with pytest.raises(SheetsError) as exc_info:
            AutoWorkbook().sheet_names()
        assert exc_info.value.kind is SheetsErrorKind.MSG

    def test_no_reopen(self, xlsx_bytes, ods_bytes):
        wb = AutoWorkbook.open(xlsx_bytes)
        with pytest.raises(SheetsError):
            wb.load(ods_bytes)
        assert wb.state is WorkbookState.OPENED
        assert wb.format is SheetFormat.XLSX

    def test_ingest_error_record(self):
        wb = AutoWorkbook()
        with pytest.raises(SheetsError):
            wb.load(b"INVALID")
        record = wb.error.to_ingest_error(stage="detect")
        assert record.code == "E_MSG"
        assert record.stage == "detect"
