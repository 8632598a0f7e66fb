"""Tests for ingestkit_sheets.reader (contract and BaseReader)."""

from __future__ import annotations

import logging

import pytest

from ingestkit_sheets.config import SheetsReaderConfig
from ingestkit_sheets.datatypes import Data
from ingestkit_sheets.detection import SheetFormat
from ingestkit_sheets.errors import XlsxError, XlsxErrorCode
from ingestkit_sheets.reader import (
    BaseReader,
    Metadata,
    Reader,
    ReaderRef,
    Sheet,
    SheetType,
    SheetVisible,
)

_SHEETS = {
    "Sparse": [(0, 0, "a"), (0, 1, 1), (1, 0, None), (2, 2, True), (3, 0, "a")],
    "Full": [(0, 0, "x"), (0, 1, "y"), (1, 0, 1.5), (1, 1, Data.empty())],
}


class _MemoryReader(BaseReader):
    """Decoder over in-memory ``(row, col, value)`` lists."""

    format = SheetFormat.XLSX
    error_type = XlsxError
    not_found_code = XlsxErrorCode.E_XLSX_WORKSHEET_NOT_FOUND
    unsupported_code = XlsxErrorCode.E_XLSX_UNSUPPORTED

    def _open(self, data: bytes) -> None:
        self.closed = False
        for name in _SHEETS:
            self._metadata.add_sheet(Sheet(name=name))
        self._metadata.add_sheet(Sheet(name="Sparse", visible=SheetVisible.HIDDEN))

    def _read_cells(self, name):
        return iter(_SHEETS[name])

    def _close(self) -> None:
        self.closed = True


@pytest.fixture
def reader() -> _MemoryReader:
    return _MemoryReader(b"")


class TestProtocols:
    def test_base_reader_satisfies_protocols(self, reader):
        assert isinstance(reader, Reader)
        assert isinstance(reader, ReaderRef)

    def test_plain_object_does_not(self):
        assert not isinstance(object(), Reader)


class TestMetadata:
    def test_order_and_duplicates_kept(self, reader):
        assert reader.sheet_names() == ["Sparse", "Full", "Sparse"]
        assert reader.sheets_metadata()[2].visible is SheetVisible.HIDDEN

    def test_defaults(self):
        sheet = Sheet(name="S")
        assert sheet.typ is SheetType.WORKSHEET
        assert sheet.visible is SheetVisible.VISIBLE
        meta = Metadata()
        assert meta.sheets == []
        assert meta.is_1904 is False

    def test_defined_names_copy(self, reader):
        names = reader.defined_names()
        names.append(("x", "y"))
        assert reader.defined_names() == []


class TestWorksheetRange:
    def test_sparse_sheet(self, reader):
        rng = reader.worksheet_range("Sparse")
        assert rng.is_sparse
        assert rng.get_value((0, 0)) == Data.string("a")
        assert rng.get_value((0, 1)) == Data.int(1)
        assert rng.get_value((2, 2)) == Data.bool(True)
        assert rng.get_value((1, 0)) is None
        assert len(rng) == 4

    def test_full_sheet_is_dense(self, reader):
        rng = reader.worksheet_range("Full")
        assert not rng.is_sparse
        assert rng.get_value((1, 0)) == Data.float(1.5)
        assert rng.get_value((1, 1)) == Data.empty()

    def test_values_are_owned(self, reader):
        rng = reader.worksheet_range("Sparse")
        assert all(type(v) is Data for _, v in rng.cells())

    def test_range_at(self, reader):
        assert reader.worksheet_range_at(1) == reader.worksheet_range("Full")

    def test_range_at_out_of_bounds(self, reader):
        with pytest.raises(XlsxError) as exc_info:
            reader.worksheet_range_at(3)
        assert exc_info.value.code is XlsxErrorCode.E_XLSX_WORKSHEET_NOT_FOUND

    def test_unknown_sheet(self, reader):
        with pytest.raises(XlsxError) as exc_info:
            reader.worksheet_range("Nope")
        assert exc_info.value.is_not_found
        assert exc_info.value.sheet_name == "Nope"

    def test_max_rows(self):
        limited = _MemoryReader(b"", SheetsReaderConfig(max_rows=1))
        rng = limited.worksheet_range("Sparse")
        assert rng.height() == 1
        assert len(rng) == 2

    def test_worksheets(self, reader):
        names = [name for name, _ in reader.worksheets()]
        assert names == ["Sparse", "Full", "Sparse"]


class TestWorksheetRangeRef:
    def test_strings_are_shared(self, reader):
        rng = reader.worksheet_range_ref("Sparse")
        first = rng.get_value((0, 0))
        again = rng.get_value((3, 0))
        assert first.is_shared()
        assert first.value == again.value
        assert first.to_owned() == Data.string("a")

    def test_owned_reads_leave_pool_untouched(self, reader):
        reader.worksheet_range("Sparse")
        reader.worksheet_range("Full")
        assert len(reader._strings) == 0
        reader.worksheet_range_ref("Sparse")
        assert len(reader._strings) == 1

    def test_non_strings_not_shared(self, reader):
        rng = reader.worksheet_range_ref("Sparse")
        assert rng.get_value((0, 1)).get_int() == 1


class TestOptionalHooks:
    def test_formulas_unsupported_by_default(self, reader):
        with pytest.raises(XlsxError) as exc_info:
            reader.worksheet_formula("Sparse")
        assert exc_info.value.code is XlsxErrorCode.E_XLSX_UNSUPPORTED

    def test_merge_cells_default_empty(self, reader):
        assert reader.worksheet_merge_cells("Full") == []

    def test_merge_cells_unknown_sheet(self, reader):
        with pytest.raises(XlsxError):
            reader.worksheet_merge_cells("Nope")


class TestLifecycle:
    def test_context_manager_closes(self):
        with _MemoryReader(b"") as reader:
            assert not reader.closed
        assert reader.closed


class TestLogging:
    def test_sample_data_logged_only_when_enabled(self, caplog):
        quiet = _MemoryReader(b"")
        verbose = _MemoryReader(b"", SheetsReaderConfig(log_sample_data=True))
        with caplog.at_level(logging.DEBUG, logger="ingestkit_sheets"):
            quiet.worksheet_range("Full")
            assert "sample=" not in caplog.text
            verbose.worksheet_range("Full")
        assert "sample=" in caplog.text
