"""ingestkit-sheets -- Multi-format spreadsheet reader (XLSX, XLS, XLSB, ODS).

Public API re-exports for convenient access.
"""

from ingestkit_sheets.config import SheetsReaderConfig
from ingestkit_sheets.datatypes import (
    CellErrorType,
    Data,
    DataRef,
    DataType,
    ExcelDateTime,
    ExcelDateTimeType,
    SharedStrings,
)
from ingestkit_sheets.detection import (
    SheetFormat,
    detect_format,
    resolve_zip_format,
    sniff_format,
)
from ingestkit_sheets.dimensions import Dimensions, Position
from ingestkit_sheets.errors import (
    DeError,
    DeErrorCode,
    FormatError,
    IngestError,
    OdsError,
    OdsErrorCode,
    SheetsError,
    SheetsErrorKind,
    VbaError,
    VbaErrorCode,
    XlsbError,
    XlsbErrorCode,
    XlsError,
    XlsErrorCode,
    XlsxError,
    XlsxErrorCode,
)
from ingestkit_sheets.range import Cell, Range, RangeDeserializer
from ingestkit_sheets.reader import (
    BaseReader,
    Metadata,
    Reader,
    ReaderRef,
    Sheet,
    SheetType,
    SheetVisible,
)
from ingestkit_sheets.readers import OdsReader, XlsbReader, XlsReader, XlsxReader
from ingestkit_sheets.workbook import AutoWorkbook, WorkbookState, open_workbook

__all__ = [
    "AutoWorkbook",
    "WorkbookState",
    "open_workbook",
    "SheetsReaderConfig",
    "Data",
    "DataRef",
    "DataType",
    "CellErrorType",
    "ExcelDateTime",
    "ExcelDateTimeType",
    "SharedStrings",
    "Position",
    "Dimensions",
    "Cell",
    "Range",
    "RangeDeserializer",
    "Reader",
    "ReaderRef",
    "BaseReader",
    "Metadata",
    "Sheet",
    "SheetType",
    "SheetVisible",
    "SheetFormat",
    "detect_format",
    "resolve_zip_format",
    "sniff_format",
    "XlsxReader",
    "XlsReader",
    "XlsbReader",
    "OdsReader",
    "SheetsError",
    "SheetsErrorKind",
    "FormatError",
    "IngestError",
    "XlsxError",
    "XlsxErrorCode",
    "XlsError",
    "XlsErrorCode",
    "XlsbError",
    "XlsbErrorCode",
    "OdsError",
    "OdsErrorCode",
    "VbaError",
    "VbaErrorCode",
    "DeError",
    "DeErrorCode",
]
