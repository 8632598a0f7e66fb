"""Concrete format decoders implementing the ``ReaderRef`` contract."""

from ingestkit_sheets.readers.ods import OdsReader
from ingestkit_sheets.readers.xls import XlsReader
from ingestkit_sheets.readers.xlsb import XlsbReader
from ingestkit_sheets.readers.xlsx import XlsxReader

__all__ = [
    "XlsxReader",
    "XlsReader",
    "XlsbReader",
    "OdsReader",
]
