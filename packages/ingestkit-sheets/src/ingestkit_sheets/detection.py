"""Byte-signature format detection.

Detection runs in two passes:

1. :func:`detect_format` -- a pure first-pass filter over the first 8 bytes.
   An OLE2 compound-file header maps to ``XLS``.  A ZIP local-file header is
   ambiguous (XLSX, XLSB and ODS all use it) and maps to ``UNKNOWN``.
2. :func:`resolve_zip_format` -- archive-aware inspection of a ZIP
   container's ``mimetype`` / manifest / workbook part names.

:func:`sniff_format` chains both.  Neither pass claims more than the bytes
back up: ``UNKNOWN`` is an expected outcome.
"""

from __future__ import annotations

import io
import logging
import os
import zipfile
from enum import Enum

logger = logging.getLogger("ingestkit_sheets")

ZIP_MAGIC = b"PK\x03\x04"
OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

ODS_MIMETYPE = "application/vnd.oasis.opendocument.spreadsheet"

_EXTENSIONS = {
    ".xlsx": "xlsx",
    ".xlsm": "xlsx",
    ".xltx": "xlsx",
    ".xltm": "xlsx",
    ".xlam": "xlsx",
    ".xls": "xls",
    ".xla": "xls",
    ".xlsb": "xlsb",
    ".ods": "ods",
}


class SheetFormat(str, Enum):
    """Verdict of format detection."""

    UNKNOWN = "unknown"
    XLSX = "xlsx"
    XLS = "xls"
    XLSB = "xlsb"
    ODS = "ods"

    @classmethod
    def from_extension(cls, path: str) -> SheetFormat:
        """Format implied by a file extension.  A hint only, never a verdict."""
        ext = os.path.splitext(path)[1].lower()
        return cls(_EXTENSIONS.get(ext, "unknown"))


def detect_format(prefix: bytes) -> SheetFormat:
    """First-pass verdict from the leading bytes of a file."""
    if prefix[:8] == OLE2_MAGIC:
        return SheetFormat.XLS
    # ZIP hosts XLSX, XLSB and ODS alike; see resolve_zip_format().
    return SheetFormat.UNKNOWN


def is_zip(prefix: bytes) -> bool:
    return prefix[:4] == ZIP_MAGIC


def resolve_zip_format(data: bytes) -> SheetFormat:
    """Second-pass verdict for a ZIP container, from its member names."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = set(zf.namelist())
            if "mimetype" in names:
                mimetype = zf.read("mimetype").decode("ascii", errors="ignore").strip()
                if mimetype == ODS_MIMETYPE:
                    return SheetFormat.ODS
            if "META-INF/manifest.xml" in names:
                manifest = zf.read("META-INF/manifest.xml").decode("utf-8", errors="ignore")
                if ODS_MIMETYPE + '"' in manifest:
                    return SheetFormat.ODS
    except (zipfile.BadZipFile, zipfile.LargeZipFile, KeyError, OSError) as exc:
        logger.debug("ingestkit_sheets | zip inspection failed | detail=%s", exc)
        return SheetFormat.UNKNOWN

    if "xl/workbook.bin" in names:
        return SheetFormat.XLSB
    if "xl/workbook.xml" in names:
        return SheetFormat.XLSX
    return SheetFormat.UNKNOWN


def sniff_format(data: bytes) -> SheetFormat:
    """Run both detection passes over a complete in-memory file."""
    verdict = detect_format(data[:8])
    if verdict is SheetFormat.UNKNOWN and is_zip(data):
        verdict = resolve_zip_format(data)
    logger.debug("ingestkit_sheets | detected format=%s", verdict.value)
    return verdict
