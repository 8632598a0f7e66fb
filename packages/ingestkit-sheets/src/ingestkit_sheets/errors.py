"""Error codes, format exceptions and the general error for ingestkit-sheets.

Each decoder owns a closed ``*ErrorCode`` enum and raises the matching
``FormatError`` subclass (``XlsxError``, ``XlsError``, ...) at its boundary.
The :class:`AutoWorkbook` facade converts those into :class:`SheetsError`
with :meth:`FormatError.to_error`, which keeps the original exception as
``inner`` so callers can branch on the specific code.

``IngestError`` is the serialisable record of an error, shaped like the
structured errors of the other ingestkit packages.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

from pydantic import BaseModel


class SheetsErrorKind(str, Enum):
    """Tag of a :class:`SheetsError`: the format that failed, or a generic kind."""

    XLSX = "xlsx"
    XLS = "xls"
    XLSB = "xlsb"
    ODS = "ods"
    VBA = "vba"
    DE = "de"
    IO = "io"
    MSG = "msg"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class XlsxErrorCode(str, Enum):
    """Error codes raised by the XLSX decoder.

    Values equal their names so they are stable strings suitable for
    metrics and alerting.
    """

    E_XLSX_IO = "E_XLSX_IO"
    E_XLSX_INVALID_SIGNATURE = "E_XLSX_INVALID_SIGNATURE"
    E_XLSX_MISSING_PART = "E_XLSX_MISSING_PART"
    E_XLSX_PASSWORD = "E_XLSX_PASSWORD"
    E_XLSX_UNSUPPORTED = "E_XLSX_UNSUPPORTED"
    E_XLSX_CORRUPT = "E_XLSX_CORRUPT"
    E_XLSX_ENCODING = "E_XLSX_ENCODING"
    E_XLSX_WORKSHEET_NOT_FOUND = "E_XLSX_WORKSHEET_NOT_FOUND"
    E_XLSX_XML = "E_XLSX_XML"
    E_XLSX_CELL_TYPE = "E_XLSX_CELL_TYPE"
    E_XLSX_CELL_ERROR = "E_XLSX_CELL_ERROR"


class XlsErrorCode(str, Enum):
    """Error codes raised by the legacy binary (.xls) decoder."""

    E_XLS_IO = "E_XLS_IO"
    E_XLS_INVALID_SIGNATURE = "E_XLS_INVALID_SIGNATURE"
    E_XLS_MISSING_PART = "E_XLS_MISSING_PART"
    E_XLS_PASSWORD = "E_XLS_PASSWORD"
    E_XLS_UNSUPPORTED = "E_XLS_UNSUPPORTED"
    E_XLS_CORRUPT = "E_XLS_CORRUPT"
    E_XLS_ENCODING = "E_XLS_ENCODING"
    E_XLS_WORKSHEET_NOT_FOUND = "E_XLS_WORKSHEET_NOT_FOUND"
    E_XLS_BIFF_VERSION = "E_XLS_BIFF_VERSION"
    E_XLS_INVALID_BOF = "E_XLS_INVALID_BOF"


class XlsbErrorCode(str, Enum):
    """Error codes raised by the binary workbook (.xlsb) decoder."""

    E_XLSB_IO = "E_XLSB_IO"
    E_XLSB_INVALID_SIGNATURE = "E_XLSB_INVALID_SIGNATURE"
    E_XLSB_MISSING_PART = "E_XLSB_MISSING_PART"
    E_XLSB_PASSWORD = "E_XLSB_PASSWORD"
    E_XLSB_UNSUPPORTED = "E_XLSB_UNSUPPORTED"
    E_XLSB_CORRUPT = "E_XLSB_CORRUPT"
    E_XLSB_ENCODING = "E_XLSB_ENCODING"
    E_XLSB_WORKSHEET_NOT_FOUND = "E_XLSB_WORKSHEET_NOT_FOUND"
    E_XLSB_RECORD = "E_XLSB_RECORD"
    E_XLSB_ENGINE_UNAVAILABLE = "E_XLSB_ENGINE_UNAVAILABLE"


class OdsErrorCode(str, Enum):
    """Error codes raised by the OpenDocument spreadsheet decoder."""

    E_ODS_IO = "E_ODS_IO"
    E_ODS_INVALID_SIGNATURE = "E_ODS_INVALID_SIGNATURE"
    E_ODS_MISSING_PART = "E_ODS_MISSING_PART"
    E_ODS_PASSWORD = "E_ODS_PASSWORD"
    E_ODS_UNSUPPORTED = "E_ODS_UNSUPPORTED"
    E_ODS_CORRUPT = "E_ODS_CORRUPT"
    E_ODS_ENCODING = "E_ODS_ENCODING"
    E_ODS_WORKSHEET_NOT_FOUND = "E_ODS_WORKSHEET_NOT_FOUND"
    E_ODS_MIMETYPE_MISMATCH = "E_ODS_MIMETYPE_MISMATCH"
    E_ODS_XML = "E_ODS_XML"
    E_ODS_INVALID_VALUE = "E_ODS_INVALID_VALUE"


class VbaErrorCode(str, Enum):
    """Error codes for VBA project containers."""

    E_VBA_IO = "E_VBA_IO"
    E_VBA_INVALID_SIGNATURE = "E_VBA_INVALID_SIGNATURE"
    E_VBA_MISSING_PART = "E_VBA_MISSING_PART"
    E_VBA_PASSWORD = "E_VBA_PASSWORD"
    E_VBA_UNSUPPORTED = "E_VBA_UNSUPPORTED"
    E_VBA_CORRUPT = "E_VBA_CORRUPT"
    E_VBA_ENCODING = "E_VBA_ENCODING"
    E_VBA_MODULE_NOT_FOUND = "E_VBA_MODULE_NOT_FOUND"
    E_VBA_UNKNOWN_REFERENCE = "E_VBA_UNKNOWN_REFERENCE"


class DeErrorCode(str, Enum):
    """Error codes raised while deserializing a range into records."""

    E_DE_HEADER_NOT_FOUND = "E_DE_HEADER_NOT_FOUND"
    E_DE_UNEXPECTED_END_OF_ROW = "E_DE_UNEXPECTED_END_OF_ROW"
    E_DE_CELL_TYPE = "E_DE_CELL_TYPE"
    E_DE_INVALID_VALUE = "E_DE_INVALID_VALUE"
    E_DE_CUSTOM = "E_DE_CUSTOM"


# ---------------------------------------------------------------------------
# Structured record
# ---------------------------------------------------------------------------


class IngestError(BaseModel):
    """Structured error with code, message, and context.

    Serialisable counterpart of the exceptions below, suitable for
    result payloads and logs.
    """

    code: str
    message: str
    sheet_name: str | None = None
    stage: str | None = None
    recoverable: bool = False


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SheetsError(Exception):
    """General error raised by the reader facade.

    ``kind`` tells which format failed (``inner`` then holds the original
    :class:`FormatError`) or whether this is a generic ``IO`` / ``MSG``
    failure.
    """

    def __init__(
        self,
        kind: SheetsErrorKind,
        message: str,
        inner: FormatError | None = None,
    ) -> None:
        self.kind = SheetsErrorKind(kind)
        self.message = message
        self.inner = inner
        super().__init__(message)

    @classmethod
    def io(cls, message: str) -> SheetsError:
        return cls(SheetsErrorKind.IO, message)

    @classmethod
    def msg(cls, message: str) -> SheetsError:
        return cls(SheetsErrorKind.MSG, message)

    @property
    def code(self) -> str:
        """The inner format code, or ``E_IO`` / ``E_MSG`` for generic errors."""
        if self.inner is not None:
            return self.inner.code.value
        return f"E_{self.kind.name}"

    @property
    def is_not_found(self) -> bool:
        return self.inner is not None and self.inner.is_not_found

    def to_ingest_error(self, stage: str | None = None) -> IngestError:
        if self.inner is not None:
            return self.inner.to_ingest_error(stage)
        return IngestError(code=self.code, message=self.message, stage=stage)

    def __repr__(self) -> str:
        if self.inner is not None:
            return f"SheetsError.{self.kind.name}({self.inner!r})"
        return f"SheetsError.{self.kind.name}({self.message!r})"


class FormatError(Exception):
    """Base class of the per-format errors.

    Subclasses pin ``kind`` (the :class:`SheetsError` tag they convert to)
    and ``code_type`` (their closed code enum).
    """

    kind: ClassVar[SheetsErrorKind]
    code_type: ClassVar[type[Enum]]

    def __init__(
        self,
        code: Enum | str,
        message: str = "",
        *,
        sheet_name: str | None = None,
    ) -> None:
        self.code = self.code_type(code)
        self.message = message or self.code.value
        self.sheet_name = sheet_name
        super().__init__(f"{self.code.value}: {self.message}")

    @property
    def is_not_found(self) -> bool:
        """True for lookups of sheets/modules the workbook does not contain."""
        return self.code.name.endswith("_NOT_FOUND")

    def to_error(self) -> SheetsError:
        """Wrap this error in the general :class:`SheetsError` without loss."""
        return SheetsError(self.kind, str(self), inner=self)

    def to_ingest_error(self, stage: str | None = None) -> IngestError:
        return IngestError(
            code=self.code.value,
            message=self.message,
            sheet_name=self.sheet_name,
            stage=stage,
            recoverable=self.is_not_found,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.name}, {self.message!r})"


class XlsxError(FormatError):
    kind = SheetsErrorKind.XLSX
    code_type = XlsxErrorCode


class XlsError(FormatError):
    kind = SheetsErrorKind.XLS
    code_type = XlsErrorCode


class XlsbError(FormatError):
    kind = SheetsErrorKind.XLSB
    code_type = XlsbErrorCode


class OdsError(FormatError):
    kind = SheetsErrorKind.ODS
    code_type = OdsErrorCode


class VbaError(FormatError):
    kind = SheetsErrorKind.VBA
    code_type = VbaErrorCode


class DeError(FormatError):
    """Raised when a range cannot be deserialized into records."""

    kind = SheetsErrorKind.DE
    code_type = DeErrorCode

    def __init__(
        self,
        code: Enum | str,
        message: str = "",
        *,
        sheet_name: str | None = None,
        row: int | None = None,
        column: int | None = None,
    ) -> None:
        self.row = row
        self.column = column
        super().__init__(code, message, sheet_name=sheet_name)
