"""Typed cell values: ``Data``, ``DataRef`` and ``ExcelDateTime``.

``Data`` is a closed variant: exactly one ``DataType`` tag is active and the
payload in ``value`` matches it.  Every ``is_*`` predicate is true iff the
matching ``get_*`` extractor returns a value; conversions (``as_*``) fail
closed with ``None`` on a variant mismatch.

``DataRef`` mirrors ``Data`` but may hold a ``SHARED_STRING``: an index into
a decoder-owned :class:`SharedStrings` pool.  It keeps a strong reference to
the pool; :meth:`DataRef.to_owned` is the only way to get a value that is
independent of the decoder session.

Serial-number conversions use ``openpyxl.utils.datetime`` so that the 1900
leap-year quirk and the 1904 epoch are handled the same way openpyxl does.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any

from openpyxl.utils.datetime import MAC_EPOCH, WINDOWS_EPOCH, from_excel, to_excel
from pydantic import BaseModel, ConfigDict


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class DataType(str, Enum):
    """Tag of the active variant of a cell value.

    ``SHARED_STRING`` only ever appears on :class:`DataRef`.
    """

    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    DATETIME = "datetime"
    DATETIME_ISO = "datetime_iso"
    DURATION_ISO = "duration_iso"
    ERROR = "error"
    EMPTY = "empty"
    SHARED_STRING = "shared_string"


class CellErrorType(str, Enum):
    """Spreadsheet-native error values, keyed by their display text."""

    DIV0 = "#DIV/0!"
    NA = "#N/A"
    NAME = "#NAME?"
    NULL = "#NULL!"
    NUM = "#NUM!"
    REF = "#REF!"
    VALUE = "#VALUE!"
    GETTING_DATA = "#GETTING_DATA"

    @classmethod
    def from_text(cls, text: str) -> CellErrorType | None:
        """Return the error whose display text is *text*, or ``None``."""
        try:
            return cls(text.strip().upper())
        except ValueError:
            return None


class ExcelDateTimeType(str, Enum):
    """Whether a serial number denotes a point in time or a duration."""

    DATETIME = "datetime"
    TIMEDELTA = "timedelta"


_VARIANT_NAMES = {
    DataType.INT: "Int",
    DataType.FLOAT: "Float",
    DataType.STRING: "String",
    DataType.BOOL: "Bool",
    DataType.DATETIME: "DateTime",
    DataType.DATETIME_ISO: "DateTimeIso",
    DataType.DURATION_ISO: "DurationIso",
    DataType.ERROR: "Error",
    DataType.EMPTY: "Empty",
    DataType.SHARED_STRING: "SharedString",
}

_ISO_DURATION = re.compile(
    r"^(?P<sign>-)?P(?:(?P<days>\d+(?:\.\d+)?)D)?"
    r"(?:T(?:(?P<hours>\d+(?:\.\d+)?)H)?"
    r"(?:(?P<minutes>\d+(?:\.\d+)?)M)?"
    r"(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def parse_iso_duration(text: str) -> timedelta | None:
    """Parse an ISO-8601 duration such as ``PT12H30M00S``.

    Only day and time components are accepted; year and month components
    have no fixed length and yield ``None``.
    """
    match = _ISO_DURATION.match(text.strip())
    if match is None or text.strip() in ("P", "-P", "PT", "-PT"):
        return None
    parts = {k: float(v) for k, v in match.groupdict().items() if v and k != "sign"}
    delta = timedelta(
        days=parts.get("days", 0.0),
        hours=parts.get("hours", 0.0),
        minutes=parts.get("minutes", 0.0),
        seconds=parts.get("seconds", 0.0),
    )
    return -delta if match.group("sign") else delta


def _parse_iso_datetime(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text.strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# ExcelDateTime
# ---------------------------------------------------------------------------


class ExcelDateTime(BaseModel):
    """A serial number with its kind and epoch system.

    No timezone is represented.
    """

    model_config = ConfigDict(frozen=True)

    value: float
    kind: ExcelDateTimeType = ExcelDateTimeType.DATETIME
    is_1904: bool = False

    def as_f64(self) -> float:
        return self.value

    def is_datetime(self) -> bool:
        return self.kind == ExcelDateTimeType.DATETIME

    def is_duration(self) -> bool:
        return self.kind == ExcelDateTimeType.TIMEDELTA

    @property
    def epoch(self) -> datetime:
        return MAC_EPOCH if self.is_1904 else WINDOWS_EPOCH

    def as_datetime(self) -> datetime | None:
        """Calendar date and time of the serial, or ``None`` if out of range."""
        if not math.isfinite(self.value):
            return None
        try:
            result = from_excel(self.value, epoch=self.epoch)
        except (OverflowError, ValueError):
            return None
        if isinstance(result, time):
            return datetime.combine(self.epoch.date(), result)
        return result

    def as_duration(self) -> timedelta | None:
        if not math.isfinite(self.value):
            return None
        try:
            return from_excel(self.value, epoch=self.epoch, timedelta=True)
        except (OverflowError, ValueError):
            return None

    @classmethod
    def from_python(
        cls, value: datetime | date | time | timedelta, is_1904: bool = False
    ) -> ExcelDateTime:
        """Build the serial representation of a native date/time value."""
        epoch = MAC_EPOCH if is_1904 else WINDOWS_EPOCH
        kind = (
            ExcelDateTimeType.TIMEDELTA
            if isinstance(value, timedelta)
            else ExcelDateTimeType.DATETIME
        )
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.replace(tzinfo=None)
        return cls(value=float(to_excel(value, epoch=epoch)), kind=kind, is_1904=is_1904)

    def __str__(self) -> str:
        if self.is_duration():
            return str(self.as_duration())
        dt = self.as_datetime()
        return dt.isoformat() if dt is not None else repr(self.value)


# ---------------------------------------------------------------------------
# Value variants
# ---------------------------------------------------------------------------


class _CellValue(BaseModel):
    """Shared predicates, extractors and conversions of Data and DataRef."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: DataType
    value: Any = None

    # -- predicates ----------------------------------------------------------

    def is_int(self) -> bool:
        return self.type == DataType.INT

    def is_float(self) -> bool:
        return self.type == DataType.FLOAT

    def is_string(self) -> bool:
        return self.type == DataType.STRING

    def is_bool(self) -> bool:
        return self.type == DataType.BOOL

    def is_datetime(self) -> bool:
        return self.type == DataType.DATETIME

    def is_datetime_iso(self) -> bool:
        return self.type == DataType.DATETIME_ISO

    def is_duration_iso(self) -> bool:
        return self.type == DataType.DURATION_ISO

    def is_error(self) -> bool:
        return self.type == DataType.ERROR

    def is_empty(self) -> bool:
        return self.type == DataType.EMPTY

    # -- extractors ----------------------------------------------------------

    def _payload(self, data_type: DataType) -> Any:
        return self.value if self.type == data_type else None

    def get_int(self) -> int | None:
        return self._payload(DataType.INT)

    def get_float(self) -> float | None:
        return self._payload(DataType.FLOAT)

    def get_string(self) -> str | None:
        return self._payload(DataType.STRING)

    def get_bool(self) -> bool | None:
        return self._payload(DataType.BOOL)

    def get_datetime(self) -> ExcelDateTime | None:
        return self._payload(DataType.DATETIME)

    def get_datetime_iso(self) -> str | None:
        return self._payload(DataType.DATETIME_ISO)

    def get_duration_iso(self) -> str | None:
        return self._payload(DataType.DURATION_ISO)

    def get_error(self) -> CellErrorType | None:
        return self._payload(DataType.ERROR)

    # -- conversions ---------------------------------------------------------

    def as_f64(self) -> float | None:
        """Int, Float and DateTime (its serial) as a float."""
        if self.type == DataType.INT:
            return float(self.value)
        if self.type == DataType.FLOAT:
            return self.value
        if self.type == DataType.DATETIME:
            return self.value.as_f64()
        return None

    def as_i64(self) -> int | None:
        """Int, or Float truncated toward zero."""
        if self.type == DataType.INT:
            return self.value
        if self.type == DataType.FLOAT and math.isfinite(self.value):
            return math.trunc(self.value)
        return None

    def as_string(self) -> str | None:
        return self.get_string()

    def as_bool(self) -> bool | None:
        return self.get_bool()

    def as_datetime(self) -> datetime | None:
        if self.type == DataType.DATETIME:
            return self.value.as_datetime()
        if self.type in (DataType.INT, DataType.FLOAT):
            return ExcelDateTime(value=float(self.value)).as_datetime()
        if self.type == DataType.DATETIME_ISO:
            return _parse_iso_datetime(self.value)
        return None

    def as_date(self) -> date | None:
        if self.type == DataType.DATETIME_ISO:
            try:
                return date.fromisoformat(self.value.strip()[:10])
            except ValueError:
                return None
        dt = self.as_datetime()
        return dt.date() if dt is not None else None

    def as_time(self) -> time | None:
        if self.type == DataType.DURATION_ISO:
            delta = parse_iso_duration(self.value)
            if delta is None or not timedelta(0) <= delta < timedelta(days=1):
                return None
            return (datetime.min + delta).time()
        if self.type == DataType.DATETIME_ISO:
            dt = _parse_iso_datetime(self.value)
            if dt is not None:
                return dt.time()
            try:
                return time.fromisoformat(self.value.strip())
            except ValueError:
                return None
        dt = self.as_datetime()
        return dt.time() if dt is not None else None

    def as_duration(self) -> timedelta | None:
        if self.type == DataType.DATETIME:
            return self.value.as_duration()
        if self.type == DataType.DURATION_ISO:
            return parse_iso_duration(self.value)
        return None

    def to_python(self) -> Any:
        """Plain Python value: ``None`` for Empty, error text for Error."""
        if self.type == DataType.EMPTY:
            return None
        if self.is_string():
            return self.get_string()
        if self.type == DataType.ERROR:
            return self.value.value
        if self.type == DataType.DATETIME:
            converted = (
                self.value.as_duration()
                if self.value.is_duration()
                else self.value.as_datetime()
            )
            return converted if converted is not None else self.value.value
        return self.value

    # -- rendering -----------------------------------------------------------

    def _display(self) -> str:
        if self.type == DataType.EMPTY:
            return ""
        if self.type == DataType.BOOL:
            return "TRUE" if self.value else "FALSE"
        if self.type == DataType.ERROR:
            return self.value.value
        return str(self.value)

    def __str__(self) -> str:
        return self._display()

    def __repr__(self) -> str:
        name = _VARIANT_NAMES[self.type]
        if self.type == DataType.EMPTY:
            return name
        if self.type == DataType.ERROR:
            return f"{name}({self.value.name})"
        return f"{name}({self.value!r})"


class Data(_CellValue):
    """An owned cell value."""

    @classmethod
    def int(cls, value: int) -> Data:
        return cls.model_construct(type=DataType.INT, value=value)

    @classmethod
    def float(cls, value: float) -> Data:
        return cls.model_construct(type=DataType.FLOAT, value=value)

    @classmethod
    def string(cls, value: str) -> Data:
        return cls.model_construct(type=DataType.STRING, value=value)

    @classmethod
    def bool(cls, value: bool) -> Data:
        return cls.model_construct(type=DataType.BOOL, value=value)

    @classmethod
    def datetime(cls, value: ExcelDateTime) -> Data:
        return cls.model_construct(type=DataType.DATETIME, value=value)

    @classmethod
    def datetime_iso(cls, value: str) -> Data:
        return cls.model_construct(type=DataType.DATETIME_ISO, value=value)

    @classmethod
    def duration_iso(cls, value: str) -> Data:
        return cls.model_construct(type=DataType.DURATION_ISO, value=value)

    @classmethod
    def error(cls, value: CellErrorType) -> Data:
        return cls.model_construct(type=DataType.ERROR, value=value)

    @classmethod
    def empty(cls) -> Data:
        return cls.model_construct(type=DataType.EMPTY, value=None)

    @classmethod
    def from_python(cls, value: Any, is_1904: bool = False) -> Data:
        """Convert a native Python value as produced by a parsing library."""
        if value is None:
            return cls.empty()
        if isinstance(value, Data):
            return value
        if isinstance(value, CellErrorType):
            return cls.error(value)
        if isinstance(value, bool):
            return cls.bool(value)
        if isinstance(value, int):
            return cls.int(value)
        if isinstance(value, float):
            return cls.float(value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, (datetime, date, time, timedelta)):
            return cls.datetime(ExcelDateTime.from_python(value, is_1904=is_1904))
        raise TypeError(f"Cannot convert {type(value).__name__} to a cell value")

    def to_owned(self) -> Data:
        return self


class SharedStrings:
    """Append-only, interning pool of strings owned by a decoder session."""

    def __init__(self) -> None:
        self._strings: list[str] = []
        self._index: dict[str, int] = {}

    def intern(self, text: str) -> int:
        """Return the index of *text*, adding it on first sight."""
        idx = self._index.get(text)
        if idx is None:
            idx = len(self._strings)
            self._strings.append(text)
            self._index[text] = idx
        return idx

    def __getitem__(self, idx: int) -> str:
        return self._strings[idx]

    def __len__(self) -> int:
        return len(self._strings)

    def __repr__(self) -> str:
        return f"SharedStrings(len={len(self._strings)})"


class DataRef(_CellValue):
    """A cell value that may point into a decoder's shared-string pool.

    Valid for as long as the originating decoder session is in use; call
    :meth:`to_owned` to keep a value beyond that.
    """

    pool: SharedStrings | None = None

    @classmethod
    def shared(cls, pool: SharedStrings, idx: int) -> DataRef:
        return cls.model_construct(type=DataType.SHARED_STRING, value=idx, pool=pool)

    @classmethod
    def from_data(cls, data: Data) -> DataRef:
        return cls.model_construct(type=data.type, value=data.value, pool=None)

    def is_string(self) -> bool:
        return self.type in (DataType.STRING, DataType.SHARED_STRING)

    def is_shared(self) -> bool:
        return self.type == DataType.SHARED_STRING

    def get_string(self) -> str | None:
        if self.type == DataType.SHARED_STRING:
            return self.pool[self.value]
        return self._payload(DataType.STRING)

    def to_owned(self) -> Data:
        """Materialise an independent :class:`Data`."""
        if self.type == DataType.SHARED_STRING:
            return Data.string(self.pool[self.value])
        return Data.model_construct(type=self.type, value=self.value)

    def _display(self) -> str:
        if self.type == DataType.SHARED_STRING:
            return self.pool[self.value]
        return super()._display()

    def __repr__(self) -> str:
        if self.type == DataType.SHARED_STRING:
            return f"SharedString({self.pool[self.value]!r})"
        return super().__repr__()
