"""Closed field and datum type enumerations.

Type names are resolved once, when a schema is loaded. Everything
downstream works with the enum members, never with raw strings.
"""

import ipaddress
import math
import uuid
from enum import Enum

from telemetrypy.core.errors import UnknownTypeError

_INT_BOUNDS: dict[str, tuple[int, int]] = {
    "i8": (-(2**7), 2**7 - 1),
    "u8": (0, 2**8 - 1),
    "i16": (-(2**15), 2**15 - 1),
    "u16": (0, 2**16 - 1),
    "i32": (-(2**31), 2**31 - 1),
    "u32": (0, 2**32 - 1),
    "i64": (-(2**63), 2**63 - 1),
    "u64": (0, 2**64 - 1),
}

F32_MAX = 3.4028234663852886e38


class FieldType(Enum):
    """Type of a dimensional field value."""

    STRING = "string"
    I8 = "i8"
    U8 = "u8"
    I16 = "i16"
    U16 = "u16"
    I32 = "i32"
    U32 = "u32"
    I64 = "i64"
    U64 = "u64"
    IPADDR = "ipaddr"
    UUID = "uuid"
    BOOL = "bool"

    @property
    def is_integer(self) -> bool:
        return self.value in _INT_BOUNDS

    def check(self, value: object) -> bool:
        """Return True if value is a valid runtime value of this type."""
        if self is FieldType.BOOL:
            return isinstance(value, bool)
        if self is FieldType.STRING:
            return isinstance(value, str)
        if self is FieldType.UUID:
            return isinstance(value, uuid.UUID)
        if self is FieldType.IPADDR:
            return isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address))
        # bool is a subclass of int and must not pass as one
        if not isinstance(value, int) or isinstance(value, bool):
            return False
        low, high = _INT_BOUNDS[self.value]
        return low <= value <= high


class NumericType(Enum):
    """Numeric element type of a datum or histogram."""

    I8 = "i8"
    U8 = "u8"
    I16 = "i16"
    U16 = "u16"
    I32 = "i32"
    U32 = "u32"
    I64 = "i64"
    U64 = "u64"
    F32 = "f32"
    F64 = "f64"

    @property
    def is_integer(self) -> bool:
        return self.value in _INT_BOUNDS

    @property
    def bounds(self) -> tuple[float, float]:
        if self.is_integer:
            return _INT_BOUNDS[self.value]
        if self is NumericType.F32:
            return (-F32_MAX, F32_MAX)
        return (-math.inf, math.inf)

    @property
    def sum_bounds(self) -> tuple[float, float]:
        """Range of the wider accumulator used for ``sum_of_samples``."""
        if self is NumericType.U64:
            return _INT_BOUNDS["u64"]
        if self.is_integer:
            return _INT_BOUNDS["i64"]
        return (-1.7976931348623157e308, 1.7976931348623157e308)

    def check(self, value: object) -> bool:
        if isinstance(value, bool):
            return False
        if self.is_integer:
            if not isinstance(value, int):
                return False
        elif not isinstance(value, (int, float)):
            return False
        elif isinstance(value, int):
            # an int past the float range has no f32/f64 value
            try:
                float(value)
            except OverflowError:
                return False
        low, high = self.bounds
        return low <= value <= high


class DatumKind(Enum):
    """Storage shape of a metric's measurements."""

    SCALAR = "scalar"
    CUMULATIVE = "cumulative"
    HISTOGRAM = "histogram"


class DatumType(Enum):
    """Value type of a metric's measurements."""

    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"
    I8 = "i8"
    U8 = "u8"
    I16 = "i16"
    U16 = "u16"
    I32 = "i32"
    U32 = "u32"
    I64 = "i64"
    U64 = "u64"
    F32 = "f32"
    F64 = "f64"
    CUMULATIVE_I64 = "cumulative_i64"
    CUMULATIVE_U64 = "cumulative_u64"
    CUMULATIVE_F32 = "cumulative_f32"
    CUMULATIVE_F64 = "cumulative_f64"
    HISTOGRAM_I8 = "histogram_i8"
    HISTOGRAM_U8 = "histogram_u8"
    HISTOGRAM_I16 = "histogram_i16"
    HISTOGRAM_U16 = "histogram_u16"
    HISTOGRAM_I32 = "histogram_i32"
    HISTOGRAM_U32 = "histogram_u32"
    HISTOGRAM_I64 = "histogram_i64"
    HISTOGRAM_U64 = "histogram_u64"
    HISTOGRAM_F32 = "histogram_f32"
    HISTOGRAM_F64 = "histogram_f64"

    @property
    def kind(self) -> DatumKind:
        if self.value.startswith("cumulative_"):
            return DatumKind.CUMULATIVE
        if self.value.startswith("histogram_"):
            return DatumKind.HISTOGRAM
        return DatumKind.SCALAR

    @property
    def numeric_type(self) -> NumericType | None:
        """Underlying numeric type, or None for bool/string/bytes datums."""
        base = self.value.rsplit("_", 1)[-1]
        try:
            return NumericType(base)
        except ValueError:
            return None

    def check(self, value: object) -> bool:
        """Return True if value is a valid scalar or cumulative datum."""
        if self is DatumType.BOOL:
            return isinstance(value, bool)
        if self is DatumType.STRING:
            return isinstance(value, str)
        if self is DatumType.BYTES:
            return isinstance(value, bytes)
        numeric = self.numeric_type
        assert numeric is not None
        return numeric.check(value)


def resolve_field_type(type_name: str) -> FieldType:
    """Resolve a field type name, raising UnknownTypeError if unknown."""
    try:
        return FieldType(type_name)
    except ValueError:
        raise UnknownTypeError(type_name, kind="field") from None


def resolve_datum_type(type_name: str) -> DatumType:
    """Resolve a datum type name, raising UnknownTypeError if unknown."""
    try:
        return DatumType(type_name)
    except ValueError:
        raise UnknownTypeError(type_name, kind="datum") from None
