"""Tests for the closed field and datum type sets."""

import ipaddress
import uuid

import pytest

from telemetrypy.core.errors import SchemaError, UnknownTypeError
from telemetrypy.core.types import (
    DatumKind,
    DatumType,
    FieldType,
    NumericType,
    resolve_datum_type,
    resolve_field_type,
)


class TestResolveFieldType:
    """Tests for resolve_field_type()."""

    @pytest.mark.core
    @pytest.mark.parametrize("name", [t.value for t in FieldType])
    def test_resolves_every_known_name(self, name: str) -> None:
        """Every member of the closed set resolves by its name."""
        assert resolve_field_type(name).value == name

    @pytest.mark.core
    def test_unknown_name_raises_unknown_type(self) -> None:
        """Names outside the set raise UnknownTypeError."""
        with pytest.raises(UnknownTypeError, match="unknown field type: 'f128'"):
            resolve_field_type("f128")

    @pytest.mark.core
    def test_unknown_type_is_a_schema_error(self) -> None:
        """UnknownTypeError belongs to the schema error family."""
        with pytest.raises(SchemaError):
            resolve_field_type("U32")


class TestFieldTypeCheck:
    """Tests for FieldType.check()."""

    @pytest.mark.core
    def test_integer_ranges_are_enforced(self) -> None:
        assert FieldType.U8.check(255)
        assert not FieldType.U8.check(256)
        assert not FieldType.U32.check(-1)
        assert FieldType.I64.check(-(2**63))
        assert not FieldType.I64.check(2**63)

    @pytest.mark.core
    def test_bool_is_not_an_integer(self) -> None:
        """Booleans never pass as integers even though bool subclasses int."""
        assert not FieldType.U8.check(True)
        assert FieldType.BOOL.check(True)
        assert not FieldType.BOOL.check(1)

    @pytest.mark.core
    def test_uuid_requires_uuid_instance(self) -> None:
        value = uuid.uuid4()
        assert FieldType.UUID.check(value)
        assert not FieldType.UUID.check(str(value))

    @pytest.mark.core
    def test_ipaddr_accepts_v4_and_v6(self) -> None:
        assert FieldType.IPADDR.check(ipaddress.ip_address("10.0.0.1"))
        assert FieldType.IPADDR.check(ipaddress.ip_address("fd00::1"))
        assert not FieldType.IPADDR.check("10.0.0.1")

    @pytest.mark.core
    def test_string(self) -> None:
        assert FieldType.STRING.check("sled")
        assert not FieldType.STRING.check(b"sled")


class TestDatumType:
    """Tests for DatumType kinds and numeric types."""

    @pytest.mark.core
    @pytest.mark.parametrize(
        ("datum_type", "kind"),
        [
            (DatumType.F32, DatumKind.SCALAR),
            (DatumType.BOOL, DatumKind.SCALAR),
            (DatumType.CUMULATIVE_U64, DatumKind.CUMULATIVE),
            (DatumType.HISTOGRAM_I32, DatumKind.HISTOGRAM),
        ],
    )
    def test_kind(self, datum_type: DatumType, kind: DatumKind) -> None:
        assert datum_type.kind is kind

    @pytest.mark.core
    def test_numeric_type(self) -> None:
        assert DatumType.HISTOGRAM_I32.numeric_type is NumericType.I32
        assert DatumType.CUMULATIVE_F64.numeric_type is NumericType.F64
        assert DatumType.U8.numeric_type is NumericType.U8
        assert DatumType.STRING.numeric_type is None
        assert DatumType.BYTES.numeric_type is None

    @pytest.mark.core
    def test_resolve_datum_type(self) -> None:
        assert resolve_datum_type("histogram_f64") is DatumType.HISTOGRAM_F64
        with pytest.raises(UnknownTypeError, match="unknown datum type"):
            resolve_datum_type("histogram_f16")

    @pytest.mark.core
    def test_check_scalar_values(self) -> None:
        assert DatumType.F32.check(21.5)
        assert DatumType.F32.check(21)
        assert not DatumType.F32.check("21.5")
        assert DatumType.CUMULATIVE_U64.check(10)
        assert not DatumType.CUMULATIVE_U64.check(-1)
        assert not DatumType.CUMULATIVE_U64.check(1.5)
        assert DatumType.F64.check(2**1023)
        assert not DatumType.F64.check(10**400)
        assert DatumType.BYTES.check(b"\x00")


class TestNumericType:
    """Tests for NumericType bounds and accumulators."""

    @pytest.mark.core
    def test_sum_accumulator_is_wider(self) -> None:
        assert NumericType.I8.sum_bounds == (-(2**63), 2**63 - 1)
        assert NumericType.U32.sum_bounds == (-(2**63), 2**63 - 1)
        assert NumericType.U64.sum_bounds == (0, 2**64 - 1)

    @pytest.mark.core
    def test_float_check_rejects_nan(self) -> None:
        assert not NumericType.F64.check(float("nan"))

    @pytest.mark.core
    def test_f32_bounds(self) -> None:
        assert NumericType.F32.check(3.0e38)
        assert not NumericType.F32.check(1.0e39)
