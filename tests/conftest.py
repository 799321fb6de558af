"""Shared test fixtures for all test modules."""

import uuid
from collections.abc import Callable
from pathlib import Path

import pytest

from telemetrypy.adapters.loaders import load_schema_file
from telemetrypy.core.models import (
    FieldSpec,
    MetricSpec,
    Schema,
    TargetSpec,
    TargetVersion,
    VersionEntry,
)
from telemetrypy.core.registry import SchemaRegistry
from telemetrypy.core.types import DatumType, FieldType

DATA_DIR = Path(__file__).parent / "data"

RACK_ID = uuid.UUID("6f2a4d3e-0b7c-4b8e-9a55-1d2c3b4a5f60")


@pytest.fixture
def data_dir() -> Path:
    """Directory holding the TOML schema documents used by tests."""
    return DATA_DIR


@pytest.fixture
def measurements_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for measurement storage tests."""
    return str(tmp_path / "measurements.db")


@pytest.fixture
def hardware_schema() -> Schema:
    """The hardware_component schema loaded from its TOML document."""
    return load_schema_file(DATA_DIR / "hardware-component.toml")


@pytest.fixture
def registry(hardware_schema: Schema) -> SchemaRegistry:
    """A registry with the hardware_component schema published."""
    registry = SchemaRegistry()
    registry.register(hardware_schema)
    return registry


@pytest.fixture
def hardware_fields() -> Callable[..., dict[str, object]]:
    """Factory for valid hardware_component field values.

    Usage:
        fields = hardware_fields(version=2, sensor="cpu0")
    """

    def _fields(version: int = 1, **extra: object) -> dict[str, object]:
        values: dict[str, object] = {
            "rack_id": RACK_ID,
            "slot": 7,
            "component_id": "dev-0",
        }
        if version >= 2:
            values["chassis_kind"] = "sled"
        values.update(extra)
        return values

    return _fields


def build_switch_schema(
    target_versions: list[tuple[str, ...]] | None = None,
    metric_versions: list[tuple[int, tuple[str, ...]]] | None = None,
    datum_type: DatumType = DatumType.HISTOGRAM_F64,
) -> Schema:
    """Build a small switch-port schema in code."""
    target_versions = target_versions or [("switch_id", "port")]
    metric_versions = metric_versions or [(1, ("direction",))]
    fields = {
        "switch_id": FieldSpec("switch_id", FieldType.UUID, "Switch ID"),
        "port": FieldSpec("port", FieldType.U16, "Port number"),
        "direction": FieldSpec("direction", FieldType.STRING, "tx or rx"),
        "queue": FieldSpec("queue", FieldType.U8, "Queue index"),
        "vlan": FieldSpec("vlan", FieldType.U16, "VLAN tag"),
        "enabled": FieldSpec("enabled", FieldType.BOOL, "Admin state"),
    }
    return Schema(
        target=TargetSpec(
            name="switch_port",
            description="A port on a rack switch",
            authz_scope="fleet",
            versions=tuple(
                TargetVersion(number, names)
                for number, names in enumerate(target_versions, start=1)
            ),
        ),
        metrics=(
            MetricSpec(
                name="latency",
                datum_type=datum_type,
                units="microseconds",
                description="Packet forwarding latency",
                versions=tuple(
                    VersionEntry(added_in, names)
                    for added_in, names in metric_versions
                ),
            ),
        ),
        fields=fields,
    )


@pytest.fixture
def switch_schema() -> Callable[..., Schema]:
    """Factory fixture for in-code switch_port schemas."""
    return build_switch_schema
