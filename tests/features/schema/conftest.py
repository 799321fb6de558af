"""BDD step definitions for schema evolution features."""

import asyncio
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from telemetrypy.adapters.storage.in_memory import InMemoryMeasurementStorage
from telemetrypy.core import errors
from telemetrypy.core.collector import Collector
from telemetrypy.core.config import CollectorConfig
from telemetrypy.core.models import HistogramRow, Schema
from telemetrypy.core.ports import Row
from telemetrypy.core.registry import SchemaRegistry
from telemetrypy.core.timeseries import timeseries_key

SWITCH_ID = uuid.UUID("0c8f1d1a-3b62-4a52-8f0e-5f7d9b2e4c11")


@dataclass
class SchemaScenarioContext:
    """State shared between the steps of one scenario."""

    registry: SchemaRegistry = field(default_factory=SchemaRegistry)
    storage: InMemoryMeasurementStorage = field(
        default_factory=InMemoryMeasurementStorage
    )
    first: Schema | None = None
    changed: bool | None = None
    error: Exception | None = None
    keys: dict[int, int] = field(default_factory=dict)
    collector: Collector | None = None


def _names(text: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in text.split(","))


def _fields(version: int) -> dict[str, object]:
    values: dict[str, object] = {
        "switch_id": SWITCH_ID,
        "port": 3,
        "direction": "tx",
    }
    if version >= 2:
        values["queue"] = 1
    return values


def _register(ctx: SchemaScenarioContext, schema: Schema) -> None:
    ctx.changed = None
    ctx.error = None
    try:
        ctx.changed = ctx.registry.register(schema)
    except errors.SchemaError as exc:
        ctx.error = exc


def _record(
    ctx: SchemaScenarioContext, version: int, fields: dict, value: float
) -> None:
    if ctx.collector is None:
        config = CollectorConfig(bins={"switch_port:latency": (0.0, 10.0, 20.0)})
        ctx.collector = Collector(ctx.registry, ctx.storage, config)
    try:
        ctx.keys[version] = ctx.collector.record(
            "switch_port", "latency", version, fields, value
        )
    except errors.ValidationError as exc:
        ctx.error = exc


@pytest.fixture
def ctx() -> SchemaScenarioContext:
    """Fresh scenario context for each test."""
    return SchemaScenarioContext()


# --- Given / When ---


@given(
    parsers.parse('the switch_port schema is registered with target fields "{names}"')
)
def given_switch_port_schema(
    ctx: SchemaScenarioContext, switch_schema: Callable[..., Schema], names: str
) -> None:
    ctx.first = switch_schema(target_versions=[_names(names)])
    ctx.registry.register(ctx.first)


@given(
    parsers.parse('a schema adding version 2 with metric field "{name}" is registered')
)
@when(
    parsers.parse('a schema adding version 2 with metric field "{name}" is registered')
)
def register_version_two(
    ctx: SchemaScenarioContext, switch_schema: Callable[..., Schema], name: str
) -> None:
    schema = switch_schema(
        target_versions=[("switch_id", "port"), ("switch_id", "port")],
        metric_versions=[(1, ("direction",)), (2, (name,))],
    )
    _register(ctx, schema)


@when("the same switch_port schema is registered again")
@when("the version 1 switch_port schema is registered again")
def register_first_again(ctx: SchemaScenarioContext) -> None:
    assert ctx.first is not None
    _register(ctx, ctx.first)


@when(
    parsers.parse(
        'a schema changing version 1 target fields to "{names}" is registered'
    )
)
def register_rewritten_version(
    ctx: SchemaScenarioContext, switch_schema: Callable[..., Schema], names: str
) -> None:
    _register(ctx, switch_schema(target_versions=[_names(names)]))


@when(
    parsers.parse(
        "a version {version:d} latency sample of {value:g} is recorded "
        "with the version {fields_version:d} fields"
    )
)
def record_with_other_fields(
    ctx: SchemaScenarioContext, version: int, value: float, fields_version: int
) -> None:
    _record(ctx, version, _fields(fields_version), value)


@when(parsers.parse("a version {version:d} latency sample of {value:g} is recorded"))
def record_sample(ctx: SchemaScenarioContext, version: int, value: float) -> None:
    _record(ctx, version, _fields(version), value)


@when("the collector is flushed")
def flush_collector(ctx: SchemaScenarioContext) -> None:
    assert ctx.collector is not None
    asyncio.run(ctx.collector.flush())


# --- Then ---


@then("the registration succeeds")
def registration_succeeds(ctx: SchemaScenarioContext) -> None:
    assert ctx.error is None
    assert ctx.changed is True


@then("the registration reports no change")
def registration_no_change(ctx: SchemaScenarioContext) -> None:
    assert ctx.error is None
    assert ctx.changed is False


@then(parsers.parse("the registration fails with {error_name}"))
def registration_fails(ctx: SchemaScenarioContext, error_name: str) -> None:
    assert isinstance(ctx.error, getattr(errors, error_name))


@then(parsers.parse("the sample is rejected with {error_name}"))
def sample_rejected(ctx: SchemaScenarioContext, error_name: str) -> None:
    assert isinstance(ctx.error, getattr(errors, error_name))


@then(parsers.parse("the latest switch_port version is {version:d}"))
def latest_version_is(ctx: SchemaScenarioContext, version: int) -> None:
    assert ctx.registry.latest_version("switch_port") == version


@then(parsers.parse('the latency fields as of version {version:d} are "{names}"'))
def latency_fields_are(ctx: SchemaScenarioContext, version: int, names: str) -> None:
    fields = ctx.registry.resolve_fields("switch_port", "latency", version)
    assert tuple(f.name for f in fields) == _names(names)


@then(parsers.parse("{count:d} histogram rows are stored"))
def histogram_rows_stored(ctx: SchemaScenarioContext, count: int) -> None:
    rows = asyncio.run(_read(ctx.storage))
    assert len([r for r in rows if isinstance(r, HistogramRow)]) == count


@then(parsers.parse("the row for version {version:d} has {count:d} sample"))
def row_has_samples(ctx: SchemaScenarioContext, version: int, count: int) -> None:
    rows = asyncio.run(_read(ctx.storage))
    key = ctx.keys[version]
    assert key == timeseries_key("switch_port", "latency", _fields(version))
    (row,) = [r for r in rows if r.timeseries_key == key]
    assert isinstance(row, HistogramRow)
    assert row.n_samples == count


async def _read(storage: InMemoryMeasurementStorage) -> list[Row]:
    return [row async for row in storage.read()]
