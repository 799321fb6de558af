"""Tests for ClickHouse DDL rendering."""

import pytest

from telemetrypy.adapters.storage.clickhouse import (
    columns_for,
    render_all_tables,
    render_table,
    sum_column_type,
    table_name,
)
from telemetrypy.core.types import DatumType, NumericType

pytestmark = [pytest.mark.storage, pytest.mark.tier(0)]


def test_table_names() -> None:
    assert table_name(DatumType.HISTOGRAM_I32) == "measurements_histogrami32"
    assert table_name(DatumType.CUMULATIVE_U64) == "measurements_cumulativeu64"
    assert table_name(DatumType.F32) == "measurements_f32"


@pytest.mark.parametrize(
    ("numeric", "expected"),
    [
        (NumericType.I8, "Int64"),
        (NumericType.U32, "Int64"),
        (NumericType.U64, "UInt64"),
        (NumericType.F32, "Float64"),
    ],
)
def test_sum_uses_the_wider_accumulator(numeric: NumericType, expected: str) -> None:
    assert sum_column_type(numeric) == expected


def test_histogram_columns() -> None:
    columns = dict(columns_for(DatumType.HISTOGRAM_U16))
    assert columns["bins"] == "Array(UInt16)"
    assert columns["counts"] == "Array(UInt64)"
    assert columns["min"] == "UInt16"
    assert columns["sum_of_samples"] == "Int64"
    assert columns["squared_mean"] == "Float64"
    assert columns["p99_marker_positions"] == "Array(UInt64)"
    assert columns["p50_desired_marker_positions"] == "Array(Float64)"
    assert "start_time" in columns
    assert "datum" not in columns


def test_scalar_columns_have_no_start_time() -> None:
    names = [name for name, _ in columns_for(DatumType.STRING)]
    assert names == ["timeseries_name", "timeseries_key", "timestamp", "datum"]


def test_cumulative_columns_have_start_time() -> None:
    names = [name for name, _ in columns_for(DatumType.CUMULATIVE_F64)]
    assert names == [
        "timeseries_name",
        "timeseries_key",
        "start_time",
        "timestamp",
        "datum",
    ]


def test_render_table() -> None:
    ddl = render_table(DatumType.HISTOGRAM_F64, database="metrics", ttl_days=7)
    assert ddl.startswith(
        "CREATE TABLE IF NOT EXISTS metrics.measurements_histogramf64 ("
    )
    assert "    bins Array(Float64),\n" in ddl
    assert "ENGINE = MergeTree()" in ddl
    assert "ORDER BY (timeseries_name, timeseries_key, start_time, timestamp)" in ddl
    assert ddl.endswith("TTL toDateTime(timestamp) + INTERVAL 7 DAY;")


def test_render_scalar_table_orders_without_start_time() -> None:
    ddl = render_table(DatumType.BOOL)
    assert "telemetry.measurements_bool" in ddl
    assert "    datum UInt8\n" in ddl
    assert "ORDER BY (timeseries_name, timeseries_key, timestamp)" in ddl


def test_render_table_rejects_zero_ttl() -> None:
    with pytest.raises(ValueError):
        render_table(DatumType.F64, ttl_days=0)


def test_render_all_tables_covers_every_datum_type() -> None:
    ddl = render_all_tables()
    assert ddl.count("CREATE TABLE") == len(DatumType)
    for datum_type in DatumType:
        assert f"telemetry.{table_name(datum_type)} (" in ddl
