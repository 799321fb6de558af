"""Render ClickHouse DDL for the measurement tables.

Each datum type gets its own table, named after the type, with the
column layout of HistogramRow or MeasurementRow:

    CREATE TABLE IF NOT EXISTS telemetry.measurements_histogrami32 (
        timeseries_name String,
        timeseries_key UInt64,
        ...
    ) ENGINE = MergeTree()
    ORDER BY (timeseries_name, timeseries_key, start_time, timestamp)
    TTL toDateTime(timestamp) + INTERVAL 30 DAY;

Histogram `min` and `max` are not nullable, so only rows with at least
one sample fit; `Collector.snapshot` never emits an empty one.
"""

from telemetrypy.core.models import QUANTILE_COLUMNS
from telemetrypy.core.types import DatumKind, DatumType, NumericType

_NUMERIC_COLUMN_TYPES = {
    NumericType.I8: "Int8",
    NumericType.U8: "UInt8",
    NumericType.I16: "Int16",
    NumericType.U16: "UInt16",
    NumericType.I32: "Int32",
    NumericType.U32: "UInt32",
    NumericType.I64: "Int64",
    NumericType.U64: "UInt64",
    NumericType.F32: "Float32",
    NumericType.F64: "Float64",
}

_TIMESTAMP = "DateTime64(9, 'UTC')"


def numeric_column_type(numeric: NumericType) -> str:
    return _NUMERIC_COLUMN_TYPES[numeric]


def sum_column_type(numeric: NumericType) -> str:
    """Column type of the wider ``sum_of_samples`` accumulator."""
    if numeric is NumericType.U64:
        return "UInt64"
    if numeric.is_integer:
        return "Int64"
    return "Float64"


def datum_column_type(datum_type: DatumType) -> str:
    """Column type of a scalar or cumulative datum."""
    if datum_type is DatumType.BOOL:
        return "UInt8"
    if datum_type is DatumType.STRING:
        return "String"
    if datum_type is DatumType.BYTES:
        return "Array(UInt8)"
    numeric = datum_type.numeric_type
    assert numeric is not None
    return numeric_column_type(numeric)


def table_name(datum_type: DatumType) -> str:
    """e.g. measurements_histogrami32, measurements_cumulativeu64."""
    return "measurements_" + datum_type.value.replace("_", "")


def _histogram_columns(numeric: NumericType) -> list[tuple[str, str]]:
    element = numeric_column_type(numeric)
    columns = [
        ("bins", f"Array({element})"),
        ("counts", "Array(UInt64)"),
        ("min", element),
        ("max", element),
        ("sum_of_samples", sum_column_type(numeric)),
        ("squared_mean", "Float64"),
    ]
    for prefix in QUANTILE_COLUMNS:
        columns.extend(
            [
                (f"{prefix}_marker_heights", "Array(Float64)"),
                (f"{prefix}_marker_positions", "Array(UInt64)"),
                (f"{prefix}_desired_marker_positions", "Array(Float64)"),
            ]
        )
    return columns


def columns_for(datum_type: DatumType) -> list[tuple[str, str]]:
    """Ordered (name, ClickHouse type) pairs of a datum type's table."""
    columns = [
        ("timeseries_name", "String"),
        ("timeseries_key", "UInt64"),
    ]
    if datum_type.kind is not DatumKind.SCALAR:
        columns.append(("start_time", _TIMESTAMP))
    columns.append(("timestamp", _TIMESTAMP))
    if datum_type.kind is DatumKind.HISTOGRAM:
        numeric = datum_type.numeric_type
        assert numeric is not None
        columns.extend(_histogram_columns(numeric))
    else:
        columns.append(("datum", datum_column_type(datum_type)))
    return columns


def render_table(
    datum_type: DatumType,
    database: str = "telemetry",
    ttl_days: int = 30,
) -> str:
    """Render the CREATE TABLE statement for one datum type.

    Args:
        datum_type: Datum type whose table to render.
        database: ClickHouse database name.
        ttl_days: Retention window; rows expire this long after timestamp.

    Returns:
        A multi-line SQL string.
    """
    if ttl_days < 1:
        raise ValueError("ttl_days must be at least 1")
    lines = ",\n".join(
        f"    {name} {ch_type}" for name, ch_type in columns_for(datum_type)
    )
    order = (
        "timeseries_name, timeseries_key, timestamp"
        if datum_type.kind is DatumKind.SCALAR
        else "timeseries_name, timeseries_key, start_time, timestamp"
    )
    return f"""CREATE TABLE IF NOT EXISTS {database}.{table_name(datum_type)} (
{lines}
) ENGINE = MergeTree()
ORDER BY ({order})
TTL toDateTime(timestamp) + INTERVAL {ttl_days} DAY;"""


def render_all_tables(database: str = "telemetry", ttl_days: int = 30) -> str:
    """Render DDL for every datum type, separated by blank lines."""
    return "\n\n".join(render_table(d, database, ttl_days) for d in DatumType)
