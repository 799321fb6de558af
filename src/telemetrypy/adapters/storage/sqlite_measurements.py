"""SQLite storage adapter for histogram and measurement rows."""

import json
import sqlite3
from collections.abc import AsyncIterable, Sequence
from typing import Any

import aiosqlite

from telemetrypy.adapters.storage.sqlite_base import SQLiteStorageBase
from telemetrypy.core.models import (
    QUANTILE_COLUMNS,
    EstimatorState,
    HistogramRow,
    MeasurementRow,
)
from telemetrypy.core.ports import Row, storage_order
from telemetrypy.core.types import DatumType

_ESTIMATOR_COLUMNS = ",\n".join(
    f"    {p}_quantile REAL NOT NULL,\n"
    f"    {p}_marker_heights TEXT NOT NULL,\n"
    f"    {p}_marker_positions TEXT NOT NULL,\n"
    f"    {p}_desired_marker_positions TEXT NOT NULL"
    for p in QUANTILE_COLUMNS
)

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS histograms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timeseries_name TEXT NOT NULL,
    timeseries_key TEXT NOT NULL,
    start_time INTEGER NOT NULL,
    timestamp INTEGER NOT NULL,
    datum_type TEXT NOT NULL,
    bins TEXT NOT NULL,
    counts TEXT NOT NULL,
    min TEXT NOT NULL,
    max TEXT NOT NULL,
    sum_of_samples TEXT NOT NULL,
    squared_mean REAL NOT NULL,
{_ESTIMATOR_COLUMNS}
);
CREATE INDEX IF NOT EXISTS idx_histograms_series
    ON histograms(timeseries_name, timeseries_key, start_time, timestamp);
CREATE TABLE IF NOT EXISTS measurements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timeseries_name TEXT NOT NULL,
    timeseries_key TEXT NOT NULL,
    start_time INTEGER,
    timestamp INTEGER NOT NULL,
    datum_type TEXT NOT NULL,
    datum TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_measurements_series
    ON measurements(timeseries_name, timeseries_key, start_time, timestamp);
"""

_HISTOGRAM_COLUMN_COUNT = 11 + 4 * len(QUANTILE_COLUMNS)

_INSERT_HISTOGRAM = f"""
INSERT INTO histograms VALUES (NULL, {", ".join("?" * _HISTOGRAM_COLUMN_COUNT)})
"""

_INSERT_MEASUREMENT = """
INSERT INTO measurements VALUES (NULL, ?, ?, ?, ?, ?, ?)
"""

_SELECT_HISTOGRAMS_SINCE = """
SELECT * FROM histograms WHERE timestamp > ?
ORDER BY timeseries_name, timeseries_key, start_time, timestamp
"""

_SELECT_MEASUREMENTS_SINCE = """
SELECT * FROM measurements WHERE timestamp > ?
ORDER BY timeseries_name, timeseries_key, start_time, timestamp
"""

_COUNT = "SELECT (SELECT COUNT(*) FROM histograms) + (SELECT COUNT(*) FROM measurements)"

_DELETE_BEFORE = (
    "DELETE FROM histograms WHERE timestamp < ?",
    "DELETE FROM measurements WHERE timestamp < ?",
)

_CLEAR = ("DELETE FROM histograms", "DELETE FROM measurements")


def _encode_key(key: int) -> str:
    # SQLite integers are signed 64-bit; fixed-width hex keeps u64 order.
    return f"{key:016x}"


def _encode_datum(datum_type: DatumType, datum: Any) -> str:
    if datum_type is DatumType.BYTES:
        return json.dumps(datum.hex())
    return json.dumps(datum)


def _decode_datum(datum_type: DatumType, raw: str) -> Any:
    value = json.loads(raw)
    if datum_type is DatumType.BYTES:
        return bytes.fromhex(value)
    return value


def _histogram_to_row(row: HistogramRow) -> tuple[Any, ...]:
    estimators: list[Any] = []
    for state in (row.p50, row.p90, row.p99):
        estimators.extend(
            (
                state.quantile,
                json.dumps(list(state.marker_heights)),
                json.dumps(list(state.marker_positions)),
                json.dumps(list(state.desired_marker_positions)),
            )
        )
    return (
        row.timeseries_name,
        _encode_key(row.timeseries_key),
        row.start_time,
        row.timestamp,
        row.datum_type.value,
        json.dumps(list(row.bins)),
        json.dumps(list(row.counts)),
        json.dumps(row.min),
        json.dumps(row.max),
        json.dumps(row.sum_of_samples),
        row.squared_mean,
        *estimators,
    )


def _histogram_from_row(columns: Sequence[Any]) -> HistogramRow:
    states = []
    for offset in range(12, 12 + 4 * len(QUANTILE_COLUMNS), 4):
        quantile, heights, positions, desired = columns[offset : offset + 4]
        states.append(
            EstimatorState(
                quantile=quantile,
                marker_heights=tuple(json.loads(heights)),
                marker_positions=tuple(json.loads(positions)),
                desired_marker_positions=tuple(json.loads(desired)),
            )
        )
    p50, p90, p99 = states
    return HistogramRow(
        timeseries_name=columns[1],
        timeseries_key=int(columns[2], 16),
        start_time=columns[3],
        timestamp=columns[4],
        datum_type=DatumType(columns[5]),
        bins=tuple(json.loads(columns[6])),
        counts=tuple(json.loads(columns[7])),
        min=json.loads(columns[8]),
        max=json.loads(columns[9]),
        sum_of_samples=json.loads(columns[10]),
        squared_mean=columns[11],
        p50=p50,
        p90=p90,
        p99=p99,
    )


def _measurement_to_row(row: MeasurementRow) -> tuple[Any, ...]:
    return (
        row.timeseries_name,
        _encode_key(row.timeseries_key),
        row.start_time,
        row.timestamp,
        row.datum_type.value,
        _encode_datum(row.datum_type, row.datum),
    )


def _measurement_from_row(columns: Sequence[Any]) -> MeasurementRow:
    datum_type = DatumType(columns[5])
    return MeasurementRow(
        timeseries_name=columns[1],
        timeseries_key=int(columns[2], 16),
        start_time=columns[3],
        timestamp=columns[4],
        datum_type=datum_type,
        datum=_decode_datum(datum_type, columns[6]),
    )


def _insert(row: Row) -> tuple[str, tuple[Any, ...]]:
    if isinstance(row, HistogramRow):
        return _INSERT_HISTOGRAM, _histogram_to_row(row)
    return _INSERT_MEASUREMENT, _measurement_to_row(row)


# @tra: Adapter.SQLiteStorage.ImplementsMeasurementStoragePort
# @tra: Adapter.SQLiteStorage.PersistsAcrossInstances
class SQLiteMeasurementStorage(SQLiteStorageBase):
    """SQLite implementation of MeasurementStoragePort.

    Histogram rows and scalar/cumulative rows live in separate tables,
    mirroring the per-datum-type tables of the production store. Array
    columns are stored as JSON text; timeseries keys as fixed-width hex.
    Uses WAL mode for concurrent access to file databases.
    """

    def __init__(self, db_path: str) -> None:
        super().__init__(db_path, _SCHEMA)

    async def write(self, row: Row) -> None:
        """Append a row to storage."""
        query, params = _insert(row)
        async with self.async_connection() as db:
            await db.execute(query, params)
            await db.commit()

    async def _fetch(self, db: aiosqlite.Connection, since: int) -> list[Row]:
        rows: list[Row] = []
        async with db.execute(_SELECT_HISTOGRAMS_SINCE, (since,)) as cursor:
            async for columns in cursor:
                rows.append(_histogram_from_row(columns))
        async with db.execute(_SELECT_MEASUREMENTS_SINCE, (since,)) as cursor:
            async for columns in cursor:
                rows.append(_measurement_from_row(columns))
        return sorted(rows, key=storage_order)

    async def read(self, since: int = 0) -> AsyncIterable[Row]:
        """Read rows with timestamp > since, in storage order."""
        async with self.async_connection() as db:
            rows = await self._fetch(db, since)
        for row in rows:
            yield row

    async def count(self) -> int:
        """Return total number of rows in storage."""
        async with self.async_connection() as db:
            async with db.execute(_COUNT) as cursor:
                result = await cursor.fetchone()
                return result[0] if result else 0

    async def delete_before(self, timestamp: int) -> int:
        """Expire rows with timestamp < given value (retention sweep)."""
        deleted = 0
        async with self.async_connection() as db:
            for query in _DELETE_BEFORE:
                cursor = await db.execute(query, (timestamp,))
                deleted += cursor.rowcount
            await db.commit()
        return deleted

    async def clear(self) -> None:
        """Clear all rows from storage."""
        async with self.async_connection() as db:
            for query in _CLEAR:
                await db.execute(query)
            await db.commit()

    # --- Sync methods using standard sqlite3 module ---

    def write_sync(self, row: Row) -> None:
        """Synchronous write for non-async contexts."""
        query, params = _insert(row)
        with self.sync_connection() as conn:
            conn.execute(query, params)
            conn.commit()

    def _fetch_sync(self, conn: sqlite3.Connection, since: int) -> list[Row]:
        rows: list[Row] = [
            _histogram_from_row(columns)
            for columns in conn.execute(_SELECT_HISTOGRAMS_SINCE, (since,))
        ]
        rows.extend(
            _measurement_from_row(columns)
            for columns in conn.execute(_SELECT_MEASUREMENTS_SINCE, (since,))
        )
        return sorted(rows, key=storage_order)

    def read_sync(self, since: int = 0) -> list[Row]:
        """Synchronous read for non-async contexts."""
        with self.sync_connection() as conn:
            return self._fetch_sync(conn, since)

    def clear_sync(self) -> None:
        """Synchronous clear for non-async contexts."""
        with self.sync_connection() as conn:
            for query in _CLEAR:
                conn.execute(query)
            conn.commit()
