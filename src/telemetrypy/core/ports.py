"""Port interfaces for measurement storage adapters.

These protocols define the contracts that storage adapters must implement.
The core depends only on these interfaces, not concrete implementations.
"""

from collections.abc import AsyncIterable
from typing import Protocol, runtime_checkable

from telemetrypy.core.models import HistogramRow, MeasurementRow

Row = HistogramRow | MeasurementRow


@runtime_checkable
class MeasurementStoragePort(Protocol):
    """Port for the append-only measurement store.

    Rows are immutable once written; adapters only append them and may
    expire them after a retention window.
    Examples: InMemoryMeasurementStorage, SQLiteMeasurementStorage.
    """

    async def write(self, row: Row) -> None:
        """Append a row to storage."""
        ...

    def read(self, since: int = 0) -> AsyncIterable[Row]:
        """Read rows written with timestamp > since.

        Args:
            since: Nanoseconds since the epoch. Default 0 returns all rows.

        Returns:
            Async iterable of rows ordered by (timeseries_name,
            timeseries_key, start_time, timestamp).
        """
        ...


def storage_order(row: Row) -> tuple[str, int, int, int]:
    """Sort key matching the store's (name, key, start_time, timestamp) order."""
    return (
        row.timeseries_name,
        row.timeseries_key,
        row.start_time or 0,
        row.timestamp,
    )
