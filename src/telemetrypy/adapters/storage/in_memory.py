"""In-memory measurement storage adapter."""

from collections.abc import AsyncIterable

from telemetrypy.core.ports import Row, storage_order


class InMemoryMeasurementStorage:
    """In-memory implementation of MeasurementStoragePort.

    Stores rows in a list. Suitable for testing and low-volume
    applications where persistence is not required.
    """

    def __init__(self) -> None:
        self._rows: list[Row] = []

    async def write(self, row: Row) -> None:
        """Append a row to storage."""
        self._rows.append(row)

    async def read(self, since: int = 0) -> AsyncIterable[Row]:
        """Read rows with timestamp > since, in storage order."""
        filtered = [r for r in self._rows if r.timestamp > since]
        for row in sorted(filtered, key=storage_order):
            yield row

    async def count(self) -> int:
        return len(self._rows)

    async def delete_before(self, timestamp: int) -> int:
        """Expire rows with timestamp < given value."""
        kept = [r for r in self._rows if r.timestamp >= timestamp]
        deleted = len(self._rows) - len(kept)
        self._rows = kept
        return deleted

    async def clear(self) -> None:
        self._rows.clear()
