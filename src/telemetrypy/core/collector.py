"""Collector: validation, keying, aggregation and the write path.

A sample for a field-tagged metric is validated against the registry,
keyed by its timeseries key, folded into that key's histogram aggregator
(histogram datums) or buffered as a row (scalar and cumulative datums),
and written to the measurement store on flush.

Each timeseries key owns its aggregator exclusively: the aggregator is
only touched while holding that key's lock, so distinct keys update in
parallel and no aggregator ever sees two writers.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

from telemetrypy.core.bins import power_of_two_bins
from telemetrypy.core.config import CollectorConfig
from telemetrypy.core.errors import TypeMismatchError
from telemetrypy.core.histogram import HistogramAggregator
from telemetrypy.core.models import MeasurementRow, MetricSpec
from telemetrypy.core.ports import MeasurementStoragePort, Row
from telemetrypy.core.registry import SchemaRegistry
from telemetrypy.core.timeseries import timeseries_key, timeseries_name
from telemetrypy.core.types import DatumKind

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    """An aggregator and the lock that grants exclusive access to it."""

    timeseries_name: str
    aggregator: HistogramAggregator
    start_time: int
    lock: threading.Lock = field(default_factory=threading.Lock)


class AggregatorTable:
    """Map from timeseries key to its exclusively owned aggregator.

    The table lock only guards slot creation; observations take the
    per-key lock.
    """

    def __init__(self) -> None:
        self._slots: dict[int, _Slot] = {}
        self._lock = threading.Lock()

    def slot(
        self,
        key: int,
        name: str,
        start_time: int,
        factory: Callable[[], HistogramAggregator],
    ) -> _Slot:
        """Return the slot for key, creating its aggregator on first use."""
        existing = self._slots.get(key)
        if existing is not None:
            return existing
        with self._lock:
            existing = self._slots.get(key)
            if existing is None:
                existing = _Slot(name, factory(), start_time)
                self._slots[key] = existing
            return existing

    def get(self, key: int) -> HistogramAggregator | None:
        slot = self._slots.get(key)
        return slot.aggregator if slot is not None else None

    def items(self) -> Iterator[tuple[int, _Slot]]:
        with self._lock:
            snapshot = list(self._slots.items())
        yield from snapshot

    def __len__(self) -> int:
        return len(self._slots)


def _histogram_bins(config: CollectorConfig, name: str, spec: MetricSpec) -> tuple:
    """Bins for a histogram; integer histograms default to powers of two."""
    numeric = spec.datum_type.numeric_type
    assert numeric is not None
    if name in config.bins or not numeric.is_integer:
        return config.bins_for(name)
    low, high = numeric.bounds
    return tuple(edge for edge in power_of_two_bins(63) if low <= edge <= high)


class Collector:
    """Routes validated samples to aggregators and the measurement store.

    Example:
        ```python
        collector = Collector(registry, InMemoryMeasurementStorage())
        collector.record("switch", "latency", 1, {"port": 3}, 12.5)
        await collector.flush()
        ```
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        storage: MeasurementStoragePort,
        config: CollectorConfig | None = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        """Initialize the collector.

        Args:
            registry: Schema registry used to validate every sample.
            storage: Measurement store rows are flushed to.
            config: Bins, quantiles and aggregation policies.
            clock: Source of nanosecond timestamps when none is given.
        """
        self.registry = registry
        self.storage = storage
        self.config = config or CollectorConfig()
        self._clock = clock
        self._table = AggregatorTable()
        self._pending: list[MeasurementRow] = []
        self._pending_lock = threading.Lock()
        self._start_times: dict[int, int] = {}

    def record(
        self,
        target: str,
        metric: str,
        version: int,
        fields: Mapping[str, object],
        value: object,
        timestamp: int | None = None,
    ) -> int:
        """Validate and record one sample.

        Args:
            target: Target name.
            metric: Metric name.
            version: Schema version the sample was produced against.
            fields: Field name to value mapping.
            value: The measurement.
            timestamp: Nanoseconds since the epoch; defaults to the clock.

        Returns:
            The sample's timeseries key.

        Raises:
            ValidationError: The fields or value do not match the schema.
            AggregationError: The histogram rejected the sample.
        """
        self.registry.validate_observation(target, metric, version, fields)
        spec = self.registry.metric(target, metric)
        name = timeseries_name(target, metric)
        key = timeseries_key(target, metric, fields)
        now = self._clock() if timestamp is None else timestamp
        datum_type = spec.datum_type

        if datum_type.kind is DatumKind.HISTOGRAM:
            slot = self._table.slot(
                key,
                name,
                now,
                lambda: HistogramAggregator(
                    _histogram_bins(self.config, name, spec),
                    datum_type,
                    self.config.quantiles,
                    self.config.aggregator,
                ),
            )
            with slot.lock:
                slot.aggregator.observe(value)  # type: ignore[arg-type]
            return key

        if not datum_type.check(value):
            raise TypeMismatchError(name, datum_type.value, value)
        with self._pending_lock:
            start_time = None
            if datum_type.kind is DatumKind.CUMULATIVE:
                start_time = self._start_times.setdefault(key, now)
            self._pending.append(
                MeasurementRow(
                    timeseries_name=name,
                    timeseries_key=key,
                    datum_type=datum_type,
                    timestamp=now,
                    datum=value,  # type: ignore[arg-type]
                    start_time=start_time,
                )
            )
        return key

    def aggregator(self, key: int) -> HistogramAggregator | None:
        """The aggregator owned by a timeseries key, if any."""
        return self._table.get(key)

    def snapshot(self, timestamp: int | None = None) -> list[Row]:
        """Cumulative histogram rows for every key, without writing them.

        A histogram whose first sample was rejected has no min or max yet
        and yields no row.
        """
        now = self._clock() if timestamp is None else timestamp
        rows: list[Row] = []
        for key, slot in self._table.items():
            with slot.lock:
                if not slot.aggregator.n_samples:
                    continue
                rows.append(
                    slot.aggregator.to_row(
                        slot.timeseries_name, key, slot.start_time, now
                    )
                )
        return rows

    async def flush(self, timestamp: int | None = None) -> int:
        """Write buffered rows and histogram snapshots to storage.

        Rows that fail to write stay buffered for the next flush and the
        storage error propagates.

        Returns:
            Number of rows written.
        """
        with self._pending_lock:
            pending, self._pending = self._pending, []

        written = 0
        for index, row in enumerate(pending):
            try:
                await self.storage.write(row)
            except Exception:
                with self._pending_lock:
                    self._pending[:0] = pending[index:]
                raise
            written += 1

        for row in self.snapshot(timestamp):
            await self.storage.write(row)
            written += 1

        logger.debug("flushed %d rows", written, extra={"rows": written})
        return written
