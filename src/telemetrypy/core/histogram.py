"""Histogram aggregation with bucket counts, moments and P² quantiles."""

import logging
import math
from bisect import bisect_right
from collections import Counter
from collections.abc import Sequence

from telemetrypy.core.bins import check_bins
from telemetrypy.core.config import (
    DEFAULT_QUANTILES,
    AggregatorConfig,
    OutOfRangePolicy,
    OverflowPolicy,
)
from telemetrypy.core.errors import OutOfRangeError, SumOverflowError, TypeMismatchError
from telemetrypy.core.models import HistogramRow
from telemetrypy.core.quantile import P2Estimator
from telemetrypy.core.types import DatumKind, DatumType, NumericType

logger = logging.getLogger(__name__)

OUT_OF_RANGE = "out_of_range"
OVERFLOW = "overflow"


class HistogramAggregator:
    """Cumulative histogram of one timeseries.

    Bucket ``i`` covers ``[bins[i], bins[i + 1])``; the last bucket is
    closed on the right. Alongside the counts the aggregator keeps the
    min, max, a saturating sum in a wider accumulator, Welford's running
    mean and sum of squared deviations, and one P² estimator per tracked
    quantile.

    Not thread-safe: each aggregator must be owned by a single writer.
    """

    def __init__(
        self,
        bins: Sequence[float],
        datum_type: DatumType = DatumType.HISTOGRAM_F64,
        quantiles: Sequence[float] = DEFAULT_QUANTILES,
        config: AggregatorConfig | None = None,
    ) -> None:
        if datum_type.kind is not DatumKind.HISTOGRAM:
            raise ValueError(f"{datum_type.value} is not a histogram datum type")
        numeric = datum_type.numeric_type
        assert numeric is not None
        edges = check_bins(list(bins))
        for edge in edges:
            if not numeric.check(edge):
                raise TypeMismatchError("bins", numeric.value, edge)
        if len(quantiles) != 3:
            raise ValueError("exactly three quantiles are tracked (p50, p90, p99)")

        self.datum_type = datum_type
        self.numeric_type: NumericType = numeric
        self.config = config or AggregatorConfig()
        self._bins = edges
        self._counts = [0] * (len(edges) - 1)
        self._min: float | None = None
        self._max: float | None = None
        self._sum: float = 0 if numeric.is_integer else 0.0
        self._n = 0
        self._mean = 0.0
        self._m2 = 0.0
        self.estimators = tuple(P2Estimator(q) for q in quantiles)
        self.conditions: Counter[str] = Counter()

    # --- observation ---

    def observe(self, x: float) -> None:
        """Fold one sample into the histogram.

        Raises:
            TypeMismatchError: The sample does not fit the numeric type.
            OutOfRangeError: Out-of-range sample under the RAISE policy.
            SumOverflowError: Sum overflow under the RAISE policy.
        """
        if not self.numeric_type.check(x) or (
            isinstance(x, float) and not math.isfinite(x)
        ):
            raise TypeMismatchError("sample", self.numeric_type.value, x)

        index = self._bucket(x)
        if index is None:
            return
        total = self._accumulate(x)
        if not self._bins[0] <= x <= self._bins[-1]:
            self.conditions[OUT_OF_RANGE] += 1

        self._counts[index] += 1
        if self._min is None or x < self._min:
            self._min = x
        if self._max is None or x > self._max:
            self._max = x
        self._sum = total
        self._n += 1
        delta = x - self._mean
        self._mean += delta / self._n
        self._m2 += delta * (x - self._mean)
        for estimator in self.estimators:
            estimator.observe(x)

    def _bucket(self, x: float) -> int | None:
        """Bucket index for x, or None if the sample is dropped.

        A clamped sample is counted as out of range by ``observe`` once
        the sum has accepted it.
        """
        low, high = self._bins[0], self._bins[-1]
        if low <= x <= high:
            return min(bisect_right(self._bins, x) - 1, len(self._counts) - 1)

        policy = self.config.out_of_range
        if policy is not OutOfRangePolicy.CLAMP:
            self.conditions[OUT_OF_RANGE] += 1
        logger.debug(
            "sample %r outside histogram range [%s, %s], policy %s",
            x,
            low,
            high,
            policy.value,
        )
        if policy is OutOfRangePolicy.RAISE:
            raise OutOfRangeError(x, low, high)
        if policy is OutOfRangePolicy.DROP:
            return None
        return 0 if x < low else len(self._counts) - 1

    def _accumulate(self, x: float) -> float:
        """Return the saturated new sum, recording any overflow."""
        low, high = self.numeric_type.sum_bounds
        total = self._sum + x
        if low <= total <= high:
            return total

        bound = high if total > high else low
        if self.config.overflow is OverflowPolicy.RAISE:
            raise SumOverflowError(x, bound)
        self.conditions[OVERFLOW] += 1
        if self.conditions[OVERFLOW] == 1:
            logger.warning("sum_of_samples saturated at %r", bound)
        return bound

    # --- read-only views ---

    @property
    def bins(self) -> tuple[float, ...]:
        return self._bins

    @property
    def counts(self) -> tuple[int, ...]:
        return tuple(self._counts)

    @property
    def n_samples(self) -> int:
        return self._n

    @property
    def min(self) -> float | None:
        return self._min

    @property
    def max(self) -> float | None:
        return self._max

    @property
    def sum_of_samples(self) -> float:
        return self._sum

    @property
    def mean(self) -> float | None:
        return self._mean if self._n else None

    @property
    def squared_mean(self) -> float:
        """Sum of squared deviations from the mean."""
        return self._m2

    @property
    def variance(self) -> float | None:
        """Population variance, None before any sample."""
        return self._m2 / self._n if self._n else None

    @property
    def std_dev(self) -> float | None:
        variance = self.variance
        return math.sqrt(variance) if variance is not None else None

    @property
    def out_of_range_count(self) -> int:
        return self.conditions[OUT_OF_RANGE]

    @property
    def overflow_count(self) -> int:
        return self.conditions[OVERFLOW]

    def quantile(self, q: float) -> float | None:
        """Estimate of a tracked quantile, None before five samples."""
        for estimator in self.estimators:
            if estimator.quantile == q:
                return estimator.estimate()
        raise ValueError(f"quantile {q} is not tracked")

    # --- row conversion ---

    def to_row(
        self,
        timeseries_name: str,
        timeseries_key: int,
        start_time: int,
        timestamp: int,
    ) -> HistogramRow:
        """Snapshot the cumulative state since ``start_time``.

        Does not reset anything, so it can be called at every flush.
        """
        p50, p90, p99 = (estimator.state() for estimator in self.estimators)
        return HistogramRow(
            timeseries_name=timeseries_name,
            timeseries_key=timeseries_key,
            start_time=start_time,
            timestamp=timestamp,
            datum_type=self.datum_type,
            bins=self._bins,
            counts=tuple(self._counts),
            min=self._min,
            max=self._max,
            sum_of_samples=self._sum,
            squared_mean=self._m2,
            p50=p50,
            p90=p90,
            p99=p99,
        )

    @classmethod
    def from_row(
        cls, row: HistogramRow, config: AggregatorConfig | None = None
    ) -> "HistogramAggregator":
        """Resume aggregation from a stored row.

        The running mean is rebuilt as ``sum / n``, which is exact unless
        the sum saturated.
        """
        quantiles = (row.p50.quantile, row.p90.quantile, row.p99.quantile)
        aggregator = cls(row.bins, row.datum_type, quantiles, config)
        if len(row.counts) != len(aggregator._counts):
            raise ValueError("row counts do not match its bins")
        aggregator._counts = list(row.counts)
        aggregator._min = row.min
        aggregator._max = row.max
        aggregator._sum = row.sum_of_samples
        aggregator._n = sum(row.counts)
        aggregator._mean = row.sum_of_samples / aggregator._n if aggregator._n else 0.0
        aggregator._m2 = row.squared_mean
        aggregator.estimators = tuple(
            P2Estimator.from_state(state) for state in (row.p50, row.p90, row.p99)
        )
        return aggregator
