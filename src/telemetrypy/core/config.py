"""Configuration for histogram aggregation and collection."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from telemetrypy.core.bins import DEFAULT_HISTOGRAM_BINS

DEFAULT_QUANTILES = (0.5, 0.9, 0.99)


class OutOfRangePolicy(Enum):
    """What to do with a sample outside every histogram bucket."""

    CLAMP = "clamp"
    DROP = "drop"
    RAISE = "raise"


class OverflowPolicy(Enum):
    """What to do when ``sum_of_samples`` leaves its accumulator range."""

    SATURATE = "saturate"
    RAISE = "raise"


@dataclass(frozen=True)
class AggregatorConfig:
    """Policies of a HistogramAggregator.

    Attributes:
        out_of_range: Clamp into the nearest edge bucket (default), drop
            the sample, or raise OutOfRangeError. Every policy counts the
            event.
        overflow: Saturate the sum and keep aggregating (default), or
            raise SumOverflowError.
    """

    out_of_range: OutOfRangePolicy = OutOfRangePolicy.CLAMP
    overflow: OverflowPolicy = OverflowPolicy.SATURATE

    def __post_init__(self) -> None:
        # Accept the policies' string values, e.g. from a config file.
        object.__setattr__(self, "out_of_range", OutOfRangePolicy(self.out_of_range))
        object.__setattr__(self, "overflow", OverflowPolicy(self.overflow))


@dataclass(frozen=True)
class CollectorConfig:
    """Settings of a Collector.

    Attributes:
        aggregator: Policies for every histogram aggregator.
        quantiles: The three tracked quantiles (p50, p90, p99 columns).
        default_bins: Bucket edges for histograms without an override.
        bins: Per-timeseries bucket edges, keyed by "target:metric".
    """

    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    quantiles: tuple[float, float, float] = DEFAULT_QUANTILES
    default_bins: tuple[float, ...] = DEFAULT_HISTOGRAM_BINS
    bins: Mapping[str, tuple[float, ...]] = field(default_factory=dict)

    def bins_for(self, timeseries_name: str) -> tuple[float, ...]:
        return tuple(self.bins.get(timeseries_name, self.default_bins))
