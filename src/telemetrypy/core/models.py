"""Core domain models for schemas and measurement rows."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from telemetrypy.core.types import DatumType, FieldType

QUANTILE_COLUMNS = ("p50", "p90", "p99")


@dataclass(frozen=True)
class FieldSpec:
    """A dimensional field declared in a schema's field dictionary.

    Attributes:
        name: Field name, unique within a target and its metrics.
        type: The field's value type.
        description: Human-readable description.
    """

    name: str
    type: FieldType
    description: str = ""


@dataclass(frozen=True)
class VersionEntry:
    """Fields a metric introduces at one version.

    Attributes:
        added_in: Target version at which these fields appear.
        fields: Names of the fields introduced, in declaration order.
    """

    added_in: int
    fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class MetricSpec:
    """A named, typed measurement kind of a target.

    Attributes:
        name: Metric name.
        datum_type: Type of each measurement.
        units: Unit of measure (e.g. "degrees_celsius").
        description: Human-readable description.
        versions: Append-only version log; field sets are additive.
    """

    name: str
    datum_type: DatumType
    units: str = ""
    description: str = ""
    versions: tuple[VersionEntry, ...] = ()

    @property
    def added_in(self) -> int | None:
        """Version at which the metric first exists."""
        return self.versions[0].added_in if self.versions else None

    def fields_as_of(self, version: int) -> tuple[str, ...]:
        """Union of field introductions with ``added_in <= version``."""
        names: list[str] = []
        for entry in self.versions:
            if entry.added_in > version:
                break
            names.extend(f for f in entry.fields if f not in names)
        return tuple(names)

    def header(self) -> tuple[str, DatumType, str, str]:
        """Version-independent part of the metric, fixed once published."""
        return (self.name, self.datum_type, self.units, self.description)


@dataclass(frozen=True)
class TargetVersion:
    """The complete field list of a target as of one version."""

    version: int
    fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class TargetSpec:
    """The entity being measured.

    Attributes:
        name: Target name.
        description: Human-readable description.
        authz_scope: Opaque authorization-scope tag.
        versions: Version log; each version restates its full field list.
    """

    name: str
    description: str = ""
    authz_scope: str = ""
    versions: tuple[TargetVersion, ...] = ()

    @property
    def latest_version(self) -> int:
        return self.versions[-1].version if self.versions else 0

    def version(self, number: int) -> TargetVersion | None:
        for entry in self.versions:
            if entry.version == number:
                return entry
        return None


@dataclass(frozen=True)
class Schema:
    """A target, its metrics and the field dictionary they draw from.

    The field dictionary is copied into a read-only mapping, so a
    published schema cannot change through the caller's dict.
    """

    target: TargetSpec
    metrics: tuple[MetricSpec, ...] = ()
    fields: Mapping[str, FieldSpec] = field(default_factory=dict)
    format_version: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def metric(self, name: str) -> MetricSpec | None:
        for metric in self.metrics:
            if metric.name == name:
                return metric
        return None


@dataclass(frozen=True)
class EstimatorState:
    """Flattened P² marker state for one tracked quantile.

    Before the estimator has seen five samples, ``marker_heights`` holds
    the buffered samples in arrival order and a position of 0 marks an
    unfilled slot.
    """

    quantile: float
    marker_heights: tuple[float, ...]
    marker_positions: tuple[int, ...]
    desired_marker_positions: tuple[float, ...]


@dataclass(frozen=True)
class HistogramRow:
    """Cumulative histogram snapshot for one timeseries.

    Attributes:
        timeseries_name: "target:metric".
        timeseries_key: Stable 64-bit key of the field values.
        start_time: Start of the cumulative window, ns since the epoch.
        timestamp: Time of the snapshot, ns since the epoch.
        datum_type: Histogram datum type, fixing the bin element type.
        bins: Ascending bucket edges.
        counts: One count per bucket, ``len(bins) - 1`` entries.
        min: Smallest sample, None before any sample.
        max: Largest sample, None before any sample.
        sum_of_samples: Saturating sum in the wider accumulator type.
        squared_mean: Sum of squared deviations from the mean (Welford M2).
        p50: Median estimator state.
        p90: 90th percentile estimator state.
        p99: 99th percentile estimator state.
    """

    timeseries_name: str
    timeseries_key: int
    start_time: int
    timestamp: int
    datum_type: DatumType
    bins: tuple[float, ...]
    counts: tuple[int, ...]
    min: float | None
    max: float | None
    sum_of_samples: float
    squared_mean: float
    p50: EstimatorState
    p90: EstimatorState
    p99: EstimatorState

    @property
    def n_samples(self) -> int:
        return sum(self.counts)


@dataclass(frozen=True)
class MeasurementRow:
    """A scalar or cumulative measurement.

    Attributes:
        timeseries_name: "target:metric".
        timeseries_key: Stable 64-bit key of the field values.
        datum_type: Scalar or cumulative datum type.
        timestamp: Time of the measurement, ns since the epoch.
        datum: The measured value.
        start_time: Start of the cumulative window; None for scalars.
    """

    timeseries_name: str
    timeseries_key: int
    datum_type: DatumType
    timestamp: int
    datum: bool | int | float | str | bytes
    start_time: int | None = None
