"""Versioned metric schemas and streaming histogram aggregation.

Example:
    ```python
    from telemetrypy import Collector, InMemoryMeasurementStorage, SchemaRegistry
    from telemetrypy import load_schema_file

    registry = SchemaRegistry()
    registry.register(load_schema_file("schema/switch.toml"))
    collector = Collector(registry, InMemoryMeasurementStorage())
    collector.record("switch", "latency", 1, {"port": 3}, 12.5)
    ```
"""

from telemetrypy.adapters.loaders import load_schema, load_schema_dir, load_schema_file
from telemetrypy.adapters.storage import (
    InMemoryMeasurementStorage,
    SQLiteMeasurementStorage,
)
from telemetrypy.core.collector import Collector
from telemetrypy.core.config import (
    AggregatorConfig,
    CollectorConfig,
    OutOfRangePolicy,
    OverflowPolicy,
)
from telemetrypy.core.errors import (
    AggregationError,
    SchemaError,
    TelemetryError,
    ValidationError,
)
from telemetrypy.core.histogram import HistogramAggregator
from telemetrypy.core.models import (
    EstimatorState,
    FieldSpec,
    HistogramRow,
    MeasurementRow,
    MetricSpec,
    Schema,
    TargetSpec,
    TargetVersion,
    VersionEntry,
)
from telemetrypy.core.ports import MeasurementStoragePort
from telemetrypy.core.quantile import P2Estimator
from telemetrypy.core.registry import SchemaRegistry
from telemetrypy.core.timeseries import timeseries_key, timeseries_name
from telemetrypy.core.types import DatumKind, DatumType, FieldType, NumericType

__all__ = [
    "AggregationError",
    "AggregatorConfig",
    "Collector",
    "CollectorConfig",
    "DatumKind",
    "DatumType",
    "EstimatorState",
    "FieldSpec",
    "FieldType",
    "HistogramAggregator",
    "HistogramRow",
    "InMemoryMeasurementStorage",
    "MeasurementRow",
    "MeasurementStoragePort",
    "MetricSpec",
    "NumericType",
    "OutOfRangePolicy",
    "OverflowPolicy",
    "P2Estimator",
    "SQLiteMeasurementStorage",
    "Schema",
    "SchemaError",
    "SchemaRegistry",
    "TargetSpec",
    "TargetVersion",
    "TelemetryError",
    "ValidationError",
    "VersionEntry",
    "load_schema",
    "load_schema_dir",
    "load_schema_file",
    "timeseries_key",
    "timeseries_name",
]
