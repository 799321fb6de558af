"""Exception taxonomy for schema, validation and aggregation failures.

Every error carries the structured context it was raised with (target,
metric, field, version) so callers can log or count rejections without
parsing messages.
"""


class TelemetryError(Exception):
    """Base class for all telemetrypy errors."""


# --- Schema errors (registration time) ---


class SchemaError(TelemetryError):
    """A schema definition violates a registry invariant."""


class UnknownTypeError(SchemaError):
    """A field or datum type name is outside the closed type set."""

    def __init__(self, type_name: str, kind: str = "field") -> None:
        self.type_name = type_name
        self.kind = kind
        super().__init__(f"unknown {kind} type: {type_name!r}")


class UnknownFieldError(SchemaError):
    """A version references a field missing from the field dictionary."""

    def __init__(self, target: str, field: str, metric: str | None = None) -> None:
        self.target = target
        self.metric = metric
        self.field = field
        where = f"{target}:{metric}" if metric else target
        super().__init__(f"{where} references undeclared field {field!r}")


class DuplicateFieldError(SchemaError):
    """A field name appears more than once in a resolved field set."""

    def __init__(
        self, target: str, field: str, version: int, metric: str | None = None
    ) -> None:
        self.target = target
        self.metric = metric
        self.field = field
        self.version = version
        where = f"{target}:{metric}" if metric else target
        super().__init__(
            f"{where} declares field {field!r} more than once as of version {version}"
        )


class DuplicateMetricError(SchemaError):
    """Two metric blocks of one target share a name."""

    def __init__(self, target: str, metric: str) -> None:
        self.target = target
        self.metric = metric
        super().__init__(f"target {target!r} declares metric {metric!r} twice")


class NonMonotonicVersionError(SchemaError):
    """Version numbers are not strictly increasing from 1."""

    def __init__(
        self,
        target: str,
        versions: list[int],
        metric: str | None = None,
    ) -> None:
        self.target = target
        self.metric = metric
        self.versions = versions
        where = f"{target}:{metric}" if metric else target
        super().__init__(
            f"{where} versions must strictly increase from 1, got {versions}"
        )


class DuplicateVersionError(SchemaError):
    """A published version number was re-registered with different contents."""

    def __init__(
        self,
        target: str,
        version: int,
        metric: str | None = None,
        detail: str = "",
    ) -> None:
        self.target = target
        self.metric = metric
        self.version = version
        self.detail = detail
        where = f"{target}:{metric}" if metric else target
        msg = f"{where} version {version} is already published with different contents"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class VersionRetractedError(SchemaError):
    """A new document drops a version or metric that is already published."""

    def __init__(
        self, target: str, version: int | None = None, metric: str | None = None
    ) -> None:
        self.target = target
        self.metric = metric
        self.version = version
        where = f"{target}:{metric}" if metric else target
        what = f"version {version}" if version is not None else "published metric"
        super().__init__(f"{where} would retract {what}")


class SchemaDocumentError(SchemaError):
    """A schema definition document is structurally malformed."""

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


# --- Validation errors (per observation) ---


class ValidationError(TelemetryError):
    """An observation does not match its timeseries schema."""


class UnknownTimeseriesError(ValidationError):
    """The target or metric has never been registered."""

    def __init__(self, target: str, metric: str | None = None) -> None:
        self.target = target
        self.metric = metric
        name = f"{target}:{metric}" if metric else target
        super().__init__(f"unknown timeseries {name!r}")


class UnknownVersionError(ValidationError, SchemaError):
    """A version is not defined for the requested target or metric."""

    def __init__(self, target: str, version: int, metric: str | None = None) -> None:
        self.target = target
        self.metric = metric
        self.version = version
        where = f"{target}:{metric}" if metric else target
        super().__init__(f"{where} has no version {version}")


class MissingFieldError(ValidationError):
    """A required field is absent from the observation."""

    def __init__(self, timeseries_name: str, fields: list[str]) -> None:
        self.timeseries_name = timeseries_name
        self.fields = fields
        super().__init__(f"{timeseries_name} is missing fields {fields}")


class UnexpectedFieldError(ValidationError):
    """The observation carries a field the schema does not declare."""

    def __init__(self, timeseries_name: str, fields: list[str]) -> None:
        self.timeseries_name = timeseries_name
        self.fields = fields
        super().__init__(f"{timeseries_name} has unexpected fields {fields}")


class TypeMismatchError(ValidationError):
    """A value's runtime type does not match its declared type."""

    def __init__(self, name: str, expected: str, value: object) -> None:
        self.name = name
        self.expected = expected
        self.value = value
        super().__init__(
            f"{name!r} expects {expected}, got {type(value).__name__} {value!r}"
        )


# --- Aggregation errors ---


class AggregationError(TelemetryError):
    """A sample could not be folded into a histogram as-is."""


class OutOfRangeError(AggregationError):
    """A sample falls outside every histogram bucket."""

    def __init__(self, value: float, low: float, high: float) -> None:
        self.value = value
        self.low = low
        self.high = high
        super().__init__(f"sample {value!r} outside histogram range [{low}, {high}]")


class SumOverflowError(AggregationError):
    """The cumulative sum left the accumulator's range."""

    def __init__(self, value: float, bound: float) -> None:
        self.value = value
        self.bound = bound
        super().__init__(f"sum_of_samples overflowed at {bound!r} adding {value!r}")
