"""Versioned schema registry.

The registry holds one published Schema per target. Schemas evolve by
appending versions only: a published target version, metric version,
metric header or field definition can never be edited or retracted.

Registration is linearized by a writer lock and commits by swapping in
a new immutable snapshot, so readers never take a lock and always see a
consistent version table.
"""

import logging
import threading
from collections.abc import Mapping
from types import MappingProxyType

from telemetrypy.core.errors import (
    DuplicateFieldError,
    DuplicateMetricError,
    DuplicateVersionError,
    MissingFieldError,
    NonMonotonicVersionError,
    SchemaError,
    TypeMismatchError,
    UnexpectedFieldError,
    UnknownFieldError,
    UnknownTimeseriesError,
    UnknownVersionError,
    VersionRetractedError,
)
from telemetrypy.core.models import FieldSpec, MetricSpec, Schema
from telemetrypy.core.timeseries import timeseries_name

logger = logging.getLogger(__name__)


def _check_field_list(
    schema: Schema,
    names: tuple[str, ...],
    version: int,
    metric: str | None = None,
) -> None:
    """Check a field list resolves in the dictionary without repeats."""
    target = schema.target.name
    seen: set[str] = set()
    for name in names:
        if name not in schema.fields:
            raise UnknownFieldError(target, name, metric=metric)
        if name in seen:
            raise DuplicateFieldError(target, name, version, metric=metric)
        seen.add(name)


def _validate_metric(schema: Schema, metric: MetricSpec) -> None:
    target = schema.target
    added = [entry.added_in for entry in metric.versions]
    if not added or added[0] < 1 or any(b <= a for a, b in zip(added, added[1:])):
        raise NonMonotonicVersionError(target.name, added, metric=metric.name)
    if added[-1] > target.latest_version:
        raise UnknownVersionError(target.name, added[-1], metric=metric.name)

    introduced: list[str] = []
    for entry in metric.versions:
        introduced.extend(entry.fields)
        _check_field_list(
            schema, tuple(introduced), entry.added_in, metric=metric.name
        )

    # Target and metric fields share one namespace in every version in use.
    for number in range(added[0], target.latest_version + 1):
        target_version = target.version(number)
        assert target_version is not None
        _check_field_list(
            schema,
            target_version.fields + metric.fields_as_of(number),
            number,
            metric=metric.name,
        )


def validate_schema(schema: Schema) -> None:
    """Check a schema's internal invariants.

    Raises:
        NonMonotonicVersionError: Versions do not strictly increase from 1.
        UnknownFieldError: A version references an undeclared field.
        DuplicateFieldError: A resolved field set repeats a name.
        DuplicateMetricError: Two metrics share a name.
        UnknownVersionError: A metric is added in a nonexistent target version.
    """
    target = schema.target
    numbers = [entry.version for entry in target.versions]
    if numbers != list(range(1, len(numbers) + 1)) or not numbers:
        raise NonMonotonicVersionError(target.name, numbers)
    for entry in target.versions:
        _check_field_list(schema, entry.fields, entry.version)

    names: set[str] = set()
    for metric in schema.metrics:
        if metric.name in names:
            raise DuplicateMetricError(target.name, metric.name)
        names.add(metric.name)
        _validate_metric(schema, metric)


def _used_fields(schema: Schema) -> set[str]:
    used = {name for entry in schema.target.versions for name in entry.fields}
    for metric in schema.metrics:
        used.update(name for entry in metric.versions for name in entry.fields)
    return used


def check_append_only(published: Schema, candidate: Schema) -> None:
    """Check that candidate only appends to the published schema.

    Raises:
        DuplicateVersionError: A published version's contents differ.
        VersionRetractedError: A published version or metric is missing.
    """
    name = published.target.name
    latest = published.target.latest_version

    for entry in published.target.versions:
        replacement = candidate.target.version(entry.version)
        if replacement is None:
            raise VersionRetractedError(name, version=entry.version)
        if replacement != entry:
            raise DuplicateVersionError(
                name, entry.version, detail="target field list changed"
            )
    if (published.target.description, published.target.authz_scope) != (
        candidate.target.description,
        candidate.target.authz_scope,
    ):
        raise DuplicateVersionError(name, latest, detail="target header changed")

    for metric in published.metrics:
        replacement = candidate.metric(metric.name)
        if replacement is None:
            raise VersionRetractedError(name, metric=metric.name)
        if replacement.header() != metric.header():
            raise DuplicateVersionError(
                name, metric.added_in or 0, metric.name, "metric header changed"
            )
        for index, entry in enumerate(metric.versions):
            if index >= len(replacement.versions):
                raise VersionRetractedError(name, entry.added_in, metric.name)
            if replacement.versions[index] != entry:
                raise DuplicateVersionError(name, entry.added_in, metric.name)
        for entry in replacement.versions[len(metric.versions) :]:
            if entry.added_in <= latest:
                raise DuplicateVersionError(
                    name,
                    entry.added_in,
                    metric.name,
                    "fields added to a published version",
                )

    for field_name in _used_fields(published):
        if candidate.fields.get(field_name) != published.fields[field_name]:
            raise DuplicateVersionError(
                name, latest, detail=f"field {field_name!r} redefined"
            )


class SchemaRegistry:
    """Registry of all known schema versions.

    Example:
        ```python
        registry = SchemaRegistry()
        registry.register(load_schema_file("hardware-component.toml"))
        registry.validate_observation(
            "hardware_component", "temperature", 1, field_values
        )
        ```
    """

    def __init__(self) -> None:
        self._schemas: Mapping[str, Schema] = MappingProxyType({})
        self._lock = threading.Lock()

    def register(self, schema: Schema) -> bool:
        """Validate and publish a schema.

        Re-registering identical content is a no-op. The registry is
        left untouched when any check fails.

        Args:
            schema: The complete schema document for one target.

        Returns:
            True if the registry changed, False for an identical schema.

        Raises:
            SchemaError: The schema is invalid or alters published versions.
        """
        name = schema.target.name
        try:
            validate_schema(schema)
            with self._lock:
                published = self._schemas.get(name)
                if published == schema:
                    logger.debug(
                        "schema already registered", extra={"target": name}
                    )
                    return False
                if published is not None:
                    check_append_only(published, schema)
                updated = dict(self._schemas)
                updated[name] = schema
                self._schemas = MappingProxyType(updated)
        except SchemaError as exc:
            logger.warning(
                "rejected schema registration: %s", exc, extra={"target": name}
            )
            raise
        logger.info(
            "registered schema",
            extra={"target": name, "version": schema.target.latest_version},
        )
        return True

    def schema(self, target: str) -> Schema | None:
        return self._schemas.get(target)

    def targets(self) -> list[str]:
        return sorted(self._schemas)

    def latest_version(self, target: str) -> int:
        schema = self._schemas.get(target)
        if schema is None:
            raise UnknownTimeseriesError(target)
        return schema.target.latest_version

    def timeseries_names(self) -> list[str]:
        """Names of every registered timeseries, sorted."""
        return sorted(
            timeseries_name(schema.target.name, metric.name)
            for schema in self._schemas.values()
            for metric in schema.metrics
        )

    def metric(self, target: str, metric: str) -> MetricSpec:
        """Look up a metric, raising UnknownTimeseriesError if absent."""
        schema = self._schemas.get(target)
        spec = schema.metric(metric) if schema is not None else None
        if spec is None:
            raise UnknownTimeseriesError(target, metric)
        return spec

    def resolve_fields(
        self, target: str, metric: str, as_of_version: int
    ) -> tuple[FieldSpec, ...]:
        """Return the fields of a timeseries as of a version.

        The target's field list for exactly ``as_of_version`` comes first,
        followed by the metric's fields introduced at or before it.

        Raises:
            UnknownTimeseriesError: Unknown target or metric.
            UnknownVersionError: The version predates the metric or does
                not exist for the target.
        """
        schema = self._schemas.get(target)
        spec = schema.metric(metric) if schema is not None else None
        if schema is None or spec is None:
            raise UnknownTimeseriesError(target, metric)
        target_version = schema.target.version(as_of_version)
        if target_version is None or as_of_version < (spec.added_in or 0):
            raise UnknownVersionError(target, as_of_version, metric=metric)
        names = target_version.fields + spec.fields_as_of(as_of_version)
        return tuple(schema.fields[name] for name in names)

    def validate_observation(
        self,
        target: str,
        metric: str,
        version: int,
        field_values: Mapping[str, object],
    ) -> tuple[FieldSpec, ...]:
        """Check an observation's fields against its schema version.

        Returns:
            The resolved field specs.

        Raises:
            MissingFieldError: A declared field has no value.
            UnexpectedFieldError: A value names an undeclared field.
            TypeMismatchError: A value does not match its field type.
            UnknownTimeseriesError: Unknown target or metric.
            UnknownVersionError: The version is not defined.
        """
        fields = self.resolve_fields(target, metric, version)
        name = timeseries_name(target, metric)
        expected = {spec.name for spec in fields}
        missing = sorted(expected - set(field_values))
        if missing:
            raise MissingFieldError(name, missing)
        unexpected = sorted(set(field_values) - expected)
        if unexpected:
            raise UnexpectedFieldError(name, unexpected)
        for spec in fields:
            value = field_values[spec.name]
            if not spec.type.check(value):
                raise TypeMismatchError(spec.name, spec.type.value, value)
        return fields
