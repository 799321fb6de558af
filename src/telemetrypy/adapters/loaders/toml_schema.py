"""Load schema definitions from TOML documents.

One document describes one target:

    format_version = 1

    [target]
    name = "hardware_component"
    description = "A hardware component on a compute sled"
    authz_scope = "fleet"
    versions = [
        { version = 1, fields = ["rack_id", "slot"] },
    ]

    [fields.rack_id]
    type = "uuid"
    description = "ID of the rack"

    [[metrics]]
    name = "temperature"
    description = "A temperature reading"
    units = "degrees_celsius"
    datum_type = "f32"
    versions = [
        { added_in = 1, fields = ["sensor"] },
    ]

The loader only checks document structure and resolves type names; the
SchemaRegistry enforces the versioning invariants.
"""

import tomllib
from pathlib import Path
from typing import Any

from telemetrypy.core.errors import SchemaDocumentError
from telemetrypy.core.models import (
    FieldSpec,
    MetricSpec,
    Schema,
    TargetSpec,
    TargetVersion,
    VersionEntry,
)
from telemetrypy.core.types import resolve_datum_type, resolve_field_type

SUPPORTED_FORMAT_VERSIONS = frozenset({1})


class _Reader:
    """Typed accessors that report errors against the document source."""

    def __init__(self, source: str | None) -> None:
        self.source = source

    def fail(self, message: str) -> SchemaDocumentError:
        return SchemaDocumentError(message, self.source)

    def get(
        self,
        table: dict[str, Any],
        key: str,
        kind: type,
        where: str,
        default: Any = None,
    ) -> Any:
        if key not in table:
            if default is None:
                raise self.fail(f"{where} is missing {key!r}")
            return default
        value = table[key]
        # bool is an int subclass; a version number must be a real integer
        if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
            raise self.fail(f"{where}.{key} must be a {kind.__name__}")
        return value

    def names(self, table: dict[str, Any], where: str) -> tuple[str, ...]:
        names = self.get(table, "fields", list, where, default=[])
        if not all(isinstance(name, str) for name in names):
            raise self.fail(f"{where}.fields must be a list of strings")
        return tuple(names)

    def tables(self, value: Any, where: str) -> list[dict[str, Any]]:
        if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
            raise self.fail(f"{where} must be a list of tables")
        return value


def _load_fields(reader: _Reader, doc: dict[str, Any]) -> dict[str, FieldSpec]:
    table = reader.get(doc, "fields", dict, "document", default={})
    fields: dict[str, FieldSpec] = {}
    for name, spec in table.items():
        if not isinstance(spec, dict):
            raise reader.fail(f"fields.{name} must be a table")
        where = f"fields.{name}"
        fields[name] = FieldSpec(
            name=name,
            type=resolve_field_type(reader.get(spec, "type", str, where)),
            description=reader.get(spec, "description", str, where, default=""),
        )
    return fields


def _load_target(reader: _Reader, doc: dict[str, Any]) -> TargetSpec:
    table = reader.get(doc, "target", dict, "document")
    versions = [
        TargetVersion(
            version=reader.get(entry, "version", int, "target.versions"),
            fields=reader.names(entry, "target.versions"),
        )
        for entry in reader.tables(table.get("versions", []), "target.versions")
    ]
    return TargetSpec(
        name=reader.get(table, "name", str, "target"),
        description=reader.get(table, "description", str, "target", default=""),
        authz_scope=reader.get(table, "authz_scope", str, "target", default=""),
        versions=tuple(versions),
    )


def _load_metric(reader: _Reader, table: dict[str, Any]) -> MetricSpec:
    name = reader.get(table, "name", str, "metrics")
    where = f"metrics.{name}"
    versions = [
        VersionEntry(
            added_in=reader.get(entry, "added_in", int, f"{where}.versions"),
            fields=reader.names(entry, f"{where}.versions"),
        )
        for entry in reader.tables(table.get("versions", []), f"{where}.versions")
    ]
    return MetricSpec(
        name=name,
        datum_type=resolve_datum_type(reader.get(table, "datum_type", str, where)),
        units=reader.get(table, "units", str, where, default=""),
        description=reader.get(table, "description", str, where, default=""),
        versions=tuple(versions),
    )


def load_schema(text: str, source: str | None = None) -> Schema:
    """Parse a TOML schema document.

    Args:
        text: The document text.
        source: Name used in error messages, e.g. the file path.

    Returns:
        The parsed Schema.

    Raises:
        SchemaDocumentError: The document is not valid TOML or is malformed.
        UnknownTypeError: A field or datum type name is not recognized.
    """
    reader = _Reader(source)
    try:
        doc = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise reader.fail(f"invalid TOML: {exc}") from exc

    format_version = reader.get(doc, "format_version", int, "document", default=1)
    if format_version not in SUPPORTED_FORMAT_VERSIONS:
        raise reader.fail(f"unsupported format_version {format_version}")

    metrics = reader.tables(doc.get("metrics", []), "metrics")
    return Schema(
        target=_load_target(reader, doc),
        metrics=tuple(_load_metric(reader, table) for table in metrics),
        fields=_load_fields(reader, doc),
        format_version=format_version,
    )


def load_schema_file(path: str | Path) -> Schema:
    """Load one TOML schema document from disk."""
    path = Path(path)
    return load_schema(path.read_text(encoding="utf-8"), source=str(path))


def load_schema_dir(path: str | Path) -> list[Schema]:
    """Load every ``*.toml`` document in a directory, in name order."""
    return [load_schema_file(file) for file in sorted(Path(path).glob("*.toml"))]
