"""Schema document loaders."""

from telemetrypy.adapters.loaders.toml_schema import (
    load_schema,
    load_schema_dir,
    load_schema_file,
)

__all__ = ["load_schema", "load_schema_dir", "load_schema_file"]
