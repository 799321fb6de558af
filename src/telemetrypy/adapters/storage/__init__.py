"""Storage adapters implementing core ports."""

from telemetrypy.adapters.storage.clickhouse import render_all_tables, render_table
from telemetrypy.adapters.storage.in_memory import InMemoryMeasurementStorage
from telemetrypy.adapters.storage.sqlite_measurements import SQLiteMeasurementStorage

__all__ = [
    "InMemoryMeasurementStorage",
    "SQLiteMeasurementStorage",
    "render_all_tables",
    "render_table",
]
