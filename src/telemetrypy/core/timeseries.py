"""Timeseries naming and stable key derivation."""

import hashlib
from collections.abc import Mapping


def timeseries_name(target: str, metric: str) -> str:
    """Return the timeseries name for a target and metric."""
    return f"{target}:{metric}"


def render_field_value(value: object) -> str:
    """Canonical string form of a field value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _frame(data: str) -> bytes:
    raw = data.encode()
    return len(raw).to_bytes(4, "big") + raw


def timeseries_key(target: str, metric: str, field_values: Mapping[str, object]) -> int:
    """Compute the stable 64-bit key of a timeseries.

    The key hashes the target name, metric name and the field name/value
    pairs sorted by name, so two observations with the same identity
    always map to the same key regardless of field order. Each component
    is length-prefixed so adjacent names and values cannot run together.

    Args:
        target: Target name.
        metric: Metric name.
        field_values: Field name to value mapping.

    Returns:
        Unsigned 64-bit integer key.
    """
    digest = hashlib.blake2b(digest_size=8)
    digest.update(_frame(target))
    digest.update(_frame(metric))
    for name in sorted(field_values):
        digest.update(_frame(name))
        digest.update(_frame(render_field_value(field_values[name])))
    return int.from_bytes(digest.digest(), "big")
