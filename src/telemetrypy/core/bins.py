"""Helpers for building histogram bucket edges."""

DEFAULT_HISTOGRAM_BINS = (
    0.0,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)


def check_bins(bins: tuple[float, ...] | list[float]) -> tuple[float, ...]:
    """Return bins as a tuple, raising ValueError unless strictly increasing."""
    edges = tuple(bins)
    if len(edges) < 2:
        raise ValueError("a histogram needs at least two bin edges")
    if any(b <= a for a, b in zip(edges, edges[1:])):
        raise ValueError(f"bin edges must be strictly increasing: {edges}")
    return edges


def linear_bins(start: float, stop: float, count: int) -> tuple[float, ...]:
    """Split ``[start, stop]`` into ``count`` equal-width buckets.

    Integer arguments with an exact step give integer edges.
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    if stop <= start:
        raise ValueError("stop must be greater than start")
    span = stop - start
    if isinstance(start, int) and isinstance(stop, int) and span % count == 0:
        step = span // count
        return tuple(start + i * step for i in range(count + 1))
    return tuple(start + span * i / count for i in range(count)) + (stop,)


def power_of_two_bins(max_exponent: int) -> tuple[int, ...]:
    """Edges 0, 1, 2, 4, ..., 2**max_exponent."""
    if max_exponent < 0:
        raise ValueError("max_exponent must be non-negative")
    return (0,) + tuple(2**i for i in range(max_exponent + 1))


def log_linear_bins(
    base: int, lo_exp: int, hi_exp: int, per_decade: int
) -> tuple[float, ...]:
    """Log-linear edges: each power of ``base`` split into linear steps.

    For base 10, exponents 0..2 and 9 steps per decade this yields
    1, 2, ..., 9, 10, 20, ..., 90, 100.
    """
    if base < 2 or per_decade < 1 or hi_exp <= lo_exp:
        raise ValueError("invalid log-linear bin parameters")
    edges: list[float] = []
    for exp in range(lo_exp, hi_exp):
        low = base**exp
        step = (base ** (exp + 1) - low) / per_decade
        edges.extend(low + i * step for i in range(per_decade))
    edges.append(base**hi_exp)
    return tuple(edges)
