"""P² streaming quantile estimator.

Jain & Chlamtac's P² algorithm tracks one quantile of an unbounded stream
with five markers and O(1) work per sample. Marker 2 converges on the
requested quantile; markers 0 and 4 track the minimum and maximum.
"""

import math

from telemetrypy.core.models import EstimatorState

N_MARKERS = 5


def _initial_desired(q: float) -> list[float]:
    return [1.0, 1.0 + 2.0 * q, 1.0 + 4.0 * q, 3.0 + 2.0 * q, 5.0]


class P2Estimator:
    """Online estimate of a single quantile.

    Example:
        ```python
        median = P2Estimator(0.5)
        for sample in samples:
            median.observe(sample)
        median.estimate()
        ```
    """

    __slots__ = (
        "quantile",
        "increments",
        "heights",
        "positions",
        "desired_positions",
        "_seeds",
    )

    def __init__(self, quantile: float) -> None:
        if not 0.0 < quantile < 1.0:
            raise ValueError(f"quantile must be in (0, 1), got {quantile!r}")
        q = float(quantile)
        self.quantile = q
        self.increments = (0.0, q / 2.0, q, (1.0 + q) / 2.0, 1.0)
        self.heights = [0.0] * N_MARKERS
        self.positions = [0] * N_MARKERS
        self.desired_positions = _initial_desired(q)
        self._seeds: list[float] | None = []

    @property
    def initialized(self) -> bool:
        return self._seeds is None

    @property
    def count(self) -> int:
        """Number of samples observed."""
        if self._seeds is not None:
            return len(self._seeds)
        return self.positions[4]

    def observe(self, x: float) -> None:
        """Fold one sample into the markers.

        Raises:
            ValueError: The sample is NaN or infinite.
        """
        x = float(x)
        if not math.isfinite(x):
            raise ValueError(f"cannot observe non-finite sample {x!r}")

        if self._seeds is not None:
            self._seeds.append(x)
            if len(self._seeds) == N_MARKERS:
                self.heights = sorted(self._seeds)
                self.positions = [1, 2, 3, 4, 5]
                self.desired_positions = _initial_desired(self.quantile)
                self._seeds = None
            return

        heights = self.heights
        if x < heights[0]:
            heights[0] = x
            k = 0
        elif x >= heights[4]:
            heights[4] = x
            k = 3
        else:
            # heights[k] <= x < heights[k + 1]; equal runs land in the upper bracket
            k = 0
            while x >= heights[k + 1]:
                k += 1

        for j in range(k + 1, N_MARKERS):
            self.positions[j] += 1
        for j in range(N_MARKERS):
            self.desired_positions[j] += self.increments[j]

        for i in (1, 2, 3):
            self._adjust(i)

    def _adjust(self, i: int) -> None:
        positions = self.positions
        d = self.desired_positions[i] - positions[i]
        if (d >= 1.0 and positions[i + 1] - positions[i] > 1) or (
            d <= -1.0 and positions[i - 1] - positions[i] < -1
        ):
            step = 1 if d > 0 else -1
            candidate = self._parabolic(i, step)
            if self.heights[i - 1] < candidate < self.heights[i + 1]:
                self.heights[i] = candidate
            else:
                self.heights[i] = self._linear(i, step)
            positions[i] += step

    def _parabolic(self, i: int, step: int) -> float:
        h, n = self.heights, self.positions
        return h[i] + step / (n[i + 1] - n[i - 1]) * (
            (n[i] - n[i - 1] + step) * (h[i + 1] - h[i]) / (n[i + 1] - n[i])
            + (n[i + 1] - n[i] - step) * (h[i] - h[i - 1]) / (n[i] - n[i - 1])
        )

    def _linear(self, i: int, step: int) -> float:
        h, n = self.heights, self.positions
        return h[i] + step * (h[i + step] - h[i]) / (n[i + step] - n[i])

    def estimate(self) -> float | None:
        """Current quantile estimate, or None before five samples."""
        if self._seeds is not None:
            return None
        return self.heights[2]

    def state(self) -> EstimatorState:
        """Snapshot the markers for storage."""
        if self._seeds is not None:
            filled = len(self._seeds)
            padding = N_MARKERS - filled
            return EstimatorState(
                quantile=self.quantile,
                marker_heights=tuple(self._seeds) + (0.0,) * padding,
                marker_positions=(1,) * filled + (0,) * padding,
                desired_marker_positions=tuple(_initial_desired(self.quantile)),
            )
        return EstimatorState(
            quantile=self.quantile,
            marker_heights=tuple(self.heights),
            marker_positions=tuple(self.positions),
            desired_marker_positions=tuple(self.desired_positions),
        )

    @classmethod
    def from_state(cls, state: EstimatorState) -> "P2Estimator":
        """Resume an estimator from a snapshot taken by state()."""
        if not (
            len(state.marker_heights)
            == len(state.marker_positions)
            == len(state.desired_marker_positions)
            == N_MARKERS
        ):
            raise ValueError("estimator state must hold exactly five markers")
        estimator = cls(state.quantile)
        filled = sum(1 for position in state.marker_positions if position > 0)
        if filled < N_MARKERS:
            estimator._seeds = [float(h) for h in state.marker_heights[:filled]]
            return estimator
        estimator.heights = [float(h) for h in state.marker_heights]
        estimator.positions = [int(p) for p in state.marker_positions]
        estimator.desired_positions = [
            float(p) for p in state.desired_marker_positions
        ]
        estimator._seeds = None
        return estimator

    def __repr__(self) -> str:
        return (
            f"P2Estimator(quantile={self.quantile}, count={self.count}, "
            f"estimate={self.estimate()})"
        )
