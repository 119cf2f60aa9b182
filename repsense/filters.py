"""
Single-pole recursive filters for repsense.

    y[n] = alpha * x[n] + (1 - alpha) * y[n-1]

Used twice with different coefficients: smoothing the gyro magnitude that
drives peak detection / energy, and tracking the gravity vector. Both are
seeded at a fixed baseline rather than the first sample.
"""

from typing import Optional, Sequence, Tuple

from .models import Vec3


def _check_alpha(alpha: float) -> float:
    alpha = float(alpha)
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    return alpha


class RecursiveFilter:
    """
    Scalar exponential smoother.

    Usage:
        lp = RecursiveFilter(alpha=0.25)
        smoothed = lp.update(raw)
    """

    def __init__(self, alpha: float, initial: Optional[float] = 0.0):
        """
        Args:
            alpha: Weight of the newest sample, 0 < alpha <= 1.
                   Higher = follows input faster, less smoothing.
            initial: Seed for y[-1]. None means "take the first sample as is".
        """
        self.alpha = _check_alpha(alpha)
        self.initial = initial
        self._value: Optional[float] = initial

    def update(self, raw: float) -> float:
        if self._value is None:
            self._value = float(raw)
        else:
            self._value = self.alpha * raw + (1.0 - self.alpha) * self._value
        return self._value

    @property
    def state(self) -> float:
        """Current smoothed value (0.0 before the first update of an unseeded filter)."""
        return self._value if self._value is not None else 0.0

    def reset(self):
        self._value = self.initial


class VectorRecursiveFilter:
    """Component-wise RecursiveFilter over a 3-vector (gravity estimate)."""

    def __init__(self, alpha: float, initial: Optional[Sequence[float]] = None):
        self.alpha = _check_alpha(alpha)
        self.initial: Optional[Vec3] = tuple(initial) if initial is not None else None
        self._value: Optional[Vec3] = self.initial

    def update(self, raw: Sequence[float]) -> Vec3:
        if self._value is None:
            self._value = (float(raw[0]), float(raw[1]), float(raw[2]))
        else:
            a = self.alpha
            prev = self._value
            self._value = (
                a * raw[0] + (1.0 - a) * prev[0],
                a * raw[1] + (1.0 - a) * prev[1],
                a * raw[2] + (1.0 - a) * prev[2],
            )
        return self._value

    @property
    def state(self) -> Tuple[float, float, float]:
        return self._value if self._value is not None else (0.0, 0.0, 0.0)

    def reset(self):
        self._value = self.initial


if __name__ == "__main__":
    print("Testing RecursiveFilter (alpha=0.25, seeded at 0):")
    lp = RecursiveFilter(alpha=0.25)
    for i in range(10):
        y = lp.update(3.0)
        print(f"  step {i}: {y:.3f}")
    print("  Expected: approaches 3.0")

    print("\nTesting VectorRecursiveFilter (alpha=0.5, seeded at gravity):")
    g = VectorRecursiveFilter(alpha=0.5, initial=(0.0, 0.0, 9.81))
    for i in range(5):
        est = g.update((9.81, 0.0, 0.0))
        print(f"  step {i}: ({est[0]:.2f}, {est[1]:.2f}, {est[2]:.2f})")
    print("  Expected: rotates toward +X")
