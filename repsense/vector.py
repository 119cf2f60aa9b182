"""3-vector primitives. Plain tuples, no numpy: these run once per sample."""

import math
from typing import Sequence

from .models import Vec3


def magnitude(v: Sequence[float]) -> float:
    return math.sqrt(v[0]*v[0] + v[1]*v[1] + v[2]*v[2])


def safe_magnitude(v: Sequence[float]) -> float:
    """Magnitude, with 1.0 substituted for a zero vector."""
    m = magnitude(v)
    return m if m > 0.0 else 1.0


def normalize(v: Sequence[float]) -> Vec3:
    m = safe_magnitude(v)
    return (v[0] / m, v[1] / m, v[2] / m)


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    return a[0]*b[0] + a[1]*b[1] + a[2]*b[2]


def cross(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (
        a[1]*b[2] - a[2]*b[1],
        a[2]*b[0] - a[0]*b[2],
        a[0]*b[1] - a[1]*b[0],
    )


def sanitize(v: Sequence[float]) -> Vec3:
    """Replace NaN / inf components with 0.0."""
    return tuple(float(x) if math.isfinite(x) else 0.0 for x in v[:3])
