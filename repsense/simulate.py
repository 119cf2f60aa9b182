"""
Synthetic sample streams for demos and tests.

No sensor needed: each helper returns a list of Samples at a fixed rate with
the dumbbell held Z-up (gravity on +Z), so for the extracted frame

    rotation about sensor Y -> u axis (curl)
    rotation about sensor X -> v axis (hammer)
    rotation about sensor Z -> w axis (press)
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

from . import config
from .models import Sample, Vec3

AXES = {"x": 0, "y": 1, "z": 2}

REST_ACCEL: Vec3 = (0.0, 0.0, config.STANDARD_GRAVITY)


def _axis_vector(axis: str, value: float) -> Vec3:
    try:
        i = AXES[axis]
    except KeyError:
        raise ValueError(f"axis must be one of {sorted(AXES)}, got {axis!r}") from None
    v = [0.0, 0.0, 0.0]
    v[i] = value
    return tuple(v)


def stationary(
    n: int,
    fs: float = config.SAMPLE_RATE_HZ,
    accel: Sequence[float] = REST_ACCEL,
    t0: float = 0.0
) -> List[Sample]:
    """Sensor at rest: gravity only, no rotation."""
    return [Sample(accel=tuple(accel), gyro=(0.0, 0.0, 0.0), t=t0 + i / fs) for i in range(n)]


def hump_stream(
    axis: str,
    amplitude: float,
    period_s: float,
    duration_s: float,
    fs: float = config.SAMPLE_RATE_HZ,
    accel: Sequence[float] = REST_ACCEL,
    t0: float = 0.0
) -> List[Sample]:
    """
    One rotation hump per period: gyro = amplitude * sin²(pi * t / period).

    Each hump peaks at the middle of its period and returns to zero between
    reps, like a curl that pauses at the bottom.
    """
    n = int(round(duration_s * fs))
    samples = []
    for i in range(n):
        t = i / fs
        g = amplitude * math.sin(math.pi * t / period_s) ** 2
        samples.append(Sample(accel=tuple(accel), gyro=_axis_vector(axis, g), t=t0 + t))
    return samples


def square_wave_stream(
    axis: str,
    high: float,
    high_s: float,
    low_s: float,
    cycles: int,
    fs: float = config.SAMPLE_RATE_HZ,
    low: float = 0.0,
    accel: Sequence[float] = REST_ACCEL,
    t0: float = 0.0
) -> List[Sample]:
    """Gyro alternating between high (for high_s) and low (for low_s), starting high."""
    n_high = int(round(high_s * fs))
    n_low = int(round(low_s * fs))
    samples = []
    i = 0
    for _ in range(cycles):
        for value, count in ((high, n_high), (low, n_low)):
            for _ in range(count):
                samples.append(Sample(accel=tuple(accel), gyro=_axis_vector(axis, value), t=t0 + i / fs))
                i += 1
    return samples


def oscillation_stream(
    duration_s: float,
    fs: float = config.SAMPLE_RATE_HZ,
    gyro: Optional[Dict[str, Tuple[float, float]]] = None,
    accel: Optional[Dict[str, Tuple[float, float]]] = None,
    gravity: Sequence[float] = REST_ACCEL,
    t0: float = 0.0
) -> List[Sample]:
    """
    Sinusoids on any channel.

    Args:
        duration_s: Stream length in seconds
        fs: Sample rate
        gyro: {axis: (amplitude, period_s)} added to zero rotation
        accel: {axis: (amplitude, period_s)} added on top of gravity
        gravity: Static accelerometer reading

    Usage:
        # wrist swinging about Z every 2 s
        samples = oscillation_stream(9.0, gyro={"z": (2.0, 2.0)})
    """
    gyro = gyro or {}
    accel = accel or {}
    n = int(round(duration_s * fs))
    samples = []
    for i in range(n):
        t = i / fs
        g = [0.0, 0.0, 0.0]
        a = list(gravity)
        for axis, (amp, period) in gyro.items():
            g[AXES[axis]] += amp * math.sin(2.0 * math.pi * t / period)
        for axis, (amp, period) in accel.items():
            a[AXES[axis]] += amp * math.sin(2.0 * math.pi * t / period)
        samples.append(Sample(accel=tuple(a), gyro=tuple(g), t=t0 + t))
    return samples


def reference_segment(
    sd: Sequence[float],
    n: int = 50,
    mean: Sequence[float] = (0.0, 0.0, config.STANDARD_GRAVITY, 0.0, 0.0, 0.0),
    fs: float = config.SAMPLE_RATE_HZ
) -> List[Sample]:
    """
    A segment whose per-channel population std equals sd exactly (n even).

    Alternates mean + sd and mean - sd on every channel.
    """
    if n < 2 or n % 2:
        raise ValueError(f"n must be an even number >= 2, got {n}")
    samples = []
    for i in range(n):
        sign = 1.0 if i % 2 == 0 else -1.0
        row = [m + sign * s for m, s in zip(mean, sd)]
        samples.append(Sample.from_values(*row, t=i / fs))
    return samples
