"""
Sample-rate calibration for repsense.

Batch segmentation counts windows in samples, so its constants only mean
something at the canonical rate. Sensors in the field run anywhere from 10 to
50 Hz; these helpers measure the real rate and resample a buffer onto the
canonical grid before analysis.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from .models import Sample


def estimate_sample_rate(samples: Sequence[Sample]) -> Optional[float]:
    """
    Estimate the sample rate from timestamps.

    Returns:
        Estimated rate in Hz, or None if it cannot be determined
    """
    if len(samples) < 2:
        return None

    duration = samples[-1].t - samples[0].t
    if duration <= 0:
        return None

    return (len(samples) - 1) / duration


def validate_sample_rate(
    samples: Sequence[Sample],
    expected_hz: float,
    tolerance_pct: float = 10.0
) -> Dict[str, Any]:
    """
    Check that a stream's rate matches expected_hz.

    Returns:
        {
            "valid": bool,
            "estimated_hz": float,
            "deviation_pct": float,
            "jitter_ms": float (std dev of sample intervals)
        }
    """
    estimated = estimate_sample_rate(samples)
    if estimated is None:
        return {
            "valid": False,
            "estimated_hz": None,
            "deviation_pct": None,
            "jitter_ms": None,
            "error": "Need at least 2 samples spanning a positive duration",
        }

    deviation_pct = abs(estimated - expected_hz) / expected_hz * 100.0

    intervals = [samples[i].t - samples[i-1].t for i in range(1, len(samples))]
    mean_interval = sum(intervals) / len(intervals)
    variance = sum((dt - mean_interval) ** 2 for dt in intervals) / len(intervals)
    jitter_ms = math.sqrt(variance) * 1000.0

    return {
        "valid": deviation_pct <= tolerance_pct,
        "estimated_hz": round(estimated, 2),
        "deviation_pct": round(deviation_pct, 2),
        "jitter_ms": round(jitter_ms, 3),
    }


def _lerp(a: Sequence[float], b: Sequence[float], alpha: float):
    return tuple(x0 + alpha * (x1 - x0) for x0, x1 in zip(a, b))


def resample_to_hz(samples: Sequence[Sample], target_hz: float) -> List[Sample]:
    """
    Resample onto a uniform grid at target_hz using linear interpolation.

    The grid starts at the first timestamp; samples past the last timestamp
    are not extrapolated.
    """
    if len(samples) < 2:
        return list(samples)

    t_start = samples[0].t
    duration = samples[-1].t - t_start
    if duration <= 0:
        return [samples[0]]

    dt = 1.0 / target_hz
    n_samples = int(duration * target_hz) + 1

    resampled = []
    src_idx = 0
    for i in range(n_samples):
        t_target = t_start + i * dt

        # Find bracketing samples
        while src_idx < len(samples) - 1 and samples[src_idx + 1].t <= t_target:
            src_idx += 1

        if src_idx >= len(samples) - 1:
            last = samples[-1]
            resampled.append(Sample(accel=last.accel, gyro=last.gyro, t=t_target))
            continue

        s0 = samples[src_idx]
        s1 = samples[src_idx + 1]
        span = s1.t - s0.t
        alpha = 0.0 if span == 0 else (t_target - s0.t) / span

        resampled.append(Sample(
            accel=_lerp(s0.accel, s1.accel, alpha),
            gyro=_lerp(s0.gyro, s1.gyro, alpha),
            t=t_target,
        ))

    return resampled
