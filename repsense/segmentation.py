"""
Batch rep segmentation over a buffer of samples.

Unlike the streaming state machine this looks at a whole buffer at once:

- gyro: pick the highest-variance raw gyro axis, smooth it, and cut a rep
  between alternate zero crossings (a curl swings the wrist one way, then
  back), keeping windows that are long and energetic enough.
- accel: smooth the linear acceleration magnitude and cut a rep while it
  stays above a small threshold.

The source with at least MIN_GYRO_WINDOWS windows and the higher count wins,
otherwise accel is used. The last window is classified against the
reference std vectors.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from . import config
from .classifier import NearestReferenceClassifier, exercise_to_label, label_to_exercise
from .config import DetectorSettings
from .models import Exercise, Sample
from .resample import resample_to_hz, validate_sample_rate

logger = logging.getLogger(__name__)

SOURCE_GYRO = "GYRO"
SOURCE_ACCEL = "ACCEL"


@dataclass(frozen=True)
class RepWindow:
    start: int          # inclusive sample index
    end: int            # exclusive sample index
    energy: float
    peak: float


@dataclass(frozen=True)
class BatchAnalysis:
    source: str
    windows: List[RepWindow]
    rep_window: Tuple[float, float]   # seconds, (start, end) of the classified window
    raw_label: str
    final_label: str
    distance: float
    exercise: Exercise
    counts: Dict[str, int] = field(default_factory=dict)
    samples: Sequence[Sample] = field(default_factory=list, repr=False)

    def window_times(self, window: RepWindow) -> Tuple[float, float]:
        return (self.samples[window.start].t, self.samples[window.end].t)


def moving_average(x: np.ndarray, win: int) -> np.ndarray:
    """out[i] = mean(x[max(0, i-win) : min(n, i+win)])"""
    x = np.asarray(x, dtype=np.float64)
    n = len(x)
    if n == 0:
        return x.copy()
    csum = np.concatenate(([0.0], np.cumsum(x)))
    idx = np.arange(n)
    lo = np.maximum(0, idx - win)
    hi = np.minimum(n, idx + win)
    return (csum[hi] - csum[lo]) / (hi - lo)


def smoothing_window(fs: float, smooth_sec: float = config.SMOOTH_SEC) -> int:
    return max(1, int(math.floor(smooth_sec * fs)))


def gyro_windows(
    gyro: np.ndarray,
    fs: float,
    settings: DetectorSettings = config.DEFAULT_SETTINGS
) -> List[RepWindow]:
    """Zero-crossing windows on the highest-variance gyro axis."""
    gyro = np.asarray(gyro, dtype=np.float64)
    if len(gyro) == 0:
        return []

    axis = int(np.argmax(gyro.std(axis=0)))
    sig = moving_average(gyro[:, axis], smoothing_window(fs, settings.smooth_sec))
    min_len = int(math.floor(settings.gyro_min_rep_sec * fs))

    windows = []
    last_sign = 0
    start = None
    for i, v in enumerate(sig):
        sign = 0 if abs(v) < settings.gyro_min_mag else (1 if v > 0 else -1)

        if sign and last_sign and sign != last_sign:
            if start is None:
                start = i
            else:
                if i - start >= min_len:
                    seg = np.abs(sig[start:i])
                    energy = float(seg.sum() / fs)
                    if energy > settings.gyro_min_energy:
                        windows.append(RepWindow(start, i, energy, float(seg.max())))
                start = None
        if sign:
            last_sign = sign

    return windows


def accel_windows(
    accel: np.ndarray,
    fs: float,
    settings: DetectorSettings = config.DEFAULT_SETTINGS,
    gravity: float = config.STANDARD_GRAVITY
) -> List[RepWindow]:
    """Threshold windows on smoothed linear acceleration magnitude."""
    accel = np.asarray(accel, dtype=np.float64)
    if len(accel) == 0:
        return []

    linear = np.abs(np.linalg.norm(accel, axis=1) - gravity)
    sig = moving_average(linear, smoothing_window(fs, settings.smooth_sec))
    min_len = int(math.floor(settings.acc_min_rep_sec * fs))

    windows = []
    above = False
    start = 0
    for i, v in enumerate(sig):
        if v > settings.acc_min_mag and not above:
            start = i
            above = True
        elif v < settings.acc_min_mag and above:
            if i - start >= min_len:
                seg = sig[start:i]
                windows.append(RepWindow(start, i, float(seg.sum() / fs), float(seg.max())))
            above = False

    return windows


def select_windows(
    gyro_w: List[RepWindow],
    accel_w: List[RepWindow],
    min_gyro_windows: int = config.MIN_GYRO_WINDOWS
) -> Tuple[str, List[RepWindow]]:
    if len(gyro_w) >= len(accel_w) and len(gyro_w) >= min_gyro_windows:
        return SOURCE_GYRO, gyro_w
    return SOURCE_ACCEL, accel_w


def sample_matrix(samples: Sequence[Sample]) -> np.ndarray:
    """N x 6 rows (ax, ay, az, gx, gy, gz) with NaN / inf replaced by 0.0."""
    data = np.asarray([s.as_row() for s in samples], dtype=np.float64).reshape(-1, 6)
    return np.nan_to_num(data, nan=0.0, posinf=0.0, neginf=0.0)


def _calibrated(samples: Sequence[Sample], fs: float, tolerance_pct: float) -> Sequence[Sample]:
    report = validate_sample_rate(samples, fs, tolerance_pct)
    if report["estimated_hz"] is None or report["valid"]:
        return samples
    logger.debug(
        "resampling batch buffer from %.1f Hz to %.1f Hz (jitter %.1f ms)",
        report["estimated_hz"], fs, report["jitter_ms"],
    )
    return resample_to_hz(samples, fs)


def analyze_buffer(
    samples: Sequence[Sample],
    fs: Optional[float] = None,
    settings: Optional[DetectorSettings] = None,
    classifier: Optional[NearestReferenceClassifier] = None,
    target: Exercise = Exercise.NORMAL_CURL
) -> Optional[BatchAnalysis]:
    """
    Segment a buffer into reps and classify the most recent one.

    Args:
        samples: Buffered samples, oldest first
        fs: Canonical rate the window constants refer to (default: settings)
        settings: Thresholds; DEFAULT_SETTINGS if omitted
        classifier: Reference classifier; built from settings if omitted
        target: Exercise the user is meant to be doing; decides GOOD/BAD

    Returns:
        BatchAnalysis, or None when the buffer is shorter than one second
        or no rep window was found
    """
    settings = settings or config.DEFAULT_SETTINGS
    fs = fs or settings.sample_rate_hz
    if len(samples) < fs:
        return None

    samples = _calibrated(samples, fs, settings.rate_tolerance_pct)
    if len(samples) < fs:
        return None

    data = sample_matrix(samples)
    g_w = gyro_windows(data[:, 3:6], fs, settings)
    a_w = accel_windows(data[:, 0:3], fs, settings)
    source, windows = select_windows(g_w, a_w, settings.min_gyro_windows)

    if not windows:
        return None

    if classifier is None:
        classifier = NearestReferenceClassifier(settings.reference_sd, settings.max_class_dist)

    last = windows[-1]
    raw_label, dist = classifier.classify(data[last.start:last.end])
    final_label = config.GOOD_LABEL if raw_label == exercise_to_label(target) else config.BAD_LABEL
    counts = {config.GOOD_LABEL: 0, config.BAD_LABEL: 0}
    counts[final_label] += 1

    logger.debug(
        "batch: source=%s windows=%d label=%s dist=%.2f",
        source, len(windows), raw_label, dist,
    )

    return BatchAnalysis(
        source=source,
        windows=windows,
        rep_window=(samples[last.start].t, samples[last.end].t),
        raw_label=raw_label,
        final_label=final_label,
        distance=dist,
        exercise=label_to_exercise(raw_label),
        counts=counts,
        samples=samples,
    )
