"""
Configuration for repsense.

All tunables live here as module constants. Each one can be overridden via a
REPSENSE_* environment variable, read once at import time. DetectorSettings
bundles them for per-instance overrides (tests, alternative sensors).

The thresholds were tuned against a 50 Hz dumbbell sensor. Streams at other
rates should be resampled (see resample.py) rather than re-tuned.
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


# =============================================================================
# Sampling & smoothing
# =============================================================================

# Canonical sample rate; energy integral and batch windows assume it
SAMPLE_RATE_HZ = _env_float("REPSENSE_SAMPLE_RATE_HZ", 50.0)

# Low-pass coefficient for gyro magnitude (energy / peak signal)
GYRO_ALPHA = _env_float("REPSENSE_GYRO_ALPHA", 0.25)

# Gravity estimation smoothing
GRAVITY_ALPHA = _env_float("REPSENSE_GRAVITY_ALPHA", 0.5)

STANDARD_GRAVITY = 9.81  # m/s²
INITIAL_GRAVITY: Tuple[float, float, float] = (0.0, 0.0, STANDARD_GRAVITY)

# Moving-average ring buffers (gyro / accel magnitude)
FEATURE_BUFFER_SIZE = _env_int("REPSENSE_FEATURE_BUFFER_SIZE", 20)

# =============================================================================
# Peak detection
# =============================================================================

PEAK_WINDOW = 5
PEAK_MIN_SAMPLES = 3
PEAK_HISTORY = 10

# =============================================================================
# State machine
# =============================================================================

# MOVING -> IDLE once gyro drops below min_gyro * IDLE_EXIT_RATIO
IDLE_EXIT_RATIO = 0.3

# Stuck-movement recovery
STUCK_TIMEOUT_MS = _env_float("REPSENSE_STUCK_TIMEOUT_MS", 3000.0)

# =============================================================================
# Auto classification
# =============================================================================

RECLASSIFY_COOLDOWN_MS = _env_float("REPSENSE_RECLASSIFY_COOLDOWN_MS", 5000.0)

# Below this much rotation the ratio heuristics are noise
AUTO_MIN_GYRO = 0.8
SQUAT_MIN_VERT_ACC = 1.5
SQUAT_MAX_GYRO = 2.0
PRESS_MIN_W_RATIO = 0.5
CROSSBODY_V_OVER_U = 1.2
CROSSBODY_MIN_W_RATIO = 0.3

# =============================================================================
# Batch (segment + nearest reference)
# =============================================================================

BATCH_WINDOW_SEC = _env_float("REPSENSE_BATCH_WINDOW_SEC", 10.0)
BATCH_STRIDE = max(1, _env_int("REPSENSE_BATCH_STRIDE", 25))  # ~2 Hz at 50 Hz

SMOOTH_SEC = 0.2
GYRO_MIN_MAG = 0.05
GYRO_MIN_REP_SEC = 0.3
GYRO_MIN_ENERGY = 0.2
ACC_MIN_MAG = 0.05
ACC_MIN_REP_SEC = 0.5
MIN_GYRO_WINDOWS = 3

# Max deviation from SAMPLE_RATE_HZ before a batch buffer gets resampled
RATE_TOLERANCE_PCT = 20.0

MAX_CLASS_DIST = _env_float("REPSENSE_MAX_CLASS_DIST", 5.0)

# Per-channel std (ax, ay, az, gx, gy, gz) of one rep, wrist-worn sensor
REFERENCE_SD = MappingProxyType({
    "BICEP":  (7.03, 5.57, 1.11, 0.34, 0.40, 2.09),
    "HAMMER": (3.06, 1.82, 2.85, 0.61, 1.75, 0.29),
    "ARNOLD": (5.2,  6.1,  3.4,  0.15, 0.18, 0.22),
})

UNKNOWN_LABEL = "UNKNOWN"
GOOD_LABEL = "GOOD_BICEP"
BAD_LABEL = "BAD_CURL"


@dataclass(frozen=True)
class DetectorSettings:
    """Per-instance view of the constants above."""
    sample_rate_hz: float = SAMPLE_RATE_HZ
    gyro_alpha: float = GYRO_ALPHA
    gravity_alpha: float = GRAVITY_ALPHA
    initial_gravity: Tuple[float, float, float] = INITIAL_GRAVITY
    buffer_size: int = FEATURE_BUFFER_SIZE

    peak_window: int = PEAK_WINDOW
    peak_min_samples: int = PEAK_MIN_SAMPLES
    peak_history: int = PEAK_HISTORY

    idle_exit_ratio: float = IDLE_EXIT_RATIO
    stuck_timeout_ms: float = STUCK_TIMEOUT_MS

    reclassify_cooldown_ms: float = RECLASSIFY_COOLDOWN_MS

    batch_window_sec: float = BATCH_WINDOW_SEC
    batch_stride: int = BATCH_STRIDE
    smooth_sec: float = SMOOTH_SEC
    gyro_min_mag: float = GYRO_MIN_MAG
    gyro_min_rep_sec: float = GYRO_MIN_REP_SEC
    gyro_min_energy: float = GYRO_MIN_ENERGY
    acc_min_mag: float = ACC_MIN_MAG
    acc_min_rep_sec: float = ACC_MIN_REP_SEC
    min_gyro_windows: int = MIN_GYRO_WINDOWS
    rate_tolerance_pct: float = RATE_TOLERANCE_PCT
    max_class_dist: float = MAX_CLASS_DIST
    reference_sd: Mapping[str, Tuple[float, ...]] = field(default_factory=lambda: REFERENCE_SD)

    def __post_init__(self):
        if self.sample_rate_hz <= 0:
            raise ValueError(f"sample_rate_hz must be positive, got {self.sample_rate_hz}")
        if self.peak_min_samples > self.peak_window:
            raise ValueError("peak_min_samples cannot exceed peak_window")

    @property
    def batch_capacity(self) -> int:
        """Samples held by the batch strategy buffer."""
        return max(int(self.sample_rate_hz), int(self.batch_window_sec * self.sample_rate_hz))


DEFAULT_SETTINGS = DetectorSettings()
