"""
Exercise classification.

Two independent approaches:

- RatioHeuristicClassifier: per-sample rule cascade over gravity-frame axis
  ratios. Driven by AutoExerciseSelector in streaming auto mode, with a
  cooldown so identity does not flap mid-set.
- NearestReferenceClassifier: per-rep, compares the standard deviation of all
  six raw channels against a small table of reference vectors.
"""

import logging
from typing import Callable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from . import config
from .frame import FeatureSet
from .models import Exercise, Sample

logger = logging.getLogger(__name__)

Rule = Tuple[str, Callable[[FeatureSet], bool], Exercise]


def _squat_rule(f: FeatureSet) -> bool:
    return abs(f.vertical_accel) >= config.SQUAT_MIN_VERT_ACC and f.gyro_mag < config.SQUAT_MAX_GYRO


def _still_rule(f: FeatureSet) -> bool:
    return f.gyro_mag < config.AUTO_MIN_GYRO


def _press_rule(f: FeatureSet) -> bool:
    return f.w_ratio > config.PRESS_MIN_W_RATIO


def _crossbody_rule(f: FeatureSet) -> bool:
    return f.v_ratio > f.u_ratio * config.CROSSBODY_V_OVER_U and f.w_ratio > config.CROSSBODY_MIN_W_RATIO


DEFAULT_RULES: List[Rule] = [
    ("squat", _squat_rule, Exercise.GOBLET_SQUAT),
    ("still", _still_rule, Exercise.UNKNOWN),
    ("press", _press_rule, Exercise.ARNOLD_PRESS),
    ("crossbody", _crossbody_rule, Exercise.CROSSBODY_HAMMER),
]

# Fallback: whichever ratio is strictly largest
AXIS_EXERCISES = (Exercise.NORMAL_CURL, Exercise.HAMMER_CURL, Exercise.ARNOLD_PRESS)


class RatioHeuristicClassifier:
    """
    Ordered rule cascade; first match wins.

        1. big vertical accel, little rotation  -> GOBLET_SQUAT
        2. too little rotation to judge         -> UNKNOWN
        3. rotation mostly about gravity (w)    -> ARNOLD_PRESS
        4. v dominant with a w component        -> CROSSBODY_HAMMER
        5. strictly largest of u / v / w        -> curl / hammer / press
           (a tie is UNKNOWN)
    """

    def __init__(self, rules: Optional[Sequence[Rule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)
        self.last_rule: Optional[str] = None

    def classify(self, features: FeatureSet) -> Exercise:
        for name, predicate, exercise in self.rules:
            if predicate(features):
                self.last_rule = name
                return exercise

        self.last_rule = "axis"
        ratios = features.axis_ratios
        best = max(ratios)
        if ratios.count(best) > 1:
            return Exercise.UNKNOWN
        return AXIS_EXERCISES[ratios.index(best)]


class AutoExerciseSelector:
    """
    Decide which exercise is being performed, at most once per cooldown.

    Usage:
        selector = AutoExerciseSelector()
        changed = selector.observe(features, t)  # new Exercise or None
    """

    def __init__(
        self,
        classifier: Optional[RatioHeuristicClassifier] = None,
        cooldown_ms: float = config.RECLASSIFY_COOLDOWN_MS
    ):
        self.classifier = classifier or RatioHeuristicClassifier()
        self.cooldown_ms = cooldown_ms
        self.current: Optional[Exercise] = None
        self.last_change: Optional[float] = None
        self._pinned = False

    def pin(self, exercise: Exercise):
        """Adopt a caller's choice; it holds for one cooldown from the next observed sample."""
        self.current = exercise
        self.last_change = None
        self._pinned = True

    def due(self, timestamp: float) -> bool:
        if self.current is None or self.last_change is None:
            return True
        return (timestamp - self.last_change) * 1000.0 >= self.cooldown_ms

    def observe(self, features: FeatureSet, timestamp: float) -> Optional[Exercise]:
        if self._pinned:
            self.last_change = timestamp
            self._pinned = False
            return None
        if not self.due(timestamp):
            return None

        candidate = self.classifier.classify(features)
        if candidate is Exercise.UNKNOWN or candidate is self.current:
            return None

        logger.info(
            "exercise changed: %s -> %s (rule=%s)",
            self.current.value if self.current else None,
            candidate.value,
            self.classifier.last_rule,
        )
        self.current = candidate
        self.last_change = timestamp
        return candidate

    def reset(self):
        self.current = None
        self.last_change = None
        self._pinned = False


# =============================================================================
# Nearest reference (batch)
# =============================================================================

LABEL_EXERCISES = {
    "BICEP": Exercise.NORMAL_CURL,
    "HAMMER": Exercise.HAMMER_CURL,
    "ARNOLD": Exercise.ARNOLD_PRESS,
}


def label_to_exercise(label: str) -> Exercise:
    return LABEL_EXERCISES.get(label, Exercise.UNKNOWN)


def exercise_to_label(exercise: Exercise) -> Optional[str]:
    for label, ex in LABEL_EXERCISES.items():
        if ex is exercise:
            return label
    return None


def segment_std(segment: Union[Sequence[Sample], np.ndarray]) -> np.ndarray:
    """Population std of (ax, ay, az, gx, gy, gz) over a segment. NaN / inf count as 0.0."""
    if isinstance(segment, np.ndarray):
        x = np.asarray(segment, dtype=np.float64)
    else:
        x = np.asarray([s.as_row() for s in segment], dtype=np.float64)
    if x.ndim != 2 or x.shape[0] == 0 or x.shape[1] != 6:
        raise ValueError(f"segment must be N x 6 with N > 0, got shape {x.shape}")
    x = np.nan_to_num(x, nan=0.0, posinf=0.0, neginf=0.0)
    return x.std(axis=0)


class NearestReferenceClassifier:
    """
    Label a rep by the closest reference standard-deviation vector.

    Usage:
        clf = NearestReferenceClassifier()
        label, dist = clf.classify(samples_of_one_rep)
    """

    def __init__(
        self,
        references: Mapping[str, Sequence[float]] = config.REFERENCE_SD,
        max_distance: float = config.MAX_CLASS_DIST
    ):
        if not references:
            raise ValueError("at least one reference vector is required")
        self.labels = list(references.keys())
        self.references = np.asarray([references[k] for k in self.labels], dtype=np.float64)
        if self.references.shape[1] != 6:
            raise ValueError("reference vectors must have 6 components")
        self.max_distance = float(max_distance)

    def classify_std(self, sd: Sequence[float]) -> Tuple[str, float]:
        sd = np.asarray(sd, dtype=np.float64)
        dists = np.linalg.norm(self.references - sd, axis=1)
        best = int(np.argmin(dists))
        dist = float(dists[best])
        if not np.isfinite(dist) or dist > self.max_distance:
            return config.UNKNOWN_LABEL, dist
        return self.labels[best], dist

    def classify(self, segment: Union[Sequence[Sample], np.ndarray]) -> Tuple[str, float]:
        return self.classify_std(segment_std(segment))
