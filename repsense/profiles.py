"""
Per-exercise threshold profiles and rep / form predicates.

Predicates are plain functions in two lookup tables keyed by Exercise.

Every axis-versus-axis comparison is strict (>): exactly equal axis ratios
make a rep invalid (or bad form).
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

from .frame import FeatureSet
from .models import Exercise, UnknownExerciseError


@dataclass(frozen=True)
class ExerciseProfile:
    """
    Thresholds for one exercise. gyro values in rad/s, accel in m/s².

    form_ratio_bounds keys: min_u, max_u, min_v, max_v, min_w, min_gw.
    """
    exercise: Exercise
    min_gyro: float                 # IDLE -> MOVING
    min_rep_gyro: float             # smoothed peak must exceed this
    energy_thresh: float            # half of this arms stuck-movement recovery
    min_rep_ms: float               # refractory period
    vert_accel_bounds: Tuple[float, float]
    peak_thresh: float
    form_ratio_bounds: Mapping[str, float] = field(default_factory=dict)
    min_az_amplitude: Optional[float] = None
    min_w_acc: Optional[float] = None
    max_form_gyro: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "form_ratio_bounds", MappingProxyType(dict(self.form_ratio_bounds)))

    def bound(self, key: str) -> float:
        try:
            return self.form_ratio_bounds[key]
        except KeyError:
            raise KeyError(f"{self.exercise.value} profile has no {key!r} bound") from None


PROFILES: Mapping[Exercise, ExerciseProfile] = MappingProxyType({
    Exercise.NORMAL_CURL: ExerciseProfile(
        exercise=Exercise.NORMAL_CURL,
        min_gyro=0.8,
        min_rep_gyro=2.0,
        energy_thresh=1.5,
        min_rep_ms=950,
        vert_accel_bounds=(0.2, 1.5),
        peak_thresh=0.2,
        form_ratio_bounds={"min_u": 0.6, "max_v": 0.3},
    ),
    Exercise.HAMMER_CURL: ExerciseProfile(
        exercise=Exercise.HAMMER_CURL,
        min_gyro=0.8,
        min_rep_gyro=1.5,
        energy_thresh=2.0,
        min_rep_ms=800,
        vert_accel_bounds=(0.2, 1.5),
        peak_thresh=0.4,
        form_ratio_bounds={"min_v": 0.6, "max_u": 0.3},
    ),
    Exercise.CROSSBODY_HAMMER: ExerciseProfile(
        exercise=Exercise.CROSSBODY_HAMMER,
        min_gyro=1.0,
        min_rep_gyro=2.0,
        energy_thresh=3.0,
        min_rep_ms=1200,
        vert_accel_bounds=(0.3, 2.0),
        peak_thresh=0.6,
        form_ratio_bounds={"min_v": 0.7, "min_gw": 1.5},
    ),
    Exercise.ARNOLD_PRESS: ExerciseProfile(
        exercise=Exercise.ARNOLD_PRESS,
        min_gyro=1.2,
        min_rep_gyro=2.5,
        energy_thresh=4.0,
        min_rep_ms=1200,
        vert_accel_bounds=(0.4, 2.5),
        peak_thresh=0.8,
        form_ratio_bounds={"min_w": 0.5, "min_gw": 2.0},
    ),
    Exercise.GOBLET_SQUAT: ExerciseProfile(
        exercise=Exercise.GOBLET_SQUAT,
        min_gyro=0.6,
        min_rep_gyro=1.0,
        energy_thresh=5.0,
        min_rep_ms=1500,
        vert_accel_bounds=(0.5, 3.0),
        peak_thresh=0.3,
        min_az_amplitude=2.0,
        min_w_acc=1.5,
        max_form_gyro=2.0,
    ),
})


def get_profile(exercise: Union[Exercise, str]) -> ExerciseProfile:
    """
    Look up the profile for an exercise (enum member or name).

    Raises:
        UnknownExerciseError: for unknown names and for Exercise.UNKNOWN
    """
    key = Exercise.parse(exercise)
    try:
        return PROFILES[key]
    except KeyError:
        raise UnknownExerciseError(f"no profile for exercise {key.value}") from None


# =============================================================================
# Rep validity (evaluated at peak confirmation)
# =============================================================================

Predicate = Callable[[FeatureSet, ExerciseProfile], bool]


def _curl_valid(f: FeatureSet, p: ExerciseProfile) -> bool:
    return f.u_ratio > f.v_ratio


def _hammer_valid(f: FeatureSet, p: ExerciseProfile) -> bool:
    return f.v_ratio > f.u_ratio


def _crossbody_valid(f: FeatureSet, p: ExerciseProfile) -> bool:
    return f.v_ratio > f.u_ratio * 1.2


def _press_valid(f: FeatureSet, p: ExerciseProfile) -> bool:
    return f.w_ratio > p.bound("min_w")


def _squat_valid(f: FeatureSet, p: ExerciseProfile) -> bool:
    return abs(f.vertical_accel) > p.min_az_amplitude


VALIDITY_PREDICATES: Dict[Exercise, Predicate] = {
    Exercise.NORMAL_CURL: _curl_valid,
    Exercise.HAMMER_CURL: _hammer_valid,
    Exercise.CROSSBODY_HAMMER: _crossbody_valid,
    Exercise.ARNOLD_PRESS: _press_valid,
    Exercise.GOBLET_SQUAT: _squat_valid,
}


# =============================================================================
# Good form (UI feedback only, never gates the count)
# =============================================================================

def _curl_form(f: FeatureSet, p: ExerciseProfile) -> bool:
    return (
        f.u_ratio >= p.bound("min_u")
        and f.v_ratio <= p.bound("max_v")
        and f.gyro_mag >= p.min_rep_gyro * 0.7
    )


def _hammer_form(f: FeatureSet, p: ExerciseProfile) -> bool:
    return (
        f.v_ratio >= p.bound("min_v")
        and f.u_ratio <= p.bound("max_u")
        and f.gyro_mag >= p.min_rep_gyro * 0.7
    )


def _crossbody_form(f: FeatureSet, p: ExerciseProfile) -> bool:
    return f.v_ratio >= p.bound("min_v") and abs(f.g_v) > abs(f.g_u) * 1.5


def _press_form(f: FeatureSet, p: ExerciseProfile) -> bool:
    return (
        f.w_ratio >= p.bound("min_w")
        and abs(f.g_w) > abs(f.g_u)
        and abs(f.g_w) > abs(f.g_v)
    )


def _squat_form(f: FeatureSet, p: ExerciseProfile) -> bool:
    # Squats should move the weight vertically with little wrist rotation
    return abs(f.vertical_accel) >= p.min_w_acc and f.gyro_mag < p.max_form_gyro


FORM_PREDICATES: Dict[Exercise, Predicate] = {
    Exercise.NORMAL_CURL: _curl_form,
    Exercise.HAMMER_CURL: _hammer_form,
    Exercise.CROSSBODY_HAMMER: _crossbody_form,
    Exercise.ARNOLD_PRESS: _press_form,
    Exercise.GOBLET_SQUAT: _squat_form,
}


def is_valid_rep(features: FeatureSet, profile: ExerciseProfile) -> bool:
    return VALIDITY_PREDICATES[profile.exercise](features, profile)


def judge_form(features: FeatureSet, profile: ExerciseProfile) -> Optional[bool]:
    """True/False from the exercise's form predicate, None if it has none."""
    predicate = FORM_PREDICATES.get(profile.exercise)
    if predicate is None:
        return None
    return predicate(features, profile)
