"""
Core value types shared across repsense.

Samples come in, RepEvents go out. Everything here is immutable.
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

Vec3 = Tuple[float, float, float]


class UnknownExerciseError(ValueError):
    """Raised when an exercise key has no profile."""


class MovementState(str, Enum):
    IDLE = "IDLE"
    MOVING = "MOVING"


class Exercise(str, Enum):
    NORMAL_CURL = "NORMAL_CURL"
    HAMMER_CURL = "HAMMER_CURL"
    CROSSBODY_HAMMER = "CROSSBODY_HAMMER"
    ARNOLD_PRESS = "ARNOLD_PRESS"
    GOBLET_SQUAT = "GOBLET_SQUAT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Union["Exercise", str]) -> "Exercise":
        """
        Resolve an Exercise from an enum member or a name.

        Names are case-insensitive and may use spaces or dashes
        ("hammer curl", "Hammer-Curl").

        Raises:
            UnknownExerciseError: if the name matches no exercise
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownExerciseError(f"unknown exercise: {value!r}")
        key = value.strip().upper().replace(" ", "_").replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            raise UnknownExerciseError(f"unknown exercise: {value!r}") from None

    @classmethod
    def known(cls) -> List["Exercise"]:
        return [e for e in cls if e is not cls.UNKNOWN]


@dataclass(frozen=True)
class Sample:
    """
    One 6-axis reading.

    accel is in m/s² (gravity ≈ 9.81), gyro in rad/s, t in seconds.
    Only differences of t are ever used, so any monotonic clock works.
    """
    accel: Vec3
    gyro: Vec3
    t: float

    @classmethod
    def from_values(
        cls,
        ax: float, ay: float, az: float,
        gx: float, gy: float, gz: float,
        t: float
    ) -> "Sample":
        return cls(
            accel=(float(ax), float(ay), float(az)),
            gyro=(float(gx), float(gy), float(gz)),
            t=float(t),
        )

    def as_row(self) -> List[float]:
        """[ax, ay, az, gx, gy, gz]"""
        return [*self.accel, *self.gyro]

    def is_finite(self) -> bool:
        return all(math.isfinite(x) for x in self.as_row()) and math.isfinite(self.t)


@dataclass(frozen=True)
class Peak:
    value: float
    timestamp: float
    index: int  # running sample index inside the detector


@dataclass(frozen=True)
class RepEvent:
    """A single confirmed repetition."""
    exercise: Exercise
    timestamp: float
    is_good_form: Optional[bool]
    energy: float
    peak_value: float
    source: str = "STREAM"
    label: Optional[str] = None
    window: Optional[Tuple[float, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["exercise"] = self.exercise.value
        if self.window is not None:
            d["window"] = list(self.window)
        return d
