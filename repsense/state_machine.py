"""
Streaming rep state machine.

IDLE -> MOVING when raw gyro magnitude exceeds the profile's min_gyro,
MOVING -> IDLE once it drops below min_gyro * 0.3 (hysteresis). Reps are
confirmed on peaks of the low-passed gyro magnitude, gated by the refractory
period and the exercise's validity predicate.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional, Union

from . import config
from .config import DetectorSettings
from .filters import RecursiveFilter
from .frame import FeatureSet
from .models import Exercise, MovementState, Peak, RepEvent
from .peaks import PeakDetector
from .profiles import ExerciseProfile, get_profile, is_valid_rep, judge_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateStep:
    state: MovementState
    energy: float
    filtered_gyro: float
    peak: Optional[Peak] = None
    rep: Optional[RepEvent] = None
    missed: bool = False


class RepStateMachine:
    """
    Usage:
        sm = RepStateMachine(Exercise.NORMAL_CURL)
        step = sm.update(features, t)
        if step.rep:
            ...
    """

    def __init__(
        self,
        exercise: Optional[Union[Exercise, str]] = None,
        settings: Optional[DetectorSettings] = None
    ):
        self.settings = settings or config.DEFAULT_SETTINGS
        s = self.settings

        self._lp = RecursiveFilter(s.gyro_alpha, initial=0.0)
        self._peaks = PeakDetector(s.peak_window, s.peak_min_samples, s.peak_history)
        # (sample index, features, state) for samples a pending peak may refer to
        self._recent = deque(maxlen=s.peak_window)

        self.exercise: Optional[Exercise] = None
        self.profile: Optional[ExerciseProfile] = None
        self.last_rep_time: Optional[float] = None
        self._reset_fields()

        if exercise is not None:
            self.set_exercise(exercise)

    def _reset_fields(self):
        self.state = MovementState.IDLE
        self.energy = 0.0
        self.moving_since: Optional[float] = None

    def set_exercise(self, exercise: Union[Exercise, str]):
        """Switch profile. Raises UnknownExerciseError before touching any state."""
        profile = get_profile(exercise)
        self.exercise = profile.exercise
        self.profile = profile
        self.reset_movement()

    def clear_exercise(self):
        self.exercise = None
        self.profile = None
        self.reset_movement()

    def reset_movement(self):
        """Clear movement tracking, keep last_rep_time (refractory survives a switch)."""
        self._reset_fields()
        self._lp.reset()
        self._peaks.reset()
        self._recent.clear()

    def reset(self):
        self.reset_movement()
        self.last_rep_time = None

    def recent_peaks(self):
        return self._peaks.recent_peaks()

    def update(self, features: FeatureSet, timestamp: float) -> StateStep:
        if self.profile is None:
            return StateStep(state=self.state, energy=self.energy, filtered_gyro=self._lp.state)

        p = self.profile
        filtered = self._lp.update(features.gyro_mag)
        index = self._peaks.sample_count
        peak = self._peaks.detect(filtered, timestamp)

        self.energy += filtered / self.settings.sample_rate_hz

        if features.gyro_mag > p.min_gyro:
            if self.state == MovementState.IDLE:
                self.state = MovementState.MOVING
                self.energy = 0.0
                self.moving_since = timestamp
        elif self.state == MovementState.MOVING and features.gyro_mag < p.min_gyro * self.settings.idle_exit_ratio:
            self.state = MovementState.IDLE
            self.moving_since = None

        self._recent.append((index, features, self.state))

        rep = None
        if peak is not None:
            rep = self._confirm(peak)
            if rep is not None:
                return StateStep(
                    state=self.state, energy=self.energy, filtered_gyro=filtered,
                    peak=peak, rep=rep,
                )

        missed = self._check_stuck(timestamp)
        return StateStep(
            state=self.state, energy=self.energy, filtered_gyro=filtered,
            peak=peak, missed=missed,
        )

    def _lookup(self, index: int):
        for entry in self._recent:
            if entry[0] == index:
                return entry
        return None

    def _confirm(self, peak: Peak) -> Optional[RepEvent]:
        p = self.profile
        entry = self._lookup(peak.index)
        if entry is None:
            return None
        _, peak_features, peak_state = entry

        if peak_state != MovementState.MOVING:
            return None
        if not peak.value > p.min_rep_gyro:
            logger.debug("peak %.3f below min_rep_gyro %.3f", peak.value, p.min_rep_gyro)
            return None
        if self.last_rep_time is not None:
            elapsed_ms = (peak.timestamp - self.last_rep_time) * 1000.0
            if not elapsed_ms > p.min_rep_ms:
                logger.debug("peak at %.3fs inside refractory (%.0f ms)", peak.timestamp, elapsed_ms)
                return None
        if not is_valid_rep(peak_features, p):
            logger.debug("peak at %.3fs failed %s validity", peak.timestamp, p.exercise.value)
            return None

        rep = RepEvent(
            exercise=p.exercise,
            timestamp=peak.timestamp,
            is_good_form=judge_form(peak_features, p),
            energy=self.energy,
            peak_value=peak.value,
        )
        self.last_rep_time = peak.timestamp
        self.state = MovementState.IDLE
        self.energy = 0.0
        self.moving_since = None
        logger.info(
            "rep confirmed: %s at %.3fs peak=%.3f good_form=%s",
            rep.exercise.value, rep.timestamp, rep.peak_value, rep.is_good_form,
        )
        return rep

    def _check_stuck(self, timestamp: float) -> bool:
        """Give up on a movement that has run too long without a rep."""
        if self.state != MovementState.MOVING:
            return False
        anchor = self.moving_since
        if self.last_rep_time is not None and (anchor is None or self.last_rep_time > anchor):
            anchor = self.last_rep_time
        if anchor is None:
            return False
        if (timestamp - anchor) * 1000.0 <= self.settings.stuck_timeout_ms:
            return False
        if not self.energy > self.profile.energy_thresh / 2.0:
            return False

        logger.warning(
            "missed rep: %s moving for %.1fs with energy %.2f",
            self.exercise.value, timestamp - anchor, self.energy,
        )
        self._reset_fields()
        return True
