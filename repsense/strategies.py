"""
Interchangeable rep-detection strategies.

Both take one sample (plus its gravity-frame features) at a time and report
what happened. They differ in how reps are found:

- StreamingRepStrategy: per-sample peak detection through RepStateMachine,
  exercise either fixed or picked by AutoExerciseSelector.
- BatchRepStrategy: buffers a few seconds of samples and periodically
  re-segments the buffer (zero crossings / accel thresholds), classifying
  each finished window against reference std vectors.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from . import config
from .classifier import AutoExerciseSelector, NearestReferenceClassifier, label_to_exercise
from .config import DetectorSettings
from .filters import RecursiveFilter
from .frame import FeatureSet
from .models import Exercise, MovementState, RepEvent, Sample
from .profiles import get_profile
from .segmentation import BatchAnalysis, analyze_buffer, sample_matrix
from .state_machine import RepStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyStep:
    state: MovementState
    exercise: Optional[Exercise]
    energy: float = 0.0
    filtered_gyro: float = 0.0
    reps: Tuple[RepEvent, ...] = ()
    missed: bool = False
    # (target, predicted) pairs for classification accuracy
    classifications: Tuple[Tuple[Exercise, Exercise], ...] = ()


class RepStrategy(ABC):
    """Common interface for streaming and batch rep detection."""

    @property
    @abstractmethod
    def exercise(self) -> Optional[Exercise]:
        """Exercise currently being counted (None if not yet known)."""

    @abstractmethod
    def update(self, sample: Sample, features: FeatureSet) -> StrategyStep:
        """Consume one sample."""

    @abstractmethod
    def set_exercise(self, exercise: Union[Exercise, str]):
        """Explicit exercise change. Raises UnknownExerciseError."""

    @abstractmethod
    def reset(self):
        """Return to the freshly constructed state."""


class StreamingRepStrategy(RepStrategy):

    def __init__(
        self,
        exercise: Optional[Union[Exercise, str]] = None,
        auto_detect: bool = False,
        settings: Optional[DetectorSettings] = None,
        selector: Optional[AutoExerciseSelector] = None
    ):
        self.settings = settings or config.DEFAULT_SETTINGS
        self.machine = RepStateMachine(exercise, self.settings)
        # Last explicitly chosen exercise; reset() returns to it
        self._chosen: Optional[Exercise] = self.machine.exercise
        self.selector = None
        if auto_detect:
            self.selector = selector or AutoExerciseSelector(
                cooldown_ms=self.settings.reclassify_cooldown_ms
            )
            if self._chosen is not None:
                self.selector.pin(self._chosen)

    @property
    def auto_detect(self) -> bool:
        return self.selector is not None

    @property
    def exercise(self) -> Optional[Exercise]:
        return self.machine.exercise

    def update(self, sample: Sample, features: FeatureSet) -> StrategyStep:
        if self.selector is not None:
            changed = self.selector.observe(features, sample.t)
            if changed is not None:
                self.machine.set_exercise(changed)

        step = self.machine.update(features, sample.t)
        return StrategyStep(
            state=step.state,
            exercise=self.machine.exercise,
            energy=step.energy,
            filtered_gyro=step.filtered_gyro,
            reps=(step.rep,) if step.rep is not None else (),
            missed=step.missed,
        )

    def set_exercise(self, exercise: Union[Exercise, str]):
        self.machine.set_exercise(exercise)
        self._chosen = self.machine.exercise
        if self.selector is not None:
            self.selector.pin(self._chosen)

    def reset(self):
        """
        Fresh state. An auto-detected exercise is forgotten; an explicitly
        chosen one is kept (and re-pinned in auto mode).
        """
        self.machine.reset()
        if self.selector is None:
            return
        self.selector.reset()
        if self._chosen is None:
            self.machine.clear_exercise()
        else:
            self.machine.set_exercise(self._chosen)
            self.selector.pin(self._chosen)


class BatchRepStrategy(RepStrategy):
    """
    Usage:
        strategy = BatchRepStrategy(target=Exercise.NORMAL_CURL)
        step = strategy.update(sample, features)
    """

    def __init__(
        self,
        target: Union[Exercise, str] = Exercise.NORMAL_CURL,
        settings: Optional[DetectorSettings] = None,
        classifier: Optional[NearestReferenceClassifier] = None
    ):
        self.settings = settings or config.DEFAULT_SETTINGS
        self.target = get_profile(target).exercise
        self.classifier = classifier or NearestReferenceClassifier(
            self.settings.reference_sd, self.settings.max_class_dist
        )
        self._buffer = deque(maxlen=self.settings.batch_capacity)
        self._count = 0
        # Same smoothing as the streaming path, reported for display only
        self._lp = RecursiveFilter(self.settings.gyro_alpha, initial=0.0)
        self._last_emitted_end: Optional[float] = None
        self.last_analysis: Optional[BatchAnalysis] = None

    @property
    def exercise(self) -> Optional[Exercise]:
        return self.target

    def update(self, sample: Sample, features: FeatureSet) -> StrategyStep:
        self._buffer.append(sample)
        self._count += 1
        filtered = self._lp.update(features.gyro_mag)

        state = MovementState.MOVING if features.gyro_mag >= self.settings.gyro_min_mag else MovementState.IDLE

        reps = ()
        if self._count % self.settings.batch_stride == 0:
            reps = self._analyze()

        return StrategyStep(
            state=state,
            exercise=self.target,
            energy=reps[-1].energy if reps else 0.0,
            filtered_gyro=filtered,
            reps=reps,
            classifications=tuple((self.target, r.exercise) for r in reps),
        )

    def _analyze(self) -> Tuple[RepEvent, ...]:
        analysis = analyze_buffer(
            list(self._buffer),
            fs=self.settings.sample_rate_hz,
            settings=self.settings,
            classifier=self.classifier,
            target=self.target,
        )
        if analysis is None:
            return ()
        self.last_analysis = analysis

        data = sample_matrix(analysis.samples)
        reps = []
        for window in analysis.windows:
            start_t, end_t = analysis.window_times(window)
            if self._last_emitted_end is not None and not start_t > self._last_emitted_end:
                continue

            label, dist = self.classifier.classify(data[window.start:window.end])
            exercise = label_to_exercise(label)
            reps.append(RepEvent(
                exercise=exercise,
                timestamp=end_t,
                is_good_form=exercise is self.target,
                energy=window.energy,
                peak_value=window.peak,
                source=analysis.source,
                label=label,
                window=(start_t, end_t),
            ))
            self._last_emitted_end = end_t
            logger.info(
                "batch rep: %s window=%.2f-%.2fs label=%s dist=%.2f",
                analysis.source, start_t, end_t, label, dist,
            )
        return tuple(reps)

    def set_exercise(self, exercise: Union[Exercise, str]):
        self.target = get_profile(exercise).exercise
        self.reset()

    def reset(self):
        self._buffer.clear()
        self._count = 0
        self._lp.reset()
        self._last_emitted_end = None
        self.last_analysis = None
