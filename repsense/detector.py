"""
repsense detector: the single entry point for a sample stream.

    raw sample -> GravityFrameExtractor -> RepStrategy -> SessionAggregator

One RepDetector owns every piece of mutable state for one stream. Callers
must deliver samples one at a time; there is no locking.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from . import config
from .config import DetectorSettings
from .frame import FeatureSet, GravityFrameExtractor
from .models import Exercise, MovementState, RepEvent, Sample
from .session import SampleLog, SessionAggregator, SessionStats
from .strategies import BatchRepStrategy, RepStrategy, StreamingRepStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    t: float
    features: FeatureSet
    state: MovementState
    exercise: Optional[Exercise]
    energy: float
    filtered_gyro: float        # gyro_mag after the gyro_alpha recursive filter, both modes
    reps: Tuple[RepEvent, ...]
    missed: bool
    stats: SessionStats

    @property
    def rep_detected(self) -> bool:
        return bool(self.reps)

    @property
    def rep(self) -> Optional[RepEvent]:
        return self.reps[-1] if self.reps else None

    @property
    def is_good_form(self) -> Optional[bool]:
        rep = self.rep
        return rep.is_good_form if rep is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "status",
            "t": self.t,
            "state": self.state.value,
            "exercise": self.exercise.value if self.exercise else None,
            "energy": round(self.energy, 4),
            "gyro_filt": round(self.filtered_gyro, 4),
            "rep_detected": self.rep_detected,
            "is_good_form": self.is_good_form,
            "reps": [r.to_dict() for r in self.reps],
            "missed": self.missed,
            "features": self.features.summary(),
            "stats": self.stats.to_dict(),
        }


class RepDetector:
    """
    Turn a stream of samples into rep counts.

    Usage:
        detector = RepDetector(Exercise.HAMMER_CURL)   # fixed exercise
        detector = RepDetector.auto()                  # exercise inferred
        detector = RepDetector.batch()                 # segment + reference match

        for sample in stream:
            result = detector.update(sample)
            if result.rep_detected:
                ...
    """

    def __init__(
        self,
        exercise: Optional[Union[Exercise, str]] = None,
        strategy: Optional[RepStrategy] = None,
        settings: Optional[DetectorSettings] = None,
        sample_log: Optional[SampleLog] = None
    ):
        """
        Args:
            exercise: Exercise to count. With no strategy and no exercise the
                      detector runs in auto-detect mode.
            strategy: Custom RepStrategy; overrides the default streaming one
            settings: Thresholds and rates (config.DEFAULT_SETTINGS if omitted)
            sample_log: Optional caller-owned collector of processed samples

        Raises:
            UnknownExerciseError: if exercise has no profile
        """
        self.settings = settings or config.DEFAULT_SETTINGS
        if strategy is None:
            strategy = StreamingRepStrategy(
                exercise,
                auto_detect=exercise is None,
                settings=self.settings,
            )
        elif exercise is not None:
            strategy.set_exercise(exercise)

        self.strategy = strategy
        self.extractor = GravityFrameExtractor(
            gravity_alpha=self.settings.gravity_alpha,
            buffer_size=self.settings.buffer_size,
            initial_gravity=self.settings.initial_gravity,
        )
        self.aggregator = SessionAggregator()
        self.sample_log = sample_log

    @classmethod
    def auto(
        cls,
        settings: Optional[DetectorSettings] = None,
        sample_log: Optional[SampleLog] = None
    ) -> "RepDetector":
        settings = settings or config.DEFAULT_SETTINGS
        strategy = StreamingRepStrategy(auto_detect=True, settings=settings)
        return cls(strategy=strategy, settings=settings, sample_log=sample_log)

    @classmethod
    def batch(
        cls,
        target: Union[Exercise, str] = Exercise.NORMAL_CURL,
        settings: Optional[DetectorSettings] = None,
        sample_log: Optional[SampleLog] = None
    ) -> "RepDetector":
        settings = settings or config.DEFAULT_SETTINGS
        strategy = BatchRepStrategy(target=target, settings=settings)
        return cls(strategy=strategy, settings=settings, sample_log=sample_log)

    @property
    def exercise(self) -> Optional[Exercise]:
        return self.strategy.exercise

    @property
    def stats(self) -> SessionStats:
        return self.aggregator.snapshot()

    def update(self, sample: Sample) -> DetectionResult:
        features = self.extractor.extract(sample.gyro, sample.accel)
        step = self.strategy.update(sample, features)

        for rep in step.reps:
            self.aggregator.apply(rep)
        if step.missed:
            self.aggregator.record_missed(step.exercise)
        for target, predicted in step.classifications:
            self.aggregator.record_classification(target, predicted)

        result = DetectionResult(
            t=sample.t,
            features=features,
            state=step.state,
            exercise=step.exercise,
            energy=step.energy,
            filtered_gyro=step.filtered_gyro,
            reps=step.reps,
            missed=step.missed,
            stats=self.aggregator.snapshot(),
        )
        if self.sample_log is not None:
            self.sample_log.append(sample, result)
        return result

    def process(self, samples: Iterable[Sample]) -> List[DetectionResult]:
        return [self.update(s) for s in samples]

    def set_exercise(self, exercise: Union[Exercise, str]):
        """
        Explicit exercise change (e.g. user picked a new one).

        Clears session stats and movement tracking, as starting a new
        exercise starts a new tally.
        """
        self.strategy.set_exercise(exercise)
        self.extractor.reset_buffers()
        self.aggregator.reset()
        logger.info("exercise set to %s, stats cleared", self.strategy.exercise.value)

    def reset(self):
        """Total reset; the next sample is processed as if by a new detector."""
        self.extractor.reset()
        self.strategy.reset()
        self.aggregator.reset()
        logger.info("detector reset")


if __name__ == "__main__":
    from .simulate import hump_stream

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("Simulating 10 curls (2.5 s each) about sensor Y at 50 Hz:")
    detector = RepDetector(Exercise.NORMAL_CURL)
    for result in detector.process(hump_stream("y", amplitude=4.0, period_s=2.5, duration_s=25.0)):
        if result.rep_detected:
            print(f"  rep at t={result.rep.timestamp:.2f}s good_form={result.rep.is_good_form}")

    good, bad, total = detector.stats.totals()
    print(f"\nTotal: {total} (good={good}, bad={bad})")
    print("Expected: 10 good reps")
