"""
repsense: dumbbell rep counting from a single 6-axis IMU

This package turns a stream of accelerometer + gyroscope samples into
repetition counts, exercise identity and form feedback:
- GravityFrameExtractor: tracks gravity and projects rotation onto a
  grip-independent frame
- RepStateMachine: IDLE/MOVING hysteresis + peak confirmation per exercise
- AutoExerciseSelector: picks the exercise from axis ratios
- BatchRepStrategy: buffer segmentation + nearest-reference classification
- SessionAggregator: per-exercise good / bad / missed tallies
- RepDetector: wires all of the above together

Usage:
    from repsense import RepDetector, Sample, Exercise

    detector = RepDetector(Exercise.NORMAL_CURL)

    # In main loop:
    result = detector.update(Sample.from_values(ax, ay, az, gx, gy, gz, t))
    if result.rep_detected:
        print(result.rep.exercise, result.is_good_form)
    good, bad, total = result.stats.totals()
"""

from .config import DetectorSettings, DEFAULT_SETTINGS
from .models import Exercise, MovementState, Sample, Peak, RepEvent, UnknownExerciseError
from .filters import RecursiveFilter, VectorRecursiveFilter
from .peaks import PeakDetector
from .frame import AxisFrame, FeatureSet, GravityFrameExtractor
from .profiles import ExerciseProfile, PROFILES, get_profile, is_valid_rep, judge_form
from .state_machine import RepStateMachine
from .classifier import (
    AutoExerciseSelector,
    NearestReferenceClassifier,
    RatioHeuristicClassifier,
    segment_std,
)
from .segmentation import BatchAnalysis, RepWindow, analyze_buffer
from .resample import estimate_sample_rate, resample_to_hz, validate_sample_rate
from .session import ExerciseStats, SampleLog, SessionAggregator, SessionStats
from .strategies import BatchRepStrategy, RepStrategy, StreamingRepStrategy
from .detector import DetectionResult, RepDetector

__all__ = [
    # Config
    'DetectorSettings',
    'DEFAULT_SETTINGS',

    # Models
    'Exercise',
    'MovementState',
    'Sample',
    'Peak',
    'RepEvent',
    'UnknownExerciseError',

    # Signal
    'RecursiveFilter',
    'VectorRecursiveFilter',
    'PeakDetector',
    'AxisFrame',
    'FeatureSet',
    'GravityFrameExtractor',

    # Exercises
    'ExerciseProfile',
    'PROFILES',
    'get_profile',
    'is_valid_rep',
    'judge_form',
    'RepStateMachine',

    # Classification
    'AutoExerciseSelector',
    'NearestReferenceClassifier',
    'RatioHeuristicClassifier',
    'segment_std',

    # Batch
    'BatchAnalysis',
    'RepWindow',
    'analyze_buffer',
    'estimate_sample_rate',
    'resample_to_hz',
    'validate_sample_rate',

    # Session
    'ExerciseStats',
    'SampleLog',
    'SessionAggregator',
    'SessionStats',

    # Detector
    'BatchRepStrategy',
    'RepStrategy',
    'StreamingRepStrategy',
    'DetectionResult',
    'RepDetector',
]

__version__ = '1.0.0'
