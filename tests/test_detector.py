import math

import pytest

from repsense import config
from repsense.detector import RepDetector
from repsense.frame import GravityFrameExtractor
from repsense.models import Exercise, MovementState, Sample, UnknownExerciseError
from repsense.session import SampleLog
from repsense.simulate import oscillation_stream, square_wave_stream, stationary
from repsense.strategies import BatchRepStrategy, StreamingRepStrategy

BICEP_ACCEL = {"x": (7.03 * math.sqrt(2), 0.5), "y": (5.57 * math.sqrt(2), 0.5)}
SWING_GYRO = {"z": (8.0, 2.0)}


def _reps(results):
    return [rep for r in results for rep in r.reps]


def _hammer_then_press():
    hammer = square_wave_stream("x", 3.0, 1.0, 1.0, cycles=4)
    press = square_wave_stream("z", 3.0, 1.0, 1.0, cycles=4, t0=8.0)
    return hammer + press


# -----------------------------------------------------------------------------
# Fixed exercise
# -----------------------------------------------------------------------------

def test_stationary_stream():
    detector = RepDetector(Exercise.NORMAL_CURL)
    results = detector.process(stationary(500))
    assert _reps(results) == []
    assert all(r.state == MovementState.IDLE for r in results)
    assert detector.stats.totals() == (0, 0, 0)


def test_counts_hammer_reps():
    detector = RepDetector("hammer curl")
    results = detector.process(square_wave_stream("x", 3.0, 1.0, 1.0, cycles=10))
    assert len(_reps(results)) == 10
    stats = detector.stats[Exercise.HAMMER_CURL]
    assert (stats.good, stats.bad, stats.total) == (10, 0, 10)
    assert results[-1].stats.totals() == (10, 0, 10)


def test_result_fields():
    detector = RepDetector(Exercise.HAMMER_CURL)
    results = detector.process(square_wave_stream("x", 3.0, 1.0, 1.0, cycles=1))
    hits = [r for r in results if r.rep_detected]
    assert len(hits) == 1
    hit = hits[0]
    assert hit.rep.timestamp < hit.t
    assert hit.is_good_form is True
    assert hit.exercise is Exercise.HAMMER_CURL

    d = hit.to_dict()
    assert d["rep_detected"] is True
    assert d["exercise"] == "HAMMER_CURL"
    assert d["stats"]["total_reps"] == 1

    quiet = results[0]
    assert quiet.rep is None
    assert quiet.is_good_form is None


def test_unknown_exercise_rejected():
    with pytest.raises(UnknownExerciseError):
        RepDetector("deadlift")

    detector = RepDetector(Exercise.NORMAL_CURL)
    with pytest.raises(UnknownExerciseError):
        detector.set_exercise("deadlift")
    assert detector.exercise is Exercise.NORMAL_CURL


def test_set_exercise_clears_stats():
    detector = RepDetector(Exercise.HAMMER_CURL)
    detector.process(square_wave_stream("x", 3.0, 1.0, 1.0, cycles=3))
    assert detector.stats.totals()[2] == 3

    detector.set_exercise(Exercise.ARNOLD_PRESS)
    assert detector.exercise is Exercise.ARNOLD_PRESS
    assert detector.stats.totals() == (0, 0, 0)


def test_missed_rep_is_tallied():
    detector = RepDetector(Exercise.NORMAL_CURL)
    # constant rotation on the wrong axis: moving, never a valid curl
    samples = square_wave_stream("x", 3.0, 5.0, 0.0, cycles=1)
    results = detector.process(samples)
    assert sum(r.missed for r in results) == 1
    assert detector.stats.missed_reps == 1
    assert detector.stats[Exercise.NORMAL_CURL].missed == 1
    assert detector.stats.totals() == (0, 0, 0)


def test_reset_behaves_like_new_detector():
    samples = square_wave_stream("x", 3.0, 1.0, 1.0, cycles=5)
    fresh = [rep.timestamp for rep in _reps(RepDetector(Exercise.HAMMER_CURL).process(samples))]

    detector = RepDetector(Exercise.HAMMER_CURL)
    detector.process(stationary(100, accel=(9.81, 0.0, 0.0)))
    detector.process(samples)
    detector.reset()
    assert detector.exercise is Exercise.HAMMER_CURL
    assert detector.stats.totals() == (0, 0, 0)

    again = [rep.timestamp for rep in _reps(detector.process(samples))]
    assert again == fresh


def test_refractory_holds_across_detector():
    samples = square_wave_stream("x", 3.0, 0.3, 0.2, cycles=20)
    results = RepDetector(Exercise.HAMMER_CURL).process(samples)
    times = [rep.timestamp for rep in _reps(results)]
    assert len(times) > 1
    for a, b in zip(times, times[1:]):
        assert (b - a) * 1000.0 > 800


# -----------------------------------------------------------------------------
# Auto detection
# -----------------------------------------------------------------------------

def test_default_is_auto():
    detector = RepDetector()
    assert isinstance(detector.strategy, StreamingRepStrategy)
    assert detector.strategy.auto_detect
    assert detector.exercise is None


def test_auto_picks_exercise_and_switches():
    detector = RepDetector.auto()
    results = detector.process(_hammer_then_press())

    assert results[0].exercise is Exercise.HAMMER_CURL
    assert detector.exercise is Exercise.ARNOLD_PRESS

    stats = detector.stats
    assert stats[Exercise.HAMMER_CURL].total == 4
    assert stats[Exercise.ARNOLD_PRESS].total == 4


def test_auto_idle_stream_stays_unknown():
    detector = RepDetector.auto()
    results = detector.process(stationary(300))
    assert detector.exercise is None
    assert _reps(results) == []


def test_auto_reset_forgets_exercise():
    detector = RepDetector.auto()
    detector.process(square_wave_stream("x", 3.0, 1.0, 1.0, cycles=2))
    assert detector.exercise is Exercise.HAMMER_CURL
    detector.reset()
    assert detector.exercise is None


def test_auto_explicit_set_exercise():
    detector = RepDetector.auto()
    detector.set_exercise(Exercise.NORMAL_CURL)
    results = detector.process(square_wave_stream("x", 3.0, 1.0, 1.0, cycles=1))
    # explicit choice holds for the cooldown even though the motion looks like a hammer curl
    assert results[-1].exercise is Exercise.NORMAL_CURL


def test_auto_reset_keeps_chosen_exercise():
    samples = square_wave_stream("x", 3.0, 1.0, 1.0, cycles=3)

    def make():
        return RepDetector(Exercise.NORMAL_CURL, strategy=StreamingRepStrategy(auto_detect=True))

    fresh = [(r.exercise, r.timestamp) for r in _reps(make().process(samples))]

    detector = make()
    detector.process(samples)
    detector.reset()
    assert detector.exercise is Exercise.NORMAL_CURL
    again = [(r.exercise, r.timestamp) for r in _reps(detector.process(samples))]
    assert again == fresh


# -----------------------------------------------------------------------------
# Batch
# -----------------------------------------------------------------------------

def test_batch_counts_bicep_windows():
    detector = RepDetector.batch(Exercise.NORMAL_CURL)
    results = detector.process(oscillation_stream(9.0, gyro=SWING_GYRO, accel=BICEP_ACCEL))
    reps = _reps(results)

    assert len(reps) == 4
    assert all(r.exercise is Exercise.NORMAL_CURL and r.is_good_form for r in reps)
    assert all(r.source == "GYRO" and r.label == "BICEP" for r in reps)
    for a, b in zip(reps, reps[1:]):
        assert a.window[1] < b.window[0]

    stats = detector.stats[Exercise.NORMAL_CURL]
    assert stats.total == 4
    assert stats.classification_accuracy == pytest.approx(1.0)


def test_batch_unrecognized_swing_is_bad():
    detector = RepDetector.batch(Exercise.NORMAL_CURL)
    reps = _reps(detector.process(oscillation_stream(9.0, gyro=SWING_GYRO)))
    assert len(reps) == 4
    assert all(r.exercise is Exercise.UNKNOWN and r.is_good_form is False for r in reps)
    assert detector.stats[Exercise.NORMAL_CURL].classification_accuracy == 0.0
    assert detector.stats[Exercise.UNKNOWN].total == 4


def test_batch_ignores_nan_readings():
    samples = oscillation_stream(9.0, gyro=SWING_GYRO)
    for i in range(50, len(samples), 100):
        s = samples[i]
        samples[i] = Sample(accel=(s.accel[0], float("nan"), s.accel[2]), gyro=s.gyro, t=s.t)

    detector = RepDetector.batch(Exercise.NORMAL_CURL)
    reps = _reps(detector.process(samples))
    assert len(reps) == 4
    assert all(r.exercise is Exercise.UNKNOWN and r.is_good_form is False for r in reps)
    stats = detector.stats[Exercise.NORMAL_CURL]
    assert stats.classification_accuracy == 0.0
    assert detector.stats[Exercise.UNKNOWN].good == 0


def test_batch_reports_filtered_gyro():
    results = RepDetector.batch().process(oscillation_stream(1.0, gyro=SWING_GYRO))
    assert results[0].filtered_gyro == 0.0
    assert results[1].filtered_gyro == pytest.approx(0.25 * results[1].features.gyro_mag)


def test_batch_still_stream():
    detector = RepDetector.batch()
    results = detector.process(stationary(600))
    assert _reps(results) == []
    assert detector.strategy.last_analysis is None


def test_batch_set_exercise_clears_buffer():
    strategy = BatchRepStrategy(settings=config.DetectorSettings(batch_stride=10))
    detector = RepDetector(strategy=strategy)
    detector.process(oscillation_stream(9.0, gyro=SWING_GYRO))
    assert strategy.last_analysis is not None

    detector.set_exercise(Exercise.HAMMER_CURL)
    assert detector.exercise is Exercise.HAMMER_CURL
    assert strategy.last_analysis is None
    assert len(strategy._buffer) == 0


def test_batch_buffer_is_bounded():
    strategy = BatchRepStrategy()
    extractor = GravityFrameExtractor()
    for s in stationary(config.DEFAULT_SETTINGS.batch_capacity + 100):
        strategy.update(s, extractor.extract(s.gyro, s.accel))
    assert len(strategy._buffer) == config.DEFAULT_SETTINGS.batch_capacity


# -----------------------------------------------------------------------------
# Sample log
# -----------------------------------------------------------------------------

def test_sample_log_records_every_sample():
    log = SampleLog()
    detector = RepDetector(Exercise.HAMMER_CURL, sample_log=log)
    samples = square_wave_stream("x", 3.0, 1.0, 1.0, cycles=3)
    detector.process(samples)

    assert len(log) == len(samples)
    assert len(log.reps()) == 3
    row = log.rows()[0]
    assert row["gx"] == 3.0
    assert row["exercise"] == "HAMMER_CURL"
    assert row["state"] in ("IDLE", "MOVING")

    log.clear()
    assert len(log) == 0


def test_sample_log_capacity():
    log = SampleLog(capacity=50)
    RepDetector(Exercise.NORMAL_CURL, sample_log=log).process(stationary(200))
    assert len(log) == 50
    assert log.rows()[-1]["t"] == pytest.approx(199 / 50.0)


def test_good_plus_bad_equals_total_every_step():
    detector = RepDetector.auto()
    for result in detector.process(_hammer_then_press()):
        for stats in result.stats.exercises.values():
            assert stats.good + stats.bad == stats.total


# -----------------------------------------------------------------------------
# Irregular arrival
# -----------------------------------------------------------------------------

def _irregular(samples):
    """Jittered timestamps, a 0.2 s gap and occasional duplicated samples."""
    out = []
    for i, s in enumerate(samples):
        if 150 <= i < 160:
            continue
        t = s.t + 0.004 * ((i * 7) % 5 - 2)
        out.append(Sample(accel=s.accel, gyro=s.gyro, t=t))
        if i % 37 == 0:
            out.append(Sample(accel=s.accel, gyro=s.gyro, t=t))
    return out


@pytest.mark.parametrize("make", [
    lambda: RepDetector(Exercise.HAMMER_CURL),
    RepDetector.auto,
    lambda: RepDetector.batch(Exercise.HAMMER_CURL),
], ids=["fixed", "auto", "batch"])
def test_irregular_arrival(make):
    detector = make()
    results = detector.process(_irregular(square_wave_stream("x", 3.0, 1.0, 1.0, cycles=6)))

    for result in results:
        assert math.isfinite(result.energy)
        assert math.isfinite(result.filtered_gyro)
        for stats in result.stats.exercises.values():
            assert stats.good + stats.bad == stats.total

    times = [rep.timestamp for rep in _reps(results)]
    assert times == sorted(times)


@pytest.mark.parametrize("make", [
    lambda: RepDetector(Exercise.HAMMER_CURL),
    RepDetector.auto,
], ids=["fixed", "auto"])
def test_irregular_arrival_keeps_refractory(make):
    results = make().process(_irregular(square_wave_stream("x", 3.0, 1.0, 1.0, cycles=6)))
    times = [rep.timestamp for rep in _reps(results)]
    assert len(times) >= 5
    for a, b in zip(times, times[1:]):
        assert (b - a) * 1000.0 > 800
