import pytest

from repsense.frame import GravityFrameExtractor
from repsense.models import Exercise, MovementState, UnknownExerciseError
from repsense.simulate import hump_stream, square_wave_stream, stationary
from repsense.state_machine import RepStateMachine


def _run(machine, samples):
    extractor = GravityFrameExtractor()
    steps = []
    for s in samples:
        steps.append(machine.update(extractor.extract(s.gyro, s.accel), s.t))
    return steps


def _reps(steps):
    return [step.rep for step in steps if step.rep is not None]


def test_no_profile_stays_idle():
    machine = RepStateMachine()
    steps = _run(machine, square_wave_stream("x", 3.0, 1.0, 1.0, cycles=2))
    assert all(step.state == MovementState.IDLE for step in steps)
    assert _reps(steps) == []


def test_stationary_stream_has_no_reps():
    machine = RepStateMachine(Exercise.NORMAL_CURL)
    steps = _run(machine, stationary(500))
    assert _reps(steps) == []
    assert all(step.state == MovementState.IDLE for step in steps)
    assert steps[-1].energy == 0.0


def test_square_wave_hammer_reps():
    machine = RepStateMachine(Exercise.HAMMER_CURL)
    steps = _run(machine, square_wave_stream("x", 3.0, 1.0, 1.0, cycles=10))
    reps = _reps(steps)
    assert len(reps) == 10
    assert all(r.exercise is Exercise.HAMMER_CURL for r in reps)
    assert all(r.is_good_form for r in reps)


def test_curl_humps_counted_once_each():
    machine = RepStateMachine(Exercise.NORMAL_CURL)
    steps = _run(machine, hump_stream("y", amplitude=4.0, period_s=2.5, duration_s=25.0))
    reps = _reps(steps)
    assert len(reps) == 10
    assert all(r.peak_value > 2.0 for r in reps)


def test_wrong_axis_is_not_a_valid_curl():
    # rotation about the hammer axis never passes the curl validity check
    machine = RepStateMachine(Exercise.NORMAL_CURL)
    steps = _run(machine, hump_stream("x", amplitude=4.0, period_s=2.5, duration_s=10.0))
    assert _reps(steps) == []


def test_reps_respect_refractory_period():
    machine = RepStateMachine(Exercise.NORMAL_CURL)
    # humps every 0.6 s, faster than the 950 ms refractory period
    steps = _run(machine, hump_stream("y", amplitude=4.0, period_s=0.6, duration_s=12.0))
    times = [r.timestamp for r in _reps(steps)]
    assert times
    for a, b in zip(times, times[1:]):
        assert (b - a) * 1000.0 > 950


def test_first_rep_not_blocked_by_refractory():
    machine = RepStateMachine(Exercise.HAMMER_CURL)
    steps = _run(machine, square_wave_stream("x", 3.0, 0.5, 0.5, cycles=1))
    reps = _reps(steps)
    assert len(reps) == 1
    assert reps[0].timestamp < 0.8


def test_weak_peaks_are_rejected():
    machine = RepStateMachine(Exercise.NORMAL_CURL)
    steps = _run(machine, hump_stream("y", amplitude=1.5, period_s=2.0, duration_s=10.0))
    assert any(step.state == MovementState.MOVING for step in steps)
    assert _reps(steps) == []


def test_hysteresis_exit():
    machine = RepStateMachine(Exercise.NORMAL_CURL)
    steps = _run(machine, hump_stream("x", amplitude=4.0, period_s=2.5, duration_s=2.5))
    states = [step.state for step in steps]
    assert MovementState.MOVING in states
    assert states[-1] == MovementState.IDLE


def test_stuck_movement_reports_missed_rep():
    machine = RepStateMachine(Exercise.NORMAL_CURL)
    extractor = GravityFrameExtractor()
    missed = []
    for i in range(250):
        t = i / 50.0
        step = machine.update(extractor.extract((3.0, 0.0, 0.0), (0.0, 0.0, 9.81)), t)
        if step.missed:
            missed.append(t)
    assert len(missed) == 1
    assert missed[0] > 3.0


def test_set_exercise_unknown_leaves_state_untouched():
    machine = RepStateMachine(Exercise.HAMMER_CURL)
    with pytest.raises(UnknownExerciseError):
        machine.set_exercise("deadlift")
    assert machine.exercise is Exercise.HAMMER_CURL


def test_switch_keeps_refractory():
    machine = RepStateMachine(Exercise.HAMMER_CURL)
    _run(machine, square_wave_stream("x", 3.0, 1.0, 1.0, cycles=1))
    last = machine.last_rep_time
    assert last is not None

    machine.set_exercise(Exercise.NORMAL_CURL)
    assert machine.last_rep_time == last
    assert machine.state == MovementState.IDLE
    assert machine.energy == 0.0

    machine.reset()
    assert machine.last_rep_time is None
    assert machine.exercise is Exercise.NORMAL_CURL


def test_one_hertz_square_wave_hammer():
    machine = RepStateMachine(Exercise.HAMMER_CURL)
    steps = _run(machine, square_wave_stream("x", 3.0, 0.5, 0.5, cycles=10))
    assert 9 <= len(_reps(steps)) <= 10
    assert steps[-1].state == MovementState.IDLE


def test_idle_with_zero_energy_after_rep():
    machine = RepStateMachine(Exercise.HAMMER_CURL)
    for step in _run(machine, square_wave_stream("x", 3.0, 1.0, 1.0, cycles=3)):
        if step.rep is not None:
            assert step.state == MovementState.IDLE
            assert step.energy == 0.0
