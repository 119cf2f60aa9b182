"""
Session aggregation for repsense.

SessionAggregator is the only writer of rep tallies. It is fed RepEvents and
missed-rep notices and hands out immutable SessionStats snapshots.

SampleLog is an optional, caller-owned record of every processed sample
(for replay comparison or export by an outside collaborator).
"""

from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import Exercise, RepEvent, Sample


def compute_loss_pct(values) -> Optional[float]:
    """Loss % from first to last (fatigue proxy)."""
    if not values or len(values) < 2:
        return None
    first = float(values[0])
    last = float(values[-1])
    if first <= 0:
        return None
    loss = (1.0 - (last / first)) * 100.0
    return round(max(0.0, min(100.0, loss)), 2)


@dataclass
class ExerciseStats:
    good: int = 0
    bad: int = 0
    total: int = 0
    missed: int = 0
    classifications_correct: int = 0
    classifications_total: int = 0

    @property
    def accuracy(self) -> Optional[float]:
        """Share of reps with good form, 0-1."""
        if self.total == 0:
            return None
        return self.good / self.total

    @property
    def classification_accuracy(self) -> Optional[float]:
        if self.classifications_total == 0:
            return None
        return self.classifications_correct / self.classifications_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "good": self.good,
            "bad": self.bad,
            "total": self.total,
            "missed": self.missed,
            "classifications_correct": self.classifications_correct,
            "classifications_total": self.classifications_total,
            "accuracy": self.accuracy,
        }


@dataclass(frozen=True)
class SessionStats:
    exercises: Mapping[Exercise, ExerciseStats]
    missed_reps: int = 0

    def __getitem__(self, exercise: Exercise) -> ExerciseStats:
        return self.exercises[exercise]

    def totals(self) -> Tuple[int, int, int]:
        """(good, bad, total) across every exercise."""
        good = sum(s.good for s in self.exercises.values())
        bad = sum(s.bad for s in self.exercises.values())
        total = sum(s.total for s in self.exercises.values())
        return good, bad, total

    def to_dict(self) -> Dict[str, Any]:
        good, bad, total = self.totals()
        return {
            "exercises": {ex.value: s.to_dict() for ex, s in self.exercises.items()},
            "missed_reps": self.missed_reps,
            "good_reps": good,
            "bad_reps": bad,
            "total_reps": total,
        }


class SessionAggregator:
    """
    Accumulates per-exercise rep counts.

    Usage:
        agg = SessionAggregator()
        agg.apply(rep_event)
        stats = agg.snapshot()
    """

    def __init__(self):
        self._stats: Dict[Exercise, ExerciseStats] = {}
        self.missed_reps = 0
        self.rep_times: List[float] = []
        self.peak_per_rep: List[float] = []
        self._last_rep_t: Optional[float] = None
        self.reset()

    def reset(self):
        self._stats = {ex: ExerciseStats() for ex in Exercise}
        self.missed_reps = 0
        self.rep_times = []
        self.peak_per_rep = []
        self._last_rep_t = None

    def apply(self, event: RepEvent):
        s = self._stats[event.exercise]
        s.total += 1
        # Unknown form counts as bad so good + bad == total always holds
        if event.is_good_form:
            s.good += 1
        else:
            s.bad += 1

        if self._last_rep_t is not None:
            dt = event.timestamp - self._last_rep_t
            if dt > 0:
                self.rep_times.append(dt)
        self._last_rep_t = event.timestamp
        self.peak_per_rep.append(event.peak_value)

    def record_missed(self, exercise: Optional[Exercise]):
        self.missed_reps += 1
        if exercise is not None:
            self._stats[exercise].missed += 1

    def record_classification(self, target: Exercise, predicted: Exercise):
        s = self._stats[target]
        s.classifications_total += 1
        if predicted is target:
            s.classifications_correct += 1

    def get(self, exercise: Exercise) -> ExerciseStats:
        return replace(self._stats[exercise])

    def accuracy(self, exercise: Exercise) -> Optional[float]:
        return self._stats[exercise].accuracy

    def average_tempo(self) -> Optional[float]:
        """Mean seconds between consecutive reps."""
        if not self.rep_times:
            return None
        return sum(self.rep_times) / len(self.rep_times)

    def peak_loss_pct(self) -> Optional[float]:
        return compute_loss_pct(self.peak_per_rep)

    def snapshot(self) -> SessionStats:
        return SessionStats(
            exercises={ex: replace(s) for ex, s in self._stats.items()},
            missed_reps=self.missed_reps,
        )


class SampleLog:
    """
    Per-sample record owned by the caller.

    Pass one into RepDetector to have every processed sample appended.
    capacity=None keeps everything; otherwise the oldest rows are dropped.
    """

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity
        self._rows = deque(maxlen=capacity)

    def append(self, sample: Sample, result) -> None:
        ax, ay, az, gx, gy, gz = sample.as_row()
        self._rows.append({
            "t": sample.t,
            "ax": ax, "ay": ay, "az": az,
            "gx": gx, "gy": gy, "gz": gz,
            "state": result.state.value,
            "detected_rep": result.rep_detected,
            "exercise": result.exercise.value if result.exercise else None,
            "is_good_form": result.is_good_form,
        })

    def rows(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def reps(self) -> List[Dict[str, Any]]:
        return [r for r in self._rows if r["detected_rep"]]

    def clear(self):
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)
