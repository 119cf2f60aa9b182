"""
Centered local-maximum detection over a short sliding window.

A sample is a peak when it sits in the middle of the window and nothing else
in the window exceeds it. Because the middle of a 5-sample window is only
known once two newer samples exist, every peak is reported two samples late;
Peak.timestamp / Peak.index refer to the peak sample itself, not to the call
that reported it.
"""

from collections import deque
from typing import List, Optional

from . import config
from .models import Peak


class PeakDetector:
    """
    Usage:
        detector = PeakDetector()
        peak = detector.detect(filtered_gyro, t)  # Peak or None
    """

    def __init__(
        self,
        window_size: int = config.PEAK_WINDOW,
        min_samples: int = config.PEAK_MIN_SAMPLES,
        history: int = config.PEAK_HISTORY
    ):
        """
        Args:
            window_size: Sliding window length (samples)
            min_samples: Samples required before testing for a peak
            history: Number of recent peaks retained
        """
        self.window_size = window_size
        self.min_samples = min_samples
        self._window = deque(maxlen=window_size)  # (index, value, timestamp)
        self._peaks = deque(maxlen=history)
        self._count = 0
        self._last_peak: Optional[Peak] = None
        # Lowest value seen strictly between the last peak and the window middle
        self._low_since_peak = float("inf")

    def detect(self, value: float, timestamp: float) -> Optional[Peak]:
        self._window.append((self._count, value, timestamp))
        self._count += 1

        if len(self._window) < self.min_samples:
            return None

        mid = len(self._window) // 2
        mid_index, mid_value, mid_t = self._window[mid]

        if self._last_peak is not None:
            for i in range(mid):
                index, v, _ = self._window[i]
                if index > self._last_peak.index and v < self._low_since_peak:
                    self._low_since_peak = v

        for i, (_, v, _) in enumerate(self._window):
            if i != mid and v > mid_value:
                return None

        if self._is_repeat(mid_value):
            return None

        peak = Peak(value=mid_value, timestamp=mid_t, index=mid_index)
        self._peaks.append(peak)
        self._last_peak = peak
        self._low_since_peak = float("inf")
        return peak

    def _is_repeat(self, value: float) -> bool:
        """
        Same plateau as the last peak: no higher, and the signal never
        dipped below the last peak in between. Covers the middle of a
        still-filling window landing on an already reported sample.
        """
        last = self._last_peak
        if last is None:
            return False
        return value <= last.value and self._low_since_peak >= last.value

    def recent_peaks(self) -> List[Peak]:
        return list(self._peaks)

    @property
    def sample_count(self) -> int:
        return self._count

    def reset(self):
        self._window.clear()
        self._peaks.clear()
        self._count = 0
        self._last_peak = None
        self._low_since_peak = float("inf")


if __name__ == "__main__":
    import math

    print("Testing PeakDetector on a 1 Hz hump signal at 50 Hz:")
    detector = PeakDetector()
    for i in range(150):
        t = i / 50.0
        peak = detector.detect(math.sin(math.pi * t) ** 2, t)
        if peak:
            print(f"  peak {peak.value:.3f} at t={peak.timestamp:.2f}s (reported at t={t:.2f}s)")
    print("  Expected: peaks near t=0.5, 1.5, 2.5")
