"""
Gravity-aligned feature extraction for repsense.

The sensor can be held at any angle, so raw gyro axes mean nothing on their
own. We track gravity with a slow recursive filter and build an orthonormal
frame around it:

    w = gravity direction
    u = normalize(gravity x X)   (or gravity x Y when gravity is close to X)
    v = w x u

Projecting gyro onto {u, v, w} makes the curl / hammer / press distinction
(which axis carries the rotation) independent of grip.
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from . import config
from .filters import VectorRecursiveFilter
from .models import Vec3
from .vector import cross, dot, magnitude, normalize, sanitize

X_AXIS = (1.0, 0.0, 0.0)
Y_AXIS = (0.0, 1.0, 0.0)

# |gravity x X| below this means gravity is nearly parallel to X
DEGENERATE_CROSS = 0.1


@dataclass(frozen=True)
class AxisFrame:
    u: Vec3
    v: Vec3
    w: Vec3

    @classmethod
    def from_gravity(cls, gravity_unit: Sequence[float]) -> "AxisFrame":
        u = cross(gravity_unit, X_AXIS)
        if magnitude(u) < DEGENERATE_CROSS:
            u = cross(gravity_unit, Y_AXIS)
        u = normalize(u)
        v = cross(gravity_unit, u)
        return cls(u=u, v=v, w=tuple(gravity_unit))

    def project(self, vec: Sequence[float]) -> Vec3:
        return (dot(vec, self.u), dot(vec, self.v), dot(vec, self.w))


@dataclass(frozen=True)
class FeatureSet:
    """Per-sample features in the gravity frame. Consumed immediately."""
    g_u: float
    g_v: float
    g_w: float
    a_u: float
    a_v: float
    a_w: float
    gyro_mag: float
    acc_mag: float
    vertical_accel: float  # a_w with standard gravity removed
    avg_gyro: float
    avg_acc: float
    dominant_axis: int     # 0=u, 1=v, 2=w
    u_ratio: float
    v_ratio: float
    w_ratio: float
    gravity: Vec3          # unit vector

    @property
    def axis_ratios(self) -> Tuple[float, float, float]:
        return (self.u_ratio, self.v_ratio, self.w_ratio)

    def summary(self) -> dict:
        """Compact dict for UI / logs."""
        return {
            "gU": round(self.g_u, 4),
            "gV": round(self.g_v, 4),
            "gW": round(self.g_w, 4),
            "gyro_mag": round(self.gyro_mag, 4),
            "acc_mag": round(self.acc_mag, 4),
            "vertical_accel": round(self.vertical_accel, 4),
            "dominant_axis": self.dominant_axis,
            "axis_ratios": [round(r, 4) for r in self.axis_ratios],
        }


class GravityFrameExtractor:
    """
    Turn raw (gyro, accel) into a FeatureSet.

    Owns the gravity estimate, which persists for the whole session and is
    only cleared by reset(). The magnitude ring buffers are cleared on
    exercise change via reset_buffers().

    Usage:
        extractor = GravityFrameExtractor()
        features = extractor.extract(gyro=(gx, gy, gz), accel=(ax, ay, az))
    """

    def __init__(
        self,
        gravity_alpha: float = config.GRAVITY_ALPHA,
        buffer_size: int = config.FEATURE_BUFFER_SIZE,
        initial_gravity: Sequence[float] = config.INITIAL_GRAVITY,
        standard_gravity: float = config.STANDARD_GRAVITY
    ):
        """
        Args:
            gravity_alpha: Recursive filter weight for the gravity estimate
            buffer_size: Capacity of the gyro / accel magnitude ring buffers
            initial_gravity: Seed for the gravity estimate (sensor at rest, Z up)
            standard_gravity: Removed from the vertical projection
        """
        self.standard_gravity = standard_gravity
        self._gravity = VectorRecursiveFilter(gravity_alpha, initial=initial_gravity)
        self._gyro_buffer = deque(maxlen=buffer_size)
        self._acc_buffer = deque(maxlen=buffer_size)
        self.last_frame: Optional[AxisFrame] = None

    @property
    def gravity_estimate(self) -> Vec3:
        return self._gravity.state

    def extract(self, gyro: Sequence[float], accel: Sequence[float]) -> FeatureSet:
        gyro = sanitize(gyro)
        accel = sanitize(accel)

        g_unit = normalize(self._gravity.update(accel))
        frame = AxisFrame.from_gravity(g_unit)
        self.last_frame = frame

        g_u, g_v, g_w = frame.project(gyro)
        a_u, a_v, a_w = frame.project(accel)

        gyro_mag = magnitude((g_u, g_v, g_w))
        acc_mag = magnitude(accel)

        self._gyro_buffer.append(gyro_mag)
        self._acc_buffer.append(acc_mag)
        avg_gyro = sum(self._gyro_buffer) / len(self._gyro_buffer)
        avg_acc = sum(self._acc_buffer) / len(self._acc_buffer)

        energies = (abs(g_u), abs(g_v), abs(g_w))
        dominant_axis = energies.index(max(energies))

        # Stationary limb: ratios come out 0, not NaN
        denom = gyro_mag or 1.0

        return FeatureSet(
            g_u=g_u, g_v=g_v, g_w=g_w,
            a_u=a_u, a_v=a_v, a_w=a_w,
            gyro_mag=gyro_mag,
            acc_mag=acc_mag,
            vertical_accel=a_w - self.standard_gravity,
            avg_gyro=avg_gyro,
            avg_acc=avg_acc,
            dominant_axis=dominant_axis,
            u_ratio=energies[0] / denom,
            v_ratio=energies[1] / denom,
            w_ratio=energies[2] / denom,
            gravity=g_unit,
        )

    def reset_buffers(self):
        self._gyro_buffer.clear()
        self._acc_buffer.clear()

    def reset(self):
        self._gravity.reset()
        self.reset_buffers()
        self.last_frame = None


if __name__ == "__main__":
    extractor = GravityFrameExtractor()

    print("1. At rest, Z up, rotating about sensor Y (curl):")
    for _ in range(20):
        f = extractor.extract(gyro=(0.0, 3.0, 0.0), accel=(0.0, 0.0, 9.81))
    print(f"   gU={f.g_u:.2f} gV={f.g_v:.2f} gW={f.g_w:.2f} dominant={f.dominant_axis}")
    print("   Expected: all rotation on U (dominant=0)")

    print("\n2. Gravity along X (degenerate cross product):")
    extractor.reset()
    for _ in range(40):
        f = extractor.extract(gyro=(0.0, 0.0, 0.0), accel=(9.81, 0.0, 0.0))
    frame = extractor.last_frame
    print(f"   u={tuple(round(x, 3) for x in frame.u)} v={tuple(round(x, 3) for x in frame.v)}")
    print("   Expected: u, v span the Y-Z plane")
