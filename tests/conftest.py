import pytest

from repsense.frame import FeatureSet


def _features(**overrides):
    values = dict(
        g_u=0.0, g_v=0.0, g_w=0.0,
        a_u=0.0, a_v=0.0, a_w=9.81,
        gyro_mag=0.0,
        acc_mag=9.81,
        vertical_accel=0.0,
        avg_gyro=0.0,
        avg_acc=9.81,
        dominant_axis=0,
        u_ratio=0.0, v_ratio=0.0, w_ratio=0.0,
        gravity=(0.0, 0.0, 1.0),
    )
    values.update(overrides)
    return FeatureSet(**values)


@pytest.fixture
def make_features():
    """Build a FeatureSet with sensible at-rest defaults."""
    return _features
