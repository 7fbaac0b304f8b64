import numpy as np
import pytest
from scipy import stats

from abcpmc.inference.distances import (
    CalibratedDistance,
    DistanceNotCalibratedError,
    EuclideanDistance,
    MADScaledDistance,
    UninitializedDistance,
    calibrate,
    evaluate,
)

REFERENCE = np.array(
    [
        [0.0, 0.0],
        [1.0, 10.0],
        [2.0, 20.0],
        [3.0, 30.0],
        [4.0, 40.0],
    ]
)


def test_euclidean_needs_no_calibration():
    distance = UninitializedDistance(EuclideanDistance([1.0, 2.0]))
    assert not distance.calibrated
    assert distance.evaluate([4.0, 6.0]) == pytest.approx(5.0)


def test_mad_distance_requires_calibration():
    distance = UninitializedDistance(MADScaledDistance([0.0, 0.0]))
    with pytest.raises(DistanceNotCalibratedError):
        distance.evaluate([1.0, 1.0])


def test_mad_calibration_scales_each_statistic():
    normal_factor = 1.0 / stats.norm.ppf(0.75)
    calibrated = calibrate(UninitializedDistance(MADScaledDistance([0.0, 0.0])), REFERENCE)
    assert isinstance(calibrated, CalibratedDistance)
    assert calibrated.n_reference == 5
    assert np.allclose(calibrated.fitted["scale"], [normal_factor, 10 * normal_factor])
    assert evaluate(calibrated, [normal_factor, 10 * normal_factor]) == pytest.approx(np.sqrt(2.0))


def test_calibration_builds_new_value():
    raw = UninitializedDistance(MADScaledDistance([0.0, 0.0]))
    first = raw.calibrate(REFERENCE, None)
    second = first.calibrate(REFERENCE * 2, None)
    assert second is not first
    assert not raw.calibrated
    assert np.allclose(second.fitted["scale"], 2 * first.fitted["scale"])
    assert first.evaluate([1.0, 10.0]) != second.evaluate([1.0, 10.0])


def test_evaluate_is_deterministic():
    calibrated = calibrate(UninitializedDistance(MADScaledDistance([1.0, 5.0])), REFERENCE)
    s = np.array([2.5, 17.0])
    assert calibrated.evaluate(s) == calibrated.evaluate(s)


def test_zero_mad_falls_back_to_unit_scale():
    reference = np.column_stack([np.arange(5.0), np.full(5, 3.0)])
    calibrated = calibrate(UninitializedDistance(MADScaledDistance([0.0, 0.0])), reference)
    assert calibrated.fitted["scale"][1] == 1.0


def test_wrong_length_raises():
    distance = UninitializedDistance(EuclideanDistance([1.0, 2.0]))
    with pytest.raises(ValueError):
        distance.evaluate([1.0])


def test_empty_reference_raises():
    with pytest.raises(ValueError):
        calibrate(UninitializedDistance(MADScaledDistance([0.0])), np.empty((0, 1)))


def test_calibrating_fixed_scale_leaves_metric_writable():
    metric = EuclideanDistance([0.0, 0.0], scale=[1.0, 2.0])
    calibrated = calibrate(UninitializedDistance(metric), REFERENCE)
    assert calibrated.fitted["scale"] is not metric.scale
    assert not calibrated.fitted["scale"].flags.writeable
    assert metric.scale.flags.writeable
    metric.scale[1] = 4.0
    assert calibrated.evaluate([0.0, 4.0]) == pytest.approx(2.0)
