import itertools

import numpy as np
import pytest

from cubescan.app_types import Color, FaceletClassification, GridBounds
from cubescan.config import CANONICAL_RGB
from cubescan.detector import (
    ColorClassifier,
    LightingCalibration,
    correct_for_lighting,
    distance_matches,
    fused_confidence,
    hsv_matches,
    label_by_priority,
    lab_matches,
    rgb_matches,
)
from cubescan.frame import Frame


@pytest.fixture
def classifier():
    return ColorClassifier()


def test_white_is_confident(classifier):
    result = classifier.classify((255, 255, 255))
    assert result.label is Color.WHITE
    assert result.confidence > 0.9


@pytest.mark.parametrize("name, rgb", sorted(CANONICAL_RGB.items()))
def test_canonical_colors_classify_to_themselves(classifier, name, rgb):
    result = classifier.classify(rgb)
    assert result.label is Color(name)
    assert result.confidence > 0.8
    assert classifier.is_valid(result)


@pytest.mark.parametrize("rgb, expected", [
    ((200, 30, 30), Color.RED),
    ((230, 120, 20), Color.ORANGE),
    ((220, 210, 40), Color.YELLOW),
    ((30, 150, 60), Color.GREEN),
    ((20, 60, 200), Color.BLUE),
    ((235, 235, 230), Color.WHITE),
])
def test_realistic_sticker_colors(classifier, rgb, expected):
    assert classifier.classify(rgb).label is expected


def test_confidence_stays_in_unit_interval(classifier):
    for rgb in itertools.product(range(0, 256, 51), repeat=3):
        c = classifier.classify(rgb).confidence
        assert 0.0 <= c <= 1.0


@pytest.mark.parametrize("technique", [hsv_matches, lab_matches, rgb_matches, distance_matches],
                         ids=lambda f: f.__name__)
def test_rule_sets_are_mutually_exclusive(technique):
    for rgb in itertools.product(range(0, 256, 17), repeat=3):
        assert len(technique(rgb)) <= 1, rgb


def test_mid_gray_is_unknown(classifier):
    result = classifier.classify((128, 128, 128))
    assert result.label is Color.UNKNOWN
    assert result.confidence == 0.0
    assert not classifier.is_valid(result)


def test_missing_sample_is_unknown(classifier):
    assert classifier.classify(None) == FaceletClassification(Color.UNKNOWN, 0.0)


def test_dark_sample_is_retried_with_lighting_correction():
    assert label_by_priority((60, 60, 60)) == (Color.UNKNOWN, None)
    detail = ColorClassifier().explain((60, 60, 60))
    assert detail.label is Color.WHITE
    assert detail.technique == 'distance'
    assert detail.rgb == (150, 150, 150)
    assert ColorClassifier(retry_with_lighting=False).classify((60, 60, 60)).label is Color.UNKNOWN


@pytest.mark.parametrize("rgb, expected", [
    ((50, 50, 50), (150, 150, 150)),
    ((240, 240, 240), (180, 180, 180)),
    ((150, 120, 90), (150, 120, 90)),
    ((0, 0, 0), (0, 0, 0)),
])
def test_correct_for_lighting(rgb, expected):
    assert correct_for_lighting(rgb) == expected


def test_lighting_calibration_rebalances_channels():
    cal = LightingCalibration.from_samples([(200, 100, 100)])
    assert cal.avg_brightness == pytest.approx(400 / 3)
    assert cal.balance == pytest.approx((1.5, 0.75, 0.75))
    assert cal.apply((150, 75, 75)) == (100, 100, 100)
    assert ColorClassifier(calibration=cal).explain((150, 75, 75)).rgb == (100, 100, 100)


def test_lighting_calibration_needs_samples():
    assert LightingCalibration.from_samples(np.zeros((0, 3))) is None
    assert LightingCalibration.from_samples([(0, 0, 0)]) is None

def test_lighting_calibration_reads_lattice_over_grid():
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    xs, ys = [10, 20, 30, 40, 50], [20, 30, 40, 50, 60]
    image[np.ix_(ys, xs)] = (90, 60, 30)
    cal = LightingCalibration.from_frame(Frame(image), GridBounds(10, 20, 40, 40))
    assert cal.samples == 25
    assert cal.avg_brightness == pytest.approx(60.0)
    assert cal.balance == pytest.approx((1.5, 1.0, 0.5))


def test_lighting_calibration_clips_lattice_to_frame():
    frame = Frame(np.full((480, 640, 3), (200, 100, 100), dtype=np.uint8))
    assert LightingCalibration.from_frame(frame, GridBounds(224, 144, 192, 192)).samples == 25
    assert LightingCalibration.from_frame(frame, GridBounds(600, 0, 80, 80)).samples == 10
    assert LightingCalibration.from_frame(frame, GridBounds(5000, 5000, 90, 90)) is None


def test_confidence_floor_is_exclusive():
    clf = ColorClassifier(confidence_floor=0.5)
    assert not clf.is_valid(FaceletClassification(Color.RED, 0.5))
    assert clf.is_valid(FaceletClassification(Color.RED, 0.51))
    assert not clf.is_valid(FaceletClassification(Color.UNKNOWN, 0.9))


def test_fused_confidence_uses_fixed_weights():
    total, scores = fused_confidence(Color.BLUE, (0, 0, 255))
    assert set(scores) == {'hsv', 'lab', 'rgb', 'distance'}
    expected = 0.35 * scores['rgb'] + 0.25 * scores['hsv'] + 0.15 * scores['lab'] + 0.25 * scores['distance']
    assert total == pytest.approx(expected)
    assert fused_confidence(Color.UNKNOWN, (0, 0, 255)) == (0.0, {})
