import pytest

from core.zones import Zone, ZoneClassifier, ZoneThresholds
from utils.failures import ConfigError


def build_classifier() -> ZoneClassifier:
    return ZoneClassifier(ZoneThresholds(left_x=0.33, right_x=0.66, top_y=0.33, bottom_y=0.66))


def test_left_wins_over_bottom() -> None:
    assert build_classifier().classify(0.1, 0.9) is Zone.LEFT


def test_left_wins_over_top() -> None:
    assert build_classifier().classify(0.1, 0.1) is Zone.LEFT


def test_right_wins_over_vertical_zones() -> None:
    classifier = build_classifier()

    assert classifier.classify(0.9, 0.1) is Zone.RIGHT
    assert classifier.classify(0.9, 0.9) is Zone.RIGHT


def test_vertical_zones_in_the_middle_column() -> None:
    classifier = build_classifier()

    assert classifier.classify(0.5, 0.1) is Zone.TOP
    assert classifier.classify(0.5, 0.9) is Zone.BOTTOM
    assert classifier.classify(0.5, 0.5) is Zone.NONE


def test_thresholds_are_strict() -> None:
    classifier = build_classifier()

    assert classifier.classify(0.33, 0.5) is Zone.NONE
    assert classifier.classify(0.66, 0.5) is Zone.NONE
    assert classifier.classify(0.5, 0.33) is Zone.NONE


@pytest.mark.parametrize("thresholds", [
    dict(left_x=0.7, right_x=0.6),
    dict(top_y=0.5, bottom_y=0.5),
    dict(left_x=-0.1),
    dict(bottom_y=1.2),
])
def test_invalid_thresholds_are_rejected(thresholds) -> None:
    with pytest.raises(ConfigError):
        ZoneThresholds(**thresholds)


def test_zone_parse() -> None:
    assert Zone.parse(" Left ") is Zone.LEFT
    assert Zone.NONE not in Zone.placed()
    with pytest.raises(ConfigError):
        Zone.parse("middle")
