import pytest

from core.configuration import Configuration, ConfigurationAggregator
from core.zones import Zone
from utils.failures import ConfigError


def test_empty_string_equals_absent() -> None:
    explicit = Configuration.from_dict({"left": "bottle", "right": "", "top": "", "bottom": ""})
    sparse = Configuration.from_dict({"left": "bottle"})

    assert explicit == sparse
    assert sparse == explicit
    assert hash(explicit) == hash(sparse)


def test_equality_is_reflexive_and_symmetric() -> None:
    a = Configuration({Zone.LEFT: "bottle", Zone.TOP: "cup"})
    b = Configuration({Zone.TOP: "cup", Zone.LEFT: "bottle"})
    c = Configuration({Zone.LEFT: "bottle"})

    assert a == a
    assert a == b and b == a
    assert a != c and c != a


def test_empty_configurations_match() -> None:
    assert Configuration() == Configuration.from_dict({"left": "", "right": "", "top": "", "bottom": ""})
    assert Configuration().is_empty()


def test_readable_string_and_dict_export() -> None:
    configuration = Configuration.from_dict({"left": "bottle", "bottom": "book"})

    assert str(configuration) == "[L:bottle, R:empty, T:empty, B:book]"
    assert configuration.to_dict() == {"left": "bottle", "right": "", "top": "", "bottom": "book"}
    assert configuration.object_count() == 2
    assert configuration.has_object(Zone.BOTTOM)
    assert configuration.get(Zone.RIGHT) is None


def test_from_dict_rejects_bad_input() -> None:
    with pytest.raises(ConfigError):
        Configuration.from_dict({"middle": "bottle"})
    with pytest.raises(ConfigError):
        Configuration.from_dict({"none": "bottle"})
    with pytest.raises(ConfigError):
        Configuration.from_dict({"left": 3})
    with pytest.raises(ConfigError):
        Configuration.from_dict(["left"])


def test_aggregator_first_detection_wins_per_zone() -> None:
    aggregator = ConfigurationAggregator()

    configuration = aggregator.aggregate([
        ("d1", Zone.LEFT, "bottle"),
        ("d2", Zone.LEFT, "cup"),
        ("d3", Zone.RIGHT, "book"),
    ])

    assert configuration == Configuration({Zone.LEFT: "bottle", Zone.RIGHT: "book"})


def test_aggregator_ignores_neutral_zone_and_missing_labels() -> None:
    aggregator = ConfigurationAggregator()

    configuration = aggregator.aggregate([
        ("d1", Zone.NONE, "bottle"),
        ("d2", Zone.TOP, None),
        ("d3", Zone.TOP, "scissors"),
    ])

    assert configuration == Configuration({Zone.TOP: "scissors"})
