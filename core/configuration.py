"""
Zone configurations: which object label sits in which zone.

A Configuration is the per-cycle observation produced by the aggregator and
also the expected layout attached to each procedure step. Absent zones and
zones holding an empty string compare equal.
"""
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from core.zones import Zone
from utils.failures import ConfigError

_SHORT_NAMES = {Zone.LEFT: "L", Zone.RIGHT: "R", Zone.TOP: "T", Zone.BOTTOM: "B"}


class Configuration:
    """Immutable mapping of placed zones to at most one object label each."""

    __slots__ = ("_labels",)

    def __init__(self, labels: Optional[Mapping[Zone, Optional[str]]] = None):
        normalized: Dict[Zone, str] = {}
        for zone, label in (labels or {}).items():
            if zone is Zone.NONE:
                raise ValueError("Zone.NONE cannot hold an object")
            if label:
                normalized[zone] = str(label)
        self._labels = normalized

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Configuration":
        """Build from a plain mapping such as {"left": "bottle", "top": ""}."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")
        labels = {}
        for name, label in data.items():
            zone = Zone.parse(name)
            if zone is Zone.NONE:
                raise ConfigError("Configuration cannot assign an object to zone 'none'")
            if label is not None and not isinstance(label, str):
                raise ConfigError(f"Label for zone '{name}' must be a string")
            labels[zone] = label
        return cls(labels)

    def to_dict(self) -> Dict[str, str]:
        """Every placed zone, empty string for unpopulated ones."""
        return {zone.value: self._labels.get(zone, "") for zone in Zone.placed()}

    def get(self, zone: Zone) -> Optional[str]:
        return self._labels.get(zone)

    def has_object(self, zone: Zone) -> bool:
        return zone in self._labels

    def items(self) -> Iterable[Tuple[Zone, str]]:
        return self._labels.items()

    def object_count(self) -> int:
        return len(self._labels)

    def is_empty(self) -> bool:
        return not self._labels

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        return self._labels == other._labels

    def __hash__(self) -> int:
        return hash(frozenset(self._labels.items()))

    def __str__(self) -> str:
        parts = [f"{_SHORT_NAMES[z]}:{self._labels.get(z, 'empty')}" for z in Zone.placed()]
        return "[" + ", ".join(parts) + "]"

    def __repr__(self) -> str:
        populated = {zone.value: label for zone, label in self._labels.items()}
        return f"Configuration({populated!r})"


class ConfigurationAggregator:
    """
    Merges one cycle of (detection, zone, label) triples into a Configuration.

    Input is expected in confidence-descending order. The first detection to
    land in a zone claims it; later detections for the same zone are ignored.
    """

    def aggregate(self, assignments: Iterable[Tuple[Any, Zone, Optional[str]]]) -> Configuration:
        labels: Dict[Zone, str] = {}
        for _detection, zone, label in assignments:
            if zone is Zone.NONE or not label:
                continue
            if zone not in labels:
                labels[zone] = label
        return Configuration(labels)
