import pytest

from core.configuration import Configuration
from core.stability import GateState, StabilityGate, StabilitySettings
from core.zones import Zone
from utils.failures import ConfigError

BOTTLE_LEFT = Configuration({Zone.LEFT: "bottle"})
CUP_LEFT = Configuration({Zone.LEFT: "cup"})


def test_k_minus_one_cycles_keep_gate_stabilizing() -> None:
    gate = StabilityGate(StabilitySettings(stability_frames=10))

    fired = [gate.update(BOTTLE_LEFT) for _ in range(9)]

    assert not any(fired)
    assert gate.state is GateState.STABILIZING


def test_kth_cycle_fires_once() -> None:
    gate = StabilityGate(StabilitySettings(stability_frames=10))

    fired = [gate.update(BOTTLE_LEFT) for _ in range(15)]

    assert fired.index(True) == 9
    assert fired.count(True) == 1
    assert gate.is_stable


def test_first_sighting_does_not_count() -> None:
    gate = StabilityGate(StabilitySettings(stability_frames=3))

    gate.update(BOTTLE_LEFT)

    assert gate.consecutive_matches == 0
    assert gate.state is GateState.UNSTABLE


def test_change_restarts_the_count() -> None:
    gate = StabilityGate(StabilitySettings(stability_frames=3))

    gate.update(BOTTLE_LEFT)
    gate.update(BOTTLE_LEFT)
    assert gate.changed(CUP_LEFT)
    gate.update(CUP_LEFT)

    assert gate.candidate == CUP_LEFT
    assert gate.consecutive_matches == 0
    assert not gate.update(CUP_LEFT)
    assert gate.update(CUP_LEFT)


def test_restabilizing_fires_again() -> None:
    gate = StabilityGate(StabilitySettings(stability_frames=2))

    assert [gate.update(BOTTLE_LEFT) for _ in range(3)] == [False, True, False]
    assert [gate.update(CUP_LEFT) for _ in range(3)] == [False, True, False]


def test_single_frame_gate_fires_on_first_sighting() -> None:
    gate = StabilityGate(StabilitySettings(stability_frames=1))

    assert gate.update(BOTTLE_LEFT)
    assert not gate.update(BOTTLE_LEFT)


def test_reset_clears_candidate() -> None:
    gate = StabilityGate(StabilitySettings(stability_frames=2))
    gate.update(BOTTLE_LEFT)
    gate.update(BOTTLE_LEFT)

    gate.reset()

    assert gate.candidate is None
    assert gate.state is GateState.UNSTABLE


def test_zero_frames_rejected() -> None:
    with pytest.raises(ConfigError):
        StabilitySettings(stability_frames=0)
