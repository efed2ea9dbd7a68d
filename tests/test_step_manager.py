import pytest

from core.bus import EventBus
from core.configuration import Configuration
from core.events import AdvanceRequested, ProcedureComplete, StepChanged
from core.steps import Step
from Managers.Step_Manager import StepManager
from utils.failures import StepListError


def build_manager(count: int = 3):
    bus = EventBus()
    events = []
    bus.subscribe(StepChanged, events.append)
    bus.subscribe(ProcedureComplete, events.append)
    steps = [Step(id=i, title=f"Step {i}", body="Do it", expected=Configuration()) for i in range(count)]
    return StepManager(steps, bus), bus, events


def test_starts_on_first_step() -> None:
    manager, _, _ = build_manager()

    assert manager.current_step.id == 0
    assert manager.progress_text() == "Step 1 of 3"
    assert manager.has_next_step()
    assert not manager.has_previous_step()


def test_navigation_publishes_step_changed() -> None:
    manager, _, events = build_manager()

    assert manager.next_step()
    assert manager.next_step()
    assert manager.previous_step()

    assert [e.index for e in events] == [1, 2, 1]
    assert events[-1].total == 3
    assert manager.progress_percentage() == pytest.approx(200 / 3)


def test_advancing_past_last_step_completes_procedure() -> None:
    manager, _, events = build_manager(count=2)

    manager.next_step()
    assert manager.next_step() is False

    assert isinstance(events[-1], ProcedureComplete)
    assert events[-1].total_steps == 2
    assert manager.completed
    assert manager.current_step.id == 1


def test_set_by_index_and_reset() -> None:
    manager, _, events = build_manager()

    assert manager.set_step_by_id(2)
    assert not manager.set_step_by_index(5)
    manager.reset()

    assert manager.current_index == 0
    assert [e.index for e in events] == [2, 0]


def test_advance_request_for_current_step() -> None:
    manager, bus, _ = build_manager()

    bus.publish(AdvanceRequested(step_id=0))

    assert manager.current_index == 1


def test_stale_advance_request_is_ignored() -> None:
    manager, bus, _ = build_manager()
    manager.next_step()

    bus.publish(AdvanceRequested(step_id=0))

    assert manager.current_index == 1


def test_invalid_step_list_is_rejected() -> None:
    with pytest.raises(StepListError):
        StepManager([], EventBus())
