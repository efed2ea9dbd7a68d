from core.bus import EventBus
from core.configuration import Configuration
from core.events import AdvanceRequested, ConfigurationValidated
from core.steps import Step
from core.validator import ValidationSettings, Validator
from core.zones import Zone


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def build_validator(**settings):
    bus = EventBus()
    clock = FakeClock()
    events = []
    bus.subscribe(ConfigurationValidated, events.append)
    bus.subscribe(AdvanceRequested, events.append)
    validator = Validator(ValidationSettings(**settings), bus, clock=clock)
    return validator, clock, events


def make_step(expected: Configuration, step_id: int = 0) -> Step:
    return Step(id=step_id, title="Place", body="Place the objects", expected=expected)


def test_empty_expected_matches_empty_detected() -> None:
    validator, _, events = build_validator()

    assert validator.validate(Configuration(), make_step(Configuration())) is True
    assert len(events) == 1
    assert events[0].matched is True


def test_mismatch_is_reported_as_an_event() -> None:
    validator, _, events = build_validator()
    step = make_step(Configuration({Zone.LEFT: "bottle"}))

    assert validator.validate(Configuration({Zone.LEFT: "cup"}), step) is False
    assert events[0].matched is False
    assert events[0].expected == step.expected
    assert events[0].step_id == 0


def test_rate_limit_suppresses_close_calls() -> None:
    validator, clock, events = build_validator(min_interval_s=0.5)
    step = make_step(Configuration())

    assert validator.validate(Configuration(), step) is True
    clock.now += 0.2
    assert validator.validate(Configuration(), step) is None
    clock.now += 0.3
    assert validator.validate(Configuration(), step) is True

    assert len(events) == 2


def test_auto_advance_fires_after_delay() -> None:
    validator, clock, events = build_validator(auto_advance=True, auto_advance_delay_s=1.0)
    step = make_step(Configuration({Zone.LEFT: "bottle"}), step_id=3)

    validator.validate(Configuration({Zone.LEFT: "bottle"}), step, has_next_step=True)
    assert validator.auto_advance_armed

    clock.now += 0.5
    assert validator.tick() is False
    clock.now += 0.5
    assert validator.tick() is True
    assert validator.tick() is False

    advances = [e for e in events if isinstance(e, AdvanceRequested)]
    assert len(advances) == 1
    assert advances[0].step_id == 3


def test_auto_advance_needs_a_next_step() -> None:
    validator, _, _ = build_validator(auto_advance=True)

    validator.validate(Configuration(), make_step(Configuration()), has_next_step=False)

    assert not validator.auto_advance_armed


def test_auto_advance_disabled_by_default() -> None:
    validator, _, _ = build_validator()

    validator.validate(Configuration(), make_step(Configuration()), has_next_step=True)

    assert not validator.auto_advance_armed


def test_mismatch_cancels_auto_advance() -> None:
    validator, clock, events = build_validator(auto_advance=True, min_interval_s=0.0)
    step = make_step(Configuration({Zone.LEFT: "bottle"}))

    validator.validate(Configuration({Zone.LEFT: "bottle"}), step, has_next_step=True)
    validator.validate(Configuration(), step, has_next_step=True)
    clock.now += 5.0

    assert validator.tick() is False
    assert not any(isinstance(e, AdvanceRequested) for e in events)


def test_reset_clears_rate_limit_and_timer() -> None:
    validator, _, events = build_validator(auto_advance=True)
    step = make_step(Configuration())

    validator.validate(Configuration(), step, has_next_step=True)
    validator.reset()

    assert not validator.auto_advance_armed
    assert validator.last_result is None
    assert validator.validate(Configuration(), step) is True
    assert len(events) == 2
