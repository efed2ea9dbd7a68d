"""
Procedure steps and step-list validation.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

from core.configuration import Configuration
from utils.failures import ConfigError, StepListError


@dataclass(frozen=True)
class Step:
    """A single training step and the zone layout it expects."""
    id: int
    title: str
    body: str
    expected: Configuration

    def is_valid(self) -> bool:
        return (
            isinstance(self.id, int)
            and self.id >= 0
            and bool(self.title)
            and bool(self.body)
            and self.expected is not None
        )

    def summary(self) -> str:
        return f"Step {self.id}: {self.title} - Config: {self.expected}"

    def instruction_text(self) -> str:
        return f"{self.title}\n\n{self.body}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Step":
        if not isinstance(data, Mapping):
            raise StepListError(f"Step entry must be an object, got {type(data).__name__}")
        if "expected_config" not in data or data["expected_config"] is None:
            raise StepListError(f"Step {data.get('id')!r} has no expected_config")
        try:
            expected = Configuration.from_dict(data["expected_config"])
        except ConfigError as e:
            raise StepListError(f"Step {data.get('id')!r}: {e.message}") from e
        return cls(
            id=data.get("id", -1),
            title=data.get("title") or "",
            body=data.get("body") or "",
            expected=expected,
        )


def validate_steps(steps: Optional[Sequence[Step]]) -> Tuple[Step, ...]:
    """
    Reject an empty list, invalid steps, or ids that are not exactly 0..N-1 in order.

    Returns the steps as a tuple.
    """
    if not steps:
        raise StepListError("Step list is empty")
    for index, step in enumerate(steps):
        if not step.is_valid():
            raise StepListError(f"Step at position {index} is invalid: {step!r}")
        if step.id != index:
            raise StepListError(f"Step ids must be sequential from 0: position {index} has id {step.id}")
    return tuple(steps)
