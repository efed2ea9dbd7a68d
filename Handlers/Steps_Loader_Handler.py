"""Steps Loader Handler - Reads the training procedure from a JSON file.

Expected layout:

    {"steps": [{"id": 0, "title": "...", "body": "...",
                "expected_config": {"left": "bottle", "right": "", ...}}, ...]}
"""
import json
from pathlib import Path
from typing import Tuple, Union

from core.steps import Step, validate_steps
from utils.failures import StepListError
from utils.logger import Logger

logger = Logger("StepsLoader")


def load_steps(path: Union[str, Path]) -> Tuple[Step, ...]:
    """
    Load and validate a step list.

    Raises:
        StepListError: the file is missing or malformed, or the list is
                       empty or not numbered 0..N-1.
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StepListError(f"Failed to load steps from {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("steps"), list):
        raise StepListError(f"{path} must contain an object with a 'steps' list")

    steps = validate_steps([Step.from_dict(entry) for entry in data["steps"]])
    logger.info(f"Loaded {len(steps)} step(s) from {path}")
    for step in steps:
        logger.debug(step.summary())
    return steps
