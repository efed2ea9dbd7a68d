"""Class id -> object label lookup."""
from typing import Mapping, Optional, Sequence

from utils.constants import COCO_CLASS_NAMES, DEFAULT_TRACKED_OBJECTS, LABEL_TEXT_WIDTH


def fixed_width(text: str, width: int = LABEL_TEXT_WIDTH) -> str:
    """Truncate or right-pad with spaces to exactly `width` characters."""
    return text[:width].ljust(width)


class LabelMap:
    """
    Resolves detector class ids.

    `tracked` lists the training objects that take part in zone configurations;
    `class_names` covers every class the detector knows and is used for the
    label drawn next to a detection.
    """

    def __init__(
        self,
        tracked: Optional[Mapping[int, str]] = None,
        class_names: Sequence[str] = COCO_CLASS_NAMES,
    ):
        self.tracked = dict(DEFAULT_TRACKED_OBJECTS if tracked is None else tracked)
        self.class_names = tuple(class_names)

    def object_label(self, class_id: int) -> Optional[str]:
        """Training-object label, or None for classes that are not tracked."""
        return self.tracked.get(class_id)

    def class_name(self, class_id: int) -> str:
        if 0 <= class_id < len(self.class_names):
            return self.class_names[class_id]
        return self.tracked.get(class_id, str(class_id))

    def label_text(self, class_id: int) -> str:
        return fixed_width(self.class_name(class_id))
