"""
Typed, validated settings built once from the merged JSON configuration.

Every value is checked here or in the settings dataclass it feeds, so a bad
configuration fails at startup with ConfigError before any stage runs.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np

from core.postprocess import PostProcessorSettings
from core.spatial import MappingSettings
from core.stability import StabilitySettings
from core.validator import ValidationSettings
from core.zones import ZoneThresholds
from utils.config import Config
from utils.constants import BASE_DIR, DEFAULT_MODEL_PATH, DEFAULT_STEPS_PATH, DEFAULT_TRACKED_OBJECTS
from utils.failures import ConfigError


@dataclass(frozen=True)
class StageRates:
    capture_hz: float = 30.0
    inference_hz: float = 5.0
    mapping_hz: float = 5.0
    render_hz: float = 5.0
    validation_hz: float = 30.0

    def __post_init__(self):
        for name, value in vars(self).items():
            if value <= 0:
                raise ConfigError(f"pipeline.{name} must be positive, got {value}")


@dataclass(frozen=True)
class CameraSettings:
    width: int = 1280
    height: int = 960
    fov_deg: float = 90.0
    loop_video: bool = True
    intrinsics: Optional[Tuple[Tuple[float, ...], ...]] = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"Camera size must be positive, got {self.width}x{self.height}")
        if not 0.0 < self.fov_deg < 180.0:
            raise ConfigError(f"camera.fov_deg must be in (0, 180), got {self.fov_deg}")
        if self.intrinsics is not None and (
            len(self.intrinsics) != 3 or any(len(row) != 3 for row in self.intrinsics)
        ):
            raise ConfigError("camera.intrinsics must be a 3x3 matrix")

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def camera_matrix(self) -> Optional[np.ndarray]:
        if self.intrinsics is None:
            return None
        return np.asarray(self.intrinsics, dtype=np.float64)


@dataclass(frozen=True)
class Settings:
    postprocess: PostProcessorSettings
    zones: ZoneThresholds
    stability: StabilitySettings
    validation: ValidationSettings
    mapping: MappingSettings
    rates: StageRates
    camera: CameraSettings
    tracked_objects: Dict[int, str]
    steps_path: Path
    model_path: Path
    shutdown_timeout_s: float = 1.0


def _number(config: Config, key: str, default: Any, cast=float):
    value = config.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e


def _vector(config: Config, key: str, default: Tuple[float, float, float]) -> Tuple[float, float, float]:
    value = config.get(key, default)
    try:
        vector = tuple(float(v) for v in value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a list of 3 numbers, got {value!r}") from e
    if len(vector) != 3:
        raise ConfigError(f"{key} must be a list of 3 numbers, got {value!r}")
    return vector


def _project_path(value: Optional[str], default: Path) -> Path:
    """Relative paths in config files are relative to the project root."""
    if not value:
        return default
    path = Path(value)
    return path if path.is_absolute() else BASE_DIR / path


def _tracked_objects(config: Config) -> Dict[int, str]:
    raw = config.get('detection.tracked_objects')
    if raw is None:
        return dict(DEFAULT_TRACKED_OBJECTS)
    if not isinstance(raw, dict) or not raw:
        raise ConfigError("detection.tracked_objects must be a non-empty object")
    tracked = {}
    for class_id, label in raw.items():
        try:
            class_id = int(class_id)
        except ValueError as e:
            raise ConfigError(f"Tracked object id {class_id!r} is not an integer") from e
        if not isinstance(label, str) or not label:
            raise ConfigError(f"Tracked object {class_id} needs a non-empty label")
        tracked[class_id] = label
    return tracked


def load_settings(config: Config) -> Settings:
    """
    Build all typed settings from a Config.

    Raises:
        ConfigError: any value is missing its type or outside its range.
    """
    postprocess = PostProcessorSettings(
        confidence_threshold=_number(config, 'detection.confidence_threshold', 0.5),
        iou_threshold=_number(config, 'detection.iou_threshold', 0.5),
        max_detections=_number(config, 'detection.max_detections', 4, int),
        num_anchors=_number(config, 'detection.num_anchors', PostProcessorSettings.num_anchors, int),
        num_classes=_number(config, 'detection.num_classes', PostProcessorSettings.num_classes, int),
        input_width=_number(config, 'detection.input_width', PostProcessorSettings.input_width, int),
        input_height=_number(config, 'detection.input_height', PostProcessorSettings.input_height, int),
    )

    zones = ZoneThresholds(
        left_x=_number(config, 'zones.left_x', 0.33),
        right_x=_number(config, 'zones.right_x', 0.66),
        top_y=_number(config, 'zones.top_y', 0.33),
        bottom_y=_number(config, 'zones.bottom_y', 0.66),
    )

    stability = StabilitySettings(
        stability_frames=_number(config, 'stability.stability_frames', 10, int),
    )

    validation = ValidationSettings(
        min_interval_s=_number(config, 'validation.min_interval_s', 0.5),
        auto_advance=config.get_bool('validation.auto_advance', False),
        auto_advance_delay_s=_number(config, 'validation.auto_advance_delay_s', 1.0),
    )

    mapping = MappingSettings(
        baseline_m=_number(config, 'mapping.baseline_m', MappingSettings.baseline_m),
        reference_depth=_number(config, 'mapping.reference_depth', MappingSettings.reference_depth),
        depth_scale=_number(config, 'mapping.depth_scale', MappingSettings.depth_scale),
        axis_multiplier=_vector(config, 'mapping.axis_multiplier', MappingSettings.axis_multiplier),
        position_offset=_vector(config, 'mapping.position_offset', MappingSettings.position_offset),
        patch_size=_number(config, 'mapping.patch_size', MappingSettings.patch_size, int),
        max_disparity=_number(config, 'mapping.max_disparity', MappingSettings.max_disparity, int),
        min_disparity=_number(config, 'mapping.min_disparity', MappingSettings.min_disparity),
        min_match_score=_number(config, 'mapping.min_match_score', MappingSettings.min_match_score),
    )

    rates = StageRates(
        capture_hz=_number(config, 'pipeline.capture_hz', 30.0),
        inference_hz=_number(config, 'pipeline.inference_hz', 5.0),
        mapping_hz=_number(config, 'pipeline.mapping_hz', 5.0),
        render_hz=_number(config, 'pipeline.render_hz', 5.0),
        validation_hz=_number(config, 'pipeline.validation_hz', 30.0),
    )

    intrinsics = config.get('camera.intrinsics')
    try:
        intrinsics = tuple(tuple(float(v) for v in row) for row in intrinsics) if intrinsics else None
    except (TypeError, ValueError) as e:
        raise ConfigError(f"camera.intrinsics must be a 3x3 matrix, got {intrinsics!r}") from e
    camera = CameraSettings(
        width=_number(config, 'camera.width', 1280, int),
        height=_number(config, 'camera.height', 960, int),
        fov_deg=_number(config, 'camera.fov_deg', 90.0),
        loop_video=config.get_bool('camera.loop_video', True),
        intrinsics=intrinsics,
    )

    shutdown_timeout_s = _number(config, 'pipeline.shutdown_timeout_s', 1.0)
    if shutdown_timeout_s <= 0:
        raise ConfigError(f"pipeline.shutdown_timeout_s must be positive, got {shutdown_timeout_s}")

    return Settings(
        postprocess=postprocess,
        zones=zones,
        stability=stability,
        validation=validation,
        mapping=mapping,
        rates=rates,
        camera=camera,
        tracked_objects=_tracked_objects(config),
        steps_path=_project_path(config.get('steps.path'), DEFAULT_STEPS_PATH),
        model_path=_project_path(config.get('detection.model_path'), DEFAULT_MODEL_PATH),
        shutdown_timeout_s=shutdown_timeout_s,
    )
