import numpy as np
import pytest

from core.events import Detection, MappedObject
from core.labels import LabelMap, fixed_width
from core.stages.render import build_slots
from Handlers.Head_Pose_Handler import PoseHistory
from Handlers.Model_Inference_Handler import ModelInferenceHandler
from Handlers.Stereo_Input_Handler import StereoInputHandler, default_camera_matrix
from utils.failures import ConfigError, ContractViolation


def translation_pose(x: float) -> np.ndarray:
    pose = np.eye(4)
    pose[0, 3] = x
    return pose


def test_pose_lookup_returns_nearest_within_tolerance() -> None:
    history = PoseHistory(tolerance_ns=10)
    history.record(100, translation_pose(1.0))
    history.record(200, translation_pose(2.0))

    assert history.lookup(104)[0, 3] == 1.0
    assert history.lookup(197)[0, 3] == 2.0
    assert history.lookup(150) is None
    assert PoseHistory().lookup(0) is None


def test_pose_history_is_bounded() -> None:
    history = PoseHistory(capacity=2, tolerance_ns=0)
    for ts in (1, 2, 3):
        history.record(ts, translation_pose(float(ts)))

    assert len(history) == 2
    assert history.lookup(1) is None
    assert history.lookup(3)[0, 3] == 3.0


def test_pose_must_be_4x4() -> None:
    with pytest.raises(ValueError):
        PoseHistory().record(1, np.eye(3))


def test_side_by_side_frame_is_split_and_stamped() -> None:
    poses = PoseHistory()
    handler = StereoInputHandler("unused.mp4", eye_size=(80, 60), poses=poses)
    frame = np.zeros((120, 320, 3), dtype=np.uint8)
    frame[:, 160:] = 255

    stereo = handler.split(frame, timestamp=42)

    assert stereo.left.shape == (60, 80, 3)
    assert stereo.right.shape == (60, 80, 3)
    assert stereo.left.max() == 0
    assert stereo.right.min() == 255
    assert stereo.size == (80, 60)
    assert stereo.timestamp == 42
    assert np.array_equal(poses.lookup(42), np.eye(4))


def test_missing_video_fails_to_start(tmp_path) -> None:
    handler = StereoInputHandler(str(tmp_path / "none.mp4"))

    assert handler.start() is False
    assert handler.read_frame() is None


def test_default_camera_matrix_is_centred() -> None:
    k = default_camera_matrix(200, 100, fov_deg=90.0)

    assert k[0, 0] == pytest.approx(100.0)
    assert (k[0, 2], k[1, 2]) == (100.0, 50.0)


def test_detector_output_is_reshaped_to_anchor_major() -> None:
    output = np.arange(84 * 8400, dtype=np.float32).reshape(1, 84, 8400)

    reshaped = ModelInferenceHandler.to_anchor_major(output)

    assert reshaped.shape == (8400, 84)
    assert reshaped[5, 3] == output[0, 3, 5]
    with pytest.raises(ContractViolation):
        ModelInferenceHandler.to_anchor_major(np.zeros(5))


def test_missing_model_is_a_config_error(tmp_path) -> None:
    with pytest.raises(ConfigError):
        ModelInferenceHandler(str(tmp_path / "model.onnx")).load()


def test_label_text_is_fixed_width() -> None:
    labels = LabelMap()

    assert labels.label_text(39) == "bottle".ljust(13)
    assert len(labels.label_text(10)) == 13
    assert labels.label_text(10) == "fire hydrant "
    assert fixed_width("a very long label name") == "a very long l"
    assert labels.object_label(39) == "bottle"
    assert labels.object_label(0) is None


def test_render_slots_cover_every_detection_slot() -> None:
    detection = Detection(box=(0.1, 0.1, 0.2, 0.2), class_id=41, confidence=0.45)
    mapped = MappedObject(
        slot=1,
        detection=detection,
        label_text=fixed_width("cup"),
        camera_point=np.zeros(3),
        world_point=np.zeros(3),
        scale=np.ones(3),
        world_pose=np.eye(4),
    )

    slots = build_slots((mapped,), max_detections=3, confidence_threshold=0.4)

    assert [s.index for s in slots] == [0, 1, 2]
    assert slots[1].visible and slots[1].label_text == "cup".ljust(13)
    assert not slots[0].visible and slots[0].world_pose is None
    assert not build_slots((mapped,), 3, confidence_threshold=0.45)[1].visible
