import numpy as np
import pytest

from core.events import Detection, StereoFrame
from core.spatial import MappingSettings, SpatialMapper, transform_matrix
from utils.failures import PoseUnavailable, StereoUnavailable

WIDTH, HEIGHT = 320, 200
FOCAL = 200.0
DISPARITY = 8


def textured_pair(disparity: int = DISPARITY):
    rng = np.random.default_rng(0)
    gray = rng.integers(0, 256, size=(HEIGHT, WIDTH), dtype=np.uint8)
    left = np.dstack([gray, gray, gray])
    # a point at column x in the left image sits at x - disparity in the right image
    right = np.roll(left, -disparity, axis=1)
    return left, right


def camera_matrix() -> np.ndarray:
    return np.array([
        [FOCAL, 0.0, 160.0],
        [0.0, FOCAL, 100.0],
        [0.0, 0.0, 1.0],
    ])


def build_frame(left, right, timestamp: int = 1_000) -> StereoFrame:
    return StereoFrame(left=left, right=right, timestamp=timestamp, camera_matrix=camera_matrix())


def detection_at(u: int, v: int, half: float = 0.05, class_id: int = 39) -> Detection:
    x = u / (WIDTH - 1)
    y = v / (HEIGHT - 1)
    return Detection(box=(x - half, y - half, x + half, y + half), class_id=class_id, confidence=0.9)


def identity_pose(_timestamp):
    return np.eye(4)


def test_disparity_from_shifted_images() -> None:
    left, right = textured_pair()
    mapper = SpatialMapper(MappingSettings(), identity_pose)

    disparity = mapper.find_disparity(left[:, :, 0].copy(), right[:, :, 0].copy(), 200, 100)

    assert disparity == pytest.approx(DISPARITY, rel=0.02)


def test_back_projection_depth_and_offsets() -> None:
    left, right = textured_pair()
    mapper = SpatialMapper(MappingSettings(baseline_m=0.064), identity_pose)

    point = mapper.back_project(build_frame(left, right), 200 / (WIDTH - 1), 100 / (HEIGHT - 1))

    depth = FOCAL * 0.064 / DISPARITY
    assert point[2] == pytest.approx(depth, rel=0.02)
    assert point[0] == pytest.approx(40 * depth / FOCAL, rel=0.02)
    assert point[1] == pytest.approx(0.0, abs=1e-6)


def test_map_detection_applies_axes_offset_and_pose() -> None:
    left, right = textured_pair()
    pose = np.eye(4)
    pose[:3, 3] = (1.0, 2.0, 3.0)
    mapper = SpatialMapper(MappingSettings(), lambda _ts: pose)

    mapped = mapper.map_detection(detection_at(160, 100), build_frame(left, right), slot=2)

    depth = FOCAL * 0.064 / DISPARITY
    assert mapped.slot == 2
    assert mapped.label_text == "bottle".ljust(13)
    assert list(mapped.world_point) == pytest.approx([1.0 + 0.1, 2.0, 3.0 + depth], rel=0.02)
    assert np.allclose(mapped.world_pose[:3, 3], mapped.world_point)
    assert list(mapped.scale) == pytest.approx([0.1 * WIDTH / 2000.0, 0.1 * HEIGHT / 2000.0, 0.05])


def test_vertical_axis_is_flipped() -> None:
    left, right = textured_pair()
    mapper = SpatialMapper(MappingSettings(position_offset=(0.0, 0.0, 0.0)), identity_pose)

    mapped = mapper.map_detection(detection_at(160, 140), build_frame(left, right))

    assert mapped.camera_point[1] > 0
    assert mapped.world_point[1] == pytest.approx(-mapped.camera_point[1])


def test_missing_pose_raises() -> None:
    left, right = textured_pair()
    mapper = SpatialMapper(MappingSettings(), lambda _ts: None)

    with pytest.raises(PoseUnavailable):
        mapper.map_detection(detection_at(160, 100), build_frame(left, right))


def test_textureless_patch_has_no_correspondence() -> None:
    flat = np.full((HEIGHT, WIDTH, 3), 128, dtype=np.uint8)
    mapper = SpatialMapper(MappingSettings(), identity_pose)

    with pytest.raises(StereoUnavailable):
        mapper.map_detection(detection_at(160, 100), build_frame(flat, flat))


def test_patch_off_image_has_no_correspondence() -> None:
    left, right = textured_pair()
    mapper = SpatialMapper(MappingSettings(), identity_pose)

    with pytest.raises(StereoUnavailable):
        mapper.find_disparity(left[:, :, 0].copy(), right[:, :, 0].copy(), 2, 100)


def test_map_all_skips_gaps_and_keeps_slots() -> None:
    left, right = textured_pair()
    mapper = SpatialMapper(MappingSettings(), identity_pose)
    detections = [detection_at(160, 100), detection_at(2, 100, half=0.004), detection_at(200, 60)]

    mapped = mapper.map_all(detections, build_frame(left, right))

    assert [m.slot for m in mapped] == [0, 2]


def test_transform_matrix_layout() -> None:
    m = transform_matrix(np.array([1.0, 2.0, 3.0]), np.array([0.5, 0.25, 2.0]))

    assert np.allclose(m @ np.array([1.0, 1.0, 1.0, 1.0]), [1.5, 2.25, 5.0, 1.0])
