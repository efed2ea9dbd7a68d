import json

import pytest

from utils.config import Config
from utils.constants import BASE_DIR
from utils.settings import load_settings
from utils.failures import ConfigError
from utils.logger import parse_size


def write_json(path, payload) -> None:
    path.write_text(json.dumps(payload))


def test_files_merge_in_sorted_order(tmp_path) -> None:
    write_json(tmp_path / "a.json", {"detection": {"confidence_threshold": 0.4, "max_detections": 3}})
    write_json(tmp_path / "b.json", {"detection": {"confidence_threshold": 0.7}})

    config = Config(configs_dir=str(tmp_path))

    assert config.get("detection.confidence_threshold") == 0.7
    assert config.get("detection.max_detections") == 3
    assert config.get("detection.missing", "x") == "x"


def test_env_overrides_file_values(tmp_path, monkeypatch) -> None:
    write_json(tmp_path / "system.json", {"logging": {"level": "INFO"}})
    monkeypatch.setenv("SECUREFAB_LOG_LEVEL", "DEBUG")

    config = Config(configs_dir=str(tmp_path))

    assert config.get("logging.level") == "DEBUG"


def test_explicit_overrides_win(tmp_path) -> None:
    write_json(tmp_path / "validation.json", {"validation": {"auto_advance": False}})

    config = Config(configs_dir=str(tmp_path), overrides={"validation": {"auto_advance": True}})

    assert config.get_bool("validation.auto_advance") is True


def test_malformed_file_is_a_config_error(tmp_path) -> None:
    (tmp_path / "broken.json").write_text("{")

    with pytest.raises(ConfigError):
        Config(configs_dir=str(tmp_path))


def test_bundled_configuration_loads(monkeypatch) -> None:
    for name in ("SECUREFAB_LOG_LEVEL", "SECUREFAB_STEPS_PATH", "SECUREFAB_MODEL_PATH"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings(Config())

    assert settings.postprocess.confidence_threshold == 0.5
    assert settings.postprocess.max_detections == 4
    assert settings.stability.stability_frames == 10
    assert settings.validation.min_interval_s == 0.5
    assert settings.zones.left_x == 0.33
    assert settings.rates.capture_hz == 30
    assert settings.tracked_objects[39] == "bottle"
    assert settings.steps_path == BASE_DIR / "assets" / "steps.json"


def test_defaults_without_config_files(tmp_path) -> None:
    settings = load_settings(Config(configs_dir=str(tmp_path)))

    assert settings.postprocess.iou_threshold == 0.5
    assert settings.mapping.axis_multiplier == (1.0, -1.0, 1.0)
    assert settings.camera.camera_matrix() is None


@pytest.mark.parametrize("overrides", [
    {"detection": {"confidence_threshold": 0}},
    {"detection": {"confidence_threshold": "high"}},
    {"detection": {"max_detections": 0}},
    {"zones": {"left_x": 0.8, "right_x": 0.6}},
    {"stability": {"stability_frames": 0}},
    {"validation": {"min_interval_s": -1}},
    {"pipeline": {"inference_hz": 0}},
    {"mapping": {"axis_multiplier": [1, 1]}},
    {"camera": {"intrinsics": [[1, 0], [0, 1]]}},
    {"detection": {"tracked_objects": {"bottle": "bottle"}}},
    {"validation": {"auto_advance": "maybe"}},
    {"camera": {"loop_video": 3}},
])
def test_invalid_values_are_rejected_at_startup(tmp_path, overrides) -> None:
    config = Config(configs_dir=str(tmp_path), overrides=overrides)

    with pytest.raises(ConfigError):
        load_settings(config)


@pytest.mark.parametrize("value, expected", [
    ("5MB", 5 * 1024 * 1024),
    ("512kb", 512 * 1024),
    (2048, 2048),
    ("lots", 5 * 1024 * 1024),
])
def test_log_rotation_size_parsing(value, expected) -> None:
    assert parse_size(value) == expected


def test_boolean_spellings_are_accepted(tmp_path) -> None:
    config = Config(
        configs_dir=str(tmp_path),
        overrides={"validation": {"auto_advance": "Yes"}, "camera": {"loop_video": "off"}},
    )

    settings = load_settings(config)

    assert settings.validation.auto_advance is True
    assert settings.camera.loop_video is False
