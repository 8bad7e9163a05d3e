from pathlib import Path

import pytest

from cogniread.config import CogniReadConfig, OpenAISettings, config_from_dict, load_config


def test_defaults():
    cfg = load_config()
    assert cfg.min_read_time_sec == 5.0
    assert cfg.keypoint_count == 6
    assert cfg.default_profile_id == "adult_high_performance"
    assert isinstance(cfg.openai, OpenAISettings)
    assert cfg.openai.enabled is False


def test_config_from_dict_ignores_unknown_keys_and_nests_openai():
    cfg = config_from_dict(
        {
            "reading_duration_sec": 120,
            "unknown": "ignored",
            "openai": {"enabled": True, "model": "gpt-4.1", "bogus": 1},
        }
    )
    assert cfg.reading_duration_sec == 120
    assert cfg.openai.enabled is True
    assert cfg.openai.model == "gpt-4.1"


def test_load_config_from_yaml(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "history_path: /tmp/sessions.json\nuse_calibrated_wpm: true\n", encoding="utf-8"
    )
    cfg = load_config(path)
    assert cfg.history_path == "/tmp/sessions.json"
    assert cfg.use_calibrated_wpm is True


def test_yaml_must_be_a_mapping(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_to_dict_round_trips_through_config_from_dict():
    cfg = CogniReadConfig(keypoint_count=8)
    assert config_from_dict(cfg.to_dict()) == cfg


@pytest.mark.parametrize(
    "overrides",
    [
        {"default_profile_id": "  "},
        {"profiles_path": ""},
        {"keypoint_count": 0},
        {"reading_duration_sec": -10},
        {"min_read_time_sec": 0},
        {"dense_wpm_factor": 1.5},
        {"report_decimals": -1},
    ],
)
def test_config_from_dict_rejects_invalid_values(overrides):
    with pytest.raises(ValueError, match="Invalid configuration"):
        config_from_dict(overrides)


def test_config_from_dict_accepts_path_objects(tmp_path: Path):
    cfg = config_from_dict({"profiles_path": tmp_path / "profiles.yaml"})
    assert cfg.profiles_path == str(tmp_path / "profiles.yaml")
