import json
from pathlib import Path

import pytest

from cogniread.config import CogniReadConfig
from cogniread.profiles import (
    BUILTIN_PROFILES,
    InvalidProfileError,
    ProfileMissing,
    ProfileRegistry,
    ProfileResolved,
    build_registry,
    default_registry,
    load_profiles,
    profiles_from_data,
)
from tests.utils import make_profile


def test_builtin_profiles_are_valid_and_resolvable():
    registry = default_registry()
    assert len(registry) == len(BUILTIN_PROFILES) == 4
    resolution = registry.resolve("adult_pt_br_general")
    assert isinstance(resolution, ProfileResolved)
    assert resolution.profile.mean_coverage == 65.0
    assert "adult_en_us_general" in registry


def test_unknown_profile_resolves_to_missing():
    resolution = default_registry().resolve("custom_ad_hoc")
    assert resolution == ProfileMissing("custom_ad_hoc")
    assert isinstance(default_registry().resolve(None), ProfileMissing)


@pytest.mark.parametrize(
    "overrides",
    [
        {"sd_coverage": 0.0},
        {"sd_wpm": -5.0},
        {"reliability_coverage": 1.0},
        {"reliability_coverage": 1.3},
        {"reliability_coverage": 0.0},
        {"mean_wpm": float("nan")},
        {"sd_coverage": float("inf")},
        {"id": ""},
    ],
)
def test_invalid_profiles_rejected_at_load_time(overrides):
    with pytest.raises(InvalidProfileError):
        ProfileRegistry([make_profile(**overrides)])


def test_duplicate_profile_ids_rejected():
    with pytest.raises(InvalidProfileError):
        ProfileRegistry([make_profile(), make_profile()])


def test_profiles_from_data_accepts_wrapped_mapping():
    data = {"profiles": [make_profile().to_dict()]}
    profiles = profiles_from_data(data)
    assert profiles == [make_profile()]


def test_profiles_from_data_rejects_malformed_entries():
    with pytest.raises(InvalidProfileError):
        profiles_from_data([{"id": "x", "mean_wpm": "fast"}])
    with pytest.raises(InvalidProfileError):
        profiles_from_data("not a list")


def test_load_profiles_from_yaml(tmp_path: Path):
    path = tmp_path / "profiles.yaml"
    path.write_text(
        "profiles:\n"
        "  - id: clinic_a\n"
        "    label: Clinic A\n"
        "    language: en-US\n"
        "    mean_wpm: 210\n"
        "    sd_wpm: 35\n"
        "    mean_coverage: 70\n"
        "    sd_coverage: 12\n"
        "    reliability_coverage: 0.9\n",
        encoding="utf-8",
    )
    registry = load_profiles(path)
    assert registry.ids() == ["clinic_a"]


def test_load_profiles_from_json_rejects_bad_reliability(tmp_path: Path):
    path = tmp_path / "profiles.json"
    path.write_text(
        json.dumps([make_profile(reliability_coverage=1.0).to_dict()]), encoding="utf-8"
    )
    with pytest.raises(InvalidProfileError):
        load_profiles(path)


def test_build_registry_uses_config_path(tmp_path: Path):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps([make_profile().to_dict()]), encoding="utf-8")
    assert build_registry(CogniReadConfig(profiles_path=str(path))).ids() == ["test_profile"]
    assert len(build_registry(CogniReadConfig())) == 4
    assert len(build_registry(None)) == 4
