from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Mapping, Union

import yaml

from .models import NormativeProfile

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .config import CogniReadConfig

logger = logging.getLogger(__name__)


class InvalidProfileError(ValueError):
    """Raised when a normative profile cannot produce finite standardized scores."""


@dataclass(frozen=True, slots=True)
class ProfileResolved:
    profile: NormativeProfile


@dataclass(frozen=True, slots=True)
class ProfileMissing:
    profile_id: str


ProfileResolution = Union[ProfileResolved, ProfileMissing]


BUILTIN_PROFILES: tuple[NormativeProfile, ...] = (
    NormativeProfile(
        id="adult_high_performance",
        label="Adulto (Alto Desempenho) - 39 anos / QI ~132",
        language="pt-BR",
        mean_wpm=250.0,
        sd_wpm=40.0,
        mean_coverage=80.0,
        sd_coverage=10.0,
        reliability_coverage=0.85,
    ),
    NormativeProfile(
        id="adult_pt_br_general",
        label="Adulto Geral (pt-BR) - Piloto",
        language="pt-BR",
        mean_wpm=180.0,
        sd_wpm=30.0,
        mean_coverage=65.0,
        sd_coverage=15.0,
        reliability_coverage=0.80,
    ),
    NormativeProfile(
        id="elderly_pt_br_general",
        label="Idoso >65 anos (pt-BR) - Piloto",
        language="pt-BR",
        mean_wpm=140.0,
        sd_wpm=25.0,
        mean_coverage=50.0,
        sd_coverage=12.0,
        reliability_coverage=0.75,
    ),
    NormativeProfile(
        id="adult_en_us_general",
        label="General Adult (en-US) - Pilot",
        language="en-US",
        mean_wpm=230.0,
        sd_wpm=40.0,
        mean_coverage=65.0,
        sd_coverage=15.0,
        reliability_coverage=0.80,
    ),
)


def validate_profile(profile: NormativeProfile) -> NormativeProfile:
    """Reject profiles whose SDs or reliability would yield infinite or NaN scores."""
    if not profile.id:
        raise InvalidProfileError("Normative profile id must be non-empty.")
    numbers = {
        "mean_wpm": profile.mean_wpm,
        "sd_wpm": profile.sd_wpm,
        "mean_coverage": profile.mean_coverage,
        "sd_coverage": profile.sd_coverage,
        "reliability_coverage": profile.reliability_coverage,
    }
    for name, value in numbers.items():
        if not math.isfinite(value):
            raise InvalidProfileError(
                f"Profile '{profile.id}': {name} must be finite (got {value})."
            )
    for name in ("sd_wpm", "sd_coverage"):
        if numbers[name] <= 0:
            raise InvalidProfileError(
                f"Profile '{profile.id}': {name} must be > 0 (got {numbers[name]})."
            )
    if not 0.0 < profile.reliability_coverage < 1.0:
        raise InvalidProfileError(
            f"Profile '{profile.id}': reliability_coverage must lie in (0, 1) "
            f"(got {profile.reliability_coverage})."
        )
    return profile


class ProfileRegistry:
    """Validated, immutable mapping of normative profiles keyed by id."""

    def __init__(self, profiles: Iterable[NormativeProfile]) -> None:
        mapping: Dict[str, NormativeProfile] = {}
        for profile in profiles:
            validate_profile(profile)
            if profile.id in mapping:
                raise InvalidProfileError(f"Duplicate normative profile id '{profile.id}'.")
            mapping[profile.id] = profile
        self._profiles = mapping

    def __contains__(self, profile_id: object) -> bool:
        return profile_id in self._profiles

    def __iter__(self) -> Iterator[NormativeProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def ids(self) -> List[str]:
        return list(self._profiles)

    def resolve(self, profile_id: str | None) -> ProfileResolution:
        """Look up a profile; an unknown id is an expected outcome, not an error."""
        profile = self._profiles.get(profile_id or "")
        if profile is None:
            logger.warning("Normative profile '%s' not found.", profile_id)
            return ProfileMissing(profile_id or "")
        return ProfileResolved(profile)


def default_registry() -> ProfileRegistry:
    return ProfileRegistry(BUILTIN_PROFILES)


def profiles_from_data(data: Any) -> List[NormativeProfile]:
    """Parse a list of profile mappings, or a mapping with a ``profiles`` list."""
    if isinstance(data, Mapping):
        data = data.get("profiles")
    if not isinstance(data, list):
        raise InvalidProfileError("Profile data must be a list of mappings.")
    profiles: List[NormativeProfile] = []
    for item in data:
        if not isinstance(item, Mapping):
            raise InvalidProfileError("Each profile entry must be a mapping.")
        try:
            profiles.append(NormativeProfile.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidProfileError(f"Malformed profile entry {item!r}.") from exc
    return profiles


def load_profiles(path: str | Path) -> ProfileRegistry:
    """Load and validate profiles from a YAML (or JSON) file."""
    contents = Path(path).read_text(encoding="utf-8")
    parsed = yaml.safe_load(contents)
    registry = ProfileRegistry(profiles_from_data(parsed))
    logger.debug("Loaded %s normative profiles from %s", len(registry), path)
    return registry


def build_registry(config: "CogniReadConfig | None" = None) -> ProfileRegistry:
    """Return the registry named by the config, or the built-in profiles."""
    if config is None or not config.profiles_path:
        return default_registry()
    return load_profiles(config.profiles_path)
