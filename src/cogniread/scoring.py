from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable

from .models import NormativeProfile
from .profiles import ProfileResolution, ProfileResolved
from .tokenization import count_words

logger = logging.getLogger(__name__)

DEFAULT_MIN_READ_TIME_SEC = 5.0

# Qualitative label cut points on z_coverage, checked top to bottom.
WITHIN_EXPECTED_Z = -1.0
MILDLY_REDUCED_Z = -2.0

LABEL_WITHIN_EXPECTED = "within expected range"
LABEL_MILDLY_REDUCED = "mildly reduced"
LABEL_BELOW_EXPECTED = "below expected range"
LABEL_NORMS_UNAVAILABLE = "normative data unavailable"


@dataclass(frozen=True, slots=True)
class NormativeScore:
    """Standardized scores for one session; z values are full precision."""

    z_coverage: float
    z_wpm: float | None
    label: str
    profile: NormativeProfile | None = None


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (Math.round semantics)."""
    return int(math.floor(value + 0.5))


def round_report(value: float | None, decimals: int = 2) -> float | None:
    if value is None:
        return None
    return round(value, decimals)


def compute_coverage_pct(hits: Iterable[bool]) -> float:
    """Percentage of keypoints hit; 0 when there are no keypoints at all."""
    flags = list(hits)
    if not flags:
        logger.debug("No keypoints to aggregate; coverage falls back to 0.")
        return 0.0
    return 100.0 * sum(1 for flag in flags if flag) / len(flags)


def safe_read_time(
    elapsed_time_sec: float, min_read_time_sec: float = DEFAULT_MIN_READ_TIME_SEC
) -> float:
    """Clamp elapsed time to the floor so near-zero times cannot inflate speed."""
    if math.isnan(elapsed_time_sec):
        return min_read_time_sec
    return max(elapsed_time_sec, min_read_time_sec)


def compute_effective_wpm(
    passage: str,
    elapsed_time_sec: float,
    min_read_time_sec: float = DEFAULT_MIN_READ_TIME_SEC,
) -> int:
    """Words per minute over the raw passage word count, rounded half up."""
    word_count = count_words(passage)
    if word_count == 0:
        logger.debug("Passage has no words; effective WPM falls back to 0.")
        return 0
    safe_time = safe_read_time(elapsed_time_sec, min_read_time_sec)
    return round_half_up(word_count / safe_time * 60)


def z_score(observed: float, mean: float, sd: float) -> float:
    return (observed - mean) / sd


def qualitative_label(z_coverage: float) -> str:
    if z_coverage >= WITHIN_EXPECTED_Z:
        return LABEL_WITHIN_EXPECTED
    if z_coverage >= MILDLY_REDUCED_Z:
        return LABEL_MILDLY_REDUCED
    return LABEL_BELOW_EXPECTED


def score_against_norms(
    coverage_pct: float, wpm_effective: float, resolution: ProfileResolution
) -> NormativeScore:
    """Standardize coverage and speed against a resolved profile, if any."""
    if not isinstance(resolution, ProfileResolved):
        return NormativeScore(z_coverage=0.0, z_wpm=None, label=LABEL_NORMS_UNAVAILABLE)
    profile = resolution.profile
    z_coverage = z_score(coverage_pct, profile.mean_coverage, profile.sd_coverage)
    z_wpm = z_score(wpm_effective, profile.mean_wpm, profile.sd_wpm)
    return NormativeScore(
        z_coverage=z_coverage,
        z_wpm=z_wpm,
        label=qualitative_label(z_coverage),
        profile=profile,
    )
