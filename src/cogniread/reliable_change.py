"""
Reliable Change Index (Jacobson & Truax) for repeated coverage measurements.

``s_diff = sd * sqrt(2 * (1 - r))`` is the standard error of the difference
between two administrations; ``rci = (current - previous) / s_diff``.
"""

from __future__ import annotations

import math

from .models import NormativeProfile, SessionResult

RELIABLE_CHANGE_Z = 1.96


def standard_error_of_difference(sd: float, reliability: float) -> float:
    if not 0.0 < reliability < 1.0:
        raise ValueError(f"reliability must lie in (0, 1), got {reliability}")
    return sd * math.sqrt(2 * (1 - reliability))


def reliable_change_index(
    current_coverage: float, previous_coverage: float, profile: NormativeProfile
) -> float:
    s_diff = standard_error_of_difference(
        profile.sd_coverage, profile.reliability_coverage
    )
    return (current_coverage - previous_coverage) / s_diff


def coverage_rci(
    coverage_pct: float,
    previous_session: SessionResult | None,
    profile: NormativeProfile | None,
) -> float | None:
    """RCI against the previous session, or None when either input is missing."""
    if previous_session is None or profile is None:
        return None
    return reliable_change_index(coverage_pct, previous_session.coverage_pct, profile)


def is_reliable_change(rci: float | None, threshold: float = RELIABLE_CHANGE_Z) -> bool:
    """Display helper: True when |rci| exceeds the ~95% confidence bound."""
    return rci is not None and abs(rci) > threshold
