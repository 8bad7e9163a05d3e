from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Callable, Sequence

from cogniread.generation import build_test_instance
from cogniread.models import NormativeProfile, SessionResult, TestInstance

FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_TIME


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    """Return a deterministic identifier factory: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def make_profile(**overrides: object) -> NormativeProfile:
    values: dict[str, object] = {
        "id": "test_profile",
        "label": "Test profile",
        "language": "en-US",
        "mean_wpm": 200.0,
        "sd_wpm": 40.0,
        "mean_coverage": 65.0,
        "sd_coverage": 15.0,
        "reliability_coverage": 0.8,
    }
    values.update(overrides)
    return NormativeProfile(**values)  # type: ignore[arg-type]


def make_test(
    keypoints: Sequence[str],
    *,
    passage: str = "word " * 100,
    language: str = "en-US",
    profile_id: str = "test_profile",
) -> TestInstance:
    """Build a test instance with deterministic id and timestamp."""
    return build_test_instance(
        passage.strip(),
        keypoints,
        language=language,
        topic="testing",
        complexity="neutral",
        target_words=100,
        allowed_time_sec=60,
        normative_profile_id=profile_id,
        id_factory=lambda: "test-1",
        clock=fixed_clock,
    )


def make_session(coverage_pct: float = 50.0, **overrides: object) -> SessionResult:
    """A minimal stored session usable as the previous-session input."""
    values: dict[str, object] = {
        "session_id": "prev-1",
        "test_id": "test-0",
        "normative_profile_id": "test_profile",
        "recall_text": "",
        "coverage_pct": coverage_pct,
        "z_coverage": 0.0,
        "wpm_effective": 200,
        "created_at": FIXED_TIME,
        "qualitative_label": "within expected range",
    }
    values.update(overrides)
    return SessionResult(**values)  # type: ignore[arg-type]
