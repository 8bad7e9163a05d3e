from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Sequence

from .config import CogniReadConfig
from .matching import evaluate_keypoint
from .models import KeypointResult, SessionResult, TestInstance
from .profiles import ProfileRegistry, ProfileResolved, default_registry
from .reliable_change import coverage_rci
from .scoring import (
    NormativeScore,
    compute_coverage_pct,
    compute_effective_wpm,
    round_report,
    score_against_norms,
)
from .tokenization import tokenize, tokenize_keypoint

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]
Clock = Callable[[], datetime]


def new_identifier() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def score_keypoints(test: TestInstance, recall_tokens: Sequence[str]) -> List[KeypointResult]:
    """Evaluate every keypoint of the test, preserving keypoint order."""
    results: List[KeypointResult] = []
    for keypoint in test.keypoints:
        # Keypoints built without precomputed tokens are tokenized from their text.
        tokens = keypoint.tokens or tuple(tokenize_keypoint(keypoint.text, test.language))
        match = evaluate_keypoint(recall_tokens, tokens)
        if match.degenerate:
            logger.debug("Keypoint %s of test %s has no tokens.", keypoint.id, test.id)
        logger.debug(
            "Keypoint %s hit=%s ratio=%.3f matched=%s",
            keypoint.id,
            match.hit,
            match.coverage_ratio,
            list(match.matched_tokens),
        )
        results.append(
            KeypointResult(
                keypoint_id=keypoint.id,
                text=keypoint.text,
                hit=match.hit,
                matched_tokens=match.matched_tokens,
            )
        )
    return results


def assemble_session_result(
    test: TestInstance,
    recall_text: str,
    keypoint_results: Sequence[KeypointResult],
    coverage_pct: float,
    wpm_effective: int,
    norms: NormativeScore,
    rci_coverage: float | None,
    *,
    id_factory: IdFactory = new_identifier,
    clock: Clock = utc_now,
    decimals: int = 2,
) -> SessionResult:
    """Package scored parts into an immutable SessionResult; no other side effects."""
    return SessionResult(
        session_id=id_factory(),
        test_id=test.id,
        normative_profile_id=test.normative_profile_id,
        recall_text=recall_text,
        coverage_pct=coverage_pct,
        z_coverage=round(norms.z_coverage, decimals),
        wpm_effective=wpm_effective,
        created_at=clock(),
        qualitative_label=norms.label,
        keypoint_results=tuple(keypoint_results),
        z_wpm=round_report(norms.z_wpm, decimals),
        rci_coverage=round_report(rci_coverage, decimals),
    )


def score_session(
    test: TestInstance,
    recall_text: str,
    elapsed_time_sec: float,
    previous_session: SessionResult | None = None,
    *,
    registry: ProfileRegistry | None = None,
    config: CogniReadConfig | None = None,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> SessionResult:
    """
    Score a recall attempt against a test and its normative profile.

    Parameters
    ----------
    test:
        The administered test with precomputed keypoint tokens.
    recall_text:
        Free-text recall, scored verbatim (empty text simply scores zero).
    elapsed_time_sec:
        Reading time; clamped to ``config.min_read_time_sec`` before computing WPM.
    previous_session:
        Most recent prior result; enables the reliable-change index.
    registry, config, id_factory, clock:
        Injected collaborators. Defaults are the built-in profiles, the default
        config, UUID4 identifiers and the UTC wall clock.
    """
    cfg = config or CogniReadConfig()
    profiles = registry if registry is not None else default_registry()

    recall_tokens = tokenize(recall_text, test.language)
    keypoint_results = score_keypoints(test, recall_tokens)
    coverage_pct = compute_coverage_pct(result.hit for result in keypoint_results)
    wpm_effective = compute_effective_wpm(
        test.passage, elapsed_time_sec, cfg.min_read_time_sec
    )

    resolution = profiles.resolve(test.normative_profile_id)
    norms = score_against_norms(coverage_pct, wpm_effective, resolution)
    profile = resolution.profile if isinstance(resolution, ProfileResolved) else None
    rci = coverage_rci(coverage_pct, previous_session, profile)

    result = assemble_session_result(
        test,
        recall_text,
        keypoint_results,
        coverage_pct,
        wpm_effective,
        norms,
        rci,
        id_factory=id_factory or new_identifier,
        clock=clock or utc_now,
        decimals=cfg.report_decimals,
    )
    logger.info(
        "Scored session %s for test %s: coverage=%.1f%% wpm=%s label=%s",
        result.session_id,
        test.id,
        coverage_pct,
        wpm_effective,
        norms.label,
    )
    return result
