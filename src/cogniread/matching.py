from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

logger = logging.getLogger(__name__)

# Policy constants for the keypoint hit rule. Uncalibrated; changing them
# changes every historical score.
HIT_RATIO_THRESHOLD = 0.35
HIT_MIN_DISTINCT_TOKENS = 2


@dataclass(frozen=True, slots=True)
class KeypointMatch:
    """Outcome of comparing recall tokens against one keypoint's tokens."""

    hit: bool
    matched_tokens: Tuple[str, ...]
    coverage_ratio: float
    degenerate: bool = False


def evaluate_keypoint(
    recall_tokens: Sequence[str], keypoint_tokens: Sequence[str]
) -> KeypointMatch:
    """
    Decide whether a keypoint was recalled.

    The ratio numerator counts keypoint tokens with their repeats, so a
    keypoint token listed twice counts twice when it appears anywhere in the
    recall. ``matched_tokens`` is the distinct intersection in keypoint order.
    A keypoint without tokens has ratio 0 and is flagged ``degenerate``.
    """
    recall_set = set(recall_tokens)
    found = [token for token in keypoint_tokens if token in recall_set]
    matched = tuple(dict.fromkeys(found))

    if not keypoint_tokens:
        logger.debug("Keypoint has no significant tokens; treating ratio as 0.")
        return KeypointMatch(
            hit=False,
            matched_tokens=matched,
            coverage_ratio=0.0,
            degenerate=True,
        )

    ratio = len(found) / len(keypoint_tokens)
    hit = ratio >= HIT_RATIO_THRESHOLD or len(matched) >= HIT_MIN_DISTINCT_TOKENS
    return KeypointMatch(hit=hit, matched_tokens=matched, coverage_ratio=ratio)
