import pytest

from cogniread.matching import evaluate_keypoint


def test_one_of_three_tokens_misses():
    """Ratio 1/3 is below the 0.35 threshold and only one distinct token matched."""
    match = evaluate_keypoint(["alpha", "zeta"], ["alpha", "beta", "gamma"])
    assert match.coverage_ratio == pytest.approx(1 / 3)
    assert match.hit is False
    assert match.matched_tokens == ("alpha",)


def test_two_of_three_tokens_hit():
    match = evaluate_keypoint(["gamma", "alpha"], ["alpha", "beta", "gamma"])
    assert match.hit is True
    assert match.matched_tokens == ("alpha", "gamma")


def test_two_distinct_matches_hit_even_with_low_ratio():
    keypoint = [f"token{i}" for i in range(10)]
    match = evaluate_keypoint(["token3", "token7"], keypoint)
    assert match.coverage_ratio == pytest.approx(0.2)
    assert match.hit is True


def test_single_match_on_short_keypoint_hits_by_ratio():
    match = evaluate_keypoint(["hipocampo"], ["hipocampo", "memoria"])
    assert match.coverage_ratio == 0.5
    assert match.hit is True


def test_repeated_keypoint_tokens_count_with_multiplicity():
    """A keypoint token listed twice counts twice toward the ratio."""
    match = evaluate_keypoint(["alpha"], ["alpha", "alpha", "beta", "gamma", "delta"])
    assert match.coverage_ratio == pytest.approx(0.4)
    assert match.hit is True
    assert match.matched_tokens == ("alpha",)


def test_recall_repeats_do_not_inflate_matches():
    match = evaluate_keypoint(["alpha"] * 5, ["alpha", "beta", "gamma"])
    assert match.coverage_ratio == pytest.approx(1 / 3)
    assert match.hit is False


def test_matched_tokens_subset_of_keypoint_tokens():
    keypoint = ["energia", "escura", "universo"]
    match = evaluate_keypoint(["universo", "galaxia", "energia"], keypoint)
    assert set(match.matched_tokens) <= set(keypoint)


def test_empty_keypoint_is_degenerate_miss():
    match = evaluate_keypoint(["anything"], [])
    assert match.degenerate is True
    assert match.coverage_ratio == 0.0
    assert match.hit is False
    assert match.matched_tokens == ()
