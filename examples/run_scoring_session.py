"""Minimal example scoring two recall attempts without any LLM services."""

from __future__ import annotations

import json
from pathlib import Path

from cogniread.config import load_config
from cogniread.generation import build_test_instance
from cogniread.history import InMemorySessionStore
from cogniread.pipeline import score_session
from cogniread.profiles import build_registry


def main() -> None:
    config = load_config(Path(__file__).with_name("example_config.yaml"))
    registry = build_registry(config)
    store = InMemorySessionStore()

    passage = (
        "Dark matter does not emit light, yet its gravity bends the paths of "
        "distant galaxies. Astronomers infer its presence from rotation curves "
        "that stay flat far from galactic centers. Meanwhile the universe keeps "
        "expanding, and dark energy appears to accelerate that expansion."
    )
    test = build_test_instance(
        passage,
        [
            "Dark matter does not emit light",
            "Its gravity bends the paths of galaxies",
            "Flat rotation curves reveal dark matter",
            "Dark energy accelerates cosmic expansion",
        ],
        language=config.language,
        topic="Dark matter",
        complexity="neutral",
        target_words=len(passage.split()),
        allowed_time_sec=config.reading_duration_sec,
        normative_profile_id=config.default_profile_id,
    )

    attempts = [
        ("Something about dark matter and light.", 22.0),
        (
            "Dark matter emits no light but its gravity bends galaxies. "
            "Dark energy accelerates the expansion.",
            18.0,
        ),
    ]
    for recall_text, elapsed in attempts:
        result = score_session(
            test, recall_text, elapsed, store.latest(), registry=registry, config=config
        )
        store.save(result)
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
