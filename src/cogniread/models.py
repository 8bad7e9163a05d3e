from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Tuple


class Language(str, Enum):
    """Languages a test can be administered in."""

    PT_BR = "pt-BR"
    EN_US = "en-US"
    ES_ES = "es-ES"


class Complexity(str, Enum):
    """Stylistic density of a generated passage."""

    NEUTRAL = "neutral"
    DENSE = "dense"


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    # Accept the trailing "Z" emitted by JavaScript's toISOString().
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


@dataclass(frozen=True, slots=True)
class NormativeProfile:
    """Reference population used to standardize coverage and reading speed."""

    id: str
    label: str
    language: str
    mean_wpm: float
    sd_wpm: float
    mean_coverage: float
    sd_coverage: float
    reliability_coverage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "language": self.language,
            "mean_wpm": self.mean_wpm,
            "sd_wpm": self.sd_wpm,
            "mean_coverage": self.mean_coverage,
            "sd_coverage": self.sd_coverage,
            "reliability_coverage": self.reliability_coverage,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NormativeProfile":
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", data["id"])),
            language=str(data.get("language", Language.PT_BR.value)),
            mean_wpm=float(data["mean_wpm"]),
            sd_wpm=float(data["sd_wpm"]),
            mean_coverage=float(data["mean_coverage"]),
            sd_coverage=float(data["sd_coverage"]),
            reliability_coverage=float(data["reliability_coverage"]),
        )


@dataclass(frozen=True, slots=True)
class Keypoint:
    """One discrete idea the passage is expected to convey."""

    id: int
    text: str
    tokens: Tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "tokens": list(self.tokens)}

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], language: Language | str | None = None
    ) -> "Keypoint":
        text = str(data.get("text", ""))
        raw_tokens = data.get("tokens")
        if raw_tokens is None:
            from .tokenization import tokenize_keypoint

            tokens = tuple(tokenize_keypoint(text, language))
        else:
            tokens = tuple(str(token) for token in raw_tokens)
        return cls(id=int(data["id"]), text=text, tokens=tokens)


@dataclass(frozen=True, slots=True)
class TestInstance:
    """A single administered test: passage, keypoints and timing."""

    __test__ = False  # not a pytest test class

    id: str
    language: str
    topic: str
    complexity: str
    passage: str
    keypoints: Tuple[Keypoint, ...]
    target_words: int
    allowed_time_sec: float
    normative_profile_id: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "language": self.language,
            "topic": self.topic,
            "complexity": self.complexity,
            "passage": self.passage,
            "keypoints": [kp.to_dict() for kp in self.keypoints],
            "target_words": self.target_words,
            "allowed_time_sec": self.allowed_time_sec,
            "normative_profile_id": self.normative_profile_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TestInstance":
        language = str(data.get("language", Language.PT_BR.value))
        return cls(
            id=str(data["id"]),
            language=language,
            topic=str(data.get("topic", "")),
            complexity=str(data.get("complexity", Complexity.NEUTRAL.value)),
            passage=str(data.get("passage", "")),
            keypoints=tuple(
                Keypoint.from_dict(item, language) for item in data.get("keypoints", [])
            ),
            target_words=int(data.get("target_words", 0)),
            allowed_time_sec=float(data.get("allowed_time_sec", 0)),
            normative_profile_id=str(data.get("normative_profile_id", "")),
            created_at=_parse_timestamp(data["created_at"]),
        )


@dataclass(frozen=True, slots=True)
class KeypointResult:
    """Verdict for one keypoint in one session."""

    keypoint_id: int
    text: str
    hit: bool
    matched_tokens: Tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "keypoint_id": self.keypoint_id,
            "text": self.text,
            "hit": self.hit,
            "matched_tokens": list(self.matched_tokens),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KeypointResult":
        return cls(
            keypoint_id=int(data["keypoint_id"]),
            text=str(data.get("text", "")),
            hit=bool(data["hit"]),
            matched_tokens=tuple(str(t) for t in data.get("matched_tokens", [])),
        )


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Scored outcome of one recall session."""

    session_id: str
    test_id: str
    normative_profile_id: str
    recall_text: str
    coverage_pct: float
    z_coverage: float
    wpm_effective: int
    created_at: datetime
    qualitative_label: str
    keypoint_results: Tuple[KeypointResult, ...] = field(default_factory=tuple)
    z_wpm: float | None = None
    rci_coverage: float | None = None
    narrative_feedback: str | None = None

    @property
    def hit_count(self) -> int:
        return sum(1 for result in self.keypoint_results if result.hit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "test_id": self.test_id,
            "normative_profile_id": self.normative_profile_id,
            "recall_text": self.recall_text,
            "coverage_pct": self.coverage_pct,
            "z_coverage": self.z_coverage,
            "wpm_effective": self.wpm_effective,
            "z_wpm": self.z_wpm,
            "rci_coverage": self.rci_coverage,
            "created_at": self.created_at.isoformat(),
            "keypoint_results": [kr.to_dict() for kr in self.keypoint_results],
            "qualitative_label": self.qualitative_label,
            "narrative_feedback": self.narrative_feedback,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionResult":
        return cls(
            session_id=str(data["session_id"]),
            test_id=str(data["test_id"]),
            normative_profile_id=str(data.get("normative_profile_id", "")),
            recall_text=str(data.get("recall_text", "")),
            coverage_pct=float(data["coverage_pct"]),
            z_coverage=float(data.get("z_coverage", 0.0)),
            wpm_effective=int(data.get("wpm_effective", 0)),
            created_at=_parse_timestamp(data["created_at"]),
            qualitative_label=str(data.get("qualitative_label", "")),
            keypoint_results=tuple(
                KeypointResult.from_dict(item)
                for item in data.get("keypoint_results", [])
            ),
            z_wpm=_optional_float(data.get("z_wpm")),
            rci_coverage=_optional_float(data.get("rci_coverage")),
            narrative_feedback=data.get("narrative_feedback"),
        )
