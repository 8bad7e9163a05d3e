from __future__ import annotations

import json
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from .config import CogniReadConfig
from .llm.openai_client import JsonSchemaFormat, OpenAITextClient, RequestMetadata
from .models import Complexity, Keypoint, NormativeProfile, TestInstance
from .pipeline import Clock, IdFactory, new_identifier, utc_now
from .scoring import round_half_up
from .tokenization import tokenize_keypoint

logger = logging.getLogger(__name__)

DEFAULT_TOPICS = [
    "Neuroplasticidade e aprendizado motor",
    "O impacto do microbioma intestinal na saúde mental",
    "Entropia e a segunda lei da termodinâmica",
    "Mecanismos de edição genética CRISPR-Cas9",
    "Matéria escura e a expansão do universo",
    "Epigenética e herança transgeracional",
    "Computação quântica e criptografia",
    "A hipótese de Gaia e regulação planetária",
    "Fusão nuclear como fonte de energia limpa",
    "O papel dos telômeros no envelhecimento celular",
]

KEYPOINTS_SYSTEM_PROMPT = (
    "You write concise, factually correct key points about scientific topics."
)

KEYPOINTS_USER_PROMPT_TEMPLATE = (
    "Topic: {topic}\n"
    "Language: {language}\n"
    "Write exactly {count} key points about the topic. Each point must be one "
    "short, complete sentence expressing a distinct idea."
)

PASSAGE_SYSTEM_PROMPT = (
    "You write continuous, cohesive scientific prose for a reading-comprehension test.\n"
    "Output plain paragraphs only: no lists, no bold, no headings, no commentary."
)

PASSAGE_USER_PROMPT_TEMPLATE = (
    "Topic: {topic}\n"
    "Language: {language}\n"
    "Style: {style}\n"
    "Target length: about {target_words} words (±20%).\n"
    "\n"
    "The text must explicitly cover every one of these key points:\n"
    "{keypoints}"
)

COMPLEXITY_STYLES = {
    Complexity.NEUTRAL.value: "NEUTRAL (informative, clear, journalistic)",
    Complexity.DENSE.value: (
        "DENSE (rich academic vocabulary, complex logical connectives, "
        "greater abstraction)"
    ),
}

KEYPOINTS_FORMAT = JsonSchemaFormat(
    name="keypoints",
    schema={
        "type": "object",
        "properties": {"points": {"type": "array", "items": {"type": "string"}}},
        "required": ["points"],
        "additionalProperties": False,
    },
)


class GenerationError(RuntimeError):
    """Raised when the generation service returns unusable content."""


@dataclass(slots=True)
class GenerationRequest:
    topic: str
    language: str
    complexity: str
    target_words: int
    keypoint_count: int = 6


@dataclass(slots=True)
class GeneratedContent:
    passage: str
    keypoints: List[str] = field(default_factory=list)


class PassageGenerator(ABC):
    """Produces a passage and its key points for a test."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> GeneratedContent:
        raise NotImplementedError


class CallablePassageGenerator(PassageGenerator):
    """Adapt an arbitrary callable into the PassageGenerator interface."""

    def __init__(self, func: Callable[[GenerationRequest], GeneratedContent]) -> None:
        self._func = func

    def generate(self, request: GenerationRequest) -> GeneratedContent:
        return self._func(request)


class OpenAIPassageGenerator(PassageGenerator):
    """Two-step generation: key points first, then a passage covering them."""

    def __init__(self, client: OpenAITextClient) -> None:
        self._client = client

    def generate(self, request: GenerationRequest) -> GeneratedContent:
        metadata = RequestMetadata(
            task="keypoints", reference_id=request.topic, language=request.language
        )
        raw_points = self._client.complete(
            system_prompt=KEYPOINTS_SYSTEM_PROMPT,
            user_prompt=KEYPOINTS_USER_PROMPT_TEMPLATE.format(
                topic=request.topic,
                language=request.language,
                count=request.keypoint_count,
            ),
            metadata=metadata,
            output_format=KEYPOINTS_FORMAT,
        )
        keypoints = parse_keypoints(raw_points)
        if len(keypoints) != request.keypoint_count:
            logger.warning(
                "Requested %s key points but received %s.",
                request.keypoint_count,
                len(keypoints),
            )

        style = COMPLEXITY_STYLES.get(
            request.complexity, COMPLEXITY_STYLES[Complexity.NEUTRAL.value]
        )
        passage = self._client.complete(
            system_prompt=PASSAGE_SYSTEM_PROMPT,
            user_prompt=PASSAGE_USER_PROMPT_TEMPLATE.format(
                topic=request.topic,
                language=request.language,
                style=style,
                target_words=request.target_words,
                keypoints="\n".join(f"- {point}" for point in keypoints),
            ),
            metadata=RequestMetadata(
                task="passage",
                reference_id=request.topic,
                language=request.language,
                token_count=request.target_words,
            ),
        ).strip()
        if not passage:
            raise GenerationError("Generation service returned an empty passage.")
        return GeneratedContent(passage=passage, keypoints=keypoints)


def parse_keypoints(raw: str) -> List[str]:
    """Parse the ``{"points": [...]}`` structured output into non-blank strings."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise GenerationError("Key point payload is not valid JSON.") from exc
    points = payload.get("points") if isinstance(payload, dict) else None
    if not isinstance(points, list):
        raise GenerationError("Key point payload must contain a 'points' list.")
    keypoints = [str(point).strip() for point in points if str(point).strip()]
    if not keypoints:
        raise GenerationError("Generation service returned no key points.")
    return keypoints


def resolve_base_wpm(profile: NormativeProfile, config: CogniReadConfig) -> float:
    """Use the reader's calibrated speed when enabled, else the profile mean."""
    if config.use_calibrated_wpm:
        return config.user_calibrated_wpm
    return profile.mean_wpm


def compute_target_words(
    duration_sec: float,
    base_wpm: float,
    complexity: Complexity | str,
    dense_factor: float = 0.85,
) -> int:
    """Words a reader at ``base_wpm`` covers in ``duration_sec``; dense text reads slower."""
    level = complexity.value if isinstance(complexity, Complexity) else complexity
    adjusted_wpm = (
        round_half_up(base_wpm * dense_factor)
        if level == Complexity.DENSE.value
        else base_wpm
    )
    return round_half_up(duration_sec / 60 * adjusted_wpm)


def choose_topic(rng: random.Random | None = None, topics: Sequence[str] = DEFAULT_TOPICS) -> str:
    return (rng or random.Random()).choice(list(topics))


def choose_complexity(rng: random.Random | None = None) -> Complexity:
    return Complexity.NEUTRAL if (rng or random.Random()).random() > 0.5 else Complexity.DENSE


def build_test_instance(
    passage: str,
    keypoint_texts: Sequence[str],
    *,
    language: str,
    topic: str,
    complexity: Complexity | str,
    target_words: int,
    allowed_time_sec: float,
    normative_profile_id: str,
    id_factory: IdFactory = new_identifier,
    clock: Clock = utc_now,
) -> TestInstance:
    """Number keypoints from 0 and precompute their tokens."""
    keypoints = tuple(
        Keypoint(id=idx, text=text, tokens=tuple(tokenize_keypoint(text, language)))
        for idx, text in enumerate(keypoint_texts)
    )
    return TestInstance(
        id=id_factory(),
        language=language,
        topic=topic,
        complexity=complexity.value if isinstance(complexity, Complexity) else complexity,
        passage=passage,
        keypoints=keypoints,
        target_words=target_words,
        allowed_time_sec=allowed_time_sec,
        normative_profile_id=normative_profile_id,
        created_at=clock(),
    )


def generate_test(
    generator: PassageGenerator,
    profile: NormativeProfile,
    config: CogniReadConfig,
    *,
    topic: str | None = None,
    complexity: Complexity | str | None = None,
    duration_sec: float | None = None,
    rng: random.Random | None = None,
    id_factory: IdFactory = new_identifier,
    clock: Clock = utc_now,
) -> TestInstance:
    """Pick topic and complexity, size the passage for the reader and build the test."""
    chosen_topic = topic or choose_topic(rng)
    chosen_complexity = Complexity(complexity) if complexity else choose_complexity(rng)
    duration = duration_sec if duration_sec is not None else config.reading_duration_sec
    target_words = compute_target_words(
        duration,
        resolve_base_wpm(profile, config),
        chosen_complexity,
        config.dense_wpm_factor,
    )
    request = GenerationRequest(
        topic=chosen_topic,
        language=profile.language,
        complexity=chosen_complexity.value,
        target_words=target_words,
        keypoint_count=config.keypoint_count,
    )
    logger.info(
        "Generating %s test on '%s' (%s words, %s key points)",
        request.complexity,
        chosen_topic,
        target_words,
        request.keypoint_count,
    )
    content = generator.generate(request)
    if not content.keypoints:
        raise GenerationError("Generation service returned no key points.")
    return build_test_instance(
        content.passage,
        content.keypoints,
        language=profile.language,
        topic=chosen_topic,
        complexity=chosen_complexity,
        target_words=target_words,
        allowed_time_sec=duration,
        normative_profile_id=profile.id,
        id_factory=id_factory,
        clock=clock,
    )
