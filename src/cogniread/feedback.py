from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

from .llm.openai_client import OpenAITextClient, RequestMetadata

logger = logging.getLogger(__name__)

REFINE_SYSTEM_PROMPT = (
    "You clean up speech-to-text transcripts.\n"
    "- Fix punctuation, capitalization and obvious transcription errors.\n"
    "- Remove filler words and accidental repetitions.\n"
    "- Never add, remove or reinterpret content.\n"
    "- Output the cleaned transcript only."
)

FEEDBACK_SYSTEM_PROMPT = (
    "You are a neuropsychologist reviewing a reading-recall test.\n"
    "Write a short, objective narrative (3-5 sentences) in the language of the "
    "passage describing which ideas were retained, which were omitted, and any "
    "distortions or intrusions in the recall. Do not assign scores or diagnoses."
)

FEEDBACK_USER_PROMPT_TEMPLATE = (
    "Key points:\n"
    "{keypoints}\n"
    "\n"
    "Original passage:\n"
    "-----\n"
    "{passage}\n"
    "-----\n"
    "\n"
    "Participant recall:\n"
    "-----\n"
    "{recall}\n"
    "-----"
)


@dataclass(slots=True)
class FeedbackRequest:
    passage: str
    recall_text: str
    keypoints: List[str] = field(default_factory=list)
    session_id: str | None = None


class TranscriptRefiner(ABC):
    """Cleans raw speech-to-text output before scoring."""

    @abstractmethod
    def refine(self, raw_text: str) -> str:
        raise NotImplementedError


class NoOpRefiner(TranscriptRefiner):
    def refine(self, raw_text: str) -> str:
        return raw_text


class OpenAITranscriptRefiner(TranscriptRefiner):
    def __init__(self, client: OpenAITextClient) -> None:
        self._client = client

    def refine(self, raw_text: str) -> str:
        if not raw_text.strip():
            return raw_text
        refined = self._client.complete(
            system_prompt=REFINE_SYSTEM_PROMPT,
            user_prompt=raw_text.strip(),
            metadata=RequestMetadata(
                task="refine", token_count=len(raw_text.split())
            ),
        )
        return refined.strip()


class FeedbackAnalyzer(ABC):
    """Produces a qualitative narrative about a recall attempt."""

    @abstractmethod
    def analyze(self, request: FeedbackRequest) -> str:
        raise NotImplementedError


class NoOpAnalyzer(FeedbackAnalyzer):
    def analyze(self, request: FeedbackRequest) -> str:
        return ""


class OpenAIFeedbackAnalyzer(FeedbackAnalyzer):
    def __init__(self, client: OpenAITextClient) -> None:
        self._client = client

    def analyze(self, request: FeedbackRequest) -> str:
        user_prompt = FEEDBACK_USER_PROMPT_TEMPLATE.format(
            keypoints="\n".join(f"- {point}" for point in request.keypoints),
            passage=request.passage.strip(),
            recall=request.recall_text.strip() or "(empty)",
        )
        logger.info("Requesting narrative feedback for session=%s", request.session_id)
        narrative = self._client.complete(
            system_prompt=FEEDBACK_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            metadata=RequestMetadata(
                task="feedback",
                reference_id=request.session_id,
                token_count=len(request.recall_text.split()),
            ),
        )
        return narrative.strip()
