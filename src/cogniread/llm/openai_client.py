from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Mapping

from ..config import OpenAISettings

logger = logging.getLogger(__name__)

# Resolved lazily so the package imports without the optional extra.
OpenAI: Callable[..., Any] | None = None

MAX_ATTEMPTS = 3
MAX_BACKOFF_SEC = 5.0


class LLMResponseError(RuntimeError):
    """Raised when the model answers with no usable text (empty output or refusal)."""


@dataclass(slots=True)
class RequestMetadata:
    """Describes the request being sent, used for logging."""

    task: str
    reference_id: str | None = None
    language: str | None = None
    token_count: int | None = None


@dataclass(frozen=True, slots=True)
class JsonSchemaFormat:
    """Structured-output contract: the model must answer with JSON matching ``schema``."""

    name: str
    schema: Mapping[str, Any]
    strict: bool = True

    def as_text_param(self) -> dict[str, Any]:
        return {
            "format": {
                "type": "json_schema",
                "name": self.name,
                "schema": dict(self.schema),
                "strict": self.strict,
            }
        }


class OpenAITextClient:
    """
    Prompt-pair client for the OpenAI Responses API.

    Requests are throttled by ``parallel_requests`` and retried with a capped
    exponential backoff. Passing ``output_format`` to :meth:`complete` asks the
    model for schema-constrained JSON instead of free text.
    """

    def __init__(self, settings: OpenAISettings, api_key: str) -> None:
        if not api_key:
            raise ValueError("OpenAI API key is required when the LLM client is enabled.")
        self._settings = settings
        self._api_key = api_key
        self._factory = _load_openai_factory()
        self._client: Any | None = None
        self._slots = (
            threading.BoundedSemaphore(settings.parallel_requests)
            if settings.parallel_requests > 0
            else None
        )

    @property
    def settings(self) -> OpenAISettings:
        return self._settings

    def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        metadata: RequestMetadata,
        output_format: JsonSchemaFormat | None = None,
    ) -> str:
        """Return the model's text output; JSON text when ``output_format`` is given."""
        request = self._build_request(system_prompt, user_prompt, output_format)
        last_error: Exception | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                with self._slot():
                    response = self._ensure_client().responses.create(**request)
                text = extract_output_text(response)
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "OpenAI %s request for %s failed (attempt %s/%s): %s",
                    metadata.task,
                    metadata.reference_id,
                    attempt,
                    MAX_ATTEMPTS,
                    exc,
                )
                if attempt < MAX_ATTEMPTS:
                    time.sleep(min(2.0 ** (attempt - 1), MAX_BACKOFF_SEC))
                continue
            logger.debug(
                "OpenAI %s request for %s returned %s chars (language=%s, budget=%s)",
                metadata.task,
                metadata.reference_id,
                len(text),
                metadata.language,
                metadata.token_count,
            )
            return text
        raise RuntimeError(
            f"OpenAI {metadata.task} request failed after {MAX_ATTEMPTS} attempts."
        ) from last_error

    def _build_request(
        self,
        system_prompt: str,
        user_prompt: str,
        output_format: JsonSchemaFormat | None,
    ) -> dict[str, Any]:
        settings = self._settings
        request: dict[str, Any] = {
            "model": settings.model,
            "input": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "max_output_tokens": settings.max_output_tokens,
            "timeout": settings.request_timeout,
        }
        if output_format is not None:
            request["text"] = output_format.as_text_param()
        return request

    def _ensure_client(self) -> Any:
        if self._client is None:
            self._client = self._factory(
                api_key=self._api_key,
                base_url=self._settings.base_url,
                organization=self._settings.organization,
            )
        return self._client

    @contextmanager
    def _slot(self) -> Iterator[None]:
        if self._slots is None:
            yield
            return
        with self._slots:
            yield


def extract_output_text(response: Any) -> str:
    """Collect the ``output_text`` segments of a Responses API result."""
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text
    parts: List[str] = []
    for item in _field(response, "output") or []:
        for segment in _field(item, "content") or []:
            kind = _field(segment, "type")
            if kind == "refusal":
                raise LLMResponseError(f"Model refused the request: {_field(segment, 'refusal')}")
            if kind in (None, "output_text") and _field(segment, "text"):
                parts.append(_field(segment, "text"))
    if not parts:
        raise LLMResponseError("OpenAI response contained no output text.")
    return "".join(parts)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _load_openai_factory() -> Callable[..., Any]:
    global OpenAI
    if OpenAI is None:
        try:
            from openai import OpenAI as client_cls
        except ImportError as exc:  # pragma: no cover - optional extra
            raise RuntimeError(
                "openai package is not installed. Install extras via 'pip install .[llm-openai]'."
            ) from exc
        OpenAI = client_cls
    return OpenAI


def resolve_api_key(
    settings: OpenAISettings, environ: Mapping[str, str] | None = None
) -> str:
    """Explicit ``api_key`` wins; otherwise read the configured environment variable."""
    if settings.api_key:
        return settings.api_key
    env = os.environ if environ is None else environ
    value = env.get(settings.api_key_env or "OPENAI_API_KEY")
    if value:
        return value
    raise RuntimeError(
        f"OpenAI API key not provided. Set 'openai.api_key' or ${settings.api_key_env}."
    )
