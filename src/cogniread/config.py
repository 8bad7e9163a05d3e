from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml


@dataclass(slots=True)
class OpenAISettings:
    """Configuration block for OpenAI-backed generation, refinement and feedback."""

    enabled: bool = False
    model: str = "gpt-4.1-mini"
    api_key: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    organization: str | None = None
    temperature: float = 0.7
    max_output_tokens: int = 1200
    top_p: float = 0.95
    request_timeout: float = 60.0
    parallel_requests: int = 1


@dataclass(slots=True)
class CogniReadConfig:
    """Configuration options for test construction, scoring and history."""

    profiles_path: str | None = None
    history_path: str = "cogniread_sessions.json"
    default_profile_id: str = "adult_high_performance"
    language: str = "pt-BR"
    reading_duration_sec: float = 90.0
    keypoint_count: int = 6
    min_read_time_sec: float = 5.0
    dense_wpm_factor: float = 0.85
    use_calibrated_wpm: bool = False
    user_calibrated_wpm: float = 250.0
    report_decimals: int = 2
    openai: OpenAISettings = field(default_factory=OpenAISettings)

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable dictionary representation of the configuration."""
        return dict(asdict(self))


def _build_kwargs(data: Mapping[str, Any]) -> dict[str, Any]:
    allowed = {field.name for field in fields(CogniReadConfig)}
    kwargs = {key: data[key] for key in data if key in allowed}
    if "openai" in data:
        openai_value = data["openai"]
        if isinstance(openai_value, OpenAISettings):
            kwargs["openai"] = openai_value
        elif isinstance(openai_value, Mapping):
            kwargs["openai"] = _build_openai_settings(openai_value)
        else:
            kwargs.pop("openai")
    return kwargs


def _build_openai_settings(data: Mapping[str, Any]) -> OpenAISettings:
    openai_allowed = {field.name for field in fields(OpenAISettings)}
    filtered = {key: data[key] for key in data if key in openai_allowed}
    return OpenAISettings(**filtered)


def validate_config(config: CogniReadConfig) -> CogniReadConfig:
    """Reject settings that would make sizing or scoring meaningless."""
    problems = []
    if not str(config.default_profile_id or "").strip():
        problems.append("default_profile_id must be a non-empty profile id")
    if config.profiles_path is not None and not str(config.profiles_path).strip():
        problems.append("profiles_path must be omitted or point to a profile file")
    if not str(config.history_path or "").strip():
        problems.append("history_path must not be empty")
    if config.reading_duration_sec <= 0:
        problems.append("reading_duration_sec must be positive")
    if config.keypoint_count < 1:
        problems.append("keypoint_count must be at least 1")
    if config.min_read_time_sec <= 0:
        problems.append("min_read_time_sec must be positive")
    if not 0 < config.dense_wpm_factor <= 1:
        problems.append("dense_wpm_factor must lie in (0, 1]")
    if config.user_calibrated_wpm <= 0:
        problems.append("user_calibrated_wpm must be positive")
    if config.report_decimals < 0:
        problems.append("report_decimals must not be negative")
    if problems:
        raise ValueError("Invalid configuration: " + "; ".join(problems))
    return config


def config_from_dict(data: Mapping[str, Any] | None) -> CogniReadConfig:
    """Build and validate a CogniReadConfig from a dictionary-like input."""
    if data is None:
        return CogniReadConfig()
    kwargs = _build_kwargs(data)
    for key in ("profiles_path", "history_path"):
        if isinstance(kwargs.get(key), Path):
            kwargs[key] = str(kwargs[key])
    return validate_config(CogniReadConfig(**kwargs))


def config_from_yaml(path: str | Path) -> CogniReadConfig:
    """Load configuration from a YAML file."""
    contents = Path(path).read_text(encoding="utf-8")
    parsed = yaml.safe_load(contents) or {}
    if not isinstance(parsed, MutableMapping):
        raise ValueError("Configuration YAML must define a mapping.")
    return config_from_dict(parsed)


def load_config(path: str | Path | None = None) -> CogniReadConfig:
    """Load configuration from YAML when provided, otherwise return defaults."""
    if path is None:
        return CogniReadConfig()
    return config_from_yaml(path)
