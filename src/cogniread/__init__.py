"""
cogniread package exports the recall scoring engine and its helpers.
"""

from __future__ import annotations

from .config import CogniReadConfig, config_from_dict, config_from_yaml, load_config
from .models import (
    Complexity,
    Keypoint,
    KeypointResult,
    Language,
    NormativeProfile,
    SessionResult,
    TestInstance,
)
from .pipeline import score_session
from .profiles import (
    InvalidProfileError,
    ProfileMissing,
    ProfileRegistry,
    ProfileResolved,
    build_registry,
    default_registry,
)
from .tokenization import tokenize, tokenize_keypoint

__all__ = [
    "CogniReadConfig",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
    "Complexity",
    "Keypoint",
    "KeypointResult",
    "Language",
    "NormativeProfile",
    "SessionResult",
    "TestInstance",
    "score_session",
    "InvalidProfileError",
    "ProfileMissing",
    "ProfileRegistry",
    "ProfileResolved",
    "build_registry",
    "default_registry",
    "tokenize",
    "tokenize_keypoint",
]

__version__ = "0.1.0"
