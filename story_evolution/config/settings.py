"""
Engine settings: temperatures, token budgets, retry policy, lookahead sizes
and matching thresholds. Defaults reproduce the long-standing behaviour;
every field can be overridden with a STORY_EVOLUTION_* environment variable.
"""

import os
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _per_format(book: int, comic: int, screenplay: int) -> Dict[str, int]:
    return {"book": book, "comic": comic, "screenplay": screenplay}


class EvolutionSettings(BaseModel):
    """Tunable parameters for extraction, discovery and revision."""

    # Extraction
    extraction_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    extraction_max_tokens: Dict[str, int] = Field(
        default_factory=lambda: _per_format(2000, 3000, 2500),
        description="Response token budget per content format",
    )
    extraction_max_attempts: int = Field(default=2, ge=1, le=10)
    retry_backoff_base: float = Field(default=3.0, ge=0.0)
    extraction_fallback: Literal["raise", "minimal"] = Field(
        default="raise",
        description="What to do once extraction attempts are exhausted",
    )

    # Revision
    revision_temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    revision_max_tokens: Dict[str, int] = Field(
        default_factory=lambda: _per_format(1500, 1500, 2000),
    )
    lookahead: Dict[str, int] = Field(
        default_factory=lambda: _per_format(3, 3, 2),
        description="Upcoming units eligible for revision after each unit",
    )
    default_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    failure_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    auto_revise: bool = True

    # Discovery
    stale_thread_threshold: int = Field(default=3, ge=1)
    foreshadowing_payoff_window: int = Field(default=3, ge=1)
    matcher: Literal["substring", "token_overlap", "edit_distance"] = "substring"
    matcher_cutoff: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    thread_match_prefix: int = Field(default=30, ge=1)

    @field_validator("extraction_max_tokens", "revision_max_tokens", "lookahead")
    @classmethod
    def _all_formats_present(cls, value: Dict[str, int]) -> Dict[str, int]:
        missing = {"book", "comic", "screenplay"} - set(value)
        if missing:
            raise ValueError(f"Missing per-format values for: {', '.join(sorted(missing))}")
        return value


def create_settings_from_env() -> EvolutionSettings:
    """Build settings, overriding defaults from STORY_EVOLUTION_* variables."""
    overrides: Dict[str, object] = {}
    scalar_fields = {
        "EXTRACTION_TEMPERATURE": ("extraction_temperature", float),
        "EXTRACTION_MAX_ATTEMPTS": ("extraction_max_attempts", int),
        "RETRY_BACKOFF_BASE": ("retry_backoff_base", float),
        "EXTRACTION_FALLBACK": ("extraction_fallback", str),
        "REVISION_TEMPERATURE": ("revision_temperature", float),
        "DEFAULT_CONFIDENCE": ("default_confidence", float),
        "FAILURE_CONFIDENCE": ("failure_confidence", float),
        "STALE_THREAD_THRESHOLD": ("stale_thread_threshold", int),
        "FORESHADOWING_PAYOFF_WINDOW": ("foreshadowing_payoff_window", int),
        "MATCHER": ("matcher", str),
        "MATCHER_CUTOFF": ("matcher_cutoff", float),
        "THREAD_MATCH_PREFIX": ("thread_match_prefix", int),
    }
    for suffix, (name, cast) in scalar_fields.items():
        raw = os.getenv(f"STORY_EVOLUTION_{suffix}")
        if raw:
            overrides[name] = cast(raw)

    auto_revise = os.getenv("STORY_EVOLUTION_AUTO_REVISE")
    if auto_revise:
        overrides["auto_revise"] = auto_revise.strip().lower() in ("1", "true", "yes", "on")

    return EvolutionSettings(**overrides)
