"""
Story Evolution
Narrative continuity engine: extracts what each produced chapter, page or
sequence actually contained, tracks emergent discoveries and character arcs,
and revises upcoming plan units to match.
"""

from .core.exceptions import EvolutionError, FormatMismatchError, GenerationFailure
from .core.extraction import (
    DeviationReport,
    ExtractionEngine,
    MergedStory,
    build_comic_continuity_context,
    find_deviations,
    merge_extractions,
    minimal_extraction,
)
from .core.discovery import DiscoveryState, DiscoveryTracker
from .core.character_arc import CharacterArc, CharacterArcState, CharacterArcTracker
from .core.revision import RevisionHistory, RevisionPlanner, quick_revision, summarize_revisions
from .core.pipeline import EvolutionResult, StoryEvolution
from .config import EvolutionSettings, LLMConfiguration, create_default_config_from_env, create_settings_from_env
from .formats import FormatStrategy, get_strategy
from .models import ContentFormat, ExtractionRecord

__version__ = "1.0.0"

__all__ = [
    "EvolutionError",
    "FormatMismatchError",
    "GenerationFailure",
    "ExtractionEngine",
    "DeviationReport",
    "MergedStory",
    "find_deviations",
    "merge_extractions",
    "minimal_extraction",
    "build_comic_continuity_context",
    "DiscoveryState",
    "DiscoveryTracker",
    "CharacterArc",
    "CharacterArcState",
    "CharacterArcTracker",
    "RevisionPlanner",
    "RevisionHistory",
    "quick_revision",
    "summarize_revisions",
    "EvolutionResult",
    "StoryEvolution",
    "EvolutionSettings",
    "LLMConfiguration",
    "create_default_config_from_env",
    "create_settings_from_env",
    "FormatStrategy",
    "get_strategy",
    "ContentFormat",
    "ExtractionRecord",
]
