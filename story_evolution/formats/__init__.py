"""
Story Evolution Formats Module
One strategy per content format, selected once per story.
"""

from typing import Dict, Type, Union

from ..models import ContentFormat
from .base import (
    FormatContext,
    FormatDelta,
    FormatStrategy,
    RevisionContext,
    pick_number,
    pick_text,
    pick_texts,
    string_list,
)
from .book import BookStrategy
from .comic import ComicStrategy, hook_effectiveness, is_conflicting_detail, panel_pacing_trend
from .screenplay import ScreenplayStrategy, detect_subtext_opportunities

_STRATEGIES: Dict[ContentFormat, Type[FormatStrategy]] = {
    ContentFormat.BOOK: BookStrategy,
    ContentFormat.COMIC: ComicStrategy,
    ContentFormat.SCREENPLAY: ScreenplayStrategy,
}


def get_strategy(format: Union[ContentFormat, str]) -> FormatStrategy:
    """Return the strategy for a content format ("book", "comic" or "screenplay")."""
    try:
        content_format = ContentFormat(format)
    except ValueError:
        raise ValueError(f"Unsupported content format: {format}")
    return _STRATEGIES[content_format]()


__all__ = [
    "FormatContext",
    "FormatDelta",
    "FormatStrategy",
    "RevisionContext",
    "BookStrategy",
    "ComicStrategy",
    "ScreenplayStrategy",
    "get_strategy",
    "hook_effectiveness",
    "is_conflicting_detail",
    "panel_pacing_trend",
    "detect_subtext_opportunities",
    "pick_number",
    "pick_text",
    "pick_texts",
    "string_list",
]
