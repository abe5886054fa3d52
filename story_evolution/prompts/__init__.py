"""
Story Evolution Prompts Module
Prompt templates for extraction and plan revision.
"""

from .extraction import (
    BOOK_EXTRACTION_SYSTEM_PROMPT,
    COMIC_EXTRACTION_SYSTEM_PROMPT,
    SCREENPLAY_EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_PROMPT_TEMPLATE,
    EXTRACTION_CORE_SCHEMA,
    BOOK_EXTRACTION_ADDENDUM,
    COMIC_EXTRACTION_ADDENDUM,
    SCREENPLAY_EXTRACTION_ADDENDUM,
)
from .revision import (
    BOOK_REVISION_SYSTEM_PROMPT,
    COMIC_REVISION_SYSTEM_PROMPT,
    SCREENPLAY_REVISION_SYSTEM_PROMPT,
    CHAPTER_REVISION_PROMPT_TEMPLATE,
    COMIC_REVISION_PROMPT_TEMPLATE,
    SCREENPLAY_REVISION_PROMPT_TEMPLATE,
    render_section,
)

__all__ = [
    "BOOK_EXTRACTION_SYSTEM_PROMPT",
    "COMIC_EXTRACTION_SYSTEM_PROMPT",
    "SCREENPLAY_EXTRACTION_SYSTEM_PROMPT",
    "EXTRACTION_USER_PROMPT_TEMPLATE",
    "EXTRACTION_CORE_SCHEMA",
    "BOOK_EXTRACTION_ADDENDUM",
    "COMIC_EXTRACTION_ADDENDUM",
    "SCREENPLAY_EXTRACTION_ADDENDUM",
    "BOOK_REVISION_SYSTEM_PROMPT",
    "COMIC_REVISION_SYSTEM_PROMPT",
    "SCREENPLAY_REVISION_SYSTEM_PROMPT",
    "CHAPTER_REVISION_PROMPT_TEMPLATE",
    "COMIC_REVISION_PROMPT_TEMPLATE",
    "SCREENPLAY_REVISION_PROMPT_TEMPLATE",
    "render_section",
]
