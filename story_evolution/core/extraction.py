"""
Extraction Engine - What Actually Happened

Turns the content produced for one unit (chapter, page or sequence) into a
structured ExtractionRecord by asking the text service for the common facts
plus the active format's extension fields.

Key concepts:
- One format-aware request per unit, low temperature for accuracy
- Tolerant JSON recovery on the response
- Bounded retries for unparsable output and transient transport errors,
  then either GenerationFailure (default) or a degraded regex extraction
- Helpers over finished records: deviations from plan, merged story view,
  and comic page-to-page continuity context
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from ..agents import LLMClient
from ..config.settings import EvolutionSettings
from ..formats import FormatStrategy, get_strategy
from ..models import (
    CausalBridge,
    ContentFormat,
    DeviationType,
    ExtractedThread,
    ExtractionRecord,
    Momentum,
    Significance,
    ThreadType,
)
from .exceptions import GenerationFailure
from .json_utils import backoff_delay, extract_json, is_retryable_error
from .keyed_map import NameKeyedMap
from .matching import SubstringMatcher

logger = logging.getLogger("story_evolution.extraction")

_SIGNIFICANT_DEVIATIONS = (DeviationType.PLOT_TWIST, DeviationType.CHARACTER_CHOICE)


class ExtractionEngine:
    """
    Extracts structured facts from produced unit content.

    Usage:
        engine = ExtractionEngine(llm_client, settings)
        record = await engine.extract(content, 4, plan_text, prior_summary, ["Mara"], "book")
    """

    def __init__(self, llm_client: LLMClient, settings: Optional[EvolutionSettings] = None):
        self.llm_client = llm_client
        self.settings = settings or EvolutionSettings()

    async def extract(
        self,
        content: str,
        unit_number: int,
        planned_summary: str,
        prior_summary: str,
        known_entities: Sequence[str],
        format: Union[ContentFormat, str],
    ) -> ExtractionRecord:
        """
        Extract one unit.

        Raises:
            GenerationFailure: If every attempt failed and the fallback policy is "raise"
        """
        strategy = get_strategy(format)
        prompt = strategy.build_extraction_prompt(
            content=content,
            unit_number=unit_number,
            planned_summary=planned_summary,
            prior_summary=prior_summary,
            known_entities=known_entities,
        )
        max_tokens = self.settings.extraction_max_tokens[strategy.format.value]
        max_attempts = self.settings.extraction_max_attempts

        logger.info(
            f"[extract] {strategy.unit_label} {unit_number} ({strategy.format.value}), "
            f"max_tokens: {max_tokens}, content length: {len(content)}"
        )

        last_error: Optional[BaseException] = None
        attempts = 0
        for attempt in range(max_attempts):
            if attempt > 0:
                delay = backoff_delay(attempt, self.settings.retry_backoff_base)
                logger.info(f"[extract] Retry attempt {attempt + 1}/{max_attempts} after {delay:.1f}s delay")
                await asyncio.sleep(delay)
            attempts = attempt + 1

            try:
                response = await self.llm_client.generate(
                    system_prompt=strategy.extraction_system_prompt,
                    user_prompt=prompt,
                    temperature=self.settings.extraction_temperature,
                    max_tokens=max_tokens,
                )
            except Exception as e:
                last_error = e
                logger.warning(f"[extract] Attempt {attempt + 1}/{max_attempts} failed: {e}")
                if not is_retryable_error(e):
                    logger.error(f"[extract] Non-retryable error: {e}")
                    break
                continue

            data = extract_json(response)
            if not isinstance(data, dict):
                last_error = ValueError("Extraction response did not contain a JSON object")
                logger.warning(f"[extract] Attempt {attempt + 1}/{max_attempts} returned unparsable output")
                continue

            try:
                return self.build_record(data, unit_number, strategy)
            except ValidationError as e:
                last_error = e
                logger.warning(f"[extract] Attempt {attempt + 1}/{max_attempts} failed validation: {e}")

        return self._on_failure(content, unit_number, strategy, attempts, last_error)

    def build_record(self, data: dict, unit_number: int, strategy: FormatStrategy) -> ExtractionRecord:
        """Validate a parsed response into a record for this unit and format."""
        record = ExtractionRecord.model_validate(
            {
                **data,
                "unit_number": unit_number,
                "format": strategy.format,
                "payload": strategy.parse_extension(data),
            }
        )
        logger.info(
            f"[build_record] {strategy.unit_label} {unit_number}: {len(record.events)} events, "
            f"{len(record.characters)} characters, {len(record.threads)} threads"
        )
        return record

    def _on_failure(
        self,
        content: str,
        unit_number: int,
        strategy: FormatStrategy,
        attempts: int,
        cause: Optional[BaseException],
    ) -> ExtractionRecord:
        if self.settings.extraction_fallback == "minimal":
            logger.warning(
                f"[extract] Falling back to minimal extraction for {strategy.unit_label} {unit_number} "
                f"after {attempts} attempt(s): {cause}"
            )
            return strategy.minimal_extraction(content, unit_number)

        logger.error(f"[extract] Extraction failed for {strategy.unit_label} {unit_number} after {attempts} attempt(s)")
        raise GenerationFailure(
            f"Extraction failed for {strategy.unit_label.lower()} {unit_number}: {cause}",
            attempts=attempts,
            cause=cause,
        )


def minimal_extraction(content: str, unit_number: int, format: Union[ContentFormat, str]) -> ExtractionRecord:
    """Regex heuristics used when the degraded fallback is enabled."""
    return get_strategy(format).minimal_extraction(content, unit_number)


# ============================================================================
# Deviations
# ============================================================================

@dataclass
class DeviationReport:
    missed_beats: List[str] = field(default_factory=list)
    unexpected_elements: List[str] = field(default_factory=list)
    significance: str = "minor"


def find_deviations(record: ExtractionRecord, planned_beats: Sequence[str] = ()) -> DeviationReport:
    """
    Compare a unit against its plan.

    Surprises name what the outline planned; when that text matches one of
    the planned beats, the beat's own wording is reported as missed.

    Significance is "significant" for any pivotal event or plot-twist /
    character-choice surprise, "moderate" for a new character or more than
    one surprise, else "minor".
    """
    matcher = SubstringMatcher()
    report = DeviationReport()

    for surprise in record.surprises:
        if surprise.outline_planned:
            beat = next((b for b in planned_beats if matcher.matches(b, surprise.outline_planned)), None)
            missed = beat or surprise.outline_planned
            if missed not in report.missed_beats:
                report.missed_beats.append(missed)
        if surprise.actually_happened:
            report.unexpected_elements.append(surprise.actually_happened)

    pivotal = [e for e in record.events if e.significance == Significance.PIVOTAL]
    major_surprises = [s for s in record.surprises if s.deviation_type in _SIGNIFICANT_DEVIATIONS]
    new_characters = [c for c in record.characters if c.is_new]

    if pivotal or major_surprises:
        report.significance = "significant"
    elif new_characters or len(record.surprises) > 1:
        report.significance = "moderate"
    return report


# ============================================================================
# Merging
# ============================================================================

@dataclass
class MergedStory:
    """Story-so-far view assembled from several extraction records."""
    characters: NameKeyedMap = field(default_factory=NameKeyedMap)
    locations: NameKeyedMap = field(default_factory=NameKeyedMap)
    active_threads: List[ExtractedThread] = field(default_factory=list)
    resolved_threads: List[ExtractedThread] = field(default_factory=list)
    story_arc: str = ""


def merge_extractions(records: Iterable[ExtractionRecord]) -> MergedStory:
    """Latest character state wins, first location wins; callbacks count as resolved."""
    merged = MergedStory()
    phases: List[Momentum] = []

    for record in records:
        for character in record.characters:
            if character.name.strip():
                merged.characters[character.name] = character
        for location in record.locations:
            if location.name.strip() and location.name not in merged.locations:
                merged.locations[location.name] = location
        for thread in record.threads:
            if thread.type == ThreadType.CALLBACK:
                merged.resolved_threads.append(thread)
            else:
                merged.active_threads.append(thread)
        phases.append(record.story_momentum)

    merged.story_arc = summarize_arc(phases)
    return merged


def summarize_arc(phases: Sequence[Momentum]) -> str:
    total = len(phases)
    if not total:
        return "No units processed yet"

    counts = {momentum: 0 for momentum in Momentum}
    for phase in phases:
        counts[Momentum(phase)] += 1

    if counts[Momentum.CLIMAXING] / total > 0.3:
        return "Story is in high-tension climax phase"
    if counts[Momentum.BUILDING] / total > 0.6:
        return "Story is steadily building tension"
    if counts[Momentum.RESOLVING] > counts[Momentum.BUILDING]:
        return "Story is moving toward resolution"
    return "Story has varied pacing"


# ============================================================================
# Comic Continuity
# ============================================================================

def last_page_causal_bridge(record: ExtractionRecord) -> Optional[CausalBridge]:
    """The THEREFORE/BUT link recorded on the last page of a comic unit."""
    if record.format != ContentFormat.COMIC or not record.payload.pages:
        return None
    return record.payload.pages[-1].causal_bridge


def build_comic_continuity_context(record: ExtractionRecord, max_previous_pages: int = 2) -> str:
    """Continuity block for the next page: causal bridge, recent pages and visual reminders."""
    if record.format != ContentFormat.COMIC:
        return ""

    payload = record.payload
    parts: List[str] = []

    bridge = last_page_causal_bridge(record)
    if bridge:
        parts.append(
            "=== CAUSAL BRIDGE FROM PREVIOUS PAGE ===\n"
            f"Because the last page ended with: {bridge.page_ended_with}\n"
            f"THIS PAGE MUST SHOW: {bridge.next_page_must_show}\n"
            f"Visual hook to continue: {bridge.visual_hook}\n"
            f"Emotional momentum: {bridge.emotional_momentum}"
        )

    recent = payload.pages[-max_previous_pages:] if max_previous_pages > 0 else []
    if recent:
        lines = []
        for page in recent:
            panel_summary = "; ".join(p.description for p in page.panels[:3])
            ellipsis = "..." if len(page.panels) > 3 else ""
            lines.append(f"Page {page.page_number}: {panel_summary}{ellipsis}")
        parts.append("=== RECENT PAGES (DO NOT REPEAT) ===\n" + "\n".join(lines))

    char_details = "\n".join(
        f"{c.name}: {', '.join(c.visual_details[:3])}"
        for c in payload.visual_consistency.character_appearances[:5]
    )
    if char_details:
        parts.append(f"=== CHARACTER VISUAL CONSISTENCY ===\n{char_details}")

    return "\n\n".join(parts)


def default_causal_bridge(page_description: str = "") -> CausalBridge:
    """Fallback bridge for pages extracted without one."""
    return CausalBridge(
        page_ended_with=page_description or "Page content",
        next_page_must_show="Continue the action from the previous page",
        visual_hook="Character reaction to previous events",
        emotional_momentum="Tension continues building",
    )
