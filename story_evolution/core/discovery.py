"""
Discovery Tracker - Emergent Story Elements

Accumulates what the story is becoming, as opposed to what was planned:
themes, character discoveries, plot threads, running elements, connections
between relationship arcs, the tone timeline, and one format-specific
sub-ledger maintained by the story's FormatStrategy.

Key concepts:
- DiscoveryState: the cumulative ledger, mutated in place once per unit
- DiscoveryTracker.process_unit: not idempotent, call exactly once per unit
- Provenance: every new theme and thread records whether the original
  outline already mentioned it
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config.settings import EvolutionSettings
from ..formats import FormatContext, FormatStrategy, get_strategy
from ..models import (
    CharacterDiscovery,
    ContentFormat,
    DeviationType,
    DiscoveryReport,
    EmergentTheme,
    ExtractedSurprise,
    ExtractedThread,
    ExtractionRecord,
    FormatLedger,
    PlotThread,
    RelationshipChange,
    RunningElement,
    StoryConnection,
    ThemeOccurrence,
    ThemeStrength,
    ThreadPriority,
    ThreadStatus,
    ThreadType,
    ToneEntry,
    ToneShift,
    Urgency,
)
from .classifiers import Classifiers
from .ids import IdSequence
from .matching import SimilarityMatcher, SubstringMatcher, create_matcher

logger = logging.getLogger("story_evolution.discovery")

# (occurrences needed, from strength, to strength)
_THEME_PROMOTIONS = [
    (3, ThemeStrength.SUBTLE, ThemeStrength.DEVELOPING),
    (5, ThemeStrength.DEVELOPING, ThemeStrength.PROMINENT),
]

_URGENCY_PRIORITY = {
    Urgency.IMMEDIATE: ThreadPriority.MAIN,
    Urgency.HIGH: ThreadPriority.SECONDARY,
}

_LEADING_NAME_RE = re.compile(r"^\s*(\w+)")


@dataclass
class DiscoveryState:
    """Cumulative discovery ledger for one story."""
    story_id: str
    format: ContentFormat
    ledger: FormatLedger
    themes: List[EmergentTheme] = field(default_factory=list)
    character_discoveries: List[CharacterDiscovery] = field(default_factory=list)
    plot_threads: List[PlotThread] = field(default_factory=list)
    running_elements: List[RunningElement] = field(default_factory=list)
    connections: List[StoryConnection] = field(default_factory=list)
    tone_evolution: List[ToneEntry] = field(default_factory=list)
    last_updated: int = 0
    ids: IdSequence = field(default_factory=IdSequence)

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to a JSON-safe dictionary for persistence."""
        return {
            "story_id": self.story_id,
            "format": self.format.value,
            "themes": [t.model_dump(mode="json") for t in self.themes],
            "character_discoveries": [d.model_dump(mode="json") for d in self.character_discoveries],
            "plot_threads": [t.model_dump(mode="json") for t in self.plot_threads],
            "running_elements": [e.model_dump(mode="json") for e in self.running_elements],
            "connections": [c.model_dump(mode="json") for c in self.connections],
            "tone_evolution": [t.model_dump(mode="json") for t in self.tone_evolution],
            "last_updated": self.last_updated,
            "ledger": self.ledger.model_dump(mode="json"),
            "ids": self.ids.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiscoveryState":
        """Restore state saved by to_dict."""
        content_format = ContentFormat(data.get("format", "book"))
        strategy = get_strategy(content_format)
        return cls(
            story_id=data.get("story_id", ""),
            format=content_format,
            ledger=strategy.load_ledger(data.get("ledger")),
            themes=[EmergentTheme.model_validate(t) for t in data.get("themes", [])],
            character_discoveries=[
                CharacterDiscovery.model_validate(d) for d in data.get("character_discoveries", [])
            ],
            plot_threads=[PlotThread.model_validate(t) for t in data.get("plot_threads", [])],
            running_elements=[RunningElement.model_validate(e) for e in data.get("running_elements", [])],
            connections=[StoryConnection.model_validate(c) for c in data.get("connections", [])],
            tone_evolution=[ToneEntry.model_validate(t) for t in data.get("tone_evolution", [])],
            last_updated=int(data.get("last_updated", 0)),
            ids=IdSequence.from_dict(data.get("ids")),
        )


class DiscoveryTracker:
    """
    Tracks emergent story elements across units.

    Usage:
        tracker = DiscoveryTracker("story-1", outline_text, "comic")
        report = tracker.process_unit(record)
        summary = tracker.generate_discovery_summary()
    """

    def __init__(
        self,
        story_id: str,
        original_outline: str,
        format: Any = ContentFormat.BOOK,
        settings: Optional[EvolutionSettings] = None,
        classifiers: Optional[Classifiers] = None,
        state: Optional[DiscoveryState] = None,
    ):
        self.strategy: FormatStrategy = get_strategy(format)
        self.format = self.strategy.format
        self.original_outline = original_outline or ""
        self.settings = settings or EvolutionSettings()
        self.classifiers = classifiers or Classifiers()
        self.matcher: SimilarityMatcher = create_matcher(self.settings.matcher, self.settings.matcher_cutoff)
        if self.settings.matcher == "substring":
            self.thread_matcher: SimilarityMatcher = SubstringMatcher(self.settings.thread_match_prefix)
        else:
            self.thread_matcher = self.matcher

        if state is None:
            state = DiscoveryState(story_id=story_id, format=self.format, ledger=self.strategy.new_ledger())
        elif state.format != self.format:
            raise ValueError(f"Discovery state is for {state.format.value}, tracker is for {self.format.value}")
        self.state = state

    # ========================================================================
    # Process New Unit
    # ========================================================================

    def process_unit(self, record: ExtractionRecord) -> DiscoveryReport:
        """Apply one unit's extraction to the ledger and report what changed."""
        self.strategy.check_record(record)
        unit = record.unit_number
        label = self.strategy.unit_label.lower()

        new_discoveries: List[str] = []
        reinforced: List[str] = []
        suggestions: List[str] = []

        # 1. Themes
        for theme_name in record.emergent_themes:
            if not theme_name or not theme_name.strip():
                continue
            is_new, _ = self._track_theme(theme_name, unit)
            if is_new:
                new_discoveries.append(f'New theme emerged: "{theme_name}"')
            else:
                reinforced.append(f'Theme reinforced: "{theme_name}"')

        # 2. Character discoveries
        for surprise in record.surprises:
            if surprise.deviation_type != DeviationType.CHARACTER_CHOICE:
                continue
            discovery = self._track_character_discovery(surprise, unit)
            if discovery:
                new_discoveries.append(f"Character discovery: {discovery.description}")
                if discovery.should_integrate:
                    suggestions.append(
                        f"Integrate {discovery.character_name}'s {discovery.discovery_type} into future {label}s"
                    )

        # 3. Plot threads
        for thread in record.threads:
            if not thread.description.strip():
                continue
            is_new, tracked = self._track_plot_thread(thread, unit)
            if is_new and not tracked.was_planned:
                new_discoveries.append(f"Emergent plot thread: {thread.description}")
                if tracked.priority in (ThreadPriority.MAIN, ThreadPriority.SECONDARY):
                    suggestions.append(f'Address "{thread.description}" in upcoming {label}s')

        # 4-6. Running elements, connections, tone
        self._detect_running_elements(record, unit)
        self._detect_connections(record, unit)
        self._track_tone(record, unit)

        # 7. Format extension
        delta = self.strategy.update_state(self.state.ledger, record, self._format_context())
        new_discoveries.extend(delta.new)
        reinforced.extend(delta.reinforced)
        suggestions.extend(delta.suggestions)

        self.state.last_updated = unit

        logger.info(
            f"[process_unit] {self.strategy.unit_label} {unit}: {len(new_discoveries)} new, "
            f"{len(reinforced)} reinforced, {len(suggestions)} suggestions"
        )

        return DiscoveryReport(
            unit_number=unit,
            format=self.format,
            new_discoveries=new_discoveries,
            reinforced_elements=reinforced,
            suggested_integrations=suggestions,
            threads_needing_attention=self.get_threads_needing_attention(),
            themes_to_reinforce=self.get_strong_themes(),
            insights=self.strategy.insights(self.state.ledger),
        )

    def _format_context(self) -> FormatContext:
        return FormatContext(
            classifiers=self.classifiers,
            ids=self.state.ids,
            settings=self.settings,
            matcher=self.matcher,
        )

    # ========================================================================
    # Themes
    # ========================================================================

    def _track_theme(self, theme_name: str, unit: int) -> Tuple[bool, EmergentTheme]:
        existing = self.matcher.find(theme_name, self.state.themes, key=lambda t: t.name)

        if existing:
            existing.occurrences.append(
                ThemeOccurrence(unit=unit, context=f"Appeared in {self.strategy.unit_label.lower()} {unit}")
            )
            count = len(existing.occurrences)
            for needed, from_strength, to_strength in _THEME_PROMOTIONS:
                if count >= needed and existing.strength == from_strength:
                    existing.strength = to_strength
            return False, existing

        theme = EmergentTheme(
            id=self.state.ids.next("theme"),
            name=theme_name,
            description=theme_name,
            first_appeared=unit,
            occurrences=[
                ThemeOccurrence(unit=unit, context=f"First appeared in {self.strategy.unit_label.lower()} {unit}")
            ],
            was_planned=self._in_outline(theme_name),
        )
        self.state.themes.append(theme)
        return True, theme

    # ========================================================================
    # Character Discoveries
    # ========================================================================

    def _track_character_discovery(self, surprise: ExtractedSurprise, unit: int) -> Optional[CharacterDiscovery]:
        # Best effort: the leading word of the sentence is taken as the name.
        match = _LEADING_NAME_RE.match(surprise.actually_happened or "")
        if not match:
            return None

        was_planned = self._in_outline(surprise.actually_happened[:50])
        discovery = CharacterDiscovery(
            character_name=match.group(1),
            discovery_type=self.classifiers.discovery_type(surprise.actually_happened),
            description=surprise.actually_happened,
            unit_revealed=unit,
            was_planned=was_planned,
            should_integrate=not was_planned,
        )
        self.state.character_discoveries.append(discovery)
        return discovery

    # ========================================================================
    # Plot Threads
    # ========================================================================

    def _track_plot_thread(self, thread: ExtractedThread, unit: int) -> Tuple[bool, PlotThread]:
        existing = self.thread_matcher.find(thread.description, self.state.plot_threads, key=lambda t: t.description)

        if existing:
            existing.last_mentioned = unit
            if thread.type == ThreadType.CALLBACK:
                existing.status = ThreadStatus.RESOLVED
            elif thread.urgency in (Urgency.IMMEDIATE, Urgency.HIGH) and existing.status == ThreadStatus.ACTIVE:
                existing.status = ThreadStatus.READY_TO_RESOLVE
            return False, existing

        if thread.type == ThreadType.CALLBACK:
            status = ThreadStatus.RESOLVED
        elif thread.type == ThreadType.CLIFFHANGER:
            status = ThreadStatus.READY_TO_RESOLVE
        else:
            status = ThreadStatus.ACTIVE

        tracked = PlotThread(
            id=self.state.ids.next("thread"),
            description=thread.description,
            type=self.classifiers.thread_category(thread.description),
            introduced=unit,
            last_mentioned=unit,
            status=status,
            priority=_URGENCY_PRIORITY.get(thread.urgency, ThreadPriority.MINOR),
            was_planned=self._in_outline(thread.description[:40]),
        )
        self.state.plot_threads.append(tracked)
        return True, tracked

    # ========================================================================
    # Running Elements, Connections, Tone
    # ========================================================================

    def _detect_running_elements(self, record: ExtractionRecord, unit: int) -> None:
        content = f"{record.one_line_summary} {record.emotional_arc}".lower()

        for element in self.state.running_elements:
            if element.name.lower() in content and unit not in element.occurrences:
                element.occurrences.append(unit)

        for thread in record.threads:
            if thread.type != ThreadType.CALLBACK or not thread.description.strip():
                continue
            description = thread.description.lower()
            if any(e.name.lower() in description for e in self.state.running_elements):
                continue
            self.state.running_elements.append(
                RunningElement(
                    id=self.state.ids.next("element"),
                    type="callback",
                    name=" ".join(thread.description.split()[:3]),
                    description=thread.description,
                    occurrences=[unit],
                )
            )

    def _detect_connections(self, record: ExtractionRecord, unit: int) -> None:
        relationships = record.relationships
        label = self.strategy.unit_label.lower()

        for i, first in enumerate(relationships):
            for second in relationships[i + 1:]:
                element1 = f"{first.character1}-{first.character2} relationship"
                element2 = f"{second.character1}-{second.character2} relationship"

                if first.change == second.change and first.change != RelationshipChange.UNCHANGED:
                    self.state.connections.append(
                        StoryConnection(
                            element1=element1,
                            element2=element2,
                            connection_type="parallel",
                            description=f"Both relationships {first.change.value} in the same {label}",
                            unit_discovered=unit,
                        )
                    )

                if {first.change, second.change} == {RelationshipChange.IMPROVED, RelationshipChange.WORSENED}:
                    self.state.connections.append(
                        StoryConnection(
                            element1=element1,
                            element2=element2,
                            connection_type="contrast",
                            description="Contrasting relationship arcs",
                            unit_discovered=unit,
                        )
                    )

    def _track_tone(self, record: ExtractionRecord, unit: int) -> None:
        primary_tone = self.classifiers.tone(record.emotional_arc)
        entry = ToneEntry(unit=unit, primary_tone=primary_tone)

        if self.state.tone_evolution:
            previous = self.state.tone_evolution[-1].primary_tone
            if previous != primary_tone:
                entry.shift = ToneShift(from_tone=previous, to_tone=primary_tone, trigger=record.one_line_summary)

        self.state.tone_evolution.append(entry)

    def _in_outline(self, text: str) -> bool:
        needle = text.lower().strip()
        return bool(needle) and needle in self.original_outline.lower()

    # ========================================================================
    # Queries
    # ========================================================================

    def get_threads_needing_attention(self) -> List[PlotThread]:
        """Open threads, main before secondary before minor."""
        open_threads = [t for t in self.state.plot_threads if t.status.is_open]
        return sorted(open_threads, key=lambda t: t.priority.rank)

    def get_strong_themes(self) -> List[EmergentTheme]:
        return [t for t in self.state.themes if t.strength.rank >= ThemeStrength.DEVELOPING.rank]

    def get_unplanned_discoveries(self) -> Dict[str, list]:
        return {
            "themes": [t for t in self.state.themes if not t.was_planned],
            "characters": [
                d for d in self.state.character_discoveries if not d.was_planned and d.should_integrate
            ],
            "threads": [
                t for t in self.state.plot_threads if not t.was_planned and t.status == ThreadStatus.ACTIVE
            ],
        }

    def get_stale_threads(self, current_unit: int, threshold: Optional[int] = None) -> List[PlotThread]:
        """Active threads not mentioned for `threshold` or more units."""
        if threshold is None:
            threshold = self.settings.stale_thread_threshold
        return [
            t for t in self.state.plot_threads
            if t.status == ThreadStatus.ACTIVE and current_unit - t.last_mentioned >= threshold
        ]

    def abandon_thread(self, thread_id: str) -> bool:
        """Mark an open thread abandoned. Returns False for unknown or closed threads."""
        for thread in self.state.plot_threads:
            if thread.id == thread_id:
                if not thread.status.is_open:
                    logger.warning(f"[abandon_thread] Thread {thread_id} is already {thread.status.value}")
                    return False
                thread.status = ThreadStatus.ABANDONED
                logger.info(f"[abandon_thread] Abandoned thread {thread_id}: {thread.description}")
                return True
        logger.warning(f"[abandon_thread] Unknown thread: {thread_id}")
        return False

    # ========================================================================
    # State
    # ========================================================================

    def get_state(self) -> DiscoveryState:
        return self.state

    def load_state(self, state: DiscoveryState) -> None:
        if state.format != self.format:
            raise ValueError(f"Discovery state is for {state.format.value}, tracker is for {self.format.value}")
        self.state = state

    def to_dict(self) -> Dict[str, Any]:
        return self.state.to_dict()

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        original_outline: str,
        settings: Optional[EvolutionSettings] = None,
        classifiers: Optional[Classifiers] = None,
    ) -> "DiscoveryTracker":
        state = DiscoveryState.from_dict(data)
        return cls(
            state.story_id,
            original_outline,
            state.format,
            settings=settings,
            classifiers=classifiers,
            state=state,
        )

    # ========================================================================
    # Summary
    # ========================================================================

    def generate_discovery_summary(self) -> str:
        """Prompt-ready summary of what the story has become."""
        unplanned = self.get_unplanned_discoveries()
        strong_themes = self.get_strong_themes()
        needs_attention = self.get_threads_needing_attention()

        summary = "=== STORY EVOLUTION SUMMARY ===\n\n"

        if strong_themes:
            summary += "THEMES TO REINFORCE:\n"
            for theme in strong_themes:
                summary += (
                    f'- "{theme.name}" ({theme.strength.value}, appeared {len(theme.occurrences)} times)\n'
                )
            summary += "\n"

        if unplanned["characters"]:
            summary += "CHARACTER DISCOVERIES TO INTEGRATE:\n"
            for discovery in unplanned["characters"]:
                summary += f"- {discovery.character_name}: {discovery.description}\n"
            summary += "\n"

        if needs_attention:
            summary += "THREADS NEEDING ATTENTION:\n"
            for thread in needs_attention[:5]:
                summary += f"- [{thread.priority.value.upper()}] {thread.description} ({thread.status.value})\n"
            summary += "\n"

        if unplanned["threads"]:
            summary += "EMERGENT PLOT THREADS:\n"
            for thread in unplanned["threads"]:
                summary += f"- {thread.description}\n"

        return summary
