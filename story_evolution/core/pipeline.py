"""
Story Evolution Pipeline - Per-Unit Orchestration

Runs the whole evolution cycle once for every produced unit and owns the
per-story state between units.

Key concepts:
- initialize_tracking(): one discovery tracker and one arc tracker per story,
  both fixed to the story's content format, with the initial roster seeded
- run_unit(): extraction -> discovery update -> arc update -> revision
  decision -> (conditional) lookahead revision, strictly in that order
- Accepted revisions are appended to the story's RevisionHistory
- The whole story round-trips through to_dict() / from_dict() so callers
  can persist it between units
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..agents import LLMClient
from ..config.settings import EvolutionSettings
from ..models import (
    ArcRole,
    CharacterArcUpdate,
    ContentFormat,
    DiscoveryReport,
    ExtractionRecord,
    Revision,
    RevisionUrgency,
)
from .character_arc import CharacterArcTracker
from .classifiers import Classifiers
from .discovery import DiscoveryTracker
from .extraction import ExtractionEngine
from .revision import RevisionHistory, RevisionPlanner

logger = logging.getLogger("story_evolution.pipeline")

# Summaries shorter than this carry no real content yet.
MIN_CONTEXT_LENGTH = 50

_DETAIL_HEADERS = {
    ContentFormat.BOOK: "=== PROSE STYLE NOTES ===",
    ContentFormat.COMIC: "=== VISUAL CONTINUITY NOTES ===",
    ContentFormat.SCREENPLAY: "=== CHARACTER BREAKDOWN ===",
}


@dataclass
class EvolutionResult:
    """Everything one pipeline run produced for a unit."""
    extraction: ExtractionRecord
    discovery_report: DiscoveryReport
    arc_updates: List[CharacterArcUpdate]
    should_revise: bool
    urgency: RevisionUrgency
    reasons: List[str]
    format: ContentFormat
    revisions: Optional[List[Revision]] = None
    stuck_characters: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extraction": self.extraction.model_dump(mode="json"),
            "discovery_report": self.discovery_report.model_dump(mode="json"),
            "arc_updates": [u.model_dump(mode="json") for u in self.arc_updates],
            "should_revise": self.should_revise,
            "urgency": self.urgency.value,
            "reasons": list(self.reasons),
            "format": self.format.value,
            "revisions": None if self.revisions is None else [r.model_dump(mode="json") for r in self.revisions],
            "stuck_characters": list(self.stuck_characters),
        }


class StoryEvolution:
    """
    Evolution state and services for one story.

    Usage:
        evolution = StoryEvolution.initialize_tracking(
            "story-1", outline, [{"name": "Mara", "role": "protagonist"}], "comic",
            extraction_client=client, revision_client=client,
        )
        result = await evolution.run_unit(content, 4, plan_text, prior, upcoming, 20)
        context = evolution.generate_detailed_evolution_context()
    """

    def __init__(
        self,
        discovery: DiscoveryTracker,
        arcs: CharacterArcTracker,
        extraction_client: Optional[LLMClient] = None,
        revision_client: Optional[LLMClient] = None,
        settings: Optional[EvolutionSettings] = None,
        history: Optional[RevisionHistory] = None,
    ):
        if discovery.format != arcs.format:
            raise ValueError(
                f"Trackers disagree on format: discovery {discovery.format.value}, arcs {arcs.format.value}"
            )
        self.discovery = discovery
        self.arcs = arcs
        self.settings = settings or discovery.settings
        self.extraction_engine = ExtractionEngine(extraction_client, self.settings)
        self.revision_planner = RevisionPlanner(revision_client, self.settings)
        self.history = history or RevisionHistory(story_id=discovery.state.story_id)

    @property
    def format(self) -> ContentFormat:
        return self.discovery.format

    @property
    def story_id(self) -> str:
        return self.discovery.state.story_id

    # ========================================================================
    # Initialization
    # ========================================================================

    @classmethod
    def initialize_tracking(
        cls,
        story_id: str,
        outline: str,
        characters: Sequence[Any],
        format: Union[ContentFormat, str] = ContentFormat.BOOK,
        extraction_client: Optional[LLMClient] = None,
        revision_client: Optional[LLMClient] = None,
        settings: Optional[EvolutionSettings] = None,
        classifiers: Optional[Classifiers] = None,
    ) -> "StoryEvolution":
        """
        Create both trackers for a new story and seed the character roster.

        Args:
            story_id: Identifier of the book, comic or screenplay
            outline: Original plan text, used for every planned/unplanned check
            characters: Mappings with "name", "role" and optional "description",
                or (name, role) pairs
            format: "book", "comic" or "screenplay"
        """
        settings = settings or EvolutionSettings()
        classifiers = classifiers or Classifiers()
        discovery = DiscoveryTracker(story_id, outline, format, settings=settings, classifiers=classifiers)
        arcs = CharacterArcTracker(story_id, discovery.format, classifiers=classifiers)

        for character in characters:
            if isinstance(character, Mapping):
                name = character.get("name", "")
                role = character.get("role", ArcRole.MINOR)
                description = character.get("description")
            else:
                name, role = character
                description = None
            if not str(name).strip():
                continue
            arcs.initialize(str(name), role, description)

        logger.info(
            f"[initialize_tracking] {story_id} ({discovery.format.value}) with "
            f"{len(arcs.get_all_arcs())} character(s)"
        )
        return cls(
            discovery,
            arcs,
            extraction_client=extraction_client,
            revision_client=revision_client,
            settings=settings,
        )

    # ========================================================================
    # Run
    # ========================================================================

    async def run_unit(
        self,
        content: str,
        unit_number: int,
        planned_summary: str,
        prior_summary: str,
        upcoming_plans: Sequence[Any],
        total_units: int,
        known_entities: Optional[Sequence[str]] = None,
        decisions: Optional[Sequence[Mapping[str, Any]]] = None,
        auto_revise: Optional[bool] = None,
    ) -> EvolutionResult:
        """
        Run the full cycle for one produced unit.

        Raises:
            GenerationFailure: If extraction failed and the fallback policy is "raise".
                Tracker state is untouched in that case.
        """
        if known_entities is None:
            known_entities = [arc.character_name for arc in self.arcs.get_all_arcs()]

        record = await self.extraction_engine.extract(
            content,
            unit_number,
            planned_summary,
            prior_summary,
            known_entities,
            self.format,
        )
        return await self.process_record(record, upcoming_plans, total_units, decisions, auto_revise)

    async def process_record(
        self,
        record: ExtractionRecord,
        upcoming_plans: Sequence[Any],
        total_units: int,
        decisions: Optional[Sequence[Mapping[str, Any]]] = None,
        auto_revise: Optional[bool] = None,
    ) -> EvolutionResult:
        """Apply an already extracted unit. Must be called exactly once per unit."""
        unit = record.unit_number
        label = self.discovery.strategy.unit_label

        report = self.discovery.process_unit(record)
        arc_updates = self.arcs.update_from_unit(record.characters, record.relationships, unit, decisions)
        decision = self.revision_planner.decide(record, self.discovery, unit, total_units)

        if auto_revise is None:
            auto_revise = self.settings.auto_revise

        revisions: Optional[List[Revision]] = None
        if decision.should_revise and auto_revise and decision.urgency != RevisionUrgency.LOW:
            revisions = await self.revision_planner.batch(upcoming_plans, self.discovery, record, total_units)
            for revision in revisions:
                if not revision.failed:
                    self.history.add(revision)

        stuck = self.arcs.stuck_arcs(unit)
        logger.info(
            f"[process_record] {label} {unit}: {len(report.new_discoveries)} new discoveries, "
            f"{len(arc_updates)} arc update(s), revise={decision.should_revise} ({decision.urgency.value}), "
            f"{len(revisions or [])} revision(s), {len(stuck)} stuck arc(s)"
        )

        return EvolutionResult(
            extraction=record,
            discovery_report=report,
            arc_updates=arc_updates,
            should_revise=decision.should_revise,
            urgency=decision.urgency,
            reasons=decision.reasons,
            format=self.format,
            revisions=revisions,
            stuck_characters=stuck,
        )

    def current_plan(self, original_plans: Sequence[Any], unit_number: int) -> Optional[Any]:
        """Latest accepted plan for a unit."""
        strategy = self.discovery.strategy
        return self.history.current_plan([strategy.coerce_plan(p) for p in original_plans], unit_number)

    # ========================================================================
    # Generation Context
    # ========================================================================

    def generate_evolution_context(self) -> str:
        """Discovery summary plus main-character summaries for the next generation prompt."""
        context = ""

        discovery_summary = self.discovery.generate_discovery_summary()
        if len(discovery_summary) > MIN_CONTEXT_LENGTH:
            context += discovery_summary + "\n\n"

        character_summary = self.arcs.generate_all_characters_summary()
        if len(character_summary) > MIN_CONTEXT_LENGTH:
            context += character_summary

        return context

    def generate_detailed_evolution_context(self) -> str:
        """Evolution context with the format's character reference material appended."""
        context = self.generate_evolution_context()
        main_characters = [
            arc.character_name
            for arc in self.arcs.get_all_arcs()
            if arc.role in (ArcRole.PROTAGONIST, ArcRole.ANTAGONIST, ArcRole.SUPPORTING)
        ]

        if self.format == ContentFormat.COMIC:
            details = [self.arcs.generate_comic_character_sheet(name) for name in main_characters]
        elif self.format == ContentFormat.SCREENPLAY:
            details = [self.arcs.generate_screenplay_character_breakdown(name) for name in main_characters]
        else:
            details = [self.arcs.generate_book_prose_notes(name) for name in main_characters]

        context += f"\n\n{_DETAIL_HEADERS[self.format]}\n"
        context += "\n\n".join(d for d in details if d)
        return context

    # ========================================================================
    # State
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "story_id": self.story_id,
            "format": self.format.value,
            "original_outline": self.discovery.original_outline,
            "discovery": self.discovery.to_dict(),
            "arcs": self.arcs.to_dict(),
            "history": self.history.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        extraction_client: Optional[LLMClient] = None,
        revision_client: Optional[LLMClient] = None,
        settings: Optional[EvolutionSettings] = None,
        classifiers: Optional[Classifiers] = None,
    ) -> "StoryEvolution":
        """Restore a story saved with to_dict()."""
        settings = settings or EvolutionSettings()
        classifiers = classifiers or Classifiers()
        discovery = DiscoveryTracker.from_dict(
            data["discovery"],
            data.get("original_outline", ""),
            settings=settings,
            classifiers=classifiers,
        )
        arcs = CharacterArcTracker.from_dict(data["arcs"], classifiers=classifiers)

        expected = ContentFormat(data.get("format", discovery.format))
        if discovery.format != expected:
            raise ValueError(f"Saved story is {expected.value} but its discovery state is {discovery.format.value}")

        history_data = data.get("history")
        history = RevisionHistory.from_dict(history_data) if history_data else None
        return cls(
            discovery,
            arcs,
            extraction_client=extraction_client,
            revision_client=revision_client,
            settings=settings,
            history=history,
        )
