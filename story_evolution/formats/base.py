"""
Format strategy base for the story evolution engine.

Every behaviour that differs between books, comics and screenplays lives
behind one FormatStrategy, selected once per story. The trackers and the
revision planner call the strategy instead of switching on the format.

Key concepts:
- FormatContext: shared services a strategy may use while updating a ledger
- FormatDelta: new / reinforced / suggested lines produced by one update
- RevisionContext: the scoped view of the discovery ledger used to revise
  one lookahead window
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel

from ..config.settings import EvolutionSettings
from ..core.classifiers import Classifiers
from ..core.exceptions import FormatMismatchError
from ..core.ids import IdSequence
from ..core.matching import SimilarityMatcher, SubstringMatcher
from ..models import (
    AnyPlan,
    CharacterDiscovery,
    ContentFormat,
    EmergentTheme,
    ExtractionRecord,
    FormatInsights,
    FormatLedger,
    FormatPayload,
    FormatProfile,
    PlotThread,
)
from ..prompts import EXTRACTION_CORE_SCHEMA, EXTRACTION_USER_PROMPT_TEMPLATE, render_section

logger = logging.getLogger("story_evolution.formats")


@dataclass
class FormatContext:
    """Services available to a strategy while it updates its ledger."""
    classifiers: Classifiers = field(default_factory=Classifiers)
    ids: IdSequence = field(default_factory=IdSequence)
    settings: EvolutionSettings = field(default_factory=EvolutionSettings)
    matcher: SimilarityMatcher = field(default_factory=SubstringMatcher)


@dataclass
class FormatDelta:
    """Lines produced by one format-specific ledger update."""
    new: List[str] = field(default_factory=list)
    reinforced: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class RevisionContext:
    """Scoped view of the discovery ledger for one revision batch."""
    format: ContentFormat
    completed_units: int
    total_units: int
    current_momentum: str
    last_summary: str
    threads_needing_resolution: List[PlotThread] = field(default_factory=list)
    stale_threads: List[PlotThread] = field(default_factory=list)
    strong_themes: List[EmergentTheme] = field(default_factory=list)
    character_discoveries: List[CharacterDiscovery] = field(default_factory=list)
    brief: Dict[str, Any] = field(default_factory=dict)


def pick_text(response: Dict[str, Any], key: str, original: Optional[str]) -> Optional[str]:
    """Use the response value when it is a non-empty string, else the original."""
    value = response.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value
    return original


def pick_number(response: Dict[str, Any], key: str, original: float) -> float:
    value = response.get(key)
    if isinstance(value, bool):
        return original
    if isinstance(value, (int, float)) and value > 0:
        return value
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return original
        return parsed if parsed > 0 else original
    return original


def string_list(value: Any) -> List[str]:
    """Coerce a response value to a list of non-blank strings."""
    if isinstance(value, list):
        return [str(v) for v in value if v is not None and str(v).strip()]
    if isinstance(value, str) and value.strip():
        return [value]
    return []


def pick_texts(response: Dict[str, Any], key: str, original: Sequence[str]) -> List[str]:
    return string_list(response.get(key)) or list(original)


class FormatStrategy(ABC):
    """Format-specific behaviour for extraction, discovery, revision and arcs."""

    format: ContentFormat
    unit_label: str
    plan_model: Type[BaseModel]
    extraction_system_prompt: str
    extraction_addendum: str
    revision_system_prompt: str
    # Book batches drop addressed threads before revising the next unit.
    chains_thread_context: bool = False

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def build_extraction_prompt(
        self,
        content: str,
        unit_number: int,
        planned_summary: str,
        prior_summary: str,
        known_entities: Sequence[str],
    ) -> str:
        header = EXTRACTION_USER_PROMPT_TEMPLATE.format(
            unit_label=self.unit_label.upper(),
            unit_number=unit_number,
            content=content,
            planned_summary=planned_summary,
            prior_summary=prior_summary or "This is the first section",
            known_entities=", ".join(known_entities) or "None yet",
        )
        return header + EXTRACTION_CORE_SCHEMA + self.extraction_addendum

    @abstractmethod
    def parse_extension(self, data: Dict[str, Any]) -> FormatPayload:
        """Build this format's payload from the top-level response object."""
        pass

    @abstractmethod
    def minimal_extraction(self, content: str, unit_number: int) -> ExtractionRecord:
        """Heuristic extraction used only by the degraded fallback policy."""
        pass

    def check_record(self, record: ExtractionRecord) -> ExtractionRecord:
        if record.format != self.format:
            raise FormatMismatchError(self.format.value, record.format.value, "extraction record")
        return record

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    @abstractmethod
    def new_ledger(self) -> FormatLedger:
        pass

    @abstractmethod
    def update_state(
        self,
        ledger: FormatLedger,
        record: ExtractionRecord,
        ctx: FormatContext,
    ) -> FormatDelta:
        """Apply one unit to the format ledger."""
        pass

    @abstractmethod
    def insights(self, ledger: FormatLedger) -> FormatInsights:
        pass

    def load_ledger(self, data: Optional[Dict[str, Any]]) -> FormatLedger:
        ledger = self.new_ledger()
        if not data:
            return ledger
        kind = data.get("kind", self.format.value)
        if kind != self.format.value:
            raise FormatMismatchError(self.format.value, kind, "discovery ledger")
        return type(ledger).model_validate(data)

    # ------------------------------------------------------------------
    # Revision
    # ------------------------------------------------------------------

    @abstractmethod
    def score_revision_reasons(
        self,
        record: ExtractionRecord,
        ledger: FormatLedger,
        settings: EvolutionSettings,
    ) -> Tuple[List[str], int]:
        """Format-specific revision reasons and their score contribution."""
        pass

    @abstractmethod
    def revision_brief(
        self,
        ledger: FormatLedger,
        record: ExtractionRecord,
        settings: EvolutionSettings,
    ) -> Dict[str, Any]:
        """Format advisory data added to the revision context."""
        pass

    @abstractmethod
    def build_revision_prompt(self, plan: AnyPlan, context: RevisionContext) -> str:
        pass

    @abstractmethod
    def merge_revision(self, plan: AnyPlan, response: Dict[str, Any]) -> Tuple[AnyPlan, Dict[str, Any]]:
        """Overlay revised fields on the original plan; returns the plan and format extras."""
        pass

    def coerce_plan(self, plan: Any) -> AnyPlan:
        """Accept a plan model or a plain dict; reject plans of another format."""
        if isinstance(plan, self.plan_model):
            return plan
        if isinstance(plan, BaseModel):
            raise FormatMismatchError(self.plan_model.__name__, type(plan).__name__, "plan")
        return self.plan_model.model_validate(plan)

    def common_context_sections(self, context: RevisionContext) -> str:
        sections = [
            render_section(
                "THREADS NEEDING RESOLUTION (in priority order)",
                [f"[{t.priority.value.upper()}] {t.description}" for t in context.threads_needing_resolution],
            ),
            render_section(
                "STALE THREADS (not mentioned in 3+ units)",
                [t.description for t in context.stale_threads],
            ),
            render_section(
                "THEMES TO REINFORCE",
                [f"\"{t.name}\" ({t.strength.value})" for t in context.strong_themes],
            ),
            render_section(
                "CHARACTER DISCOVERIES TO INTEGRATE",
                [f"{d.character_name}: {d.description}" for d in context.character_discoveries],
            ),
        ]
        return "".join(sections)

    # ------------------------------------------------------------------
    # Character arcs
    # ------------------------------------------------------------------

    @abstractmethod
    def new_profile(self, description: Optional[str] = None) -> FormatProfile:
        pass

    @abstractmethod
    def render_summary(self, profile: FormatProfile) -> str:
        """Format block appended to a character's prompt summary."""
        pass

    def load_profile(self, data: Optional[Dict[str, Any]]) -> FormatProfile:
        profile = self.new_profile()
        if not data:
            return profile
        kind = data.get("kind", self.format.value)
        if kind != self.format.value:
            raise FormatMismatchError(self.format.value, kind, "character profile")
        return type(profile).model_validate(data)
