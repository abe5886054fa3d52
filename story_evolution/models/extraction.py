"""
Extraction record schemas: what actually happened in one produced unit.

Key concepts:
- Common facts (events, characters, locations, relationships, threads,
  surprises, themes, momentum) are shared by every content format
- Exactly one format payload is attached, tagged by `kind`, and it must
  match the record's format
- All models inherit LenientModel so drifting text-service output degrades
  to defaults instead of failing validation
"""

from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, Field, field_validator, model_validator

from ..core.exceptions import FormatMismatchError
from .base import LenientModel


class ContentFormat(str, Enum):
    """Content format, fixed for the lifetime of a story."""
    BOOK = "book"
    COMIC = "comic"
    SCREENPLAY = "screenplay"


class EventType(str, Enum):
    ACTION = "action"
    DIALOGUE = "dialogue"
    REVELATION = "revelation"
    DECISION = "decision"
    CONSEQUENCE = "consequence"


class Significance(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    PIVOTAL = "pivotal"


class CharacterRole(str, Enum):
    PROTAGONIST = "protagonist"
    ANTAGONIST = "antagonist"
    ALLY = "ally"
    NEUTRAL = "neutral"
    UNKNOWN = "unknown"


class LocationType(str, Enum):
    PHYSICAL = "physical"
    MEMORY = "memory"
    PHONE = "phone"
    DREAM = "dream"
    PARALLEL = "parallel"


class RelationshipChange(str, Enum):
    IMPROVED = "improved"
    WORSENED = "worsened"
    COMPLICATED = "complicated"
    REVEALED = "revealed"
    UNCHANGED = "unchanged"


class ThreadType(str, Enum):
    SETUP = "setup"
    CALLBACK = "callback"
    UNRESOLVED = "unresolved"
    CLIFFHANGER = "cliffhanger"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    IMMEDIATE = "immediate"


class DeviationType(str, Enum):
    CHARACTER_CHOICE = "character_choice"
    PLOT_TWIST = "plot_twist"
    NEW_ELEMENT = "new_element"
    TONE_SHIFT = "tone_shift"


class Momentum(str, Enum):
    BUILDING = "building"
    CLIMAXING = "climaxing"
    RESOLVING = "resolving"
    TRANSITIONING = "transitioning"


class NarrativeVoice(str, Enum):
    FIRST_PERSON = "first_person"
    THIRD_LIMITED = "third_limited"
    THIRD_OMNISCIENT = "third_omniscient"
    SECOND_PERSON = "second_person"


class CliffhangerStrength(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    STRONG = "strong"


class VisualFlow(str, Enum):
    ACTION = "action"
    DIALOGUE = "dialogue"
    EMOTIONAL = "emotional"
    ESTABLISHING = "establishing"


class ScenePurpose(str, Enum):
    EXPOSITION = "exposition"
    CONFLICT = "conflict"
    REVELATION = "revelation"
    ACTION = "action"
    EMOTIONAL = "emotional"


# ============================================================================
# Common Facts
# ============================================================================

class ExtractedEvent(LenientModel):
    description: str = ""
    type: EventType = EventType.ACTION
    characters: List[str] = Field(default_factory=list)
    significance: Significance = Significance.MINOR
    location: Optional[str] = None


class ExtractedCharacter(LenientModel):
    name: str = ""
    is_new: bool = False
    role: CharacterRole = CharacterRole.UNKNOWN
    emotional_state: str = ""
    physical_state: Optional[str] = None
    new_knowledge: List[str] = Field(default_factory=list)
    internal_conflict: Optional[str] = None


class ExtractedLocation(LenientModel):
    name: str = ""
    is_new: bool = False
    type: LocationType = LocationType.PHYSICAL
    mood: str = ""
    details: List[str] = Field(default_factory=list)


class ExtractedRelationship(LenientModel):
    character1: str = ""
    character2: str = ""
    change: RelationshipChange = RelationshipChange.UNCHANGED
    description: str = ""
    dynamic: Optional[str] = Field(
        default=None,
        description="Free-form dynamic label such as 'conflicted' or 'shifting'",
    )


class ExtractedThread(LenientModel):
    type: ThreadType = ThreadType.UNRESOLVED
    description: str = ""
    urgency: Urgency = Urgency.MEDIUM
    related_characters: List[str] = Field(default_factory=list)


class ExtractedSurprise(LenientModel):
    description: str = ""
    deviation_type: DeviationType = DeviationType.NEW_ELEMENT
    outline_planned: Optional[str] = None
    actually_happened: str = ""


# ============================================================================
# Book Payload
# ============================================================================

class ProseElements(LenientModel):
    narrative_voice: Optional[NarrativeVoice] = None
    internal_monologue: List[str] = Field(default_factory=list)
    sensory_details: List[str] = Field(default_factory=list)
    symbolism: List[str] = Field(default_factory=list)
    foreshadowing: List[str] = Field(default_factory=list)


class ChapterPacing(LenientModel):
    scene_count: int = 1
    average_scene_length: int = 0
    tension_curve: List[str] = Field(default_factory=list)
    cliffhanger_strength: Optional[CliffhangerStrength] = None


class BookPayload(LenientModel):
    kind: Literal["book"] = "book"
    prose_elements: ProseElements = Field(default_factory=ProseElements)
    chapter_pacing: ChapterPacing = Field(default_factory=ChapterPacing)


# ============================================================================
# Comic Payload
# ============================================================================

class ComicPanel(LenientModel):
    panel_number: int = 0
    description: str = ""
    characters: List[str] = Field(default_factory=list)
    dialogue: List[str] = Field(default_factory=list)
    visual_focus: str = ""
    mood: str = ""


class CausalBridge(LenientModel):
    """THEREFORE/BUT link from one comic page to the next."""
    page_ended_with: str = ""
    next_page_must_show: str = ""
    visual_hook: str = ""
    emotional_momentum: str = ""


class ComicPage(LenientModel):
    page_number: int = 0
    panels: List[ComicPanel] = Field(default_factory=list)
    page_hook: Optional[str] = None
    visual_flow: VisualFlow = VisualFlow.ACTION
    location_changes: bool = False
    causal_bridge: Optional[CausalBridge] = None


class CharacterAppearance(LenientModel):
    name: str = ""
    visual_details: List[str] = Field(default_factory=list)
    last_seen_page: int = 0


class VisualConsistency(LenientModel):
    character_appearances: List[CharacterAppearance] = Field(default_factory=list)
    recurring_backgrounds: List[str] = Field(default_factory=list)
    visual_motifs: List[str] = Field(default_factory=list)


class ComicPayload(LenientModel):
    kind: Literal["comic"] = "comic"
    pages: List[ComicPage] = Field(default_factory=list)
    visual_consistency: VisualConsistency = Field(default_factory=VisualConsistency)
    panel_count: Optional[int] = None
    page_hooks: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _derive_counts(self) -> "ComicPayload":
        if not self.panel_count:
            self.panel_count = sum(len(page.panels) for page in self.pages)
        if not self.page_hooks:
            self.page_hooks = [page.page_hook for page in self.pages if page.page_hook]
        return self


# ============================================================================
# Screenplay Payload
# ============================================================================

class ExtractedScene(LenientModel):
    scene_number: int = 0
    slugline: str = ""
    location: str = ""
    time_of_day: str = ""
    characters: List[str] = Field(default_factory=list)
    purpose: ScenePurpose = ScenePurpose.EXPOSITION
    dialogue_heavy: bool = False
    visual_action_lines: int = 0


class SequencePacing(LenientModel):
    dialogue_to_action_ratio: float = Field(default=0.5, description="0-1, where 1 is all dialogue")
    average_scene_length: float = 2.0
    location_changes_per_sequence: int = 0
    visual_moments: List[str] = Field(default_factory=list)

    @field_validator("dialogue_to_action_ratio")
    @classmethod
    def _as_fraction(cls, value: float) -> float:
        # Some responses report a percentage.
        if 1.0 < value <= 100.0:
            value = value / 100.0
        return min(max(value, 0.0), 1.0)


class ScreenplayPayload(LenientModel):
    kind: Literal["screenplay"] = "screenplay"
    scenes: List[ExtractedScene] = Field(default_factory=list)
    sequence_pacing: SequencePacing = Field(default_factory=SequencePacing)
    scene_count: Optional[int] = None
    visual_beats: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _derive_counts(self) -> "ScreenplayPayload":
        if not self.scene_count:
            self.scene_count = len(self.scenes)
        return self


FormatPayload = Union[BookPayload, ComicPayload, ScreenplayPayload]


# ============================================================================
# Extraction Record
# ============================================================================

class ExtractionRecord(LenientModel):
    """Structured facts extracted from one chapter, page or sequence."""

    unit_number: int = Field(
        ...,
        validation_alias=AliasChoices("unit_number", "unitNumber", "chapterNumber"),
        description="Chapter, page or sequence number",
    )
    format: ContentFormat = Field(..., description="Content format of the story")

    events: List[ExtractedEvent] = Field(default_factory=list)
    characters: List[ExtractedCharacter] = Field(default_factory=list)
    locations: List[ExtractedLocation] = Field(default_factory=list)
    relationships: List[ExtractedRelationship] = Field(default_factory=list)
    threads: List[ExtractedThread] = Field(default_factory=list)
    surprises: List[ExtractedSurprise] = Field(default_factory=list)
    emergent_themes: List[str] = Field(default_factory=list)

    one_line_summary: str = ""
    emotional_arc: str = ""
    story_momentum: Momentum = Momentum.BUILDING
    immediate_consequences: List[str] = Field(default_factory=list)
    unanswered_questions: List[str] = Field(default_factory=list)

    payload: FormatPayload = Field(..., discriminator="kind")
    degraded: bool = Field(
        default=False,
        description="True when built by heuristics instead of the text service",
    )

    @model_validator(mode="before")
    @classmethod
    def _default_payload(cls, data):
        if not isinstance(data, dict):
            return data
        fmt = data.get("format")
        fmt_value = fmt.value if isinstance(fmt, ContentFormat) else fmt
        payload = data.get("payload")
        if payload is None and fmt_value:
            data = {**data, "payload": {"kind": fmt_value}}
        elif isinstance(payload, dict) and "kind" not in payload and fmt_value:
            data = {**data, "payload": {**payload, "kind": fmt_value}}
        return data

    @model_validator(mode="after")
    def _payload_matches_format(self) -> "ExtractionRecord":
        if self.payload.kind != self.format.value:
            raise FormatMismatchError(self.format.value, self.payload.kind, "ExtractionRecord.payload")
        return self

    def character_names(self) -> List[str]:
        return [c.name for c in self.characters if c.name]
