"""
Discovery ledger schemas.

Everything the discovery tracker accumulates across units: emergent themes,
character discoveries, plot threads, running elements, connections, the tone
timeline, and one format-specific sub-ledger. These are plain pydantic
models so the whole ledger serializes with `model_dump(mode="json")`.
"""

from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .extraction import ContentFormat


class ThemeStrength(str, Enum):
    """Ordered: subtle < developing < prominent < central."""
    SUBTLE = "subtle"
    DEVELOPING = "developing"
    PROMINENT = "prominent"
    CENTRAL = "central"

    @property
    def rank(self) -> int:
        return _THEME_STRENGTH_ORDER.index(self)


_THEME_STRENGTH_ORDER = [
    ThemeStrength.SUBTLE,
    ThemeStrength.DEVELOPING,
    ThemeStrength.PROMINENT,
    ThemeStrength.CENTRAL,
]


class ThreadStatus(str, Enum):
    """Forward-only: active -> ready_to_resolve -> resolved | abandoned."""
    ACTIVE = "active"
    READY_TO_RESOLVE = "ready_to_resolve"
    RESOLVED = "resolved"
    ABANDONED = "abandoned"

    @property
    def rank(self) -> int:
        if self in (ThreadStatus.RESOLVED, ThreadStatus.ABANDONED):
            return 2
        return 1 if self == ThreadStatus.READY_TO_RESOLVE else 0

    @property
    def is_open(self) -> bool:
        return self.rank < 2


class ThreadPriority(str, Enum):
    MAIN = "main"
    SECONDARY = "secondary"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        return {"main": 0, "secondary": 1, "minor": 2}[self.value]


class Effectiveness(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


# ============================================================================
# Core Ledger (all formats)
# ============================================================================

class ThemeOccurrence(BaseModel):
    unit: int
    context: str = ""
    manifestation: str = "action"


class EmergentTheme(BaseModel):
    """A theme that appeared in produced content, planned or not."""
    id: str
    name: str
    description: str = ""
    first_appeared: int
    occurrences: List[ThemeOccurrence] = Field(default_factory=list)
    strength: ThemeStrength = ThemeStrength.SUBTLE
    was_planned: bool = False


class CharacterDiscovery(BaseModel):
    character_name: str
    discovery_type: str = Field(
        default="trait",
        description="trait, backstory, motivation, relationship or skill",
    )
    description: str = ""
    unit_revealed: int
    was_planned: bool = False
    should_integrate: bool = True


class PlotThread(BaseModel):
    """A storyline tracked across units."""
    id: str
    description: str
    type: str = Field(default="secret", description="mystery, conflict, relationship, goal or secret")
    introduced: int
    last_mentioned: int
    status: ThreadStatus = ThreadStatus.ACTIVE
    priority: ThreadPriority = ThreadPriority.MINOR
    was_planned: bool = False
    resolution_suggestion: Optional[str] = None


class RunningElement(BaseModel):
    """Motif or callback that recurs across units."""
    id: str
    type: str = "callback"
    name: str
    description: str = ""
    occurrences: List[int] = Field(default_factory=list)
    meaning: Optional[str] = None


class StoryConnection(BaseModel):
    element1: str
    element2: str
    connection_type: str = Field(description="parallel, contrast, causation, echo or mirror")
    description: str = ""
    unit_discovered: int


class ToneShift(BaseModel):
    from_tone: str
    to_tone: str
    trigger: str = ""


class ToneEntry(BaseModel):
    unit: int
    primary_tone: str
    secondary_tone: Optional[str] = None
    shift: Optional[ToneShift] = None


# ============================================================================
# Comic Ledger
# ============================================================================

class MotifOccurrence(BaseModel):
    unit: int
    panel_number: int = 0
    context: str = ""


class VisualMotif(BaseModel):
    id: str
    name: str
    description: str = ""
    type: str = "symbol"
    occurrences: List[MotifOccurrence] = Field(default_factory=list)
    meaning: Optional[str] = None
    should_recur: bool = False


class PageHookPattern(BaseModel):
    hook_type: str = Field(description="cliffhanger, question, reveal, action_freeze or emotional")
    description: str = ""
    effectiveness: Effectiveness = Effectiveness.MODERATE
    occurrences: int = 1
    examples: List[str] = Field(default_factory=list)


class VisualInconsistency(BaseModel):
    detail: str
    pages: List[int] = Field(default_factory=list)


class CharacterVisualProfile(BaseModel):
    character_name: str
    established_details: List[str] = Field(default_factory=list)
    inconsistencies: List[VisualInconsistency] = Field(default_factory=list)
    last_appearance: int = 0
    distinctive_features: List[str] = Field(default_factory=list)


class VisualPacing(BaseModel):
    action_pages_percent: float = 0.0
    dialogue_pages_percent: float = 0.0
    establishing_pages_percent: float = 0.0


class ComicLedger(BaseModel):
    kind: Literal["comic"] = "comic"
    visual_motifs: List[VisualMotif] = Field(default_factory=list)
    page_hook_patterns: List[PageHookPattern] = Field(default_factory=list)
    character_visuals: List[CharacterVisualProfile] = Field(default_factory=list)
    panel_count_average: float = 0.0
    panel_units_counted: int = 0
    effective_page_layouts: List[str] = Field(default_factory=list)
    visual_pacing: VisualPacing = Field(default_factory=VisualPacing)


# ============================================================================
# Screenplay Ledger
# ============================================================================

class BeatOccurrence(BaseModel):
    unit: int
    scene_number: int = 0


class VisualBeatPattern(BaseModel):
    id: str
    description: str
    type: str = "transition"
    occurrences: List[BeatOccurrence] = Field(default_factory=list)
    effectiveness: Effectiveness = Effectiveness.MODERATE


class LocationUsage(BaseModel):
    location_name: str
    slugline_format: str = ""
    scene_count: int = 1
    total_page_estimate: float = 2.0
    purposes: List[str] = Field(default_factory=list)
    associated_characters: List[str] = Field(default_factory=list)
    can_reuse: bool = True


class ScenePattern(BaseModel):
    pattern: str
    occurrences: int = 1
    average_length: float = 0.0
    effectiveness: Effectiveness = Effectiveness.MODERATE


class PacingIssue(BaseModel):
    unit: int
    issue: str


class ScreenplayLedger(BaseModel):
    kind: Literal["screenplay"] = "screenplay"
    visual_beats: List[VisualBeatPattern] = Field(default_factory=list)
    location_usage: List[LocationUsage] = Field(default_factory=list)
    scene_patterns: List[ScenePattern] = Field(default_factory=list)
    dialogue_to_action_ratio: float = 0.5
    average_scene_length: float = 2.0
    effective_subtext_moments: List[str] = Field(default_factory=list)
    pacing_issues: List[PacingIssue] = Field(default_factory=list)


# ============================================================================
# Book Ledger
# ============================================================================

class ProsePattern(BaseModel):
    type: str = Field(description="narrative_voice, internal_monologue, sensory_detail, metaphor or tension_curve")
    description: str
    occurrences: int = 1
    units: List[int] = Field(default_factory=list)
    effectiveness: Effectiveness = Effectiveness.MODERATE


class SymbolicElement(BaseModel):
    name: str
    meaning: str = "To be determined"
    occurrences: List[ThemeOccurrence] = Field(default_factory=list)
    is_recurring: bool = False
    should_develop: bool = False


class ForeshadowingSetup(BaseModel):
    setup: str
    unit: int
    resolved: bool = False


class EndingPattern(BaseModel):
    type: str
    occurrences: int = 1


class BookLedger(BaseModel):
    kind: Literal["book"] = "book"
    prose_patterns: List[ProsePattern] = Field(default_factory=list)
    symbolic_elements: List[SymbolicElement] = Field(default_factory=list)
    narrative_voice_consistency: str = "consistent"
    effective_sensory_details: List[str] = Field(default_factory=list)
    foreshadowing_setups: List[ForeshadowingSetup] = Field(default_factory=list)
    chapter_ending_patterns: List[EndingPattern] = Field(default_factory=list)
    recent_endings: List[str] = Field(default_factory=list)


FormatLedger = Union[BookLedger, ComicLedger, ScreenplayLedger]


# ============================================================================
# Report
# ============================================================================

class ComicInsights(BaseModel):
    kind: Literal["comic"] = "comic"
    effective_hooks: List[str] = Field(default_factory=list)
    visual_motifs_to_develop: List[str] = Field(default_factory=list)
    consistency_issues: List[str] = Field(default_factory=list)
    pacing_recommendation: str = "No pacing data yet"


class ScreenplayInsights(BaseModel):
    kind: Literal["screenplay"] = "screenplay"
    overused_locations: List[str] = Field(default_factory=list)
    underused_locations: List[str] = Field(default_factory=list)
    effective_patterns: List[str] = Field(default_factory=list)
    pacing_issues: List[str] = Field(default_factory=list)
    dialogue_balance: str = "Balanced"


class BookInsights(BaseModel):
    kind: Literal["book"] = "book"
    symbols_to_develop: List[str] = Field(default_factory=list)
    unresolved_foreshadowing: List[str] = Field(default_factory=list)
    effective_sensory_details: List[str] = Field(default_factory=list)
    ending_pattern_recommendation: str = "No pattern data yet"


FormatInsights = Union[BookInsights, ComicInsights, ScreenplayInsights]


class DiscoveryReport(BaseModel):
    """What processing one unit changed in the discovery ledger."""
    unit_number: int
    format: ContentFormat
    new_discoveries: List[str] = Field(default_factory=list)
    reinforced_elements: List[str] = Field(default_factory=list)
    suggested_integrations: List[str] = Field(default_factory=list)
    threads_needing_attention: List[PlotThread] = Field(default_factory=list)
    themes_to_reinforce: List[EmergentTheme] = Field(default_factory=list)
    insights: Optional[FormatInsights] = Field(default=None, discriminator="kind")
