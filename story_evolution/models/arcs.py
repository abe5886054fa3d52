"""
Character arc schemas.

Per-character records kept by the arc tracker: stage milestones, emotional
history, relationships, knowledge, decisions, wounds, and one format-specific
profile (comic visuals, screenplay presence or book prose).
"""

from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

TRUST_MIN = -10
TRUST_MAX = 10


class ArcStage(str, Enum):
    """Ordered narrative-development stages; a character only moves forward."""
    SETUP = "setup"
    CONFLICT = "conflict"
    RISING = "rising"
    CRISIS = "crisis"
    TRANSFORMATION = "transformation"
    RESOLUTION = "resolution"
    NEW_NORMAL = "new_normal"

    @property
    def index(self) -> int:
        return ARC_STAGE_ORDER.index(self)


ARC_STAGE_ORDER = [
    ArcStage.SETUP,
    ArcStage.CONFLICT,
    ArcStage.RISING,
    ArcStage.CRISIS,
    ArcStage.TRANSFORMATION,
    ArcStage.RESOLUTION,
    ArcStage.NEW_NORMAL,
]


class ArcRole(str, Enum):
    PROTAGONIST = "protagonist"
    ANTAGONIST = "antagonist"
    SUPPORTING = "supporting"
    MINOR = "minor"


class Intensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class RelationshipStatus(str, Enum):
    ALLY = "ally"
    ENEMY = "enemy"
    NEUTRAL = "neutral"
    COMPLICATED = "complicated"
    ROMANTIC = "romantic"
    FAMILY = "family"
    PROFESSIONAL = "professional"


class KnowledgeSignificance(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    STORY_CHANGING = "story_changing"


class WoundType(str, Enum):
    PHYSICAL_WOUND = "physical_wound"
    EMOTIONAL_WOUND = "emotional_wound"
    GROWTH = "growth"
    HEALING = "healing"
    LOSS = "loss"
    GAIN = "gain"


# ============================================================================
# Common Arc Records
# ============================================================================

class ArcMilestone(BaseModel):
    stage: ArcStage
    unit: int
    description: str = ""
    trigger_event: str = ""


class EmotionalState(BaseModel):
    unit: int
    primary_emotion: str
    intensity: Intensity = Intensity.MEDIUM
    trigger: str = ""
    internal_conflict: Optional[str] = None


class RelationshipState(BaseModel):
    """One side of a relationship; trust is always within [-10, 10]."""

    model_config = ConfigDict(validate_assignment=True)

    other_character: str
    current_status: RelationshipStatus = RelationshipStatus.NEUTRAL
    trust_level: int = 0
    last_interaction: int = 0
    history_highlights: List[str] = Field(default_factory=list)

    @field_validator("trust_level")
    @classmethod
    def _clamp_trust(cls, value: int) -> int:
        return max(TRUST_MIN, min(TRUST_MAX, value))


class DecisionPoint(BaseModel):
    unit: int
    decision: str
    alternatives: List[str] = Field(default_factory=list)
    consequences: List[str] = Field(default_factory=list)
    reveals_about_character: str = ""


class CharacterKnowledge(BaseModel):
    fact: str
    learned_in: int
    source: str = ""
    significance: KnowledgeSignificance = KnowledgeSignificance.MINOR


class WoundOrGrowth(BaseModel):
    type: WoundType
    description: str
    unit_occurred: int
    is_ongoing: bool = True
    affects_capabilities: List[str] = Field(default_factory=list)


class CharacterArcUpdate(BaseModel):
    """What changed for one character while processing a unit."""
    character_name: str
    unit_number: int
    changes: List[str] = Field(default_factory=list)
    new_stage: ArcStage
    emotional_state: str
    arc_progress: int = 0
    error: Optional[str] = None


# ============================================================================
# Format Profiles
# ============================================================================

class NamedCount(BaseModel):
    name: str
    count: int = 1


class CostumeChange(BaseModel):
    unit: int
    description: str


class VisualTransformation(BaseModel):
    unit: int
    before: str
    after: str


class ComicPagePresence(BaseModel):
    page_number: int
    panels: List[int] = Field(default_factory=list)
    is_visual_focus: bool = False
    has_dialogue: bool = False
    has_solo_moment: bool = False


class ComicCharacterProfile(BaseModel):
    """Visual identity and panel presence of a comic character."""
    kind: Literal["comic"] = "comic"
    costume: str = "Not yet established"
    color_palette: List[str] = Field(default_factory=list)
    distinctive_features: List[str] = Field(default_factory=list)
    hair_style: str = "Not yet established"
    body_type: str = "Not yet established"
    established_poses: List[str] = Field(default_factory=list)
    expression_range: List[str] = Field(default_factory=list)
    visual_symbols: List[str] = Field(default_factory=list)
    panel_appearances: int = 0
    splash_panel_count: int = 0
    close_up_count: int = 0
    average_panel_position: str = "midground"
    costume_changes: List[CostumeChange] = Field(default_factory=list)
    visual_transformations: List[VisualTransformation] = Field(default_factory=list)
    page_presence: List[ComicPagePresence] = Field(default_factory=list)


class ScenePresence(BaseModel):
    scene_number: int
    slugline: str = ""
    role: str = "secondary"
    has_dialogue: bool = False
    has_action: bool = False
    estimated_pages: float = 0.0
    character_count: int = 1


class ScreenplayCharacterProfile(BaseModel):
    """Screen time, dialogue habits and scene associations of a screenplay character."""
    kind: Literal["screenplay"] = "screenplay"
    estimated_screen_time: float = 0.0
    scene_appearances: int = 0
    major_scenes: int = 0
    dialogue_style: str = "Not yet established"
    catch_phrases: List[str] = Field(default_factory=list)
    speech_patterns: List[str] = Field(default_factory=list)
    silence_ratio: float = 0.0
    dialogue_ratio: float = 0.0
    physical_mannerisms: List[str] = Field(default_factory=list)
    signature_actions: List[str] = Field(default_factory=list)
    entrance_style: str = "Standard"
    exit_style: str = "Standard"
    scene_types: List[NamedCount] = Field(default_factory=list)
    character_pairings: List[NamedCount] = Field(default_factory=list)
    location_associations: List[NamedCount] = Field(default_factory=list)
    scene_presence: List[ScenePresence] = Field(default_factory=list)


class BookCharacterProse(BaseModel):
    """Point-of-view and prose associations of a book character."""
    kind: Literal["book"] = "book"
    pov_chapters: List[int] = Field(default_factory=list)
    internal_monologue_style: str = "Not yet established"
    sensory_focus: List[str] = Field(default_factory=list)
    description_length: str = "moderate"
    associated_imagery: List[str] = Field(default_factory=list)
    symbolic_connections: List[str] = Field(default_factory=list)
    reader_knowledge: List[str] = Field(default_factory=list)
    reader_mysteries: List[str] = Field(default_factory=list)
    dramatic_irony: List[str] = Field(default_factory=list)


FormatProfile = Union[BookCharacterProse, ComicCharacterProfile, ScreenplayCharacterProfile]
