"""
Plan unit schemas (chapter, comic page, screenplay sequence) and the
revision records produced against them.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .base import LenientModel


class VisualEmphasis(str, Enum):
    WIDE = "wide"
    CLOSE = "close"
    MEDIUM = "medium"
    SPLASH = "splash"


class SceneTension(str, Enum):
    LOW = "low"
    BUILDING = "building"
    HIGH = "high"
    RELEASE = "release"


class ActPosition(str, Enum):
    SETUP = "setup"
    CONFRONTATION = "confrontation"
    RESOLUTION = "resolution"


class RevisionUrgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ============================================================================
# Plan Units
# ============================================================================

class ChapterPlan(LenientModel):
    """Book chapter plan."""
    chapter_number: int
    title: str = ""
    summary: str = ""
    beats: List[str] = Field(default_factory=list)
    target_word_count: int = 0
    key_events: List[str] = Field(default_factory=list)
    characters_involved: List[str] = Field(default_factory=list)
    locations_primary: List[str] = Field(default_factory=list)
    emotional_goal: str = ""

    @property
    def unit_number(self) -> int:
        return self.chapter_number


class ComicPanelPlan(LenientModel):
    panel_number: int = 0
    description: str = ""
    dialogue_summary: Optional[str] = None
    visual_emphasis: VisualEmphasis = VisualEmphasis.MEDIUM
    action_beat: Optional[str] = None


class ComicPagePlan(LenientModel):
    """Comic page plan, focused on visual storytelling."""
    page_number: int
    title: Optional[str] = None
    panel_count: int = 0
    panels: List[ComicPanelPlan] = Field(default_factory=list)
    page_hook: str = ""
    visual_focus: str = ""
    characters_present: List[str] = Field(default_factory=list)
    location_change: bool = False
    emotional_beat: str = ""

    @property
    def unit_number(self) -> int:
        return self.page_number


class ScreenplayScenePlan(LenientModel):
    scene_number: int = 0
    slugline: str = ""
    purpose: str = ""
    estimated_pages: float = 2.0
    characters_present: List[str] = Field(default_factory=list)
    key_dialogue: Optional[str] = None
    visual_action: str = ""
    tension: SceneTension = SceneTension.BUILDING
    subtext_goal: Optional[str] = None


class ScreenplaySequencePlan(LenientModel):
    """Screenplay sequence plan, focused on cinematic structure."""
    sequence_number: int
    title: str = ""
    act_position: ActPosition = ActPosition.SETUP
    scenes: List[ScreenplayScenePlan] = Field(default_factory=list)
    sequence_goal: str = ""
    estimated_pages: float = 0.0
    major_characters: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    emotional_arc: str = ""

    @property
    def unit_number(self) -> int:
        return self.sequence_number


AnyPlan = Union[ChapterPlan, ComicPagePlan, ScreenplaySequencePlan]


# ============================================================================
# Revision Output
# ============================================================================

class RevisionDecision(BaseModel):
    """Whether upcoming plan units need revision after a unit."""
    should_revise: bool = False
    urgency: RevisionUrgency = RevisionUrgency.LOW
    reasons: List[str] = Field(default_factory=list)
    score: int = 0


class Revision(BaseModel):
    """A proposed edit to one upcoming plan unit."""
    unit_number: int
    original_plan: AnyPlan
    revised_plan: AnyPlan
    reasons: List[str] = Field(default_factory=list)
    integrated_discoveries: List[str] = Field(default_factory=list)
    threads_addressed: List[str] = Field(default_factory=list)
    confidence_score: float = Field(default=0.7, ge=0.0, le=1.0)
    failed: bool = Field(default=False, description="True when the original plan was kept after a failure")
    extras: Dict[str, Any] = Field(
        default_factory=dict,
        description="Format-specific flags such as visual motifs integrated or subtext enhanced",
    )
