"""
Story Evolution Models Module
Pydantic schemas for extraction records, plans, discovery ledgers and arcs.
"""

from .base import LenientModel, coerce_enum
from .extraction import (
    ContentFormat,
    EventType,
    Significance,
    CharacterRole,
    LocationType,
    RelationshipChange,
    ThreadType,
    Urgency,
    DeviationType,
    Momentum,
    NarrativeVoice,
    CliffhangerStrength,
    VisualFlow,
    ScenePurpose,
    ExtractedEvent,
    ExtractedCharacter,
    ExtractedLocation,
    ExtractedRelationship,
    ExtractedThread,
    ExtractedSurprise,
    ProseElements,
    ChapterPacing,
    BookPayload,
    ComicPanel,
    CausalBridge,
    ComicPage,
    CharacterAppearance,
    VisualConsistency,
    ComicPayload,
    ExtractedScene,
    SequencePacing,
    ScreenplayPayload,
    FormatPayload,
    ExtractionRecord,
)
from .plans import (
    VisualEmphasis,
    SceneTension,
    ActPosition,
    RevisionUrgency,
    ChapterPlan,
    ComicPanelPlan,
    ComicPagePlan,
    ScreenplayScenePlan,
    ScreenplaySequencePlan,
    AnyPlan,
    RevisionDecision,
    Revision,
)
from .discovery import (
    ThemeStrength,
    ThreadStatus,
    ThreadPriority,
    Effectiveness,
    ThemeOccurrence,
    EmergentTheme,
    CharacterDiscovery,
    PlotThread,
    RunningElement,
    StoryConnection,
    ToneShift,
    ToneEntry,
    MotifOccurrence,
    VisualMotif,
    PageHookPattern,
    VisualInconsistency,
    CharacterVisualProfile,
    VisualPacing,
    ComicLedger,
    BeatOccurrence,
    VisualBeatPattern,
    LocationUsage,
    ScenePattern,
    PacingIssue,
    ScreenplayLedger,
    ProsePattern,
    SymbolicElement,
    ForeshadowingSetup,
    EndingPattern,
    BookLedger,
    FormatLedger,
    ComicInsights,
    ScreenplayInsights,
    BookInsights,
    FormatInsights,
    DiscoveryReport,
)
from .arcs import (
    TRUST_MIN,
    TRUST_MAX,
    ArcStage,
    ARC_STAGE_ORDER,
    ArcRole,
    Intensity,
    RelationshipStatus,
    KnowledgeSignificance,
    WoundType,
    ArcMilestone,
    EmotionalState,
    RelationshipState,
    DecisionPoint,
    CharacterKnowledge,
    WoundOrGrowth,
    CharacterArcUpdate,
    NamedCount,
    CostumeChange,
    VisualTransformation,
    ComicPagePresence,
    ComicCharacterProfile,
    ScenePresence,
    ScreenplayCharacterProfile,
    BookCharacterProse,
    FormatProfile,
)

__all__ = [
    "LenientModel",
    "coerce_enum",
    # Extraction
    "ContentFormat",
    "EventType",
    "Significance",
    "CharacterRole",
    "LocationType",
    "RelationshipChange",
    "ThreadType",
    "Urgency",
    "DeviationType",
    "Momentum",
    "NarrativeVoice",
    "CliffhangerStrength",
    "VisualFlow",
    "ScenePurpose",
    "ExtractedEvent",
    "ExtractedCharacter",
    "ExtractedLocation",
    "ExtractedRelationship",
    "ExtractedThread",
    "ExtractedSurprise",
    "ProseElements",
    "ChapterPacing",
    "BookPayload",
    "ComicPanel",
    "CausalBridge",
    "ComicPage",
    "CharacterAppearance",
    "VisualConsistency",
    "ComicPayload",
    "ExtractedScene",
    "SequencePacing",
    "ScreenplayPayload",
    "FormatPayload",
    "ExtractionRecord",
    # Plans
    "VisualEmphasis",
    "SceneTension",
    "ActPosition",
    "RevisionUrgency",
    "ChapterPlan",
    "ComicPanelPlan",
    "ComicPagePlan",
    "ScreenplayScenePlan",
    "ScreenplaySequencePlan",
    "AnyPlan",
    "RevisionDecision",
    "Revision",
    # Discovery
    "ThemeStrength",
    "ThreadStatus",
    "ThreadPriority",
    "Effectiveness",
    "ThemeOccurrence",
    "EmergentTheme",
    "CharacterDiscovery",
    "PlotThread",
    "RunningElement",
    "StoryConnection",
    "ToneShift",
    "ToneEntry",
    "MotifOccurrence",
    "VisualMotif",
    "PageHookPattern",
    "VisualInconsistency",
    "CharacterVisualProfile",
    "VisualPacing",
    "ComicLedger",
    "BeatOccurrence",
    "VisualBeatPattern",
    "LocationUsage",
    "ScenePattern",
    "PacingIssue",
    "ScreenplayLedger",
    "ProsePattern",
    "SymbolicElement",
    "ForeshadowingSetup",
    "EndingPattern",
    "BookLedger",
    "FormatLedger",
    "ComicInsights",
    "ScreenplayInsights",
    "BookInsights",
    "FormatInsights",
    "DiscoveryReport",
    # Arcs
    "TRUST_MIN",
    "TRUST_MAX",
    "ArcStage",
    "ARC_STAGE_ORDER",
    "ArcRole",
    "Intensity",
    "RelationshipStatus",
    "KnowledgeSignificance",
    "WoundType",
    "ArcMilestone",
    "EmotionalState",
    "RelationshipState",
    "DecisionPoint",
    "CharacterKnowledge",
    "WoundOrGrowth",
    "CharacterArcUpdate",
    "NamedCount",
    "CostumeChange",
    "VisualTransformation",
    "ComicPagePresence",
    "ComicCharacterProfile",
    "ScenePresence",
    "ScreenplayCharacterProfile",
    "BookCharacterProse",
    "FormatProfile",
]
