"""
Character Arc Tracker - Long-Running Character State

Tracks each character through the story: arc stage, emotional history,
relationships, knowledge, decisions and wounds, plus one format-specific
profile (comic visual identity, screenplay screen presence or book prose).

Key concepts:
- Stages only move forward; the built-in rules stop at crisis and
  stuck_arcs() reports characters parked on a stage without a rule
- Relationship trust is symmetric and clamped to [-10, 10]
- A failure updating one character never blocks the others
- Summaries are rendered for injection into the next unit's request
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..formats import FormatStrategy, get_strategy
from ..models import (
    ARC_STAGE_ORDER,
    ArcMilestone,
    ArcRole,
    ArcStage,
    BookCharacterProse,
    CharacterArcUpdate,
    CharacterKnowledge,
    ComicCharacterProfile,
    ComicPagePresence,
    ContentFormat,
    CostumeChange,
    DecisionPoint,
    EmotionalState,
    ExtractedCharacter,
    ExtractedRelationship,
    FormatProfile,
    Intensity,
    KnowledgeSignificance,
    NamedCount,
    RelationshipChange,
    RelationshipState,
    RelationshipStatus,
    ScenePresence,
    ScreenplayCharacterProfile,
    WoundOrGrowth,
    WoundType,
    coerce_enum,
)
from .classifiers import Classifiers
from .exceptions import FormatMismatchError
from .keyed_map import NameKeyedMap

logger = logging.getLogger("story_evolution.character_arc")

NOT_ESTABLISHED = "Not yet established"
TRUST_STEP = 2

_EXTRACTED_ROLE_MAP = {
    "protagonist": ArcRole.PROTAGONIST,
    "antagonist": ArcRole.ANTAGONIST,
    "ally": ArcRole.SUPPORTING,
    "neutral": ArcRole.SUPPORTING,
}

_NEXT_STEPS = {
    ArcStage.SETUP: "Will face initial challenge or disruption",
    ArcStage.CONFLICT: "Stakes will escalate, more pressure on character",
    ArcStage.RISING: "Approaching critical decision point",
    ArcStage.CRISIS: "Must make transformative choice",
    ArcStage.TRANSFORMATION: "Demonstrating changed perspective/abilities",
    ArcStage.RESOLUTION: "Facing final challenge with new self",
    ArcStage.NEW_NORMAL: "Settling into changed life",
}

# Stages with an outgoing transition rule.
_RULED_STAGES = (ArcStage.SETUP, ArcStage.CONFLICT, ArcStage.RISING)

_SLUGLINE_LOCATION_RE = re.compile(
    r"(?:INT\.|EXT\.)\s*(.+?)(?:\s*-\s*(?:DAY|NIGHT|MORNING|EVENING|CONTINUOUS|LATER))?$",
    re.IGNORECASE,
)

_MAJOR_KNOWLEDGE = (KnowledgeSignificance.MAJOR, KnowledgeSignificance.STORY_CHANGING)


def infer_role(extracted_role: Any) -> ArcRole:
    """Map an extracted character role onto an arc role."""
    value = getattr(extracted_role, "value", extracted_role)
    return _EXTRACTED_ROLE_MAP.get(str(value).lower(), ArcRole.MINOR)


def arc_completion(stage: ArcStage) -> int:
    return round(stage.index / (len(ARC_STAGE_ORDER) - 1) * 100)


def location_from_slugline(slugline: str) -> Optional[str]:
    match = _SLUGLINE_LOCATION_RE.search(slugline or "")
    return match.group(1).strip() if match else None


def _bump(counts: List[NamedCount], name: str) -> None:
    for entry in counts:
        if entry.name == name:
            entry.count += 1
            return
    counts.append(NamedCount(name=name, count=1))


def _append_new(target: List[str], values: Iterable[str]) -> None:
    for value in values:
        if value and value not in target:
            target.append(value)


@dataclass
class CharacterArc:
    """Everything tracked for one character."""
    character_name: str
    role: ArcRole
    profile: FormatProfile
    current_stage: ArcStage = ArcStage.SETUP
    stage_since: int = 0
    milestones: List[ArcMilestone] = field(default_factory=list)
    arc_completion_percent: int = 0
    emotional_history: List[EmotionalState] = field(default_factory=list)
    current_emotional_state: EmotionalState = field(
        default_factory=lambda: EmotionalState(
            unit=0, primary_emotion="neutral", intensity=Intensity.LOW, trigger="Story beginning"
        )
    )
    emotional_range: List[str] = field(default_factory=list)
    relationships: NameKeyedMap = field(default_factory=NameKeyedMap)
    knowledge: List[CharacterKnowledge] = field(default_factory=list)
    secrets: List[str] = field(default_factory=list)
    blindspots: List[str] = field(default_factory=list)
    key_decisions: List[DecisionPoint] = field(default_factory=list)
    pattern_of_choice: str = NOT_ESTABLISHED
    wounds_and_growth: List[WoundOrGrowth] = field(default_factory=list)
    current_capabilities: List[str] = field(default_factory=list)
    character_growth_summary: str = "Character arc just beginning"
    needs_resolution: List[str] = field(default_factory=list)
    predicted_next_step: str = "Establish character in story world"
    open_questions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "character_name": self.character_name,
            "role": self.role.value,
            "profile": self.profile.model_dump(mode="json"),
            "current_stage": self.current_stage.value,
            "stage_since": self.stage_since,
            "milestones": [m.model_dump(mode="json") for m in self.milestones],
            "arc_completion_percent": self.arc_completion_percent,
            "emotional_history": [e.model_dump(mode="json") for e in self.emotional_history],
            "current_emotional_state": self.current_emotional_state.model_dump(mode="json"),
            "emotional_range": list(self.emotional_range),
            "relationships": self.relationships.to_dict(lambda r: r.model_dump(mode="json")),
            "knowledge": [k.model_dump(mode="json") for k in self.knowledge],
            "secrets": list(self.secrets),
            "blindspots": list(self.blindspots),
            "key_decisions": [d.model_dump(mode="json") for d in self.key_decisions],
            "pattern_of_choice": self.pattern_of_choice,
            "wounds_and_growth": [w.model_dump(mode="json") for w in self.wounds_and_growth],
            "current_capabilities": list(self.current_capabilities),
            "character_growth_summary": self.character_growth_summary,
            "needs_resolution": list(self.needs_resolution),
            "predicted_next_step": self.predicted_next_step,
            "open_questions": list(self.open_questions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], strategy: FormatStrategy) -> "CharacterArc":
        arc = cls(
            character_name=data["character_name"],
            role=coerce_enum(ArcRole, data.get("role")) or ArcRole.MINOR,
            profile=strategy.load_profile(data.get("profile")),
            current_stage=ArcStage(data.get("current_stage", "setup")),
            stage_since=int(data.get("stage_since", 0)),
            milestones=[ArcMilestone.model_validate(m) for m in data.get("milestones", [])],
            arc_completion_percent=int(data.get("arc_completion_percent", 0)),
            emotional_history=[EmotionalState.model_validate(e) for e in data.get("emotional_history", [])],
            emotional_range=list(data.get("emotional_range", [])),
            relationships=NameKeyedMap.from_serialized(
                data.get("relationships"), RelationshipState.model_validate
            ),
            knowledge=[CharacterKnowledge.model_validate(k) for k in data.get("knowledge", [])],
            secrets=list(data.get("secrets", [])),
            blindspots=list(data.get("blindspots", [])),
            key_decisions=[DecisionPoint.model_validate(d) for d in data.get("key_decisions", [])],
            pattern_of_choice=data.get("pattern_of_choice", NOT_ESTABLISHED),
            wounds_and_growth=[WoundOrGrowth.model_validate(w) for w in data.get("wounds_and_growth", [])],
            current_capabilities=list(data.get("current_capabilities", [])),
            character_growth_summary=data.get("character_growth_summary", "Character arc just beginning"),
            needs_resolution=list(data.get("needs_resolution", [])),
            predicted_next_step=data.get("predicted_next_step", "Establish character in story world"),
            open_questions=list(data.get("open_questions", [])),
        )
        if data.get("current_emotional_state"):
            arc.current_emotional_state = EmotionalState.model_validate(data["current_emotional_state"])
        return arc


@dataclass
class CharacterArcState:
    """All arcs of one story, keyed case-insensitively by character name."""
    story_id: str
    format: ContentFormat
    arcs: NameKeyedMap = field(default_factory=NameKeyedMap)
    protagonist_name: Optional[str] = None
    antagonist_name: Optional[str] = None
    last_updated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "story_id": self.story_id,
            "format": self.format.value,
            "arcs": self.arcs.to_dict(lambda arc: arc.to_dict()),
            "protagonist_name": self.protagonist_name,
            "antagonist_name": self.antagonist_name,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CharacterArcState":
        """Restore state; arcs may be an object or an array of [name, arc] pairs."""
        content_format = ContentFormat(data.get("format", "book"))
        strategy = get_strategy(content_format)
        return cls(
            story_id=data.get("story_id", ""),
            format=content_format,
            arcs=NameKeyedMap.from_serialized(
                data.get("arcs"), lambda raw: CharacterArc.from_dict(raw, strategy)
            ),
            protagonist_name=data.get("protagonist_name"),
            antagonist_name=data.get("antagonist_name"),
            last_updated=int(data.get("last_updated", 0)),
        )


class CharacterArcTracker:
    """
    Maintains per-character arcs for one story.

    Usage:
        tracker = CharacterArcTracker("story-1", "screenplay")
        tracker.initialize("Mara", "protagonist")
        updates = tracker.update_from_unit(record.characters, record.relationships, 4)
        prompt_block = tracker.generate_summary("Mara")
    """

    def __init__(
        self,
        story_id: str,
        format: Any = ContentFormat.BOOK,
        classifiers: Optional[Classifiers] = None,
        state: Optional[CharacterArcState] = None,
    ):
        self.strategy: FormatStrategy = get_strategy(format)
        self.format = self.strategy.format
        self.classifiers = classifiers or Classifiers()
        if state is None:
            state = CharacterArcState(story_id=story_id, format=self.format)
        elif state.format != self.format:
            raise ValueError(f"Arc state is for {state.format.value}, tracker is for {self.format.value}")
        self.state = state

    # ========================================================================
    # Initialize Characters
    # ========================================================================

    def initialize(self, name: str, role: Any = ArcRole.MINOR, description: Optional[str] = None) -> CharacterArc:
        """Create an arc in the setup stage with this story's format profile."""
        arc_role = coerce_enum(ArcRole, role) or infer_role(role)
        arc = CharacterArc(
            character_name=name.strip(),
            role=arc_role,
            profile=self.strategy.new_profile(description),
        )
        self.state.arcs[name] = arc

        if arc_role == ArcRole.PROTAGONIST:
            self.state.protagonist_name = arc.character_name
        elif arc_role == ArcRole.ANTAGONIST:
            self.state.antagonist_name = arc.character_name

        logger.info(f"[initialize] {arc.character_name} ({arc_role.value})")
        return arc

    def _arc_for(self, name: str, role: Any = ArcRole.MINOR) -> CharacterArc:
        arc = self.state.arcs.get(name)
        if arc is None:
            arc = self.initialize(name, role)
        return arc

    # ========================================================================
    # Update From Unit
    # ========================================================================

    def update_from_unit(
        self,
        characters: Sequence[ExtractedCharacter],
        relationships: Sequence[ExtractedRelationship],
        unit_number: int,
        decisions: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> List[CharacterArcUpdate]:
        """
        Apply one unit's character and relationship deltas.

        Args:
            characters: Character deltas extracted from the unit
            relationships: Relationship changes extracted from the unit
            unit_number: Chapter, page or sequence number
            decisions: Optional key decisions made this unit, each a mapping with
                "character", "decision" and optional "alternatives"/"consequences"

        Returns:
            One CharacterArcUpdate per character delta, in input order
        """
        for decision in decisions or []:
            name = str(decision.get("character") or decision.get("character_name") or "").strip()
            if not name or not decision.get("decision"):
                continue
            self.record_decision(
                name,
                decision["decision"],
                list(decision.get("alternatives") or []),
                list(decision.get("consequences") or []),
                unit_number,
            )

        updates: List[CharacterArcUpdate] = []
        for character in characters:
            if not character.name.strip():
                continue
            try:
                arc = self._arc_for(character.name, infer_role(character.role))
                updates.append(self._update_character_arc(arc, character, unit_number))
            except Exception as e:
                logger.error(f"[update_from_unit] Failed to update {character.name}: {e}")
                updates.append(
                    CharacterArcUpdate(
                        character_name=character.name,
                        unit_number=unit_number,
                        new_stage=self._stage_of(character.name),
                        emotional_state=character.emotional_state or "unknown",
                        error=str(e),
                    )
                )

        for relationship in relationships:
            try:
                self._update_relationship(relationship, unit_number)
            except Exception as e:
                logger.error(
                    f"[update_from_unit] Failed to update relationship "
                    f"{relationship.character1}-{relationship.character2}: {e}"
                )

        self.state.last_updated = unit_number
        return updates

    def _stage_of(self, name: str) -> ArcStage:
        arc = self.state.arcs.get(name)
        return arc.current_stage if arc else ArcStage.SETUP

    def _update_character_arc(
        self,
        arc: CharacterArc,
        character: ExtractedCharacter,
        unit_number: int,
    ) -> CharacterArcUpdate:
        changes: List[str] = []
        unit_label = self.strategy.unit_label

        # 1. Emotional state
        emotion = (character.emotional_state or "").strip()
        if emotion and emotion.lower() != "unknown":
            previous = arc.current_emotional_state.primary_emotion
            state = EmotionalState(
                unit=unit_number,
                primary_emotion=emotion,
                intensity=Intensity(self.classifiers.intensity(emotion)),
                trigger=f"Events of {unit_label.lower()} {unit_number}",
                internal_conflict=character.internal_conflict,
            )
            arc.emotional_history.append(state)
            arc.current_emotional_state = state
            _append_new(arc.emotional_range, [emotion])
            if previous != emotion:
                changes.append(f"Emotional shift: {previous} -> {emotion}")

        # 2. Knowledge
        for fact in character.new_knowledge:
            if not fact:
                continue
            arc.knowledge.append(
                CharacterKnowledge(
                    fact=fact,
                    learned_in=unit_number,
                    source=f"{unit_label} {unit_number} events",
                    significance=KnowledgeSignificance(self.classifiers.knowledge_significance(fact)),
                )
            )
            changes.append(f"Learned: {fact}")

        # 3. Physical state
        physical = (character.physical_state or "").strip()
        if physical and physical.lower() != "none":
            ongoing = any(w.type == WoundType.PHYSICAL_WOUND and w.is_ongoing for w in arc.wounds_and_growth)
            if not ongoing:
                impacts = self.classifiers.capability_impact(physical)
                arc.wounds_and_growth.append(
                    WoundOrGrowth(
                        type=WoundType.PHYSICAL_WOUND,
                        description=physical,
                        unit_occurred=unit_number,
                        affects_capabilities=impacts,
                    )
                )
                changes.append(f"Physical condition: {physical}")

        # 4. Stage
        milestone = self._check_arc_progression(arc, unit_number)
        if milestone:
            arc.current_stage = milestone.stage
            arc.stage_since = unit_number
            arc.milestones.append(milestone)
            arc.arc_completion_percent = arc_completion(arc.current_stage)
            changes.append(f"Arc progressed to: {milestone.stage.value}")

        arc.character_growth_summary = self._growth_summary(arc)
        arc.predicted_next_step = _NEXT_STEPS.get(arc.current_stage, "Character arc progressing")

        return CharacterArcUpdate(
            character_name=arc.character_name,
            unit_number=unit_number,
            changes=changes,
            new_stage=arc.current_stage,
            emotional_state=arc.current_emotional_state.primary_emotion,
            arc_progress=arc.arc_completion_percent,
        )

    def _check_arc_progression(self, arc: CharacterArc, unit_number: int) -> Optional[ArcMilestone]:
        stage = arc.current_stage
        recent = arc.emotional_history[-3:]
        high_intensity = any(e.intensity in (Intensity.HIGH, Intensity.EXTREME) for e in recent)
        decided = any(d.unit == unit_number for d in arc.key_decisions)

        if stage == ArcStage.SETUP and len(arc.emotional_history) >= 2:
            return ArcMilestone(
                stage=ArcStage.CONFLICT,
                unit=unit_number,
                description="Character enters main conflict",
                trigger_event="Story conflict introduced",
            )
        if stage == ArcStage.CONFLICT and high_intensity:
            return ArcMilestone(
                stage=ArcStage.RISING,
                unit=unit_number,
                description="Stakes are rising",
                trigger_event=recent[0].trigger if recent else "Escalating events",
            )
        if stage == ArcStage.RISING and decided:
            return ArcMilestone(
                stage=ArcStage.CRISIS,
                unit=unit_number,
                description="Character faces critical moment",
                trigger_event="Key decision required",
            )
        return None

    def _growth_summary(self, arc: CharacterArc) -> str:
        parts = [f"Currently in {arc.current_stage.value} stage ({arc.arc_completion_percent}% complete)."]
        if len(arc.emotional_range) > 3:
            parts.append(f"Has experienced wide emotional range: {', '.join(arc.emotional_range[-4:])}.")
        major = [k.fact for k in arc.knowledge if k.significance in _MAJOR_KNOWLEDGE]
        if major:
            parts.append(f"Key knowledge: {'; '.join(major)}.")
        if arc.key_decisions:
            parts.append(f"Recent choice: {arc.key_decisions[-1].decision}.")
        return " ".join(parts)

    # ========================================================================
    # Relationships
    # ========================================================================

    def _update_relationship(self, relationship: ExtractedRelationship, unit_number: int) -> None:
        first = relationship.character1.strip()
        second = relationship.character2.strip()
        if not first or not second:
            return

        highlight = f"{self.strategy.unit_label} {unit_number}: {relationship.description}"
        for own, other in ((first, second), (second, first)):
            arc = self._arc_for(own)
            state = arc.relationships.get(other)
            if state is None:
                state = RelationshipState(other_character=other, last_interaction=unit_number)
                arc.relationships[other] = state

            state.last_interaction = unit_number
            state.history_highlights.append(highlight)

            if relationship.change == RelationshipChange.IMPROVED:
                state.trust_level = state.trust_level + TRUST_STEP
            elif relationship.change == RelationshipChange.WORSENED:
                state.trust_level = state.trust_level - TRUST_STEP
            elif relationship.change == RelationshipChange.COMPLICATED:
                state.current_status = RelationshipStatus.COMPLICATED

    # ========================================================================
    # Decisions
    # ========================================================================

    def record_decision(
        self,
        character_name: str,
        decision: str,
        alternatives: Sequence[str],
        consequences: Sequence[str],
        unit_number: int,
    ) -> DecisionPoint:
        """Record a key decision and refresh the character's pattern of choice."""
        arc = self._arc_for(character_name)
        point = DecisionPoint(
            unit=unit_number,
            decision=decision,
            alternatives=list(alternatives),
            consequences=list(consequences),
            reveals_about_character=self.classifiers.decision_trait(decision),
        )
        arc.key_decisions.append(point)

        if len(arc.key_decisions) >= 2:
            # Counter.most_common keeps first-seen order among ties.
            counts = Counter(d.reveals_about_character for d in arc.key_decisions)
            arc.pattern_of_choice = counts.most_common(1)[0][0] or "Inconsistent decision pattern"

        logger.info(f"[record_decision] {arc.character_name}: {point.reveals_about_character}")
        return point

    # ========================================================================
    # Format-Specific Updaters
    # ========================================================================

    def _require_format(self, updater_format: ContentFormat, where: str) -> None:
        if self.format != updater_format:
            raise FormatMismatchError(self.format.value, updater_format.value, where)

    def update_comic_visuals(
        self,
        character_name: str,
        page_number: int,
        panels_appeared: Optional[Sequence[int]] = None,
        expression: Optional[str] = None,
        costume: Optional[str] = None,
        is_visual_focus: bool = False,
        has_close_up: bool = False,
        has_splash_panel: bool = False,
        panel_position: Optional[str] = None,
        has_dialogue: bool = False,
        has_solo_moment: bool = False,
    ) -> ComicCharacterProfile:
        self._require_format(ContentFormat.COMIC, "update_comic_visuals")
        arc = self._arc_for(character_name)
        visuals: ComicCharacterProfile = arc.profile

        panels = list(panels_appeared or [])
        visuals.panel_appearances += len(panels)
        if expression:
            _append_new(visuals.expression_range, [expression])
        if costume and costume != visuals.costume:
            visuals.costume_changes.append(CostumeChange(unit=page_number, description=costume))
            visuals.costume = costume
        if has_close_up:
            visuals.close_up_count += 1
        if has_splash_panel:
            visuals.splash_panel_count += 1
        if panel_position:
            visuals.average_panel_position = panel_position

        visuals.page_presence.append(
            ComicPagePresence(
                page_number=page_number,
                panels=panels,
                is_visual_focus=is_visual_focus,
                has_dialogue=has_dialogue,
                has_solo_moment=has_solo_moment,
            )
        )
        return visuals

    def update_screenplay_profile(
        self,
        character_name: str,
        scene_number: int,
        slugline: str = "",
        role: str = "secondary",
        has_dialogue: bool = False,
        has_action: bool = False,
        estimated_pages: float = 0.0,
        total_characters_in_scene: int = 1,
        other_characters: Optional[Sequence[str]] = None,
        scene_type: Optional[str] = None,
        dialogue_sample: Optional[str] = None,
        mannerism: Optional[str] = None,
    ) -> ScreenplayCharacterProfile:
        self._require_format(ContentFormat.SCREENPLAY, "update_screenplay_profile")
        arc = self._arc_for(character_name)
        profile: ScreenplayCharacterProfile = arc.profile

        profile.estimated_screen_time += estimated_pages
        profile.scene_appearances += 1
        if role == "primary":
            profile.major_scenes += 1

        # Rolling proportions over every scene the character appeared in.
        n = profile.scene_appearances
        spoke = 1.0 if has_dialogue else 0.0
        profile.dialogue_ratio = (profile.dialogue_ratio * (n - 1) + spoke) / n
        profile.silence_ratio = (profile.silence_ratio * (n - 1) + (1.0 - spoke)) / n

        for other in other_characters or []:
            _bump(profile.character_pairings, other)
        if scene_type:
            _bump(profile.scene_types, scene_type)
        location = location_from_slugline(slugline)
        if location:
            _bump(profile.location_associations, location)
        if mannerism:
            _append_new(profile.physical_mannerisms, [mannerism])
        if dialogue_sample:
            # A line heard twice becomes a catch phrase.
            if dialogue_sample in profile.speech_patterns:
                _append_new(profile.catch_phrases, [dialogue_sample])
            else:
                profile.speech_patterns.append(dialogue_sample)

        profile.scene_presence.append(
            ScenePresence(
                scene_number=scene_number,
                slugline=slugline,
                role=role,
                has_dialogue=has_dialogue,
                has_action=has_action,
                estimated_pages=estimated_pages,
                character_count=total_characters_in_scene,
            )
        )
        return profile

    def update_book_prose(
        self,
        character_name: str,
        chapter_number: int,
        is_pov_character: bool = False,
        internal_monologue: Optional[str] = None,
        sensory_details: Optional[Sequence[str]] = None,
        associated_imagery: Optional[Sequence[str]] = None,
        reader_learned: Optional[Sequence[str]] = None,
        reader_wonders: Optional[Sequence[str]] = None,
        dramatic_irony: Optional[str] = None,
    ) -> BookCharacterProse:
        self._require_format(ContentFormat.BOOK, "update_book_prose")
        arc = self._arc_for(character_name)
        prose: BookCharacterProse = arc.profile

        if is_pov_character and chapter_number not in prose.pov_chapters:
            prose.pov_chapters.append(chapter_number)
        if internal_monologue:
            prose.internal_monologue_style = internal_monologue
        _append_new(prose.sensory_focus, sensory_details or [])
        _append_new(prose.associated_imagery, associated_imagery or [])
        prose.reader_knowledge.extend(reader_learned or [])
        prose.reader_mysteries.extend(reader_wonders or [])
        if dramatic_irony:
            prose.dramatic_irony.append(dramatic_irony)
        return prose

    # ========================================================================
    # Queries
    # ========================================================================

    def get_arc(self, name: str) -> Optional[CharacterArc]:
        return self.state.arcs.get(name)

    def get_protagonist_arc(self) -> Optional[CharacterArc]:
        if self.state.protagonist_name:
            return self.state.arcs.get(self.state.protagonist_name)
        return None

    def get_all_arcs(self) -> List[CharacterArc]:
        return list(self.state.arcs.values())

    def get_underdeveloped_characters(self, min_units: int = 3) -> List[CharacterArc]:
        """Non-minor characters with fewer than `min_units` emotional entries."""
        return [
            arc for arc in self.get_all_arcs()
            if len(arc.emotional_history) < min_units and arc.role != ArcRole.MINOR
        ]

    def get_relationship_summary(self, first: str, second: str) -> Optional[str]:
        arc = self.state.arcs.get(first)
        if not arc:
            return None
        relationship = arc.relationships.get(second)
        if not relationship:
            return None
        history = "; ".join(relationship.history_highlights[-3:])
        return (
            f"{first} and {second}: {relationship.current_status.value} "
            f"(trust: {relationship.trust_level}/10). History: {history}"
        )

    def stuck_arcs(self, current_unit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Characters parked on a stage that no progression rule leaves."""
        now = self.state.last_updated if current_unit is None else current_unit
        stuck = []
        for arc in self.get_all_arcs():
            if arc.current_stage in _RULED_STAGES or arc.current_stage == ArcStage.NEW_NORMAL:
                continue
            stuck.append(
                {
                    "character_name": arc.character_name,
                    "stage": arc.current_stage.value,
                    "units_in_stage": max(0, now - arc.stage_since),
                }
            )
        return stuck

    # ========================================================================
    # State
    # ========================================================================

    def get_state(self) -> CharacterArcState:
        return self.state

    def load_state(self, state: CharacterArcState) -> None:
        if state.format != self.format:
            raise ValueError(f"Arc state is for {state.format.value}, tracker is for {self.format.value}")
        self.state = state

    def to_dict(self) -> Dict[str, Any]:
        return self.state.to_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], classifiers: Optional[Classifiers] = None) -> "CharacterArcTracker":
        state = CharacterArcState.from_dict(data)
        return cls(state.story_id, state.format, classifiers=classifiers, state=state)

    # ========================================================================
    # Summaries
    # ========================================================================

    def generate_summary(self, character_name: str) -> str:
        """Character block for injection into the next unit's generation request."""
        arc = self.state.arcs.get(character_name)
        if not arc:
            return f"{character_name}: No arc data available."

        emotional = arc.current_emotional_state
        summary = f"=== {character_name.upper()} - ARC STATUS ===\n"
        summary += f"Role: {arc.role.value}\n"
        summary += f"Arc Stage: {arc.current_stage.value} ({arc.arc_completion_percent}% complete)\n"
        summary += f"Current Emotional State: {emotional.primary_emotion} ({emotional.intensity.value})\n"

        if arc.character_growth_summary:
            summary += f"\nGrowth: {arc.character_growth_summary}\n"
        if arc.pattern_of_choice != NOT_ESTABLISHED:
            summary += f"Decision Pattern: {arc.pattern_of_choice}\n"

        ongoing = [w for w in arc.wounds_and_growth if w.is_ongoing]
        if ongoing:
            summary += "\nOngoing Conditions:\n"
            for wound in ongoing:
                summary += f"  - {wound.description}"
                if wound.affects_capabilities:
                    summary += f" (affects: {', '.join(wound.affects_capabilities)})"
                summary += "\n"

        major = [k for k in arc.knowledge if k.significance in _MAJOR_KNOWLEDGE]
        if major:
            prefix = self.strategy.unit_label[:2].lower()
            summary += "\nKey Knowledge:\n"
            for knowledge in major[-5:]:
                summary += f"  - {knowledge.fact} (learned {prefix}{knowledge.learned_in})\n"

        summary += f"\nPredicted Next Step: {arc.predicted_next_step}\n"
        summary += self.strategy.render_summary(arc.profile)
        return summary

    def generate_all_characters_summary(self) -> str:
        main_roles = (ArcRole.PROTAGONIST, ArcRole.ANTAGONIST, ArcRole.SUPPORTING)
        return "\n\n".join(
            self.generate_summary(arc.character_name)
            for arc in self.get_all_arcs()
            if arc.role in main_roles
        )

    def generate_book_prose_notes(self, character_name: str) -> str:
        """Prose reference notes: what the reader knows and wonders about one character."""
        arc = self.state.arcs.get(character_name)
        if not arc or not isinstance(arc.profile, BookCharacterProse):
            return f"{character_name}: No prose data available."

        prose = arc.profile
        notes = f"=== {character_name.upper()} - PROSE NOTES ===\n\n"
        notes += f"DESCRIPTION LENGTH: {prose.description_length}\n"
        if prose.symbolic_connections:
            notes += f"SYMBOLIC CONNECTIONS: {', '.join(prose.symbolic_connections)}\n"
        if prose.reader_knowledge:
            notes += "\nREADER KNOWS:\n"
            notes += "".join(f"  - {fact}\n" for fact in prose.reader_knowledge[-5:])
        if prose.reader_mysteries:
            notes += "\nREADER WONDERS:\n"
            notes += "".join(f"  - {question}\n" for question in prose.reader_mysteries[-5:])
        return notes

    def generate_comic_character_sheet(self, character_name: str) -> str:
        """Visual reference sheet for the artist."""
        arc = self.state.arcs.get(character_name)
        if not arc or not isinstance(arc.profile, ComicCharacterProfile):
            return f"{character_name}: No visual data available."

        visuals = arc.profile
        sheet = f"=== {character_name.upper()} - CHARACTER VISUAL SHEET ===\n\n"
        sheet += f"COSTUME: {visuals.costume}\n"
        sheet += f"HAIR: {visuals.hair_style}\n"
        sheet += f"BODY TYPE: {visuals.body_type}\n\n"

        if visuals.distinctive_features:
            sheet += "DISTINCTIVE FEATURES:\n"
            sheet += "".join(f"  - {feature}\n" for feature in visuals.distinctive_features)
            sheet += "\n"
        if visuals.color_palette:
            sheet += f"COLOR PALETTE: {', '.join(visuals.color_palette)}\n\n"
        if visuals.established_poses:
            sheet += "ESTABLISHED POSES:\n"
            sheet += "".join(f"  - {pose}\n" for pose in visuals.established_poses)
            sheet += "\n"
        if visuals.expression_range:
            sheet += f"EXPRESSIONS USED: {', '.join(visuals.expression_range)}\n"

        sheet += "\nVISUAL STATISTICS:\n"
        sheet += f"  Total Panel Appearances: {visuals.panel_appearances}\n"
        sheet += f"  Close-up Panels: {visuals.close_up_count}\n"
        sheet += f"  Splash Panels: {visuals.splash_panel_count}\n"
        sheet += f"  Typical Position: {visuals.average_panel_position}\n"
        return sheet

    def generate_screenplay_character_breakdown(self, character_name: str) -> str:
        """Production breakdown of one screenplay character."""
        arc = self.state.arcs.get(character_name)
        if not arc or not isinstance(arc.profile, ScreenplayCharacterProfile):
            return f"{character_name}: No screenplay data available."

        profile = arc.profile
        breakdown = f"=== {character_name.upper()} - CHARACTER BREAKDOWN ===\n\n"
        breakdown += f"ROLE: {arc.role.value.upper()}\n"
        breakdown += f"ESTIMATED SCREEN TIME: {profile.estimated_screen_time:.1f} pages\n"
        breakdown += f"TOTAL SCENES: {profile.scene_appearances} ({profile.major_scenes} major)\n\n"

        if profile.dialogue_style != NOT_ESTABLISHED:
            breakdown += f"DIALOGUE STYLE: {profile.dialogue_style}\n"
        if profile.catch_phrases:
            joined = '", "'.join(profile.catch_phrases)
            breakdown += f'CATCHPHRASES: "{joined}"\n'
        if profile.speech_patterns:
            breakdown += f"SPEECH PATTERNS: {', '.join(profile.speech_patterns)}\n"

        breakdown += "\n--- PHYSICAL CHARACTERIZATION ---\n"
        if profile.physical_mannerisms:
            breakdown += "MANNERISMS:\n"
            breakdown += "".join(f"  - {m}\n" for m in profile.physical_mannerisms)
        if profile.signature_actions:
            breakdown += "SIGNATURE ACTIONS:\n"
            breakdown += "".join(f"  - {a}\n" for a in profile.signature_actions)
        breakdown += f"TYPICAL ENTRANCE: {profile.entrance_style}\n"
        breakdown += f"TYPICAL EXIT: {profile.exit_style}\n"

        breakdown += "\n--- SCENE ANALYSIS ---\n"
        if profile.scene_types:
            breakdown += "SCENE TYPES:\n"
            for entry in sorted(profile.scene_types, key=lambda e: -e.count):
                breakdown += f"  - {entry.name}: {entry.count} scenes\n"
        if profile.character_pairings:
            breakdown += "\nMOST SCENES WITH:\n"
            for entry in sorted(profile.character_pairings, key=lambda e: -e.count)[:3]:
                breakdown += f"  - {entry.name}: {entry.count} scenes\n"
        if profile.location_associations:
            breakdown += "\nPRIMARY LOCATIONS:\n"
            for entry in sorted(profile.location_associations, key=lambda e: -e.count)[:3]:
                breakdown += f"  - {entry.name}: {entry.count} scenes\n"
        return breakdown
