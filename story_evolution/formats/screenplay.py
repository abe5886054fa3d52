"""
Screenplay format: sequences and scenes, location reuse, dialogue balance,
visual beats and subtext.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..config.settings import EvolutionSettings
from ..core.keyed_map import normalize_key
from ..core.matching import SubstringMatcher
from ..models import (
    ActPosition,
    BeatOccurrence,
    ContentFormat,
    Effectiveness,
    ExtractedCharacter,
    ExtractedLocation,
    ExtractedScene,
    ExtractionRecord,
    LocationUsage,
    PacingIssue,
    RelationshipChange,
    ScenePattern,
    ScenePurpose,
    ScreenplayCharacterProfile,
    ScreenplayInsights,
    ScreenplayLedger,
    ScreenplayPayload,
    ScreenplayScenePlan,
    ScreenplaySequencePlan,
    SequencePacing,
    VisualBeatPattern,
    coerce_enum,
)
from ..prompts import (
    SCREENPLAY_EXTRACTION_ADDENDUM,
    SCREENPLAY_EXTRACTION_SYSTEM_PROMPT,
    SCREENPLAY_REVISION_PROMPT_TEMPLATE,
    SCREENPLAY_REVISION_SYSTEM_PROMPT,
    render_section,
)
from .base import (
    FormatContext,
    FormatDelta,
    FormatStrategy,
    RevisionContext,
    pick_number,
    pick_text,
    pick_texts,
    string_list,
)

logger = logging.getLogger("story_evolution.formats.screenplay")

_SLUGLINE_RE = re.compile(
    r"^(INT\.|EXT\.)\s+(.+?)\s*-\s*(DAY|NIGHT|DAWN|DUSK|CONTINUOUS|LATER)",
    re.MULTILINE | re.IGNORECASE,
)
_SPEAKER_RE = re.compile(r"^([A-Z][A-Z \t]+)$", re.MULTILINE)
_NON_CHARACTER_WORDS = {"INT", "EXT", "FADE", "CUT", "DISSOLVE", "CONTINUOUS", "LATER", "DAY", "NIGHT"}

_BEAT_MATCHER = SubstringMatcher(prefix_length=20)

_SUBTEXT_DYNAMICS = ("conflicted", "shifting")
_MAX_SUBTEXT_OPPORTUNITIES = 3


def detect_subtext_opportunities(record: ExtractionRecord) -> List[str]:
    """Unspoken tension worth showing through action rather than dialogue."""
    opportunities = []
    for rel in record.relationships:
        if (rel.dynamic or "").strip().lower() in _SUBTEXT_DYNAMICS:
            opportunities.append(
                f"{rel.character1} and {rel.character2} have unspoken tension that could be shown through action"
            )
    for character in record.characters:
        if character.internal_conflict:
            opportunities.append(
                f"{character.name}'s internal conflict could be shown through behavior, not stated"
            )
    return opportunities[:_MAX_SUBTEXT_OPPORTUNITIES]


class ScreenplayStrategy(FormatStrategy):
    format = ContentFormat.SCREENPLAY
    unit_label = "Sequence"
    plan_model = ScreenplaySequencePlan
    extraction_system_prompt = SCREENPLAY_EXTRACTION_SYSTEM_PROMPT
    extraction_addendum = SCREENPLAY_EXTRACTION_ADDENDUM
    revision_system_prompt = SCREENPLAY_REVISION_SYSTEM_PROMPT

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def parse_extension(self, data: Dict[str, Any]) -> ScreenplayPayload:
        return ScreenplayPayload.model_validate({**data, "kind": "screenplay"})

    def minimal_extraction(self, content: str, unit_number: int) -> ExtractionRecord:
        scenes = []
        for number, match in enumerate(_SLUGLINE_RE.finditer(content), 1):
            scenes.append(
                ExtractedScene(
                    scene_number=number,
                    slugline=match.group(0).strip(),
                    location=match.group(2).strip(),
                    time_of_day=match.group(3).upper(),
                    purpose=ScenePurpose.ACTION,
                )
            )
        places = list(dict.fromkeys(scene.location for scene in scenes))

        speakers = []
        for match in _SPEAKER_RE.finditer(content):
            name = match.group(1).strip()
            if name and name not in _NON_CHARACTER_WORDS and name not in speakers:
                speakers.append(name)

        return ExtractionRecord(
            unit_number=unit_number,
            format=ContentFormat.SCREENPLAY,
            characters=[
                ExtractedCharacter(name=name[0] + name[1:].lower(), emotional_state="unknown")
                for name in speakers
            ],
            locations=[ExtractedLocation(name=place, mood="unknown") for place in places],
            one_line_summary=f"Sequence {unit_number}",
            emotional_arc="unknown",
            payload=ScreenplayPayload(
                scenes=scenes,
                sequence_pacing=SequencePacing(
                    dialogue_to_action_ratio=0.5,
                    average_scene_length=2.0,
                    location_changes_per_sequence=len(scenes),
                ),
            ),
            degraded=True,
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def new_ledger(self) -> ScreenplayLedger:
        return ScreenplayLedger()

    def update_state(self, ledger: ScreenplayLedger, record: ExtractionRecord, ctx: FormatContext) -> FormatDelta:
        delta = FormatDelta()
        payload: ScreenplayPayload = record.payload
        unit = record.unit_number
        pacing = payload.sequence_pacing

        # Location reuse
        for scene in payload.scenes:
            name = scene.location or scene.slugline
            if not name:
                continue
            usage = next(
                (u for u in ledger.location_usage if normalize_key(u.location_name) == normalize_key(name)),
                None,
            )
            if usage is None:
                ledger.location_usage.append(
                    LocationUsage(
                        location_name=name,
                        slugline_format=scene.slugline,
                        total_page_estimate=pacing.average_scene_length,
                        purposes=[scene.purpose.value],
                        associated_characters=list(scene.characters),
                    )
                )
                delta.new.append(f"New location introduced: {name}")
                continue

            usage.scene_count += 1
            usage.total_page_estimate += pacing.average_scene_length
            if scene.purpose.value not in usage.purposes:
                usage.purposes.append(scene.purpose.value)
            for character in scene.characters:
                if character not in usage.associated_characters:
                    usage.associated_characters.append(character)
            delta.reinforced.append(f"Location reused: {name}")

        # Dialogue balance
        new_ratio = pacing.dialogue_to_action_ratio
        ledger.dialogue_to_action_ratio = (ledger.dialogue_to_action_ratio + new_ratio) / 2
        ledger.average_scene_length = (ledger.average_scene_length + pacing.average_scene_length) / 2
        if new_ratio > 0.7:
            delta.suggestions.append("This sequence is dialogue-heavy (>70%). Consider adding visual action.")
        if new_ratio < 0.3:
            delta.suggestions.append("This sequence is action-heavy (<30% dialogue). Consider character moments.")

        # Visual beats
        for beat in payload.visual_beats:
            existing = _BEAT_MATCHER.find(beat, ledger.visual_beats, key=lambda b: b.description)
            if existing:
                existing.occurrences.append(BeatOccurrence(unit=unit))
                existing.effectiveness = Effectiveness.STRONG
                delta.reinforced.append(f"Visual beat pattern: {beat[:30]}")
            else:
                ledger.visual_beats.append(
                    VisualBeatPattern(
                        id=ctx.ids.next("vbeat"),
                        description=beat,
                        type=ctx.classifiers.visual_beat(beat),
                        occurrences=[BeatOccurrence(unit=unit)],
                    )
                )
                delta.new.append(f"New visual beat: {beat[:30]}")

        # Scene-purpose chains
        if len(payload.scenes) >= 2:
            chain = "-".join(scene.purpose.value for scene in payload.scenes)
            pattern = next((p for p in ledger.scene_patterns if p.pattern == chain), None)
            if pattern:
                pattern.average_length = (
                    pattern.average_length * pattern.occurrences + len(payload.scenes)
                ) / (pattern.occurrences + 1)
                pattern.occurrences += 1
                pattern.effectiveness = Effectiveness.STRONG
            else:
                ledger.scene_patterns.append(ScenePattern(pattern=chain, average_length=len(payload.scenes)))

        # Repetition
        if payload.scenes:
            first_purpose = payload.scenes[0].purpose
            same = [scene for scene in payload.scenes if scene.purpose == first_purpose]
            if len(same) > 3:
                ledger.pacing_issues.append(
                    PacingIssue(unit=unit, issue=f"Multiple consecutive {first_purpose.value} scenes")
                )
                delta.suggestions.append(
                    f"Consider varying scene purposes - {len(same)} consecutive {first_purpose.value} scenes"
                )

        # Subtext
        for rel in record.relationships:
            dynamic = (rel.dynamic or "").strip().lower()
            if rel.change != RelationshipChange.COMPLICATED and dynamic not in _SUBTEXT_DYNAMICS:
                continue
            moment = f"{rel.character1} and {rel.character2}: {rel.description or dynamic or rel.change.value}"
            if moment not in ledger.effective_subtext_moments:
                ledger.effective_subtext_moments.append(moment)
                delta.new.append(f"Subtext moment: {rel.character1} and {rel.character2}")

        return delta

    def insights(self, ledger: ScreenplayLedger) -> ScreenplayInsights:
        usages = ledger.location_usage
        average = sum(u.scene_count for u in usages) / (len(usages) or 1)
        ratio = ledger.dialogue_to_action_ratio
        if ratio > 0.6:
            balance = "Dialogue-heavy"
        elif ratio < 0.4:
            balance = "Action-heavy"
        else:
            balance = "Balanced"

        return ScreenplayInsights(
            overused_locations=[u.location_name for u in usages if u.scene_count > average * 2],
            underused_locations=[u.location_name for u in usages if u.scene_count == 1 and u.can_reuse],
            effective_patterns=[p.pattern for p in ledger.scene_patterns if p.occurrences >= 2],
            pacing_issues=[p.issue for p in ledger.pacing_issues],
            dialogue_balance=balance,
        )

    # ------------------------------------------------------------------
    # Revision
    # ------------------------------------------------------------------

    def score_revision_reasons(
        self,
        record: ExtractionRecord,
        ledger: ScreenplayLedger,
        settings: EvolutionSettings,
    ) -> Tuple[List[str], int]:
        reasons: List[str] = []
        boost = 0

        if ledger.dialogue_to_action_ratio > 0.7:
            reasons.append("Script is too dialogue-heavy - need more visual action")
            boost += 2
        elif ledger.dialogue_to_action_ratio < 0.3:
            reasons.append("Script lacks character dialogue - need more character moments")
            boost += 1

        overused = [u for u in ledger.location_usage if u.scene_count > 5 and len(u.purposes) < 3]
        if overused:
            reasons.append(f"{len(overused)} location(s) overused without variety - consider new settings")
            boost += 1

        if ledger.pacing_issues:
            reasons.append(f"Pacing issues detected: {ledger.pacing_issues[0].issue}")
            boost += 2

        if not ledger.effective_subtext_moments and record.unit_number > 2:
            reasons.append("Script lacks subtext - dialogue may be too on-the-nose")
            boost += 1

        return reasons, boost

    def revision_brief(
        self,
        ledger: ScreenplayLedger,
        record: ExtractionRecord,
        settings: EvolutionSettings,
    ) -> Dict[str, Any]:
        return {
            "visual_beats": [
                f"{b.type}: {b.description}"
                for b in ledger.visual_beats
                if b.effectiveness == Effectiveness.STRONG
            ],
            "reusable_locations": [
                f"{u.slugline_format or u.location_name} (used {u.scene_count}x for: {', '.join(u.purposes)})"
                for u in ledger.location_usage
                if u.can_reuse
            ],
            "pacing_issues": [p.issue for p in ledger.pacing_issues],
            "subtext_opportunities": detect_subtext_opportunities(record),
            "dialogue_to_action_ratio": ledger.dialogue_to_action_ratio,
        }

    def build_revision_prompt(self, plan: ScreenplaySequencePlan, context: RevisionContext) -> str:
        plan = self.coerce_plan(plan)
        brief = context.brief
        sections = self.common_context_sections(context)
        sections += render_section("EFFECTIVE VISUAL BEATS TO REFERENCE", brief.get("visual_beats", []))
        sections += render_section("LOCATIONS AVAILABLE FOR REUSE", brief.get("reusable_locations", []))
        sections += render_section("PACING ISSUES TO ADDRESS", brief.get("pacing_issues", []))
        sections += render_section("SUBTEXT OPPORTUNITIES", brief.get("subtext_opportunities", []))

        scenes = []
        for i, scene in enumerate(plan.scenes, 1):
            block = (
                f"  Scene {i}: {scene.slugline}\n"
                f"    Purpose: {scene.purpose}\n"
                f"    Tension: {scene.tension.value}\n"
                f"    Visual Action: {scene.visual_action}"
            )
            if scene.subtext_goal:
                block += f"\n    Subtext: {scene.subtext_goal}"
            scenes.append(block)

        ratio = brief.get("dialogue_to_action_ratio", 0.5)
        return SCREENPLAY_REVISION_PROMPT_TEMPLATE.format(
            sequence_number=plan.sequence_number,
            title=plan.title,
            act_position=plan.act_position.value,
            sequence_goal=plan.sequence_goal,
            estimated_pages=plan.estimated_pages,
            characters=", ".join(plan.major_characters),
            locations=", ".join(plan.locations),
            emotional_arc=plan.emotional_arc,
            scenes="\n".join(scenes),
            completed_units=context.completed_units,
            total_units=context.total_units,
            momentum=context.current_momentum,
            last_summary=context.last_summary,
            dialogue_percent=f"{ratio * 100:.0f}",
            context_sections=sections,
        )

    def merge_revision(
        self,
        plan: ScreenplaySequencePlan,
        response: Dict[str, Any],
    ) -> Tuple[ScreenplaySequencePlan, Dict[str, Any]]:
        plan = self.coerce_plan(plan)

        scenes = [s.model_copy() for s in plan.scenes]
        raw_scenes = response.get("revisedScenes")
        if isinstance(raw_scenes, list):
            revised_scenes = [
                ScreenplayScenePlan.model_validate({**raw, "sceneNumber": i})
                for i, raw in enumerate((s for s in raw_scenes if isinstance(s, dict)), 1)
            ]
            if revised_scenes:
                scenes = revised_scenes

        revised = plan.model_copy(
            update={
                "title": pick_text(response, "revisedTitle", plan.title),
                "act_position": coerce_enum(ActPosition, response.get("revisedActPosition")) or plan.act_position,
                "sequence_goal": pick_text(response, "revisedSequenceGoal", plan.sequence_goal),
                "estimated_pages": pick_number(response, "revisedEstimatedPages", plan.estimated_pages),
                "scenes": scenes,
                "major_characters": pick_texts(response, "revisedMajorCharacters", plan.major_characters),
                "locations": pick_texts(response, "revisedLocations", plan.locations),
                "emotional_arc": pick_text(response, "revisedEmotionalArc", plan.emotional_arc),
            },
            deep=True,
        )
        extras = {
            "visual_beats_integrated": string_list(response.get("visualBeatsIntegrated")),
            "locations_optimized": string_list(response.get("locationsOptimized")),
            "subtext_enhanced": response.get("subtextEnhanced") is True,
        }
        return revised, extras

    # ------------------------------------------------------------------
    # Character arcs
    # ------------------------------------------------------------------

    def new_profile(self, description: Optional[str] = None) -> ScreenplayCharacterProfile:
        return ScreenplayCharacterProfile()

    def render_summary(self, profile: ScreenplayCharacterProfile) -> str:
        summary = "\n--- SCREEN PRESENCE ---\n"
        summary += f"Screen Time: ~{profile.estimated_screen_time:.1f} pages\n"
        summary += f"Scene Appearances: {profile.scene_appearances} ({profile.major_scenes} major)\n"
        if profile.dialogue_style != "Not yet established":
            summary += f"Dialogue Style: {profile.dialogue_style}\n"
        if profile.silence_ratio > 0.3:
            summary += f"Often Silent: {profile.silence_ratio * 100:.0f}% of scenes\n"
        if profile.physical_mannerisms:
            summary += f"Mannerisms: {', '.join(profile.physical_mannerisms[-3:])}\n"
        if profile.character_pairings:
            top = max(profile.character_pairings, key=lambda p: p.count)
            summary += f"Most Scenes With: {top.name} ({top.count} scenes)\n"
        if profile.location_associations:
            top = max(profile.location_associations, key=lambda loc: loc.count)
            summary += f"Primary Location: {top.name} ({top.count} scenes)\n"
        return summary
