"""
Book format: chapters, prose patterns, symbolism and foreshadowing.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..config.settings import EvolutionSettings
from ..core.matching import SubstringMatcher
from ..models import (
    BookCharacterProse,
    BookInsights,
    BookLedger,
    BookPayload,
    ChapterPacing,
    ChapterPlan,
    CliffhangerStrength,
    ContentFormat,
    Effectiveness,
    EndingPattern,
    ExtractedCharacter,
    ExtractedLocation,
    ExtractionRecord,
    ForeshadowingSetup,
    ProsePattern,
    SymbolicElement,
    ThemeOccurrence,
    ThreadType,
)
from ..prompts import (
    BOOK_EXTRACTION_ADDENDUM,
    BOOK_EXTRACTION_SYSTEM_PROMPT,
    BOOK_REVISION_SYSTEM_PROMPT,
    CHAPTER_REVISION_PROMPT_TEMPLATE,
    render_section,
)
from .base import FormatContext, FormatDelta, FormatStrategy, RevisionContext, pick_text, pick_texts

logger = logging.getLogger("story_evolution.formats.book")

_DIALOGUE_RE = re.compile(
    r"[\"“”]([^\"“”]+)[\"“”],?\s+"
    r"(?:said|asked|replied|whispered|shouted)\s+(\w+)",
    re.IGNORECASE,
)
_LOCATION_RE = re.compile(r"\b(?:in|at|inside|outside)\s+(?:the\s+)?([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)")

_SYMBOL_MATCHER = SubstringMatcher(prefix_length=15)

_WEAK_ENDINGS = (CliffhangerStrength.NONE.value, CliffhangerStrength.MILD.value)
_RECENT_ENDINGS_KEPT = 3
_STALE_PATTERN_OCCURRENCES = 5

_ENDING_RECOMMENDATIONS = {
    "strong": "Many strong cliffhangers - consider a quieter ending for variety",
    "mild": "Endings are consistently mild - try a stronger cliffhanger",
    "none": "Chapters often end without hooks - add tension to keep readers turning pages",
}


class BookStrategy(FormatStrategy):
    format = ContentFormat.BOOK
    unit_label = "Chapter"
    plan_model = ChapterPlan
    extraction_system_prompt = BOOK_EXTRACTION_SYSTEM_PROMPT
    extraction_addendum = BOOK_EXTRACTION_ADDENDUM
    revision_system_prompt = BOOK_REVISION_SYSTEM_PROMPT
    chains_thread_context = True

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def parse_extension(self, data: Dict[str, Any]) -> BookPayload:
        return BookPayload.model_validate({**data, "kind": "book"})

    def minimal_extraction(self, content: str, unit_number: int) -> ExtractionRecord:
        names = list(dict.fromkeys(m.group(2) for m in _DIALOGUE_RE.finditer(content)))
        places = list(dict.fromkeys(m.group(1) for m in _LOCATION_RE.finditer(content)))

        return ExtractionRecord(
            unit_number=unit_number,
            format=ContentFormat.BOOK,
            characters=[ExtractedCharacter(name=name, emotional_state="unknown") for name in names],
            locations=[ExtractedLocation(name=place, mood="unknown") for place in places],
            one_line_summary=f"Chapter {unit_number} events",
            emotional_arc="unknown",
            payload=BookPayload(
                chapter_pacing=ChapterPacing(
                    scene_count=1,
                    average_scene_length=len(content.split()),
                    tension_curve=["plateau"],
                ),
            ),
            degraded=True,
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def new_ledger(self) -> BookLedger:
        return BookLedger()

    def update_state(self, ledger: BookLedger, record: ExtractionRecord, ctx: FormatContext) -> FormatDelta:
        delta = FormatDelta()
        unit = record.unit_number
        prose = record.payload.prose_elements
        pacing = record.payload.chapter_pacing

        # Symbols
        for symbol in prose.symbolism:
            existing = _SYMBOL_MATCHER.find(symbol, ledger.symbolic_elements, key=lambda s: s.name)
            if existing:
                existing.occurrences.append(ThemeOccurrence(unit=unit, context="Recurring symbol"))
                existing.is_recurring = True
                existing.should_develop = True
                delta.reinforced.append(f"Symbol recurring: {symbol}")
            else:
                ledger.symbolic_elements.append(
                    SymbolicElement(
                        name=symbol,
                        occurrences=[ThemeOccurrence(unit=unit, context="First appearance")],
                    )
                )
                delta.new.append(f"New symbolic element: {symbol}")

        # Callbacks pay off earlier setups before this unit's setups are logged
        callbacks = [t.description for t in record.threads if t.type == ThreadType.CALLBACK]
        for setup in ledger.foreshadowing_setups:
            if setup.resolved:
                continue
            if any(ctx.matcher.matches(setup.setup, callback) for callback in callbacks):
                setup.resolved = True
                delta.reinforced.append(f"Foreshadowing paid off: {setup.setup[:40]}")

        for foreshadow in prose.foreshadowing:
            ledger.foreshadowing_setups.append(ForeshadowingSetup(setup=foreshadow, unit=unit))
            delta.new.append(f"Foreshadowing setup: {foreshadow[:40]}")

        for sensory in prose.sensory_details:
            if sensory not in ledger.effective_sensory_details:
                ledger.effective_sensory_details.append(sensory)

        self._track_prose_patterns(ledger, record, delta)

        # Chapter endings
        if pacing.cliffhanger_strength is not None:
            self._track_ending(ledger, pacing.cliffhanger_strength.value, delta)

        unresolved = len([f for f in ledger.foreshadowing_setups if not f.resolved])
        if unresolved > 5:
            delta.suggestions.append(
                f"{unresolved} foreshadowing setups are unresolved - consider paying some off"
            )

        return delta

    def _track_ending(self, ledger: BookLedger, ending: str, delta: FormatDelta) -> None:
        pattern = next((p for p in ledger.chapter_ending_patterns if p.type == ending), None)
        if pattern:
            pattern.occurrences += 1
        else:
            ledger.chapter_ending_patterns.append(EndingPattern(type=ending))
        ledger.recent_endings = (ledger.recent_endings + [ending])[-_RECENT_ENDINGS_KEPT:]

        most_used = max(ledger.chapter_ending_patterns, key=lambda p: p.occurrences)
        if most_used.occurrences >= 3 and most_used.type == ending:
            delta.suggestions.append(
                f"Chapter endings are frequently \"{ending}\" - consider varying the pattern"
            )

    def _track_voice(self, ledger: BookLedger, voice: str, unit: int, delta: FormatDelta) -> None:
        voice_pattern = self._find_pattern(ledger, "narrative_voice", voice)
        if voice_pattern:
            voice_pattern.occurrences += 1
            voice_pattern.units.append(unit)
            return
        ledger.prose_patterns.append(
            ProsePattern(
                type="narrative_voice",
                description=voice,
                units=[unit],
                effectiveness=Effectiveness.STRONG,
            )
        )
        voices = [p for p in ledger.prose_patterns if p.type == "narrative_voice"]
        if len(voices) > 1:
            ledger.narrative_voice_consistency = "drifting"
            delta.suggestions.append(f"Narrative voice shifted to {voice} - keep point of view consistent")

    def _track_prose_patterns(self, ledger: BookLedger, record: ExtractionRecord, delta: FormatDelta) -> None:
        unit = record.unit_number
        # Responses that omit the voice say nothing about point of view
        voice = record.payload.prose_elements.narrative_voice
        if voice is not None:
            self._track_voice(ledger, voice.value, unit, delta)

        curve = [step.strip().lower() for step in record.payload.chapter_pacing.tension_curve if step.strip()]
        if not curve:
            return
        shape = "-".join(curve)
        curve_pattern = self._find_pattern(ledger, "tension_curve", shape)
        if curve_pattern:
            curve_pattern.occurrences += 1
            curve_pattern.units.append(unit)
            if curve_pattern.occurrences > _STALE_PATTERN_OCCURRENCES:
                curve_pattern.effectiveness = Effectiveness.WEAK
            delta.reinforced.append(f"Tension curve repeated: {shape}")
        else:
            ledger.prose_patterns.append(ProsePattern(type="tension_curve", description=shape, units=[unit]))
            delta.new.append(f"New tension curve shape: {shape}")

    @staticmethod
    def _find_pattern(ledger: BookLedger, pattern_type: str, description: str) -> Optional[ProsePattern]:
        for pattern in ledger.prose_patterns:
            if pattern.type == pattern_type and pattern.description == description:
                return pattern
        return None

    def insights(self, ledger: BookLedger) -> BookInsights:
        return BookInsights(
            symbols_to_develop=[s.name for s in ledger.symbolic_elements if s.should_develop],
            unresolved_foreshadowing=[f.setup for f in ledger.foreshadowing_setups if not f.resolved],
            effective_sensory_details=ledger.effective_sensory_details[:5],
            ending_pattern_recommendation=self._ending_recommendation(ledger),
        )

    @staticmethod
    def _ending_recommendation(ledger: BookLedger) -> str:
        if not ledger.chapter_ending_patterns:
            return "No pattern data yet"
        most_used = max(ledger.chapter_ending_patterns, key=lambda p: p.occurrences)
        if most_used.occurrences >= 3:
            return _ENDING_RECOMMENDATIONS.get(most_used.type, "Good variety in chapter endings")
        return "Chapter endings have good variety"

    # ------------------------------------------------------------------
    # Revision
    # ------------------------------------------------------------------

    @staticmethod
    def _due_setups(ledger: BookLedger, unit: int, window: int) -> List[ForeshadowingSetup]:
        return [f for f in ledger.foreshadowing_setups if not f.resolved and unit - f.unit >= window]

    def score_revision_reasons(
        self,
        record: ExtractionRecord,
        ledger: BookLedger,
        settings: EvolutionSettings,
    ) -> Tuple[List[str], int]:
        reasons: List[str] = []
        boost = 0

        due = self._due_setups(ledger, record.unit_number, settings.foreshadowing_payoff_window)
        if due:
            reasons.append(f"{len(due)} foreshadowing setup(s) need payoff soon")
            boost += 2

        stale = [
            p for p in ledger.prose_patterns
            if p.occurrences > _STALE_PATTERN_OCCURRENCES and p.effectiveness == Effectiveness.WEAK
        ]
        if stale:
            reasons.append("Some prose patterns are becoming stale - vary narrative approach")
            boost += 1

        weak_endings = [e for e in ledger.recent_endings if e in _WEAK_ENDINGS]
        if len(weak_endings) >= 2:
            reasons.append("Recent chapter endings lack impact - strengthen hooks")
            boost += 1

        return reasons, boost

    def revision_brief(
        self,
        ledger: BookLedger,
        record: ExtractionRecord,
        settings: EvolutionSettings,
    ) -> Dict[str, Any]:
        due = self._due_setups(ledger, record.unit_number, settings.foreshadowing_payoff_window)
        return {
            "symbols_to_develop": [s.name for s in ledger.symbolic_elements if s.should_develop],
            "foreshadowing_due": [f.setup for f in due],
            "ending_recommendation": self._ending_recommendation(ledger),
        }

    def build_revision_prompt(self, plan: ChapterPlan, context: RevisionContext) -> str:
        plan = self.coerce_plan(plan)
        brief = context.brief
        sections = self.common_context_sections(context)
        sections += render_section("SYMBOLS TO DEVELOP", brief.get("symbols_to_develop", []))
        sections += render_section("FORESHADOWING AWAITING PAYOFF", brief.get("foreshadowing_due", []))
        if brief.get("ending_recommendation") and brief["ending_recommendation"] != "No pattern data yet":
            sections += f"\nCHAPTER ENDINGS: {brief['ending_recommendation']}\n"

        return CHAPTER_REVISION_PROMPT_TEMPLATE.format(
            chapter_number=plan.chapter_number,
            title=plan.title,
            summary=plan.summary,
            key_events=", ".join(plan.key_events),
            characters=", ".join(plan.characters_involved),
            locations=", ".join(plan.locations_primary),
            emotional_goal=plan.emotional_goal,
            beats="\n".join(f"  {i}. {beat}" for i, beat in enumerate(plan.beats, 1)),
            completed_units=context.completed_units,
            total_units=context.total_units,
            momentum=context.current_momentum,
            last_summary=context.last_summary,
            context_sections=sections,
        )

    def merge_revision(self, plan: ChapterPlan, response: Dict[str, Any]) -> Tuple[ChapterPlan, Dict[str, Any]]:
        plan = self.coerce_plan(plan)
        revised = plan.model_copy(
            update={
                "title": pick_text(response, "revisedTitle", plan.title),
                "summary": pick_text(response, "revisedSummary", plan.summary),
                "beats": pick_texts(response, "revisedBeats", plan.beats),
                "key_events": pick_texts(response, "revisedKeyEvents", plan.key_events),
                "characters_involved": pick_texts(response, "revisedCharacters", plan.characters_involved),
                "locations_primary": pick_texts(response, "revisedLocations", plan.locations_primary),
                "emotional_goal": pick_text(response, "revisedEmotionalGoal", plan.emotional_goal),
            },
            deep=True,
        )
        return revised, {}

    # ------------------------------------------------------------------
    # Character arcs
    # ------------------------------------------------------------------

    def new_profile(self, description: Optional[str] = None) -> BookCharacterProse:
        return BookCharacterProse()

    def render_summary(self, profile: BookCharacterProse) -> str:
        summary = ""
        if profile.pov_chapters:
            summary += "\n--- POV CHARACTER ---\n"
            summary += f"POV Chapters: {', '.join(str(c) for c in profile.pov_chapters)}\n"
            if profile.internal_monologue_style != "Not yet established":
                summary += f"Internal Voice: {profile.internal_monologue_style}\n"
            if profile.sensory_focus:
                summary += f"Sensory Focus: {', '.join(profile.sensory_focus[-3:])}\n"

        if profile.associated_imagery:
            summary += f"Associated Imagery: {', '.join(profile.associated_imagery[-3:])}\n"

        if profile.dramatic_irony:
            summary += "\nDramatic Irony (reader knows, character doesn't):\n"
            for irony in profile.dramatic_irony[-2:]:
                summary += f"  - {irony}\n"

        return summary
