"""
Comic format: pages and panels, page-turn hooks, visual motifs and
character visual consistency.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..config.settings import EvolutionSettings
from ..core.keyed_map import normalize_key
from ..models import (
    CharacterVisualProfile,
    ComicCharacterProfile,
    ComicInsights,
    ComicLedger,
    ComicPagePlan,
    ComicPanelPlan,
    ComicPayload,
    ContentFormat,
    Effectiveness,
    ExtractedCharacter,
    ExtractionRecord,
    MotifOccurrence,
    PageHookPattern,
    VisualFlow,
    VisualInconsistency,
    VisualMotif,
    VisualPacing,
)
from ..prompts import (
    COMIC_EXTRACTION_ADDENDUM,
    COMIC_EXTRACTION_SYSTEM_PROMPT,
    COMIC_REVISION_PROMPT_TEMPLATE,
    COMIC_REVISION_SYSTEM_PROMPT,
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

logger = logging.getLogger("story_evolution.formats.comic")

_SPEAKER_RE = re.compile(r"^([A-Z][A-Z \t]+):", re.MULTILINE)
_PANEL_RE = re.compile(r"PANEL\s*\d+", re.IGNORECASE)

_COLOR_WORDS = ["red", "blue", "green", "black", "white", "brown", "blonde", "gray"]

DIALOGUE_HEAVY_PERCENT = 70.0


def hook_effectiveness(occurrences: int) -> Effectiveness:
    """A hook type lands while fresh and wears out once it is overused."""
    if occurrences >= 4:
        return Effectiveness.WEAK
    if occurrences >= 2:
        return Effectiveness.STRONG
    return Effectiveness.MODERATE


def is_conflicting_detail(existing: str, new_detail: str) -> bool:
    """Same attribute described with a different colour, e.g. "red hair" vs "black hair"."""
    existing_lower = existing.lower()
    new_lower = new_detail.lower()
    existing_color = next((c for c in _COLOR_WORDS if c in existing_lower), None)
    new_color = next((c for c in _COLOR_WORDS if c in new_lower), None)
    if not existing_color or not new_color or existing_color == new_color:
        return False
    existing_type = existing_lower.replace(existing_color, "", 1).strip()
    new_type = new_lower.replace(new_color, "", 1).strip()
    return existing_type == new_type


def panel_pacing_trend(ledger: ComicLedger) -> str:
    if not ledger.panel_units_counted:
        return "balanced"
    if ledger.panel_count_average > 7:
        return "too-dense"
    if ledger.panel_count_average < 3:
        return "too-sparse"
    return "balanced"


class ComicStrategy(FormatStrategy):
    format = ContentFormat.COMIC
    unit_label = "Page"
    plan_model = ComicPagePlan
    extraction_system_prompt = COMIC_EXTRACTION_SYSTEM_PROMPT
    extraction_addendum = COMIC_EXTRACTION_ADDENDUM
    revision_system_prompt = COMIC_REVISION_SYSTEM_PROMPT

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def parse_extension(self, data: Dict[str, Any]) -> ComicPayload:
        return ComicPayload.model_validate({**data, "kind": "comic"})

    def minimal_extraction(self, content: str, unit_number: int) -> ExtractionRecord:
        speakers = list(dict.fromkeys(m.group(1).strip() for m in _SPEAKER_RE.finditer(content)))
        panel_count = len(_PANEL_RE.findall(content)) or 1

        return ExtractionRecord(
            unit_number=unit_number,
            format=ContentFormat.COMIC,
            characters=[
                ExtractedCharacter(name=name[0] + name[1:].lower(), emotional_state="unknown")
                for name in speakers
            ],
            one_line_summary=f"Comic section {unit_number}",
            emotional_arc="unknown",
            payload=ComicPayload(panel_count=panel_count),
            degraded=True,
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def new_ledger(self) -> ComicLedger:
        return ComicLedger()

    def update_state(self, ledger: ComicLedger, record: ExtractionRecord, ctx: FormatContext) -> FormatDelta:
        delta = FormatDelta()
        payload: ComicPayload = record.payload
        unit = record.unit_number

        # Page hooks
        for page in payload.pages:
            if not page.page_hook:
                continue
            hook_type = ctx.classifiers.page_hook(page.page_hook)
            pattern = next((p for p in ledger.page_hook_patterns if p.hook_type == hook_type), None)
            if pattern:
                pattern.occurrences += 1
                pattern.examples.append(page.page_hook)
                pattern.effectiveness = hook_effectiveness(pattern.occurrences)
                delta.reinforced.append(f"Page hook pattern \"{hook_type}\" used again")
            else:
                pattern = PageHookPattern(
                    hook_type=hook_type,
                    description=page.page_hook,
                    examples=[page.page_hook],
                )
                ledger.page_hook_patterns.append(pattern)
                delta.new.append(f"New page hook pattern: {hook_type}")

            if pattern.effectiveness == Effectiveness.STRONG:
                layout = f"{len(page.panels)}-panel {page.visual_flow.value} page ending in {hook_type}"
                if layout not in ledger.effective_page_layouts:
                    ledger.effective_page_layouts.append(layout)

        # Visual pacing
        if payload.pages:
            flows = [page.visual_flow for page in payload.pages]
            total = len(flows)
            ledger.visual_pacing = VisualPacing(
                action_pages_percent=flows.count(VisualFlow.ACTION) / total * 100,
                dialogue_pages_percent=flows.count(VisualFlow.DIALOGUE) / total * 100,
                establishing_pages_percent=flows.count(VisualFlow.ESTABLISHING) / total * 100,
            )
            if ledger.visual_pacing.dialogue_pages_percent > DIALOGUE_HEAVY_PERCENT:
                delta.suggestions.append("Consider adding more action/visual pages - dialogue is over 70%")

        # Character visual consistency
        for appearance in payload.visual_consistency.character_appearances:
            if not appearance.name:
                continue
            profile = next(
                (
                    cv for cv in ledger.character_visuals
                    if normalize_key(cv.character_name) == normalize_key(appearance.name)
                ),
                None,
            )
            if profile is None:
                ledger.character_visuals.append(
                    CharacterVisualProfile(
                        character_name=appearance.name,
                        established_details=list(appearance.visual_details),
                        last_appearance=appearance.last_seen_page,
                        distinctive_features=appearance.visual_details[:3],
                    )
                )
                delta.new.append(f"Character visual profile established: {appearance.name}")
                continue

            for detail in appearance.visual_details:
                conflicting = next(
                    (d for d in profile.established_details if is_conflicting_detail(d, detail)),
                    None,
                )
                if conflicting:
                    profile.inconsistencies.append(
                        VisualInconsistency(
                            detail=f"{conflicting} vs {detail}",
                            pages=[profile.last_appearance, appearance.last_seen_page],
                        )
                    )
                    delta.suggestions.append(
                        f"Visual inconsistency for {appearance.name}: {conflicting} vs {detail}"
                    )
            profile.last_appearance = appearance.last_seen_page

        # Motifs
        for motif in payload.visual_consistency.visual_motifs:
            existing = ctx.matcher.find(motif, ledger.visual_motifs, key=lambda m: m.name)
            if existing:
                existing.occurrences.append(MotifOccurrence(unit=unit, context="Recurring appearance"))
                existing.should_recur = True
                delta.reinforced.append(f"Visual motif recurring: {motif}")
            else:
                ledger.visual_motifs.append(
                    VisualMotif(
                        id=ctx.ids.next("motif"),
                        name=motif,
                        description=motif,
                        occurrences=[MotifOccurrence(unit=unit, context="First appearance")],
                    )
                )
                delta.new.append(f"New visual motif: {motif}")

        # Rolling panel count
        if payload.panel_count:
            counted = ledger.panel_units_counted
            ledger.panel_count_average = (
                ledger.panel_count_average * counted + payload.panel_count
            ) / (counted + 1)
            ledger.panel_units_counted = counted + 1

        return delta

    def insights(self, ledger: ComicLedger) -> ComicInsights:
        return ComicInsights(
            effective_hooks=[
                p.hook_type for p in ledger.page_hook_patterns if p.effectiveness == Effectiveness.STRONG
            ],
            visual_motifs_to_develop=[m.name for m in ledger.visual_motifs if m.should_recur],
            consistency_issues=self._consistency_issues(ledger),
            pacing_recommendation=self._pacing_recommendation(ledger.visual_pacing),
        )

    @staticmethod
    def _consistency_issues(ledger: ComicLedger) -> List[str]:
        return [
            f"{cv.character_name}: {issue.detail}"
            for cv in ledger.character_visuals
            for issue in cv.inconsistencies
        ]

    @staticmethod
    def _pacing_recommendation(pacing: VisualPacing) -> str:
        if not (pacing.action_pages_percent or pacing.dialogue_pages_percent or pacing.establishing_pages_percent):
            return "No pacing data yet"
        if pacing.action_pages_percent > 60:
            return "Consider adding more dialogue/emotional beats for breathing room"
        if pacing.dialogue_pages_percent > 60:
            return "Consider adding more action/visual pages to maintain energy"
        if pacing.establishing_pages_percent < 10:
            return "Consider more establishing shots to ground the reader in locations"
        return "Pacing looks balanced"

    # ------------------------------------------------------------------
    # Revision
    # ------------------------------------------------------------------

    def score_revision_reasons(
        self,
        record: ExtractionRecord,
        ledger: ComicLedger,
        settings: EvolutionSettings,
    ) -> Tuple[List[str], int]:
        reasons: List[str] = []
        boost = 0

        visual_issues = [cv for cv in ledger.character_visuals if cv.inconsistencies]
        if visual_issues:
            reasons.append(
                f"{len(visual_issues)} character(s) have visual consistency issues that need addressing"
            )
            boost += 2

        weak_hooks = [p for p in ledger.page_hook_patterns if p.effectiveness == Effectiveness.WEAK]
        if len(weak_hooks) >= 2:
            reasons.append("Multiple pages have weak page-turn hooks - reader engagement at risk")
            boost += 1

        strong_motifs = [m for m in ledger.visual_motifs if len(m.occurrences) >= 2 and m.should_recur]
        if strong_motifs:
            reasons.append(f"{len(strong_motifs)} visual motif(s) should be reinforced in upcoming pages")
            boost += 1

        if ledger.visual_pacing.dialogue_pages_percent > DIALOGUE_HEAVY_PERCENT:
            reasons.append("Visual pacing is dialogue-heavy - upcoming pages need more visual action")
            boost += 1

        return reasons, boost

    def revision_brief(
        self,
        ledger: ComicLedger,
        record: ExtractionRecord,
        settings: EvolutionSettings,
    ) -> Dict[str, Any]:
        return {
            "visual_motifs": [
                f"{m.name}: {m.meaning or m.description}" for m in ledger.visual_motifs if m.should_recur
            ],
            "effective_hooks": [
                f"{p.hook_type}: {p.description}"
                for p in ledger.page_hook_patterns
                if p.effectiveness == Effectiveness.STRONG
            ],
            "consistency_issues": self._consistency_issues(ledger),
            "panel_pacing_trend": panel_pacing_trend(ledger),
        }

    def build_revision_prompt(self, plan: ComicPagePlan, context: RevisionContext) -> str:
        plan = self.coerce_plan(plan)
        brief = context.brief
        sections = self.common_context_sections(context)
        sections += render_section("VISUAL MOTIFS TO REINFORCE", brief.get("visual_motifs", []))
        sections += render_section("EFFECTIVE PAGE HOOK PATTERNS", brief.get("effective_hooks", []))
        sections += render_section("CHARACTER VISUAL CONSISTENCY ISSUES", brief.get("consistency_issues", []))

        panels = []
        for i, panel in enumerate(plan.panels, 1):
            line = f"  Panel {i} ({panel.visual_emphasis.value}): {panel.description}"
            if panel.dialogue_summary:
                line += f" - \"{panel.dialogue_summary}\""
            panels.append(line)

        return COMIC_REVISION_PROMPT_TEMPLATE.format(
            page_number=plan.page_number,
            title=plan.title or "Untitled",
            panel_count=plan.panel_count,
            visual_focus=plan.visual_focus,
            page_hook=plan.page_hook,
            characters=", ".join(plan.characters_present),
            emotional_beat=plan.emotional_beat,
            location_change="Yes" if plan.location_change else "No",
            panels="\n".join(panels),
            completed_units=context.completed_units,
            total_units=context.total_units,
            momentum=context.current_momentum,
            last_summary=context.last_summary,
            context_sections=sections,
            panel_pacing_trend=brief.get("panel_pacing_trend", "balanced"),
        )

    def merge_revision(
        self,
        plan: ComicPagePlan,
        response: Dict[str, Any],
    ) -> Tuple[ComicPagePlan, Dict[str, Any]]:
        plan = self.coerce_plan(plan)

        panels = [p.model_copy() for p in plan.panels]
        panels_revised = False
        raw_panels = response.get("revisedPanels")
        if isinstance(raw_panels, list):
            revised_panels = [
                ComicPanelPlan.model_validate({**raw, "panelNumber": i})
                for i, raw in enumerate((p for p in raw_panels if isinstance(p, dict)), 1)
            ]
            if revised_panels:
                panels = revised_panels
                panels_revised = True

        panel_count = int(pick_number(response, "revisedPanelCount", 0)) or (
            len(panels) if panels_revised else plan.panel_count
        )
        location_change = response.get("revisedLocationChange")

        revised = plan.model_copy(
            update={
                "title": pick_text(response, "revisedTitle", plan.title),
                "panel_count": panel_count,
                "panels": panels,
                "page_hook": pick_text(response, "revisedPageHook", plan.page_hook),
                "visual_focus": pick_text(response, "revisedVisualFocus", plan.visual_focus),
                "characters_present": pick_texts(response, "revisedCharactersPresent", plan.characters_present),
                "location_change": location_change if isinstance(location_change, bool) else plan.location_change,
                "emotional_beat": pick_text(response, "revisedEmotionalBeat", plan.emotional_beat),
            },
            deep=True,
        )
        extras = {
            "visual_motifs_integrated": string_list(response.get("visualMotifsIntegrated")),
            "page_hook_improved": response.get("pageHookImproved") is True,
        }
        return revised, extras

    # ------------------------------------------------------------------
    # Character arcs
    # ------------------------------------------------------------------

    def new_profile(self, description: Optional[str] = None) -> ComicCharacterProfile:
        return ComicCharacterProfile(costume=description or "Not yet established")

    def render_summary(self, profile: ComicCharacterProfile) -> str:
        summary = "\n--- VISUAL IDENTITY ---\n"
        summary += f"Costume: {profile.costume}\n"
        if profile.distinctive_features:
            summary += f"Distinctive Features: {', '.join(profile.distinctive_features)}\n"
        if profile.color_palette:
            summary += f"Color Palette: {', '.join(profile.color_palette)}\n"
        summary += f"Panel Appearances: {profile.panel_appearances} panels\n"
        summary += f"Close-ups: {profile.close_up_count}, Splash Panels: {profile.splash_panel_count}\n"
        if profile.expression_range:
            summary += f"Expressions Shown: {', '.join(profile.expression_range)}\n"
        if profile.costume_changes:
            last_change = profile.costume_changes[-1]
            summary += f"Last Costume Change (pg{last_change.unit}): {last_change.description}\n"
        if profile.visual_symbols:
            summary += f"Associated Visual Motifs: {', '.join(profile.visual_symbols)}\n"
        return summary
