"""
Revision Planner - Adaptive Plan Correction

Decides after each unit whether the forward plan has drifted far enough to
need correction, and rewrites a bounded lookahead window of upcoming plan
units so they integrate what actually emerged.

Key concepts:
- decide(): weighted score over surprises, pivotal events, urgent and stale
  threads, unplanned strong themes, early climax, plus the format's own
  reasons
- revise(): one text-service request per plan unit; any failure falls back
  to the unmodified original plan with a low confidence score
- batch(): revises the lookahead strictly in order; book batches drop
  threads already addressed before revising the next chapter
- quick_revision(), RevisionHistory and summarize_revisions() need no
  text service
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..agents import LLMClient
from ..config.settings import EvolutionSettings
from ..formats import RevisionContext, get_strategy, string_list
from ..models import (
    AnyPlan,
    ChapterPlan,
    ComicPagePlan,
    DeviationType,
    EmergentTheme,
    ExtractionRecord,
    Momentum,
    PlotThread,
    Revision,
    RevisionDecision,
    RevisionUrgency,
    ScreenplaySequencePlan,
    Significance,
    ThemeStrength,
    ThreadPriority,
    Urgency,
)
from .discovery import DiscoveryTracker
from .exceptions import GenerationFailure
from .json_utils import extract_json

logger = logging.getLogger("story_evolution.revision")

EARLY_CLIMAX_FRACTION = 0.6

_PLAN_LABELS = {
    ChapterPlan: "Chapter",
    ComicPagePlan: "Page",
    ScreenplaySequencePlan: "Sequence",
}


def _normalize_confidence(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        confidence = float(value)
    except ValueError:
        return default
    if confidence <= 0:
        return default
    # Some responses use a percentage.
    if 1.0 < confidence <= 100.0:
        confidence = confidence / 100.0
    return min(confidence, 1.0)


class RevisionPlanner:
    """
    Scores revision need and rewrites upcoming plan units.

    Usage:
        planner = RevisionPlanner(llm_client, settings)
        decision = planner.decide(record, tracker, 4, 20)
        if decision.should_revise:
            revisions = await planner.batch(upcoming, tracker, record, 20)
    """

    def __init__(self, llm_client: Optional[LLMClient], settings: Optional[EvolutionSettings] = None):
        self.llm_client = llm_client
        self.settings = settings or EvolutionSettings()

    # ========================================================================
    # Decision
    # ========================================================================

    def decide(
        self,
        record: ExtractionRecord,
        tracker: DiscoveryTracker,
        current_unit: int,
        total_units: int,
    ) -> RevisionDecision:
        """Score whether upcoming plan units need revision."""
        strategy = tracker.strategy
        strategy.check_record(record)
        label = strategy.unit_label.lower()
        reasons: List[str] = []
        score = 0

        significant = [
            s for s in record.surprises
            if s.deviation_type in (DeviationType.PLOT_TWIST, DeviationType.CHARACTER_CHOICE)
        ]
        if significant:
            reasons.append(f"{len(significant)} significant surprise(s) deviated from outline")
            score += 2 * len(significant)

        pivotal = [e for e in record.events if e.significance == Significance.PIVOTAL]
        if pivotal:
            reasons.append(f"{len(pivotal)} pivotal event(s) may affect future {label}s")
            score += 2

        immediate = [t for t in record.threads if t.urgency == Urgency.IMMEDIATE]
        if immediate:
            reasons.append(f"{len(immediate)} thread(s) require immediate resolution")
            score += 3

        threshold = self.settings.stale_thread_threshold
        stale = tracker.get_stale_threads(current_unit, threshold)
        if len(stale) > 2:
            reasons.append(f"{len(stale)} threads haven't been addressed in {threshold}+ {label}s")
            score += 1

        strong_unplanned = [
            t for t in tracker.get_unplanned_discoveries()["themes"]
            if t.strength.rank >= ThemeStrength.DEVELOPING.rank
        ]
        if strong_unplanned:
            reasons.append(f"{len(strong_unplanned)} emergent theme(s) should be reinforced")
            score += 1

        if record.story_momentum == Momentum.CLIMAXING and current_unit < total_units * EARLY_CLIMAX_FRACTION:
            reasons.append("Story is climaxing earlier than expected - may need pacing adjustment")
            score += 2

        format_reasons, boost = strategy.score_revision_reasons(record, tracker.state.ledger, self.settings)
        reasons.extend(format_reasons)
        score += boost

        if score >= 4:
            urgency = RevisionUrgency.HIGH
        elif score >= 2:
            urgency = RevisionUrgency.MEDIUM
        else:
            urgency = RevisionUrgency.LOW

        logger.info(
            f"[decide] {strategy.unit_label} {current_unit}/{total_units}: score {score}, "
            f"urgency {urgency.value}, {len(reasons)} reason(s)"
        )
        return RevisionDecision(should_revise=bool(reasons), urgency=urgency, reasons=reasons, score=score)

    # ========================================================================
    # Context
    # ========================================================================

    def build_context(
        self,
        tracker: DiscoveryTracker,
        last_record: ExtractionRecord,
        total_units: int,
    ) -> RevisionContext:
        """Scoped view of the discovery ledger for one revision batch."""
        strategy = tracker.strategy
        unit = last_record.unit_number
        return RevisionContext(
            format=strategy.format,
            completed_units=unit,
            total_units=total_units,
            current_momentum=last_record.story_momentum.value,
            last_summary=last_record.one_line_summary,
            threads_needing_resolution=tracker.get_threads_needing_attention(),
            stale_threads=tracker.get_stale_threads(unit, self.settings.stale_thread_threshold),
            strong_themes=tracker.get_strong_themes(),
            character_discoveries=tracker.get_unplanned_discoveries()["characters"],
            brief=strategy.revision_brief(tracker.state.ledger, last_record, self.settings),
        )

    # ========================================================================
    # Revision
    # ========================================================================

    async def revise(self, plan: Any, context: RevisionContext) -> Revision:
        """
        Request a revised plan for one upcoming unit.

        Never raises on generation or parse failure: the original plan is
        returned unchanged with the configured failure confidence.
        """
        strategy = get_strategy(context.format)
        original = strategy.coerce_plan(plan)
        unit = original.unit_number

        try:
            if self.llm_client is None:
                raise GenerationFailure("No text-generation client configured", attempts=0)

            response = await self.llm_client.generate(
                system_prompt=strategy.revision_system_prompt,
                user_prompt=strategy.build_revision_prompt(original, context),
                temperature=self.settings.revision_temperature,
                max_tokens=self.settings.revision_max_tokens[strategy.format.value],
            )
            data = extract_json(response)
            if not isinstance(data, dict):
                raise GenerationFailure("Revision response did not contain a JSON object", attempts=1)

            revised, extras = strategy.merge_revision(original, data)
        except Exception as e:
            logger.warning(f"[revise] Failed to revise {strategy.unit_label.lower()} {unit}: {e}")
            return self._fallback(original)

        revision = Revision(
            unit_number=unit,
            original_plan=original,
            revised_plan=revised,
            reasons=string_list(data.get("revisionReason")),
            integrated_discoveries=string_list(data.get("integratedDiscoveries")),
            threads_addressed=string_list(data.get("threadsAddressed")),
            confidence_score=_normalize_confidence(data.get("confidenceScore"), self.settings.default_confidence),
            extras=extras,
        )
        logger.info(
            f"[revise] {strategy.unit_label} {unit} revised, confidence {revision.confidence_score:.2f}, "
            f"{len(revision.threads_addressed)} thread(s) addressed"
        )
        return revision

    def _fallback(self, original: AnyPlan) -> Revision:
        return Revision(
            unit_number=original.unit_number,
            original_plan=original,
            revised_plan=original.model_copy(deep=True),
            reasons=["AI revision failed - using original plan"],
            confidence_score=self.settings.failure_confidence,
            failed=True,
        )

    async def batch(
        self,
        plans: Sequence[Any],
        tracker: DiscoveryTracker,
        last_record: ExtractionRecord,
        total_units: int,
    ) -> List[Revision]:
        """Revise the lookahead window of upcoming plans, strictly in order."""
        strategy = tracker.strategy
        context = self.build_context(tracker, last_record, total_units)
        lookahead = self.settings.lookahead[strategy.format.value]

        revisions: List[Revision] = []
        for plan in list(plans)[:lookahead]:
            revision = await self.revise(plan, context)
            revisions.append(revision)

            if strategy.chains_thread_context and revision.threads_addressed:
                addressed = set(revision.threads_addressed)
                context.threads_needing_resolution = [
                    t for t in context.threads_needing_resolution if t.description not in addressed
                ]

        logger.info(f"[batch] Revised {len(revisions)} upcoming {strategy.unit_label.lower()}(s)")
        return revisions


# ============================================================================
# Quick Revision
# ============================================================================

def quick_revision(
    plan: ChapterPlan,
    threads: Sequence[PlotThread],
    themes: Sequence[EmergentTheme],
) -> ChapterPlan:
    """Minor chapter adjustments without the text service."""
    revised = plan.model_copy(deep=True)
    summary_lower = revised.summary.lower()

    main_thread = next((t for t in threads if t.priority == ThreadPriority.MAIN), None)
    if main_thread and main_thread.description.lower()[:20] not in summary_lower:
        beat = f"Address: {main_thread.description}"
        if revised.beats:
            revised.beats = revised.beats[:-1] + [beat, revised.beats[-1]]
        else:
            revised.beats = [beat]

    for theme in list(themes)[:2]:
        if theme.name.lower() not in revised.summary.lower():
            revised.summary += f" (Reinforce theme: {theme.name})"

    return revised


# ============================================================================
# Revision History
# ============================================================================

@dataclass
class RevisionHistory:
    """Accepted revisions for one story, oldest first."""
    story_id: str
    revisions: List[Revision] = field(default_factory=list)
    total_revisions: int = 0
    units_revised: List[int] = field(default_factory=list)

    def add(self, revision: Revision) -> None:
        self.revisions.append(revision)
        self.total_revisions += 1
        if revision.unit_number not in self.units_revised:
            self.units_revised.append(revision.unit_number)

    def current_plan(self, original_plans: Sequence[AnyPlan], unit_number: int) -> Optional[AnyPlan]:
        """Latest revised plan for a unit, else its original plan."""
        for revision in reversed(self.revisions):
            if revision.unit_number == unit_number:
                return revision.revised_plan
        return next((p for p in original_plans if p.unit_number == unit_number), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "story_id": self.story_id,
            "revisions": [r.model_dump(mode="json") for r in self.revisions],
            "total_revisions": self.total_revisions,
            "units_revised": list(self.units_revised),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevisionHistory":
        return cls(
            story_id=data.get("story_id", ""),
            revisions=[Revision.model_validate(r) for r in data.get("revisions", [])],
            total_revisions=int(data.get("total_revisions", 0)),
            units_revised=[int(u) for u in data.get("units_revised", [])],
        )


def summarize_revisions(revisions: Sequence[Revision]) -> str:
    """Human-readable summary of a batch of revisions."""
    if not revisions:
        return "No revisions made."

    label = _PLAN_LABELS.get(type(revisions[0].original_plan), "Unit")
    summary = f"Revised {len(revisions)} {label.lower()}(s):\n\n"

    for revision in revisions:
        summary += f"{label} {revision.unit_number}:\n"
        if revision.reasons:
            summary += "  Reasons:\n"
            summary += "".join(f"    - {reason}\n" for reason in revision.reasons)
        if revision.integrated_discoveries:
            summary += "  Integrated:\n"
            summary += "".join(f"    + {discovery}\n" for discovery in revision.integrated_discoveries)
        if revision.threads_addressed:
            summary += "  Threads Addressed:\n"
            summary += "".join(f"    * {thread}\n" for thread in revision.threads_addressed)
        summary += f"  Confidence: {round(revision.confidence_score * 100)}%\n\n"

    return summary
