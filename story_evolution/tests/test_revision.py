"""
Unit tests for the revision planner.

Tests cover:
- Revision decision scoring and urgency
- Single-plan revision and its failure fallback
- Lookahead batches and book thread chaining
- quick_revision, RevisionHistory and summaries
"""

import json

import pytest

from story_evolution.core.revision import (
    RevisionHistory,
    RevisionPlanner,
    quick_revision,
    summarize_revisions,
)
from story_evolution.models import ChapterPlan, RevisionUrgency
from story_evolution.tests.conftest import make_record, mock_llm


def chapter(number, summary="", beats=None):
    return {"chapterNumber": number, "title": f"Chapter {number}", "summary": summary, "beats": beats or []}


def book_response(**overrides):
    response = {
        "revisedSummary": "Mara follows the smuggler to the lighthouse.",
        "revisedBeats": ["Arrive at night", "Find the ledger"],
        "revisionReason": ["Integrates the smuggler's debt"],
        "integratedDiscoveries": ["redemption"],
        "threadsAddressed": ["The smuggler's debt"],
        "confidenceScore": 0.9,
    }
    response.update(overrides)
    return response


class TestDecide:
    """Tests for revision decision scoring."""

    def setup_method(self):
        self.planner = RevisionPlanner(None)

    def test_quiet_unit_needs_no_revision(self, book_tracker):
        """Test a unit with nothing notable scores zero."""
        record = make_record(3)
        book_tracker.process_unit(record)

        decision = self.planner.decide(record, book_tracker, 3, 20)

        assert not decision.should_revise
        assert decision.urgency == RevisionUrgency.LOW
        assert decision.reasons == []

    def test_weighted_reasons(self, book_tracker):
        """Test surprises, pivotal events, urgent threads and early climax all score."""
        record = make_record(
            5,
            surprises=[{"deviationType": "plot_twist", "actuallyHappened": "The ferry sinks"}],
            events=[{"description": "The harbor burns", "significance": "pivotal"}],
            threads=[{"type": "unresolved", "description": "Who lit the fire", "urgency": "immediate"}],
            storyMomentum="climaxing",
        )
        book_tracker.process_unit(record)

        decision = self.planner.decide(record, book_tracker, 5, 20)

        assert decision.should_revise
        assert decision.urgency == RevisionUrgency.HIGH
        assert decision.score == 9
        assert decision.reasons == [
            "1 significant surprise(s) deviated from outline",
            "1 pivotal event(s) may affect future chapters",
            "1 thread(s) require immediate resolution",
            "Story is climaxing earlier than expected - may need pacing adjustment",
        ]

    def test_each_significant_surprise_scores(self, book_tracker):
        """Test every plot twist or character choice adds two points."""
        record = make_record(4, surprises=[
            {"deviationType": "plot_twist", "actuallyHappened": "The ferry sinks"},
            {"deviationType": "plot_twist", "actuallyHappened": "Ilse was never on board"},
            {"deviationType": "character_choice", "actuallyHappened": "Mara burns the map"},
            {"deviationType": "tone_shift", "actuallyHappened": "The wake turns festive"},
        ])
        book_tracker.process_unit(record)

        decision = self.planner.decide(record, book_tracker, 4, 20)

        assert decision.score == 6
        assert decision.urgency == RevisionUrgency.HIGH
        assert decision.reasons == ["3 significant surprise(s) deviated from outline"]

    def test_stale_threads_and_strong_themes(self, book_tracker):
        """Test more than two stale threads and a developing unplanned theme."""
        book_tracker.process_unit(make_record(1, threads=[
            {"type": "setup", "description": "The missing key"},
            {"type": "setup", "description": "The stranger's limp"},
            {"type": "setup", "description": "A letter with no stamp"},
        ]))
        for unit in (2, 3, 4):
            book_tracker.process_unit(make_record(unit, emergentThemes=["forgiveness"]))
        record = make_record(5)

        decision = self.planner.decide(record, book_tracker, 5, 20)

        assert "3 threads haven't been addressed in 3+ chapters" in decision.reasons
        assert "1 emergent theme(s) should be reinforced" in decision.reasons
        assert decision.urgency == RevisionUrgency.MEDIUM

    def test_late_climax_not_flagged(self, book_tracker):
        """Test climaxing past 60% of the story is expected."""
        record = make_record(15, storyMomentum="climaxing")
        book_tracker.process_unit(record)

        decision = self.planner.decide(record, book_tracker, 15, 20)

        assert not decision.should_revise

    def test_comic_dialogue_heavy(self, comic_tracker):
        """Test a dialogue-heavy comic page run asks for revision."""
        record = make_record(1, "comic", payload={"pages": [
            {"pageNumber": 1, "visualFlow": "dialogue"},
            {"pageNumber": 2, "visualFlow": "dialogue"},
            {"pageNumber": 3, "visualFlow": "dialogue"},
            {"pageNumber": 4, "visualFlow": "action"},
        ]})
        comic_tracker.process_unit(record)

        decision = self.planner.decide(record, comic_tracker, 1, 24)

        assert decision.should_revise
        assert "Visual pacing is dialogue-heavy - upcoming pages need more visual action" in decision.reasons


class TestRevise:
    """Tests for revising a single plan unit."""

    def setup_method(self):
        self.record = make_record(4, oneLineSummary="Mara learns of the debt")

    @pytest.mark.asyncio
    async def test_successful_revision(self, book_tracker):
        """Test revised fields are merged and a percentage confidence is normalized."""
        client = mock_llm(book_response(confidenceScore=85))
        planner = RevisionPlanner(client)
        context = planner.build_context(book_tracker, self.record, 20)

        revision = await planner.revise(chapter(5, "Mara rests.", ["Sleep"]), context)

        assert not revision.failed
        assert revision.unit_number == 5
        assert revision.original_plan.summary == "Mara rests."
        assert revision.revised_plan.summary == "Mara follows the smuggler to the lighthouse."
        assert revision.revised_plan.beats == ["Arrive at night", "Find the ledger"]
        assert revision.revised_plan.title == "Chapter 5"
        assert revision.threads_addressed == ["The smuggler's debt"]
        assert revision.confidence_score == pytest.approx(0.85)

        kwargs = client.generate.call_args.kwargs
        assert "Mara rests." in kwargs["user_prompt"]
        assert kwargs["temperature"] == planner.settings.revision_temperature

    @pytest.mark.asyncio
    async def test_missing_confidence_uses_default(self, book_tracker):
        """Test a response without confidence gets the default score."""
        response = book_response()
        del response["confidenceScore"]
        planner = RevisionPlanner(mock_llm(response))

        revision = await planner.revise(chapter(5), planner.build_context(book_tracker, self.record, 20))

        assert revision.confidence_score == pytest.approx(0.7)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", ["I cannot revise this chapter.", RuntimeError("service down")])
    async def test_failure_keeps_original(self, book_tracker, response):
        """Test unparsable output and service errors fall back to the original plan."""
        planner = RevisionPlanner(mock_llm(response))
        original = chapter(5, "Mara rests.", ["Sleep"])

        revision = await planner.revise(original, planner.build_context(book_tracker, self.record, 20))

        assert revision.failed
        assert revision.revised_plan == revision.original_plan
        assert revision.revised_plan is not revision.original_plan
        assert revision.confidence_score == pytest.approx(0.5)
        assert revision.reasons == ["AI revision failed - using original plan"]

    @pytest.mark.asyncio
    async def test_no_client_falls_back(self, book_tracker):
        """Test a planner without a text service still returns a revision."""
        planner = RevisionPlanner(None)

        revision = await planner.revise(chapter(6), planner.build_context(book_tracker, self.record, 20))

        assert revision.failed
        assert revision.unit_number == 6


class TestBatch:
    """Tests for lookahead batches."""

    @pytest.mark.asyncio
    async def test_comic_lookahead(self, comic_tracker):
        """Test comics revise at most three upcoming pages, in order."""
        plans = [{"pageNumber": n, "pageHook": "Door opens"} for n in range(2, 7)]
        client = mock_llm(*[{"revisedPageHook": f"Hook {n}"} for n in range(2, 5)])
        planner = RevisionPlanner(client)

        revisions = await planner.batch(plans, comic_tracker, make_record(1, "comic"), 24)

        assert [r.unit_number for r in revisions] == [2, 3, 4]
        assert [r.revised_plan.page_hook for r in revisions] == ["Hook 2", "Hook 3", "Hook 4"]
        assert client.generate.call_count == 3

    @pytest.mark.asyncio
    async def test_screenplay_lookahead(self, screenplay_tracker):
        """Test screenplays revise at most two upcoming sequences."""
        plans = [{"sequenceNumber": n, "title": f"Seq {n}"} for n in range(2, 6)]
        client = mock_llm({"revisedTitle": "A"}, {"revisedTitle": "B"})

        revisions = await RevisionPlanner(client).batch(plans, screenplay_tracker, make_record(1, "screenplay"), 12)

        assert [r.unit_number for r in revisions] == [2, 3]
        assert client.generate.call_count == 2

    @pytest.mark.asyncio
    async def test_book_chains_addressed_threads(self, book_tracker):
        """Test a thread addressed in one chapter is not offered to the next."""
        record = make_record(4, threads=[
            {"type": "unresolved", "description": "The smuggler's debt", "urgency": "immediate"},
            {"type": "unresolved", "description": "Who lit the fire", "urgency": "high"},
        ])
        book_tracker.process_unit(record)
        client = mock_llm(book_response(), book_response(threadsAddressed=[]), book_response(threadsAddressed=[]))

        revisions = await RevisionPlanner(client).batch(
            [chapter(5), chapter(6), chapter(7), chapter(8)], book_tracker, record, 20
        )

        assert len(revisions) == 3
        prompts = [call.kwargs["user_prompt"] for call in client.generate.call_args_list]
        assert "[MAIN] The smuggler's debt" in prompts[0]
        assert "[MAIN] The smuggler's debt" not in prompts[1]
        assert "[SECONDARY] Who lit the fire" in prompts[1]

    @pytest.mark.asyncio
    async def test_failed_plan_does_not_stop_batch(self, comic_tracker):
        """Test one failure keeps the rest of the window."""
        plans = [{"pageNumber": 2}, {"pageNumber": 3}]
        client = mock_llm(RuntimeError("timeout"), {"revisedPageHook": "Cliff"})

        revisions = await RevisionPlanner(client).batch(plans, comic_tracker, make_record(1, "comic"), 24)

        assert [r.failed for r in revisions] == [True, False]


class TestQuickRevision:
    """Tests for the offline chapter adjustment."""

    def test_adds_thread_beat_and_themes(self, book_tracker):
        """Test the main thread is inserted before the last beat and themes are appended."""
        book_tracker.process_unit(make_record(
            3,
            emergentThemes=["redemption", "trust", "exile"],
            threads=[{"type": "unresolved", "description": "The smuggler's debt", "urgency": "immediate"}],
        ))
        plan = ChapterPlan(chapter_number=5, summary="Mara sails north.", beats=["Depart", "Storm hits"])

        revised = quick_revision(plan, book_tracker.get_threads_needing_attention(), book_tracker.state.themes)

        assert revised.beats == ["Depart", "Address: The smuggler's debt", "Storm hits"]
        assert revised.summary == "Mara sails north. (Reinforce theme: redemption) (Reinforce theme: trust)"
        assert plan.beats == ["Depart", "Storm hits"]

    def test_thread_already_in_summary(self, book_tracker):
        """Test a thread named in the summary adds no beat."""
        book_tracker.process_unit(make_record(3, threads=[
            {"type": "unresolved", "description": "The smuggler's debt is due", "urgency": "immediate"}
        ]))
        plan = ChapterPlan(chapter_number=5, summary="The smuggler's debt comes due.")

        revised = quick_revision(plan, book_tracker.get_threads_needing_attention(), [])

        assert revised.beats == []


class TestHistory:
    """Tests for RevisionHistory and summaries."""

    @pytest.mark.asyncio
    async def test_history_and_current_plan(self, book_tracker):
        """Test the latest revision wins and the history survives JSON."""
        record = make_record(4)
        client = mock_llm(book_response(revisedSummary="First pass"), book_response(revisedSummary="Second pass"))
        planner = RevisionPlanner(client)
        context = planner.build_context(book_tracker, record, 20)
        history = RevisionHistory(story_id="story-1")

        history.add(await planner.revise(chapter(5, "Original"), context))
        history.add(await planner.revise(chapter(5, "Original"), context))

        originals = [ChapterPlan(chapter_number=5, summary="Original"), ChapterPlan(chapter_number=6, summary="Six")]
        assert history.total_revisions == 2
        assert history.units_revised == [5]
        assert history.current_plan(originals, 5).summary == "Second pass"
        assert history.current_plan(originals, 6).summary == "Six"
        assert history.current_plan(originals, 9) is None

        restored = RevisionHistory.from_dict(json.loads(json.dumps(history.to_dict())))
        assert restored.current_plan(originals, 5).summary == "Second pass"
        assert restored.to_dict() == history.to_dict()

    @pytest.mark.asyncio
    async def test_summarize_revisions(self, book_tracker):
        """Test the human-readable summary."""
        assert summarize_revisions([]) == "No revisions made."

        planner = RevisionPlanner(mock_llm(book_response(confidenceScore=0.85)))
        revision = await planner.revise(chapter(5), planner.build_context(book_tracker, make_record(4), 20))

        summary = summarize_revisions([revision])

        assert summary.startswith("Revised 1 chapter(s):\n\nChapter 5:\n")
        assert "    - Integrates the smuggler's debt\n" in summary
        assert "    + redemption\n" in summary
        assert "    * The smuggler's debt\n" in summary
        assert "  Confidence: 85%" in summary
