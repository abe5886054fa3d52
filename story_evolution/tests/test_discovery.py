"""
Unit tests for the discovery tracker.

Tests cover:
- Theme tracking and monotonic promotion
- Character discoveries and plot threads
- Running elements, connections and tone
- Format extension dispatch
- Serialization round-trip
"""

import json

import pytest

from story_evolution.config.settings import EvolutionSettings
from story_evolution.core.discovery import DiscoveryState, DiscoveryTracker
from story_evolution.core.exceptions import FormatMismatchError
from story_evolution.core.matching import TokenOverlapMatcher
from story_evolution.models import (
    ComicInsights,
    ThemeStrength,
    ThreadPriority,
    ThreadStatus,
)
from story_evolution.tests.conftest import make_record


class TestThemes:
    """Tests for emergent theme tracking."""

    def test_redemption_across_five_chapters(self, book_tracker):
        """Test promotion to developing at the 3rd occurrence and prominent at the 5th."""
        strengths = []
        for unit in range(1, 6):
            book_tracker.process_unit(make_record(unit, emergentThemes=["redemption"]))
            strengths.append(book_tracker.state.themes[0].strength)

        assert strengths == [
            ThemeStrength.SUBTLE,
            ThemeStrength.SUBTLE,
            ThemeStrength.DEVELOPING,
            ThemeStrength.DEVELOPING,
            ThemeStrength.PROMINENT,
        ]
        assert len(book_tracker.state.themes) == 1

    def test_strength_never_decreases(self, book_tracker):
        """Test a central theme stays central when reinforced."""
        book_tracker.process_unit(make_record(1, emergentThemes=["loyalty"]))
        book_tracker.state.themes[0].strength = ThemeStrength.CENTRAL

        book_tracker.process_unit(make_record(2, emergentThemes=["loyalty"]))

        assert book_tracker.state.themes[0].strength == ThemeStrength.CENTRAL

    def test_new_and_reinforced_lines(self, book_tracker):
        """Test report lines and fuzzy matching of theme names."""
        first = book_tracker.process_unit(make_record(1, emergentThemes=["Redemption"]))
        second = book_tracker.process_unit(make_record(2, emergentThemes=["the cost of redemption"]))

        assert 'New theme emerged: "Redemption"' in first.new_discoveries
        assert 'Theme reinforced: "the cost of redemption"' in second.reinforced_elements
        assert book_tracker.state.themes[0].id == "theme-1"

    def test_planned_theme(self, book_tracker):
        """Test provenance against the original outline."""
        book_tracker.process_unit(make_record(1, emergentThemes=["storm", "forgiveness", "  "]))

        planned = {t.name: t.was_planned for t in book_tracker.state.themes}
        assert planned == {"storm": True, "forgiveness": False}
        assert [t.name for t in book_tracker.get_unplanned_discoveries()["themes"]] == ["forgiveness"]


class TestCharacterDiscoveries:
    """Tests for discoveries from character-choice surprises."""

    def test_character_choice(self, book_tracker):
        """Test name, type and integration suggestion."""
        report = book_tracker.process_unit(make_record(2, surprises=[
            {"deviationType": "character_choice", "actuallyHappened": "Jonah wants to leave the island"},
            {"deviationType": "plot_twist", "actuallyHappened": "The ferry sinks"},
        ]))

        discoveries = book_tracker.state.character_discoveries
        assert len(discoveries) == 1
        assert discoveries[0].character_name == "Jonah"
        assert discoveries[0].discovery_type == "motivation"
        assert discoveries[0].should_integrate
        assert "Integrate Jonah's motivation into future chapters" in report.suggested_integrations

    def test_blank_surprise_ignored(self, book_tracker):
        """Test that a surprise without text yields no discovery."""
        book_tracker.process_unit(make_record(2, surprises=[{"deviationType": "character_choice"}]))
        assert book_tracker.state.character_discoveries == []


class TestPlotThreads:
    """Tests for plot thread lifecycle."""

    def test_new_thread_priority_and_suggestion(self, book_tracker):
        """Test an unplanned immediate thread becomes a main thread."""
        report = book_tracker.process_unit(make_record(1, threads=[
            {"type": "unresolved", "description": "Who sent the letter to the lighthouse", "urgency": "immediate"}
        ]))

        thread = book_tracker.state.plot_threads[0]
        assert thread.id == "thread-1"
        assert thread.priority == ThreadPriority.MAIN
        assert thread.status == ThreadStatus.ACTIVE
        assert "Emergent plot thread: Who sent the letter to the lighthouse" in report.new_discoveries
        assert 'Address "Who sent the letter to the lighthouse" in upcoming chapters' in report.suggested_integrations

    def test_status_moves_forward(self, book_tracker):
        """Test active -> ready_to_resolve -> resolved through matching mentions."""
        book_tracker.process_unit(make_record(1, threads=[
            {"type": "setup", "description": "Who sent the letter to the lighthouse", "urgency": "low"}
        ]))
        book_tracker.process_unit(make_record(2, threads=[
            {"type": "unresolved", "description": "Who sent the letter to the lighthouse keeper?", "urgency": "high"}
        ]))
        assert book_tracker.state.plot_threads[0].status == ThreadStatus.READY_TO_RESOLVE
        assert book_tracker.state.plot_threads[0].last_mentioned == 2

        book_tracker.process_unit(make_record(3, threads=[
            {"type": "callback", "description": "Who sent the letter to the lighthouse is revealed"}
        ]))

        assert len(book_tracker.state.plot_threads) == 1
        assert book_tracker.state.plot_threads[0].status == ThreadStatus.RESOLVED

    def test_new_callback_is_resolved(self, book_tracker):
        """Test a callback thread is resolved on first sight."""
        book_tracker.process_unit(make_record(1, threads=[{"type": "callback", "description": "The old song"}]))
        assert book_tracker.state.plot_threads[0].status == ThreadStatus.RESOLVED

    def test_callback_resolves_abandoned_thread(self, book_tracker):
        """Test a callback resolves a thread regardless of prior status."""
        book_tracker.process_unit(make_record(1, threads=[{"type": "setup", "description": "The missing key"}]))
        assert book_tracker.abandon_thread("thread-1")

        book_tracker.process_unit(make_record(2, threads=[{"type": "callback", "description": "The missing key"}]))

        assert book_tracker.state.plot_threads[0].status == ThreadStatus.RESOLVED

    def test_cliffhanger_ready(self, book_tracker):
        """Test a new cliffhanger is ready to resolve."""
        book_tracker.process_unit(make_record(1, threads=[{"type": "cliffhanger", "description": "The door bursts open"}]))
        assert book_tracker.state.plot_threads[0].status == ThreadStatus.READY_TO_RESOLVE

    def test_planned_thread_not_reported(self, book_tracker):
        """Test a thread from the outline is not an emergent discovery."""
        report = book_tracker.process_unit(make_record(1, threads=[
            {"type": "setup", "description": "The storm destroys the harbor", "urgency": "high"}
        ]))

        assert book_tracker.state.plot_threads[0].was_planned
        assert not any(line.startswith("Emergent plot thread") for line in report.new_discoveries)

    def test_attention_order_and_stale(self, book_tracker):
        """Test open threads sorted by priority and staleness by last mention."""
        book_tracker.process_unit(make_record(1, threads=[
            {"type": "setup", "description": "A minor rumor", "urgency": "low"},
            {"type": "setup", "description": "The smuggler's debt", "urgency": "immediate"},
        ]))

        attention = book_tracker.get_threads_needing_attention()
        assert [t.description for t in attention] == ["The smuggler's debt", "A minor rumor"]
        assert book_tracker.get_stale_threads(3) == []
        assert len(book_tracker.get_stale_threads(4)) == 2

    def test_abandon_closed_or_unknown(self, book_tracker):
        """Test abandon refuses closed and unknown threads."""
        book_tracker.process_unit(make_record(1, threads=[{"type": "callback", "description": "The old song"}]))

        assert not book_tracker.abandon_thread("thread-1")
        assert not book_tracker.abandon_thread("thread-99")


class TestRunningElementsConnectionsTone:
    """Tests for steps 4-6 of unit processing."""

    def test_running_element(self, book_tracker):
        """Test callbacks become running elements that recur in summaries."""
        book_tracker.process_unit(make_record(1, threads=[
            {"type": "callback", "description": "The broken compass points north again"}
        ]))
        book_tracker.process_unit(make_record(2, oneLineSummary="Mara throws the broken compass into the sea"))

        element = book_tracker.state.running_elements[0]
        assert element.id == "element-1"
        assert element.name == "The broken compass"
        assert element.occurrences == [1, 2]

    def test_connections(self, book_tracker):
        """Test parallel and contrast connections between relationship changes."""
        book_tracker.process_unit(make_record(1, relationships=[
            {"character1": "Mara", "character2": "Jonah", "change": "worsened"},
            {"character1": "Mara", "character2": "Ilse", "change": "worsened"},
            {"character1": "Jonah", "character2": "Ilse", "change": "improved"},
        ]))

        kinds = [c.connection_type for c in book_tracker.state.connections]
        assert kinds.count("parallel") == 1
        assert kinds.count("contrast") == 2
        parallel = next(c for c in book_tracker.state.connections if c.connection_type == "parallel")
        assert parallel.description == "Both relationships worsened in the same chapter"

    def test_tone_shift(self, book_tracker):
        """Test tone classification and shift recording."""
        book_tracker.process_unit(make_record(1, emotionalArc="Rising suspense at the docks"))
        book_tracker.process_unit(make_record(2, emotionalArc="Hope returns", oneLineSummary="Jonah comes home"))

        timeline = book_tracker.state.tone_evolution
        assert [t.primary_tone for t in timeline] == ["tense", "hopeful"]
        assert timeline[0].shift is None
        assert timeline[1].shift.from_tone == "tense"
        assert timeline[1].shift.trigger == "Jonah comes home"


class TestFormats:
    """Tests for format enforcement and extension dispatch."""

    def test_wrong_record_format(self, book_tracker):
        """Test a comic record is rejected by a book tracker."""
        with pytest.raises(FormatMismatchError):
            book_tracker.process_unit(make_record(1, "comic"))

    def test_wrong_state_format(self):
        """Test a tracker refuses state of another format."""
        state = DiscoveryState.from_dict({"story_id": "s", "format": "comic"})
        with pytest.raises(ValueError):
            DiscoveryTracker("s", "", "book", state=state)

    def test_comic_labels_and_insights(self, comic_tracker):
        """Test comic suggestions speak of pages and carry comic insights."""
        report = comic_tracker.process_unit(make_record(1, "comic", threads=[
            {"type": "setup", "description": "The vault code", "urgency": "high"}
        ]))

        assert 'Address "The vault code" in upcoming pages' in report.suggested_integrations
        assert isinstance(report.insights, ComicInsights)

    def test_configurable_matcher(self):
        """Test the matcher comes from settings."""
        tracker = DiscoveryTracker("s", "", "book", settings=EvolutionSettings(matcher="token_overlap"))
        assert isinstance(tracker.matcher, TokenOverlapMatcher)
        assert tracker.thread_matcher is tracker.matcher


class TestSerialization:
    """Tests for state round-trip."""

    def test_round_trip_behaves_identically(self, book_tracker):
        """Test a restored tracker continues exactly like the original."""
        book_tracker.process_unit(make_record(
            1,
            emergentThemes=["redemption"],
            threads=[{"type": "setup", "description": "The smuggler's debt", "urgency": "high"}],
            payload={"proseElements": {"symbolism": ["lighthouse"], "foreshadowing": ["A knock at night"]}},
        ))
        book_tracker.process_unit(make_record(2, emergentThemes=["redemption"], emotionalArc="grief"))

        saved = json.loads(json.dumps(book_tracker.to_dict()))
        restored = DiscoveryTracker.from_dict(saved, book_tracker.original_outline)

        third = make_record(
            3,
            emergentThemes=["redemption", "trust"],
            threads=[{"type": "callback", "description": "A knock at night"}],
        )
        original_report = book_tracker.process_unit(third)
        restored_report = restored.process_unit(third)

        assert restored_report == original_report
        assert restored.to_dict() == book_tracker.to_dict()
        assert restored.state.themes[1].id == "theme-2"


class TestSummary:
    """Tests for the prompt summary."""

    def test_summary_sections(self, book_tracker):
        """Test strong themes and threads appear in the summary."""
        book_tracker.process_unit(make_record(1, emergentThemes=["redemption"], threads=[
            {"type": "setup", "description": "The smuggler's debt", "urgency": "immediate"}
        ]))
        for unit in (2, 3):
            book_tracker.process_unit(make_record(unit, emergentThemes=["redemption"]))
        summary = book_tracker.generate_discovery_summary()

        assert summary.startswith("=== STORY EVOLUTION SUMMARY ===")
        assert '- "redemption" (developing, appeared 3 times)' in summary
        assert "- [MAIN] The smuggler's debt (active)" in summary
        assert "EMERGENT PLOT THREADS:" in summary
