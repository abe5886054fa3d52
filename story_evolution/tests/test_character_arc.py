"""
Unit tests for the character arc tracker.

Tests cover:
- Stage progression (one forward step per update)
- Symmetric, clamped relationship trust
- Decisions and pattern of choice
- Format-specific profile updaters
- Stuck arcs, summaries and serialization
"""

import json

import pytest

from story_evolution.core.character_arc import (
    CharacterArcTracker,
    arc_completion,
    location_from_slugline,
)
from story_evolution.core.classifiers import Classifiers
from story_evolution.core.exceptions import FormatMismatchError
from story_evolution.models import (
    ARC_STAGE_ORDER,
    ArcRole,
    ArcStage,
    ExtractedCharacter,
    ExtractedRelationship,
)


def character(name, emotion="", **fields):
    return ExtractedCharacter(name=name, emotional_state=emotion, **fields)


def relationship(first, second, change, description=""):
    return ExtractedRelationship(character1=first, character2=second, change=change, description=description)


class TestStageProgression:
    """Tests for arc stage transitions."""

    def test_rising_with_decision_reaches_crisis(self, book_arcs):
        """Test a rising protagonist who decides under extreme emotion enters crisis."""
        arc = book_arcs.get_arc("Mara")
        arc.current_stage = ArcStage.RISING

        updates = book_arcs.update_from_unit(
            [character("Mara", "terrified")],
            [],
            7,
            decisions=[{"character": "Mara", "decision": "Sacrifice the boat to save Jonah"}],
        )

        assert updates[0].new_stage == ArcStage.CRISIS
        assert "Arc progressed to: crisis" in updates[0].changes
        assert arc.stage_since == 7
        assert arc.arc_completion_percent == 50
        assert arc.milestones[-1].trigger_event == "Key decision required"

    def test_one_step_per_update(self, book_arcs):
        """Test the stage walks setup -> conflict -> rising -> crisis one unit at a time."""
        emotions = ["worried", "angry", "terrified", "devastated"]
        stages = []
        for unit, emotion in enumerate(emotions, start=1):
            decisions = [{"character": "Mara", "decision": "Confront the smuggler"}] if unit == 4 else None
            book_arcs.update_from_unit([character("Mara", emotion)], [], unit, decisions=decisions)
            stages.append(book_arcs.get_arc("Mara").current_stage)

        assert stages == [ArcStage.SETUP, ArcStage.CONFLICT, ArcStage.RISING, ArcStage.CRISIS]
        indexes = [s.index for s in stages]
        assert indexes == sorted(indexes)

    def test_no_decision_stays_rising(self, book_arcs):
        """Test rising does not advance without a decision in the unit."""
        arc = book_arcs.get_arc("Mara")
        arc.current_stage = ArcStage.RISING

        book_arcs.update_from_unit([character("Mara", "furious")], [], 5)

        assert arc.current_stage == ArcStage.RISING

    def test_completion_percent(self):
        """Test completion is the stage position over the whole order."""
        assert arc_completion(ArcStage.SETUP) == 0
        assert arc_completion(ArcStage.CRISIS) == 50
        assert arc_completion(ARC_STAGE_ORDER[-1]) == 100


class TestCharacterUpdates:
    """Tests for emotional, knowledge and physical deltas."""

    def test_emotion_knowledge_and_wound(self, book_arcs):
        """Test the update records emotion, major knowledge and one ongoing wound."""
        updates = book_arcs.update_from_unit(
            [character(
                "Mara",
                "scared",
                newKnowledge=["Mara discovered the map is forged"],
                physicalState="Sprained ankle",
            )],
            [],
            2,
        )
        book_arcs.update_from_unit([character("Mara", "scared", physicalState="Bruised arm")], [], 3)

        arc = book_arcs.get_arc("Mara")
        assert "Emotional shift: neutral -> scared" in updates[0].changes
        assert arc.current_emotional_state.intensity.value == "high"
        assert arc.knowledge[0].significance.value == "major"
        assert len(arc.wounds_and_growth) == 1
        assert "cannot run" in arc.wounds_and_growth[0].affects_capabilities
        assert "Key knowledge: Mara discovered the map is forged." in arc.character_growth_summary

    def test_unknown_emotion_ignored(self, book_arcs):
        """Test an unknown emotional state leaves the history alone."""
        book_arcs.update_from_unit([character("Mara", "unknown")], [], 1)
        assert book_arcs.get_arc("Mara").emotional_history == []

    def test_lazy_initialization_uses_extracted_role(self, book_arcs):
        """Test a character seen for the first time gets an arc with an inferred role."""
        book_arcs.update_from_unit([character("Jonah", "happy", role="ally")], [], 1)

        arc = book_arcs.get_arc("jonah")
        assert arc is not None
        assert arc.role == ArcRole.SUPPORTING

    def test_failure_isolated_to_one_character(self):
        """Test a failing update reports an error and the next character still updates."""

        def broken(text):
            if "furious" in text:
                return "off-the-scale"
            return "medium"

        tracker = CharacterArcTracker("story-1", "book", classifiers=Classifiers(intensity=broken))
        updates = tracker.update_from_unit([character("Ilse", "furious"), character("Mara", "calm")], [], 1)

        assert updates[0].error
        assert updates[0].character_name == "Ilse"
        assert updates[1].error is None
        assert tracker.get_arc("Mara").current_emotional_state.primary_emotion == "calm"


class TestRelationships:
    """Tests for relationship trust."""

    def test_worsened_twice_is_symmetric(self, book_arcs):
        """Test both sides move together and missing characters are created."""
        for unit in (1, 2):
            book_arcs.update_from_unit([], [relationship("Mara", "Jonah", "worsened", "They argue")], unit)

        mara_side = book_arcs.get_arc("Mara").relationships["Jonah"]
        jonah_side = book_arcs.get_arc("Jonah").relationships["Mara"]
        assert mara_side.trust_level == -4
        assert jonah_side.trust_level == -4
        assert mara_side.last_interaction == 2
        assert mara_side.history_highlights[-1] == "Chapter 2: They argue"

    def test_trust_is_clamped(self, book_arcs):
        """Test trust never exceeds 10."""
        for unit in range(1, 8):
            book_arcs.update_from_unit([], [relationship("Mara", "Ilse", "improved")], unit)

        assert book_arcs.get_arc("Ilse").relationships["Mara"].trust_level == 10

    def test_complicated_status_and_summary(self, book_arcs):
        """Test a complicated change flags the status and the summary reads it back."""
        book_arcs.update_from_unit([], [relationship("Mara", "Jonah", "complicated", "Secrets surface")], 3)

        summary = book_arcs.get_relationship_summary("Mara", "Jonah")
        assert summary.startswith("Mara and Jonah: complicated (trust: 0/10)")
        assert book_arcs.get_relationship_summary("Mara", "Nobody") is None


class TestDecisions:
    """Tests for key decisions."""

    def test_pattern_needs_two_decisions(self, book_arcs):
        """Test the pattern of choice is set from the most common trait."""
        first = book_arcs.record_decision("Mara", "Save Jonah from the tide", [], [], 2)
        assert first.reveals_about_character == "Prioritizes others over self"
        assert book_arcs.get_arc("Mara").pattern_of_choice == "Not yet established"

        book_arcs.record_decision("Mara", "Protect the crew", ["Flee"], ["Loses the boat"], 3)
        assert book_arcs.get_arc("Mara").pattern_of_choice == "Prioritizes others over self"

    def test_decisions_without_text_skipped(self, book_arcs):
        """Test incomplete decision mappings are ignored."""
        book_arcs.update_from_unit([], [], 1, decisions=[{"character": "Mara"}, {"decision": "Run"}])
        assert book_arcs.get_arc("Mara").key_decisions == []


class TestFormatProfiles:
    """Tests for the format-specific updaters."""

    def test_updater_for_other_format_rejected(self, book_arcs):
        """Test a comic updater on a book tracker fails."""
        with pytest.raises(FormatMismatchError):
            book_arcs.update_comic_visuals("Mara", 1, [1, 2])

    def test_comic_visuals(self):
        """Test panel counts and costume changes."""
        tracker = CharacterArcTracker("comic-1", "comic")
        tracker.initialize("Vex", "protagonist", "Tall thief in a red coat")

        tracker.update_comic_visuals("Vex", 1, [1, 2, 3], expression="smirk", costume="Red coat", has_close_up=True)
        visuals = tracker.update_comic_visuals("Vex", 2, [4], expression="smirk", costume="Black suit")

        assert visuals.panel_appearances == 4
        assert visuals.expression_range == ["smirk"]
        assert visuals.costume == "Black suit"
        assert [c.unit for c in visuals.costume_changes][-1] == 2
        assert visuals.close_up_count == 1
        sheet = tracker.generate_comic_character_sheet("Vex")
        assert sheet.startswith("=== VEX - CHARACTER VISUAL SHEET ===")
        assert "Total Panel Appearances: 4" in sheet

    def test_screenplay_ratios_and_catch_phrase(self):
        """Test rolling ratios, slugline locations and repeated lines."""
        tracker = CharacterArcTracker("script-1", "screenplay")
        tracker.initialize("Dana", "protagonist")

        tracker.update_screenplay_profile(
            "Dana", 1, "INT. HARBOR OFFICE - NIGHT", role="primary", has_dialogue=True,
            estimated_pages=2.5, other_characters=["Reese"], dialogue_sample="Not tonight.",
        )
        profile = tracker.update_screenplay_profile(
            "Dana", 2, "EXT. PIER - DAY", has_dialogue=False,
            estimated_pages=1.0, other_characters=["Reese"], dialogue_sample="Not tonight.",
        )

        assert profile.dialogue_ratio == pytest.approx(0.5)
        assert profile.silence_ratio == pytest.approx(0.5)
        assert profile.major_scenes == 1
        assert profile.estimated_screen_time == pytest.approx(3.5)
        assert profile.catch_phrases == ["Not tonight."]
        assert profile.character_pairings[0].count == 2
        assert {loc.name for loc in profile.location_associations} == {"HARBOR OFFICE", "PIER"}

        breakdown = tracker.generate_screenplay_character_breakdown("Dana")
        assert 'CATCHPHRASES: "Not tonight."' in breakdown
        assert "TOTAL SCENES: 2 (1 major)" in breakdown

    def test_slugline_location(self):
        """Test location parsing from sluglines."""
        assert location_from_slugline("INT. WAREHOUSE - NIGHT") == "WAREHOUSE"
        assert location_from_slugline("EXT. ROOFTOP") == "ROOFTOP"
        assert location_from_slugline("Somewhere") is None

    def test_book_prose(self, book_arcs):
        """Test POV chapters are recorded once."""
        book_arcs.update_book_prose("Mara", 1, is_pov_character=True, sensory_details=["salt"])
        prose = book_arcs.update_book_prose("Mara", 1, is_pov_character=True, sensory_details=["salt", "smoke"])

        assert prose.pov_chapters == [1]
        assert prose.sensory_focus == ["salt", "smoke"]

    def test_book_prose_notes(self, book_arcs):
        """Test prose notes list what the reader knows and wonders."""
        book_arcs.update_book_prose("Mara", 2, reader_learned=["She fears the sea"], reader_wonders=["Who sent the letter?"])

        notes = book_arcs.generate_book_prose_notes("Mara")

        assert notes.startswith("=== MARA - PROSE NOTES ===")
        assert "READER KNOWS:\n  - She fears the sea\n" in notes
        assert "READER WONDERS:\n  - Who sent the letter?\n" in notes
        assert book_arcs.generate_book_prose_notes("Nobody") == "Nobody: No prose data available."


class TestStuckArcs:
    """Tests for arcs parked on a stage without a rule."""

    def test_crisis_reported(self, book_arcs):
        """Test a character in crisis is stuck and counts units in stage."""
        arc = book_arcs.get_arc("Mara")
        arc.current_stage = ArcStage.CRISIS
        arc.stage_since = 4
        book_arcs.initialize("Jonah", "supporting")

        stuck = book_arcs.stuck_arcs(7)

        assert stuck == [{"character_name": "Mara", "stage": "crisis", "units_in_stage": 3}]


class TestSummariesAndState:
    """Tests for summaries and serialization."""

    def test_generate_summary_layout(self, book_arcs):
        """Test the header and the standard lines."""
        book_arcs.update_from_unit([character("Mara", "worried")], [], 1)

        summary = book_arcs.generate_summary("Mara")
        lines = summary.splitlines()
        assert lines[0] == "=== MARA - ARC STATUS ==="
        assert lines[1] == "Role: protagonist"
        assert lines[2] == "Arc Stage: setup (0% complete)"
        assert lines[3] == "Current Emotional State: worried (high)"
        assert "Predicted Next Step: Will face initial challenge or disruption" in summary
        assert book_arcs.generate_summary("Ghost") == "Ghost: No arc data available."

    def test_all_characters_summary_skips_minor(self, book_arcs):
        """Test minor characters are left out of the combined summary."""
        book_arcs.initialize("Ferryman", "minor")
        book_arcs.initialize("Ilse", "antagonist")

        summary = book_arcs.generate_all_characters_summary()

        assert "=== MARA - ARC STATUS ===" in summary
        assert "=== ILSE - ARC STATUS ===" in summary
        assert "FERRYMAN" not in summary

    def test_round_trip(self, book_arcs):
        """Test state survives JSON and case-insensitive lookups keep working."""
        book_arcs.update_from_unit(
            [character("Mara", "angry")],
            [relationship("Mara", "Jonah", "worsened")],
            2,
            decisions=[{"character": "Mara", "decision": "Confront Jonah"}],
        )

        saved = json.loads(json.dumps(book_arcs.to_dict()))
        restored = CharacterArcTracker.from_dict(saved)

        assert restored.to_dict() == book_arcs.to_dict()
        assert restored.get_protagonist_arc().character_name == "Mara"
        assert restored.get_arc("MARA").relationships["jonah"].trust_level == -2

    def test_state_for_other_format_rejected(self, book_arcs):
        """Test a tracker refuses state of another format."""
        with pytest.raises(ValueError):
            CharacterArcTracker("story-1", "comic", state=book_arcs.get_state())
