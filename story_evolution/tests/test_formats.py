"""
Unit tests for the format strategies.

Tests cover:
- Strategy selection
- Comic hooks, visual pacing and visual consistency
- Book symbols, foreshadowing and chapter endings
- Screenplay dialogue balance
- Plan coercion and revision merging
- Degraded regex extraction
"""

import pytest

from story_evolution.core.exceptions import FormatMismatchError
from story_evolution.formats import (
    FormatContext,
    get_strategy,
    hook_effectiveness,
    is_conflicting_detail,
)
from story_evolution.models import (
    ChapterPlan,
    ComicPagePlan,
    ContentFormat,
    Effectiveness,
)
from story_evolution.tests.conftest import make_record


class TestGetStrategy:
    """Tests for strategy selection."""

    def test_known_formats(self):
        """Test each format maps to its unit label."""
        assert get_strategy("book").unit_label == "Chapter"
        assert get_strategy(ContentFormat.COMIC).unit_label == "Page"
        assert get_strategy("screenplay").unit_label == "Sequence"

    def test_unknown_format(self):
        """Test that unsupported formats are rejected."""
        with pytest.raises(ValueError):
            get_strategy("novella")

    def test_check_record_mismatch(self):
        """Test that a record of another format is rejected."""
        with pytest.raises(FormatMismatchError):
            get_strategy("book").check_record(make_record(1, "comic"))


class TestComicHelpers:
    """Tests for comic helper functions."""

    def test_hook_effectiveness(self):
        """Test that hooks land while fresh and wear out with overuse."""
        assert hook_effectiveness(1) == Effectiveness.MODERATE
        assert hook_effectiveness(2) == Effectiveness.STRONG
        assert hook_effectiveness(3) == Effectiveness.STRONG
        assert hook_effectiveness(4) == Effectiveness.WEAK

    def test_conflicting_detail(self):
        """Test colour conflicts on the same attribute."""
        assert is_conflicting_detail("red hair", "black hair")
        assert not is_conflicting_detail("red hair", "red hair")
        assert not is_conflicting_detail("red hair", "black coat")
        assert not is_conflicting_detail("scar on cheek", "black hair")


class TestComicStrategy:
    """Tests for comic ledger updates and revision scoring."""

    def setup_method(self):
        self.strategy = get_strategy("comic")
        self.ledger = self.strategy.new_ledger()
        self.ctx = FormatContext()

    def test_dialogue_heavy_pages(self):
        """Test that more than 70% dialogue pages is flagged and scored."""
        record = make_record(1, "comic", payload={"pages": [
            {"pageNumber": 1, "visualFlow": "dialogue"},
            {"pageNumber": 2, "visualFlow": "dialogue"},
            {"pageNumber": 3, "visualFlow": "dialogue"},
            {"pageNumber": 4, "visualFlow": "action"},
        ]})

        delta = self.strategy.update_state(self.ledger, record, self.ctx)
        reasons, boost = self.strategy.score_revision_reasons(record, self.ledger, self.ctx.settings)

        assert self.ledger.visual_pacing.dialogue_pages_percent == pytest.approx(75.0)
        assert any("dialogue is over 70%" in s for s in delta.suggestions)
        assert "Visual pacing is dialogue-heavy - upcoming pages need more visual action" in reasons
        assert boost >= 1

    def test_hook_patterns(self):
        """Test that a repeated hook type is reinforced and becomes strong."""
        first = make_record(1, "comic", payload={"pages": [{"pageNumber": 1, "pageHook": "Who is at the door?"}]})
        second = make_record(2, "comic", payload={"pages": [{"pageNumber": 2, "pageHook": "What did she see?"}]})

        new_delta = self.strategy.update_state(self.ledger, first, self.ctx)
        again_delta = self.strategy.update_state(self.ledger, second, self.ctx)

        assert new_delta.new == ["New page hook pattern: question"]
        assert again_delta.reinforced == ['Page hook pattern "question" used again']
        assert self.ledger.page_hook_patterns[0].effectiveness == Effectiveness.STRONG
        assert self.strategy.insights(self.ledger).effective_hooks == ["question"]

    def test_visual_inconsistency(self):
        """Test that a changed hair colour is recorded and scored."""
        first = make_record(1, "comic", payload={"visualConsistency": {
            "characterAppearances": [{"name": "Mara", "visualDetails": ["red hair"], "lastSeenPage": 1}]
        }})
        second = make_record(2, "comic", payload={"visualConsistency": {
            "characterAppearances": [{"name": "MARA", "visualDetails": ["black hair"], "lastSeenPage": 2}]
        }})

        self.strategy.update_state(self.ledger, first, self.ctx)
        self.strategy.update_state(self.ledger, second, self.ctx)
        reasons, boost = self.strategy.score_revision_reasons(second, self.ledger, self.ctx.settings)

        profile = self.ledger.character_visuals[0]
        assert profile.inconsistencies[0].detail == "red hair vs black hair"
        assert profile.inconsistencies[0].pages == [1, 2]
        assert boost >= 2
        assert any("visual consistency" in r for r in reasons)

    def test_motif_recurs(self):
        """Test that a motif seen twice should recur."""
        for unit in (1, 2):
            record = make_record(unit, "comic", payload={"visualConsistency": {"visualMotifs": ["broken compass"]}})
            self.strategy.update_state(self.ledger, record, self.ctx)

        motif = self.ledger.visual_motifs[0]
        assert motif.id == "motif-1"
        assert len(motif.occurrences) == 2
        assert motif.should_recur


class TestBookStrategy:
    """Tests for book ledger updates and revision scoring."""

    def setup_method(self):
        self.strategy = get_strategy("book")
        self.ledger = self.strategy.new_ledger()
        self.ctx = FormatContext()

    def test_callback_pays_off_foreshadowing(self):
        """Test that a callback thread resolves a matching setup."""
        setup = make_record(1, "book", payload={"proseElements": {"foreshadowing": ["The locked drawer"]}})
        payoff = make_record(2, "book", threads=[
            {"type": "callback", "description": "The locked drawer finally opens"}
        ])

        self.strategy.update_state(self.ledger, setup, self.ctx)
        delta = self.strategy.update_state(self.ledger, payoff, self.ctx)

        assert self.ledger.foreshadowing_setups[0].resolved
        assert delta.reinforced == ["Foreshadowing paid off: The locked drawer"]

    def test_due_foreshadowing_scored(self):
        """Test that setups past the payoff window add a reason."""
        setup = make_record(1, "book", payload={
            "proseElements": {"foreshadowing": ["A stranger watches the pier"]},
            "chapterPacing": {"cliffhangerStrength": "strong"},
        })
        self.strategy.update_state(self.ledger, setup, self.ctx)

        later = make_record(4, "book")
        reasons, boost = self.strategy.score_revision_reasons(later, self.ledger, self.ctx.settings)

        assert "1 foreshadowing setup(s) need payoff soon" in reasons
        assert boost == 2

    def test_symbol_recurrence(self):
        """Test that a repeated symbol should be developed."""
        for unit in (1, 2):
            record = make_record(unit, "book", payload={"proseElements": {"symbolism": ["the lighthouse"]}})
            self.strategy.update_state(self.ledger, record, self.ctx)

        assert self.strategy.insights(self.ledger).symbols_to_develop == ["the lighthouse"]

    def test_weak_endings(self):
        """Test that two hookless endings are scored."""
        for unit in (1, 2):
            record = make_record(unit, "book", payload={"chapterPacing": {"cliffhangerStrength": "mild"}})
            self.strategy.update_state(self.ledger, record, self.ctx)

        reasons, _ = self.strategy.score_revision_reasons(make_record(2, "book"), self.ledger, self.ctx.settings)
        assert "Recent chapter endings lack impact - strengthen hooks" in reasons

    def test_missing_ending_not_logged(self):
        """Test that chapters without a reported ending strength leave the ending history alone."""
        for unit in (1, 2):
            record = make_record(unit, "book", payload={"proseElements": {"narrativeVoice": "first_person"}})
            self.strategy.update_state(self.ledger, record, self.ctx)

        reasons, _ = self.strategy.score_revision_reasons(make_record(2, "book"), self.ledger, self.ctx.settings)
        assert self.ledger.recent_endings == []
        assert self.ledger.chapter_ending_patterns == []
        assert "Recent chapter endings lack impact - strengthen hooks" not in reasons

    def test_missing_voice_not_drift(self):
        """Test that a chapter without a reported voice does not count as a point-of-view shift."""
        self.strategy.update_state(self.ledger, make_record(1, "book"), self.ctx)
        record = make_record(2, "book", payload={"proseElements": {"narrativeVoice": "first_person"}})
        delta = self.strategy.update_state(self.ledger, record, self.ctx)

        voices = [p for p in self.ledger.prose_patterns if p.type == "narrative_voice"]
        assert [p.description for p in voices] == ["first_person"]
        assert self.ledger.narrative_voice_consistency == "consistent"
        assert not any("Narrative voice shifted" in s for s in delta.suggestions)


class TestScreenplayStrategy:
    """Tests for screenplay ledger updates."""

    def setup_method(self):
        self.strategy = get_strategy("screenplay")
        self.ledger = self.strategy.new_ledger()
        self.ctx = FormatContext()

    def test_rolling_dialogue_ratio(self):
        """Test that a dialogue-heavy script is flagged once the rolling ratio passes 0.7."""
        for unit in (1, 2):
            record = make_record(unit, "screenplay", payload={"sequencePacing": {"dialogueToActionRatio": 0.9}})
            self.strategy.update_state(self.ledger, record, self.ctx)

        assert self.ledger.dialogue_to_action_ratio == pytest.approx(0.8)
        reasons, boost = self.strategy.score_revision_reasons(make_record(2, "screenplay"), self.ledger, self.ctx.settings)
        assert "Script is too dialogue-heavy - need more visual action" in reasons
        assert boost >= 2

    def test_location_reuse(self):
        """Test that scenes at one location accumulate usage."""
        record = make_record(1, "screenplay", payload={"scenes": [
            {"sceneNumber": 1, "slugline": "INT. HARBOR OFFICE - NIGHT", "location": "Harbor Office"},
            {"sceneNumber": 2, "slugline": "INT. HARBOR OFFICE - DAY", "location": "harbor office", "purpose": "conflict"},
        ]})
        self.strategy.update_state(self.ledger, record, self.ctx)

        assert len(self.ledger.location_usage) == 1
        assert self.ledger.location_usage[0].scene_count == 2


class TestPlans:
    """Tests for plan coercion and merging."""

    def test_coerce_dict(self):
        """Test that a plain dict becomes the format's plan model."""
        plan = get_strategy("comic").coerce_plan({"pageNumber": 7, "pageHook": "A shadow"})
        assert isinstance(plan, ComicPagePlan)
        assert plan.unit_number == 7

    def test_coerce_wrong_model(self):
        """Test that a plan model of another format is rejected."""
        with pytest.raises(FormatMismatchError):
            get_strategy("book").coerce_plan(ComicPagePlan(page_number=1))

    def test_merge_empty_response_keeps_plan(self):
        """Test that an empty response leaves every field unchanged."""
        plan = ChapterPlan(chapter_number=5, title="Flood", summary="The river rises", beats=["a", "b"])
        revised, extras = get_strategy("book").merge_revision(plan, {})

        assert revised == plan
        assert revised is not plan
        assert extras == {}

    def test_merge_overlays_fields(self):
        """Test that revised fields replace the originals."""
        plan = ChapterPlan(chapter_number=5, title="Flood", summary="The river rises")
        revised, _ = get_strategy("book").merge_revision(plan, {
            "revisedSummary": "The river rises and Jonah returns",
            "revisedBeats": ["Jonah appears", "Mara hesitates"],
            "revisedTitle": "",
        })

        assert revised.summary == "The river rises and Jonah returns"
        assert revised.beats == ["Jonah appears", "Mara hesitates"]
        assert revised.title == "Flood"

    def test_comic_merge_panels(self):
        """Test that revised panels are renumbered and counted."""
        plan = ComicPagePlan(page_number=2, panel_count=5)
        revised, extras = get_strategy("comic").merge_revision(plan, {
            "revisedPanels": [{"description": "Wide shot"}, "junk", {"description": "Close-up"}],
            "pageHookImproved": True,
        })

        assert [p.panel_number for p in revised.panels] == [1, 2]
        assert revised.panel_count == 2
        assert extras["page_hook_improved"] is True


class TestMinimalExtraction:
    """Tests for degraded regex extraction."""

    def test_book(self):
        """Test speaker and location heuristics for prose."""
        record = get_strategy("book").minimal_extraction(
            '"Get down," said Mara. They hid in the Old Harbor until dawn.', 3
        )

        assert record.degraded
        assert record.character_names() == ["Mara"]
        assert record.locations[0].name == "Old Harbor"

    def test_comic(self):
        """Test speaker and panel heuristics for comic scripts."""
        record = get_strategy("comic").minimal_extraction(
            "PANEL 1\nMARA: Run!\nPANEL 2\nJONAH: Where?\nMARA: Anywhere.", 2
        )

        assert record.character_names() == ["Mara", "Jonah"]
        assert record.payload.panel_count == 2
