"""Tests for the deterministic Clarity Snapshot signal scorer."""

import itertools
import logging
from unittest.mock import patch

import pytest

from app.core.schemas_snapshot import (
    Archetype,
    BusinessFeeling,
    BusinessStage,
    CallHandling,
    EvidenceNugget,
    InvoicingMethod,
    PresenceChannel,
    SchedulingMethod,
    SnapshotSelections,
    TeamShape,
)
from app.core.signal_scorer import (
    _rank_by_value,
    _top_key,
    compute_confidence,
    evidence_strength_from_nuggets,
    score,
    softmax,
)


def _selections(**overrides) -> SnapshotSelections:
    data = {
        "presence_channels": ["website"],
        "team_shape": "small_crew_2_5",
        "scheduling": "calendar_app",
        "invoicing": "quickbooks_invoicing_app",
        "call_handling": "business_phone",
        "business_feeling": "stuck_in_day_to_day",
    }
    data.update(overrides)
    return SnapshotSelections(**data)


# =============================================================================
# Archetype scenarios
# =============================================================================


class TestArchetypeScenarios:
    def test_reactive_solo_operator(self, reactive_solo_selections):
        result = score(reactive_solo_selections)

        assert result.top_archetype == Archetype.REACTIVE_SOLO_OPERATOR
        assert result.top_stage == BusinessStage.OPERATOR
        assert result.confidence >= 50
        assert {"solo_operator", "no_system"} <= set(result.flags)

    def test_reactive_solo_operator_exact_confidence(self, reactive_solo_selections):
        """Separation of ~0.519 rounds to 52."""
        result = score(reactive_solo_selections)

        assert result.runner_up_archetype == Archetype.INCONSISTENT_PROCESS_INCONSISTENT_CASH
        assert result.confidence == 52
        assert result.archetype_scores[Archetype.REACTIVE_SOLO_OPERATOR] == pytest.approx(3.0)
        assert result.stage_scores[BusinessStage.OPERATOR] == pytest.approx(4.9)

    def test_growing_without_systems(self):
        result = score(
            _selections(
                presence_channels=["website", "word_of_mouth"],
                team_shape="small_crew_2_5",
                scheduling="texts_calls",
                invoicing="inconsistent",
                call_handling="business_phone",
                business_feeling="stuck_in_day_to_day",
            )
        )

        assert result.top_archetype == Archetype.GROWING_WITHOUT_SYSTEMS
        assert result.top_stage == BusinessStage.TRANSITIONAL
        assert "small_team" in result.flags

    def test_tool_heavy_insight_light(self):
        result = score(
            _selections(
                presence_channels=["website", "google_reviews"],
                team_shape="growing_6_15",
                scheduling="job_software",
                invoicing="job_software",
                call_handling="someone_screens",
                business_feeling="dont_trust_numbers",
            )
        )

        assert result.top_archetype == Archetype.TOOL_HEAVY_INSIGHT_LIGHT
        assert "data_quality_issue" in result.flags

    def test_marketing_led_chaos(self):
        result = score(
            _selections(
                presence_channels=["website", "social", "google_reviews"],
                team_shape="small_crew_2_5",
                scheduling="calendar_app",
                invoicing="quickbooks_invoicing_app",
                call_handling="missed_calls_often",
                business_feeling="reactive_all_the_time",
            )
        )

        assert result.top_archetype == Archetype.MARKETING_LED_CHAOS
        assert "lead_handling_risk" in result.flags
        assert "capacity_issue" in result.flags

    def test_delegation_without_visibility(self):
        result = score(
            _selections(
                presence_channels=["website"],
                team_shape="growing_6_15",
                scheduling="someone_else",
                invoicing="job_software",
                call_handling="someone_screens",
                business_feeling="something_off_cant_name",
            )
        )

        assert result.top_archetype == Archetype.DELEGATION_WITHOUT_VISIBILITY
        assert "delegated_scheduling" in result.flags
        assert "potential_blind_spots" in result.flags


# =============================================================================
# Invariants
# =============================================================================


def _all_selections():
    """A spread of selections covering every single-select value at least once."""
    channel_sets = [
        ["word_of_mouth"],
        ["website", "social"],
        ["messy_unsure"],
        [c.value for c in PresenceChannel],
    ]
    singles = zip(
        itertools.cycle(TeamShape),
        itertools.cycle(SchedulingMethod),
        itertools.cycle(InvoicingMethod),
        itertools.cycle(CallHandling),
        BusinessFeeling,
    )
    for channels, (team, sched, inv, call, feeling) in itertools.product(channel_sets, list(singles)):
        yield SnapshotSelections(
            presence_channels=channels,
            team_shape=team,
            scheduling=sched,
            invoicing=inv,
            call_handling=call,
            business_feeling=feeling,
        )


class TestScoringInvariants:
    def test_deterministic(self, reactive_solo_selections):
        first = score(reactive_solo_selections, evidence_strength=0.3)
        second = score(reactive_solo_selections, evidence_strength=0.3)

        assert first.model_dump() == second.model_dump()

    @pytest.mark.parametrize("selections", list(_all_selections()))
    def test_distributions_and_bounds(self, selections):
        result = score(selections)

        assert sum(result.stage_probabilities.values()) == pytest.approx(1.0, abs=1e-6)
        assert sum(result.archetype_probabilities.values()) == pytest.approx(1.0, abs=1e-6)
        assert len(result.stage_scores) == 3
        assert len(result.archetype_scores) == 8
        assert 15 <= result.confidence <= 95
        assert result.top_archetype != result.runner_up_archetype
        assert (
            result.archetype_probabilities[result.top_archetype]
            >= result.archetype_probabilities[result.runner_up_archetype]
        )
        assert len(result.flags) == len(set(result.flags))

    def test_evidence_raises_confidence(self):
        selections = _selections(
            presence_channels=["word_of_mouth"],
            team_shape="solo_or_one_helper",
            scheduling="head_notebook",
            invoicing="paper_verbal",
            call_handling="personal_phone",
            business_feeling="busy_no_progress",
        )

        without = score(selections, evidence_strength=0.0)
        with_evidence = score(selections, evidence_strength=0.8)

        assert with_evidence.confidence > without.confidence
        assert with_evidence.top_archetype == without.top_archetype
        assert with_evidence.archetype_probabilities == without.archetype_probabilities

    def test_same_selections_with_evidence_scenario(self, reactive_solo_selections):
        assert score(reactive_solo_selections, 0.8).confidence > score(reactive_solo_selections, 0).confidence

    def test_confidence_bounds_with_extreme_evidence(self):
        selections = _selections()

        assert score(selections, evidence_strength=1.0).confidence <= 95
        assert score(selections, evidence_strength=0.0).confidence >= 15

    @pytest.mark.parametrize("bad", [-0.1, 1.5])
    def test_rejects_out_of_range_evidence(self, reactive_solo_selections, bad):
        with pytest.raises(ValueError):
            score(reactive_solo_selections, evidence_strength=bad)

    def test_feeling_counts_double(self):
        """Swapping only the feeling moves archetype scores by twice the table delta."""
        base = score(_selections(business_feeling="busy_no_progress"))
        other = score(_selections(business_feeling="dont_trust_numbers"))

        # busy_no_progress: tool_heavy +0; dont_trust_numbers: tool_heavy +0.6
        delta = (
            other.archetype_scores[Archetype.TOOL_HEAVY_INSIGHT_LIGHT]
            - base.archetype_scores[Archetype.TOOL_HEAVY_INSIGHT_LIGHT]
        )
        assert delta == pytest.approx(1.2)

    def test_presence_channels_accumulate(self):
        single = score(_selections(presence_channels=["website"]))
        multi = score(_selections(presence_channels=["website", "google_reviews", "social"]))

        assert {"online_presence", "reputation_visible", "social_active"} <= set(multi.flags)
        assert multi.stage_scores[BusinessStage.MANAGED] == pytest.approx(
            single.stage_scores[BusinessStage.MANAGED] + 0.3 + 0.1
        )

    def test_duplicate_channels_collapse(self):
        once = score(_selections(presence_channels=["word_of_mouth"]))
        twice = score(_selections(presence_channels=["word_of_mouth", "word_of_mouth"]))

        assert once.model_dump() == twice.model_dump()

    def test_budget_overrun_is_logged_not_raised(self, reactive_solo_selections, caplog):
        with patch("app.core.signal_scorer.get_settings") as mock_settings:
            mock_settings.return_value.SCORING_BUDGET_MS = -1.0
            with caplog.at_level(logging.WARNING, logger="app.core.signal_scorer"):
                result = score(reactive_solo_selections)

        assert result.top_archetype == Archetype.REACTIVE_SOLO_OPERATOR
        assert any("ScoringBudgetExceeded" in r.getMessage() for r in caplog.records)


# =============================================================================
# Helpers
# =============================================================================


class TestScoringHelpers:
    def test_softmax_sums_to_one(self):
        probs = softmax({"a": 1.0, "b": 2.0, "c": 3.0})

        assert sum(probs.values()) == pytest.approx(1.0)
        assert probs["c"] > probs["b"] > probs["a"]

    def test_softmax_handles_large_scores(self):
        probs = softmax({"a": 1000.0, "b": 1000.0})

        assert probs == {"a": 0.5, "b": 0.5}

    def test_ties_break_by_declaration_order(self):
        uniform = {archetype: 0.125 for archetype in Archetype}

        ranking = _rank_by_value(uniform)

        assert ranking[0] == Archetype.REACTIVE_SOLO_OPERATOR
        assert ranking[1] == Archetype.GROWING_WITHOUT_SYSTEMS
        assert _top_key({stage: 1 / 3 for stage in BusinessStage}) == BusinessStage.OPERATOR

    @pytest.mark.parametrize(
        "top,runner_up,evidence,expected",
        [
            (0.5, 0.5, 0.0, 15),  # floor
            (1.0, 0.0, 1.0, 95),  # ceiling
            (0.6, 0.2, 0.0, 40),
            (0.6, 0.2, 0.5, 55),
            (0.625, 0.0, 0.0, 63),  # 62.5 rounds half up
        ],
    )
    def test_compute_confidence(self, top, runner_up, evidence, expected):
        assert compute_confidence(top, runner_up, evidence) == expected

    def test_evidence_strength_from_nuggets(self):
        nuggets = [
            EvidenceNugget(source="website", snippet="Acme Plumbing", relevance="high"),
            EvidenceNugget(source="google_business", snippet="Listing", relevance="medium"),
            EvidenceNugget(source="social", snippet="Active on Facebook", relevance="low"),
        ]

        assert evidence_strength_from_nuggets(nuggets) == pytest.approx(0.9)
        assert evidence_strength_from_nuggets(nuggets + nuggets) == 1.0
        assert evidence_strength_from_nuggets([]) == 0.0
