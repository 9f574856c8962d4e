"""Weight tables for the Clarity Snapshot signal scorer.

Each selectable answer maps to a WeightEntry: a signed delta per business
stage, a partial map of archetype deltas, and behavioral flags. Tables are
data, not branching logic: adding an answer value or an archetype means
adding an entry here, never editing the scorer.

Magnitudes stay within [-1.0, 1.0]. The business-feeling table is applied
at FEELING_MULTIPLIER by the scorer.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from app.core.schemas_snapshot import (
    Archetype as A,
    BusinessFeeling,
    CallHandling,
    InvoicingMethod,
    PresenceChannel,
    SchedulingMethod,
    TeamShape,
)

DEFAULT_MULTIPLIER = 1.0
FEELING_MULTIPLIER = 2.0  # strongest behavioral signal


@dataclass(frozen=True)
class WeightEntry:
    """Fixed contribution of one (field, value) answer."""

    operator: float
    transitional: float
    managed: float
    archetypes: Mapping[A, float] = field(default_factory=dict)
    flags: tuple[str, ...] = ()


def _entry(
    operator: float,
    transitional: float,
    managed: float,
    archetypes: dict[A, float],
    flags: tuple[str, ...],
) -> WeightEntry:
    return WeightEntry(
        operator=operator,
        transitional=transitional,
        managed=managed,
        archetypes=MappingProxyType(dict(archetypes)),
        flags=flags,
    )


# =========================
# Presence (multi-select, contributions accumulate)
# =========================

PRESENCE_WEIGHTS: Mapping[PresenceChannel, WeightEntry] = MappingProxyType({
    PresenceChannel.WEBSITE: _entry(
        -0.2, 0.3, 0.4,
        {A.STABLE_BUT_STAGNANT: 0.1, A.TOOL_HEAVY_INSIGHT_LIGHT: 0.1},
        ("online_presence",),
    ),
    PresenceChannel.GOOGLE_REVIEWS: _entry(
        -0.1, 0.2, 0.3,
        {A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.15},
        ("reputation_visible",),
    ),
    PresenceChannel.SOCIAL: _entry(
        0.0, 0.1, 0.1,
        {A.MARKETING_LED_CHAOS: 0.2},
        ("social_active",),
    ),
    PresenceChannel.WORD_OF_MOUTH: _entry(
        0.4, 0.1, -0.2,
        {A.REACTIVE_SOLO_OPERATOR: 0.3, A.GROWING_WITHOUT_SYSTEMS: 0.2},
        ("referral_dependent",),
    ),
    PresenceChannel.MESSY_UNSURE: _entry(
        0.3, 0.0, -0.3,
        {A.GROWING_WITHOUT_SYSTEMS: 0.3, A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.2},
        ("visibility_low", "positioning_unclear"),
    ),
})

# =========================
# Team shape
# =========================

TEAM_WEIGHTS: Mapping[TeamShape, WeightEntry] = MappingProxyType({
    TeamShape.SOLO_OR_ONE_HELPER: _entry(
        1.0, -0.3, -0.8,
        {A.REACTIVE_SOLO_OPERATOR: 0.5, A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.2},
        ("solo_operator", "scale_ceiling"),
    ),
    TeamShape.SMALL_CREW_2_5: _entry(
        0.2, 0.6, -0.2,
        {A.GROWING_WITHOUT_SYSTEMS: 0.4, A.DELEGATION_WITHOUT_VISIBILITY: 0.2},
        ("small_team", "delegation_starting"),
    ),
    TeamShape.GROWING_6_15: _entry(
        -0.5, 0.7, 0.3,
        {A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.3, A.DELEGATION_WITHOUT_VISIBILITY: 0.3},
        ("growing_team", "systems_needed"),
    ),
    TeamShape.OFFICE_PLUS_FIELD: _entry(
        -0.7, 0.3, 0.8,
        {A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.4, A.TOOL_HEAVY_INSIGHT_LIGHT: 0.2},
        ("structured_org", "office_operations"),
    ),
    TeamShape.FLUCTUATES: _entry(
        0.1, 0.4, -0.3,
        {A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.5, A.MARKETING_LED_CHAOS: 0.2},
        ("staffing_unpredictable", "demand_volatility"),
    ),
})

# =========================
# Scheduling
# =========================

SCHEDULING_WEIGHTS: Mapping[SchedulingMethod, WeightEntry] = MappingProxyType({
    SchedulingMethod.HEAD_NOTEBOOK: _entry(
        0.8, -0.2, -0.6,
        {A.REACTIVE_SOLO_OPERATOR: 0.4, A.GROWING_WITHOUT_SYSTEMS: 0.3},
        ("manual_scheduling", "no_system"),
    ),
    SchedulingMethod.TEXTS_CALLS: _entry(
        0.5, 0.1, -0.4,
        {A.REACTIVE_SOLO_OPERATOR: 0.3, A.GROWING_WITHOUT_SYSTEMS: 0.2},
        ("ad_hoc_scheduling", "communication_chaos"),
    ),
    SchedulingMethod.CALENDAR_APP: _entry(
        -0.1, 0.3, 0.2,
        {A.TOOL_HEAVY_INSIGHT_LIGHT: 0.2},
        ("basic_digital_tools",),
    ),
    SchedulingMethod.JOB_SOFTWARE: _entry(
        -0.4, 0.2, 0.6,
        {A.TOOL_HEAVY_INSIGHT_LIGHT: 0.3, A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.2},
        ("job_management_system", "structured_ops"),
    ),
    SchedulingMethod.SOMEONE_ELSE: _entry(
        -0.6, 0.3, 0.7,
        {A.DELEGATION_WITHOUT_VISIBILITY: 0.4, A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.2},
        ("delegated_scheduling", "potential_blind_spots"),
    ),
})

# =========================
# Invoicing
# =========================

INVOICING_WEIGHTS: Mapping[InvoicingMethod, WeightEntry] = MappingProxyType({
    InvoicingMethod.PAPER_VERBAL: _entry(
        0.8, -0.1, -0.7,
        {A.REACTIVE_SOLO_OPERATOR: 0.4, A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.3},
        ("manual_invoicing", "cash_flow_risk", "no_tracking"),
    ),
    InvoicingMethod.QUICKBOOKS_INVOICING_APP: _entry(
        0.0, 0.4, 0.3,
        {A.TOOL_HEAVY_INSIGHT_LIGHT: 0.2, A.STABLE_BUT_STAGNANT: 0.1},
        ("basic_accounting", "financial_tracking"),
    ),
    InvoicingMethod.JOB_SOFTWARE: _entry(
        -0.3, 0.3, 0.5,
        {A.TOOL_HEAVY_INSIGHT_LIGHT: 0.3, A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.2},
        ("integrated_invoicing", "operational_system"),
    ),
    InvoicingMethod.INCONSISTENT: _entry(
        0.4, 0.2, -0.5,
        {A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.5, A.GROWING_WITHOUT_SYSTEMS: 0.3},
        ("process_inconsistency", "cash_flow_unpredictable"),
    ),
})

# =========================
# Call handling
# =========================

CALL_WEIGHTS: Mapping[CallHandling, WeightEntry] = MappingProxyType({
    CallHandling.PERSONAL_PHONE: _entry(
        0.7, 0.0, -0.6,
        {A.REACTIVE_SOLO_OPERATOR: 0.4, A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.2},
        ("owner_bottleneck", "no_separation"),
    ),
    CallHandling.BUSINESS_PHONE: _entry(
        0.1, 0.3, 0.1,
        {A.STABLE_BUT_STAGNANT: 0.1},
        ("basic_business_setup",),
    ),
    CallHandling.MISSED_CALLS_OFTEN: _entry(
        0.3, 0.3, -0.3,
        {
            A.MARKETING_LED_CHAOS: 0.5,
            A.REACTIVE_SOLO_OPERATOR: 0.3,
            A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.2,
        },
        ("lead_handling_risk", "capacity_issue", "revenue_leak"),
    ),
    CallHandling.SOMEONE_SCREENS: _entry(
        -0.5, 0.4, 0.5,
        {A.DELEGATION_WITHOUT_VISIBILITY: 0.3, A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.2},
        ("delegated_intake", "call_screening"),
    ),
})

# =========================
# Business feeling (applied at FEELING_MULTIPLIER)
# =========================

FEELING_WEIGHTS: Mapping[BusinessFeeling, WeightEntry] = MappingProxyType({
    BusinessFeeling.BUSY_NO_PROGRESS: _entry(
        0.5, 0.3, -0.3,
        {A.REACTIVE_SOLO_OPERATOR: 0.5, A.STABLE_BUT_STAGNANT: 0.3},
        ("treadmill_syndrome", "no_growth", "overload_high"),
    ),
    BusinessFeeling.STUCK_IN_DAY_TO_DAY: _entry(
        0.4, 0.4, -0.2,
        {
            A.REACTIVE_SOLO_OPERATOR: 0.4,
            A.GROWING_WITHOUT_SYSTEMS: 0.3,
            A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.2,
        },
        ("tactical_trap", "no_strategic_time"),
    ),
    BusinessFeeling.DONT_TRUST_NUMBERS: _entry(
        0.2, 0.3, 0.1,
        {
            A.TOOL_HEAVY_INSIGHT_LIGHT: 0.6,
            A.DELEGATION_WITHOUT_VISIBILITY: 0.3,
            A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.3,
        },
        ("data_quality_issue", "insight_gap", "decision_paralysis"),
    ),
    BusinessFeeling.REACTIVE_ALL_THE_TIME: _entry(
        0.6, 0.2, -0.4,
        {
            A.REACTIVE_SOLO_OPERATOR: 0.5,
            A.MARKETING_LED_CHAOS: 0.4,
            A.INCONSISTENT_PROCESS_INCONSISTENT_CASH: 0.3,
        },
        ("reactive_mode", "no_planning", "firefighting"),
    ),
    BusinessFeeling.SOMETHING_OFF_CANT_NAME: _entry(
        0.1, 0.3, 0.2,
        {
            A.TOOL_HEAVY_INSIGHT_LIGHT: 0.3,
            A.DELEGATION_WITHOUT_VISIBILITY: 0.4,
            A.BUSY_PROFESSIONALIZED_BUT_BLIND: 0.3,
            A.STABLE_BUT_STAGNANT: 0.2,
        },
        ("intuition_warning", "visibility_low", "metrics_needed"),
    ),
})
