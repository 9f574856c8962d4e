"""Canonical archetype profiles.

One profile per archetype: a short display name plus recognition signals,
typical costs and first fixes. Used both to prompt the narrative model and to
build the deterministic fallback panes, so list order matters: the fallback
takes the first items of each list.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from app.core.schemas_snapshot import Archetype


@dataclass(frozen=True)
class ArchetypeProfile:
    short_name: str
    recognition_signals: tuple[str, ...]
    typical_costs: tuple[str, ...]
    first_fixes: tuple[str, ...]


ARCHETYPE_PROFILES: Mapping[Archetype, ArchetypeProfile] = MappingProxyType({
    Archetype.REACTIVE_SOLO_OPERATOR: ArchetypeProfile(
        short_name="Solo & Reactive",
        recognition_signals=(
            "All decisions and calls go through you",
            "Working harder but revenue stays flat",
            "Can't take time off without business stopping",
        ),
        typical_costs=(
            "Revenue ceiling around what one person can do",
            "No time for growth activities (marketing, sales calls)",
            "Personal health/relationships suffer from overload",
        ),
        first_fixes=(
            "Start tracking where your time actually goes for one week",
            "Pick ONE repeating task and document it (not automate yet, just write down the steps)",
        ),
    ),
    Archetype.GROWING_WITHOUT_SYSTEMS: ArchetypeProfile(
        short_name="Growing but Chaotic",
        recognition_signals=(
            "More work coming in but execution is inconsistent",
            "Relying on memory or scattered notes",
            "Same questions keep coming up from team/customers",
        ),
        typical_costs=(
            "Rework and mistakes eating 10-15% of job time",
            "Customer complaints about inconsistency",
            "Can't scale because every job is different",
        ),
        first_fixes=(
            "Document your top 3 most common jobs start-to-finish",
            "Create one simple checklist your team can follow",
        ),
    ),
    Archetype.TOOL_HEAVY_INSIGHT_LIGHT: ArchetypeProfile(
        short_name="Lots of Tools, No Clarity",
        recognition_signals=(
            "Using software but not looking at reports",
            "Data exists but you don't trust it or use it",
            "Buying tools that don't talk to each other",
        ),
        typical_costs=(
            "Paying for software nobody uses fully",
            "Making decisions based on gut feel, not data",
            "Missing patterns in what's working/not working",
        ),
        first_fixes=(
            "Pick ONE number to track weekly (not 10, just one)",
            "Set up a 5-minute weekly review of that one number",
        ),
    ),
    Archetype.DELEGATION_WITHOUT_VISIBILITY: ArchetypeProfile(
        short_name="Delegated but Blind",
        recognition_signals=(
            "Someone else handles key tasks but you don't see the data",
            "Finding out about problems too late",
            "Can't answer basic questions about the business without asking",
        ),
        typical_costs=(
            "Losing money without knowing where or why",
            "Customer issues escalating before you hear about them",
            "Can't make strategic decisions without digging for info",
        ),
        first_fixes=(
            "Set up a simple daily/weekly dashboard for the top 3 numbers",
            "Schedule a 15-minute weekly check-in with whoever runs the operations",
        ),
    ),
    Archetype.MARKETING_LED_CHAOS: ArchetypeProfile(
        short_name="Marketing Works, Ops Don't",
        recognition_signals=(
            "Leads are coming in but you can't handle them all",
            "Missing calls, slow follow-up, inconsistent close rate",
            "Marketing spend going up but profit not following",
        ),
        typical_costs=(
            "Wasting 30-50% of leads due to response time",
            "Negative reviews from customers you couldn't service well",
            "High marketing cost per acquisition with low lifetime value",
        ),
        first_fixes=(
            "Set up lead response tracking (how fast are you getting back?)",
            "Pause one marketing channel and focus on converting what you have",
        ),
    ),
    Archetype.BUSY_PROFESSIONALIZED_BUT_BLIND: ArchetypeProfile(
        short_name="Professional but No Insight",
        recognition_signals=(
            "Team in place, systems running, but no clear picture of health",
            "Don't know which services or customers are profitable",
            "Reacting to cash flow issues instead of planning ahead",
        ),
        typical_costs=(
            "Unprofitable services subsidizing profitable ones (hidden)",
            "Missing early warning signs of cash flow problems",
            "Can't confidently invest in growth because numbers are murky",
        ),
        first_fixes=(
            "Run a simple profitability analysis by service/customer type",
            "Set up cash flow projection for next 90 days",
        ),
    ),
    Archetype.INCONSISTENT_PROCESS_INCONSISTENT_CASH: ArchetypeProfile(
        short_name="Feast or Famine",
        recognition_signals=(
            "Some months are great, some are scary",
            "No predictable pipeline or sales process",
            "Constantly hustling for next job instead of building systems",
        ),
        typical_costs=(
            "Can't plan hiring or investments due to cash swings",
            "Personal stress from financial unpredictability",
            "Lower prices or desperation deals during slow months",
        ),
        first_fixes=(
            "Track where every job comes from for 30 days",
            "Build a simple pipeline view of opportunities in progress",
        ),
    ),
    Archetype.STABLE_BUT_STAGNANT: ArchetypeProfile(
        short_name="Flat but Comfortable",
        recognition_signals=(
            "Revenue has been the same for 2+ years",
            "Comfortable but not excited about the business",
            "Not sure what the next move is",
        ),
        typical_costs=(
            "Opportunity cost of staying in neutral",
            "Inflation eating into real profit margins",
            "Business value not growing (if you wanted to sell or exit)",
        ),
        first_fixes=(
            "List 3 things you could do differently if you had clarity",
            "Interview 3-5 recent customers about what else they'd buy from you",
        ),
    ),
})


def get_profile(archetype: Archetype) -> ArchetypeProfile:
    return ARCHETYPE_PROFILES[archetype]
