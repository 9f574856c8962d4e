"""Pydantic models for the Clarity Snapshot pipeline.

Selection-based intake -> deterministic classification -> recognition-first
narrative panes. Python attributes are snake_case; the wire format is
camelCase (``presenceChannels``, ``whatsHappening``, ...).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

LOW_CONFIDENCE_THRESHOLD = 65
CONFIDENCE_FLOOR = 15
CONFIDENCE_CEILING = 95
SNIPPET_MAX_CHARS = 150
CORRECTION_QUESTION = "Which describes your situation better?"


class CamelModel(BaseModel):
    """Base model that serializes to camelCase and accepts either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Selection enums
# =============================================================================


class PresenceChannel(str, Enum):
    """Where customers find the business (multi-select)."""

    WEBSITE = "website"
    GOOGLE_REVIEWS = "google_reviews"
    SOCIAL = "social"
    WORD_OF_MOUTH = "word_of_mouth"
    MESSY_UNSURE = "messy_unsure"


class TeamShape(str, Enum):
    SOLO_OR_ONE_HELPER = "solo_or_one_helper"
    SMALL_CREW_2_5 = "small_crew_2_5"
    GROWING_6_15 = "growing_6_15"
    OFFICE_PLUS_FIELD = "office_plus_field"
    FLUCTUATES = "fluctuates"


class SchedulingMethod(str, Enum):
    HEAD_NOTEBOOK = "head_notebook"
    TEXTS_CALLS = "texts_calls"
    CALENDAR_APP = "calendar_app"
    JOB_SOFTWARE = "job_software"
    SOMEONE_ELSE = "someone_else"


class InvoicingMethod(str, Enum):
    PAPER_VERBAL = "paper_verbal"
    QUICKBOOKS_INVOICING_APP = "quickbooks_invoicing_app"
    JOB_SOFTWARE = "job_software"
    INCONSISTENT = "inconsistent"


class CallHandling(str, Enum):
    PERSONAL_PHONE = "personal_phone"
    BUSINESS_PHONE = "business_phone"
    MISSED_CALLS_OFTEN = "missed_calls_often"
    SOMEONE_SCREENS = "someone_screens"


class BusinessFeeling(str, Enum):
    """How running the business feels right now (strongest signal)."""

    BUSY_NO_PROGRESS = "busy_no_progress"
    STUCK_IN_DAY_TO_DAY = "stuck_in_day_to_day"
    DONT_TRUST_NUMBERS = "dont_trust_numbers"
    REACTIVE_ALL_THE_TIME = "reactive_all_the_time"
    SOMETHING_OFF_CANT_NAME = "something_off_cant_name"


# =============================================================================
# Classification enums
# =============================================================================


class BusinessStage(str, Enum):
    """Coarse operating maturity. Declaration order is the tie-break order."""

    OPERATOR = "operator"
    TRANSITIONAL = "transitional"
    MANAGED = "managed"


class Archetype(str, Enum):
    """Fine-grained behavioral pattern. Declaration order is the tie-break order."""

    REACTIVE_SOLO_OPERATOR = "reactive_solo_operator"
    GROWING_WITHOUT_SYSTEMS = "growing_without_systems"
    TOOL_HEAVY_INSIGHT_LIGHT = "tool_heavy_insight_light"
    DELEGATION_WITHOUT_VISIBILITY = "delegation_without_visibility"
    MARKETING_LED_CHAOS = "marketing_led_chaos"
    BUSY_PROFESSIONALIZED_BUT_BLIND = "busy_professionalized_but_blind"
    INCONSISTENT_PROCESS_INCONSISTENT_CASH = "inconsistent_process_inconsistent_cash"
    STABLE_BUT_STAGNANT = "stable_but_stagnant"


class EvidenceSource(str, Enum):
    WEBSITE = "website"
    GOOGLE_BUSINESS = "google_business"
    SOCIAL = "social"


class Relevance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NarrativeSource(str, Enum):
    """Which branch of the narrative generator produced the panes."""

    GENERATED = "generated"
    FALLBACK = "fallback"


# =============================================================================
# Intake
# =============================================================================


class SnapshotSelections(CamelModel):
    """The six required answers. Invalid selections never reach the scorer."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    presence_channels: list[PresenceChannel] = Field(..., min_length=1)
    team_shape: TeamShape
    scheduling: SchedulingMethod
    invoicing: InvoicingMethod
    call_handling: CallHandling
    business_feeling: BusinessFeeling

    @field_validator("presence_channels")
    @classmethod
    def dedupe_channels(cls, v: list[PresenceChannel]) -> list[PresenceChannel]:
        """Multi-select has set semantics; keep first-seen order."""
        return list(dict.fromkeys(v))


class ClaritySnapshotRequest(CamelModel):
    """Selection answers plus optional identifiers used for enrichment."""

    selections: SnapshotSelections
    business_name: str | None = Field(default=None, max_length=200)
    website_url: str | None = Field(default=None, max_length=2048)
    google_business_url: str | None = Field(default=None, max_length=2048)
    social_url: str | None = Field(default=None, max_length=2048)
    business_id: str | None = Field(default=None, max_length=200)  # cache discriminator only

    @field_validator("business_name", "website_url", "google_business_url", "social_url", "business_id")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def has_enrichment_sources(self) -> bool:
        return bool(self.website_url or self.google_business_url or self.social_url)


# =============================================================================
# Scoring output
# =============================================================================


class SnapshotClassification(CamelModel):
    """Full output of the signal scorer. Computed fresh per request."""

    stage_scores: dict[BusinessStage, float]
    archetype_scores: dict[Archetype, float]
    stage_probabilities: dict[BusinessStage, float]
    archetype_probabilities: dict[Archetype, float]
    top_stage: BusinessStage
    top_archetype: Archetype
    runner_up_archetype: Archetype
    confidence: int = Field(..., ge=CONFIDENCE_FLOOR, le=CONFIDENCE_CEILING)
    flags: list[str] = Field(default_factory=list)
    evidence_strength: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def needs_correction(self) -> bool:
        return self.confidence < LOW_CONFIDENCE_THRESHOLD


# =============================================================================
# Evidence
# =============================================================================


class EvidenceNugget(CamelModel):
    """One short observation pulled from an optional external source."""

    source: EvidenceSource
    snippet: str = Field(..., max_length=SNIPPET_MAX_CHARS)
    relevance: Relevance


# =============================================================================
# Narrative
# =============================================================================


class CorrectionPrompt(CamelModel):
    """Two-option 'which is closer?' question shown on low confidence."""

    question: str = CORRECTION_QUESTION
    option_a: str
    option_b: str


class SnapshotPanes(CamelModel):
    """Pane A (recognition), Pane B (cost), Pane C (first fix)."""

    whats_happening: list[str] = Field(default_factory=list, max_length=3)
    what_it_costs: list[str] = Field(default_factory=list, max_length=3)
    what_to_fix_first: list[str] = Field(default_factory=list, max_length=2)
    correction_prompt: CorrectionPrompt | None = None


# =============================================================================
# Response
# =============================================================================


class SnapshotMetadata(CamelModel):
    total_duration_ms: int
    scoring_duration_ms: int
    enrichment_duration_ms: int | None = None
    enrichment_timed_out: bool = False
    narrative_source: NarrativeSource
    cache_hit: bool = False
    version: str


class ClaritySnapshotResponse(CamelModel):
    panes: SnapshotPanes
    classification: SnapshotClassification
    evidence_nuggets: list[EvidenceNugget] | None = None
    metadata: SnapshotMetadata
