"""Deterministic signal scorer for the Clarity Snapshot.

Maps the six selection answers to:
  - business stage (operator / transitional / managed)
  - archetype probabilities (8 archetypes)
  - confidence (15-95)
  - behavioral flags

Pure logic, no I/O and no LLM calls. Identical inputs always produce
identical outputs. Expected to finish well under SCORING_BUDGET_MS; going over
is logged, never raised.
"""

import logging
import math
import time
from collections.abc import Mapping
from enum import Enum
from typing import TypeVar

from app.core.config import get_settings
from app.core.logging import get_logger, log_with_context
from app.core.schemas_snapshot import (
    CONFIDENCE_CEILING,
    CONFIDENCE_FLOOR,
    Archetype,
    BusinessStage,
    EvidenceNugget,
    Relevance,
    SnapshotClassification,
    SnapshotSelections,
)
from app.core.snapshot_weights import (
    CALL_WEIGHTS,
    DEFAULT_MULTIPLIER,
    FEELING_MULTIPLIER,
    FEELING_WEIGHTS,
    INVOICING_WEIGHTS,
    PRESENCE_WEIGHTS,
    SCHEDULING_WEIGHTS,
    TEAM_WEIGHTS,
    WeightEntry,
)

logger = get_logger(__name__)

K = TypeVar("K", bound=Enum)

# Confidence = separation * 100 + evidence * 30, clamped to [15, 95]
SEPARATION_SCALE = 100.0
EVIDENCE_SCALE = 30.0

# Evidence strength contributed by one nugget, by relevance
RELEVANCE_STRENGTH = {
    Relevance.HIGH: 0.5,
    Relevance.MEDIUM: 0.3,
    Relevance.LOW: 0.1,
}


def score(
    selections: SnapshotSelections,
    evidence_strength: float = 0.0,
) -> SnapshotClassification:
    """
    Score validated selections into a full classification.

    Args:
        selections: Validated selection answers
        evidence_strength: External corroboration in [0, 1] (default 0)

    Returns:
        SnapshotClassification with raw scores, softmax probabilities,
        top stage, top/runner-up archetype, confidence and flags

    Raises:
        ValueError: If evidence_strength is outside [0, 1]
    """
    if not 0.0 <= evidence_strength <= 1.0:
        raise ValueError(f"evidence_strength must be within [0, 1], got {evidence_strength}")

    start = time.perf_counter()

    stage_scores = {stage: 0.0 for stage in BusinessStage}
    archetype_scores = {archetype: 0.0 for archetype in Archetype}
    flags: dict[str, None] = {}  # insertion-ordered set

    # 1. Presence channels (multi-select, accumulate)
    for channel in selections.presence_channels:
        _apply_weights(stage_scores, archetype_scores, flags, PRESENCE_WEIGHTS[channel])

    # 2-5. Single selects
    _apply_weights(stage_scores, archetype_scores, flags, TEAM_WEIGHTS[selections.team_shape])
    _apply_weights(stage_scores, archetype_scores, flags, SCHEDULING_WEIGHTS[selections.scheduling])
    _apply_weights(stage_scores, archetype_scores, flags, INVOICING_WEIGHTS[selections.invoicing])
    _apply_weights(stage_scores, archetype_scores, flags, CALL_WEIGHTS[selections.call_handling])

    # 6. Business feeling (double weight)
    _apply_weights(
        stage_scores,
        archetype_scores,
        flags,
        FEELING_WEIGHTS[selections.business_feeling],
        multiplier=FEELING_MULTIPLIER,
    )

    # Stages and archetypes are separate distributions
    stage_probabilities = softmax(stage_scores)
    archetype_probabilities = softmax(archetype_scores)

    top_stage = _top_key(stage_probabilities)
    ranking = _rank_by_value(archetype_probabilities)
    top_archetype, runner_up_archetype = ranking[0], ranking[1]

    confidence = compute_confidence(
        archetype_probabilities[top_archetype],
        archetype_probabilities[runner_up_archetype],
        evidence_strength,
    )

    elapsed_ms = (time.perf_counter() - start) * 1000
    budget_ms = get_settings().SCORING_BUDGET_MS
    if elapsed_ms > budget_ms:
        log_with_context(
            logger,
            logging.WARNING,
            f"ScoringBudgetExceeded: scoring took {elapsed_ms:.2f}ms (target: <{budget_ms:.0f}ms)",
            elapsed_ms=round(elapsed_ms, 2),
            budget_ms=budget_ms,
        )

    return SnapshotClassification(
        stage_scores=stage_scores,
        archetype_scores=archetype_scores,
        stage_probabilities=stage_probabilities,
        archetype_probabilities=archetype_probabilities,
        top_stage=top_stage,
        top_archetype=top_archetype,
        runner_up_archetype=runner_up_archetype,
        confidence=confidence,
        flags=list(flags),
        evidence_strength=evidence_strength,
    )


def compute_confidence(top_prob: float, runner_up_prob: float, evidence_strength: float) -> int:
    """
    Confidence from archetype separation plus evidence boost.

    Separation (0.0-1.0) maps to 0-100, evidence adds up to +30, and the
    result is clamped to [15, 95] then rounded half-up.
    """
    raw = (top_prob - runner_up_prob) * SEPARATION_SCALE + evidence_strength * EVIDENCE_SCALE
    clamped = min(float(CONFIDENCE_CEILING), max(float(CONFIDENCE_FLOOR), raw))
    return int(math.floor(clamped + 0.5))


def evidence_strength_from_nuggets(nuggets: list[EvidenceNugget]) -> float:
    """Sum relevance contributions of the nuggets, capped at 1.0."""
    strength = sum(RELEVANCE_STRENGTH[n.relevance] for n in nuggets)
    return round(min(1.0, strength), 6)


def softmax(scores: Mapping[K, float]) -> dict[K, float]:
    """
    Softmax normalization over one dimension.

    Shifts by the max score before exponentiating; the result is the same
    distribution without overflow.
    """
    if not scores:
        return {}
    peak = max(scores.values())
    exp_scores = {key: math.exp(value - peak) for key, value in scores.items()}
    total = sum(exp_scores.values())
    return {key: value / total for key, value in exp_scores.items()}


def _apply_weights(
    stage_scores: dict[BusinessStage, float],
    archetype_scores: dict[Archetype, float],
    flags: dict[str, None],
    weights: WeightEntry,
    multiplier: float = DEFAULT_MULTIPLIER,
) -> None:
    """Accumulate one weight entry into the running scores and flags."""
    stage_scores[BusinessStage.OPERATOR] += weights.operator * multiplier
    stage_scores[BusinessStage.TRANSITIONAL] += weights.transitional * multiplier
    stage_scores[BusinessStage.MANAGED] += weights.managed * multiplier

    for archetype, weight in weights.archetypes.items():
        archetype_scores[archetype] += weight * multiplier

    for flag in weights.flags:
        flags.setdefault(flag, None)


def _top_key(values: Mapping[K, float]) -> K:
    """Key with the highest value; the first key wins ties."""
    best_key = None
    best_value = -math.inf
    for key, value in values.items():
        if value > best_value:
            best_key, best_value = key, value
    return best_key


def _rank_by_value(values: Mapping[K, float]) -> list[K]:
    """Keys sorted by value descending; stable, so ties keep declaration order."""
    return sorted(values, key=lambda key: values[key], reverse=True)
