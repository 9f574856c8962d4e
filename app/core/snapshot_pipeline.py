"""Clarity Snapshot pipeline: score -> enrich -> re-score -> narrate.

Selections are validated before they get here. Every downstream failure is
absorbed by the stage that owns it (enrichment returns fewer nuggets, the
narrative falls back to templates), so a valid request always produces a
complete response.
"""

import logging
import time
from uuid import uuid4

from app.chains.generate_snapshot_panes import generate_panes
from app.core.config import get_settings
from app.core.logging import elapsed_ms, get_logger, log_stage, log_with_context
from app.core.schemas_snapshot import (
    ClaritySnapshotRequest,
    ClaritySnapshotResponse,
    EvidenceNugget,
    SnapshotMetadata,
)
from app.core.signal_scorer import evidence_strength_from_nuggets, score
from app.core.snapshot_cache import SnapshotCache, build_cache_key, get_snapshot_cache
from app.core.snapshot_enrichment import EnrichmentInput, enrich

logger = get_logger(__name__)


async def run_clarity_snapshot(
    request: ClaritySnapshotRequest,
    cache: SnapshotCache | None = None,
    request_id: str | None = None,
) -> ClaritySnapshotResponse:
    """
    Produce a full Clarity Snapshot for validated selections.

    Args:
        request: Validated snapshot request
        cache: Response cache (defaults to the process-wide cache)
        request_id: Correlation id for logs (generated if omitted)

    Returns:
        ClaritySnapshotResponse with panes, classification, evidence and
        timing metadata
    """
    start = time.perf_counter()
    request_id = request_id or str(uuid4())
    settings = get_settings()
    cache = cache if cache is not None else get_snapshot_cache()

    log_with_context(
        logger,
        logging.INFO,
        "Clarity snapshot request received",
        request_id=request_id,
        has_name=bool(request.business_name),
        has_website=bool(request.website_url),
        has_gbp=bool(request.google_business_url),
        has_social=bool(request.social_url),
    )

    # 1. Cache
    cache_key = build_cache_key(request)
    cached = cache.get(cache_key)
    if cached is not None:
        cached.metadata.cache_hit = True
        cached.metadata.total_duration_ms = elapsed_ms(start)
        log_with_context(logger, logging.INFO, "Clarity snapshot cache hit", request_id=request_id)
        return cached

    # 2. Deterministic scoring
    with log_stage(logger, "scoring", request_id=request_id) as scoring_info:
        classification = score(request.selections)
        scoring_info["archetype"] = classification.top_archetype.value
    scoring_duration_ms = scoring_info["duration_ms"]

    # 3. Optional enrichment, then re-score with evidence strength
    nuggets: list[EvidenceNugget] = []
    enrichment_duration_ms = None
    enrichment_timed_out = False

    if request.has_enrichment_sources():
        enrichment = await enrich(
            EnrichmentInput(
                website_url=request.website_url,
                google_business_url=request.google_business_url,
                social_url=request.social_url,
            )
        )
        nuggets = enrichment.nuggets
        enrichment_duration_ms = enrichment.duration_ms
        enrichment_timed_out = enrichment.timed_out

        evidence_strength = evidence_strength_from_nuggets(nuggets)
        if evidence_strength > 0:
            classification = score(request.selections, evidence_strength=evidence_strength)

        log_with_context(
            logger,
            logging.INFO,
            f"Enrichment produced {len(nuggets)} nugget(s), strength {evidence_strength:.2f}",
            request_id=request_id,
            duration_ms=enrichment_duration_ms,
            timed_out=enrichment_timed_out,
        )

    # 4. Narrative panes
    with log_stage(logger, "narrative", request_id=request_id) as narrative_info:
        panes_result = await generate_panes(
            classification,
            evidence=nuggets or None,
            label=request.business_name,
            request_id=request_id,
        )
        narrative_info["source"] = panes_result.source.value

    # 5. Assemble
    response = ClaritySnapshotResponse(
        panes=panes_result.panes,
        classification=classification,
        evidence_nuggets=nuggets or None,
        metadata=SnapshotMetadata(
            total_duration_ms=elapsed_ms(start),
            scoring_duration_ms=scoring_duration_ms,
            enrichment_duration_ms=enrichment_duration_ms,
            enrichment_timed_out=enrichment_timed_out,
            narrative_source=panes_result.source,
            cache_hit=False,
            version=settings.SNAPSHOT_VERSION,
        ),
    )

    log_with_context(
        logger,
        logging.INFO,
        f"Clarity snapshot complete: {classification.top_stage.value} / "
        f"{classification.top_archetype.value} (confidence: {classification.confidence}%)",
        request_id=request_id,
        total_ms=response.metadata.total_duration_ms,
        scoring_ms=scoring_duration_ms,
        enrichment_ms=enrichment_duration_ms,
        narrative_source=panes_result.source.value,
    )

    cache.set(cache_key, response)
    return response
