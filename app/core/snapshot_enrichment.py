"""Optional, non-blocking evidence extraction for the Clarity Snapshot.

Sources (each optional, at most one URL per kind):
- website: homepage name + description (Firecrawl or direct fetch)
- google_business: meta description of the listing page
- social: platform detected from the profile URL (no network call)

All started extractions run concurrently under one wall-clock deadline
(ENRICHMENT_TIMEOUT_MS). On timeout, extractions still running are cancelled
and only nuggets that finished before the deadline are returned. Nothing in
here raises to the caller.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx

from app.core.config import get_settings
from app.core.firecrawl_service import extract_meta_description, fetch_html, get_page_summary_safe
from app.core.logging import elapsed_ms, get_logger, log_with_context
from app.core.schemas_snapshot import (
    SNIPPET_MAX_CHARS,
    EvidenceNugget,
    EvidenceSource,
    Relevance,
)

logger = get_logger(__name__)

SERVICE_KEYWORDS = ("service", "offer", "provide", "specialize", "expert")

GBP_PRESENT_SNIPPET = "Google Business Profile present"
GBP_UNREACHABLE_SNIPPET = "Business has Google Business Profile"

# host suffix -> display name
SOCIAL_PLATFORMS: tuple[tuple[str, str], ...] = (
    ("facebook.com", "Facebook"),
    ("fb.com", "Facebook"),
    ("instagram.com", "Instagram"),
    ("linkedin.com", "LinkedIn"),
    ("twitter.com", "Twitter/X"),
    ("x.com", "Twitter/X"),
    ("youtube.com", "YouTube"),
    ("youtu.be", "YouTube"),
    ("tiktok.com", "TikTok"),
)

Extractor = Callable[[str], Awaitable[EvidenceNugget | None]]


@dataclass
class EnrichmentInput:
    website_url: str | None = None
    google_business_url: str | None = None
    social_url: str | None = None

    def is_empty(self) -> bool:
        return not (self.website_url or self.google_business_url or self.social_url)


@dataclass
class EnrichmentResult:
    nuggets: list[EvidenceNugget] = field(default_factory=list)
    duration_ms: int = 0
    timed_out: bool = False


async def enrich(sources: EnrichmentInput, timeout_ms: int | None = None) -> EnrichmentResult:
    """
    Extract evidence nuggets from whichever sources were provided.

    Args:
        sources: Optional URLs by kind
        timeout_ms: Override for the global deadline (defaults to settings)

    Returns:
        EnrichmentResult with nuggets in source order (website,
        google_business, social), elapsed duration and the timeout flag.
        Never raises; caller cancellation still propagates.
    """
    start = time.perf_counter()
    budget_ms = timeout_ms if timeout_ms is not None else get_settings().ENRICHMENT_TIMEOUT_MS

    planned = _plan_extractions(sources)
    if not planned:
        return EnrichmentResult(nuggets=[], duration_ms=elapsed_ms(start), timed_out=False)

    tasks: list[asyncio.Task] = []
    try:
        tasks = [
            asyncio.create_task(_settle(source, url, extractor), name=f"enrich:{source.value}")
            for source, url, extractor in planned
        ]
        done, pending = await asyncio.wait(tasks, timeout=budget_ms / 1000)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise
    except Exception as e:
        for task in tasks:
            task.cancel()
        logger.error(f"Enrichment failed unexpectedly: {e}")
        return EnrichmentResult(nuggets=[], duration_ms=elapsed_ms(start), timed_out=False)

    timed_out = bool(pending)
    for task in pending:
        task.cancel()

    nuggets = []
    for task in tasks:
        if task in done and not task.cancelled():
            nugget = task.result()
            if nugget is not None:
                nuggets.append(nugget)

    duration_ms = elapsed_ms(start)
    if timed_out:
        log_with_context(
            logger,
            logging.WARNING,
            f"EnrichmentTimeout: deadline of {budget_ms}ms reached, "
            f"{len(pending)} source(s) abandoned",
            kept_nuggets=len(nuggets),
            duration_ms=duration_ms,
        )
    else:
        log_with_context(
            logger,
            logging.INFO,
            f"Enrichment finished with {len(nuggets)} nugget(s)",
            sources=len(planned),
            duration_ms=duration_ms,
        )

    return EnrichmentResult(nuggets=nuggets, duration_ms=duration_ms, timed_out=timed_out)


def _plan_extractions(sources: EnrichmentInput) -> list[tuple[EvidenceSource, str, Extractor]]:
    """One (source, url, extractor) per provided URL, in fixed source order."""
    planned = []
    if sources.website_url:
        planned.append((EvidenceSource.WEBSITE, sources.website_url, extract_website_nugget))
    if sources.google_business_url:
        planned.append(
            (EvidenceSource.GOOGLE_BUSINESS, sources.google_business_url, extract_google_business_nugget)
        )
    if sources.social_url:
        planned.append((EvidenceSource.SOCIAL, sources.social_url, extract_social_nugget))
    return planned


async def _settle(source: EvidenceSource, url: str, extractor: Extractor) -> EvidenceNugget | None:
    """Run one extractor, turning any failure into 'no nugget'."""
    try:
        return await extractor(url)
    except Exception as e:
        log_with_context(
            logger,
            logging.WARNING,
            f"SourceExtractionFailure: {source.value} extraction failed: {e}",
            source=source.value,
        )
        return None


# =========================
# Per-source extractors
# =========================


async def extract_website_nugget(url: str) -> EvidenceNugget | None:
    """Homepage name + description; 'high' relevance when services are mentioned."""
    settings = get_settings()
    summary = await get_page_summary_safe(normalize_url(url), settings.WEBSITE_FETCH_TIMEOUT)
    if summary is None:
        return None

    name = summary.name
    description = summary.description
    services = ", ".join(summary.services)

    snippet = name
    if description and len(description) > 10:
        snippet = f"{name} - {description}" if name else description
    elif services:
        snippet = f"{name} - {services}" if name else services

    if not snippet:
        return None

    service_text = f"{description} {services}".lower()
    has_service_mention = any(keyword in service_text for keyword in SERVICE_KEYWORDS)

    return EvidenceNugget(
        source=EvidenceSource.WEBSITE,
        snippet=truncate_snippet(snippet),
        relevance=Relevance.HIGH if has_service_mention else Relevance.MEDIUM,
    )


async def extract_google_business_nugget(url: str) -> EvidenceNugget | None:
    """
    Meta description of a Google Business listing.

    A non-2xx answer yields no nugget. If the page can't be reached at all,
    the profile's existence is still known from the URL, so a low-relevance
    presence nugget is returned.
    """
    settings = get_settings()
    try:
        html_text = await fetch_html(normalize_url(url), settings.GBP_FETCH_TIMEOUT)
    except httpx.HTTPStatusError as e:
        logger.warning(f"Google Business page returned {e.response.status_code} for {url}")
        return None
    except Exception as e:
        logger.warning(f"Google Business page unreachable for {url}: {e}")
        return EvidenceNugget(
            source=EvidenceSource.GOOGLE_BUSINESS,
            snippet=GBP_UNREACHABLE_SNIPPET,
            relevance=Relevance.LOW,
        )

    description = extract_meta_description(html_text)
    return EvidenceNugget(
        source=EvidenceSource.GOOGLE_BUSINESS,
        snippet=truncate_snippet(description or GBP_PRESENT_SNIPPET),
        relevance=Relevance.MEDIUM,
    )


async def extract_social_nugget(url: str) -> EvidenceNugget | None:
    """Acknowledge presence on a recognized platform. Profiles need auth to scrape."""
    platform = detect_platform(url)
    if not platform:
        logger.debug(f"Unrecognized social platform for {url}")
        return None

    return EvidenceNugget(
        source=EvidenceSource.SOCIAL,
        snippet=f"Active on {platform}",
        relevance=Relevance.LOW,
    )


# =========================
# Helpers
# =========================


def detect_platform(url: str) -> str | None:
    """Map a profile URL's host to a platform display name."""
    host = (urlparse(normalize_url(url)).hostname or "").lower()
    if not host:
        return None
    for domain, name in SOCIAL_PLATFORMS:
        if host == domain or host.endswith(f".{domain}"):
            return name
    return None


def normalize_url(url: str) -> str:
    """Add an https:// scheme when the user typed a bare domain."""
    url = url.strip()
    if "://" not in url:
        return f"https://{url}"
    return url


def truncate_snippet(snippet: str, limit: int = SNIPPET_MAX_CHARS) -> str:
    snippet = snippet.strip()
    if len(snippet) > limit:
        return snippet[: limit - 3].rstrip() + "..."
    return snippet
