"""Generate Clarity Snapshot narrative panes.

Turns a classification (plus any evidence nuggets) into three short panes:
  A. what's actually happening
  B. what it is costing
  C. what to fix first
and, when confidence is below 65, a two-option correction prompt.

The generative call is bounded by NARRATIVE_TIMEOUT_SECONDS. Any failure
(provider not configured, error, timeout, unparseable or malformed output)
switches to the deterministic panes built from the top archetype profile.
Either way the caller gets valid panes.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from app.core.archetype_profiles import ArchetypeProfile, get_profile
from app.core.config import get_settings
from app.core.llm import (
    PROVIDER_ANTHROPIC,
    PROVIDER_OPENAI,
    get_llm,
    parse_llm_json,
    provider_is_configured,
)
from app.core.llm_usage import log_llm_usage
from app.core.logging import get_logger, log_with_context
from app.core.schemas_snapshot import (
    CORRECTION_QUESTION,
    LOW_CONFIDENCE_THRESHOLD,
    CorrectionPrompt,
    EvidenceNugget,
    NarrativeSource,
    SnapshotClassification,
    SnapshotPanes,
)

logger = get_logger(__name__)

MAX_WHATS_HAPPENING = 3
MAX_WHAT_IT_COSTS = 3
MAX_WHAT_TO_FIX_FIRST = 2

SYSTEM_PROMPT = """You are a business clarity specialist using the "Quiet Founder" voice.

## Your Role
Write short, grounded recognition statements for small business owners based on their operational patterns.

## Voice
- No hype, no scolding, no generic advice
- Plain language (8th grade reading level), short sentences
- Specific to their situation
- No brand or tool mentions unless they appear in the evidence
- Avoid: "free audit", "optimize", "leverage", "synergy", "game-changing"

## Panes
- whatsHappening (max 3 bullets): what you see in their operations. Use evidence if provided.
- whatItCosts (2-3 bullets): concrete costs in time, money or opportunity. Quantify when possible.
- whatToFixFirst (1-2 actions): something they can start this week without buying anything.

## Correction prompt
Only when asked: two short "which is closer?" options, option A from the top archetype and option B from the runner-up.

Return ONLY a JSON object. No markdown fences."""


class _GeneratedCorrection(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    question: str | None = None
    option_a: str | None = None
    option_b: str | None = None


class _GeneratedPanes(BaseModel):
    """Raw model output before caps and correction-prompt rules are applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    whats_happening: list[str]
    what_it_costs: list[str]
    what_to_fix_first: list[str]
    # validated on its own in _usable_correction
    correction_prompt: Any = None


@dataclass
class PanesResult:
    panes: SnapshotPanes
    source: NarrativeSource


async def generate_panes(
    classification: SnapshotClassification,
    evidence: list[EvidenceNugget] | None = None,
    label: str | None = None,
    request_id: str | None = None,
) -> PanesResult:
    """
    Generate narrative panes for a classification.

    Args:
        classification: Scorer output (confidence already evidence-adjusted)
        evidence: Optional evidence nuggets from enrichment
        label: Optional business display name
        request_id: Correlation id for logs

    Returns:
        PanesResult with valid panes and which path produced them
    """
    settings = get_settings()
    provider = settings.NARRATIVE_PROVIDER.strip().lower()

    if not provider_is_configured(provider):
        log_with_context(
            logger,
            logging.INFO,
            f"Narrative provider '{provider}' not configured, using fallback panes",
            request_id=request_id,
        )
        return PanesResult(build_fallback_panes(classification), NarrativeSource.FALLBACK)

    user_prompt = build_user_prompt(classification, evidence, label)

    try:
        raw_output = await asyncio.wait_for(
            _call_provider(provider, user_prompt, request_id),
            timeout=settings.NARRATIVE_TIMEOUT_SECONDS,
        )
    except TimeoutError:
        log_with_context(
            logger,
            logging.WARNING,
            f"NarrativeGenerationFailure: timed out after {settings.NARRATIVE_TIMEOUT_SECONDS}s",
            request_id=request_id,
            provider=provider,
        )
        return PanesResult(build_fallback_panes(classification), NarrativeSource.FALLBACK)
    except Exception as e:
        log_with_context(
            logger,
            logging.ERROR,
            f"NarrativeGenerationFailure: provider error: {e}",
            request_id=request_id,
            provider=provider,
        )
        return PanesResult(build_fallback_panes(classification), NarrativeSource.FALLBACK)

    try:
        panes = parse_generated_panes(raw_output, classification)
    except (json.JSONDecodeError, ValidationError, ValueError) as e:
        log_with_context(
            logger,
            logging.WARNING,
            f"NarrativeGenerationFailure: malformed panes: {e}",
            request_id=request_id,
            provider=provider,
        )
        return PanesResult(build_fallback_panes(classification), NarrativeSource.FALLBACK)

    return PanesResult(panes, NarrativeSource.GENERATED)


def parse_generated_panes(raw_output: str, classification: SnapshotClassification) -> SnapshotPanes:
    """
    Validate model output and enforce pane rules.

    Lists are truncated to their caps rather than rejected. The correction
    prompt is kept only below the confidence threshold, and synthesized from
    the profiles if the model left it out.

    Raises:
        json.JSONDecodeError: If the output is not JSON
        pydantic.ValidationError: If the pane fields have the wrong shape
        ValueError: If a required pane is empty
    """
    generated = parse_llm_json(raw_output, _GeneratedPanes)

    whats_happening = _clean_items(generated.whats_happening)[:MAX_WHATS_HAPPENING]
    what_it_costs = _clean_items(generated.what_it_costs)[:MAX_WHAT_IT_COSTS]
    what_to_fix_first = _clean_items(generated.what_to_fix_first)[:MAX_WHAT_TO_FIX_FIRST]

    if not (whats_happening and what_it_costs and what_to_fix_first):
        raise ValueError("Generated panes contain an empty section")

    correction_prompt = None
    if classification.needs_correction:
        correction_prompt = _usable_correction(generated.correction_prompt) or build_correction_prompt(
            classification
        )

    return SnapshotPanes(
        whats_happening=whats_happening,
        what_it_costs=what_it_costs,
        what_to_fix_first=what_to_fix_first,
        correction_prompt=correction_prompt,
    )


def build_fallback_panes(classification: SnapshotClassification) -> SnapshotPanes:
    """Deterministic panes from the top archetype profile."""
    profile = get_profile(classification.top_archetype)
    return SnapshotPanes(
        whats_happening=list(profile.recognition_signals[:3]),
        what_it_costs=list(profile.typical_costs[:2]),
        what_to_fix_first=list(profile.first_fixes[:1]),
        correction_prompt=(
            build_correction_prompt(classification) if classification.needs_correction else None
        ),
    )


def build_correction_prompt(classification: SnapshotClassification) -> CorrectionPrompt:
    """Top vs runner-up, each represented by its first recognition signal."""
    return CorrectionPrompt(
        question=CORRECTION_QUESTION,
        option_a=get_profile(classification.top_archetype).recognition_signals[0],
        option_b=get_profile(classification.runner_up_archetype).recognition_signals[0],
    )


def build_user_prompt(
    classification: SnapshotClassification,
    evidence: list[EvidenceNugget] | None = None,
    label: str | None = None,
) -> str:
    """Assemble the user message from the classification, profiles and evidence."""
    top = classification.top_archetype
    runner_up = classification.runner_up_archetype
    top_profile = get_profile(top)
    runner_up_profile = get_profile(runner_up)
    needs_correction = classification.needs_correction

    sections = [
        f"Generate Clarity Snapshot panes for a {classification.top_stage.value} stage business.",
        "",
        "<classification>",
        f"Top archetype: {top.value} ({top_profile.short_name})",
        f"Runner-up: {runner_up.value} ({runner_up_profile.short_name})",
        f"Confidence: {classification.confidence}%",
        f"Key flags: {', '.join(classification.flags) or 'none'}",
        "</classification>",
        "",
        "<top_profile>",
        _format_profile(top_profile),
        "</top_profile>",
        "",
        "<runner_up_signals>",
        _bullets(runner_up_profile.recognition_signals),
        "</runner_up_signals>",
    ]

    if evidence:
        sections += [
            "",
            "<evidence>",
            "\n".join(f"- [{n.source.value}] {n.snippet}" for n in evidence),
            "</evidence>",
        ]

    if label:
        sections += ["", f"<business_name>{label}</business_name>"]

    sections += [
        "",
        "Use the archetype profile as a guide and be specific to this stage and these signals.",
    ]

    if needs_correction:
        sections += [
            "",
            f"IMPORTANT: Confidence is {classification.confidence}%, below {LOW_CONFIDENCE_THRESHOLD}%.",
            'You MUST include "correctionPrompt" with:',
            f'- question: "{CORRECTION_QUESTION}"',
            f"- optionA: short description from {top.value}",
            f"- optionB: short description from {runner_up.value}",
        ]

    sections += ["", "Return JSON:", _output_shape(needs_correction)]
    return "\n".join(sections)


# =========================
# Provider calls
# =========================


async def _call_provider(provider: str, user_prompt: str, request_id: str | None) -> str:
    if provider == PROVIDER_ANTHROPIC:
        return await _call_anthropic(user_prompt, request_id)
    if provider == PROVIDER_OPENAI:
        return await _call_openai(user_prompt, request_id)
    raise ValueError(f"Unknown narrative provider: {provider}")


async def _call_anthropic(user_prompt: str, request_id: str | None) -> str:
    from anthropic import AsyncAnthropic

    settings = get_settings()
    client = AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)

    start = time.time()
    response = await client.messages.create(
        model=settings.NARRATIVE_MODEL,
        max_tokens=settings.NARRATIVE_MAX_TOKENS,
        temperature=settings.NARRATIVE_TEMPERATURE,
        system=[
            {
                "type": "text",
                "text": SYSTEM_PROMPT,
                "cache_control": {"type": "ephemeral"},
            }
        ],
        messages=[{"role": "user", "content": user_prompt}],
    )
    duration_ms = int((time.time() - start) * 1000)

    usage = response.usage
    log_llm_usage(
        workflow="clarity_snapshot_panes",
        model=settings.NARRATIVE_MODEL,
        provider=PROVIDER_ANTHROPIC,
        tokens_input=usage.input_tokens,
        tokens_output=usage.output_tokens,
        duration_ms=duration_ms,
        request_id=request_id,
        chain="generate_snapshot_panes",
        tokens_cache_read=getattr(usage, "cache_read_input_tokens", 0) or 0,
    )

    return response.content[0].text


async def _call_openai(user_prompt: str, request_id: str | None) -> str:
    settings = get_settings()
    llm = get_llm(
        temperature=settings.NARRATIVE_TEMPERATURE,
        max_tokens=settings.NARRATIVE_MAX_TOKENS,
    )
    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]

    start = time.time()
    response = await llm.ainvoke(messages)
    duration_ms = int((time.time() - start) * 1000)

    usage = getattr(response, "usage_metadata", None) or {}
    log_llm_usage(
        workflow="clarity_snapshot_panes",
        model=settings.NARRATIVE_OPENAI_MODEL,
        provider=PROVIDER_OPENAI,
        tokens_input=usage.get("input_tokens", 0),
        tokens_output=usage.get("output_tokens", 0),
        duration_ms=duration_ms,
        request_id=request_id,
        chain="generate_snapshot_panes",
    )

    content = response.content
    if not isinstance(content, str):
        raise ValueError("OpenAI response content is not text")
    return content


# =========================
# Helpers
# =========================


def _usable_correction(raw: Any) -> CorrectionPrompt | None:
    """Validate the model's correctionPrompt; anything malformed counts as absent."""
    if raw is None:
        return None
    try:
        generated = _GeneratedCorrection.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Ignoring malformed correctionPrompt: {e}")
        return None

    option_a = (generated.option_a or "").strip()
    option_b = (generated.option_b or "").strip()
    if not option_a or not option_b:
        return None
    return CorrectionPrompt(
        question=(generated.question or "").strip() or CORRECTION_QUESTION,
        option_a=option_a,
        option_b=option_b,
    )


def _clean_items(items: list[str]) -> list[str]:
    return [item.strip() for item in items if item and item.strip()]


def _format_profile(profile: ArchetypeProfile) -> str:
    return "\n".join([
        "Recognition signals:",
        _bullets(profile.recognition_signals),
        "Typical costs:",
        _bullets(profile.typical_costs),
        "First fixes:",
        _bullets(profile.first_fixes),
    ])


def _bullets(items: tuple[str, ...]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _output_shape(needs_correction: bool) -> str:
    shape: dict = {
        "whatsHappening": ["bullet 1", "bullet 2", "bullet 3"],
        "whatItCosts": ["cost 1", "cost 2"],
        "whatToFixFirst": ["action 1"],
    }
    if needs_correction:
        shape["correctionPrompt"] = {
            "question": CORRECTION_QUESTION,
            "optionA": "Description from top archetype",
            "optionB": "Description from runner-up",
        }
    return json.dumps(shape, indent=2)
