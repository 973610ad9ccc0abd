"""Perspective-aware wording for the assistant reply.

Framing only touches tone and vocabulary. Dates, quoted titles and counts are
carried over untouched, and the "Based on:" evidence block is never rewritten.
"""

from __future__ import annotations

import re
from typing import Sequence

from .language_safety import ensure_language_safety
from .logging_config import get_logger
from .models import ActorRole, FramingResult
from .rules import DEFAULT_RULES, ReasoningRules

logger = get_logger("framing")

EVIDENCE_MARKER = "\n\nBased on:\n"

Replacement = tuple[re.Pattern[str], str]


def _rules(*pairs: tuple[str, str], flags: int = re.IGNORECASE) -> tuple[Replacement, ...]:
    return tuple((re.compile(pattern, flags), replacement) for pattern, replacement in pairs)


_VOCABULARY: dict[ActorRole, tuple[Replacement, ...]] = {
    ActorRole.PATIENT: _rules(
        (r"\bthe patient(?:'s)? timeline\b", "your health history"),
        (r"\bclinical notes?\b", "visit summaries"),
        (r"\bscheduling actions\b", "appointment changes"),
        (r"\bbilling actions\b", "billing changes"),
        (r"\bstatic data for informational purposes only\b", "sample information shown for preview only"),
    ),
    ActorRole.CLINICIAN: _rules(
        (r"\bThis is read-only data; no scheduling actions can be performed\.", "Read-only. No scheduling actions."),
        (r"\bThis is static data for informational purposes only\.", "Static data, informational only."),
        (r"\bPlease try asking about\b", "Available queries:"),
        (r"\bHere's what I found in the patient's timeline:", "Timeline results:"),
        (r"\bI found (\d+) potentially relevant item(s?) in the timeline\b", r"\1 potentially relevant item\2"),
    ),
    ActorRole.OPERATOR: _rules(
        (r"\bI understand you're asking about\b", "[QUERY CLASSIFIED]"),
        (r"\bHere's what I found\b", "[QUERY RESULT]"),
        (r"\bI searched for\b", "[SEARCH]"),
        (r"\bI found\b", "[RECORD MATCH]"),
        (r"\bBased on the patient timeline\b", "[TIMELINE QUERY]"),
        (r"\bI couldn't find any relevant information\b", "[NO MATCH]"),
        (r"\bThe most recent is from\b", "Most recent record:"),
        (r"\bThe most relevant is from\b", "Top match:"),
        (r"\bfor informational purposes only\b", "[INFORMATIONAL SCOPE]"),
        (r"\bThis is read-only data\b", "[READ-ONLY MODE]"),
        (r"\bThis is static data\b", "[STATIC DATA]"),
    ),
}

_PATIENT_REASSURANCE = _rules(
    (r"\bno appointment changes can be performed\b", "this preview cannot make any changes to your appointments"),
    (r"\bNo billing changes can be performed\b", "This preview cannot make any billing changes"),
    (r"\bNo visit summaries can be drafted or stored\b", "This preview cannot create or store any notes"),
    flags=0,
)

_SAFETY = _rules(
    (r"\bwill be (scheduled|booked|saved|updated|created)\b", r"would be \1"),
    (r"\bis being (scheduled|booked|saved|updated)\b", r"would be \1"),
    (r"\bhas been (scheduled|booked|saved|updated|created)\b", r"would have been \1"),
)

_PREFIXES = {
    ActorRole.PATIENT: "",
    ActorRole.CLINICIAN: "",
    ActorRole.OPERATOR: "[OBSERVATION] ",
}

_SUFFIXES = {
    ActorRole.PATIENT: "\n\nThis is preview information only. No changes have been made to your records.",
    ActorRole.CLINICIAN: "",
    ActorRole.OPERATOR: "\n\n[AUDIT NOTE: Read-only observation. No action has been taken.]",
}

_EXECUTION_CLAIMS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bwill\s+(?:execute|perform|complete|schedule|book|save|update|create|delete|modify)\b",
        r"\bdoes\s+(?:execute|perform)\b",
        r"\bI am (?:scheduling|booking|saving|updating|creating)\b",
        r"\bI have (?:scheduled|booked|saved|updated|created)\b",
    )
)

_QUOTED = re.compile(r'("[^"]*")')
_DATE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
_COUNT = re.compile(r"\b\d+\s+(?:relevant|clinical|item|record|billing)", re.IGNORECASE)


def _apply(text: str, replacements: Sequence[Replacement]) -> str:
    # Quoted spans are record data and keep their exact wording.
    parts = _QUOTED.split(text)
    for index in range(0, len(parts), 2):
        for pattern, replacement in replacements:
            parts[index] = pattern.sub(replacement, parts[index])
    return "".join(parts)


def _split_evidence(text: str) -> tuple[str, str]:
    position = text.find(EVIDENCE_MARKER)
    if position == -1:
        return text, ""
    return text[:position], text[position:]


def validate_no_execution_language(text: str) -> bool:
    return not any(pattern.search(text) for pattern in _EXECUTION_CLAIMS)


def extract_factual_content(text: str) -> list[str]:
    facts = _DATE.findall(text)
    facts.extend(match[1:-1] for match in _QUOTED.findall(text))
    facts.extend(_COUNT.findall(text))
    return facts


def validate_facts_preserved(original: str, framed: str) -> bool:
    return all(fact in framed for fact in extract_factual_content(original))


def frame_response_for_perspective(base_response: str, perspective: ActorRole) -> FramingResult:
    """Reword ``base_response`` for whoever is reading it."""
    if not base_response or not base_response.strip():
        return FramingResult(base_response, perspective, was_transformed=False)

    main, evidence = _split_evidence(base_response)
    framed = _apply(main, _VOCABULARY[perspective])
    if perspective is ActorRole.PATIENT:
        framed = _apply(framed, _PATIENT_REASSURANCE)
    framed = _apply(framed, _SAFETY)

    prefix = _PREFIXES[perspective]
    if prefix and not framed.startswith(prefix):
        framed = prefix + framed
    framed = f"{framed}{evidence}{_SUFFIXES[perspective]}"

    return FramingResult(framed, perspective, was_transformed=framed != base_response)


def frame_assistant_response(
    base_response: str,
    perspective: ActorRole,
    *,
    rules: ReasoningRules = DEFAULT_RULES,
) -> FramingResult:
    """Frame the reply and check the result before it leaves the pipeline.

    A framed reply that drops a fact or claims an action falls back to the
    unframed text. Only the template wording goes through the language-safety
    check: quoted titles and the evidence block are patient data.
    """
    result = frame_response_for_perspective(base_response, perspective)
    main, _ = _split_evidence(result.framed_response)
    template_text = _QUOTED.sub('""', main) + _SUFFIXES[perspective]

    if not validate_facts_preserved(base_response, result.framed_response) or not validate_no_execution_language(
        template_text
    ):
        logger.error("Framed response rejected", extra={"perspective": perspective.value})
        return FramingResult(base_response, perspective, was_transformed=False)

    ensure_language_safety(template_text, f"framing.{perspective.value}", rules=rules)
    return result
