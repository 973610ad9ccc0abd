from __future__ import annotations

from .models import IntentBucket, IntentClassification, MatchConfidence
from .rules import DEFAULT_RULES, ReasoningRules

_INTENT_LABELS = {
    IntentBucket.SCHEDULING: "Scheduling & Appointments",
    IntentBucket.CLINICAL_DRAFTING: "Clinical Documentation",
    IntentBucket.RECORD_SUMMARY: "Record Summary",
    IntentBucket.BILLING_EXPLANATION: "Billing & Insurance",
    IntentBucket.UNKNOWN: "General Inquiry",
}


def normalize_message(message: str | None) -> str:
    return (message or "").lower().strip()


def classify_intent(message: str | None, *, rules: ReasoningRules = DEFAULT_RULES) -> IntentClassification:
    """Map a message to an intent bucket by keyword substring matching.

    The bucket with the most matches wins; ties go to the bucket declared first
    in ``rules.intent_priority``. Confidence is high only with two or more hits.
    """
    normalized = normalize_message(message)
    best_intent = IntentBucket.UNKNOWN
    best_keywords: tuple[str, ...] = ()

    if normalized:
        for intent in rules.intent_priority:
            matched = tuple(keyword for keyword in rules.keywords_for(intent) if keyword in normalized)
            if len(matched) > len(best_keywords):
                best_intent = intent
                best_keywords = matched

    if not best_keywords:
        return IntentClassification(
            intent=IntentBucket.UNKNOWN,
            matched_keywords=(),
            confidence=MatchConfidence.LOW,
        )
    return IntentClassification(
        intent=best_intent,
        matched_keywords=best_keywords,
        confidence=MatchConfidence.HIGH if len(best_keywords) >= 2 else MatchConfidence.LOW,
    )


def get_intent_label(intent: IntentBucket) -> str:
    return _INTENT_LABELS[intent]
