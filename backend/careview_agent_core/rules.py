from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .models import EventKind, IntentBucket


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class ReasoningRules:
    """Keyword tables and thresholds shared by every reasoning stage.

    Built once at import time and passed to stages as a read-only value.
    """

    intent_priority: tuple[IntentBucket, ...] = (
        IntentBucket.SCHEDULING,
        IntentBucket.CLINICAL_DRAFTING,
        IntentBucket.RECORD_SUMMARY,
        IntentBucket.BILLING_EXPLANATION,
    )
    intent_keywords: Mapping[IntentBucket, tuple[str, ...]] = field(
        default_factory=lambda: _frozen(
            {
                IntentBucket.SCHEDULING: (
                    "appointment",
                    "schedule",
                    "reschedule",
                    "book",
                    "booking",
                    "slot",
                    "time",
                    "date",
                    "availability",
                ),
                IntentBucket.CLINICAL_DRAFTING: (
                    "note",
                    "soap",
                    "assessment",
                    "plan",
                    "diagnosis",
                    "draft",
                    "clinical",
                    "summary for chart",
                ),
                IntentBucket.RECORD_SUMMARY: (
                    "what happened",
                    "last visit",
                    "results",
                    "labs",
                    "imaging",
                    "discharge",
                    "medication",
                    "follow-up",
                    "followup",
                    "history",
                ),
                IntentBucket.BILLING_EXPLANATION: (
                    "bill",
                    "invoice",
                    "cost",
                    "charge",
                    "payment",
                    "refund",
                    "insurance",
                ),
            }
        )
    )
    allowed_kinds: Mapping[IntentBucket, frozenset[EventKind]] = field(
        default_factory=lambda: _frozen(
            {
                IntentBucket.SCHEDULING: frozenset({EventKind.VISIT, EventKind.EVENT}),
                IntentBucket.CLINICAL_DRAFTING: frozenset({EventKind.NOTE, EventKind.VISIT}),
                IntentBucket.RECORD_SUMMARY: frozenset({EventKind.VISIT, EventKind.EVENT, EventKind.NOTE}),
                IntentBucket.BILLING_EXPLANATION: frozenset({EventKind.EVENT}),
            }
        )
    )
    billing_keywords: tuple[str, ...] = ("bill", "invoice", "charge", "payment", "insurance", "copay", "claim")
    stop_words: frozenset[str] = frozenset(
        {
            "the", "and", "for", "are", "but", "not", "you", "all",
            "can", "her", "was", "one", "our", "out", "has", "have",
            "been", "will", "what", "when", "where", "how", "who",
            "this", "that", "with", "from", "they", "more", "some",
            "than", "into", "just", "your", "about", "would", "could",
            "should", "their", "there", "which", "these", "those",
            "want", "need", "please", "tell", "show", "give",
        }
    )
    min_keyword_length: int = 3
    max_selected_items: int = 3
    type_match_score: int = 3
    keyword_match_score: int = 2
    recency_bonus_score: int = 1

    max_insight_bullets: int = 4
    recency_window_days: int = 30
    follow_up_window_days: int = 90
    care_gap_days: int = 90
    clarifying_score_threshold: int = 3

    synthesis_pattern_keywords: tuple[str, ...] = ("pain", "hypertension", "glucose", "follow-up", "wellness")
    max_stand_out_lines: int = 3

    forbidden_standalone_words: tuple[str, ...] = ("submit", "confirmed", "booked", "sent", "saved", "approved")
    safe_context_phrases: tuple[str, ...] = (
        "preview only",
        "preview-only",
        "no action",
        "would normally",
        "would typically",
    )
    conditional_patterns: tuple[str, ...] = (
        "would normally",
        "would not normally",
        "would typically",
        "would usually",
        "a clinician would",
        "a patient would",
        "an operator would",
        "no action has been taken",
        "preview only",
    )

    default_session_role: str = "Demo User"

    def keywords_for(self, intent: IntentBucket) -> tuple[str, ...]:
        return self.intent_keywords.get(intent, ())

    def kinds_for(self, intent: IntentBucket) -> frozenset[EventKind]:
        return self.allowed_kinds.get(intent, frozenset())


DEFAULT_RULES = ReasoningRules()
