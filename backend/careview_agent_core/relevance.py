from __future__ import annotations

from typing import Iterable

from .intent import classify_intent, get_intent_label
from .models import (
    IntentBucket,
    IntentClassification,
    RelevanceResult,
    ScoreBreakdown,
    ScoredTimelineItem,
    Timeline,
    TimelineEvent,
)
from .rules import DEFAULT_RULES, ReasoningRules


def _normalize_text(text: str) -> str:
    return text.lower().strip()


def extract_content_keywords(text: str | None, *, rules: ReasoningRules = DEFAULT_RULES) -> list[str]:
    words = [
        word
        for word in _normalize_text(text or "").split()
        if len(word) >= rules.min_keyword_length and word not in rules.stop_words
    ]
    return list(dict.fromkeys(words))


def is_billing_related(event: TimelineEvent, *, rules: ReasoningRules = DEFAULT_RULES) -> bool:
    text = _normalize_text(event.text)
    return any(keyword in text for keyword in rules.billing_keywords)


def score_event(
    event: TimelineEvent,
    intent: IntentBucket,
    message_keywords: Iterable[str],
    is_most_recent: bool,
    *,
    rules: ReasoningRules = DEFAULT_RULES,
) -> ScoredTimelineItem:
    type_match = 0
    if event.kind in rules.kinds_for(intent):
        if intent is not IntentBucket.BILLING_EXPLANATION or is_billing_related(event, rules=rules):
            type_match = rules.type_match_score

    event_text = _normalize_text(event.text)
    keyword_match = rules.keyword_match_score if any(kw in event_text for kw in message_keywords) else 0

    breakdown = ScoreBreakdown(
        type_match=type_match,
        keyword_match=keyword_match,
        recency_bonus=rules.recency_bonus_score if is_most_recent else 0,
    )
    return ScoredTimelineItem(event=event, score=breakdown.total, breakdown=breakdown)


def select_relevant_items(
    message: str | None,
    timeline: Timeline,
    *,
    classification: IntentClassification | None = None,
    rules: ReasoningRules = DEFAULT_RULES,
) -> RelevanceResult:
    """Score every timeline event and keep the top matches for the message.

    Recency alone never selects an event: an item needs a type or keyword
    match. Ordering is score descending, then date descending.
    """
    if classification is None:
        classification = classify_intent(message, rules=rules)
    intent = classification.intent
    message_keywords = extract_content_keywords(message, rules=rules)

    events = list(timeline.events)
    most_recent = max((event.date for event in events), default=None)

    scored = [
        score_event(event, intent, message_keywords, event.date == most_recent, rules=rules)
        for event in events
    ]
    scored.sort(key=lambda item: (-item.score, -item.date.toordinal()))

    selected = tuple(
        item for item in scored if item.breakdown.type_match > 0 or item.breakdown.keyword_match > 0
    )[: rules.max_selected_items]

    return RelevanceResult(
        intent=intent,
        selected_items=selected,
        explanation=tuple(_explain(classification, selected, len(events))),
        has_evidence=bool(selected),
        max_score=selected[0].score if selected else 0,
        evidence_attribution=tuple(item.event.attribution() for item in selected),
    )


def _explain(
    classification: IntentClassification,
    selected: tuple[ScoredTimelineItem, ...],
    total_events: int,
) -> list[str]:
    intent = classification.intent
    label = get_intent_label(intent)
    bullets: list[str] = []

    if intent is IntentBucket.UNKNOWN:
        bullets.append(f"Intent classified as: {label} (no specific keywords matched)")
    else:
        bullets.append(f"Intent classified as: {label} (matched: {', '.join(classification.matched_keywords)})")

    if not selected:
        if intent is IntentBucket.BILLING_EXPLANATION:
            bullets.append("No billing-related evidence found in the patient timeline.")
        elif intent is IntentBucket.UNKNOWN:
            bullets.append(
                "No timeline items matched the query. Please try using specific medical or scheduling terms."
            )
        else:
            bullets.append(f"No relevant {label.lower()} evidence found in the {total_events} timeline events.")
    else:
        plural = "s" if len(selected) > 1 else ""
        bullets.append(f"Found {len(selected)} relevant item{plural} from the patient timeline:")
        for item in selected:
            tags = []
            if item.breakdown.type_match > 0:
                tags.append("type match")
            if item.breakdown.keyword_match > 0:
                tags.append("keyword match")
            if item.breakdown.recency_bonus > 0:
                tags.append("most recent")
            bullets.append(f'• {item.date.isoformat()}: "{item.title}" ({item.kind.value}) - {", ".join(tags)}')

    if intent is IntentBucket.BILLING_EXPLANATION and not selected:
        bullets.append("Gap: The timeline contains no billing or insurance records for this patient.")

    return bullets
