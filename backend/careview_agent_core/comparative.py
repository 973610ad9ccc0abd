from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence, Union

from .models import ComparativeInsights, EventKind, IntentBucket, ScoredTimelineItem, TimelineEvent
from .relevance import extract_content_keywords
from .rules import DEFAULT_RULES, ReasoningRules
from .time_utils import days_between

_ENCOUNTER_KINDS = {EventKind.VISIT, EventKind.NOTE}

RelevantItem = Union[TimelineEvent, ScoredTimelineItem]


def _as_event(item: RelevantItem) -> TimelineEvent:
    return item.event if isinstance(item, ScoredTimelineItem) else item


def find_last_encounter(timeline: Iterable[TimelineEvent]) -> TimelineEvent | None:
    encounters = [event for event in timeline if event.kind in _ENCOUNTER_KINDS]
    if not encounters:
        return None
    # First of the latest date wins, matching a stable descending sort.
    return max(encounters, key=lambda event: event.date.toordinal())


def _differences(message: str, last_encounter: TimelineEvent | None, rules: ReasoningRules) -> list[str]:
    if last_encounter is None:
        return []
    current = extract_content_keywords(message, rules=rules)
    previous = extract_content_keywords(last_encounter.text, rules=rules)
    current_set = set(current)
    previous_set = set(previous)

    differences = [f"New in this request vs last encounter: {kw}" for kw in current if kw not in previous_set]
    differences.extend(
        f"Previously mentioned but not in this request: {kw}" for kw in previous if kw not in current_set
    )
    return differences


def _trends(
    relevant: Sequence[TimelineEvent],
    timeline: Sequence[TimelineEvent],
    reference_date: date,
    rules: ReasoningRules,
) -> list[str]:
    keyword_dates: dict[str, set[date]] = {}
    for event in timeline:
        for kw in extract_content_keywords(event.text, rules=rules):
            keyword_dates.setdefault(kw, set()).add(event.date)

    trends = [
        f"Repeated mention across visits: {kw} ({len(dates)} times)"
        for kw, dates in keyword_dates.items()
        if len(dates) >= 2
    ]

    if relevant:
        newest = max(relevant, key=lambda event: event.date.toordinal())
        if days_between(newest.date, reference_date) <= rules.recency_window_days:
            trends.append(
                f"Recency: Newest relevant item is within {rules.recency_window_days} days of the reference date."
            )
    return trends


def _gaps(timeline: Sequence[TimelineEvent], rules: ReasoningRules) -> list[str]:
    gaps: list[str] = []
    visits = [event for event in timeline if event.kind is EventKind.VISIT]

    for referral in timeline:
        if "referral" not in referral.title.lower() and "referral" not in referral.summary.lower():
            continue
        followed_up = any(
            0 < (visit.date - referral.date).days <= rules.follow_up_window_days for visit in visits
        )
        if not followed_up:
            gaps.append(
                f"Referral with no follow-up visit within {rules.follow_up_window_days} days: "
                f"{referral.title} ({referral.date.isoformat()})"
            )

    encounters = sorted(
        (event for event in timeline if event.kind in _ENCOUNTER_KINDS),
        key=lambda event: event.date.toordinal(),
    )
    for current, following in zip(encounters, encounters[1:]):
        span = (following.date - current.date).days
        if span > rules.care_gap_days:
            gaps.append(f"Care gap: {current.date.isoformat()} to {following.date.isoformat()} ({span} days)")
    return gaps


def build_comparative_insights(
    *,
    intent: IntentBucket,
    message: str,
    relevant_items: Iterable[RelevantItem],
    timeline: Iterable[TimelineEvent],
    reference_date: date,
    rules: ReasoningRules = DEFAULT_RULES,
) -> ComparativeInsights:
    """Compare the current request against the history in ``timeline``.

    ``reference_date`` stands in for "today" in every day calculation so that
    the same inputs always produce the same insights. ``intent`` is accepted
    for interface parity with the other stages and does not change the rules.
    """
    events = list(timeline)
    relevant = [_as_event(item) for item in relevant_items]
    cap = rules.max_insight_bullets

    last_encounter = find_last_encounter(events)

    attribution: list[str] = []
    used_dates: set[date] = set()
    if last_encounter is not None:
        attribution.append(last_encounter.attribution())
        used_dates.add(last_encounter.date)
    for event in relevant:
        if event.date not in used_dates:
            attribution.append(event.attribution())
            used_dates.add(event.date)

    return ComparativeInsights(
        last_encounter=last_encounter.attribution() if last_encounter else None,
        time_since_last_encounter_days=(
            days_between(last_encounter.date, reference_date) if last_encounter else None
        ),
        differences_vs_last_encounter=tuple(_differences(message, last_encounter, rules)[:cap]),
        trends=tuple(_trends(relevant, events, reference_date, rules)[:cap]),
        gaps=tuple(_gaps(events, rules)[:cap]),
        evidence_attribution=tuple(attribution),
    )
