from __future__ import annotations

from typing import Sequence

from .models import EventKind, IntentBucket, ScoredTimelineItem, SynthesisPattern, SynthesisResult
from .rules import DEFAULT_RULES, ReasoningRules


def _item_id(item: ScoredTimelineItem) -> str:
    return f"{item.date.isoformat()}:{item.title}"


def _synthesis_text(intent: IntentBucket, items: Sequence[ScoredTimelineItem]) -> str:
    ordered = sorted(items, key=lambda item: item.date.toordinal(), reverse=True)
    latest, earliest = ordered[0], ordered[-1]
    first, last = earliest.date.isoformat(), latest.date.isoformat()

    if intent is IntentBucket.SCHEDULING:
        return (
            f"The patient's timeline shows {len(items)} relevant events between {first} and {last}. "
            f"Recent records indicate a {latest.title} on {last}, which follows earlier activity in "
            f"{earliest.date.month:02d}/{earliest.date.year}. No new appointments are shown in this view."
        )
    if intent is IntentBucket.CLINICAL_DRAFTING:
        return (
            f"Contextual evidence from {first} to {last} suggests a focus on {latest.title.lower()}. "
            f"Previous documentation from {first} provides background for the current assessment. "
            "This synthesis is observational and based solely on the supplied records."
        )
    if intent is IntentBucket.RECORD_SUMMARY:
        return (
            f"A review of {len(items)} records from {first} to {last} reveals a sequence of clinical events. "
            f"The most recent activity was a {latest.title} on {last}. "
            f"Earlier records from {first} establish the baseline for these observations."
        )
    return (
        f"Based on {len(items)} items found between {first} and {last}, the patient has a documented history "
        f"of {latest.title.lower()} as of {last}. These observations are drawn directly from the timeline "
        "without inference."
    )


def _detect_patterns(items: Sequence[ScoredTimelineItem], rules: ReasoningRules) -> list[SynthesisPattern]:
    patterns: list[SynthesisPattern] = []
    chronological = sorted(items, key=lambda item: item.date.toordinal())

    for keyword in rules.synthesis_pattern_keywords:
        matches = [item for item in items if keyword in item.title.lower() or keyword in item.summary.lower()]
        if len(matches) >= 2:
            patterns.append(
                SynthesisPattern(
                    type="Repeated Concern",
                    description=f'Multiple references to "{keyword}" detected across {len(matches)} items.',
                    supporting_item_ids=tuple(_item_id(item) for item in matches),
                )
            )

    for position, item in enumerate(chronological):
        if item.kind is not EventKind.EVENT or "referral" not in item.title.lower():
            continue
        followed = any(
            later.kind in {EventKind.NOTE, EventKind.VISIT} for later in chronological[position + 1 :]
        )
        if not followed:
            patterns.append(
                SynthesisPattern(
                    type="Awaiting Follow-up",
                    description=(
                        f'Referral "{item.title}" on {item.date.isoformat()} has no subsequent visit '
                        "or clinical note in this view."
                    ),
                    supporting_item_ids=(_item_id(item),),
                )
            )

    for current, following in zip(chronological, chronological[1:]):
        span = (following.date - current.date).days
        if span > rules.care_gap_days:
            patterns.append(
                SynthesisPattern(
                    type="Time Gap",
                    description=f'Significant gap of {span} days between "{current.title}" and "{following.title}".',
                    supporting_item_ids=(_item_id(current), _item_id(following)),
                )
            )
    return patterns


def analyze_timeline(
    intent: IntentBucket,
    items: Sequence[ScoredTimelineItem],
    *,
    rules: ReasoningRules = DEFAULT_RULES,
) -> SynthesisResult:
    """Summarize the selected items and surface repeated concerns and gaps.

    Needs at least two items; with fewer there is nothing to compare.
    """
    if len(items) < 2:
        return SynthesisResult(synthesis="Insufficient context to synthesize.")

    patterns = _detect_patterns(items, rules)
    if patterns:
        stand_out = tuple(pattern.description for pattern in patterns[: rules.max_stand_out_lines])
    else:
        stand_out = ("No significant patterns detected in the current context.",)

    return SynthesisResult(
        synthesis=_synthesis_text(intent, items),
        patterns=tuple(patterns),
        stand_out_summary=stand_out,
    )
