from __future__ import annotations

from typing import Sequence

from .models import (
    ComparativeInsights,
    ConfidenceAnnotation,
    ConfidenceLevel,
    EpistemicCategory,
    IntentBucket,
    RelevanceResult,
)

_CATEGORY_LABELS = {
    EpistemicCategory.OBSERVED: "Fact (Observed)",
    EpistemicCategory.PATTERN: "Inference (Pattern)",
    EpistemicCategory.COMPARATIVE: "Inference (Comparative)",
    EpistemicCategory.UNCERTAIN: "Uncertainty (Gap)",
}


def build_confidence_annotations(
    relevance: RelevanceResult,
    comparative: ComparativeInsights,
) -> list[ConfidenceAnnotation]:
    annotations: list[ConfidenceAnnotation] = []

    if relevance.selected_items:
        top = relevance.selected_items[0]
        annotations.append(
            ConfidenceAnnotation(
                statement=f'Directly referenced record from {top.date.isoformat()}: "{top.title}".',
                category=EpistemicCategory.OBSERVED,
                confidence=ConfidenceLevel.HIGH,
                reason="This information is explicitly recorded in the patient timeline.",
            )
        )

    if comparative.trends:
        annotations.append(
            ConfidenceAnnotation(
                statement=comparative.trends[0],
                category=EpistemicCategory.PATTERN,
                confidence=ConfidenceLevel.MEDIUM,
                reason="Derived from recurring data points or temporal patterns in the records.",
            )
        )

    if comparative.differences_vs_last_encounter:
        annotations.append(
            ConfidenceAnnotation(
                statement=comparative.differences_vs_last_encounter[0],
                category=EpistemicCategory.COMPARATIVE,
                confidence=ConfidenceLevel.MEDIUM,
                reason="Calculated by comparing the current context against the previous visit record.",
            )
        )

    if comparative.gaps:
        annotations.append(
            ConfidenceAnnotation(
                statement=comparative.gaps[0],
                category=EpistemicCategory.UNCERTAIN,
                confidence=ConfidenceLevel.LOW,
                reason="Identified a potential gap or missing follow-up in the historical record.",
            )
        )
    elif not relevance.has_evidence:
        annotations.append(
            ConfidenceAnnotation(
                statement="No relevant evidence found for this specific query in the patient timeline.",
                category=EpistemicCategory.UNCERTAIN,
                confidence=ConfidenceLevel.LOW,
                reason="The query does not match any items in the supplied timeline.",
            )
        )

    if relevance.intent is IntentBucket.UNKNOWN:
        annotations.append(
            ConfidenceAnnotation(
                statement="The query's clinical or administrative intent is ambiguous.",
                category=EpistemicCategory.UNCERTAIN,
                confidence=ConfidenceLevel.LOW,
                reason="Insufficient keyword matches to confidently categorize this request.",
            )
        )

    return annotations


def overall_confidence(annotations: Sequence[ConfidenceAnnotation]) -> ConfidenceLevel:
    if not annotations:
        return ConfidenceLevel.MEDIUM
    levels = {annotation.confidence for annotation in annotations}
    if ConfidenceLevel.LOW in levels:
        return ConfidenceLevel.LOW
    if ConfidenceLevel.MEDIUM in levels:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH


def get_category_label(category: EpistemicCategory) -> str:
    return _CATEGORY_LABELS[category]
