from __future__ import annotations

from typing import Sequence

from .models import (
    ActionReadinessResult,
    ConfidenceAnnotation,
    EpistemicCategory,
    IntentBucket,
    ReadinessCategory,
    RelevanceResult,
)

NO_ACTION_TAKEN = "No action has been taken."

_INTENT_READINESS = {
    IntentBucket.SCHEDULING: ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION,
    IntentBucket.CLINICAL_DRAFTING: ReadinessCategory.REQUIRES_CLINICIAN_REVIEW,
    IntentBucket.RECORD_SUMMARY: ReadinessCategory.INFORMATIONAL_ONLY,
    IntentBucket.BILLING_EXPLANATION: ReadinessCategory.INFORMATIONAL_ONLY,
}

_EXPLANATIONS = {
    ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM: (
        "This request could not be matched to a supported workflow with the available evidence. "
        "This system does not perform this action."
    ),
    ReadinessCategory.REQUIRES_ADDITIONAL_DATA: (
        "Uncertainty was detected in the available records. "
        "This would normally require additional data points before any workflow could proceed."
    ),
    ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION: (
        "This would normally require a clinician to coordinate availability "
        "and the patient to confirm the proposed time."
    ),
    ReadinessCategory.REQUIRES_CLINICIAN_REVIEW: (
        "This would normally require a clinician to review and authorize any drafted documentation."
    ),
    ReadinessCategory.INFORMATIONAL_ONLY: (
        "This response is provided for informational purposes only "
        "and would not normally require a follow-up action."
    ),
}


def _result(category: ReadinessCategory) -> ActionReadinessResult:
    return ActionReadinessResult(category=category, explanation=f"{_EXPLANATIONS[category]} {NO_ACTION_TAKEN}")


def evaluate_action_readiness(
    intent: IntentBucket,
    relevance: RelevanceResult,
    annotations: Sequence[ConfidenceAnnotation],
) -> ActionReadinessResult:
    """Decide what kind of human action the request would normally need.

    Rules apply in order and the first match wins: no intent or no evidence,
    then any uncertainty, then the per-intent mapping.
    """
    if intent is IntentBucket.UNKNOWN or not relevance.has_evidence:
        return _result(ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM)
    if any(annotation.category is EpistemicCategory.UNCERTAIN for annotation in annotations):
        return _result(ReadinessCategory.REQUIRES_ADDITIONAL_DATA)
    return _result(_INTENT_READINESS.get(intent, ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM))
