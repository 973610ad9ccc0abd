from __future__ import annotations

import pytest

from careview_agent_core.confirmation import (
    evaluate_human_confirmation,
    get_actor_label,
    get_decision_type_label,
)
from careview_agent_core.language_safety import validate_language_safety
from careview_agent_core.models import (
    ActionReadinessResult,
    ConfidenceAnnotation,
    ConfidenceLevel,
    DecisionType,
    EpistemicCategory,
    IntentBucket,
    ReadinessCategory,
    RelevanceResult,
    RequiredActor,
    ScoreBreakdown,
    ScoredTimelineItem,
)
from careview_agent_core.readiness import NO_ACTION_TAKEN, evaluate_action_readiness
from timeline_utils import make_event


def _relevance(intent: IntentBucket, has_evidence: bool = True) -> RelevanceResult:
    items = ()
    if has_evidence:
        event = make_event("2025-11-20", "visit", "Routine Follow-up")
        items = (ScoredTimelineItem(event=event, score=4, breakdown=ScoreBreakdown(3, 0, 1)),)
    return RelevanceResult(
        intent=intent,
        selected_items=items,
        explanation=(),
        has_evidence=has_evidence,
        max_score=4 if has_evidence else 0,
    )


_OBSERVED = ConfidenceAnnotation("s", EpistemicCategory.OBSERVED, ConfidenceLevel.HIGH, "r")
_UNCERTAIN = ConfidenceAnnotation("s", EpistemicCategory.UNCERTAIN, ConfidenceLevel.LOW, "r")


@pytest.mark.parametrize(
    ("intent", "expected"),
    [
        (IntentBucket.SCHEDULING, ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION),
        (IntentBucket.CLINICAL_DRAFTING, ReadinessCategory.REQUIRES_CLINICIAN_REVIEW),
        (IntentBucket.RECORD_SUMMARY, ReadinessCategory.INFORMATIONAL_ONLY),
        (IntentBucket.BILLING_EXPLANATION, ReadinessCategory.INFORMATIONAL_ONLY),
    ],
)
def test_intent_mapping_when_evidence_is_clean(intent, expected):
    result = evaluate_action_readiness(intent, _relevance(intent), [_OBSERVED])
    assert result.category is expected
    assert result.explanation.endswith(NO_ACTION_TAKEN)


def test_unknown_intent_or_missing_evidence_is_not_actionable():
    unknown = evaluate_action_readiness(IntentBucket.UNKNOWN, _relevance(IntentBucket.UNKNOWN), [_OBSERVED])
    assert unknown.category is ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM
    assert "This system does not perform this action." in unknown.explanation

    no_evidence = evaluate_action_readiness(
        IntentBucket.SCHEDULING, _relevance(IntentBucket.SCHEDULING, has_evidence=False), [_UNCERTAIN]
    )
    assert no_evidence.category is ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM


def test_uncertainty_takes_precedence_over_intent_mapping():
    result = evaluate_action_readiness(
        IntentBucket.SCHEDULING, _relevance(IntentBucket.SCHEDULING), [_OBSERVED, _UNCERTAIN]
    )
    assert result.category is ReadinessCategory.REQUIRES_ADDITIONAL_DATA
    assert "would normally require additional data points" in result.explanation


def test_readiness_explanations_use_conditional_phrasing():
    scheduling = evaluate_action_readiness(IntentBucket.SCHEDULING, _relevance(IntentBucket.SCHEDULING), [])
    assert (
        "This would normally require a clinician to coordinate availability "
        "and the patient to confirm the proposed time." in scheduling.explanation
    )
    drafting = evaluate_action_readiness(
        IntentBucket.CLINICAL_DRAFTING, _relevance(IntentBucket.CLINICAL_DRAFTING), []
    )
    assert "clinician to review and authorize" in drafting.explanation
    summary = evaluate_action_readiness(IntentBucket.RECORD_SUMMARY, _relevance(IntentBucket.RECORD_SUMMARY), [])
    assert "informational purposes only" in summary.explanation


@pytest.mark.parametrize(
    ("category", "actor", "decision"),
    [
        (ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION, RequiredActor.PATIENT, DecisionType.CONFIRM),
        (ReadinessCategory.REQUIRES_CLINICIAN_REVIEW, RequiredActor.CLINICIAN, DecisionType.REVIEW),
        (ReadinessCategory.REQUIRES_ADDITIONAL_DATA, RequiredActor.OPERATOR, DecisionType.PROVIDE_DATA),
        (ReadinessCategory.INFORMATIONAL_ONLY, RequiredActor.NONE, DecisionType.NOT_APPLICABLE),
        (ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM, RequiredActor.NONE, DecisionType.NOT_APPLICABLE),
    ],
)
def test_readiness_maps_to_actor_and_decision(category, actor, decision):
    result = evaluate_human_confirmation(IntentBucket.SCHEDULING, ActionReadinessResult(category, "x"))
    assert result.required_actor is actor
    assert result.decision_type is decision
    assert validate_language_safety(result.explanation).is_valid
    assert validate_language_safety(result.rationale).is_valid


def test_preview_options_follow_intent_then_decision():
    scheduling = evaluate_human_confirmation(
        IntentBucket.SCHEDULING,
        ActionReadinessResult(ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION, "x"),
    )
    assert scheduling.preview_options == ("Accept proposed time", "Request alternative", "Decline")

    unknown_review = evaluate_human_confirmation(
        IntentBucket.UNKNOWN,
        ActionReadinessResult(ReadinessCategory.REQUIRES_CLINICIAN_REVIEW, "x"),
    )
    assert unknown_review.preview_options == ("Approve", "Request changes", "Reject")

    informational = evaluate_human_confirmation(
        IntentBucket.RECORD_SUMMARY,
        ActionReadinessResult(ReadinessCategory.INFORMATIONAL_ONLY, "x"),
    )
    assert informational.preview_options == ()
    assert informational.rationale == "No human decision would normally be required for informational content."


def test_low_confidence_extends_rationale():
    readiness = ActionReadinessResult(ReadinessCategory.REQUIRES_CLINICIAN_REVIEW, "x")
    low = evaluate_human_confirmation(IntentBucket.CLINICAL_DRAFTING, readiness, ConfidenceLevel.LOW)
    high = evaluate_human_confirmation(IntentBucket.CLINICAL_DRAFTING, readiness, ConfidenceLevel.HIGH)
    assert low.rationale == high.rationale + " Additionally, confidence in the available data is limited."


def test_labels():
    assert get_actor_label(RequiredActor.OPERATOR) == "Operator / Staff"
    assert get_decision_type_label(DecisionType.REVIEW) == "Review & Authorization"
