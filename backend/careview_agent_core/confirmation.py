"""Preview of the human confirmation a request would normally need.

Every output describes what would normally happen; nothing is executed. All
text is built from fixed templates and checked by the language-safety guard
before it is returned.
"""

from __future__ import annotations

from .language_safety import ensure_language_safety
from .models import (
    ActionReadinessResult,
    ConfidenceLevel,
    DecisionType,
    HumanConfirmationResult,
    IntentBucket,
    ReadinessCategory,
    RequiredActor,
)
from .rules import DEFAULT_RULES, ReasoningRules

_ACTOR_DECISION = {
    ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION: (RequiredActor.PATIENT, DecisionType.CONFIRM),
    ReadinessCategory.REQUIRES_CLINICIAN_REVIEW: (RequiredActor.CLINICIAN, DecisionType.REVIEW),
    ReadinessCategory.REQUIRES_ADDITIONAL_DATA: (RequiredActor.OPERATOR, DecisionType.PROVIDE_DATA),
    ReadinessCategory.INFORMATIONAL_ONLY: (RequiredActor.NONE, DecisionType.NOT_APPLICABLE),
    ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM: (RequiredActor.NONE, DecisionType.NOT_APPLICABLE),
}

_INTENT_OPTIONS = {
    IntentBucket.SCHEDULING: ("Accept proposed time", "Request alternative", "Decline"),
    IntentBucket.CLINICAL_DRAFTING: ("Approve draft", "Request revisions", "Reject draft"),
    IntentBucket.RECORD_SUMMARY: ("Acknowledge receipt", "Flag for follow-up"),
    IntentBucket.BILLING_EXPLANATION: ("Acknowledge", "Request clarification"),
}

_DECISION_OPTIONS = {
    DecisionType.CONFIRM: ("Confirm", "Decline"),
    DecisionType.REVIEW: ("Approve", "Request changes", "Reject"),
    DecisionType.PROVIDE_DATA: ("Provide information", "Defer"),
}

_RATIONALES = {
    IntentBucket.SCHEDULING: (
        "Appointment scheduling would normally require explicit patient consent "
        "to ensure availability and prevent booking errors."
    ),
    IntentBucket.CLINICAL_DRAFTING: (
        "Clinical documentation would normally require clinician authorization "
        "to maintain medical record integrity and regulatory compliance."
    ),
    IntentBucket.RECORD_SUMMARY: (
        "Record summaries are typically shared for informational purposes "
        "but may require acknowledgment for care coordination."
    ),
    IntentBucket.BILLING_EXPLANATION: (
        "Billing information is typically provided for transparency "
        "but may require follow-up for disputes or clarifications."
    ),
}

_DEFAULT_RATIONALE = (
    "This action would normally require human oversight to ensure accuracy and appropriate authorization."
)
_LOW_CONFIDENCE_NOTE = " Additionally, confidence in the available data is limited."

_ACTOR_LABELS = {
    RequiredActor.PATIENT: "Patient",
    RequiredActor.CLINICIAN: "Clinician",
    RequiredActor.OPERATOR: "Operator / Staff",
    RequiredActor.NONE: "No Confirmation Required",
}

_DECISION_LABELS = {
    DecisionType.CONFIRM: "Confirmation",
    DecisionType.REVIEW: "Review & Authorization",
    DecisionType.PROVIDE_DATA: "Data Collection",
    DecisionType.NOT_APPLICABLE: "Informational Only",
}


def preview_options(intent: IntentBucket, decision_type: DecisionType) -> tuple[str, ...]:
    if decision_type is DecisionType.NOT_APPLICABLE:
        return ()
    return _INTENT_OPTIONS.get(intent) or _DECISION_OPTIONS.get(decision_type, ())


def actor_explanation(actor: RequiredActor, intent: IntentBucket) -> str:
    if actor is RequiredActor.PATIENT:
        if intent is IntentBucket.SCHEDULING:
            return "A patient would usually be asked to confirm the proposed appointment time before it is finalized."
        return "A patient would usually be asked to confirm this action before it takes effect."
    if actor is RequiredActor.CLINICIAN:
        if intent is IntentBucket.CLINICAL_DRAFTING:
            return (
                "A clinician would typically review and authorize any clinical documentation "
                "before it becomes part of the medical record."
            )
        return "A clinician would typically review this request before any action is taken."
    if actor is RequiredActor.OPERATOR:
        return (
            "An operator or administrative staff member would normally gather the required information "
            "before proceeding."
        )
    return "This is informational content that would not normally require human confirmation."


def confirmation_rationale(actor: RequiredActor, intent: IntentBucket, confidence: ConfidenceLevel) -> str:
    if actor is RequiredActor.NONE:
        return "No human decision would normally be required for informational content."
    note = _LOW_CONFIDENCE_NOTE if confidence is ConfidenceLevel.LOW else ""
    return f"{_RATIONALES.get(intent, _DEFAULT_RATIONALE)}{note}"


def evaluate_human_confirmation(
    intent: IntentBucket,
    readiness: ActionReadinessResult,
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM,
    *,
    rules: ReasoningRules = DEFAULT_RULES,
) -> HumanConfirmationResult:
    actor, decision_type = _ACTOR_DECISION[readiness.category]
    return HumanConfirmationResult(
        required_actor=actor,
        decision_type=decision_type,
        preview_options=preview_options(intent, decision_type),
        explanation=ensure_language_safety(
            actor_explanation(actor, intent), "confirmation.explanation", require_conditional=True, rules=rules
        ),
        rationale=ensure_language_safety(
            confirmation_rationale(actor, intent, confidence), "confirmation.rationale", rules=rules
        ),
    )


def get_actor_label(actor: RequiredActor) -> str:
    return _ACTOR_LABELS[actor]


def get_decision_type_label(decision_type: DecisionType) -> str:
    return _DECISION_LABELS[decision_type]
