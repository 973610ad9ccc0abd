from __future__ import annotations

import logging

from careview_agent_core.models import (
    ActorRole,
    AuditEventType,
    ConfidenceLevel,
    IntentBucket,
    PatientContext,
    PreviewState,
    ReadinessCategory,
    RequiredActor,
)
from careview_agent_core.pipeline import run_reasoning_pass
from timeline_utils import FIXED_NOW, REFERENCE_DATE, make_event, make_timeline


def _run(message, timeline, **kwargs):
    kwargs.setdefault("message_id", "msg-1")
    return run_reasoning_pass(message, timeline, reference_date=REFERENCE_DATE, now=FIXED_NOW, **kwargs)


def test_full_pass_over_sample_timeline(sample_timeline):
    result = _run("I need to schedule an appointment", sample_timeline)

    assert result.intent.intent is IntentBucket.SCHEDULING
    assert result.overall_confidence is ConfidenceLevel.LOW
    assert result.readiness.category is ReadinessCategory.REQUIRES_ADDITIONAL_DATA
    assert result.human_confirmation.required_actor is RequiredActor.OPERATOR
    assert result.execution_plan.required_data == ("Preferred date range", "Specific clinician preference")
    assert result.synthesis is not None
    assert result.preview.state is PreviewState.PROPOSAL_CREATED
    assert [event.type for event in result.audit_trail] == [
        AuditEventType.INTENT_CLASSIFIED,
        AuditEventType.EVIDENCE_SELECTED,
        AuditEventType.SYNTHESIS_GENERATED,
        AuditEventType.CONFIDENCE_ANNOTATED,
        AuditEventType.READINESS_EVALUATED,
        AuditEventType.EXECUTION_PLAN_PREVIEWED,
    ]
    assert [event.id for event in result.audit_trail] == [f"msg-1-{index}" for index in range(6)]
    assert (
        "Based on:\n"
        "• 2025-11-20: Routine Follow-up (Hypertension)\n"
        "• 2025-08-16: Referral: Physical Therapy\n"
        "• 2025-08-15: Urgent Care - Low Back Pain"
    ) in result.response_text


def test_pass_is_deterministic_for_fixed_inputs(sample_timeline):
    first = _run("I need to schedule an appointment", sample_timeline)
    second = _run("I need to schedule an appointment", sample_timeline)
    assert first.as_envelope() == second.as_envelope()


def test_clean_scheduling_request_needs_patient_confirmation():
    timeline = make_timeline(make_event("2026-01-05", "visit", "Follow-up visit", "Blood pressure check."))
    result = _run("Can I book an appointment?", timeline)

    assert result.overall_confidence is ConfidenceLevel.MEDIUM
    assert result.readiness.category is ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION
    assert result.human_confirmation.required_actor is RequiredActor.PATIENT
    assert result.synthesis is None
    assert AuditEventType.SYNTHESIS_GENERATED not in {event.type for event in result.audit_trail}
    assert "Execution Blocked" in result.audit_trail[0].policy_basis


def test_informational_request_is_not_blocked():
    timeline = make_timeline(make_event("2026-01-05", "visit", "Annual physical", "Labs reviewed. Cholesterol normal."))
    result = _run("Show me my labs results", timeline)

    assert result.readiness.category is ReadinessCategory.INFORMATIONAL_ONLY
    assert result.human_confirmation.required_actor is RequiredActor.NONE
    assert result.human_confirmation.preview_options == ()
    assert "Execution Blocked" not in result.audit_trail[0].policy_basis
    assert result.response_text.startswith("Here's what I found in your health history: 1 relevant item.")


def test_unknown_intent_gets_one_clarifying_question(sample_timeline):
    result = _run("hello there", sample_timeline, actor_role=ActorRole.CLINICIAN)

    assert result.readiness.category is ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM
    assert result.response_text == (
        "Could you please clarify if you are looking for information about your medical history, "
        "current medications, or scheduling?"
    )
    assert [event.type for event in result.audit_trail] == [
        AuditEventType.INTENT_CLASSIFIED,
        AuditEventType.CONFIDENCE_ANNOTATED,
        AuditEventType.READINESS_EVALUATED,
        AuditEventType.EXECUTION_PLAN_PREVIEWED,
    ]


def test_clarifying_question_mentions_visit_when_asked():
    timeline = make_timeline(make_event("2025-03-01", "event", "Lab order", "CBC ordered."))
    result = _run("tell me about a visit", timeline, actor_role=ActorRole.CLINICIAN)
    assert result.response_text == "Are you asking about an upcoming appointment or a past visit?"


def test_empty_timeline_is_handled():
    result = _run("I need to schedule an appointment", make_timeline())
    assert result.relevance.has_evidence is False
    assert result.comparative.last_encounter is None
    assert result.readiness.category is ReadinessCategory.NOT_ACTIONABLE_IN_SYSTEM


def test_patient_context_and_session_role_flow_through(sample_timeline):
    context = PatientContext(patient_id="patient-001", display_name="Jordan Lee", age=52)
    result = _run(
        "I need to schedule an appointment",
        sample_timeline,
        patient_context=context,
        actor_role=ActorRole.OPERATOR,
        session_role="Front Desk",
    )
    assert result.patient_id == "patient-001"
    assert result.preview.session_role == "Front Desk"
    assert "Consent Gate" not in result.audit_trail[0].policy_basis


def test_pass_logs_counts_without_clinical_text(sample_timeline, caplog):
    with caplog.at_level(logging.INFO, logger="careview"):
        _run("I need to schedule an appointment", sample_timeline)
    records = [record for record in caplog.records if record.getMessage() == "Reasoning pass completed"]
    assert len(records) == 1
    fields = records[0].extra_fields
    assert fields["selected_count"] == 3
    assert fields["audit_events"] == 6
    assert "Hypertension" not in str(fields)
