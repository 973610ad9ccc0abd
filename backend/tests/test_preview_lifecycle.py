from __future__ import annotations

from datetime import timedelta

from careview_agent_core.confirmation import evaluate_human_confirmation
from careview_agent_core.execution_plan import generate_execution_plan
from careview_agent_core.language_safety import validate_language_safety
from careview_agent_core.lifecycle import (
    PreviewSession,
    create_preview_confirmation_record,
    get_acknowledgment_badge_text,
    get_preview_state_label,
    is_valid_transition,
    transition_preview_state,
)
from careview_agent_core.models import (
    ActionReadinessResult,
    ActorRole,
    AuditActor,
    AuditEventType,
    ConfidenceLevel,
    IntentBucket,
    PreviewState,
    ReadinessCategory,
    RelevanceResult,
    RequiredActor,
)
from careview_agent_core.rules import DEFAULT_RULES
from timeline_utils import FIXED_NOW

_LATER = FIXED_NOW + timedelta(minutes=5)


def _record(category=ReadinessCategory.REQUIRES_PATIENT_CONFIRMATION, with_plan=True, session_role=None):
    readiness = ActionReadinessResult(category, "x")
    confirmation = evaluate_human_confirmation(IntentBucket.SCHEDULING, readiness)
    plan = None
    if with_plan:
        relevance = RelevanceResult(
            intent=IntentBucket.SCHEDULING, selected_items=(), explanation=(), has_evidence=False
        )
        plan = generate_execution_plan(
            IntentBucket.SCHEDULING, relevance, readiness, ConfidenceLevel.HIGH, now=FIXED_NOW
        )
    return create_preview_confirmation_record(confirmation, plan, session_role, now=FIXED_NOW)


def test_new_record_starts_in_proposal_created():
    record = _record()
    assert record.state is PreviewState.PROPOSAL_CREATED
    assert record.actor is RequiredActor.PATIENT
    assert record.intent_summary == "This preview suggests how a scheduling request would normally be processed."
    assert record.session_role == DEFAULT_RULES.default_session_role
    assert record.timestamp == FIXED_NOW
    assert record.preview_id.startswith("preview-")


def test_would_normally_happen_includes_first_two_proposed_actions():
    record = _record()
    assert record.would_normally_happen[0] == "A patient would typically review the proposed action"
    assert record.would_normally_happen[-1] == (
        "If this were a real request, the following steps would typically occur: "
        "Search for available appointment slots matching patient preferences; "
        "Coordinate with clinician schedule and clinic availability"
    )
    for line in (*record.would_normally_happen, record.confirmation_rationale):
        assert validate_language_safety(line).is_valid


def test_summary_falls_back_to_confirmation_explanation():
    record = _record(category=ReadinessCategory.INFORMATIONAL_ONLY, with_plan=False, session_role="Front Desk")
    assert record.actor is RequiredActor.NONE
    assert record.intent_summary.endswith("(NOT_APPLICABLE)")
    assert record.would_normally_happen == (
        "This is informational content; no confirmation would normally be required",
    )
    assert record.session_role == "Front Desk"


def test_preview_id_is_stable_for_same_inputs():
    assert _record().preview_id == _record().preview_id


def test_valid_transitions_produce_new_records():
    record = _record()
    acknowledged = transition_preview_state(record, PreviewState.PREVIEW_ACKNOWLEDGED, now=_LATER)

    assert acknowledged is not None
    assert acknowledged.state is PreviewState.PREVIEW_ACKNOWLEDGED
    assert acknowledged.timestamp == _LATER
    assert acknowledged.preview_id == record.preview_id
    assert record.state is PreviewState.PROPOSAL_CREATED

    denied = transition_preview_state(record, PreviewState.PREVIEW_DENIED, now=_LATER)
    assert denied.state is PreviewState.PREVIEW_DENIED


def test_terminal_states_reject_every_transition():
    acknowledged = transition_preview_state(_record(), PreviewState.PREVIEW_ACKNOWLEDGED, now=_LATER)
    for target in PreviewState:
        assert transition_preview_state(acknowledged, target, now=_LATER) is None
    assert transition_preview_state(_record(), PreviewState.PROPOSAL_CREATED, now=_LATER) is None
    assert not is_valid_transition(PreviewState.PREVIEW_DENIED, PreviewState.PREVIEW_ACKNOWLEDGED)


def test_labels_and_badges():
    record = _record()
    assert get_preview_state_label(PreviewState.PREVIEW_DENIED) == "Preview Declined"
    assert get_acknowledgment_badge_text(record) == "Preview pending. No action taken."
    acknowledged = transition_preview_state(record, PreviewState.PREVIEW_ACKNOWLEDGED, now=_LATER)
    assert get_acknowledgment_badge_text(acknowledged) == (
        "Human confirmation preview acknowledged by Demo User. No action taken."
    )


def test_session_records_confirmation_events_with_continuing_ids():
    session = PreviewSession(
        message_id="msg-1",
        actor_role=ActorRole.CLINICIAN,
        intent=IntentBucket.SCHEDULING,
        record=_record(),
        next_index=6,
    )
    opened = session.open(now=FIXED_NOW)
    updated = session.acknowledge(now=_LATER)

    assert opened.id == "msg-1-6"
    assert opened.actor is AuditActor.CLINICIAN
    assert updated.state is PreviewState.PREVIEW_ACKNOWLEDGED
    assert [event.type for event in session.events] == [
        AuditEventType.HUMAN_CONFIRMATION_PREVIEW_OPENED,
        AuditEventType.HUMAN_CONFIRMATION_PREVIEW_ACKNOWLEDGED,
    ]
    assert session.events[1].id == "msg-1-7"

    assert session.deny(now=_LATER) is None
    assert len(session.events) == 2
    assert session.next_index == 8
    assert session.record.state is PreviewState.PREVIEW_ACKNOWLEDGED
