from __future__ import annotations

from datetime import date, datetime

from .audit import build_preview_audit_trail
from .comparative import build_comparative_insights
from .confidence import build_confidence_annotations, overall_confidence
from .confirmation import evaluate_human_confirmation
from .execution_plan import generate_execution_plan
from .framing import frame_assistant_response
from .intent import classify_intent, get_intent_label
from .lifecycle import create_preview_confirmation_record
from .logging_config import get_logger
from .models import (
    ActorRole,
    IntentBucket,
    PatientContext,
    ReasoningPass,
    RelevanceResult,
    Timeline,
)
from .readiness import evaluate_action_readiness
from .relevance import select_relevant_items
from .rules import DEFAULT_RULES, ReasoningRules
from .synthesis import analyze_timeline

logger = get_logger("pipeline")


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def compose_assistant_response(
    message: str,
    relevance: RelevanceResult,
    *,
    rules: ReasoningRules = DEFAULT_RULES,
) -> str:
    """Build the read-only reply shown next to the reasoning panels.

    Weak matches get exactly one clarifying question instead of an answer.
    """
    lowered = message.lower()
    if relevance.intent is IntentBucket.UNKNOWN or relevance.max_score < rules.clarifying_score_threshold:
        if "appointment" in lowered or "visit" in lowered:
            return "Are you asking about an upcoming appointment or a past visit?"
        if "note" in lowered or "summary" in lowered:
            return "Do you want a summary of your last visit or help drafting a note?"
        return (
            "Could you please clarify if you are looking for information about your medical history, "
            "current medications, or scheduling?"
        )

    if not relevance.has_evidence:
        return (
            f'I understand you\'re asking about "{_clip(message, 50)}". However, I couldn\'t find any relevant '
            "information in the patient's timeline for this query. Please try asking about visits, "
            "appointments, or clinical notes."
        )

    top = relevance.selected_items[0]
    count = len(relevance.selected_items)
    plural = "s" if count > 1 else ""
    top_date = top.date.isoformat()

    if relevance.intent is IntentBucket.SCHEDULING:
        body = (
            f"Based on the patient timeline, I found {count} relevant record{plural}. "
            f'The most recent is from {top_date}: "{top.title}". '
            "This is read-only data; no scheduling actions can be performed."
        )
    elif relevance.intent is IntentBucket.CLINICAL_DRAFTING:
        body = (
            f"I found {count} clinical record{plural} that may be relevant. "
            f'The most relevant is from {top_date}: "{top.title}". Summary: "{_clip(top.summary, 100)}". '
            "No clinical notes can be drafted or stored from this view."
        )
    elif relevance.intent is IntentBucket.RECORD_SUMMARY:
        body = (
            f"Here's what I found in the patient's timeline: {count} relevant item{plural}. "
            f'Most relevant: {top_date}, "{top.title}". Summary: "{_clip(top.summary, 100)}". '
            "This is static data for informational purposes only."
        )
    elif relevance.intent is IntentBucket.BILLING_EXPLANATION:
        body = (
            f'I searched for billing-related information. Found {count} item{plural}: {top_date}, "{top.title}". '
            "No billing actions can be performed."
        )
    else:
        body = (
            f"I found {count} potentially relevant item{plural} in the timeline. "
            f'Most relevant: {top_date}, "{top.title}" ({get_intent_label(relevance.intent)}).'
        )

    footer = "\n".join(f"• {attribution}" for attribution in relevance.evidence_attribution)
    return f"{body}\n\nBased on:\n{footer}"


def run_reasoning_pass(
    message: str,
    timeline: Timeline,
    patient_context: PatientContext | None = None,
    *,
    message_id: str,
    actor_role: ActorRole = ActorRole.PATIENT,
    session_role: str | None = None,
    reference_date: date,
    now: datetime,
    rules: ReasoningRules = DEFAULT_RULES,
) -> ReasoningPass:
    """Run the full chain for one message.

    ``reference_date`` anchors every relative-day calculation and ``now`` is the
    instant stamped on ids, the preview record and the audit trail. Neither is
    read from a clock here.
    """
    patient_id = patient_context.patient_id if patient_context is not None else timeline.patient_id
    if patient_context is not None and patient_context.patient_id != timeline.patient_id:
        logger.warning(
            "Patient context does not match timeline",
            extra={"message_id": message_id, "timeline_patient": timeline.patient_id},
        )

    intent = classify_intent(message, rules=rules)
    relevance = select_relevant_items(message, timeline, classification=intent, rules=rules)
    comparative = build_comparative_insights(
        intent=intent.intent,
        message=message,
        relevant_items=relevance.selected_items,
        timeline=timeline.events,
        reference_date=reference_date,
        rules=rules,
    )
    annotations = build_confidence_annotations(relevance, comparative)
    confidence_level = overall_confidence(annotations)

    readiness = evaluate_action_readiness(intent.intent, relevance, annotations)
    human_confirmation = evaluate_human_confirmation(intent.intent, readiness, confidence_level, rules=rules)
    execution_plan = generate_execution_plan(intent.intent, relevance, readiness, confidence_level, now=now)
    synthesis = (
        analyze_timeline(intent.intent, relevance.selected_items, rules=rules)
        if len(relevance.selected_items) >= 2
        else None
    )
    preview = create_preview_confirmation_record(
        human_confirmation,
        execution_plan,
        session_role,
        now=now,
        rules=rules,
    )
    audit_trail = build_preview_audit_trail(
        message_id,
        actor_role,
        intent,
        relevance,
        now=now,
        synthesis=synthesis,
        confidence=annotations,
        readiness=readiness,
        human_confirmation=human_confirmation,
        execution_plan=execution_plan,
    )

    base_response = compose_assistant_response(message, relevance, rules=rules)
    framing = frame_assistant_response(base_response, actor_role, rules=rules)

    logger.info(
        "Reasoning pass completed",
        extra={
            "message_id": message_id,
            "intent": intent.intent.value,
            "selected_count": len(relevance.selected_items),
            "annotation_count": len(annotations),
            "readiness": readiness.category.value,
            "required_actor": human_confirmation.required_actor.value,
            "audit_events": len(audit_trail),
            "perspective": actor_role.value,
        },
    )

    return ReasoningPass(
        message_id=message_id,
        patient_id=patient_id,
        intent=intent,
        relevance=relevance,
        comparative=comparative,
        annotations=tuple(annotations),
        overall_confidence=confidence_level,
        readiness=readiness,
        human_confirmation=human_confirmation,
        execution_plan=execution_plan,
        synthesis=synthesis,
        preview=preview,
        audit_trail=audit_trail,
        response_text=framing.framed_response,
        framing=framing,
    )
