from __future__ import annotations

from datetime import datetime
from typing import Sequence

from .models import (
    ActionReadinessResult,
    ActorRole,
    AuditActor,
    AuditEventType,
    AuditPayload,
    ConfirmationEventType,
    ConfidenceAnnotatedPayload,
    ConfidenceAnnotation,
    EvidenceItemMetadata,
    EvidenceSelectedPayload,
    ExecutionPlanPreviewedPayload,
    ExecutionPlanResult,
    HumanConfirmationPayload,
    HumanConfirmationResult,
    IntentBucket,
    IntentClassification,
    IntentClassifiedPayload,
    PreviewAuditEvent,
    ReadinessCategory,
    ReadinessEvaluatedPayload,
    RelevanceResult,
    RequiredActor,
    SynthesisGeneratedPayload,
    SynthesisResult,
)

BASE_POLICIES = ("Non-Execution Mode", "Preview-Only Mode")
PATIENT_POLICIES = ("Consent Gate", "Patient Session Context")
DRAFTING_POLICIES = ("Draft-Only Notes", "Note Commit Blocked")
SCHEDULING_POLICIES = ("Proposal-Only Scheduling", "Human-in-the-Loop Review")
EXECUTION_BLOCKED = "Execution Blocked"

_CONFIRMATION_VERBS = {
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_OPENED: "opened",
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_ACKNOWLEDGED: "acknowledged",
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_DENIED: "denied",
}


def _dedupe(tags: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(tags))


def _policy_basis(
    actor_role: ActorRole,
    intent: IntentBucket,
    readiness: ActionReadinessResult | None,
    human_confirmation: HumanConfirmationResult | None,
) -> tuple[str, ...]:
    # Rule order is significant: it fixes the order of the deduplicated tags.
    tags = list(BASE_POLICIES)
    if actor_role is ActorRole.PATIENT:
        tags.extend(PATIENT_POLICIES)
    if intent is IntentBucket.CLINICAL_DRAFTING:
        tags.extend(DRAFTING_POLICIES)
    if intent is IntentBucket.SCHEDULING:
        tags.extend(SCHEDULING_POLICIES)
    if (readiness is not None and readiness.category is not ReadinessCategory.INFORMATIONAL_ONLY) or (
        human_confirmation is not None and human_confirmation.required_actor is not RequiredActor.NONE
    ):
        tags.append(EXECUTION_BLOCKED)
    return _dedupe(tags)


def build_preview_audit_trail(
    message_id: str,
    actor_role: ActorRole,
    intent: IntentClassification,
    relevance: RelevanceResult,
    *,
    now: datetime,
    synthesis: SynthesisResult | None = None,
    confidence: Sequence[ConfidenceAnnotation] | None = None,
    readiness: ActionReadinessResult | None = None,
    human_confirmation: HumanConfirmationResult | None = None,
    execution_plan: ExecutionPlanResult | None = None,
) -> list[PreviewAuditEvent]:
    """Describe one reasoning pass as an ordered list of audit events.

    Only stages that produced output get an event. Ids are sequential from 0
    regardless of which stages fired, and payloads carry structural metadata
    only (counts, dates, kinds, scores, categories, ids).
    """
    policy_basis = _policy_basis(actor_role, intent.intent, readiness, human_confirmation)
    events: list[PreviewAuditEvent] = []

    def add(event_type: AuditEventType, slice_or_phase: str, summary: str, payload: AuditPayload) -> None:
        events.append(
            PreviewAuditEvent(
                id=f"{message_id}-{len(events)}",
                ts=now,
                actor=AuditActor.SYSTEM,
                type=event_type,
                slice_or_phase=slice_or_phase,
                policy_basis=policy_basis,
                summary=summary,
                payload_preview=payload,
            )
        )

    add(
        AuditEventType.INTENT_CLASSIFIED,
        "REASONING",
        f'System would normally classify intent as "{intent.intent.value}" based on keyword matching.',
        IntentClassifiedPayload(
            intent_bucket=intent.intent,
            match_confidence=intent.confidence,
            keyword_count=len(intent.matched_keywords),
        ),
    )

    if relevance.selected_items:
        count = len(relevance.selected_items)
        add(
            AuditEventType.EVIDENCE_SELECTED,
            "EVIDENCE",
            f"System would normally select {count} evidence items for context.",
            EvidenceSelectedPayload(
                item_count=count,
                item_metadata=tuple(
                    EvidenceItemMetadata(
                        id=f"item-{item.date.isoformat()}-{item.kind.value}",
                        kind=item.kind,
                        date=item.date,
                        score=item.score,
                    )
                    for item in relevance.selected_items
                ),
            ),
        )

    if synthesis is not None:
        add(
            AuditEventType.SYNTHESIS_GENERATED,
            "REASONING",
            "System would normally generate a reasoning synthesis for the assistant response.",
            SynthesisGeneratedPayload(has_synthesis=True, pattern_count=len(synthesis.patterns)),
        )

    if confidence:
        add(
            AuditEventType.CONFIDENCE_ANNOTATED,
            "REASONING",
            f"System would normally annotate {len(confidence)} statements with epistemic confidence levels.",
            ConfidenceAnnotatedPayload(
                annotation_count=len(confidence),
                categories=tuple(annotation.category for annotation in confidence),
                confidence_levels=tuple(annotation.confidence for annotation in confidence),
            ),
        )

    if readiness is not None:
        add(
            AuditEventType.READINESS_EVALUATED,
            "REASONING",
            f'System would normally evaluate action readiness as "{readiness.category.value}".',
            ReadinessEvaluatedPayload(readiness_category=readiness.category),
        )

    if execution_plan is not None:
        add(
            AuditEventType.EXECUTION_PLAN_PREVIEWED,
            "PREVIEW",
            "System would normally generate an execution plan for proposed actions.",
            ExecutionPlanPreviewedPayload(
                plan_id=execution_plan.plan_id,
                proposed_action_count=len(execution_plan.proposed_actions),
                required_confirmation_count=len(execution_plan.required_human_confirmations),
            ),
        )

    return events


def create_human_confirmation_audit_event(
    message_id: str,
    index: int,
    event_type: ConfirmationEventType,
    actor_role: ActorRole,
    intent: IntentBucket,
    *,
    now: datetime,
) -> PreviewAuditEvent:
    """Build one confirmation-lifecycle event.

    ``index`` comes from the caller, who must keep counting across this and
    ``build_preview_audit_trail`` to keep ids unique within a message.
    """
    tags = [*BASE_POLICIES, "Human-in-the-Loop Review"]
    if actor_role is ActorRole.PATIENT:
        tags.extend(PATIENT_POLICIES)

    return PreviewAuditEvent(
        id=f"{message_id}-{index}",
        ts=now,
        actor=AuditActor(actor_role.value.upper()),
        type=event_type,
        slice_or_phase="PREVIEW",
        policy_basis=_dedupe(tags),
        summary=f"Human confirmation preview {_CONFIRMATION_VERBS[event_type]} by {actor_role.value}. No action taken.",
        payload_preview=HumanConfirmationPayload(intent_bucket=intent, event=event_type, timestamp=now),
    )
