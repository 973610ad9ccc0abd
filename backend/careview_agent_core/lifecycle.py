"""Session-only preview confirmation state.

Records live only as long as the interactive session that created them and are
never written to storage. Transitions return a new record; the old one is left
untouched.
"""

from __future__ import annotations

import hashlib
from dataclasses import replace
from datetime import datetime
from typing import Sequence

from .audit import create_human_confirmation_audit_event
from .language_safety import ensure_language_safety
from .models import (
    ActorRole,
    AuditEventType,
    ExecutionPlanResult,
    HumanConfirmationResult,
    IntentBucket,
    PreviewAuditEvent,
    PreviewConfirmationRecord,
    PreviewState,
    RequiredActor,
)
from .rules import DEFAULT_RULES, ReasoningRules
from .time_utils import epoch_millis

_TRANSITIONS = {
    PreviewState.PROPOSAL_CREATED: {PreviewState.PREVIEW_ACKNOWLEDGED, PreviewState.PREVIEW_DENIED},
    PreviewState.PREVIEW_ACKNOWLEDGED: set(),
    PreviewState.PREVIEW_DENIED: set(),
}

_ACTOR_STEPS = {
    RequiredActor.PATIENT: (
        "A patient would typically review the proposed action",
        "The patient would normally provide explicit consent",
        "The system would usually wait for patient confirmation before proceeding",
    ),
    RequiredActor.CLINICIAN: (
        "A clinician would typically review and authorize this request",
        "The clinician would normally verify clinical appropriateness",
        "Documentation would usually be updated only after clinician approval",
    ),
    RequiredActor.OPERATOR: (
        "An operator would normally gather required information",
        "Administrative staff would typically verify eligibility",
        "The request would usually proceed only after data validation",
    ),
    RequiredActor.NONE: ("This is informational content; no confirmation would normally be required",),
}

_RATIONALES = {
    RequiredActor.PATIENT: (
        "Human confirmation would normally be required to ensure patient autonomy and informed consent. "
        "This safeguard would typically protect against unauthorized actions affecting patient care."
    ),
    RequiredActor.CLINICIAN: (
        "Clinical review would normally be required to maintain medical record integrity and regulatory "
        "compliance. A clinician would typically verify that proposed actions align with established care protocols."
    ),
    RequiredActor.OPERATOR: (
        "Administrative review would normally be required to ensure data accuracy and operational compliance. "
        "Staff would typically validate information before system changes would take effect."
    ),
    RequiredActor.NONE: (
        "This informational content would not normally require explicit confirmation. "
        "No action has been taken; this is a preview only."
    ),
}

_STATE_LABELS = {
    PreviewState.PROPOSAL_CREATED: "Proposal Created",
    PreviewState.PREVIEW_ACKNOWLEDGED: "Preview Acknowledged",
    PreviewState.PREVIEW_DENIED: "Preview Declined",
}


def is_valid_transition(current: PreviewState, target: PreviewState) -> bool:
    return target in _TRANSITIONS.get(current, set())


def transition_preview_state(
    record: PreviewConfirmationRecord,
    target: PreviewState,
    *,
    now: datetime,
) -> PreviewConfirmationRecord | None:
    """Move ``record`` to ``target``, or return None if the move is not allowed."""
    if not is_valid_transition(record.state, target):
        return None
    return replace(record, state=target, timestamp=now)


def _preview_id(actor: RequiredActor, intent_summary: str, now: datetime) -> str:
    digest = hashlib.sha1(f"{actor.value}:{intent_summary}".encode("utf-8")).hexdigest()[:7]
    return f"preview-{epoch_millis(now)}-{digest}"


def would_normally_happen(
    actor: RequiredActor,
    proposed_actions: Sequence[str] | None = None,
    *,
    rules: ReasoningRules = DEFAULT_RULES,
) -> tuple[str, ...]:
    steps = list(_ACTOR_STEPS[actor])
    if proposed_actions:
        steps.append(
            "If this were a real request, the following steps would typically occur: "
            + "; ".join(proposed_actions[:2])
        )
    return tuple(
        ensure_language_safety(step, "preview.would_normally_happen", require_conditional=True, rules=rules)
        for step in steps
    )


def create_preview_confirmation_record(
    human_confirmation: HumanConfirmationResult,
    execution_plan: ExecutionPlanResult | None = None,
    session_role: str | None = None,
    *,
    now: datetime,
    rules: ReasoningRules = DEFAULT_RULES,
) -> PreviewConfirmationRecord:
    actor = human_confirmation.required_actor
    if execution_plan is not None and execution_plan.summary:
        intent_summary = execution_plan.summary
    else:
        intent_summary = f"{human_confirmation.explanation} ({human_confirmation.decision_type.value})"

    return PreviewConfirmationRecord(
        preview_id=_preview_id(actor, intent_summary, now),
        state=PreviewState.PROPOSAL_CREATED,
        actor=actor,
        intent_summary=intent_summary,
        would_normally_happen=would_normally_happen(
            actor,
            execution_plan.proposed_actions if execution_plan is not None else None,
            rules=rules,
        ),
        confirmation_rationale=ensure_language_safety(
            _RATIONALES.get(actor, _RATIONALES[RequiredActor.NONE]),
            "preview.rationale",
            require_conditional=True,
            rules=rules,
        ),
        timestamp=now,
        session_role=session_role or rules.default_session_role,
    )


def get_preview_state_label(state: PreviewState) -> str:
    return _STATE_LABELS[state]


def get_acknowledgment_badge_text(record: PreviewConfirmationRecord) -> str:
    if record.state is PreviewState.PREVIEW_ACKNOWLEDGED:
        return f"Human confirmation preview acknowledged by {record.session_role}. No action taken."
    if record.state is PreviewState.PREVIEW_DENIED:
        return f"Human confirmation preview declined by {record.session_role}. No action taken."
    return "Preview pending. No action taken."


class PreviewSession:
    """Holds one session's preview record and its confirmation audit events.

    ``next_index`` continues the numbering of the pass's audit trail so that
    confirmation events never reuse an id from it.
    """

    _EVENT_FOR_STATE = {
        PreviewState.PREVIEW_ACKNOWLEDGED: AuditEventType.HUMAN_CONFIRMATION_PREVIEW_ACKNOWLEDGED,
        PreviewState.PREVIEW_DENIED: AuditEventType.HUMAN_CONFIRMATION_PREVIEW_DENIED,
    }

    def __init__(
        self,
        *,
        message_id: str,
        actor_role: ActorRole,
        intent: IntentBucket,
        record: PreviewConfirmationRecord,
        next_index: int = 0,
    ) -> None:
        self.message_id = message_id
        self.actor_role = actor_role
        self.intent = intent
        self.record = record
        self.next_index = next_index
        self.events: list[PreviewAuditEvent] = []

    def _record_event(self, event_type: AuditEventType, now: datetime) -> PreviewAuditEvent:
        event = create_human_confirmation_audit_event(
            self.message_id,
            self.next_index,
            event_type,
            self.actor_role,
            self.intent,
            now=now,
        )
        self.next_index += 1
        self.events.append(event)
        return event

    def open(self, *, now: datetime) -> PreviewAuditEvent:
        return self._record_event(AuditEventType.HUMAN_CONFIRMATION_PREVIEW_OPENED, now)

    def transition(self, target: PreviewState, *, now: datetime) -> PreviewConfirmationRecord | None:
        updated = transition_preview_state(self.record, target, now=now)
        if updated is None:
            return None
        self.record = updated
        self._record_event(self._EVENT_FOR_STATE[target], now)
        return updated

    def acknowledge(self, *, now: datetime) -> PreviewConfirmationRecord | None:
        return self.transition(PreviewState.PREVIEW_ACKNOWLEDGED, now=now)

    def deny(self, *, now: datetime) -> PreviewConfirmationRecord | None:
        return self.transition(PreviewState.PREVIEW_DENIED, now=now)
