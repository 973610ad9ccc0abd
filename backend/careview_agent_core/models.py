from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal, Union

from .time_utils import to_iso


class IntentBucket(str, Enum):
    SCHEDULING = "scheduling"
    CLINICAL_DRAFTING = "clinical_drafting"
    RECORD_SUMMARY = "record_summary"
    BILLING_EXPLANATION = "billing_explanation"
    UNKNOWN = "unknown"


class MatchConfidence(str, Enum):
    HIGH = "high"
    LOW = "low"


class EventKind(str, Enum):
    VISIT = "visit"
    NOTE = "note"
    EVENT = "event"


class EpistemicCategory(str, Enum):
    OBSERVED = "OBSERVED"
    PATTERN = "PATTERN"
    COMPARATIVE = "COMPARATIVE"
    UNCERTAIN = "UNCERTAIN"


class ConfidenceLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ReadinessCategory(str, Enum):
    NOT_ACTIONABLE_IN_SYSTEM = "NOT_ACTIONABLE_IN_SYSTEM"
    REQUIRES_ADDITIONAL_DATA = "REQUIRES_ADDITIONAL_DATA"
    REQUIRES_PATIENT_CONFIRMATION = "REQUIRES_PATIENT_CONFIRMATION"
    REQUIRES_CLINICIAN_REVIEW = "REQUIRES_CLINICIAN_REVIEW"
    INFORMATIONAL_ONLY = "INFORMATIONAL_ONLY"


class RequiredActor(str, Enum):
    PATIENT = "PATIENT"
    CLINICIAN = "CLINICIAN"
    OPERATOR = "OPERATOR"
    NONE = "NONE"


class DecisionType(str, Enum):
    CONFIRM = "CONFIRM"
    REVIEW = "REVIEW"
    PROVIDE_DATA = "PROVIDE_DATA"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class PreviewState(str, Enum):
    PROPOSAL_CREATED = "PROPOSAL_CREATED"
    PREVIEW_ACKNOWLEDGED = "PREVIEW_ACKNOWLEDGED"
    PREVIEW_DENIED = "PREVIEW_DENIED"


class ActorRole(str, Enum):
    PATIENT = "patient"
    CLINICIAN = "clinician"
    OPERATOR = "operator"


class AuditActor(str, Enum):
    PATIENT = "PATIENT"
    CLINICIAN = "CLINICIAN"
    OPERATOR = "OPERATOR"
    SYSTEM = "SYSTEM"


class AuditEventType(str, Enum):
    INTENT_CLASSIFIED = "INTENT_CLASSIFIED"
    EVIDENCE_SELECTED = "EVIDENCE_SELECTED"
    SYNTHESIS_GENERATED = "SYNTHESIS_GENERATED"
    CONFIDENCE_ANNOTATED = "CONFIDENCE_ANNOTATED"
    READINESS_EVALUATED = "READINESS_EVALUATED"
    HUMAN_CONFIRMATION_PREVIEW_OPENED = "HUMAN_CONFIRMATION_PREVIEW_OPENED"
    HUMAN_CONFIRMATION_PREVIEW_ACKNOWLEDGED = "HUMAN_CONFIRMATION_PREVIEW_ACKNOWLEDGED"
    HUMAN_CONFIRMATION_PREVIEW_DENIED = "HUMAN_CONFIRMATION_PREVIEW_DENIED"
    EXECUTION_PLAN_PREVIEWED = "EXECUTION_PLAN_PREVIEWED"


CONFIRMATION_EVENT_TYPES = {
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_OPENED,
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_ACKNOWLEDGED,
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_DENIED,
}

ConfirmationEventType = Literal[
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_OPENED,
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_ACKNOWLEDGED,
    AuditEventType.HUMAN_CONFIRMATION_PREVIEW_DENIED,
]


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelineEvent:
    date: date
    kind: EventKind
    title: str
    summary: str

    @property
    def text(self) -> str:
        return f"{self.title} {self.summary}"

    def attribution(self) -> str:
        return f"{self.date.isoformat()}: {self.title}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "kind": self.kind.value,
            "title": self.title,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class Timeline:
    patient_id: str
    events: tuple[TimelineEvent, ...] = ()


@dataclass(frozen=True)
class PatientContext:
    patient_id: str
    display_name: str = ""
    age: int | None = None
    sex: str | None = None
    medications: tuple[str, ...] = ()
    conditions: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Reasoning artifacts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntentClassification:
    intent: IntentBucket
    matched_keywords: tuple[str, ...]
    confidence: MatchConfidence

    def as_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent.value,
            "matched_keywords": list(self.matched_keywords),
            "confidence": self.confidence.value,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    type_match: int = 0
    keyword_match: int = 0
    recency_bonus: int = 0

    @property
    def total(self) -> int:
        return self.type_match + self.keyword_match + self.recency_bonus


@dataclass(frozen=True)
class ScoredTimelineItem:
    event: TimelineEvent
    score: int
    breakdown: ScoreBreakdown

    @property
    def date(self) -> date:
        return self.event.date

    @property
    def kind(self) -> EventKind:
        return self.event.kind

    @property
    def title(self) -> str:
        return self.event.title

    @property
    def summary(self) -> str:
        return self.event.summary

    def as_dict(self) -> dict[str, Any]:
        return {
            **self.event.as_dict(),
            "score": self.score,
            "score_breakdown": {
                "type_match": self.breakdown.type_match,
                "keyword_match": self.breakdown.keyword_match,
                "recency_bonus": self.breakdown.recency_bonus,
            },
        }


@dataclass(frozen=True)
class RelevanceResult:
    intent: IntentBucket
    selected_items: tuple[ScoredTimelineItem, ...]
    explanation: tuple[str, ...]
    has_evidence: bool
    max_score: int = 0
    evidence_attribution: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent.value,
            "selected_items": [item.as_dict() for item in self.selected_items],
            "explanation": list(self.explanation),
            "has_evidence": self.has_evidence,
            "max_score": self.max_score,
            "evidence_attribution": list(self.evidence_attribution),
        }


@dataclass(frozen=True)
class ComparativeInsights:
    last_encounter: str | None = None
    time_since_last_encounter_days: int | None = None
    differences_vs_last_encounter: tuple[str, ...] = ()
    trends: tuple[str, ...] = ()
    gaps: tuple[str, ...] = ()
    evidence_attribution: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "last_encounter": self.last_encounter,
            "time_since_last_encounter_days": self.time_since_last_encounter_days,
            "differences_vs_last_encounter": list(self.differences_vs_last_encounter),
            "trends": list(self.trends),
            "gaps": list(self.gaps),
            "evidence_attribution": list(self.evidence_attribution),
        }


@dataclass(frozen=True)
class ConfidenceAnnotation:
    statement: str
    category: EpistemicCategory
    confidence: ConfidenceLevel
    reason: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "statement": self.statement,
            "category": self.category.value,
            "confidence": self.confidence.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ActionReadinessResult:
    category: ReadinessCategory
    explanation: str

    def as_dict(self) -> dict[str, Any]:
        return {"category": self.category.value, "explanation": self.explanation}


@dataclass(frozen=True)
class HumanConfirmationResult:
    required_actor: RequiredActor
    decision_type: DecisionType
    preview_options: tuple[str, ...]
    explanation: str
    rationale: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "required_actor": self.required_actor.value,
            "decision_type": self.decision_type.value,
            "preview_options": list(self.preview_options),
            "explanation": self.explanation,
            "rationale": self.rationale,
        }


@dataclass(frozen=True)
class RequiredConfirmation:
    actor: RequiredActor
    confirmation_type: str

    def as_dict(self) -> dict[str, Any]:
        return {"actor": self.actor.value, "confirmation_type": self.confirmation_type}


@dataclass(frozen=True)
class ExecutionPlanResult:
    plan_id: str
    intent_bucket: IntentBucket
    summary: str
    proposed_actions: tuple[str, ...]
    required_human_confirmations: tuple[RequiredConfirmation, ...]
    required_data: tuple[str, ...]
    blocked_by: tuple[str, ...]
    evidence: tuple[str, ...]
    risks: tuple[str, ...]
    disclaimers: tuple[str, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "intent_bucket": self.intent_bucket.value,
            "summary": self.summary,
            "proposed_actions": list(self.proposed_actions),
            "required_human_confirmations": [c.as_dict() for c in self.required_human_confirmations],
            "required_data": list(self.required_data),
            "blocked_by": list(self.blocked_by),
            "evidence": list(self.evidence),
            "risks": list(self.risks),
            "disclaimers": list(self.disclaimers),
        }


@dataclass(frozen=True)
class SynthesisPattern:
    type: str
    description: str
    supporting_item_ids: tuple[str, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "supporting_item_ids": list(self.supporting_item_ids),
        }


@dataclass(frozen=True)
class SynthesisResult:
    synthesis: str
    patterns: tuple[SynthesisPattern, ...] = ()
    stand_out_summary: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "synthesis": self.synthesis,
            "patterns": [pattern.as_dict() for pattern in self.patterns],
            "stand_out_summary": list(self.stand_out_summary),
        }


@dataclass(frozen=True)
class PreviewConfirmationRecord:
    preview_id: str
    state: PreviewState
    actor: RequiredActor
    intent_summary: str
    would_normally_happen: tuple[str, ...]
    confirmation_rationale: str
    timestamp: datetime
    session_role: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "preview_id": self.preview_id,
            "state": self.state.value,
            "actor": self.actor.value,
            "intent_summary": self.intent_summary,
            "would_normally_happen": list(self.would_normally_happen),
            "confirmation_rationale": self.confirmation_rationale,
            "timestamp": to_iso(self.timestamp),
            "session_role": self.session_role,
        }


@dataclass(frozen=True)
class FramingResult:
    framed_response: str
    applied_perspective: ActorRole
    was_transformed: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "applied_perspective": self.applied_perspective.value,
            "was_transformed": self.was_transformed,
        }


# ---------------------------------------------------------------------------
# Audit payloads: one closed shape per event type, structural metadata only.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntentClassifiedPayload:
    intent_bucket: IntentBucket
    match_confidence: MatchConfidence
    keyword_count: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "intent_bucket": self.intent_bucket.value,
            "match_confidence": self.match_confidence.value,
            "keyword_count": self.keyword_count,
        }


@dataclass(frozen=True)
class EvidenceItemMetadata:
    id: str
    kind: EventKind
    date: date
    score: int

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "kind": self.kind.value, "date": self.date.isoformat(), "score": self.score}


@dataclass(frozen=True)
class EvidenceSelectedPayload:
    item_count: int
    item_metadata: tuple[EvidenceItemMetadata, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            "item_count": self.item_count,
            "item_metadata": [item.as_dict() for item in self.item_metadata],
        }


@dataclass(frozen=True)
class SynthesisGeneratedPayload:
    has_synthesis: bool
    pattern_count: int
    model: str = "deterministic-rule-engine"

    def as_dict(self) -> dict[str, Any]:
        return {"has_synthesis": self.has_synthesis, "pattern_count": self.pattern_count, "model": self.model}


@dataclass(frozen=True)
class ConfidenceAnnotatedPayload:
    annotation_count: int
    categories: tuple[EpistemicCategory, ...]
    confidence_levels: tuple[ConfidenceLevel, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            "annotation_count": self.annotation_count,
            "categories": [category.value for category in self.categories],
            "confidence_levels": [level.value for level in self.confidence_levels],
        }


@dataclass(frozen=True)
class ReadinessEvaluatedPayload:
    readiness_category: ReadinessCategory

    def as_dict(self) -> dict[str, Any]:
        return {"readiness_category": self.readiness_category.value}


@dataclass(frozen=True)
class ExecutionPlanPreviewedPayload:
    plan_id: str
    proposed_action_count: int
    required_confirmation_count: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "proposed_action_count": self.proposed_action_count,
            "required_confirmation_count": self.required_confirmation_count,
        }


@dataclass(frozen=True)
class HumanConfirmationPayload:
    intent_bucket: IntentBucket
    event: AuditEventType
    timestamp: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            "intent_bucket": self.intent_bucket.value,
            "event": self.event.value,
            "timestamp": to_iso(self.timestamp),
        }


AuditPayload = Union[
    IntentClassifiedPayload,
    EvidenceSelectedPayload,
    SynthesisGeneratedPayload,
    ConfidenceAnnotatedPayload,
    ReadinessEvaluatedPayload,
    ExecutionPlanPreviewedPayload,
    HumanConfirmationPayload,
]


@dataclass(frozen=True)
class PreviewAuditEvent:
    id: str
    ts: datetime
    actor: AuditActor
    type: AuditEventType
    slice_or_phase: str
    policy_basis: tuple[str, ...]
    summary: str
    payload_preview: AuditPayload

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ts": to_iso(self.ts),
            "actor": self.actor.value,
            "type": self.type.value,
            "slice_or_phase": self.slice_or_phase,
            "policy_basis": list(self.policy_basis),
            "summary": self.summary,
            "payload_preview": self.payload_preview.as_dict(),
        }


@dataclass
class ReasoningPass:
    message_id: str
    patient_id: str
    intent: IntentClassification
    relevance: RelevanceResult
    comparative: ComparativeInsights
    annotations: tuple[ConfidenceAnnotation, ...]
    overall_confidence: ConfidenceLevel
    readiness: ActionReadinessResult
    human_confirmation: HumanConfirmationResult
    execution_plan: ExecutionPlanResult
    synthesis: SynthesisResult | None
    preview: PreviewConfirmationRecord
    audit_trail: list[PreviewAuditEvent] = field(default_factory=list)
    response_text: str = ""
    framing: FramingResult | None = None

    def as_envelope(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "patient_id": self.patient_id,
            "intent": self.intent.as_dict(),
            "relevance": self.relevance.as_dict(),
            "comparative": self.comparative.as_dict(),
            "confidence_annotations": [annotation.as_dict() for annotation in self.annotations],
            "overall_confidence": self.overall_confidence.value,
            "action_readiness": self.readiness.as_dict(),
            "human_confirmation": self.human_confirmation.as_dict(),
            "execution_plan": self.execution_plan.as_dict(),
            "synthesis": self.synthesis.as_dict() if self.synthesis else None,
            "preview": self.preview.as_dict(),
            "audit_trail": [event.as_dict() for event in self.audit_trail],
            "response_text": self.response_text,
            "response_framing": self.framing.as_dict() if self.framing else None,
        }
