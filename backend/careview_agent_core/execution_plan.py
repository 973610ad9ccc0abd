from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .models import (
    ActionReadinessResult,
    ConfidenceLevel,
    ExecutionPlanResult,
    IntentBucket,
    ReadinessCategory,
    RelevanceResult,
    RequiredActor,
    RequiredConfirmation,
)
from .time_utils import epoch_millis

EXECUTION_DISABLED = "Execution disabled in this environment"
LOW_CONFIDENCE_BLOCKER = "Low confidence in intent or context"
INSUFFICIENT_DATA_BLOCKER = "Insufficient data for planning"
LOW_CONFIDENCE_DATA = "Additional context to raise confidence in the request"
MISSING_CONTEXT_DATA = "Missing context required for action"

RISKS = ("This is a simulated plan for preview purposes only.",)
DISCLAIMERS = ("PREVIEW ONLY", "NO ACTIONS EXECUTED")


@dataclass(frozen=True)
class _PlanTemplate:
    summary: str
    proposed_actions: tuple[str, ...]
    confirmations: tuple[RequiredConfirmation, ...]
    blocker: str
    required_data: tuple[str, ...] = ()


_TEMPLATES = {
    IntentBucket.SCHEDULING: _PlanTemplate(
        summary="This preview suggests how a scheduling request would normally be processed.",
        proposed_actions=(
            "Search for available appointment slots matching patient preferences",
            "Coordinate with clinician schedule and clinic availability",
            "Prepare appointment confirmation notification",
        ),
        confirmations=(
            RequiredConfirmation(RequiredActor.PATIENT, "Time Slot Selection"),
            RequiredConfirmation(RequiredActor.CLINICIAN, "Schedule Approval"),
        ),
        blocker="Write operations (scheduling) are disabled",
    ),
    IntentBucket.CLINICAL_DRAFTING: _PlanTemplate(
        summary="A clinician would typically review a draft note based on the selected evidence.",
        proposed_actions=(
            "Draft clinical note summary using relevant timeline items",
            "Flag potential gaps in documentation for clinician review",
            "Cross-reference with patient's stated concerns in current intent",
        ),
        confirmations=(RequiredConfirmation(RequiredActor.CLINICIAN, "Note Review and Attestation"),),
        blocker="No attestation or commit capability in this environment",
    ),
    IntentBucket.RECORD_SUMMARY: _PlanTemplate(
        summary="This plan suggests an informational-only summary of patient records.",
        proposed_actions=(
            "Synthesize selected timeline items into a concise summary",
            "Highlight key events and temporal changes identified",
        ),
        confirmations=(),
        blocker="Read-only environment; no record modifications",
    ),
    IntentBucket.BILLING_EXPLANATION: _PlanTemplate(
        summary="This preview indicates how billing queries would be investigated.",
        proposed_actions=(
            "Retrieve relevant billing statements and insurance claims",
            "Identify specific line items matching the patient query",
        ),
        confirmations=(RequiredConfirmation(RequiredActor.OPERATOR, "Financial Data Access"),),
        blocker="Access to live billing systems is restricted",
    ),
}

_UNKNOWN_TEMPLATE = _PlanTemplate(
    summary="Insufficient information to generate a specific execution plan.",
    proposed_actions=(),
    confirmations=(),
    blocker="Unknown or unsupported intent for execution planning",
    required_data=("Clarification of patient intent",),
)


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value <= 0:
        return "0"
    encoded = ""
    while value:
        value, remainder = divmod(value, 36)
        encoded = digits[remainder] + encoded
    return encoded


def generate_execution_plan(
    intent: IntentBucket,
    relevance: RelevanceResult,
    readiness: ActionReadinessResult,
    confidence: ConfidenceLevel,
    *,
    now: datetime,
) -> ExecutionPlanResult:
    """Build the "what would happen" preview for a request.

    ``blocked_by`` always opens with the execution-disabled entry, so even an
    informational plan carries at least one blocker.
    """
    template = _TEMPLATES.get(intent, _UNKNOWN_TEMPLATE)

    blocked_by = [EXECUTION_DISABLED]
    required_data = list(template.required_data)

    if confidence is ConfidenceLevel.LOW:
        blocked_by.append(LOW_CONFIDENCE_BLOCKER)
    if intent is IntentBucket.SCHEDULING and confidence is not ConfidenceLevel.HIGH:
        required_data.extend(("Preferred date range", "Specific clinician preference"))
    blocked_by.append(template.blocker)

    if confidence is ConfidenceLevel.LOW and not required_data:
        required_data.append(LOW_CONFIDENCE_DATA)

    if readiness.category is ReadinessCategory.REQUIRES_ADDITIONAL_DATA:
        blocked_by.append(INSUFFICIENT_DATA_BLOCKER)
        if not required_data:
            required_data.append(MISSING_CONTEXT_DATA)

    return ExecutionPlanResult(
        plan_id=f"plan-{intent.value}-{_base36(epoch_millis(now))}",
        intent_bucket=intent,
        summary=template.summary,
        proposed_actions=template.proposed_actions,
        required_human_confirmations=template.confirmations,
        required_data=tuple(required_data),
        blocked_by=tuple(blocked_by),
        evidence=tuple(item.event.attribution() for item in relevance.selected_items),
        risks=RISKS,
        disclaimers=DISCLAIMERS,
    )
