from .audit import build_preview_audit_trail, create_human_confirmation_audit_event
from .comparative import build_comparative_insights
from .confidence import build_confidence_annotations, overall_confidence
from .confirmation import evaluate_human_confirmation
from .execution_plan import generate_execution_plan
from .framing import frame_response_for_perspective, validate_facts_preserved, validate_no_execution_language
from .intent import classify_intent
from .language_safety import LanguageSafetyError, validate_language_safety
from .lifecycle import PreviewSession, create_preview_confirmation_record, transition_preview_state
from .logging_config import configure_logging, get_logger
from .models import (
    ActorRole,
    AuditEventType,
    EventKind,
    FramingResult,
    IntentBucket,
    PatientContext,
    PreviewConfirmationRecord,
    PreviewState,
    ReasoningPass,
    RequiredActor,
    Timeline,
    TimelineEvent,
)
from .pipeline import run_reasoning_pass
from .readiness import evaluate_action_readiness
from .relevance import select_relevant_items
from .rules import DEFAULT_RULES, ReasoningRules
from .synthesis import analyze_timeline

__all__ = [
    "DEFAULT_RULES",
    "ActorRole",
    "AuditEventType",
    "EventKind",
    "FramingResult",
    "IntentBucket",
    "LanguageSafetyError",
    "PatientContext",
    "PreviewConfirmationRecord",
    "PreviewSession",
    "PreviewState",
    "ReasoningPass",
    "ReasoningRules",
    "RequiredActor",
    "Timeline",
    "TimelineEvent",
    "analyze_timeline",
    "build_comparative_insights",
    "build_confidence_annotations",
    "build_preview_audit_trail",
    "classify_intent",
    "configure_logging",
    "create_human_confirmation_audit_event",
    "create_preview_confirmation_record",
    "evaluate_action_readiness",
    "evaluate_human_confirmation",
    "frame_response_for_perspective",
    "generate_execution_plan",
    "get_logger",
    "overall_confidence",
    "run_reasoning_pass",
    "select_relevant_items",
    "transition_preview_state",
    "validate_facts_preserved",
    "validate_language_safety",
    "validate_no_execution_language",
]
