from __future__ import annotations

import os
import re
import uuid
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from careview_agent_core import (
    DEFAULT_RULES,
    ActorRole,
    AuditEventType,
    EventKind,
    IntentBucket,
    LanguageSafetyError,
    PatientContext,
    PreviewConfirmationRecord,
    PreviewSession,
    PreviewState,
    ReasoningRules,
    RequiredActor,
    Timeline,
    TimelineEvent,
    configure_logging,
    create_human_confirmation_audit_event,
    get_logger,
    run_reasoning_pass,
)
from careview_agent_core.models import CONFIRMATION_EVENT_TYPES
from careview_agent_core.time_utils import parse_reference_date, to_iso, utc_now

_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DEFAULT_REFERENCE_DATE = date(2026, 1, 13)


def _load_local_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not _ENV_KEY_RE.fullmatch(key):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _bootstrap_local_env() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    for candidate in (repo_root / ".env", repo_root / "backend/.env"):
        if candidate.exists():
            _load_local_env_file(candidate)


_bootstrap_local_env()
configure_logging()
logger = get_logger("api")


class TimelineEventPayload(BaseModel):
    date: date
    kind: EventKind
    title: str
    summary: str = ""

    def to_event(self) -> TimelineEvent:
        return TimelineEvent(date=self.date, kind=self.kind, title=self.title, summary=self.summary)


class TimelinePayload(BaseModel):
    patient_id: str
    events: list[TimelineEventPayload] = Field(default_factory=list)

    def to_timeline(self) -> Timeline:
        return Timeline(patient_id=self.patient_id, events=tuple(event.to_event() for event in self.events))


class PatientContextPayload(BaseModel):
    patient_id: str
    display_name: str = ""
    age: int | None = None
    sex: str | None = None
    medications: list[str] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)

    def to_context(self) -> PatientContext:
        return PatientContext(
            patient_id=self.patient_id,
            display_name=self.display_name,
            age=self.age,
            sex=self.sex,
            medications=tuple(self.medications),
            conditions=tuple(self.conditions),
        )


class ReasoningRequest(BaseModel):
    message: str
    timeline: TimelinePayload
    patient_context: PatientContextPayload | None = None
    message_id: str | None = None
    actor_role: ActorRole = ActorRole.PATIENT
    session_role: str | None = None
    reference_date: date | None = None


class PreviewRecordPayload(BaseModel):
    preview_id: str
    state: PreviewState
    actor: RequiredActor
    intent_summary: str
    would_normally_happen: list[str] = Field(default_factory=list)
    confirmation_rationale: str
    timestamp: datetime
    session_role: str

    def to_record(self) -> PreviewConfirmationRecord:
        return PreviewConfirmationRecord(
            preview_id=self.preview_id,
            state=self.state,
            actor=self.actor,
            intent_summary=self.intent_summary,
            would_normally_happen=tuple(self.would_normally_happen),
            confirmation_rationale=self.confirmation_rationale,
            timestamp=self.timestamp,
            session_role=self.session_role,
        )


class PreviewTransitionRequest(BaseModel):
    record: PreviewRecordPayload
    target_state: PreviewState
    message_id: str
    intent: IntentBucket
    actor_role: ActorRole = ActorRole.PATIENT
    next_index: int = Field(default=0, ge=0)


class ConfirmationEventRequest(BaseModel):
    message_id: str
    index: int = Field(ge=0)
    event_type: AuditEventType
    intent: IntentBucket
    actor_role: ActorRole = ActorRole.PATIENT


class CareViewApp:
    def __init__(self) -> None:
        self.reference_date = parse_reference_date(os.getenv("CAREVIEW_REFERENCE_DATE"), _DEFAULT_REFERENCE_DATE)
        session_role = os.getenv("CAREVIEW_DEFAULT_SESSION_ROLE", "").strip()
        self.rules: ReasoningRules = (
            replace(DEFAULT_RULES, default_session_role=session_role) if session_role else DEFAULT_RULES
        )

    def reason(self, payload: ReasoningRequest, *, now: datetime):
        return run_reasoning_pass(
            payload.message,
            payload.timeline.to_timeline(),
            payload.patient_context.to_context() if payload.patient_context else None,
            message_id=payload.message_id or f"msg-{uuid.uuid4().hex[:12]}",
            actor_role=payload.actor_role,
            session_role=payload.session_role,
            reference_date=payload.reference_date or self.reference_date,
            now=now,
            rules=self.rules,
        )


container = CareViewApp()
app = FastAPI(title="CareView Backend")

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "mode": "preview_only",
        "reference_date": container.reference_date.isoformat(),
        "checked_at": to_iso(utc_now()),
    }


@app.post("/reasoning/pass")
def reasoning_pass(payload: ReasoningRequest):
    if (
        payload.patient_context is not None
        and payload.patient_context.patient_id != payload.timeline.patient_id
    ):
        raise HTTPException(status_code=400, detail="patient_context does not match timeline patient_id")
    try:
        result = container.reason(payload, now=utc_now())
    except LanguageSafetyError as exc:
        logger.error("Reasoning pass rejected by language safety", extra={"error": str(exc)})
        raise HTTPException(status_code=500, detail="Generated text failed language safety.") from exc
    return result.as_envelope()


@app.post("/preview/transition")
def preview_transition(payload: PreviewTransitionRequest):
    session = PreviewSession(
        message_id=payload.message_id,
        actor_role=payload.actor_role,
        intent=payload.intent,
        record=payload.record.to_record(),
        next_index=payload.next_index,
    )
    updated = session.transition(payload.target_state, now=utc_now())
    if updated is None:
        logger.warning(
            "Rejected preview transition",
            extra={"from_state": payload.record.state.value, "to_state": payload.target_state.value},
        )
        raise HTTPException(
            status_code=409,
            detail=f"Invalid preview transition: {payload.record.state.value} -> {payload.target_state.value}",
        )
    return {
        "record": updated.as_dict(),
        "audit_events": [event.as_dict() for event in session.events],
        "next_index": session.next_index,
    }


@app.post("/preview/audit-events")
def preview_audit_event(payload: ConfirmationEventRequest):
    if payload.event_type not in CONFIRMATION_EVENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Not a confirmation event type: {payload.event_type.value}")
    event = create_human_confirmation_audit_event(
        payload.message_id,
        payload.index,
        payload.event_type,
        payload.actor_role,
        payload.intent,
        now=utc_now(),
    )
    return {"audit_event": event.as_dict(), "next_index": payload.index + 1}
