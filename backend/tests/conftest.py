from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from careview_agent_core.models import Timeline  # noqa: E402
from timeline_utils import REFERENCE_DATE, SAMPLE_EVENTS, make_event  # noqa: E402


@pytest.fixture(autouse=True)
def strict_language_safety(monkeypatch):
    monkeypatch.setenv("CAREVIEW_STRICT_LANGUAGE_SAFETY", "true")


@pytest.fixture
def sample_timeline() -> Timeline:
    return Timeline(
        patient_id="patient-001",
        events=tuple(make_event(e["date"], e["kind"], e["title"], e["summary"]) for e in SAMPLE_EVENTS),
    )


@pytest.fixture
def sample_timeline_payload() -> dict:
    return {"patient_id": "patient-001", "events": [dict(event) for event in SAMPLE_EVENTS]}


@pytest.fixture
def backend_module(monkeypatch):
    monkeypatch.setenv("CAREVIEW_REFERENCE_DATE", REFERENCE_DATE.isoformat())
    monkeypatch.setenv("CAREVIEW_LOG_FORMAT", "text")
    monkeypatch.delenv("CAREVIEW_DEFAULT_SESSION_ROLE", raising=False)

    if "main" in sys.modules:
        module = importlib.reload(sys.modules["main"])
    else:
        module = importlib.import_module("main")
    return module


@pytest.fixture
def client(backend_module):
    with TestClient(backend_module.app) as test_client:
        yield test_client
