#!/usr/bin/env python3
from __future__ import annotations

import importlib
import json
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi.testclient import TestClient


@dataclass
class Scenario:
  name: str
  message: str
  expected_intent: str
  expected_readiness: str


DEMO_TIMELINE = {
  "patient_id": "demo-patient",
  "events": [
    {
      "date": "2025-11-20",
      "kind": "visit",
      "title": "Routine Follow-up (Hypertension)",
      "summary": "Blood pressure stable. Medication adherence confirmed.",
    },
    {
      "date": "2025-08-15",
      "kind": "visit",
      "title": "Urgent Care - Low Back Pain",
      "summary": "Acute lower back strain. Recommended physical therapy.",
    },
    {
      "date": "2025-08-16",
      "kind": "event",
      "title": "Referral: Physical Therapy",
      "summary": "Referral sent for 6 sessions of PT.",
    },
    {
      "date": "2025-05-10",
      "kind": "visit",
      "title": "Annual Wellness Visit",
      "summary": "Comprehensive review. HbA1c 6.8%.",
    },
  ],
}


def run() -> int:
  repo_root = Path(__file__).resolve().parents[1]
  backend_dir = repo_root / "backend"
  if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

  # Any wording slip in generated text should fail the smoke run loudly.
  os.environ.setdefault("CAREVIEW_STRICT_LANGUAGE_SAFETY", "true")
  os.environ.setdefault("CAREVIEW_LOG_FORMAT", "text")

  backend_module = importlib.import_module("main")
  backend_module = importlib.reload(backend_module)

  scenarios = [
    Scenario(
      name="Scheduling With Care Gaps",
      message="I need to schedule an appointment",
      expected_intent="scheduling",
      expected_readiness="REQUIRES_ADDITIONAL_DATA",
    ),
    Scenario(
      name="Clinical Drafting",
      message="Draft a SOAP note for the back pain visit",
      expected_intent="clinical_drafting",
      expected_readiness="REQUIRES_ADDITIONAL_DATA",
    ),
    Scenario(
      name="Billing Without Records",
      message="Why is my bill so high?",
      expected_intent="billing_explanation",
      expected_readiness="NOT_ACTIONABLE_IN_SYSTEM",
    ),
    Scenario(
      name="Ambiguous Request",
      message="hello there",
      expected_intent="unknown",
      expected_readiness="NOT_ACTIONABLE_IN_SYSTEM",
    ),
  ]

  results: list[dict[str, Any]] = []

  with TestClient(backend_module.app) as client:
    for index, scenario in enumerate(scenarios):
      message_id = f"smoke-{index}"
      response = client.post(
        "/reasoning/pass",
        json={"message": scenario.message, "timeline": DEMO_TIMELINE, "message_id": message_id},
      )
      scenario_result: dict[str, Any] = {
        "name": scenario.name,
        "expected_intent": scenario.expected_intent,
        "expected_readiness": scenario.expected_readiness,
        "status_code": response.status_code,
      }
      if response.status_code != 200:
        scenario_result["pass"] = False
        scenario_result["error"] = f"/reasoning/pass returned {response.status_code}"
        results.append(scenario_result)
        continue

      body = response.json()
      scenario_result["actual_intent"] = body["intent"]["intent"]
      scenario_result["actual_readiness"] = body["action_readiness"]["category"]
      scenario_result["audit_types"] = [event["type"] for event in body["audit_trail"]]
      scenario_result["response_preview"] = body["response_text"][:240]

      transition = client.post(
        "/preview/transition",
        json={
          "record": body["preview"],
          "target_state": "PREVIEW_ACKNOWLEDGED",
          "message_id": message_id,
          "intent": body["intent"]["intent"],
          "next_index": len(body["audit_trail"]),
        },
      )
      scenario_result["transition_status_code"] = transition.status_code

      scenario_result["pass"] = (
        scenario_result["actual_intent"] == scenario.expected_intent
        and scenario_result["actual_readiness"] == scenario.expected_readiness
        and transition.status_code == 200
      )
      if not scenario_result["pass"]:
        scenario_result["error"] = "Intent, readiness or preview transition did not match expectations."
      results.append(scenario_result)

  passed = sum(1 for item in results if item.get("pass"))
  failed = len(results) - passed
  timestamp = datetime.now(timezone.utc).isoformat()

  report_lines = [
    "# Reasoning Smoke Report",
    "",
    f"- Timestamp (UTC): `{timestamp}`",
    f"- CAREVIEW_REFERENCE_DATE: `{os.getenv('CAREVIEW_REFERENCE_DATE')}`",
    f"- Total scenarios: `{len(results)}`",
    f"- Passed: `{passed}`",
    f"- Failed: `{failed}`",
    "",
    "## Scenario Results",
    "",
  ]

  for item in results:
    status = "PASS" if item.get("pass") else "FAIL"
    report_lines.append(f"### {status} - {item['name']}")
    report_lines.append(f"- Intent: expected `{item.get('expected_intent')}`, got `{item.get('actual_intent')}`")
    report_lines.append(
      f"- Readiness: expected `{item.get('expected_readiness')}`, got `{item.get('actual_readiness')}`"
    )
    report_lines.append(f"- Preview transition status code: `{item.get('transition_status_code')}`")
    if item.get("error"):
      report_lines.append(f"- Error: `{item['error']}`")
    report_lines.append("- Audit trail:")
    report_lines.append("```json")
    report_lines.append(json.dumps(item.get("audit_types"), indent=2, ensure_ascii=True))
    report_lines.append("```")
    preview = item.get("response_preview") or ""
    if preview:
      report_lines.append(f"- Response preview: `{preview}`")
    report_lines.append("")

  report_path = repo_root / "REASONING_SMOKE_REPORT.md"
  report_path.write_text("\n".join(report_lines), encoding="utf-8")
  print(f"Wrote report: {report_path}")
  print(f"Passed {passed}/{len(results)} scenarios.")

  return 0 if failed == 0 else 1


if __name__ == "__main__":
  raise SystemExit(run())
