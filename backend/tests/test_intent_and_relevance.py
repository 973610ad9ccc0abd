from __future__ import annotations

from careview_agent_core.intent import classify_intent, get_intent_label
from careview_agent_core.models import IntentBucket, MatchConfidence
from careview_agent_core.relevance import extract_content_keywords, is_billing_related, select_relevant_items
from timeline_utils import make_event, make_timeline


def test_scheduling_message_with_two_hits_is_high_confidence():
    result = classify_intent("I need to schedule an appointment")
    assert result.intent is IntentBucket.SCHEDULING
    assert result.matched_keywords == ("appointment", "schedule")
    assert result.confidence is MatchConfidence.HIGH


def test_single_keyword_hit_is_low_confidence():
    result = classify_intent("Why is my bill so high?")
    assert result.intent is IntentBucket.BILLING_EXPLANATION
    assert result.matched_keywords == ("bill",)
    assert result.confidence is MatchConfidence.LOW


def test_empty_and_unmatched_messages_are_unknown():
    for message in ("", "   ", None, "hello there"):
        result = classify_intent(message)
        assert result.intent is IntentBucket.UNKNOWN
        assert result.matched_keywords == ()
        assert result.confidence is MatchConfidence.LOW


def test_ties_go_to_the_earlier_bucket():
    # One scheduling hit ("appointment") and one drafting hit ("note").
    result = classify_intent("appointment note")
    assert result.intent is IntentBucket.SCHEDULING


def test_most_matches_wins_over_priority():
    result = classify_intent("Draft a SOAP note for the back pain visit")
    assert result.intent is IntentBucket.CLINICAL_DRAFTING
    assert result.matched_keywords == ("note", "soap", "draft")


def test_intent_labels():
    assert get_intent_label(IntentBucket.SCHEDULING) == "Scheduling & Appointments"
    assert get_intent_label(IntentBucket.UNKNOWN) == "General Inquiry"


def test_content_keywords_drop_stop_words_and_short_tokens():
    assert extract_content_keywords("Please tell me about the back pain") == ["back", "pain"]
    assert extract_content_keywords("pain pain PAIN") == ["pain"]
    assert extract_content_keywords(None) == []


def test_billing_detection_reads_title_and_summary():
    assert is_billing_related(make_event("2025-01-01", "event", "Statement", "Copay due"))
    assert not is_billing_related(make_event("2025-01-01", "event", "Referral", "Sent to PT"))


def test_scheduling_selection_orders_by_score_then_date(sample_timeline):
    result = select_relevant_items("I need to schedule an appointment", sample_timeline)

    assert result.intent is IntentBucket.SCHEDULING
    assert result.has_evidence is True
    assert [item.date.isoformat() for item in result.selected_items] == ["2025-11-20", "2025-08-16", "2025-08-15"]
    assert [item.score for item in result.selected_items] == [4, 3, 3]
    assert result.max_score == 4
    assert result.evidence_attribution == (
        "2025-11-20: Routine Follow-up (Hypertension)",
        "2025-08-16: Referral: Physical Therapy",
        "2025-08-15: Urgent Care - Low Back Pain",
    )
    assert result.explanation[0] == "Intent classified as: Scheduling & Appointments (matched: appointment, schedule)"
    assert result.explanation[1] == "Found 3 relevant items from the patient timeline:"
    assert result.explanation[2] == (
        '• 2025-11-20: "Routine Follow-up (Hypertension)" (visit) - type match, most recent'
    )


def test_keyword_match_adds_to_type_match():
    timeline = make_timeline(
        make_event("2026-01-05", "visit", "Annual physical", "Labs reviewed. Cholesterol normal."),
        make_event("2025-06-01", "visit", "Sick visit", "Sore throat."),
    )
    result = select_relevant_items("Show me my labs results", timeline)
    top = result.selected_items[0]
    assert top.title == "Annual physical"
    assert (top.breakdown.type_match, top.breakdown.keyword_match, top.breakdown.recency_bonus) == (3, 2, 1)
    assert top.score == 6


def test_recency_alone_never_selects_an_item(sample_timeline):
    result = select_relevant_items("hello there", sample_timeline)
    assert result.selected_items == ()
    assert result.has_evidence is False
    assert result.max_score == 0
    assert result.explanation[-1] == (
        "No timeline items matched the query. Please try using specific medical or scheduling terms."
    )


def test_billing_without_billing_records_reports_gap(sample_timeline):
    result = select_relevant_items("Why is my bill so high?", sample_timeline)
    assert result.selected_items == ()
    assert result.explanation == (
        "Intent classified as: Billing & Insurance (matched: bill)",
        "No billing-related evidence found in the patient timeline.",
        "Gap: The timeline contains no billing or insurance records for this patient.",
    )


def test_billing_event_gets_type_match():
    timeline = make_timeline(
        make_event("2025-12-01", "event", "Insurance claim processed", "Claim 123 paid."),
        make_event("2025-11-01", "event", "Referral: Cardiology", "Referral sent."),
    )
    result = select_relevant_items("question about insurance", timeline)
    assert [item.title for item in result.selected_items] == ["Insurance claim processed"]


def test_selection_is_capped_at_three_and_empty_timeline_is_safe(sample_timeline):
    assert len(select_relevant_items("what happened at my last visit", sample_timeline).selected_items) == 3
    empty = select_relevant_items("schedule an appointment", make_timeline())
    assert empty.selected_items == ()
    assert empty.explanation[-1] == "No relevant scheduling & appointments evidence found in the 0 timeline events."
