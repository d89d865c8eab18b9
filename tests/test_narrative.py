import json

import pytest

from xm8detect.errors import AnalysisError, UpstreamParseError
from xm8detect.narrative import (
    FALLBACK_RECOMMENDATION,
    NarrativeSummarizer,
    parse_structured_payload,
)
from xm8detect.schemas import Category, ConfidenceTier
from xm8detect.utils import first_balanced_object, preview


REPORT = {
    "primaryItem": {
        "name": "Architectural asphalt shingles",
        "category": "roofing",
        "confidence": 92,
        "condition": "damaged",
        "material": "fiberglass asphalt",
        "ageEstimate": "15 years",
    },
    "detectedItems": [
        {"name": "Aluminum gutter", "category": "roofing", "confidence": 80, "description": "5in K-style"},
        {"name": "Vinyl siding", "category": "exterior", "confidence": 64},
    ],
    "damageAssessment": {
        "hasDamage": True,
        "damageType": "wind",
        "severity": "moderate",
        "description": "Creased and missing tabs on the south slope",
    },
    "xactimateNotes": "RFG 300S laminated comp shingle, remove and replace",
    "recommendations": ["Inspect decking for exposure"],
    "summary": "Wind-damaged laminated shingle roof.",
}


@pytest.fixture
def summarizer(classifier):
    return NarrativeSummarizer(classifier)


def test_first_balanced_object_ignores_braces_in_strings():
    text = 'Here you go: {"a": "x } y", "b": {"c": 1}} trailing {"d": 2}'
    assert first_balanced_object(text) == '{"a": "x } y", "b": {"c": 1}}'


def test_first_balanced_object_handles_unbalanced_text():
    assert first_balanced_object('{"a": {"b": 1}') is None
    assert first_balanced_object("no braces at all") is None


def test_preview_is_bounded():
    assert preview("short") == "short"
    long_text = "x" * 500
    assert len(preview(long_text)) == 200
    assert preview(long_text).endswith("...")


def test_parse_fenced_payload():
    text = "Sure! Here is the analysis:\n```json\n" + json.dumps(REPORT) + "\n```\nLet me know."
    parsed = parse_structured_payload(text)

    assert parsed.ok
    assert parsed.error is None
    assert parsed.report.primary_item.name == "Architectural asphalt shingles"
    assert parsed.report.damage_assessment.damage_type == "wind"


@pytest.mark.parametrize(
    ("text", "reason"),
    [
        ("", "Empty model output"),
        ("   ", "Empty model output"),
        ("The photo shows a roof with some shingles missing.", "No balanced JSON object in model output"),
        ('{"primaryItem": {"name": "Roof"', "No balanced JSON object in model output"),
        ("{primaryItem: roof}", "Invalid JSON in model output"),
        ('{"primaryItem": {"name": "Roof", "confidence": "high"}}', "Model payload does not match the report shape"),
        ('{"detectedItems": "none"}', "Model payload does not match the report shape"),
    ],
)
def test_parse_failures_are_values_not_exceptions(text, reason):
    parsed = parse_structured_payload(text)
    assert not parsed.ok
    assert parsed.report is None
    assert parsed.error.message == reason


def test_only_the_first_balanced_span_is_considered():
    text = "{not json} " + json.dumps(REPORT)
    assert not parse_structured_payload(text).ok


def test_structured_report_is_classified(summarizer):
    analysis, summary, report = summarizer.summarize(json.dumps(REPORT))

    assert report is not None
    assert analysis.primary.name == "Architectural asphalt shingles"
    assert analysis.primary.score == pytest.approx(0.92)
    assert [d.name for d in analysis.roofing] == ["Architectural asphalt shingles", "Aluminum gutter"]
    assert [d.name for d in analysis.exterior] == ["Vinyl siding"]
    assert summary.category is Category.ROOFING
    assert summary.confidence_tier is ConfidenceTier.HIGH
    assert summary.actionable is True
    assert summary.fallback is False
    assert summary.material == "fiberglass asphalt"
    assert summary.condition == "damaged"
    assert summary.damage.has_damage is True
    assert summary.notes == "RFG 300S laminated comp shingle, remove and replace"
    assert summary.summary == "Wind-damaged laminated shingle roof."
    assert summary.recommendations[0].endswith("ready for downstream estimate coding.")
    assert summary.recommendations[-1] == "Inspect decking for exposure"


def test_fractional_confidence_is_accepted(summarizer):
    payload = {"primaryItem": {"name": "Ceiling drywall", "confidence": 0.75}}
    _, summary, _ = summarizer.summarize(json.dumps(payload))
    assert summary.category is Category.INTERIOR
    assert summary.confidence_tier is ConfidenceTier.MEDIUM


def test_percent_string_confidence_is_accepted(summarizer):
    payload = {"primaryItem": {"name": "Furnace", "confidence": "88%"}}
    _, summary, _ = summarizer.summarize(json.dumps(payload))
    assert summary.category is Category.APPLIANCES
    assert summary.confidence_tier is ConfidenceTier.HIGH


def test_free_text_without_braces_falls_back(summarizer):
    text = "I can see a kitchen with wooden cabinets and a stainless refrigerator. " * 10

    analysis, summary, report = summarizer.summarize(text)

    assert report is None
    assert analysis.primary is None
    assert analysis.categorized() == []
    assert summary.fallback is True
    assert summary.actionable is False
    assert summary.confidence_tier is ConfidenceTier.LOW
    assert summary.notes == text
    assert len(summary.summary) <= 200
    assert summary.summary.startswith("I can see a kitchen")
    assert summary.recommendations == [FALLBACK_RECOMMENDATION]


def test_invalid_item_falls_back(summarizer):
    payload = {"primaryItem": {"name": "Roof", "confidence": 250}}
    _, summary, report = summarizer.summarize(json.dumps(payload))
    assert report is None
    assert summary.fallback is True


def test_none_text_falls_back(summarizer):
    _, summary, _ = summarizer.summarize(None)
    assert summary.fallback is True
    assert summary.notes == ""
    assert summary.summary == ""


def test_confidence_of_one_means_one_percent(summarizer):
    payload = {"primaryItem": {"name": "Roof", "confidence": 1}}
    analysis, summary, _ = summarizer.summarize(json.dumps(payload))
    assert analysis.primary.score == pytest.approx(0.01)
    assert summary.confidence_tier is ConfidenceTier.LOW
    assert summary.actionable is False


def test_parse_error_is_not_an_http_error():
    parsed = parse_structured_payload("no json here")
    assert not parsed.ok
    assert isinstance(parsed.error, UpstreamParseError)
    assert not isinstance(parsed.error, AnalysisError)
    assert not hasattr(parsed.error, "status_code")
    assert parsed.error.message
