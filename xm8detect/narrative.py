"""
Free-form vision-LLM output -> categorized result and summary.

The model is asked for JSON but answers are free text; the payload is
parsed as a result-or-failure value. A failed parse never fails the
request: the caller gets a degraded low-confidence summary instead.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from pydantic import ValidationError

from xm8detect.classifier import DetectionClassifier
from xm8detect.errors import UpstreamParseError
from xm8detect.schemas import (
    AnalysisSummary,
    CategorizedResult,
    ConfidenceTier,
    Detection,
    NarrativeItem,
    NarrativeReport,
)
from xm8detect.utils import first_balanced_object, preview, strip_code_fences

logger = logging.getLogger(__name__)

FALLBACK_RECOMMENDATION = "Review analysis for accuracy"


@dataclass(frozen=True)
class NarrativeParse:
    report: Optional[NarrativeReport] = None
    error: Optional[UpstreamParseError] = None

    @property
    def ok(self) -> bool:
        return self.report is not None


def _failed(reason: str, details: Optional[str] = None) -> NarrativeParse:
    return NarrativeParse(error=UpstreamParseError(reason, details))


def parse_structured_payload(text: Optional[str]) -> NarrativeParse:
    """Parse the first balanced {...} span of a model response. Never raises."""
    if not text or not text.strip():
        return _failed("Empty model output")

    span = first_balanced_object(strip_code_fences(text))
    if span is None:
        return _failed("No balanced JSON object in model output")

    try:
        payload = json.loads(span)
    except json.JSONDecodeError as e:
        return _failed("Invalid JSON in model output", str(e))

    if not isinstance(payload, dict):
        return _failed("Model payload is not a JSON object")

    try:
        report = NarrativeReport.model_validate(payload)
    except ValidationError as e:
        return _failed("Model payload does not match the report shape", str(e))

    return NarrativeParse(report=report)


def report_detections(report: NarrativeReport) -> List[Detection]:
    """Primary item first, so it wins score ties against detected items."""
    items: List[NarrativeItem] = []
    if report.primary_item is not None:
        items.append(report.primary_item)
    items.extend(report.detected_items)
    return [
        Detection(
            name=item.name,
            score=item.score,
            kind="label",
            category_hint=item.category,
        )
        for item in items
    ]


def fallback_summary(text: str) -> AnalysisSummary:
    return AnalysisSummary(
        confidence_tier=ConfidenceTier.LOW,
        actionable=False,
        recommendations=[FALLBACK_RECOMMENDATION],
        notes=text,
        summary=preview(text),
        fallback=True,
    )


class NarrativeSummarizer:
    def __init__(self, classifier: DetectionClassifier):
        self.classifier = classifier

    def summarize(
        self, text: Optional[str]
    ) -> Tuple[CategorizedResult, AnalysisSummary, Optional[NarrativeReport]]:
        text = text or ""
        parsed = parse_structured_payload(text)
        if parsed.ok:
            try:
                return self._from_report(parsed.report)
            except ValidationError as e:
                parsed = _failed("Model items are not valid detections", str(e))

        logger.warning(
            "Narrative payload not usable (%s%s), returning fallback summary",
            parsed.error.message,
            f": {parsed.error.details}" if parsed.error.details else "",
        )
        return CategorizedResult(), fallback_summary(text), None

    def _from_report(
        self, report: NarrativeReport
    ) -> Tuple[CategorizedResult, AnalysisSummary, NarrativeReport]:
        result, summary = self.classifier.classify(report_detections(report))

        primary = report.primary_item
        if primary is not None:
            summary.material = primary.material
            summary.condition = primary.condition
        summary.damage = report.damage_assessment
        summary.notes = report.xactimate_notes
        if report.summary:
            summary.summary = preview(report.summary)
        for recommendation in report.recommendations:
            if recommendation and recommendation not in summary.recommendations:
                summary.recommendations.append(recommendation)

        return result, summary, report
