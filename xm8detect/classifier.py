"""
Detection classifier: raw vision detections -> categorized, ranked summary.

    detections
      ↓
    categorize (first keyword match wins, else "other" above threshold, else drop)
      ↓
    primary (running max over every detection, first seen wins ties)
      ↓
    confidence tier (low / medium / high)
      ↓
    top items (categorized, > 60%, best 5)
      ↓
    recommendations
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from xm8detect.schemas import (
    AnalysisSummary,
    CategorizedResult,
    Category,
    ConfidenceTier,
    Detection,
    NAMED_CATEGORIES,
)

logger = logging.getLogger(__name__)


DEFAULT_KEYWORDS: Dict[Category, Tuple[str, ...]] = {
    Category.ROOFING: (
        "roof", "roofing", "shingle", "tile", "slate", "asphalt", "metal roofing",
        "gutter", "downspout", "flashing", "ridge", "vent",
    ),
    Category.EXTERIOR: (
        "siding", "brick", "stucco", "window", "door", "garage", "fence", "deck", "patio",
    ),
    Category.INTERIOR: (
        "floor", "flooring", "carpet", "hardwood", "tile", "ceiling", "wall", "paint", "drywall",
    ),
    Category.APPLIANCES: (
        "refrigerator", "stove", "oven", "dishwasher", "washer", "dryer", "microwave",
        "hvac", "furnace", "air conditioner",
    ),
    Category.FIXTURES: (
        "light", "lighting", "fixture", "faucet", "sink", "toilet", "bathtub", "shower",
        "cabinet", "countertop",
    ),
    Category.CONTENTS: (
        "furniture", "sofa", "chair", "table", "bed", "dresser", "television", "computer",
        "electronics",
    ),
}

NO_DETECTION_MESSAGE = "no clear detection — retake photo, ensure subject is centered and well lit."
LOW_CONFIDENCE_MESSAGE = "low confidence detection — retake with better lighting or a closer view."


@dataclass(frozen=True)
class ClassifierConfig:
    # Ordered: dict insertion order is the categorization priority
    keywords: Dict[Category, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_KEYWORDS))
    other_threshold: float = 0.6
    top_item_min_percent: float = 60.0
    top_items_limit: int = 5
    medium_above_percent: float = 70.0
    high_above_percent: float = 85.0


DetectionInput = Union[Detection, Mapping[str, Any]]


class DetectionClassifier:
    """
    Stateless classifier. One instance serves every request; classify()
    allocates fresh result objects on each call.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()
        # lower-case once instead of on every match
        self._keywords: List[Tuple[Category, Tuple[str, ...]]] = [
            (category, tuple(k.lower() for k in keywords))
            for category, keywords in self.config.keywords.items()
        ]

    # -----------------------------------
    # Public API
    # -----------------------------------

    def classify(
        self,
        detections: Iterable[DetectionInput],
        extracted_text: Optional[str] = None,
    ) -> Tuple[CategorizedResult, AnalysisSummary]:
        items = self._validate(detections)
        result = self.categorize(items, extracted_text=extracted_text)
        summary = self.summarize(result)
        logger.info(
            "Classified %s detections: primary=%s, category=%s, tier=%s",
            len(items),
            result.primary.name if result.primary else None,
            summary.category.value if summary.category else None,
            summary.confidence_tier.value,
        )
        return result, summary

    def categorize(
        self,
        detections: Sequence[Detection],
        extracted_text: Optional[str] = None,
    ) -> CategorizedResult:
        result = CategorizedResult(extracted_text=extracted_text)
        highest = 0.0
        primary: Optional[Detection] = None

        for detection in detections:
            if detection.score > highest:
                highest = detection.score
                primary = detection

            category = self.match_category(detection)
            if category is not None:
                result.bucket(category).append(detection)

        result.primary = primary
        return result

    def match_category(self, detection: Detection) -> Optional[Category]:
        """Bucket for a detection, or None when it should be dropped."""
        hinted = _hinted_category(detection.category_hint)
        if hinted is not None:
            return hinted

        name = detection.name.lower()
        for category, keywords in self._keywords:
            if any(keyword in name for keyword in keywords):
                return category

        if detection.score > self.config.other_threshold:
            return Category.OTHER
        return None

    def confidence_tier(self, primary: Optional[Detection]) -> ConfidenceTier:
        if primary is None:
            return ConfidenceTier.LOW
        percent = primary.confidence
        if percent > self.config.high_above_percent:
            return ConfidenceTier.HIGH
        if percent > self.config.medium_above_percent:
            return ConfidenceTier.MEDIUM
        return ConfidenceTier.LOW

    def top_items(self, result: CategorizedResult) -> List[Detection]:
        significant = [
            d for d in result.categorized()
            if d.confidence > self.config.top_item_min_percent
        ]
        # sorted() is stable, equal scores keep category order
        significant = sorted(significant, key=lambda d: d.score, reverse=True)
        return significant[: self.config.top_items_limit]

    def summarize(self, result: CategorizedResult) -> AnalysisSummary:
        summary = AnalysisSummary()
        primary = result.primary

        if primary is None:
            summary.recommendations.append(NO_DETECTION_MESSAGE)
            return summary

        summary.primary_item = primary
        summary.category = self._summary_category(result)
        summary.confidence_tier = self.confidence_tier(primary)
        summary.actionable = summary.confidence_tier is not ConfidenceTier.LOW
        summary.top_items = self.top_items(result)

        if summary.actionable:
            summary.recommendations.append(
                f"{primary.name} identified with {summary.confidence_tier.value} confidence "
                "— ready for downstream estimate coding."
            )
        else:
            summary.recommendations.append(LOW_CONFIDENCE_MESSAGE)

        if summary.category is not None and summary.category is not Category.OTHER:
            summary.recommendations.append(
                f"category: {summary.category.display_name} — suitable for assessment."
            )

        return summary

    # -----------------------------------
    # Helpers
    # -----------------------------------

    def _summary_category(self, result: CategorizedResult) -> Optional[Category]:
        for category in NAMED_CATEGORIES:
            if result.bucket(category):
                return category
        if result.other:
            return Category.OTHER
        return None

    @staticmethod
    def _validate(detections: Iterable[DetectionInput]) -> List[Detection]:
        # ValidationError propagates: bad scores and empty names are not coerced
        return [
            d if isinstance(d, Detection) else Detection.model_validate(d)
            for d in detections
        ]


def _hinted_category(hint: Optional[str]) -> Optional[Category]:
    if not hint:
        return None
    try:
        category = Category(hint.strip().lower())
    except ValueError:
        return None
    if category in NAMED_CATEGORIES:
        return category
    return None
