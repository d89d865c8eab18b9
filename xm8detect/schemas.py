"""
Data model for detections, categorized results and summaries.

All models serialize with camelCase aliases (primaryItem, topItems, ...)
so the JSON body matches what the front-end already consumes.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    ROOFING = "roofing"
    EXTERIOR = "exterior"
    INTERIOR = "interior"
    APPLIANCES = "appliances"
    FIXTURES = "fixtures"
    CONTENTS = "contents"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


# Priority order used for categorization and for picking the summary category
NAMED_CATEGORIES = [c for c in Category if c is not Category.OTHER]


class ConfidenceTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Vertex(_CamelModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Detection(_CamelModel):
    """A single label or localized object returned by a vision call."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    score: float = Field(ge=0.0, le=1.0)
    kind: Literal["label", "object"] = "label"
    bounding_region: Optional[List[Vertex]] = None
    category_hint: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("detection name must not be blank")
        return value

    @computed_field
    @property
    def confidence(self) -> float:
        """Score as a percentage; rounding only hides float noise (0.85 -> 85.0, 0.8500037 -> 85.00037)."""
        return round(self.score * 100, 9)


class CategorizedResult(_CamelModel):
    primary: Optional[Detection] = None
    roofing: List[Detection] = Field(default_factory=list)
    exterior: List[Detection] = Field(default_factory=list)
    interior: List[Detection] = Field(default_factory=list)
    appliances: List[Detection] = Field(default_factory=list)
    fixtures: List[Detection] = Field(default_factory=list)
    contents: List[Detection] = Field(default_factory=list)
    other: List[Detection] = Field(default_factory=list)
    extracted_text: Optional[str] = None

    def bucket(self, category: Category) -> List[Detection]:
        return getattr(self, category.value)

    def categorized(self) -> List[Detection]:
        """Every bucketed detection, in category priority order."""
        items: List[Detection] = []
        for category in Category:
            items.extend(self.bucket(category))
        return items


class DamageAssessment(_CamelModel):
    has_damage: bool = False
    damage_type: str = "none"
    severity: str = "none"
    description: Optional[str] = None


class AnalysisSummary(_CamelModel):
    primary_item: Optional[Detection] = None
    category: Optional[Category] = None
    confidence_tier: ConfidenceTier = ConfidenceTier.LOW
    top_items: List[Detection] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    actionable: bool = False

    # Narrative variant only
    material: Optional[str] = None
    condition: Optional[str] = None
    damage: Optional[DamageAssessment] = None
    notes: Optional[str] = None
    # bounded to 200 characters
    summary: Optional[str] = None
    fallback: bool = False


# -----------------------------------
# Narrative (vision-LLM) payload
# -----------------------------------


class NarrativeItem(_CamelModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    category: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    condition: Optional[str] = None
    material: Optional[str] = None
    description: Optional[str] = None
    age_estimate: Optional[str] = None
    brand_model: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _strip_percent(cls, value: Any) -> Any:
        # models sometimes answer "85%" instead of 85
        if isinstance(value, str):
            return value.strip().rstrip("%").strip()
        return value

    @property
    def score(self) -> float:
        """
        Confidence normalized to 0..1.

        The prompt asks for 0..100, so 1 means 1%. Only values below 1 are
        read as fractions, for models that answer 0.85 anyway.
        """
        if self.confidence is None:
            return 0.0
        if self.confidence >= 1:
            return self.confidence / 100
        return self.confidence


class NarrativeReport(_CamelModel):
    model_config = ConfigDict(extra="allow")

    primary_item: Optional[NarrativeItem] = None
    detected_items: List[NarrativeItem] = Field(default_factory=list)
    damage_assessment: Optional[DamageAssessment] = None
    xactimate_notes: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)
    summary: Optional[str] = None


# -----------------------------------
# HTTP bodies
# -----------------------------------


class AnalysisMetadata(_CamelModel):
    filename: Optional[str] = None
    file_size: int
    processed_at: str
    model_used: str
    crop_requested: bool = False
    tokens_used: Optional[int] = None


class AnalyzeResponse(_CamelModel):
    success: bool = True
    analysis: CategorizedResult
    summary: AnalysisSummary
    report: Optional[NarrativeReport] = None
    metadata: AnalysisMetadata
    # unparsed model text, narrative variant only
    raw_response: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str


class CategoriesResponse(_CamelModel):
    supported_categories: List[Category]
    keywords: Dict[str, List[str]]
