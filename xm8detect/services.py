"""Request pipelines: upload -> upstream vision call -> classifier -> response body."""

import asyncio
import logging
import time
from typing import Optional

from xm8detect.classifier import DetectionClassifier
from xm8detect.errors import NotConfiguredError
from xm8detect.gpt_vision import OpenAINarrator
from xm8detect.image_input import ImageUpload
from xm8detect.label_detection import GoogleVisionDetector
from xm8detect.narrative import NarrativeSummarizer
from xm8detect.schemas import AnalysisMetadata, AnalyzeResponse
from xm8detect.utils import utc_now_iso

logger = logging.getLogger(__name__)


def _ms(seconds: float) -> float:
    return round(seconds * 1000, 2)


class AnalysisService:
    def __init__(
        self,
        classifier: DetectionClassifier,
        label_detector: Optional[GoogleVisionDetector] = None,
        narrator: Optional[OpenAINarrator] = None,
    ):
        self.classifier = classifier
        self.label_detector = label_detector
        self.narrator = narrator
        self.narrative = NarrativeSummarizer(classifier)

    async def analyze_region(
        self, upload: ImageUpload, crop_data: Optional[str] = None
    ) -> AnalyzeResponse:
        """Label variant. crop_data is recorded but the full image is analyzed."""
        if self.label_detector is None:
            raise NotConfiguredError(
                "Google Vision is not configured. Set GOOGLE_CLIENT_EMAIL, GOOGLE_PRIVATE_KEY "
                "and GOOGLE_PROJECT_ID or enable application default credentials."
            )

        total_start = time.time()
        logger.info("[PIPELINE] Analyzing region: %s, size: %s", upload.filename, upload.size)
        if crop_data:
            logger.info("[PIPELINE] Crop region specified (not applied): %s", crop_data)

        vision_start = time.time()
        scan = await asyncio.to_thread(self.label_detector.detect, upload.data)
        vision_time = time.time() - vision_start

        analysis, summary = self.classifier.classify(scan.detections, extracted_text=scan.extracted_text)

        logger.info(
            "[PIPELINE] /analyze timings_ms: vision_ms=%s, total_ms=%s",
            _ms(vision_time),
            _ms(time.time() - total_start),
        )
        return AnalyzeResponse(
            analysis=analysis,
            summary=summary,
            metadata=AnalysisMetadata(
                filename=upload.filename,
                file_size=upload.size,
                processed_at=utc_now_iso(),
                model_used=self.label_detector.model,
                crop_requested=bool(crop_data),
            ),
        )

    async def analyze_narrative(self, upload: ImageUpload) -> AnalyzeResponse:
        """Narrative variant: one vision-LLM call, parsed with fallback."""
        if self.narrator is None:
            raise NotConfiguredError(
                "OpenAI API key not configured. Please add OPENAI_API_KEY to environment variables."
            )

        total_start = time.time()
        logger.info(
            "[PIPELINE] Analyzing image with GPT vision: %s, size: %s",
            upload.filename,
            upload.size,
        )

        gpt_start = time.time()
        response = await asyncio.to_thread(
            self.narrator.describe, upload.data, upload.content_type
        )
        gpt_time = time.time() - gpt_start

        analysis, summary, report = self.narrative.summarize(response.text)

        logger.info(
            "[PIPELINE] /analyze-image timings_ms: gpt_ms=%s, total_ms=%s, fallback=%s",
            _ms(gpt_time),
            _ms(time.time() - total_start),
            summary.fallback,
        )
        return AnalyzeResponse(
            analysis=analysis,
            summary=summary,
            report=report,
            metadata=AnalysisMetadata(
                filename=upload.filename,
                file_size=upload.size,
                processed_at=utc_now_iso(),
                model_used=response.model,
                tokens_used=response.tokens_used,
            ),
            raw_response=response.text,
        )
