"""
Google Cloud Vision label/object/text detection.

Converts the annotator's response into plain Detection values so that
nothing of the Vision API shape reaches the classifier.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import vision
from google.oauth2 import service_account

from xm8detect.config import Settings
from xm8detect.errors import UpstreamAuthError, UpstreamRateLimitError, UpstreamServiceError
from xm8detect.schemas import Detection, Vertex

logger = logging.getLogger(__name__)

MODEL_NAME = "google-cloud-vision"

FEATURES = [
    vision.Feature.Type.LABEL_DETECTION,
    vision.Feature.Type.OBJECT_LOCALIZATION,
    vision.Feature.Type.TEXT_DETECTION,
]


@dataclass
class LabelScan:
    detections: List[Detection] = field(default_factory=list)
    extracted_text: Optional[str] = None


def build_vision_client(settings: Settings) -> vision.ImageAnnotatorClient:
    """Explicit service-account credentials when provided, application default otherwise."""
    if settings.has_google_credentials:
        info = {
            "type": "service_account",
            "client_email": settings.google_client_email,
            "private_key": settings.google_private_key.replace("\\n", "\n"),
            "project_id": settings.google_project_id,
            "token_uri": "https://oauth2.googleapis.com/token",
        }
        credentials = service_account.Credentials.from_service_account_info(info)
        logger.info("Initializing Vision client for %s", settings.google_client_email)
        return vision.ImageAnnotatorClient(credentials=credentials)

    logger.info("Initializing Vision client with application default credentials")
    return vision.ImageAnnotatorClient()


def _bounding_region(annotation: Any) -> Optional[List[Vertex]]:
    poly = getattr(annotation, "bounding_poly", None)
    vertices = list(getattr(poly, "normalized_vertices", None) or [])
    if not vertices:
        return None
    return [Vertex(x=v.x, y=v.y) for v in vertices]


def detections_from_response(response: Any) -> LabelScan:
    """Labels first, then localized objects, in the order the API returned them."""
    scan = LabelScan()
    for label in response.label_annotations:
        scan.detections.append(
            Detection(name=label.description, score=label.score, kind="label")
        )
    for obj in response.localized_object_annotations:
        scan.detections.append(
            Detection(
                name=obj.name,
                score=obj.score,
                kind="object",
                bounding_region=_bounding_region(obj),
            )
        )
    texts = list(response.text_annotations)
    if texts:
        scan.extracted_text = texts[0].description
    return scan


class GoogleVisionDetector:
    def __init__(self, client: vision.ImageAnnotatorClient, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout
        self.model = MODEL_NAME

    def detect(self, image_bytes: bytes) -> LabelScan:
        request = vision.AnnotateImageRequest(
            image=vision.Image(content=image_bytes),
            features=[vision.Feature(type_=feature) for feature in FEATURES],
        )

        try:
            batch = self.client.batch_annotate_images(requests=[request], timeout=self.timeout)
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            raise UpstreamAuthError(
                "Invalid Google Vision credentials. Please check the GOOGLE_* environment variables.",
                str(e),
            ) from e
        except (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests) as e:
            raise UpstreamRateLimitError(
                "Google Vision rate limit exceeded. Please try again in a moment.",
                str(e),
            ) from e
        except google_exceptions.GoogleAPIError as e:
            raise UpstreamServiceError("Failed to analyze image", str(e)) from e

        response = batch.responses[0]
        if response.error.message:
            raise UpstreamServiceError("Failed to analyze image", response.error.message)

        scan = detections_from_response(response)
        logger.info(
            "Vision returned %s labels, %s objects, text=%s",
            len(response.label_annotations),
            len(response.localized_object_annotations),
            scan.extracted_text is not None,
        )
        return scan
