"""FastAPI application factory."""

import logging
import sys
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google.auth.exceptions import DefaultCredentialsError
from starlette.exceptions import HTTPException as StarletteHTTPException

from xm8detect import __version__
from xm8detect.classifier import ClassifierConfig, DetectionClassifier
from xm8detect.config import Settings
from xm8detect.errors import AnalysisError, InputValidationError, UnexpectedError
from xm8detect.gpt_vision import OpenAINarrator
from xm8detect.image_input import read_upload
from xm8detect.label_detection import GoogleVisionDetector, build_vision_client
from xm8detect.openai_client import build_openai_client
from xm8detect.schemas import AnalyzeResponse, CategoriesResponse, Category, HealthResponse
from xm8detect.services import AnalysisService
from xm8detect.utils import utc_now_iso

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        stream=sys.stdout,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_service(settings: Settings, classifier: Optional[DetectionClassifier] = None) -> AnalysisService:
    """Wire the adapters that are configured; missing ones answer with NotConfiguredError."""
    classifier = classifier or DetectionClassifier(ClassifierConfig())

    label_detector = None
    if settings.enable_label_detection:
        try:
            label_detector = GoogleVisionDetector(
                build_vision_client(settings), timeout=settings.upstream_timeout_s
            )
        except DefaultCredentialsError as e:
            logger.warning("Label detection disabled, no Google credentials: %s", e)
    else:
        logger.info("Label detection disabled (ENABLE_LABEL_DETECTION=false)")

    narrator = None
    if settings.openai_api_key:
        narrator = OpenAINarrator(build_openai_client(settings), model=settings.gpt_model)
    else:
        logger.warning("Narrative analysis disabled, OPENAI_API_KEY is not set")

    return AnalysisService(classifier, label_detector=label_detector, narrator=narrator)


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def get_service(request: Request) -> AnalysisService:
    return request.app.state.service


def create_app(settings: Optional[Settings] = None, service: Optional[AnalysisService] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="XM8 Detect", version=__version__)
    app.state.settings = settings
    app.state.service = service or build_service(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not settings.allow_all_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AnalysisError)
    async def _analysis_error_handler(request: Request, exc: AnalysisError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        # malformed form bodies, e.g. "image" sent as a text field instead of a file
        logger.info("%s %s rejected: invalid request body", request.method, request.url.path)
        error = InputValidationError("Invalid request", _describe_validation_errors(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error in %s %s", request.method, request.url.path)
        error = UnexpectedError("Internal server error")
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    # -----------------------------------
    # Tech endpoints
    # -----------------------------------

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(status="OK", timestamp=utc_now_iso(), version=__version__)

    @app.get("/categories", response_model=CategoriesResponse)
    def categories(service: AnalysisService = Depends(get_service)):
        keywords = service.classifier.config.keywords
        return CategoriesResponse(
            supported_categories=list(Category),
            keywords={category.value: list(words) for category, words in keywords.items()},
        )

    # -----------------------------------
    # Analysis endpoints
    # -----------------------------------

    @app.post("/analyze", response_model=AnalyzeResponse)
    @app.post("/analyze-region", response_model=AnalyzeResponse)
    async def analyze_region(
        image: UploadFile = File(None),
        cropData: Optional[str] = Form(None),
        service: AnalysisService = Depends(get_service),
    ):
        upload = await read_upload(image, settings.max_upload_bytes)
        return await service.analyze_region(upload, crop_data=cropData)

    @app.post("/analyze-image", response_model=AnalyzeResponse)
    async def analyze_image(
        image: UploadFile = File(None),
        service: AnalysisService = Depends(get_service),
    ):
        upload = await read_upload(image, settings.max_upload_bytes)
        return await service.analyze_narrative(upload)

    return app
