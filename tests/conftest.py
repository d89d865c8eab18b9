from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from xm8detect.classifier import DetectionClassifier
from xm8detect.config import Settings
from xm8detect.gpt_vision import NarrativeResponse
from xm8detect.label_detection import LabelScan
from xm8detect.main import create_app
from xm8detect.schemas import Detection
from xm8detect.services import AnalysisService


class FakeDetector:
    model = "fake-vision"

    def __init__(self, scan=None, error=None):
        self.scan = scan or LabelScan()
        self.error = error
        self.calls = 0

    def detect(self, image_bytes):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.scan


class FakeNarrator:
    def __init__(self, text="", error=None, model="fake-gpt"):
        self.text = text
        self.error = error
        self.model = model
        self.calls = 0

    def describe(self, image_bytes, content_type):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return NarrativeResponse(text=self.text, model=self.model, tokens_used=42)


def make_png(width=8, height=8, color=(120, 80, 40)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def classifier():
    return DetectionClassifier()


@pytest.fixture
def settings():
    return Settings(enable_label_detection=False, max_upload_mb=1)


@pytest.fixture
def shingle_scan():
    return LabelScan(
        detections=[
            Detection(name="Asphalt Shingle", score=0.92, kind="label"),
            Detection(name="Roof", score=0.81, kind="label"),
            Detection(name="Sky", score=0.55, kind="label"),
            Detection(name="Window", score=0.66, kind="object"),
        ],
        extracted_text="GAF",
    )


@pytest.fixture
def make_client(settings, classifier):
    clients = []

    def _make(detector=None, narrator=None, raise_server_exceptions=True):
        service = AnalysisService(classifier, label_detector=detector, narrator=narrator)
        client = TestClient(
            create_app(settings, service=service),
            raise_server_exceptions=raise_server_exceptions,
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
