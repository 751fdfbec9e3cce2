from __future__ import annotations

import io
import os
import sys
from datetime import date

from PIL import Image
from starlette.testclient import TestClient

sys.path.insert(0, os.path.abspath("src"))

from scheduling_intake.domain.errors import OcrError, PreprocessError, UpstreamError
from scheduling_intake.domain.models import OcrResult, WordConfidence
from scheduling_intake.orchestrator.flow import ExtractionFlow
from scheduling_intake.web import create_app


class FakeClient:
    def __init__(self, reply=None, exc=None):
        self.reply = reply
        self.exc = exc
        self.prompts = []

    def invoke(self, prompt):
        self.prompts.append(prompt)
        if self.exc is not None:
            raise self.exc
        return self.reply


def _client(reply='{"status": "scheduled", "date": "2024-05-07", "time": "15:00"}', exc=None, reader=None):
    fake = FakeClient(reply=reply, exc=exc)
    kwargs = {"clock": lambda: date(2024, 5, 1)}
    if reader is not None:
        kwargs["reader"] = reader
    app = create_app(ExtractionFlow(fake, **kwargs))
    return TestClient(app), fake


def _png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (50, 20), color=(255, 255, 255)).save(buf, format="PNG")
    return buf.getvalue()


def test_health():
    client, _ = _client()
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_text_post_returns_record():
    client, fake = _client()
    r = client.post("/text", json={"text": "Let's meet next Tuesday at 3pm"})
    assert r.status_code == 200
    assert r.json() == {"status": "scheduled", "date": "2024-05-07", "time": "15:00"}
    assert "Let's meet next Tuesday at 3pm" in fake.prompts[0]


def test_text_get_with_query_param():
    client, _ = _client()
    r = client.get("/text", params={"text": "Lunch tomorrow"})
    assert r.status_code == 200


def test_text_missing_is_400():
    client, fake = _client()
    r = client.post("/text", json={})
    assert r.status_code == 400
    assert r.json() == {"status": "error", "message": "Missing 'text' in request body"}
    assert fake.prompts == []


def test_text_whitespace_is_400():
    client, _ = _client()
    r = client.post("/text", json={"text": "   "})
    assert r.status_code == 400
    assert r.json()["status"] == "error"


def test_unparseable_reply_is_200_fallback():
    client, _ = _client(reply="I cannot determine a future appointment.")
    r = client.post("/text", json={"text": "Met you yesterday"})
    assert r.status_code == 200
    assert r.json() == {"status": "needs_clarification", "message": "Could not parse AI response"}


def test_upstream_error_is_502():
    client, _ = _client(exc=UpstreamError("Reasoning service unreachable"))
    r = client.post("/text", json={"text": "Lunch tomorrow"})
    assert r.status_code == 502
    assert r.json() == {"status": "error", "message": "Reasoning service unreachable"}


def test_image_upload_returns_record():
    seen = {}

    def reader(data):
        seen["data"] = data
        return OcrResult(text="Dentist Friday 10am", words=[WordConfidence("Dentist", 90.0)])

    client, fake = _client(reader=reader)
    png = _png()
    r = client.post("/image", files={"image": ("note.png", png, "image/png")})
    assert r.status_code == 200
    assert r.json()["status"] == "scheduled"
    assert seen["data"] == png
    assert "Dentist Friday 10am" in fake.prompts[0]


def test_image_missing_file_is_400():
    client, _ = _client()
    r = client.post("/image", data={"other": "x"})
    assert r.status_code == 400
    assert r.json() == {"error": "No file uploaded"}


def test_image_malformed_multipart_is_json_400():
    client, fake = _client()
    r = client.post("/image", content=b"garbage", headers={"content-type": "multipart/form-data"})
    assert r.status_code == 400
    assert r.json() == {"error": "No file uploaded"}
    assert fake.prompts == []


def test_image_without_text_is_400():
    client, _ = _client(reader=lambda data: OcrResult(text="", words=[]))
    r = client.post("/image", files={"image": ("blank.png", _png(), "image/png")})
    assert r.status_code == 400


def test_image_preprocess_and_ocr_errors_are_mapped():
    def bad_image(data):
        raise PreprocessError("Input is not a decodable image")

    def ocr_down(data):
        raise OcrError("OCR failed")

    client, _ = _client(reader=bad_image)
    assert client.post("/image", files={"image": ("x.png", b"junk", "image/png")}).status_code == 400

    client, _ = _client(reader=ocr_down)
    r = client.post("/image", files={"image": ("x.png", _png(), "image/png")})
    assert r.status_code == 500
    assert r.json() == {"status": "error", "message": "OCR failed"}
