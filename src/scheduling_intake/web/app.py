from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..config import Settings, get_settings, init_settings
from ..domain.errors import InputError, OcrError, PreprocessError, SchedulingError, UpstreamError
from ..logging import get_logger
from ..orchestrator.flow import ExtractionFlow, build_flow

LOG = get_logger("web-app")

_STATUS_BY_ERROR = (
    (InputError, 400),
    (PreprocessError, 400),
    (OcrError, 500),
    (UpstreamError, 502),
)


def _error_response(exc: SchedulingError) -> JSONResponse:
    status = 500
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            status = code
            break
    LOG.error(f"{exc.__class__.__name__}: {exc} -> HTTP {status}")
    return JSONResponse({"status": "error", "message": str(exc)}, status_code=status)


async def _text_from_request(request: Request) -> Optional[str]:
    text = request.query_params.get("text")
    if text:
        return text
    body = await request.body()
    if not body:
        return None
    try:
        payload: Any = json.loads(body)
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("text"), str):
        return payload["text"]
    return None


def create_app(flow: Optional[ExtractionFlow] = None, *, settings: Optional[Settings] = None) -> Starlette:
    """Create the Starlette app exposing text and image extraction.

    Without an explicit ``flow`` the pipeline is built from ``settings`` or,
    failing that, from the process-wide settings initialised at startup.
    """
    if flow is None:
        flow = build_flow(settings or get_settings())

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    async def extract_text(request: Request) -> JSONResponse:
        text = await _text_from_request(request)
        if not text:
            return JSONResponse(
                {"status": "error", "message": "Missing 'text' in request body"},
                status_code=400,
            )
        try:
            record = await run_in_threadpool(flow.extract_from_text, text)
        except SchedulingError as exc:
            return _error_response(exc)
        return JSONResponse(record.as_dict())

    async def extract_image(request: Request) -> JSONResponse:
        upload = None
        try:
            form = await request.form()
            upload = form.get("image")
        except HTTPException as exc:
            LOG.warning(f"Could not parse upload form: {exc.detail}")
        except (MultiPartException, AssertionError, ValueError) as exc:
            LOG.warning(f"Could not parse upload form: {exc}")
        if not isinstance(upload, UploadFile):
            return JSONResponse({"error": "No file uploaded"}, status_code=400)

        data = await upload.read()
        meta: Dict[str, Optional[str]] = {"mime_type": upload.content_type, "filename": upload.filename}
        LOG.info(f"Received image upload: {upload.filename!r} ({len(data)} bytes)")
        try:
            record = await run_in_threadpool(flow.extract_from_image, data, **meta)
        except SchedulingError as exc:
            return _error_response(exc)
        finally:
            await upload.close()
        return JSONResponse(record.as_dict())

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/text", extract_text, methods=["GET", "POST"]),
        Route("/image", extract_image, methods=["POST"]),
    ]
    return Starlette(debug=False, routes=routes)


def create_app_from_env() -> Starlette:
    """App factory for ``uvicorn --factory``; settings come from env/.env in the working directory."""
    return create_app(settings=init_settings(os.getcwd()))


__all__ = ["create_app", "create_app_from_env"]
