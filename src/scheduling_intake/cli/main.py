from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Sequence

from ..config import init_settings
from ..domain.errors import ConfigError, InputError, OcrError, PreprocessError, SchedulingError, UpstreamError
from ..logging import get_logger
from ..orchestrator.flow import ExtractionOutcome, build_flow
from ..paths import expand_abs

LOG = get_logger("cli-main")

_EXIT_CODES = (
    (InputError, 2),
    (PreprocessError, 2),
    (OcrError, 3),
    (UpstreamError, 4),
    (ConfigError, 5),
)


def _exit_code_for(exc: SchedulingError) -> int:
    for cls, code in _EXIT_CODES:
        if isinstance(exc, cls):
            return code
    return 1


def _print_outcome(outcome: ExtractionOutcome, *, show_ocr: bool) -> None:
    out = outcome.record.as_dict()
    if show_ocr:
        out = {
            "record": out,
            "ocr": {
                "text": outcome.normalized.text,
                "average_confidence": round(outcome.normalized.average_confidence, 2),
                "words": [w.as_dict() for w in outcome.normalized.words],
            },
        }
    print(json.dumps(out, ensure_ascii=False))


def _handle_text(ns: argparse.Namespace) -> int:
    from ..domain.models import TextInput

    text = ns.text if ns.text is not None else sys.stdin.read()
    settings = init_settings(os.getcwd())
    flow = build_flow(settings)
    outcome = flow.run(TextInput(text))
    _print_outcome(outcome, show_ocr=False)
    return 0


def _handle_image(ns: argparse.Namespace) -> int:
    from ..domain.models import ImageInput

    path = expand_abs(ns.source)
    if not os.path.isfile(path):
        LOG.error(f"Image not found: {path}")
        return 2
    with open(path, "rb") as f:
        data = f.read()
    settings = init_settings(os.getcwd())
    flow = build_flow(settings)
    outcome = flow.run(ImageInput(data, filename=os.path.basename(path)))
    _print_outcome(outcome, show_ocr=ns.show_ocr)
    return 0


def _handle_serve(ns: argparse.Namespace) -> int:
    import uvicorn

    from ..web import create_app

    settings = init_settings(os.getcwd())
    LOG.info(f"Serving on http://{ns.host}:{ns.port}")
    if ns.reload:
        # Reload mode requires an import string; the worker builds the app through the factory.
        uvicorn.run(
            "scheduling_intake.web.app:create_app_from_env",
            factory=True,
            host=ns.host,
            port=ns.port,
            reload=True,
            log_level=ns.log_level,
        )
        return 0
    uvicorn.run(
        create_app(settings=settings),
        host=ns.host,
        port=ns.port,
        reload=False,
        log_level=ns.log_level,
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="scheduling-intake",
        description="Extract structured scheduling records from text or photographed notes.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API (POST /text, POST /image).")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=int(os.environ.get("PORT", "3000")))
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    serve.add_argument("--log-level", default="info")
    serve.set_defaults(handler=_handle_serve)

    text_cmd = subparsers.add_parser("text", help="Extract from a text message (reads stdin without --text).")
    text_cmd.add_argument("--text")
    text_cmd.set_defaults(handler=_handle_text)

    image_cmd = subparsers.add_parser("image", help="Extract from a photographed or scanned note.")
    image_cmd.add_argument("--source", required=True, help="Path to the image file")
    image_cmd.add_argument("--show-ocr", action="store_true", help="Include OCR text and confidences in the output")
    image_cmd.set_defaults(handler=_handle_image)

    args = parser.parse_args(provided)
    try:
        code = args.handler(args)
    except SchedulingError as exc:
        LOG.error(f"{exc.__class__.__name__}: {exc}")
        code = _exit_code_for(exc)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
