"""Extraction pipeline stages and their wiring."""

from .prompt import build_prompt
from .recover import recover
from .client import ExtractionClient, OpenAIChatClient, OllamaChatClient, build_client
from .retry import RetryingClient
from .preprocess import text_from_image, preprocess_image
from .flow import ExtractionFlow, ExtractionOutcome, build_flow

__all__ = [
    "build_prompt",
    "recover",
    "ExtractionClient",
    "OpenAIChatClient",
    "OllamaChatClient",
    "build_client",
    "RetryingClient",
    "text_from_image",
    "preprocess_image",
    "ExtractionFlow",
    "ExtractionOutcome",
    "build_flow",
]
