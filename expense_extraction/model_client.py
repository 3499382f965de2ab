"""OpenAI Responses API client for model-based extraction.

Public API:
    - :func:`request_model_response`

Returns the model's raw text; parsing and validation happen in
:mod:`expense_extraction.validation`. Only HTTP 429 and 5xx failures are
retried. No client is created and no environment is read at import time.
"""

from __future__ import annotations

import os
import random
import time
from typing import Any

from openai import OpenAI

from . import prompting
from .errors import ModelRequestError
from .logging_setup import get_logger
from .models import CategorySet

_DEFAULT_MODEL = "gpt-4o"
_MODEL_ENV_VAR = "EXPENSE_EXTRACTION_MODEL"
_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

_logger = get_logger("expense_extraction.model_client")


def _resolve_model(model: str | None) -> str:
    if model and model.strip():
        return model.strip()
    env_val = os.getenv(_MODEL_ENV_VAR)
    return env_val.strip() if env_val and env_val.strip() else _DEFAULT_MODEL


def _create_client() -> OpenAI:
    return OpenAI()


def _extract_response_text(resp: Any) -> str:
    """Locate the text output of a Responses API result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``
    (which some SDK versions expose as an object carrying ``value``).
    """

    text: Any = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None)
        content = getattr(output[0], "content", None) if output else None
        if content:
            node = getattr(content[0], "text", None)
            text = node if isinstance(node, str) else getattr(node, "value", None)
    if not isinstance(text, str) or not text.strip():
        raise ModelRequestError("Model response contained no text output")
    return text


def _is_retryable(exc: BaseException) -> bool:
    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    base = _BACKOFF_SCHEDULE_SEC[min(attempt_no - 1, len(_BACKOFF_SCHEDULE_SEC) - 1)]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


def request_model_response(
    raw_text: str,
    categories: CategorySet,
    *,
    client: Any | None = None,
    model: str | None = None,
) -> str:
    """Ask the model to extract transactions and return its raw answer.

    Parameters
    ----------
    raw_text:
        Statement text embedded in the prompt.
    categories:
        Allowed categories listed in the instructions.
    client:
        Optional preconstructed ``openai.OpenAI``-compatible client.
    model:
        Model name; defaults to ``EXPENSE_EXTRACTION_MODEL`` or ``gpt-4o``.

    Raises
    ------
    ModelRequestError
        When ``OPENAI_API_KEY`` is missing (and no client was supplied), on
        non-retryable API errors, after the final retry, or when the response
        carries no text.
    """

    if client is None:
        if not os.getenv("OPENAI_API_KEY"):
            raise ModelRequestError("OPENAI_API_KEY is not set in the environment")
        client = _create_client()

    model_name = _resolve_model(model)
    instructions = prompting.build_system_instructions(categories)
    user_content = prompting.build_user_content(raw_text)

    attempt = 1
    while True:
        t0 = time.perf_counter()
        try:
            resp = client.responses.create(
                model=model_name,
                instructions=instructions,
                input=user_content,
                temperature=0.1,
            )
        except Exception as e:  # noqa: BLE001 - SDK raises many error types
            dt_ms = (time.perf_counter() - t0) * 1000.0
            if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                _logger.error(
                    "model_client:failed_terminal latency_ms=%.2f error=%s attempt=%d",
                    dt_ms,
                    e.__class__.__name__,
                    attempt,
                )
                raise ModelRequestError(f"model request failed: {e}") from e
            _logger.warning(
                "model_client:retry latency_ms=%.2f error=%s attempt=%d",
                dt_ms,
                e.__class__.__name__,
                attempt,
            )
            _sleep_backoff(attempt)
            attempt += 1
            continue

        dt_ms = (time.perf_counter() - t0) * 1000.0
        _logger.info("model_client:done model=%s latency_ms=%.2f", model_name, dt_ms)
        return _extract_response_text(resp)


__all__ = ["request_model_response"]
