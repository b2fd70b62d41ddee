from __future__ import annotations

import logging
import os
import queue
import re
import threading
import time
from typing import Any, Callable, List, Optional

import anthropic
from anthropic import Anthropic

from .bundle import Bundle
from .prompting import build_prompt_context


class UpstreamAIError(RuntimeError):
    def __init__(self, *, step: str, status_code: int, message: str, debug_steps: Optional[List[str]] = None):
        super().__init__(message)
        self.step = step
        self.status_code = status_code
        self.debug_steps = debug_steps or []


logger = logging.getLogger(__name__)

MOCK_ANSWER = "MOCK_MODE=1: the assistant was not called."


def _add_debug(debug_steps: List[str], message: str, on_debug: Optional[Callable[[str], None]] = None) -> None:
    debug_steps.append(message)
    logger.info("[assist] %s", message)
    if on_debug:
        on_debug(message)


def _safe_anthropic_error_message(err: Exception) -> str:
    text = str(err or "").lower()
    status_code = int(getattr(err, "status_code", 502) or 502)

    if status_code == 429 or "overloaded" in text or type(err).__name__ == "OverloadedError":
        return "The AI service is overloaded (rate limit). Try again in a minute."
    if status_code == 401:
        return "The AI service rejected the credentials. Check ANTHROPIC_API_KEY."
    if status_code == 403:
        return "The API key has no access to this model or feature."
    if status_code == 404:
        return "The configured model was not found. Check ANTHROPIC_MODEL."
    if status_code == 413:
        return "The prompt is too large for the AI service. Lower PROMPT_MAX_CHARS."
    if status_code in (400, 422):
        return "The AI service rejected the request."
    if status_code >= 500 or "internal server error" in text or "bad gateway" in text:
        return "The AI service is temporarily unavailable. Try again later."
    return "The AI service could not answer the question."


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_int_min(name: str, default: int, minimum: int) -> int:
    return max(minimum, _env_int(name, default))


def _extract_text_from_msg(msg) -> str:
    out = []
    for blk in getattr(msg, "content", []) or []:
        if getattr(blk, "type", None) == "text":
            out.append(getattr(blk, "text", ""))
        elif isinstance(blk, dict) and blk.get("type") == "text":
            out.append(blk.get("text", ""))
    return "\n".join([t for t in out if t]).strip()


def _run_with_timeout(fn: Callable[[], Any], timeout_s: int, label: str):
    timeout_s = max(1, int(timeout_s))
    result_q: queue.Queue[tuple[bool, Any]] = queue.Queue(maxsize=1)

    def _runner() -> None:
        try:
            result_q.put((True, fn()))
        except Exception as err:  # noqa: BLE001
            result_q.put((False, err))

    t = threading.Thread(target=_runner, daemon=True, name=f"timeout-{label}")
    t.start()

    try:
        ok, payload = result_q.get(timeout=timeout_s)
    except queue.Empty as e:
        raise TimeoutError(f"{label} timed out after {timeout_s}s") from e

    if ok:
        return payload
    raise payload


def _create_anthropic_client(api_key: str, max_retries: int, http_timeout_s: int) -> Anthropic:
    return Anthropic(api_key=api_key, max_retries=max_retries, timeout=max(5, int(http_timeout_s)))


def _request_id_of(obj: Any) -> Optional[str]:
    rid = getattr(obj, "_request_id", None) or getattr(obj, "request_id", None)
    if rid:
        return str(rid)
    return None


def _raise_upstream(step: str, err: Exception, debug_steps: List[str]):
    status = int(getattr(err, "status_code", 0) or 0)
    if status == 0 and ("overloaded" in str(err).lower() or type(err).__name__ == "OverloadedError"):
        status = 503
    raise UpstreamAIError(
        step=step,
        status_code=status if status >= 400 else 502,
        message=_safe_anthropic_error_message(err),
        debug_steps=debug_steps,
    ) from err


def _trace_from_debug(debug_steps: List[str], total_ms: int) -> dict[str, Any]:
    upstream_request_ids: dict[str, str] = {}
    for line in debug_steps:
        m = re.search(r"Step ([^:]+): request_id=([A-Za-z0-9_\-]+)", line)
        if m:
            upstream_request_ids[m.group(1)] = m.group(2)
    return {"upstream_request_ids": upstream_request_ids, "timings_ms": {"total_ms": int(total_ms)}}


def ask_with_bundle(
    question: str,
    bundle: Bundle,
    *,
    model: Optional[str] = None,
    max_chars: int = 60000,
    client: Optional[Anthropic] = None,
    on_debug: Optional[Callable[[str], None]] = None,
) -> tuple[str, List[str], dict[str, Any]]:
    """Answer a question with the bundle's assembled context as the system prompt.

    Returns (answer, debug_steps, meta) where meta carries timings and upstream request ids.
    """
    started = time.perf_counter()
    debug_steps: List[str] = []
    system_prompt, truncated = build_prompt_context(bundle, max_chars=max_chars)
    _add_debug(debug_steps, f"Context built: source={bundle.source}, chars={len(system_prompt)}, truncated={truncated}", on_debug)

    if os.getenv("MOCK_MODE", "0").strip() == "1":
        _add_debug(debug_steps, "MOCK_MODE=1, the AI service is not called", on_debug)
        return MOCK_ANSWER, debug_steps, _trace_from_debug(debug_steps, int((time.perf_counter() - started) * 1000))

    api_key = os.getenv("ANTHROPIC_API_KEY")
    if client is None and not api_key:
        _add_debug(debug_steps, "Error: ANTHROPIC_API_KEY is not set", on_debug)
        raise UpstreamAIError(
            step="config",
            status_code=500,
            message="ANTHROPIC_API_KEY is not set (env vars / .env).",
            debug_steps=debug_steps,
        )

    model = model or os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-6")
    max_retries = _env_int("ANTHROPIC_MAX_RETRIES", 0)
    http_timeout_s = _env_int_min("ANTHROPIC_HTTP_TIMEOUT_S", 60, 10)
    max_tokens = _env_int_min("ANTHROPIC_MAX_TOKENS", 1024, 64)
    if client is None:
        client = _create_anthropic_client(api_key=api_key, max_retries=max_retries, http_timeout_s=http_timeout_s + 5)
    _add_debug(debug_steps, f"AI config: model={model}, retries={max_retries}, timeout_s={http_timeout_s}", on_debug)

    try:
        _add_debug(debug_steps, "Step answer: sending question", on_debug)

        def _answer_call():
            return client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=0,
                system=system_prompt,
                messages=[{"role": "user", "content": question}],
            )

        msg = _run_with_timeout(_answer_call, http_timeout_s, "answer")
        rid = _request_id_of(msg)
        if rid:
            _add_debug(debug_steps, f"Step answer: request_id={rid}", on_debug)
    except TimeoutError as e:
        _add_debug(debug_steps, "Step answer: timeout", on_debug)
        raise UpstreamAIError(
            step="answer",
            status_code=504,
            message="The AI service did not answer in time. Try again later.",
            debug_steps=debug_steps,
        ) from e
    except anthropic.APIError as e:
        _add_debug(debug_steps, f"Step answer: API error: {type(e).__name__}", on_debug)
        rid = _request_id_of(e)
        if rid:
            _add_debug(debug_steps, f"Step answer: error_request_id={rid}", on_debug)
        _raise_upstream("answer", e, debug_steps)

    answer = _extract_text_from_msg(msg)
    _add_debug(debug_steps, f"Step answer: response received, chars={len(answer)}", on_debug)
    total_ms = int((time.perf_counter() - started) * 1000)
    return answer, debug_steps, _trace_from_debug(debug_steps, total_ms)
