from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any, List

import anthropic
from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .assist import UpstreamAIError, ask_with_bundle
from .bundle import BundleError, load_bundle_from_dir, load_bundle_from_uploads
from .checks.catalog import CHECKS, CHECKS_VERSION
from .issues import build_decision, build_trace, make_upstream_issue
from .lint import lint_bundle
from .prompting import build_prompt_context
from .schemas import AssistRequest, AssistResponse, PromptResponse
from .settings import get_settings

settings = get_settings()
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

if settings.APP_ENV != "dev" and not settings.ANTHROPIC_API_KEY:
    logger.warning("ANTHROPIC_API_KEY is not set: /api/assist will answer 500 until it is configured")

app = FastAPI(title="Salesforce Prompt Bundle Linter")


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


@app.get("/api/health")
async def api_health():
    return {"status": "ok"}


@app.get("/api/version")
async def api_version():
    return {
        'APP_ENV': settings.APP_ENV,
        'CHECKS_VERSION': CHECKS_VERSION,
        'ANTHROPIC_MODEL': settings.ANTHROPIC_MODEL,
    }


@app.get("/api/checks")
async def api_checks():
    return {
        'version': CHECKS_VERSION,
        'checks': [
            {'check_id': c.check_id, 'severity': c.severity, 'code': c.code}
            for c in sorted(CHECKS.values(), key=lambda c: c.check_id)
        ],
    }


async def _read_uploads(files: List[UploadFile]) -> list[tuple[str, bytes]]:
    if not files:
        raise HTTPException(status_code=400, detail="No bundle files uploaded.")
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(status_code=400, detail=f"Too many files. Limit: {settings.MAX_UPLOAD_FILES}.")
    out: list[tuple[str, bytes]] = []
    total = 0
    for f in files:
        data = await f.read()
        total += len(data)
        if total > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail=f"Upload too large. Limit: {settings.MAX_UPLOAD_MB} MB.")
        out.append((f.filename or "", data))
    return out


def _sanitize_error_message(err: Exception) -> str:
    message = re.sub(r"<[^>]+>", " ", str(err or "")).strip()
    message = re.sub(r"\s+", " ", message).strip(" .,:;-")
    return message[:320] if message else f"Processing error: {type(err).__name__}"


def _normalize_upstream_http_status(status: int) -> int:
    # 529 "overloaded" is not a standard HTTP status
    if status == 529:
        return 503
    return status


def _upstream_error_to_issue_and_status(err: Exception, where: str):
    status_code = int(getattr(err, 'status_code', 0) or 0)
    if isinstance(err, TimeoutError) or status_code == 504 or 'timeout' in str(err).lower():
        return 504, make_upstream_issue(code='anthropic_timeout', category='timeouts', source=where, message='The AI service did not answer in time.', hint='Try again later or shorten the bundle context.')
    if status_code in (429, 503, 529):
        return 503, make_upstream_issue(code='anthropic_rate_limited', category='network', source=where, message='The AI service is temporarily overloaded.', hint='Try again in 1-2 minutes.')
    if status_code in (401, 403):
        return 502, make_upstream_issue(code='anthropic_auth', category='network', source=where, message='The AI service rejected the credentials.', hint='Check ANTHROPIC_API_KEY.')
    if isinstance(err, UpstreamAIError) and err.step == 'config':
        return 500, make_upstream_issue(code='anthropic_not_configured', category='config', source=where, message='The AI service is not configured.', hint='Set ANTHROPIC_API_KEY or MOCK_MODE=1.')
    if status_code >= 500:
        return 502, make_upstream_issue(code='anthropic_upstream_error', category='network', source=where, message='The AI service is temporarily unavailable.', hint='Try again later.')
    return 502, make_upstream_issue(code='upstream_unknown', category='unknown', source=where, message='The AI service returned an error.', hint='Try again later.')


def _http_exception_to_issue_and_status(err: HTTPException, where: str):
    status = int(err.status_code)
    if status == 413:
        code, message, hint = 'upload_too_large', 'The upload is too large to lint.', 'Upload only rules.json, *.mode.json and the markdown files.'
    elif status == 404:
        code, message, hint = 'bundle_not_found', 'The configured bundle directory does not exist.', 'Check BUNDLE_DIR.'
    else:
        code, message, hint = 'request_validation_error', 'The request could not be validated.', 'Check the uploaded files and try again.'
    issue = make_upstream_issue(code=code, category='validation', source=where, severity='error', message=message, hint=hint)
    issue.domain = 'system'
    return status, issue


def _bundle_error_to_issue(err: BundleError, where: str):
    issue = make_upstream_issue(
        code='bundle_invalid_upload',
        category='validation',
        source=where,
        severity='error',
        message=_sanitize_error_message(err),
        hint='Upload rules.json, *.mode.json and .md files only.',
    )
    issue.domain = 'system'
    return 400, issue


def _build_error_payload(err: Exception, where: str, request_id: str = '') -> tuple[int, dict[str, Any]]:
    debug_steps = getattr(err, 'debug_steps', []) if settings.DEBUG_STEPS else []
    if isinstance(err, HTTPException):
        status, issue = _http_exception_to_issue_and_status(err, where)
    elif isinstance(err, BundleError):
        status, issue = _bundle_error_to_issue(err, where)
    elif isinstance(err, (UpstreamAIError, anthropic.APIError)):
        status, issue = _upstream_error_to_issue_and_status(err, where)
    else:
        logger.exception("unhandled error in %s", where)
        status = 500
        issue = make_upstream_issue(code='internal_error', category='unknown', source=where, message='Internal service error.', hint='Try again. If it repeats, pass the request_id to support.')
        issue.domain = 'system'
    status = _normalize_upstream_http_status(status)

    payload: dict[str, Any] = {
        'error': 'Bundle request failed.',
        'status': status,
        'detail': _sanitize_error_message(err),
        'issues': [issue.model_dump()],
        'decision': build_decision([issue]).model_dump(),
        'trace': build_trace(request_id=request_id, timings_ms={}, upstream_request_ids={}).model_dump(),
        'debug_steps': debug_steps,
    }
    for line in getattr(err, 'debug_steps', []) or []:
        m = re.search(r"error_request_id=([A-Za-z0-9_\-]+)", line)
        if m:
            payload['upstream_request_id'] = m.group(1)
    return status, payload


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', None) or request.headers.get("X-Request-Id") or str(uuid.uuid4())
    fields = sorted({'.'.join(str(p) for p in (e.get('loc') or ())[1:]) or 'body' for e in exc.errors()})
    err = HTTPException(status_code=400, detail=f"Invalid request fields: {', '.join(fields)}")
    status, payload = _build_error_payload(err, 'request_validation', request_id)
    return JSONResponse(status_code=status, content=payload, headers={"X-Request-Id": request_id})


def _configured_bundle():
    try:
        return load_bundle_from_dir(settings.BUNDLE_DIR)
    except BundleError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@app.post('/api/lint')
async def api_lint(request: Request, files: List[UploadFile] = File(...), strict: bool | None = None):
    try:
        items = await _read_uploads(files)
        bundle = load_bundle_from_uploads(items)
        resp = await run_in_threadpool(
            lint_bundle,
            bundle,
            strict=settings.STRICT_DEFAULT if strict is None else strict,
            required_sections=settings.REQUIRED_SECTIONS,
            request_id=request.state.request_id,
        )
        return resp.model_dump()
    except Exception as e:
        status, payload = _build_error_payload(e, 'api_lint', request.state.request_id)
        return JSONResponse(status_code=status, content=payload)


@app.get('/api/bundle/lint')
async def api_bundle_lint(request: Request, strict: bool | None = None):
    try:
        bundle = _configured_bundle()
        resp = await run_in_threadpool(
            lint_bundle,
            bundle,
            strict=settings.STRICT_DEFAULT if strict is None else strict,
            required_sections=settings.REQUIRED_SECTIONS,
            request_id=request.state.request_id,
        )
        return resp.model_dump()
    except Exception as e:
        status, payload = _build_error_payload(e, 'api_bundle_lint', request.state.request_id)
        return JSONResponse(status_code=status, content=payload)


@app.get('/api/bundle/prompt')
async def api_bundle_prompt(request: Request):
    try:
        bundle = _configured_bundle()
        text, truncated = build_prompt_context(bundle, max_chars=settings.PROMPT_MAX_CHARS)
        return PromptResponse(source=bundle.source, chars=len(text), truncated=truncated, prompt=text).model_dump()
    except Exception as e:
        status, payload = _build_error_payload(e, 'api_bundle_prompt', request.state.request_id)
        return JSONResponse(status_code=status, content=payload)


@app.post('/api/assist')
async def api_assist(request: Request, body: AssistRequest):
    started = time.perf_counter()
    try:
        bundle = _configured_bundle()
        answer, debug_steps, meta = await run_in_threadpool(
            ask_with_bundle,
            body.question,
            bundle,
            model=settings.ANTHROPIC_MODEL,
            max_chars=settings.PROMPT_MAX_CHARS,
        )
        timings = dict(meta.get('timings_ms') or {})
        timings.setdefault('total_ms', int((time.perf_counter() - started) * 1000))
        trace = build_trace(request.state.request_id, timings, meta.get('upstream_request_ids') or {})
        resp = AssistResponse(answer=answer, model=settings.ANTHROPIC_MODEL, trace=trace).model_dump()
        if settings.DEBUG_STEPS:
            resp['debug_steps'] = debug_steps
        return resp
    except Exception as e:
        status, payload = _build_error_payload(e, 'api_assist', request.state.request_id)
        return JSONResponse(status_code=status, content=payload)
