from __future__ import annotations

from typing import Iterable, Optional

from .schemas import CheckIssue, Decision, Issue, Trace


_CHECK_CATEGORY_MAP = {
    'rule': 'rules',
    'mode': 'mode',
    'section': 'docs',
    'markdown': 'docs',
    'memory': 'docs',
    'linked': 'docs',
    'fence': 'docs',
    'utf8': 'encoding',
    'internal': 'system',
}



def _guess_category(code: str, mapping: dict[str, str]) -> str:
    low = (code or '').lower()
    for key, val in mapping.items():
        if key in low:
            return val
    return 'validation'



def from_checks(items: Iterable[CheckIssue]) -> list[Issue]:
    out: list[Issue] = []
    for it in items:
        cat = _guess_category(it.code, _CHECK_CATEGORY_MAP)
        hint = it.action_hint
        if hint is None and it.level == 'error':
            hint = 'Fix the file and run the lint again.'
        elif hint is None and it.level == 'warn':
            hint = 'Review the file; the bundle still loads but may mislead the assistant.'
        details = dict(it.details or {})
        if it.check_id:
            details.setdefault('check_id', it.check_id)
        out.append(
            Issue(
                severity=it.level,
                domain='bundle',
                category=cat,
                code=it.code,
                file=it.file,
                field=it.field,
                message=it.message,
                hint=hint,
                details=details or None,
            )
        )
    return out



def make_upstream_issue(*, code: str, message: str, source: Optional[str] = None, category: str = 'network', severity: str = 'error', hint: Optional[str] = None) -> Issue:
    return Issue(
        severity=severity,
        domain='upstream',
        category=category,
        code=code,
        message=message,
        source=source,
        hint=hint,
    )



def build_decision(issues: list[Issue], strict: bool = False) -> Decision:
    error_exists = any(i.severity == 'error' for i in issues)
    warn_exists = any(i.severity == 'warn' for i in issues)
    if error_exists:
        return Decision(status='error', needs_fix=True, summary='The bundle has errors: fix them before handing it to the assistant.')
    if warn_exists:
        return Decision(status='warn', needs_fix=strict, summary='The bundle loads, but has warnings worth reviewing.')
    if issues:
        return Decision(status='ok', needs_fix=False, summary='No problems found. There are informational notes.')
    return Decision(status='ok', needs_fix=False, summary='No problems found.')



def build_trace(request_id: str, timings_ms: dict[str, int], upstream_request_ids: dict[str, str]) -> Trace:
    return Trace(request_id=request_id, timings_ms=timings_ms, upstream_request_ids=upstream_request_ids)
