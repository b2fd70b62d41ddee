from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Optional

from .bundle import Bundle
from .checks.catalog import CHECKS_VERSION
from .checks.common import CheckContext, CheckOptions
from .checks.engine import run_checks
from .issues import build_decision, build_trace, from_checks
from .rules_manifest import summarize
from .schemas import LintResponse, RulesSummary

logger = logging.getLogger(__name__)


def _rules_summary(ctx: CheckContext) -> RulesSummary:
    parsed = ctx.parsed_rules()
    if parsed is None:
        return RulesSummary()
    return summarize(parsed.records)


def lint_bundle(
    bundle: Bundle,
    *,
    strict: bool = False,
    required_sections: Iterable[str] = (),
    request_id: Optional[str] = None,
) -> LintResponse:
    started = time.perf_counter()
    ctx = CheckContext(bundle=bundle, options=CheckOptions(required_sections=tuple(required_sections)))
    checks = run_checks(ctx)
    issues = from_checks(checks)
    decision = build_decision(issues, strict=strict)
    total_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "lint done: source=%s files=%d issues=%d status=%s ms=%d",
        bundle.source, len(bundle.files), len(issues), decision.status, total_ms,
    )
    return LintResponse(
        source=bundle.source,
        files=bundle.paths(),
        checks=checks,
        issues=issues,
        decision=decision,
        trace=build_trace(request_id or str(uuid.uuid4()), {'total_ms': total_ms}, {}),
        rules_summary=_rules_summary(ctx),
        checks_version=CHECKS_VERSION,
    )
