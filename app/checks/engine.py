from __future__ import annotations

import logging

from ..bundle import Bundle
from ..schemas import CheckIssue
from .common import CheckContext, CheckFunc, CheckOptions
from .markdown import encoding_rule, markdown_files_rule, required_sections_rule, usage_guide_links_rule
from .mode import mode_manifest_rule
from .rules import rule_counts_rule, rule_fields_rule, rule_ids_rule, rules_manifest_rule

logger = logging.getLogger(__name__)

RULES: tuple[CheckFunc, ...] = (
    encoding_rule,
    rules_manifest_rule,
    rule_fields_rule,
    rule_ids_rule,
    rule_counts_rule,
    mode_manifest_rule,
    markdown_files_rule,
    usage_guide_links_rule,
    required_sections_rule,
)


def run_all_checks(bundle: Bundle, options: CheckOptions | None = None) -> list[CheckIssue]:
    return run_checks(CheckContext(bundle=bundle, options=options or CheckOptions()))


def run_checks(ctx: CheckContext) -> list[CheckIssue]:
    for rule in RULES:
        try:
            rule(ctx)
        except Exception as exc:  # noqa: BLE001
            logger.exception("lint check %s failed", rule.__name__)
            ctx.add(
                "lint_internal_error",
                f"Internal lint error in {rule.__name__}: {type(exc).__name__}",
                details={"check": rule.__name__},
                action_hint="Re-run the lint; if it repeats, report the bundle that triggers it.",
            )
    return ctx.issues


def needs_fix(issues: list[CheckIssue], strict: bool = False) -> bool:
    failing = {"error", "warn"} if strict else {"error"}
    return any(i.level in failing for i in issues)
