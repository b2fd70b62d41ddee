from __future__ import annotations

import re
from collections import defaultdict

from ..markdown import prose_lines
from ..rules_manifest import category_of_label
from ..schemas import RULE_CATEGORIES, RuleRecord
from .common import CheckContext, is_blank


_CATEGORY_CLAIM_RE = re.compile(r"([A-Za-z][A-Za-z /&-]{1,40}?)\s*\((\d+)\s+rules?\)", flags=re.IGNORECASE)
_TOTAL_CLAIM_RE = re.compile(r"(?<!\w)(\d+)(\+)?\s+(enforceable\s+|total\s+)?rules\b", flags=re.IGNORECASE)


def _claimed_category(label: str):
    words = [w for w in re.split(r"[\s/&-]+", label) if w]
    for n in range(1, min(4, len(words)) + 1):
        category = category_of_label(" ".join(words[-n:]))
        if category is not None:
            return category
    return None


def parsed_records(ctx: CheckContext) -> list[RuleRecord]:
    parsed = ctx.parsed_rules()
    return parsed.records if parsed is not None else []


def rules_manifest_rule(ctx: CheckContext) -> None:
    path = ctx.bundle.rules_path()
    if path is None:
        ctx.add(
            "rules_file_missing",
            "The bundle has no rules.json.",
            action_hint="Add a rules.json with the rule records for this project.",
        )
        return

    parsed = ctx.parsed_rules()
    if parsed.error is not None:
        ctx.add(
            "rules_json_invalid",
            f"rules.json is not valid JSON: {parsed.error}",
            file=path,
            action_hint="Fix the JSON syntax; trailing commas and comments are not allowed.",
        )
        return

    if parsed.shape == "unsupported":
        ctx.add(
            "rules_shape_unsupported",
            "rules.json must be a list of rules, {\"rules\": [...]}, or a map of category to rule list.",
            file=path,
            details={"shape": parsed.shape},
        )
        return

    for index, type_name in parsed.non_objects:
        ctx.add(
            "rule_not_object",
            f"Rule #{index} is a {type_name}, expected an object.",
            file=path,
            field=f"rules[{index}]",
        )

    if not parsed.records and not parsed.non_objects:
        ctx.add("rules_empty", "rules.json contains no rules.", file=path)


def rule_fields_rule(ctx: CheckContext) -> None:
    path = ctx.bundle.rules_path()
    for rec in parsed_records(ctx):
        label = rec.id or f"#{rec.index}"
        missing = [name for name in ("id", "category", "description", "severity") if is_blank(getattr(rec, name))]
        if missing:
            ctx.add(
                "rule_missing_field",
                f"Rule {label} is missing: {', '.join(missing)}.",
                file=path,
                field=f"rules[{rec.index}]",
                details={"missing": ", ".join(missing)},
            )
        if not is_blank(rec.category) and not rec.known_category:
            ctx.add(
                "rule_unknown_category",
                f"Rule {label} has unknown category '{rec.category}'.",
                file=path,
                field=f"rules[{rec.index}].category",
                details={"actual": rec.category, "expected": " | ".join(RULE_CATEGORIES)},
            )
        if not is_blank(rec.severity) and not rec.known_severity:
            ctx.add(
                "rule_unknown_severity",
                f"Rule {label} has unknown severity '{rec.severity}'.",
                file=path,
                field=f"rules[{rec.index}].severity",
                details={"actual": rec.severity, "expected": "error | warn"},
            )


def rule_ids_rule(ctx: CheckContext) -> None:
    path = ctx.bundle.rules_path()
    seen: dict[tuple[str, str], int] = {}
    categories_by_id: dict[str, set[str]] = defaultdict(set)

    for rec in parsed_records(ctx):
        if is_blank(rec.id):
            continue
        rid = rec.id.strip()
        category = rec.category or ""
        key = (category, rid)
        if key in seen:
            ctx.add(
                "rule_duplicate_id",
                f"Rule id '{rid}' is used more than once in category {category or '(none)'}.",
                file=path,
                field=f"rules[{rec.index}].id",
                details={"first_index": seen[key], "index": rec.index},
            )
        else:
            seen[key] = rec.index
        if category:
            categories_by_id[rid].add(category)

    for rid, categories in sorted(categories_by_id.items()):
        if len(categories) > 1:
            ctx.add(
                "rule_id_reused_across_categories",
                f"Rule id '{rid}' appears in several categories: {', '.join(sorted(categories))}.",
                file=path,
                details={"categories": ", ".join(sorted(categories))},
            )


def rule_counts_rule(ctx: CheckContext) -> None:
    """Compare counts claimed in the markdown prose ("LWC (15 rules)", "50+ enforceable rules") with rules.json."""
    if ctx.bundle.rules_path() is None:
        return
    records = parsed_records(ctx)
    if not records:
        return
    # "N rules" must match exactly, "N+ rules" is a lower bound

    actual: dict[str, int] = defaultdict(int)
    for rec in records:
        if rec.known_category:
            actual[rec.category] += 1
    total = len(records)

    for md_path in ctx.bundle.markdown_paths():
        for lineno, line in prose_lines(ctx.bundle.text(md_path)):
            category_spans: list[tuple[int, int]] = []
            for m in _CATEGORY_CLAIM_RE.finditer(line):
                category = _claimed_category(m.group(1))
                if category is None:
                    continue
                category_spans.append(m.span())
                claimed = int(m.group(2))
                if claimed != actual.get(category, 0):
                    ctx.add(
                        "rule_count_mismatch",
                        f"{md_path}:{lineno} claims {claimed} {category} rules, rules.json has {actual.get(category, 0)}.",
                        file=md_path,
                        details={"category": category, "expected": claimed, "actual": actual.get(category, 0), "line": lineno},
                    )
            for m in _TOTAL_CLAIM_RE.finditer(line):
                # "LWC (15 rules)" is a per-category claim
                if any(start <= m.start() and m.end() <= end for start, end in category_spans):
                    continue
                plus = m.group(2)
                claimed = int(m.group(1))
                if (plus and total < claimed) or (not plus and total != claimed):
                    ctx.add(
                        "rules_total_mismatch",
                        f"{md_path}:{lineno} claims {m.group(0).strip()}, rules.json has {total}.",
                        file=md_path,
                        details={"expected": claimed, "actual": total, "line": lineno},
                    )
