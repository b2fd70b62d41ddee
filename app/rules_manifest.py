from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

from .schemas import RULE_CATEGORIES, RuleRecord, RulesSummary, normalize_category


_ID_KEYS = ("id", "name", "rule_id", "key")
_META_KEYS = {"version", "schema_version", "$schema", "description", "title", "name", "updated", "metadata"}


@dataclass
class ParsedRules:
    records: list[RuleRecord] = field(default_factory=list)
    non_objects: list[tuple[int, str]] = field(default_factory=list)  # (index, type name)
    shape: str = "unknown"
    error: Optional[str] = None


def _record(raw: dict[str, Any], index: int, group: Optional[str]) -> RuleRecord:
    payload = dict(raw)
    rid = next((payload[k] for k in _ID_KEYS if payload.get(k) not in (None, "")), None)
    if payload.get("category") in (None, "") and group is not None:
        payload["category"] = group
    payload.pop("index", None)
    payload.pop("group", None)
    payload["id"] = rid
    return RuleRecord.model_validate({**payload, "index": index, "group": group})


def _collect(items: Any, group: Optional[str], out: ParsedRules) -> bool:
    if isinstance(items, dict) and isinstance(items.get("rules"), list):
        items = items["rules"]
    if not isinstance(items, list):
        return False
    for item in items:
        index = len(out.records) + len(out.non_objects)
        if isinstance(item, dict):
            out.records.append(_record(item, index, group))
        else:
            out.non_objects.append((index, type(item).__name__))
    return True


def _looks_grouped(data: dict[str, Any]) -> bool:
    groups = {k: v for k, v in data.items() if k not in _META_KEYS}
    if not groups:
        return False
    return all(isinstance(v, list) or (isinstance(v, dict) and isinstance(v.get("rules"), list)) for v in groups.values())


def parse_rules_data(data: Any) -> ParsedRules:
    """Flatten any accepted rules.json shape into records, keeping the group key as fallback category."""
    out = ParsedRules()
    if isinstance(data, list):
        out.shape = "list"
        _collect(data, None, out)
        return out

    if not isinstance(data, dict):
        out.shape = "unsupported"
        return out

    if isinstance(data.get("rules"), list):
        out.shape = "rules"
        _collect(data["rules"], None, out)
        return out

    if isinstance(data.get("categories"), dict):
        out.shape = "categories"
        for group, items in data["categories"].items():
            if not _collect(items, str(group), out):
                out.shape = "unsupported"
        return out

    if _looks_grouped(data):
        out.shape = "grouped"
        for group, items in data.items():
            if group in _META_KEYS:
                continue
            _collect(items, str(group), out)
        return out

    out.shape = "unsupported"
    return out


def parse_rules_text(text: str) -> ParsedRules:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return ParsedRules(shape="invalid", error=f"{e.msg} (line {e.lineno}, column {e.colno})")
    return parse_rules_data(data)


def summarize(records: list[RuleRecord]) -> RulesSummary:
    by_category = Counter(r.category or "unknown" for r in records)
    by_severity = Counter(r.severity or "unknown" for r in records)
    ordered = {c: by_category[c] for c in RULE_CATEGORIES if by_category.get(c)}
    ordered.update({c: n for c, n in sorted(by_category.items()) if c not in ordered})
    return RulesSummary(total=len(records), by_category=ordered, by_severity=dict(sorted(by_severity.items())))


def category_of_label(label: str) -> Optional[str]:
    """Resolve prose such as 'Enterprise Patterns' to a canonical category, or None."""
    value = normalize_category(label)
    return value if value in RULE_CATEGORIES else None
