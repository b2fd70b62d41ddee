from __future__ import annotations

import json
import logging
from collections import defaultdict

from .bundle import Bundle
from .rules_manifest import parse_rules_text
from .schemas import RULE_CATEGORIES

logger = logging.getLogger(__name__)

MODE_INSTRUCTION_KEYS = ("roleDefinition", "customInstructions", "instructions", "systemPrompt")
TRUNCATION_MARKER = "\n\n[... context truncated ...]\n"


def _mode_instructions(bundle: Bundle) -> list[str]:
    out: list[str] = []
    for path in bundle.mode_paths():
        try:
            data = json.loads(bundle.text(path))
        except json.JSONDecodeError:
            logger.info("prompt: skipping unparseable mode file %s", path)
            continue
        if not isinstance(data, dict):
            continue
        for key in MODE_INSTRUCTION_KEYS:
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                out.append(value.strip())
    return out


def _rules_section(bundle: Bundle) -> str:
    path = bundle.rules_path()
    if path is None:
        return ""
    records = parse_rules_text(bundle.text(path)).records
    grouped: dict[str, list[str]] = defaultdict(list)
    for rec in records:
        if not (rec.id and rec.description):
            continue
        severity = rec.severity if rec.known_severity else "warn"
        grouped[rec.category or "Other"].append(f"- [{severity}] {rec.id}: {rec.description.strip()}")
    if not grouped:
        return ""

    order = [c for c in RULE_CATEGORIES if c in grouped] + sorted(c for c in grouped if c not in RULE_CATEGORIES)
    lines = ["# Rules"]
    for category in order:
        lines.append(f"\n## {category}")
        lines.extend(grouped[category])
    return "\n".join(lines)


def build_prompt_context(bundle: Bundle, max_chars: int = 60000) -> tuple[str, bool]:
    """Assemble mode instructions, memory.md (verbatim) and the rules list into one system prompt.

    Returns (text, truncated). Broken parts of the bundle are skipped, never raised.
    """
    parts = _mode_instructions(bundle)

    memory = bundle.memory_path()
    if memory is not None and bundle.text(memory).strip():
        parts.append(bundle.text(memory).strip())

    rules = _rules_section(bundle)
    if rules:
        parts.append(rules)

    text = "\n\n".join(parts)
    if max_chars > 0 and len(text) > max_chars:
        marker = TRUNCATION_MARKER[:max_chars]
        cut = max_chars - len(marker)
        logger.info("prompt: context truncated from %d to %d chars", len(text), max_chars)
        return text[:cut] + marker, True
    return text, False
