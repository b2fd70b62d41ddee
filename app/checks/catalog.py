from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


Level = Literal["error", "warn", "info"]


@dataclass(frozen=True)
class Check:
    check_id: str
    severity: Level
    code: str


CHECKS_VERSION = "bundle-lint-1.0"

CHECKS = {
    "rules_file_missing": Check("RULES-001", "error", "rules_file_missing"),
    "rules_json_invalid": Check("RULES-002", "error", "rules_json_invalid"),
    "rules_shape_unsupported": Check("RULES-003", "error", "rules_shape_unsupported"),
    "rule_not_object": Check("RULES-004", "error", "rule_not_object"),
    "rule_missing_field": Check("RULES-005", "error", "rule_missing_field"),
    "rule_unknown_category": Check("RULES-006", "error", "rule_unknown_category"),
    "rule_unknown_severity": Check("RULES-007", "error", "rule_unknown_severity"),
    "rule_duplicate_id": Check("RULES-008", "error", "rule_duplicate_id"),
    "rule_id_reused_across_categories": Check("RULES-009", "info", "rule_id_reused_across_categories"),
    "rules_empty": Check("RULES-010", "warn", "rules_empty"),
    "rule_count_mismatch": Check("RULES-011", "warn", "rule_count_mismatch"),
    "rules_total_mismatch": Check("RULES-012", "warn", "rules_total_mismatch"),
    "mode_file_missing": Check("MODE-001", "warn", "mode_file_missing"),
    "mode_json_invalid": Check("MODE-002", "error", "mode_json_invalid"),
    "mode_not_object": Check("MODE-003", "error", "mode_not_object"),
    "mode_empty": Check("MODE-004", "warn", "mode_empty"),
    "memory_missing": Check("DOC-001", "warn", "memory_missing"),
    "markdown_empty": Check("DOC-002", "error", "markdown_empty"),
    "section_missing": Check("DOC-003", "error", "section_missing"),
    "linked_file_missing": Check("DOC-004", "error", "linked_file_missing"),
    "required_section_missing": Check("DOC-005", "error", "required_section_missing"),
    "code_fence_unclosed": Check("DOC-006", "warn", "code_fence_unclosed"),
    "file_not_utf8": Check("DOC-007", "warn", "file_not_utf8"),
    "lint_internal_error": Check("SYS-001", "warn", "lint_internal_error"),
}
