from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..bundle import Bundle
from ..rules_manifest import ParsedRules, parse_rules_text
from ..schemas import CheckIssue
from .catalog import CHECKS


@dataclass
class CheckOptions:
    # "file.md:Heading" pairs
    required_sections: tuple[str, ...] = ()


@dataclass
class CheckContext:
    bundle: Bundle
    options: CheckOptions = field(default_factory=CheckOptions)
    issues: list[CheckIssue] = field(default_factory=list)
    _rules: Optional[ParsedRules] = field(default=None, init=False, repr=False)

    def parsed_rules(self) -> Optional[ParsedRules]:
        """rules.json parsed once per lint run; None when the bundle has no rules.json."""
        path = self.bundle.rules_path()
        if path is None:
            return None
        if self._rules is None:
            self._rules = parse_rules_text(self.bundle.text(path))
        return self._rules

    def add(
        self,
        key: str,
        message: str,
        *,
        file: str | None = None,
        field: str | None = None,
        details: dict | None = None,
        action_hint: str | None = None,
    ) -> None:
        check = CHECKS[key]
        self.issues.append(
            CheckIssue(
                level=check.severity,
                code=check.code,
                file=file,
                field=field,
                message=message,
                details=details,
                check_id=check.check_id,
                action_hint=action_hint,
            )
        )


def load_json(text: str) -> tuple[Any, Optional[str]]:
    try:
        return json.loads(text), None
    except json.JSONDecodeError as e:
        return None, f"{e.msg} (line {e.lineno}, column {e.colno})"


def is_blank(v: Optional[str]) -> bool:
    return not (v or "").strip()


CheckFunc = Callable[[CheckContext], None]
