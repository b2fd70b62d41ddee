from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional, List, Literal


RuleCategory = Literal[
    "EnterprisePatterns",  # Domain / Service / Selector / Unit of Work
    "LWC",                 # Lightning Web Components
    "GovernorLimits",
    "Security",
    "Testing",
    "Architecture",
]

RULE_CATEGORIES: tuple[str, ...] = (
    "EnterprisePatterns",
    "LWC",
    "GovernorLimits",
    "Security",
    "Testing",
    "Architecture",
)

RuleSeverity = Literal["error", "warn"]

IssueLevel = Literal["error", "warn", "info"]


_CATEGORY_ALIASES = {
    "enterprisepatterns": "EnterprisePatterns",
    "enterprise": "EnterprisePatterns",
    "fflib": "EnterprisePatterns",
    "lwc": "LWC",
    "lightningwebcomponents": "LWC",
    "lightningwebcomponent": "LWC",
    "governorlimits": "GovernorLimits",
    "governor": "GovernorLimits",
    "limits": "GovernorLimits",
    "bulkification": "GovernorLimits",
    "security": "Security",
    "testing": "Testing",
    "tests": "Testing",
    "apexmocks": "Testing",
    "architecture": "Architecture",
}

_SEVERITY_ALIASES = {
    "error": "error",
    "err": "error",
    "critical": "error",
    "2": "error",
    "warn": "warn",
    "warning": "warn",
    "1": "warn",
}


def normalize_category(value: Any) -> Any:
    """Map free-form category spellings onto the canonical enum; unknown values pass through."""
    if value is None:
        return None
    raw = str(value).strip()
    key = "".join(ch for ch in raw.lower() if ch.isalnum())
    return _CATEGORY_ALIASES.get(key, raw)


def normalize_severity(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    raw = str(value).strip()
    return _SEVERITY_ALIASES.get(raw.lower(), raw)


class RuleRecord(BaseModel):
    """One entry of rules.json after shape normalization."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Rule identifier (id / name / rule_id / key)")
    category: Optional[str] = Field(None, description="Grouping, canonical RuleCategory when known")
    description: Optional[str] = Field(None, description="Human-readable guidance")
    severity: Optional[str] = Field(None, description="error | warn")
    index: int = Field(0, description="Position in the manifest, 0-based")
    group: Optional[str] = Field(None, description="Group key the record was found under")

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        return normalize_category(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value):
        value = normalize_severity(value)
        return None if value is None else str(value)

    @field_validator("id", "description", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None:
            return None
        return str(value)

    @property
    def known_category(self) -> bool:
        return self.category in RULE_CATEGORIES

    @property
    def known_severity(self) -> bool:
        return self.severity in ("error", "warn")


class CheckIssue(BaseModel):
    level: IssueLevel = "info"
    code: str
    file: Optional[str] = None
    field: Optional[str] = None
    message: str
    details: Optional[dict[str, Any]] = None
    check_id: Optional[str] = None
    action_hint: Optional[str] = None


class Issue(BaseModel):
    severity: IssueLevel = "info"
    domain: Literal["bundle", "upstream", "system"] = "bundle"
    category: str = "validation"
    code: str
    file: Optional[str] = None
    field: Optional[str] = None
    message: str
    hint: Optional[str] = None
    source: Optional[str] = None
    details: Optional[dict[str, Any]] = None


class Decision(BaseModel):
    status: Literal["ok", "warn", "error"] = "ok"
    needs_fix: bool = False
    summary: str = ""


class Trace(BaseModel):
    request_id: str
    timings_ms: dict[str, int] = Field(default_factory=dict)
    upstream_request_ids: dict[str, str] = Field(default_factory=dict)


class RulesSummary(BaseModel):
    total: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)


class LintResponse(BaseModel):
    source: str
    files: List[str] = Field(default_factory=list)
    checks: List[CheckIssue] = Field(default_factory=list)
    issues: List[Issue] = Field(default_factory=list)
    decision: Decision = Field(default_factory=Decision)
    trace: Optional[Trace] = None
    rules_summary: RulesSummary = Field(default_factory=RulesSummary)
    checks_version: Optional[str] = Field(None, description="Version of the lint check catalog")


class PromptResponse(BaseModel):
    source: str
    chars: int
    truncated: bool = False
    prompt: str


class AssistRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=8000)


class AssistResponse(BaseModel):
    answer: str
    model: Optional[str] = None
    trace: Optional[Trace] = None
