from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_LINK_RE = re.compile(r"(?<!!)\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_SLUG_DROP_RE = re.compile(r"[^\w\- ]", flags=re.UNICODE)
_INLINE_MARKUP_RE = re.compile(r"[`*~]|\[([^\]]*)\]\([^)]*\)")


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    slug: str
    line: int


@dataclass(frozen=True)
class Link:
    target: str  # file part, "" for in-page anchors
    anchor: Optional[str]
    line: int


def slugify(text: str) -> str:
    """GitHub-style heading anchor."""
    plain = _INLINE_MARKUP_RE.sub(lambda m: m.group(1) or "", text)
    slug = _SLUG_DROP_RE.sub("", plain.strip().lower())
    return slug.replace(" ", "-")


def prose_lines(text: str):
    fence: Optional[str] = None
    for lineno, line in enumerate(text.splitlines(), start=1):
        m = _FENCE_RE.match(line)
        if m:
            marker = m.group(1)
            if fence is None:
                fence = marker[0] * len(marker)
                continue
            if marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
                continue
        if fence is None:
            yield lineno, line


def unclosed_fence(text: str) -> bool:
    fence: Optional[str] = None
    for line in text.splitlines():
        m = _FENCE_RE.match(line)
        if not m:
            continue
        marker = m.group(1)
        if fence is None:
            fence = marker[0] * len(marker)
        elif marker[0] == fence[0] and len(marker) >= len(fence):
            fence = None
    return fence is not None


def headings(text: str) -> list[Heading]:
    out: list[Heading] = []
    seen: dict[str, int] = {}
    for lineno, line in prose_lines(text):
        m = _HEADING_RE.match(line)
        if not m:
            continue
        title = m.group(2).strip()
        base = slugify(title)
        n = seen.get(base, 0)
        seen[base] = n + 1
        slug = base if n == 0 else f"{base}-{n}"
        out.append(Heading(level=len(m.group(1)), text=title, slug=slug, line=lineno))
    return out


def anchors(text: str) -> set[str]:
    return {h.slug for h in headings(text)}


def local_links(text: str) -> list[Link]:
    """Links to files inside the bundle or to in-page anchors; absolute URLs are skipped."""
    out: list[Link] = []
    for lineno, line in prose_lines(text):
        for m in _LINK_RE.finditer(line):
            href = m.group(1)
            if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*:", href) or href.startswith("//"):
                continue
            target, _, anchor = href.partition("#")
            out.append(Link(target=target, anchor=anchor or None, line=lineno))
    return out
