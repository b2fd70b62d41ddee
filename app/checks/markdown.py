from __future__ import annotations

from pathlib import PurePosixPath

from .. import markdown as md
from .common import CheckContext, is_blank


def encoding_rule(ctx: CheckContext) -> None:
    for path in ctx.bundle.decode_errors:
        ctx.add(
            "file_not_utf8",
            f"{path} is not valid UTF-8; undecodable bytes were replaced.",
            file=path,
            action_hint="Re-save the file as UTF-8.",
        )


def markdown_files_rule(ctx: CheckContext) -> None:
    if ctx.bundle.memory_path() is None:
        ctx.add(
            "memory_missing",
            "The bundle has no memory.md knowledge bank.",
            action_hint="Add memory.md; it is pasted into the assistant context as-is.",
        )

    for path in ctx.bundle.markdown_paths():
        text = ctx.bundle.text(path)
        if is_blank(text):
            ctx.add("markdown_empty", f"{path} is empty.", file=path)
            continue
        if md.unclosed_fence(text):
            ctx.add(
                "code_fence_unclosed",
                f"{path} has an unclosed ``` code block; everything after it renders as code.",
                file=path,
            )


def _resolve(ctx: CheckContext, guide_path: str, target: str):
    base = PurePosixPath(guide_path).parent
    joined = str(base / target) if str(base) != "." else target
    return ctx.bundle.find(joined) or ctx.bundle.find(target)


def usage_guide_links_rule(ctx: CheckContext) -> None:
    guide = ctx.bundle.usage_guide_path()
    if guide is None:
        return
    guide_text = ctx.bundle.text(guide)

    for link in md.local_links(guide_text):
        if link.target:
            if not link.target.lower().endswith((".md", ".json")):
                continue
            path = _resolve(ctx, guide, link.target)
            if path is None:
                ctx.add(
                    "linked_file_missing",
                    f"{guide}:{link.line} links {link.target}, which is not in the bundle.",
                    file=guide,
                    details={"target": link.target, "line": link.line},
                )
                continue
        else:
            path = guide

        if not link.anchor or not path.lower().endswith(".md"):
            continue
        if link.anchor.lower() not in md.anchors(ctx.bundle.text(path)):
            ctx.add(
                "section_missing",
                f"{guide}:{link.line} references section #{link.anchor} in {path}, but no such heading exists.",
                file=path,
                field=link.anchor,
                details={"referenced_by": guide, "line": link.line},
                action_hint="Rename the heading or update the link in the usage guide.",
            )


def required_sections_rule(ctx: CheckContext) -> None:
    for entry in ctx.options.required_sections:
        name, sep, heading = entry.partition(":")
        if not sep or is_blank(name) or is_blank(heading):
            continue
        path = ctx.bundle.find(name.strip())
        if path is None:
            # missing files are reported by the file-level checks
            continue
        if md.slugify(heading) not in md.anchors(ctx.bundle.text(path)):
            ctx.add(
                "required_section_missing",
                f"{path} has no '{heading.strip()}' section.",
                file=path,
                field=md.slugify(heading),
            )
