from __future__ import annotations

from .common import CheckContext, load_json


def mode_manifest_rule(ctx: CheckContext) -> None:
    paths = ctx.bundle.mode_paths()
    if not paths:
        ctx.add(
            "mode_file_missing",
            "The bundle has no *.mode.json custom mode definition.",
            action_hint="Export the editor custom mode as <name>.mode.json next to rules.json.",
        )
        return

    for path in paths:
        data, error = load_json(ctx.bundle.text(path))
        if error is not None:
            ctx.add("mode_json_invalid", f"{path} is not valid JSON: {error}", file=path)
            continue
        if not isinstance(data, dict):
            ctx.add(
                "mode_not_object",
                f"{path} must contain a JSON object, got {type(data).__name__}.",
                file=path,
            )
            continue
        if not data:
            ctx.add("mode_empty", f"{path} is an empty object.", file=path)
