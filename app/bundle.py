from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional


logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".md")
RULES_FILENAME = "rules.json"
MODE_SUFFIX = ".mode.json"
USAGE_GUIDE_FILENAME = "usage_guide.md"
MEMORY_FILENAME = "memory.md"


class BundleError(ValueError):
    pass


@dataclass
class Bundle:
    """Text assets of one prompt bundle, keyed by POSIX relative path."""

    files: dict[str, str] = field(default_factory=dict)
    source: str = "upload"
    decode_errors: list[str] = field(default_factory=list)

    def paths(self) -> list[str]:
        return sorted(self.files)

    def text(self, path: str) -> str:
        return self.files.get(path, "")

    def find(self, name: str) -> Optional[str]:
        """Resolve a link target or bare file name to a bundle path (case-insensitive, shallowest first)."""
        target = PurePosixPath(name.strip().lstrip("./"))
        wanted = str(target).lower()
        for path in self.paths():
            if path.lower() == wanted:
                return path
        candidates = [p for p in self.paths() if PurePosixPath(p).name.lower() == target.name.lower()]
        if not candidates:
            return None
        return min(candidates, key=lambda p: (p.count("/"), p))

    def rules_path(self) -> Optional[str]:
        return self.find(RULES_FILENAME)

    def mode_paths(self) -> list[str]:
        return [p for p in self.paths() if p.lower().endswith(MODE_SUFFIX)]

    def markdown_paths(self) -> list[str]:
        return [p for p in self.paths() if p.lower().endswith(".md")]

    def usage_guide_path(self) -> Optional[str]:
        return self.find(USAGE_GUIDE_FILENAME)

    def memory_path(self) -> Optional[str]:
        return self.find(MEMORY_FILENAME)


def _decode(path: str, data: bytes, decode_errors: list[str]) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        decode_errors.append(path)
        logger.warning("bundle file is not valid utf-8: %s", path)
        return data.decode("utf-8", errors="replace")


def _is_supported(name: str) -> bool:
    return name.lower().endswith(SUPPORTED_SUFFIXES)


def load_bundle_from_dir(root: str | Path) -> Bundle:
    base = Path(root)
    if not base.is_dir():
        raise BundleError(f"Bundle directory not found: {base}")

    bundle = Bundle(source=str(base))
    for p in sorted(base.rglob("*")):
        rel = p.relative_to(base)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if not p.is_file() or not _is_supported(p.name):
            continue
        key = rel.as_posix()
        bundle.files[key] = _decode(key, p.read_bytes(), bundle.decode_errors)

    logger.info("bundle loaded: source=%s files=%d", bundle.source, len(bundle.files))
    return bundle


def load_bundle_from_uploads(items: Iterable[tuple[str, bytes]]) -> Bundle:
    bundle = Bundle(source="upload")
    for filename, data in items:
        name = PurePosixPath((filename or "").replace("\\", "/")).name
        if not name:
            raise BundleError("Uploaded file has no name.")
        if not _is_supported(name):
            raise BundleError(f"Unsupported file type: {name}. Upload .json or .md files.")
        if name in bundle.files:
            raise BundleError(f"Duplicate file in upload: {name}")
        bundle.files[name] = _decode(name, data, bundle.decode_errors)

    if not bundle.files:
        raise BundleError("No files uploaded.")
    logger.info("bundle loaded: source=upload files=%d", len(bundle.files))
    return bundle
