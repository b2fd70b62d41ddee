import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.bundle import Bundle, BundleError, load_bundle_from_dir, load_bundle_from_uploads


def test_load_from_dir_reads_supported_files_and_skips_hidden(tmp_path):
    (tmp_path / "rules.json").write_text("[]", encoding="utf-8")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "memory.md").write_text("# M", encoding="utf-8")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "x.md").write_text("# hidden", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    bundle = load_bundle_from_dir(tmp_path)
    assert bundle.paths() == ["docs/memory.md", "rules.json"]
    assert bundle.memory_path() == "docs/memory.md"
    assert bundle.source == str(tmp_path)


def test_load_from_missing_dir_raises(tmp_path):
    with pytest.raises(BundleError):
        load_bundle_from_dir(tmp_path / "nope")


def test_invalid_utf8_is_replaced_and_recorded(tmp_path):
    (tmp_path / "memory.md").write_bytes(b"# Title\n\xff\xfe bad")
    bundle = load_bundle_from_dir(tmp_path)
    assert bundle.decode_errors == ["memory.md"]
    assert bundle.text("memory.md").startswith("# Title")


def test_uploads_keep_basename_and_reject_bad_suffix():
    bundle = load_bundle_from_uploads([("some/dir/rules.json", b"[]"), ("a.mode.json", b"{}")])
    assert bundle.paths() == ["a.mode.json", "rules.json"]
    assert bundle.mode_paths() == ["a.mode.json"]
    with pytest.raises(BundleError):
        load_bundle_from_uploads([("script.py", b"print(1)")])
    with pytest.raises(BundleError):
        load_bundle_from_uploads([])
    with pytest.raises(BundleError):
        load_bundle_from_uploads([("rules.json", b"[]"), ("x/rules.json", b"[]")])


def test_find_prefers_shallowest_and_is_case_insensitive():
    bundle = Bundle(files={"a/b/rules.json": "[]", "a/rules.json": "[]", "Usage_Guide.md": "#"})
    assert bundle.rules_path() == "a/rules.json"
    assert bundle.usage_guide_path() == "Usage_Guide.md"
    assert bundle.find("a/b/rules.json") == "a/b/rules.json"
    assert bundle.find("missing.md") is None
