import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.markdown import anchors, headings, local_links, slugify, unclosed_fence


def test_slugify_matches_github_anchors():
    assert slugify("Enterprise Patterns") == "enterprise-patterns"
    assert slugify("Governor Limits & Bulkification") == "governor-limits--bulkification"
    assert slugify("`fflib_SObjectDomain` usage") == "fflib_sobjectdomain-usage"
    assert slugify("**LWC** (wire)") == "lwc-wire"


def test_headings_skip_fenced_code_and_number_duplicates():
    text = "# Title\n```apex\n# not a heading\n```\n## Testing\n## Testing\n### Use C#\n"
    found = headings(text)
    assert [h.text for h in found] == ["Title", "Testing", "Testing", "Use C#"]
    assert [h.slug for h in found] == ["title", "testing", "testing-1", "use-c"]
    assert found[1].line == 5
    assert "testing-1" in anchors(text)


def test_closing_hashes_are_not_part_of_heading():
    assert headings("## Security ##")[0].text == "Security"


def test_local_links_skip_urls_and_images():
    text = (
        "See [memory](memory.md#testing) and [top](#usage).\n"
        "![logo](logo.md)\n"
        "[site](https://developer.salesforce.com/docs#x)\n"
    )
    links = local_links(text)
    assert [(l.target, l.anchor, l.line) for l in links] == [("memory.md", "testing", 1), ("", "usage", 1)]


def test_unclosed_fence():
    assert unclosed_fence("```\ncode\n") is True
    assert unclosed_fence("```\ncode\n```\n") is False
    assert unclosed_fence("````\n```\n````\n") is False
