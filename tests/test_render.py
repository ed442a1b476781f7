"""Tests for HTML and JSON rendering."""

import json

from helios.models import LineEntry, SystemSnapshot
from helios.render import PAGE_PLACEHOLDER, render_page, to_html_fragment, to_json

SNAPSHOT = SystemSnapshot(
    host="helios.local",
    lines=(
        LineEntry("OS", "Arch Linux rolling"),
        LineEntry("CPU", "AMD Ryzen 9 5950X (32) @ 3.40 GHz"),
    ),
)


def test_html_fragment_layout():
    """Test header, rule and one paragraph per line."""
    html = to_html_fragment(SNAPSHOT)

    assert html.splitlines() == [
        '<p class="host-header">noaione<span class="host-at">@</span>helios.local</p>',
        '<p class="detail-line">--------------------</p>',
        '<p class="detail-line"><span class="detail-line-root">OS</span>: Arch Linux rolling</p>',
        '<p class="detail-line"><span class="detail-line-root">CPU</span>: AMD Ryzen 9 5950X (32) @ 3.40 GHz</p>',
    ]


def test_separator_length_matches_header():
    """Test the rule is exactly as long as ``principal@host``."""
    for principal, host in [("noaione", "helios.local"), ("me", "x"), ("someone", "")]:
        snapshot = SystemSnapshot(host=host, lines=())
        rule = to_html_fragment(snapshot, principal).splitlines()[1]

        dashes = rule.removeprefix('<p class="detail-line">').removesuffix("</p>")
        assert set(dashes) <= {"-"}
        assert len(dashes) == len(f"{principal}@") + len(host)


def test_html_fragment_is_deterministic():
    """Test rendering the same snapshot twice gives the same HTML."""
    assert to_html_fragment(SNAPSHOT) == to_html_fragment(SNAPSHOT)


def test_html_fragment_does_not_escape():
    """Test values are inserted verbatim."""
    snapshot = SystemSnapshot(host="box", lines=(LineEntry("Host", "<b>Dell</b> & co"),))

    assert "<b>Dell</b> & co" in to_html_fragment(snapshot)


def test_to_json():
    """Test JSON output is a field-for-field copy of the snapshot."""
    data = to_json(SNAPSHOT)

    assert data == {
        "host": "helios.local",
        "lines": [
            {"key": "OS", "value": "Arch Linux rolling"},
            {"key": "CPU", "value": "AMD Ryzen 9 5950X (32) @ 3.40 GHz"},
        ],
    }
    assert json.dumps(data).startswith('{"host": "helios.local", "lines": [{"key": "OS"')


def test_render_page():
    """Test the page placeholder is replaced by the fragment."""
    template = f"<main>\n{PAGE_PLACEHOLDER}\n</main>"

    page = render_page(template, SNAPSHOT, principal="me")

    assert PAGE_PLACEHOLDER not in page
    assert '<p class="host-header">me<span class="host-at">@</span>helios.local</p>' in page
