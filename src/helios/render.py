"""Render snapshots as an HTML fragment or a JSON document."""

from helios.models import SystemSnapshot

DEFAULT_PRINCIPAL = "noaione"
PAGE_PLACEHOLDER = "{{first_time_html}}"


def to_html_fragment(snapshot: SystemSnapshot, principal: str = DEFAULT_PRINCIPAL) -> str:
    """
    Render the ``principal@host`` header, a rule and one line per entry.

    Values are host strings and are inserted without escaping.
    """
    parts = [
        f'<p class="host-header">{principal}<span class="host-at">@</span>{snapshot.host}</p>\n',
        f'<p class="detail-line">{"-" * (len(principal) + 1 + len(snapshot.host))}</p>\n',
    ]
    for line in snapshot.lines:
        parts.append(
            f'<p class="detail-line"><span class="detail-line-root">{line.key}</span>: {line.value}</p>\n'
        )
    return "".join(parts)


def to_json(snapshot: SystemSnapshot) -> dict[str, object]:
    return snapshot.to_dict()


def render_page(template: str, snapshot: SystemSnapshot, principal: str = DEFAULT_PRINCIPAL) -> str:
    """Fill the landing page template with the rendered snapshot."""
    return template.replace(PAGE_PLACEHOLDER, to_html_fragment(snapshot, principal))
