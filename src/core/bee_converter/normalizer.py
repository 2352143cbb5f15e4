"""Text-level HTML preprocessing applied before remote conversion.

Every rule is a plain substitution whose output no longer matches its own
trigger, so running :func:`normalize` twice yields the same document.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

DOCTYPE = "<!DOCTYPE html>"
CHARSET_META = '<meta charset="UTF-8">'
UNSUBSCRIBE_PLACEHOLDER = 'href="{{unsubscribe_link}}"'
DEFAULT_SUBJECT = "Imported Template"

_DOCTYPE_RE = re.compile(r"^\s*<!DOCTYPE", re.IGNORECASE)
_HEAD_OPEN_RE = re.compile(r"(<head(?:\s[^>]*)?>)", re.IGNORECASE)

MERGE_TAG_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\{\{\s*first_?name\s*\}\}", re.IGNORECASE), "{{user.first_name}}"),
    (re.compile(r"\{\{\s*last_?name\s*\}\}", re.IGNORECASE), "{{user.last_name}}"),
    (re.compile(r"\{\{\s*email\s*\}\}", re.IGNORECASE), "{{user.email}}"),
)
_UNSUBSCRIBE_HREF_RE = re.compile(r"""href=["']([^"']*unsubscribe[^"']*)["']""", re.IGNORECASE)


def ensure_doctype(html: str) -> str:
    if _DOCTYPE_RE.match(html):
        return html
    return f"{DOCTYPE}\n{html}"


def ensure_charset(html: str) -> str:
    if "charset=" in html.lower():
        return html
    return _HEAD_OPEN_RE.sub(rf"\1\n    {CHARSET_META}", html, count=1)


def rewrite_merge_tags(html: str) -> str:
    for pattern, replacement in MERGE_TAG_RULES:
        html = pattern.sub(replacement, html)
    return html


def rewrite_unsubscribe_links(html: str) -> str:
    return _UNSUBSCRIBE_HREF_RE.sub(UNSUBSCRIBE_PLACEHOLDER, html)


def normalize(html: str) -> str:
    html = ensure_doctype(html)
    html = ensure_charset(html)
    html = rewrite_merge_tags(html)
    return rewrite_unsubscribe_links(html)


def extract_subject(html: str, default: str = DEFAULT_SUBJECT) -> str:
    title = BeautifulSoup(html, "html.parser").title
    if title is None:
        return default
    return title.get_text(strip=True) or default


__all__ = [
    "CHARSET_META",
    "DOCTYPE",
    "MERGE_TAG_RULES",
    "UNSUBSCRIBE_PLACEHOLDER",
    "ensure_charset",
    "ensure_doctype",
    "extract_subject",
    "normalize",
    "rewrite_merge_tags",
    "rewrite_unsubscribe_links",
]
