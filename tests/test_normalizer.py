import pytest

from core.bee_converter.normalizer import (
    ensure_charset,
    ensure_doctype,
    extract_subject,
    normalize,
    rewrite_merge_tags,
    rewrite_unsubscribe_links,
)


def test_doctype_prepended_when_missing() -> None:
    assert ensure_doctype("<html></html>") == "<!DOCTYPE html>\n<html></html>"


def test_doctype_kept_when_present() -> None:
    html = "<!doctype html><html></html>"
    assert ensure_doctype(html) == html


def test_charset_inserted_after_head() -> None:
    html = '<html><head lang="en"><title>x</title></head><body></body></html>'
    result = ensure_charset(html)
    assert '<head lang="en">\n    <meta charset="UTF-8"><title>' in result


def test_charset_left_alone_when_declared() -> None:
    html = '<html><head><meta http-equiv="Content-Type" content="text/html; charset=iso-8859-1"></head></html>'
    assert ensure_charset(html) == html


def test_charset_ignores_header_element() -> None:
    html = "<html><body><header>Top</header></body></html>"
    assert ensure_charset(html) == html


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("{{ First_Name }}", "{{user.first_name}}"),
        ("{{firstname}}", "{{user.first_name}}"),
        ("{{LAST_NAME}}", "{{user.last_name}}"),
        ("{{  email }}", "{{user.email}}"),
        ("{{ company }}", "{{ company }}"),
    ],
)
def test_merge_tag_rewrites(source: str, expected: str) -> None:
    assert rewrite_merge_tags(source) == expected


def test_unsubscribe_href_rewritten() -> None:
    html = '<a href="mailto:x?unsubscribe=1">Leave</a><a href=\'https://x.io/UnSubscribe\'>Bye</a>'
    result = rewrite_unsubscribe_links(html)
    assert result == '<a href="{{unsubscribe_link}}">Leave</a><a href="{{unsubscribe_link}}">Bye</a>'


def test_other_links_untouched() -> None:
    html = '<a href="https://example.com/shop">Shop</a>'
    assert rewrite_unsubscribe_links(html) == html


@pytest.mark.parametrize(
    "html",
    [
        "<html><head></head><body>{{ first_name }}</body></html>",
        '<!DOCTYPE html><html><head><meta charset="utf-8"></head><body><a href="/unsubscribe">x</a></body></html>',
        "<html><body>{{email}} {{ last_name }} {{custom}}</body></html>",
        "",
    ],
)
def test_normalize_is_idempotent(html: str) -> None:
    once = normalize(html)
    assert normalize(once) == once


def test_normalize_applies_every_rule() -> None:
    html = '<html><head></head><body>{{first_name}} <a href="/unsubscribe">x</a></body></html>'
    result = normalize(html)
    assert result.startswith("<!DOCTYPE html>\n<html><head>\n    <meta charset=\"UTF-8\">")
    assert "{{user.first_name}}" in result
    assert 'href="{{unsubscribe_link}}"' in result


def test_extract_subject() -> None:
    assert extract_subject("<title> Deals &amp; More </title>") == "Deals & More"
    assert extract_subject("<html><title></title></html>") == "Imported Template"
    assert extract_subject("<html></html>", default="Fallback") == "Fallback"


def test_extract_subject_ignores_commented_title() -> None:
    html = "<!-- <title>Old</title> --><html><head><title>New &amp; Improved</title></head><body></body></html>"
    assert extract_subject(html) == "New & Improved"
