from core.bee_converter.adapter import PROVENANCE_KEY, ResponseAdapter, count_merge_tags

from conftest import FIXED_NOW


def build_adapter() -> ResponseAdapter:
    return ResponseAdapter(clock=lambda: FIXED_NOW)


def test_provenance_block_contents() -> None:
    html = "<html><body>Hi {{first_name}}, café {{ unknown_tag }}</body></html>"
    document = build_adapter().adapt({"page": {}}, html, "org-42")
    assert document["page"] == {}
    assert document[PROVENANCE_KEY] == {
        "version": "1.0",
        "editor_type": "visual",
        "organization_id": "org-42",
        "source": "html_import",
        "converted_at": "2024-05-01T12:30:00Z",
        "original_html_bytes": len(html.encode("utf-8")),
        "merge_tags_count": 2,
    }


def test_adapting_twice_replaces_provenance() -> None:
    adapter = build_adapter()
    first = adapter.adapt({"page": {}}, "<html>{{a}}</html>", "org-1")
    second = adapter.adapt(first, "<html>{{a}}{{b}}</html>", "org-2")
    assert set(second) == {"page", PROVENANCE_KEY}
    assert PROVENANCE_KEY not in second[PROVENANCE_KEY]
    assert second[PROVENANCE_KEY]["organization_id"] == "org-2"
    assert second[PROVENANCE_KEY]["merge_tags_count"] == 2


def test_adapt_does_not_mutate_input() -> None:
    payload = {"page": {}}
    build_adapter().adapt(payload, "<html></html>", "org-1")
    assert payload == {"page": {}}


def test_count_merge_tags_scans_all_brackets() -> None:
    assert count_merge_tags("{{user.first_name}} {{ x }} {{}} {single}") == 2
