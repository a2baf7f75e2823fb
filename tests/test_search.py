from __future__ import annotations

from conftest import doc, ext

from docmap.search import SearchIndex


def test_blank_query_matches_everything() -> None:
    index = SearchIndex()

    assert index.matches(doc("a.md"), "")
    assert index.matches(ext("ext:x", "x.org"), "   ")


def test_document_fields_are_searched_case_insensitively() -> None:
    index = SearchIndex()
    node = doc("notes/entropy.md", title="Entropy", description="Heat death of the universe")

    assert index.matches(node, "ENTROPY")
    assert index.matches(node, "notes/")
    assert index.matches(node, "heat death")
    assert not index.matches(node, "quantum")


def test_document_without_file_path_falls_back_to_id() -> None:
    node = doc("plain.md")
    node.data.pop("file_path")

    assert SearchIndex().matches(node, "plain")


def test_external_links_match_domain_and_urls() -> None:
    index = SearchIndex()
    node = ext("ext:wiki", "en.wikipedia.org", "https://en.wikipedia.org/wiki/Thermodynamics")

    assert index.matches(node, "wikipedia")
    assert index.matches(node, "thermodynamics")
    assert not index.matches(node, "entropy")


def test_classify_sets_flags() -> None:
    index = SearchIndex()
    nodes = [doc("a.md", title="Apple"), doc("b.md", title="Banana")]

    active = index.classify(nodes, "apple")
    assert [(n.search_active, n.search_match) for n in active] == [(True, True), (True, False)]

    cleared = index.classify(active, "")
    assert [(n.search_active, n.search_match) for n in cleared] == [(False, True), (False, True)]


def test_classify_does_not_mutate_input() -> None:
    nodes = [doc("a.md")]
    SearchIndex().classify(nodes, "zzz")

    assert nodes[0].search_active is False


def test_count_matches() -> None:
    nodes = [doc("a.md", title="Apple"), doc("b.md", title="Pineapple"), doc("c.md", title="Cherry")]

    assert SearchIndex().count_matches(nodes, "apple") == 2
