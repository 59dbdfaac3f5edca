from datetime import datetime, timezone

import pytest

from stockle.entities.articles import Article, ArticleStatus
from stockle.filters import FilterSpec, SortSpec, apply, matches_query, paginate

from conftest import make_store


def ids(articles):
    return [a.id for a in articles]


# ---------------------------------------------------------------------------
# FilterSpec normalisation
# ---------------------------------------------------------------------------


def test_filter_spec_normalises_malformed_values_to_no_constraint():
    spec = FilterSpec(status="bogus", category_id="", favorite="maybe")
    assert spec == FilterSpec()
    assert spec.is_empty


def test_filter_spec_from_mapping():
    spec = FilterSpec.from_mapping({"status": "read", "categoryId": "tech", "favorite": "true"})
    assert spec == FilterSpec(status=ArticleStatus.READ, category_id="tech", favorite=True)
    assert spec.active_count == 3

    assert FilterSpec.from_mapping({"category_id": "all", "favorite": "0"}) == FilterSpec(favorite=False)
    assert FilterSpec.from_mapping(None) == FilterSpec()
    assert FilterSpec.from_mapping(["status", "read"]) == FilterSpec()
    assert FilterSpec.from_mapping({"status": ["read"], "categoryId": 5}) == FilterSpec()


def test_filter_spec_toggles():
    spec = FilterSpec().toggle_status("unread")
    assert spec.status is ArticleStatus.UNREAD
    assert spec.toggle_status("unread").status is None
    assert spec.toggle_status("read").status is ArticleStatus.READ

    spec = spec.toggle_favorite()
    assert spec.favorite is True
    assert spec.toggle_favorite().favorite is None

    spec = spec.with_category("tech")
    assert spec.category_id == "tech"
    assert spec.with_category("all").category_id is None
    assert spec.active_count == 3
    assert spec.cleared() == FilterSpec()


# ---------------------------------------------------------------------------
# apply
# ---------------------------------------------------------------------------


def test_facets_combine_conjunctively(library):
    assert ids(apply(library, {"status": "unread"})) == ["article-2", "article-1"]
    assert ids(apply(library, {"categoryId": "life"})) == ["article-2"]
    assert ids(apply(library, {"status": "unread", "categoryId": "tech"})) == []
    assert ids(apply(library, FilterSpec(status="read", favorite=True))) == ["article-3"]
    assert ids(apply(library, FilterSpec(favorite=False))) == ["article-3", "article-2", "article-1"]


def test_search_fields(library):
    assert ids(apply(library, None, "hooks")) == ["article-1"]         # title
    assert ids(apply(library, None, "useeffect")) == ["article-1"]     # summary
    assert ids(apply(library, None, "david")) == ["article-2"]         # author
    assert ids(apply(library, None, "rust")) == ["article-3"]          # tag + title
    assert ids(apply(library, None, "frontend")) == ["article-1"]      # tag only
    assert ids(apply(library, None, "react.dev")) == []                # url is not searched


def test_search_is_case_insensitive(library):
    assert apply(library, {}, "REACT") == apply(library, {}, "react")
    assert ids(apply(library, {}, "REACT")) == ["article-1"]


@pytest.mark.parametrize("query", ["", "   ", "\t", None])
def test_blank_query_is_no_text_filter(library, query):
    assert ids(apply(library, {}, query)) == ["article-3", "article-2", "article-1"]


def test_missing_fields_never_match_or_raise():
    article = Article(data={"id": "bare", "url": "https://x.example", "title": "Bare"})
    assert matches_query(article, "bare")
    assert not matches_query(article, "summary")
    assert apply([article], {}, "nothing") == []


def test_filtering_is_idempotent_and_a_subset(library):
    cases = [({}, ""), ({"status": "unread"}, ""), ({}, "o"), ({"favorite": True}, "rust"), ({"status": "archived"}, "")]
    source = library.articles()
    for spec, query in cases:
        once = apply(source, spec, query)
        assert apply(once, spec, query) == once
        assert all(any(a is s for s in source) for a in once)


def test_apply_preserves_source_order_and_input(library):
    source = list(reversed(library.articles()))
    before = list(source)
    assert ids(apply(source, {"status": "unread"})) == ["article-1", "article-2"]
    assert source == before


def test_end_to_end_scenario():
    store = make_store()
    a1 = store.save({"url": "https://a.example", "tags": ["go"]})
    a2 = store.save({"url": "https://b.example", "tags": ["rust"]})
    store.set_status(a2.id, "read")
    store.toggle_favorite(a2.id)

    assert apply(store, {"status": "unread"}, "") == [a1]
    assert apply(store, {"favorite": True}, "") == [a2]

    store.delete(a1.id)
    assert apply(store, {}, "") == [a2]


# ---------------------------------------------------------------------------
# sorting and pagination
# ---------------------------------------------------------------------------


def _dated(article_id, published, title, seconds):
    return Article(data={
        "id": article_id,
        "url": f"https://{article_id}.example",
        "title": title,
        "published_at": published,
        "reading_time_seconds": seconds,
    })


def test_sort_facet():
    items = [
        _dated("a", datetime(2024, 1, 2, tzinfo=timezone.utc), "beta", 300),
        _dated("b", None, "Alpha", 60),
        _dated("c", datetime(2024, 1, 1), "gamma", 120),
    ]
    assert ids(apply(items, sort=SortSpec("published_at"))) == ["a", "c", "b"]
    assert ids(apply(items, sort=SortSpec("published_at", descending=False))) == ["c", "a", "b"]
    assert ids(apply(items, sort=SortSpec("title", descending=False))) == ["b", "a", "c"]
    assert ids(apply(items, sort=SortSpec("reading_time"))) == ["a", "c", "b"]
    # unknown keys fall back to saved_at, which none of these have
    assert ids(apply(items, sort=SortSpec("popularity"))) == ["a", "b", "c"]


def test_paginate():
    items = [Article(data={"id": str(i), "url": "https://x.example"}) for i in range(45)]

    page = paginate(items, 1, 20)
    assert ids(page.articles) == [str(i) for i in range(20)]
    assert (page.total, page.page, page.limit, page.pages, page.has_next) == (45, 1, 20, 3, True)

    last = paginate(items, 3, 20)
    assert ids(last.articles) == [str(i) for i in range(40, 45)]
    assert not last.has_next

    assert paginate(items, 9, 20).articles == []
    assert paginate(items, "x", "y").limit == 20
    assert paginate(items, 0, 500) == paginate(items, 1, 100)
    assert paginate([], 1, 20).pages == 1


def test_query_whitespace_is_part_of_the_needle(library):
    assert ids(apply(library, {}, " hooks")) == ["article-1"]
    assert ids(apply(library, {}, "hooks ")) == []
    assert ids(apply(library, {}, "react hooks")) == ["article-1"]
