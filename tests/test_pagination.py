import pytest

from farmly.core.pagination import PageRequest, build_response, normalize, paginate


def test_defaults_when_query_is_empty():
    req = normalize({})
    assert req == PageRequest(page=1, page_size=32, skip=0, take=32)
    assert normalize(None) == req


def test_page_and_limit_from_strings():
    req = normalize({"page": "3", "limit": "10"})
    assert (req.page, req.page_size, req.skip, req.take) == (3, 10, 20, 10)


def test_page_size_alias_and_limit_wins():
    assert normalize({"pageSize": "7"}).page_size == 7
    assert normalize({"limit": "5", "pageSize": "7"}).page_size == 5


def test_size_is_capped():
    assert normalize({"limit": "1000"}).page_size == 100
    assert normalize({"limit": "50"}, default_page_size=10, max_page_size=20).page_size == 20


@pytest.mark.parametrize("bad", ["-1", "0", "abc", "", "  ", "NaN", "inf", "-inf", "0.5", None, True, [1]])
def test_bad_values_fall_back(bad):
    req = normalize({"page": bad, "limit": bad})
    assert req.page == 1
    assert req.page_size == 32
    assert req.skip == 0


def test_fractions_are_floored():
    req = normalize({"page": "2.9", "limit": "4.2"})
    assert (req.page, req.page_size, req.skip) == (2, 4, 4)


def test_unknown_keys_ignored():
    assert normalize({"offset": "50", "sort": "name"}) == normalize({})


def test_numbers_accepted_as_is():
    req = normalize({"page": 2, "limit": 15})
    assert (req.skip, req.take) == (15, 15)


def test_build_response_envelope():
    resp = build_response(["a", "b"], page=2, page_size=5, total=12).to_dict()
    assert resp == {
        "items": ["a", "b"],
        "page": 2,
        "pageSize": 5,
        "total": 12,
        "totalPages": 3,
        "hasMore": True,
    }


def test_build_response_last_page_has_no_more():
    resp = build_response(["k", "l"], page=3, page_size=5, total=12)
    assert resp.total_pages == 3
    assert resp.has_more is False


def test_build_response_zero_page_size():
    resp = build_response([], page=1, page_size=0, total=10)
    assert resp.total_pages == 0
    assert resp.has_more is False


def test_build_response_empty_total():
    resp = build_response([], page=1, page_size=32, total=0)
    assert (resp.total_pages, resp.has_more) == (0, False)


def test_paginate_slices_rows():
    rows = list(range(1, 13))
    resp = paginate(rows, {"page": "3", "limit": "5"})
    assert resp.items == [11, 12]
    assert resp.total == 12
    assert resp.has_more is False


def test_page_past_the_end_is_empty():
    resp = paginate(list(range(3)), {"page": "9", "limit": "2"})
    assert resp.items == []
    assert resp.page == 9
    assert resp.total_pages == 2


def test_negative_page_and_fractional_limit():
    assert normalize({"page": "-2", "limit": "120.9"}, 15, 50) == PageRequest(page=1, page_size=50, skip=0, take=50)


def test_third_page_of_ten():
    assert normalize({"page": "3", "limit": "10"}, 20, 50) == PageRequest(page=3, page_size=10, skip=20, take=10)


@pytest.mark.parametrize("page, expected_page", [(None, 1), ("-2", 1), ("abc", 1), ("3", 3)])
@pytest.mark.parametrize("limit, expected_size", [(None, 15), ("0", 15), ("120.9", 50), ("10", 10)])
def test_page_and_limit_grid(page, expected_page, limit, expected_size):
    query = {}
    if page is not None:
        query["page"] = page
    if limit is not None:
        query["limit"] = limit
    req = normalize(query, default_page_size=15, max_page_size=50)
    assert req.page == expected_page
    assert req.page_size == expected_size
    assert req.page >= 1
    assert 1 <= req.page_size <= 50
    assert req.skip == (req.page - 1) * req.page_size
    assert req.take == req.page_size
