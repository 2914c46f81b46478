from unittest.mock import MagicMock
import pytest

from data_api.app.domain.services.search_service import SearchService
from data_api.app.platform.exceptions import (
    InvalidInput,
    UnknownEndpoint,
    UnsupportedQuery,
)

"""
search(): 검증 → 번역 → 검색 → 결과 모양/메타데이터 조립까지의 흐름
백엔드는 MagicMock 검색기로 대체하고, 받은 body 로 간단히 흉내 낸다.
"""

MARILYN = {"id": 1, "name": "Marilyn", "age": 70, "height": 142, "city": "San Francisco"}
PAUL_1 = {"id": 2, "name": "Paul", "age": 14, "height": 2, "city": "Chicago"}
PAUL_2 = {"id": 3, "name": "Paul", "age": 44, "height": 180, "city": "Rochester"}
PEOPLE = [MARILYN, PAUL_1, PAUL_2]


def fake_backend(index_name, body):
    """term/terms 필터만 이해하는 아주 작은 가짜 백엔드"""
    docs = PEOPLE
    for clause in body["query"]["bool"]["filter"]:
        if "term" in clause:
            (field, value), = clause["term"].items()
            docs = [d for d in docs if d.get(field) == value]
        elif "terms" in clause:
            (field, values), = clause["terms"].items()
            docs = [d for d in docs if d.get(field) in values]
    hits = [{"_id": str(d["id"]), "_source": d} for d in docs]
    if "fields" in body:
        hits = [{"_id": h["_id"], "fields": {f: [h["_source"][f]] for f in body["fields"] if f in h["_source"]}}
                for h in hits]
    return {"took": 3, "hits": {"total": {"value": len(docs), "relation": "eq"}, "hits": hits[: body.get("size", 20)]}}


@pytest.fixture
def searcher():
    s = MagicMock()
    s.search.side_effect = fake_backend
    return s


@pytest.fixture
def locator():
    loc = MagicMock()
    loc.locate.side_effect = lambda z: {"lat": 37.779329, "lon": -122.419236} if z == "94102" else None
    return loc


@pytest.fixture
def svc(searcher, people_dictionary, locator):
    return SearchService(searcher, people_dictionary, locator)


def test_single_name_returns_full_document(svc, searcher):
    # when
    result = svc.search({"name": "Marilyn"})

    # then
    assert result == {
        "metadata": {"total": 1, "page": 1, "per_page": 20},
        "results": [MARILYN],
    }
    index_name, body = searcher.search.call_args.args
    assert index_name == "test-people"
    assert body["query"]["bool"]["filter"] == [{"term": {"name": "Marilyn"}}]


def test_comma_names_match_any(svc):
    result = svc.search({"name": "Paul,Marilyn"})
    assert result["metadata"]["total"] == 3
    assert sorted(r["id"] for r in result["results"]) == [1, 2, 3]


def test_projection_sets_missing_fields_to_none(svc):
    result = svc.search({"name": "Paul"}, {"fields": "name,2012.sat_average"})
    assert result["results"] == [
        {"name": "Paul", "2012.sat_average": None},
        {"name": "Paul", "2012.sat_average": None},
    ]


def test_keys_nested_changes_key_shape(svc):
    result = svc.search({"name": "Marilyn"}, {"fields": "2012.sat_average", "keys_nested": True})
    assert result["results"] == [{"2012": {"sat_average": None}}]


def test_stats_scenario(people_dictionary):
    # given: 나이 {14, 70}, 키 {2, 142} 두 건에 대한 extended_stats 응답
    searcher = MagicMock()
    searcher.search.return_value = {
        "took": 2,
        "hits": {"total": {"value": 2, "relation": "eq"}, "hits": []},
        "aggregations": {
            "age": {"count": 2, "min": 14.0, "max": 70.0, "avg": 42.0, "sum": 84.0,
                    "sum_of_squares": 5096.0, "variance": 784.0, "std_deviation": 28.0},
            "height": {"count": 2, "min": 2.0, "max": 142.0, "avg": 72.0, "sum": 144.0,
                       "sum_of_squares": 20168.0, "variance": 4900.0, "std_deviation": 70.0},
        },
    }
    svc = SearchService(searcher, people_dictionary)

    # when
    result = svc.search({}, {"command": "stats", "fields": ["age", "height"], "metrics": ["max", "avg"]})

    # then
    assert result["aggregations"] == {
        "age": {"max": 70.0, "avg": 42.0},
        "height": {"max": 142.0, "avg": 72.0},
    }
    _, body = searcher.search.call_args.args
    assert body["size"] == 0
    assert body["aggs"] == {
        "age": {"extended_stats": {"field": "age"}},
        "height": {"extended_stats": {"field": "height"}},
    }


def test_pagination_metadata(svc, searcher):
    result = svc.search({}, {"page": "3", "per_page": "500"})
    _, body = searcher.search.call_args.args
    assert body["from"] == 200
    assert body["size"] == 100
    assert result["metadata"]["page"] == 3
    assert result["metadata"]["per_page"] == 100


def test_debug_timing(svc):
    result = svc.search({"name": "Marilyn"}, {"debug": "true"})
    assert result["metadata"]["ES_took_ms"] == 3
    assert result["metadata"]["search_time"] >= 0


def test_zip_resolved_to_geo_filter(svc, searcher, locator):
    svc.search({}, {"zip": "94102", "distance": "5"})
    _, body = searcher.search.call_args.args
    assert body["query"]["bool"]["filter"] == [{
        "geo_distance": {"distance": "5mi", "location": {"lat": 37.779329, "lon": -122.419236}}
    }]


def test_keys_are_normalized(svc):
    class Key:
        def __str__(self):
            return "name"

    result = svc.search({Key(): "Marilyn"})
    assert result["metadata"]["total"] == 1


def test_invalid_input_collects_details(svc, searcher):
    with pytest.raises(InvalidInput) as exc:
        svc.search({"age": "old"}, {"page": "0"})
    assert [d["error"] for d in exc.value.details] == ["page", "parameter_type_error"]
    searcher.search.assert_not_called()


def test_unsupported_nested_query(svc):
    with pytest.raises(UnsupportedQuery):
        svc.search({"latest.programs.code": "1312", "sites.name": "main"})


def test_endpoint_resolution(svc, searcher):
    svc.search({}, {"endpoint": "people"})
    assert searcher.search.call_args.args[0] == "test-people"

    svc.search({}, {"index": "archive"})
    assert searcher.search.call_args.args[0] == "test-archive"


def test_unknown_endpoint(svc, searcher):
    with pytest.raises(UnknownEndpoint) as exc:
        svc.search({}, {"endpoint": "colleges"})
    assert "people" in str(exc.value)
    searcher.search.assert_not_called()


def test_backend_error_propagates(svc, searcher):
    searcher.search.side_effect = RuntimeError("boom")
    with pytest.raises(RuntimeError):
        svc.search({"name": "Paul"})
