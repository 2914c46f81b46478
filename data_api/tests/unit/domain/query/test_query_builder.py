import pytest

from data_api.app.domain.models import MAX_INNER_HITS, QueryOptions
from data_api.app.domain.query import query_builder
from data_api.app.domain.query.query_builder import (
    build,
    normalize_distance,
    parse_range,
    parse_term_key,
)
from data_api.app.platform.exceptions import UnsupportedQuery

"""
build(): 검색어 → filter/must_not/nested, fields, from/size, sort, aggs
헬퍼: parse_term_key, parse_range, normalize_distance
"""


# ----------------------
# 헬퍼
# ----------------------
@pytest.mark.parametrize(
    "key, expected",
    [
        ("age__range", ("age", "range")),
        ("name__not", ("name", "not")),
        ("city__exists", ("city", "exists")),
        ("name", ("name", None)),
        ("snake__case", ("snake__case", None)),
    ],
)
def test_parse_term_key(key, expected):
    assert parse_term_key(key) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("10..20", ("10", "20")),
        ("..20", (None, "20")),
        ("10..", ("10", None)),
        ("1.5..2.5", ("1.5", "2.5")),
    ],
)
def test_parse_range(value, expected):
    assert parse_range(value) == expected


@pytest.mark.parametrize("value", ["10", "..", "abc"])
def test_parse_range_invalid(value):
    with pytest.raises(ValueError):
        parse_range(value)


@pytest.mark.parametrize(
    "value, expected",
    [("50", "50mi"), ("5km", "5km"), ("10miles", "10mi"), ("2.5MI", "2.5mi")],
)
def test_normalize_distance(value, expected):
    assert normalize_distance(value) == expected


# ----------------------
# 검색어
# ----------------------
def test_single_value_exact_type_becomes_term(people_dictionary):
    # when
    req = build({"name": "Marilyn"}, QueryOptions(), people_dictionary)

    # then
    assert req.filters == [{"term": {"name": "Marilyn"}}]
    assert req.nested is None
    assert req.fields is None


def test_comma_values_become_any_of(people_dictionary):
    req = build({"name": "Paul,Marilyn"}, QueryOptions(), people_dictionary)
    assert req.filters == [{"terms": {"name": ["Paul", "Marilyn"]}}]


def test_numeric_values_compared_as_numbers(people_dictionary):
    req = build({"age": "14,70"}, QueryOptions(), people_dictionary)
    assert req.filters == [{"terms": {"age": [14, 70]}}]


def test_trailing_comma_is_dropped(people_dictionary):
    req = build({"age": "14,"}, QueryOptions(), people_dictionary)
    assert req.filters == [{"term": {"age": 14}}]


def test_text_values_use_match(people_dictionary):
    req = build({"city": "San Francisco,Chicago"}, QueryOptions(), people_dictionary)
    assert req.filters == [{
        "bool": {
            "should": [{"match": {"city": "San Francisco"}}, {"match": {"city": "Chicago"}}],
            "minimum_should_match": 1,
        }
    }]


def test_range_not_and_exists_operators(people_dictionary):
    # given
    terms = {"age__range": "10..20,60..", "state__not": "CA", "city__exists": "false"}

    # when
    req = build(terms, QueryOptions(), people_dictionary)

    # then
    assert req.filters == [{
        "bool": {
            "should": [
                {"range": {"age": {"gte": 10, "lte": 20}}},
                {"range": {"age": {"gte": 60}}},
            ],
            "minimum_should_match": 1,
        }
    }]
    assert req.must_not == [{"match": {"state": "CA"}}, {"exists": {"field": "city"}}]


def test_nested_terms_share_single_nested_filter(people_dictionary):
    # given
    terms = {"latest.programs.code": "1312,4000", "latest.programs.degree": "bachelor"}

    # when
    req = build(terms, QueryOptions(), people_dictionary)

    # then
    assert req.filters == []
    assert req.nested.path == "latest.programs"
    assert req.nested.must == [
        {"terms": {"latest.programs.code": ["1312", "4000"]}},
        {"term": {"latest.programs.degree": "bachelor"}},
    ]


def test_nested_text_comma_values_use_match_like_top_level(people_dictionary):
    """nested 텍스트 필드도 쉼표 값은 match 들의 should(terms 는 분석된 토큰과 안 맞는다)"""
    # when
    nested = build({"latest.programs.title": "Nursing,Law"}, QueryOptions(), people_dictionary)
    top = build({"city": "Boston,Chicago"}, QueryOptions(), people_dictionary)

    # then
    assert nested.nested.must == [{
        "bool": {
            "should": [
                {"match": {"latest.programs.title": "Nursing"}},
                {"match": {"latest.programs.title": "Law"}},
            ],
            "minimum_should_match": 1,
        }
    }]
    assert top.filters[0]["bool"]["should"][0] == {"match": {"city": "Boston"}}


def test_nested_clause_asks_for_all_inner_hits(people_dictionary):
    """inner_hits size 를 안 주면 OpenSearch 는 부모당 자식 3개만 돌려준다"""
    body = build({"latest.programs.code": "1312"}, QueryOptions(), people_dictionary).to_body()

    nested = body["query"]["bool"]["filter"][0]["nested"]
    assert nested["inner_hits"] == {"size": MAX_INNER_HITS}
    assert MAX_INNER_HITS > 3


def test_terms_across_two_nested_paths_are_unsupported(people_dictionary):
    with pytest.raises(UnsupportedQuery):
        build({"latest.programs.code": "1312", "sites.name": "main"}, QueryOptions(), people_dictionary)


def test_nested_range_goes_to_top_level_filters(people_dictionary):
    req = build({"latest.programs.code__exists": "true"}, QueryOptions(), people_dictionary)
    assert req.nested is None
    assert req.filters == [{"exists": {"field": "latest.programs.code"}}]


# ----------------------
# 지오
# ----------------------
def test_geo_filter_needs_distance_and_anchor(people_dictionary):
    # distance 만 있으면 필터 없음
    req = build({}, QueryOptions(distance="10"), people_dictionary)
    assert req.filters == []

    req = build({}, QueryOptions(distance="10", lat=37.77, lon=-122.41), people_dictionary)
    assert req.filters == [{
        "geo_distance": {"distance": "10mi", "location": {"lat": 37.77, "lon": -122.41}}
    }]


# ----------------------
# fields / paging / sort
# ----------------------
def test_fields_resolve_to_paths_and_nested_origin_sources(people_dictionary):
    # given
    opts = QueryOptions(fields="name,latest.programs.title,name")

    # when
    req = build({}, opts, people_dictionary)

    # then
    assert req.fields == ["name", "latest.programs.title"]
    assert req.nested_paths == ["latest.programs"]
    # nested 필터가 없으니 nested 출신 필드는 _source 로 받아야 한다
    assert req.source_fields == ["latest.programs.title"]


def test_nested_fields_under_filter_path_come_from_inner_hits(people_dictionary):
    opts = QueryOptions(fields=["name", "latest.programs.title"])
    req = build({"latest.programs.code": "1312"}, opts, people_dictionary)
    assert req.source_fields == []
    assert req.fields == ["name", "latest.programs.title"]


def test_object_path_projection_is_read_from_source(people_dictionary):
    """fields API 는 leaf 값만 주므로 "2012" 같은 객체 경로는 _source 로 받는다"""
    req = build({}, QueryOptions(fields=["name", "2012"]), people_dictionary)

    assert req.source_fields == ["2012"]
    assert req.to_body()["_source"] == ["2012"]


def test_nested_path_projection_under_filter_comes_from_inner_hits(people_dictionary):
    opts = QueryOptions(fields=["name", "latest.programs"])
    req = build({"latest.programs.code": "1312"}, opts, people_dictionary)

    assert req.fields == ["name", "latest.programs"]
    assert req.nested_paths == ["latest.programs"]
    assert req.source_fields == []


@pytest.mark.parametrize(
    "page, per_page, expected_from, expected_size",
    [(1, 20, 0, 20), (3, 10, 20, 10), (2, 100, 100, 100), (2, 500, 100, 100), (0, 20, 0, 20)],
)
def test_pagination(people_dictionary, page, per_page, expected_from, expected_size):
    req = build({}, QueryOptions(page=page, per_page=per_page), people_dictionary)
    assert req.from_ == expected_from
    assert req.size == expected_size


def test_per_page_above_max_is_clamped(people_dictionary):
    req = build({}, QueryOptions(per_page=1000), people_dictionary)
    assert req.size == query_builder.MAX_PAGE_SIZE
    assert req.to_body()["size"] == 100


def test_sort_clauses(people_dictionary):
    req = build({}, QueryOptions(sort="age:desc,city,name:ASC"), people_dictionary)
    assert req.sort == [
        {"age": {"order": "desc"}},
        {"city.keyword": {"order": "asc"}},
        {"name": {"order": "asc"}},
    ]


# ----------------------
# stats
# ----------------------
def test_stats_aggregates_numeric_fields_only(people_dictionary):
    # given
    opts = QueryOptions(command="stats", fields="age,height,name")

    # when
    req = build({}, opts, people_dictionary)
    body = req.to_body()

    # then
    assert req.aggs == {
        "age": {"extended_stats": {"field": "age"}},
        "height": {"extended_stats": {"field": "height"}},
    }
    assert body["size"] == 0
    assert body["aggs"] == req.aggs
    assert "fields" not in body


def test_builder_uses_resolved_path_for_unknown_names(empty_dictionary):
    # 사전이 비어 있으면 이름 그대로 문자열 필드
    req = build({"school.city": "Boston"}, QueryOptions(), empty_dictionary)
    assert req.filters == [{"match": {"school.city": "Boston"}}]
