import pytest

from data_api.app.domain.models import NestedFilter, QueryRequest
from data_api.app.domain.query.result_reshaper import ReshapeCase, classify, reshape

"""
네 가지 경우(nested 필터 유무 x fields 유무)별 결과 행 모양
- 단일 값 스칼라 풀기 / 다중 값 유지
- 요청했지만 없는 필드는 None
- keys_nested 에 따른 점 키 / 중첩 키
- nested 재구성에 쓴 필드는 점 키로 다시 나오지 않음
"""

PROGRAMS = NestedFilter(path="latest.programs", must=[{"term": {"latest.programs.code": "1312"}}])


def hit(source=None, fields=None, inner_hits=None):
    h = {"_id": "1", "_score": 1.0}
    if source is not None:
        h["_source"] = source
    if fields is not None:
        h["fields"] = fields
    if inner_hits is not None:
        h["inner_hits"] = inner_hits
    return h


def inner(path, *children):
    return {path: {"hits": {"total": {"value": len(children)}, "hits": [
        {"_nested": {"field": path, "offset": i}, "_source": c} for i, c in enumerate(children)
    ]}}}


@pytest.mark.parametrize(
    "fields, nested, expected",
    [
        (None, None, ReshapeCase.NO_PROJECTION_NO_NESTED),
        (None, PROGRAMS, ReshapeCase.NO_PROJECTION_NESTED),
        (["name"], None, ReshapeCase.PROJECTION_NO_NESTED),
        (["name"], PROGRAMS, ReshapeCase.PROJECTION_NESTED),
    ],
)
def test_classify(fields, nested, expected):
    assert classify(QueryRequest(fields=fields, nested=nested)) == expected


# ----------------------
# NO_PROJECTION_NO_NESTED
# ----------------------
def test_full_source_returned_unmodified():
    # given
    source = {"name": "Marilyn", "age": 70, "2012": {"sat_average": 1200.5}}
    hits = [hit(source=source)]

    # when
    rows = reshape(hits, 1, QueryRequest())

    # then
    assert rows == [source]


# ----------------------
# NO_PROJECTION_NESTED
# ----------------------
def test_nested_without_fields_returns_matched_children():
    # given: 부모 두 건, 첫 부모는 자식 두 개 매칭
    hits = [
        hit(source={"name": "A", "latest": {"programs": []}},
            inner_hits=inner("latest.programs", {"code": "1312", "title": "Nursing"}, {"code": "1312", "title": "RN"})),
        hit(source={"name": "B"},
            inner_hits=inner("latest.programs", {"code": "1312", "title": "Nurse Aide"})),
    ]

    # when
    rows = reshape(hits, 2, QueryRequest(nested=PROGRAMS))

    # then: 부모 문서가 아니라 매칭된 자식들
    assert rows == [
        {"code": "1312", "title": "Nursing"},
        {"code": "1312", "title": "RN"},
        {"code": "1312", "title": "Nurse Aide"},
    ]


# ----------------------
# PROJECTION_NO_NESTED
# ----------------------
def test_projection_collapses_single_values_and_keeps_lists():
    req = QueryRequest(fields=["name", "aliases"])
    hits = [hit(fields={"name": ["Paul"], "aliases": ["P", "Paulie"]})]

    rows = reshape(hits, 1, req)

    assert rows == [{"name": "Paul", "aliases": ["P", "Paulie"]}]


def test_projection_missing_fields_are_none():
    # given: 백엔드가 age 값을 안 돌려줌
    req = QueryRequest(fields=["name", "age", "2012.sat_average"])
    hits = [hit(fields={"name": ["Paul"]})]

    # when
    rows = reshape(hits, 1, req)

    # then
    assert rows == [{"name": "Paul", "age": None, "2012.sat_average": None}]
    assert all(set(row) == set(req.fields) for row in rows)


def test_projection_dotted_keys_stay_dotted_by_default():
    req = QueryRequest(fields=["2012.sat_average"])
    rows = reshape([hit(fields={"2012.sat_average": [1200.5]})], 1, req)
    assert rows == [{"2012.sat_average": 1200.5}]


def test_projection_keys_nested():
    req = QueryRequest(fields=["2012.sat_average", "name"], keys_nested=True)
    rows = reshape([hit(fields={"2012.sat_average": [1200.5], "name": ["Lisa"]})], 1, req)
    assert rows == [{"2012": {"sat_average": 1200.5}, "name": "Lisa"}]
    assert "2012.sat_average" not in rows[0]


def test_projection_nested_origin_fields_from_source():
    # given: nested 출신 필드는 fields 가 아니라 _source 로만 온다
    req = QueryRequest(
        fields=["name", "latest.programs.title"],
        source_fields=["latest.programs.title"],
        nested_paths=["latest.programs"],
    )
    hits = [hit(
        source={"latest": {"programs": [{"title": "Nursing"}, {"title": "RN"}]}},
        fields={"name": ["A"], "latest.programs": [{"title": ["Nursing"]}, {"title": ["RN"]}]},
    )]

    # when
    rows = reshape(hits, 1, req)

    # then
    assert rows == [{"name": "A", "latest.programs.title": ["Nursing", "RN"]}]


# ----------------------
# PROJECTION_NESTED
# ----------------------
def test_projection_nested_rebuilds_children_and_deduplicates():
    # given
    req = QueryRequest(
        fields=["name", "latest.programs.title", "latest.programs.code", "age"],
        nested=PROGRAMS,
        nested_paths=["latest.programs"],
    )
    hits = [hit(
        fields={"name": ["A"], "latest.programs.title": ["Nursing"]},
        inner_hits=inner(
            "latest.programs",
            {"code": "1312", "title": "Nursing", "degree": "bachelor"},
        ),
    )]

    # when
    rows = reshape(hits, 1, req)

    # then
    assert rows == [{
        "name": "A",
        "latest.programs": [{"title": "Nursing", "code": "1312"}],
        "age": None,
    }]
    assert "latest.programs.title" not in rows[0]
    assert "latest.programs.code" not in rows[0]


def test_projection_nested_with_keys_nested():
    req = QueryRequest(
        fields=["name", "latest.programs.title"],
        nested=PROGRAMS,
        nested_paths=["latest.programs"],
        keys_nested=True,
    )
    hits = [hit(
        fields={"name": ["A"]},
        inner_hits=inner("latest.programs", {"title": "Nursing"}, {"title": "RN"}),
    )]

    rows = reshape(hits, 2, req)

    assert rows == [{
        "name": "A",
        "latest": {"programs": [{"title": "Nursing"}, {"title": "RN"}]},
    }]


def test_projection_nested_without_requested_leaves_adds_nothing():
    req = QueryRequest(fields=["name"], nested=PROGRAMS)
    hits = [hit(fields={"name": ["A"]}, inner_hits=inner("latest.programs", {"title": "Nursing"}))]
    assert reshape(hits, 1, req) == [{"name": "A"}]


def test_empty_hits():
    assert reshape([], 0, QueryRequest(fields=["name"])) == []


def test_projection_nested_path_itself_returns_whole_children():
    """nested 경로 자체를 요청하면 inner hit 의 _source 전체가 자식이 된다"""
    # given: _source 는 꺼져 있고 자식은 inner_hits 로만 온다
    req = QueryRequest(
        fields=["name", "latest.programs"],
        nested=PROGRAMS,
        nested_paths=["latest.programs"],
    )
    hits = [hit(
        fields={"name": ["Paul"], "latest.programs": [{"code": ["1312"], "title": ["Nursing"]}]},
        inner_hits=inner(
            "latest.programs",
            {"code": "1312", "title": "Nursing"},
            {"code": "1312", "title": "RN"},
        ),
    )]

    # when
    rows = reshape(hits, 1, req)

    # then
    assert rows == [{
        "name": "Paul",
        "latest.programs": [
            {"code": "1312", "title": "Nursing"},
            {"code": "1312", "title": "RN"},
        ],
    }]


def test_no_projection_nested_keeps_every_inner_hit():
    children = [{"code": "1312", "title": f"program {i}"} for i in range(5)]
    hits = [hit(source={"name": "A"}, inner_hits=inner("latest.programs", *children))]

    rows = reshape(hits, 1, QueryRequest(nested=PROGRAMS))

    assert rows == children


def test_projection_object_path_recovered_from_source():
    req = QueryRequest(fields=["name", "2012"], source_fields=["2012"])
    hits = [hit(source={"2012": {"sat_average": 1200.5}}, fields={"name": ["Lisa"]})]

    rows = reshape(hits, 1, req)

    assert rows == [{"name": "Lisa", "2012": {"sat_average": 1200.5}}]
