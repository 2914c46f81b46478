"""
검색어(terms)와 옵션을 OpenSearch 구조화 쿼리(QueryRequest)로 번역한다.

- 순수 함수. I/O 없음(우편번호 → 좌표 변환은 호출 전에 끝나 있어야 한다)
- nested 문서 경로 아래의 필드는 단일 nested 슬롯으로 모은다
- 쉼표 값은 "any-of", 숫자 타입 값은 숫자로 비교
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Tuple

from data_api.app.domain.models import (
    FieldSpec,
    FieldType,
    JSONDict,
    MAX_PAGE_SIZE,
    NestedFilter,
    QueryOptions,
    QueryRequest,
)
from data_api.app.domain.ports import DictionaryPort
from data_api.app.domain.utils import convert_value, split_values, unique_in_order
from data_api.app.platform.exceptions import UnsupportedQuery

logger = logging.getLogger(__name__)

TERM_OPERATORS = ("range", "not", "exists")
LOCATION_FIELD = "location"
RANGE_RE = re.compile(r"^(?P<low>.*?)\.\.(?P<high>.*)$")
DISTANCE_RE = re.compile(r"^\d+(\.\d+)?(mi|miles|km|m|yd|ft|in|cm|mm|nmi)?$")


def parse_term_key(key: str) -> Tuple[str, str | None]:
    """
    "population__range" -> ("population", "range")
    "name"              -> ("name", None)
    """
    field, sep, op = key.rpartition("__")
    if sep and op in TERM_OPERATORS and field:
        return field, op
    return key, None


def parse_range(value: str) -> Tuple[str | None, str | None]:
    """ "10..20" -> ("10", "20"), "..20" -> (None, "20"). 형식이 틀리면 ValueError."""
    m = RANGE_RE.match(value.strip())
    if not m or not (m.group("low") or m.group("high")):
        raise ValueError(f"invalid range: {value}")
    return (m.group("low") or None, m.group("high") or None)


def normalize_distance(distance: str) -> str:
    """단위가 없으면 마일."""
    text = str(distance).strip().lower()
    if not DISTANCE_RE.match(text):
        raise ValueError(f"invalid distance: {distance}")
    if text[-1].isdigit():
        return f"{text}mi"
    if text.endswith("miles"):
        return text[: -len("miles")] + "mi"
    return text


def _typed(spec: FieldSpec, value: str) -> Any:
    if spec.type == FieldType.lowercase_name:
        return value.lower()
    return convert_value(value, spec.type)


def value_clause(spec: FieldSpec, value: Any) -> JSONDict:
    """단일 값은 term/match, 쉼표 값은 terms 또는 match 들의 should."""
    values = split_values(value) or [str(value)]
    typed = [_typed(spec, v) for v in values]

    if spec.type.is_exact:
        if len(typed) > 1:
            return {"terms": {spec.path: typed}}
        return {"term": {spec.path: typed[0]}}

    if len(typed) > 1:
        return {
            "bool": {
                "should": [{"match": {spec.path: v}} for v in typed],
                "minimum_should_match": 1,
            }
        }
    return {"match": {spec.path: typed[0]}}


def range_clause(spec: FieldSpec, value: Any) -> JSONDict:
    """ "10..20,50.." 처럼 여러 구간이면 any-of."""
    clauses = []
    for part in split_values(value):
        low, high = parse_range(part)
        bounds: Dict[str, Any] = {}
        if low is not None:
            bounds["gte"] = convert_value(low, spec.type)
        if high is not None:
            bounds["lte"] = convert_value(high, spec.type)
        clauses.append({"range": {spec.path: bounds}})
    if len(clauses) == 1:
        return clauses[0]
    return {"bool": {"should": clauses, "minimum_should_match": 1}}


def _is_truthy(value: Any) -> bool:
    return str(value).strip().lower() in ("true", "t", "yes", "y", "1")


def sort_clauses(sort: str | None, dictionary: DictionaryPort) -> List[JSONDict]:
    """ "population:desc,name" -> [{"population": {"order": "desc"}}, {"name": {"order": "asc"}}]"""
    clauses: List[JSONDict] = []
    for item in split_values(sort or ""):
        name, _, direction = item.partition(":")
        spec = dictionary.resolve(name.strip())
        path = spec.path
        # 분석되는 text 필드는 keyword 서브필드로 정렬
        if spec.type in (FieldType.string, FieldType.autocomplete):
            path = f"{path}.keyword"
        clauses.append({path: {"order": (direction.strip() or "asc").lower()}})
    return clauses


def build(terms: Mapping[str, Any], options: QueryOptions, dictionary: DictionaryPort) -> QueryRequest:
    """
    검색어/옵션 → QueryRequest.
    Args:
        terms: 정규화된 str 키 → 값(쉼표는 any-of)
        options: QueryOptions (zip은 이미 lat/lon으로 풀려 있어야 한다)
        dictionary: 필드 사전
    Returns:
        QueryRequest
    Raises:
        UnsupportedQuery: 검색어가 서로 다른 nested 경로 두 곳을 가리킬 때
    """
    filters: List[JSONDict] = []
    must_not: List[JSONDict] = []
    nested: NestedFilter | None = None

    for key, value in terms.items():
        field, op = parse_term_key(key)
        spec = dictionary.resolve(field)

        if op == "range":
            filters.append(range_clause(spec, value))
        elif op == "not":
            must_not.append(value_clause(spec, value))
        elif op == "exists":
            clause = {"exists": {"field": spec.path}}
            (filters if _is_truthy(value) else must_not).append(clause)
        elif spec.nested:
            if nested is None:
                nested = NestedFilter(path=spec.nested_path)
            elif nested.path != spec.nested_path:
                raise UnsupportedQuery([nested.path, spec.nested_path])
            nested.must.append(value_clause(spec, value))
        else:
            filters.append(value_clause(spec, value))

    # 지오 필터: distance 와 기준점이 모두 있어야 적용
    if options.distance and options.lat is not None and options.lon is not None:
        location = dictionary.resolve(LOCATION_FIELD)
        filters.append({
            "geo_distance": {
                "distance": normalize_distance(options.distance),
                location.path: {"lat": options.lat, "lon": options.lon},
            }
        })

    fields = None
    source_fields: List[str] = []
    nested_paths: List[str] = []
    if options.fields:
        specs = [dictionary.resolve(name) for name in options.fields]
        fields = unique_in_order(spec.path for spec in specs)
        nested_paths = unique_in_order(spec.nested_path for spec in specs if spec.nested)
        # nested 필터가 잡지 않는 nested 출신 필드와 객체 경로("2012")는 _source 로만 돌아온다
        source_fields = unique_in_order(
            spec.path for spec in specs
            if (spec.nested and (nested is None or spec.nested_path != nested.path))
            or (not spec.nested and dictionary.is_object_path(spec.name))
        )

    size = min(max(options.per_page, 1), MAX_PAGE_SIZE)
    if options.per_page > MAX_PAGE_SIZE:
        logger.info("per_page %s clamped to %s", options.per_page, MAX_PAGE_SIZE)
    page = max(options.page, 1)

    aggs: JSONDict = {}
    if options.is_stats:
        for name in options.fields or []:
            spec = dictionary.resolve(name)
            if spec.type.is_numeric:
                aggs[spec.name] = {"extended_stats": {"field": spec.path}}

    return QueryRequest(
        filters=filters,
        must_not=must_not,
        nested=nested,
        fields=fields,
        source_fields=source_fields,
        nested_paths=nested_paths,
        from_=(page - 1) * size,
        size=size,
        sort=sort_clauses(options.sort, dictionary),
        aggs=aggs,
        stats=options.is_stats,
        keys_nested=options.keys_nested,
    )
