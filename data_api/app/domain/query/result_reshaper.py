"""
OpenSearch hit 목록을 호출자용 결과 행(row)으로 바꾼다.

(nested 필터 유무) x (fields projection 유무) 네 가지 경우는 실제로 서로 다른 모양을
만들어야 하므로 ReshapeCase 로 명시적으로 나눈다.

| case                      | row                                                      |
|---------------------------|----------------------------------------------------------|
| NO_PROJECTION_NO_NESTED   | hit._source 그대로                                        |
| NO_PROJECTION_NESTED      | 매칭된 nested 자식마다 한 행(inner hit 의 _source 전체)      |
| PROJECTION_NO_NESTED      | fields 값 + _source 보충 + 누락 필드 None                  |
| PROJECTION_NESTED         | 위 + inner_hits 에서 복원한 자식 객체(요청 leaf 또는 전체)    |

fields 를 요청하지 않은 경우는 _source 를 그대로 쓰므로 이미 중첩 구조이고,
요청한 경우는 keys_nested 가 True 일 때만 점(.) 키를 중첩 구조로 바꾼다.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List

from data_api.app.domain.models import JSONDict, QueryRequest
from data_api.app.domain.utils import collapse, dig, strip_prefix, unflatten

logger = logging.getLogger(__name__)


class ReshapeCase(str, Enum):
    NO_PROJECTION_NO_NESTED = "no_projection_no_nested"
    NO_PROJECTION_NESTED = "no_projection_nested"
    PROJECTION_NO_NESTED = "projection_no_nested"
    PROJECTION_NESTED = "projection_nested"


def classify(request: QueryRequest) -> ReshapeCase:
    projection = request.fields is not None
    nested = request.nested is not None
    if projection and nested:
        return ReshapeCase.PROJECTION_NESTED
    if projection:
        return ReshapeCase.PROJECTION_NO_NESTED
    if nested:
        return ReshapeCase.NO_PROJECTION_NESTED
    return ReshapeCase.NO_PROJECTION_NO_NESTED


# ================= 경우별 변환 =================
def _source_rows(hits: List[JSONDict], request: QueryRequest) -> List[JSONDict]:
    return [hit.get("_source", {}) for hit in hits]


def _inner_hit_rows(hits: List[JSONDict], request: QueryRequest) -> List[JSONDict]:
    rows = []
    for hit in hits:
        for inner in (hit.get("inner_hits") or {}).values():
            for child in inner.get("hits", {}).get("hits", []):
                rows.append(child.get("_source", {}))
    return rows


def _found_fields(hit: JSONDict, request: QueryRequest) -> Dict[str, Any]:
    """
    hit.fields 를 스칼라로 풀어 둔다. _source 와 합치기 전에 해야 모양이 어긋나지 않는다.
    nested 경로 자체를 키로 돌아오는 객체 배열은 _source/inner_hits 쪽에서 다시 채우므로 뺀다.
    """
    found = {}
    for key, values in (hit.get("fields") or {}).items():
        if key in request.nested_paths:
            continue
        found[key] = collapse(values)
    return found


def _fill_missing(row: Dict[str, Any], hit: JSONDict, request: QueryRequest, consumed: set) -> None:
    """요청했지만 fields 에 없는 필드는 _source 에서 찾고, 그래도 없으면 None."""
    source = hit.get("_source") or {}
    for field in request.fields or []:
        if field in row or field in consumed:
            continue
        row[field] = dig(source, field)


def _finish(row: Dict[str, Any], request: QueryRequest) -> Dict[str, Any]:
    return unflatten(row) if request.keys_nested else row


def _projection_rows(hits: List[JSONDict], request: QueryRequest) -> List[JSONDict]:
    rows = []
    for hit in hits:
        row = _found_fields(hit, request)
        _fill_missing(row, hit, request, consumed=set())
        rows.append(_finish(row, request))
    return rows


def _projection_nested_rows(hits: List[JSONDict], request: QueryRequest) -> List[JSONDict]:
    rows = []
    for hit in hits:
        inner = hit.get("inner_hits") or {}
        consumed: set = set()
        row: Dict[str, Any] = {}

        for key, value in _found_fields(hit, request).items():
            if any(key == path or strip_prefix(key, path) is not None for path in inner):
                consumed.add(key)
                continue
            row[key] = value

        for path, result in inner.items():
            # "latest.programs.title" 은 leaf "title" 만, "latest.programs" 자체는 자식 _source 전체
            whole = False
            leaves = []
            for field in request.fields or []:
                if field == path:
                    whole = True
                    consumed.add(field)
                    continue
                leaf = strip_prefix(field, path)
                if leaf is not None:
                    leaves.append(leaf)
                    consumed.add(field)
            if not leaves and not whole:
                continue

            children = []
            for child in result.get("hits", {}).get("hits", []):
                source = child.get("_source") or {}
                if whole:
                    children.append(dict(source))
                    continue
                item = {leaf: dig(source, leaf) for leaf in leaves}
                children.append(unflatten(item) if request.keys_nested else item)
            row[path] = children

        _fill_missing(row, hit, request, consumed)
        rows.append(_finish(row, request))
    return rows


_HANDLERS: Dict[ReshapeCase, Callable[[List[JSONDict], QueryRequest], List[JSONDict]]] = {
    ReshapeCase.NO_PROJECTION_NO_NESTED: _source_rows,
    ReshapeCase.NO_PROJECTION_NESTED: _inner_hit_rows,
    ReshapeCase.PROJECTION_NO_NESTED: _projection_rows,
    ReshapeCase.PROJECTION_NESTED: _projection_nested_rows,
}


def reshape(hits: List[JSONDict], total: int, request: QueryRequest) -> List[JSONDict]:
    """
    Args:
        hits: 백엔드 응답의 hits.hits
        total: 전체 매칭 수(hits.total)
        request: 이 hit 들을 만든 QueryRequest
    Returns:
        List[JSONDict]: 결과 행 목록
    """
    case = classify(request)
    rows = _HANDLERS[case](hits, request)
    logger.debug("reshape case=%s hits=%d rows=%d total=%d", case.value, len(hits), len(rows), total)
    return rows
