"""
결과 행 + 페이지 메타데이터 (+ 통계 집계)를 최종 결과 문서로 조립한다.
"""

from __future__ import annotations

from typing import Any, Dict, List

from data_api.app.domain.models import JSONDict, QueryOptions, QueryRequest
from data_api.app.domain.query.aggregation_filter import filter_aggregations


def normalize_total(total: Any) -> int:
    """hits.total 은 버전에 따라 int 또는 {"value": n, "relation": "eq"}."""
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


def assemble(
    total: int,
    request: QueryRequest,
    rows: List[JSONDict],
    options: QueryOptions,
    aggregations: Dict[str, Any] | None = None,
    search_time: float | None = None,
    took_ms: int | None = None) -> JSONDict:
    """
    Args:
        total: 전체 매칭 수
        request: 실행한 QueryRequest (from/size)
        rows: Result Reshaper 결과
        options: 호출자 옵션(debug, command, metrics)
        aggregations: 백엔드 응답의 aggregations
        search_time: 검색 왕복 시간(초)
        took_ms: 백엔드가 보고한 실행 시간(ms)
    Returns:
        JSONDict: {"metadata": {...}, "results": [...], ["aggregations": {...}]}
    """
    metadata: JSONDict = {
        "total": total,
        "page": request.page,
        "per_page": request.size,
    }
    if options.debug:
        metadata["search_time"] = search_time
        metadata["ES_took_ms"] = took_ms

    result: JSONDict = {
        "metadata": metadata,
        "results": rows,
    }
    if options.is_stats:
        result["aggregations"] = filter_aggregations(aggregations, options.metrics)
    return result
