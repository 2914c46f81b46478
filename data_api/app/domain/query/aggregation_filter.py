"""
통계(stats) 요청의 집계 결과를 요청한 metric 만 남기도록 거른다.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable


def filter_aggregations(
    aggregations: Dict[str, Dict[str, Any]] | None,
    metrics: Iterable[str] | None = None) -> Dict[str, Dict[str, Any]]:
    """
    Args:
        aggregations: 백엔드 응답의 aggregations (필드명 → metric → 값)
        metrics: 남길 metric 이름들. 비어 있거나 None 이면 전부 통과
    Returns:
        Dict[str, Dict[str, Any]]: 필드별로 걸러낸 집계. 원본은 건드리지 않는다.
    """
    allow = set(metrics or [])
    filtered: Dict[str, Dict[str, Any]] = {}
    for field, values in (aggregations or {}).items():
        if allow:
            filtered[field] = {k: v for k, v in values.items() if k in allow}
        else:
            filtered[field] = dict(values)
    return filtered
