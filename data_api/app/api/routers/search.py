from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from data_api.app.api.deps import get_search_service
from data_api.app.domain.services.search_service import SearchService
from typing import Any, Dict, Iterable, Tuple
import logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["search"])

# 밑줄 없이도 옵션으로 취급하는 쿼리 파라미터
PLAIN_OPTIONS = {"keys_nested", "debug"}

class ApiResponse(BaseModel):
    """
    검색 응답
    """
    success: bool = Field(..., description="성공 여부")
    message: str = Field(..., description="결과 메시지")
    data: Any = Field(
        ...,
        description="결과 문서(metadata, results, aggregations) 또는 endpoint 목록"
    )


def split_search_params(items: Iterable[Tuple[str, str]]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    쿼리 파라미터를 (검색어, 옵션)으로 나눈다.
    - `_fields=name,age` 처럼 밑줄로 시작하면 옵션(밑줄 제거)
    - keys_nested, debug 도 옵션
    - 나머지는 검색어. 같은 키가 반복되면 쉼표로 이어 any-of 로 만든다
    """
    terms: Dict[str, Any] = {}
    options: Dict[str, Any] = {}
    for key, value in items:
        if key.startswith("_"):
            options[key[1:]] = value
        elif key in PLAIN_OPTIONS:
            options[key] = value
        elif key in terms:
            terms[key] = f"{terms[key]},{value}"
        else:
            terms[key] = value
    return terms, options


RESULT_EXAMPLE = {
    "success": True,
    "message": "검색 성공",
    "data": {
        "metadata": {"total": 3, "page": 1, "per_page": 20},
        "results": [
            {"name": "Paul", "age": 14, "city": "Chicago"},
            {"name": "Marilyn", "age": 70, "city": "San Francisco"},
            {"name": "Paul", "age": 44, "city": "Rochester"},
        ],
    },
}

STATS_EXAMPLE = {
    "success": True,
    "message": "통계 성공",
    "data": {
        "metadata": {"total": 2, "page": 1, "per_page": 20},
        "results": [],
        "aggregations": {
            "age": {"max": 70.0, "avg": 42.0},
            "height": {"max": 142.0, "avg": 72.0},
        },
    },
}


@router.get(
    "/endpoints",
    summary="endpoint 목록",
    description="data.yaml 에 정의된 검색 endpoint 이름 목록을 반환합니다.",
    operation_id="listEndpoints",
    status_code=200,
    response_model=ApiResponse,
)
def endpoints(svc: SearchService = Depends(get_search_service)):
    return ApiResponse(success=True, message="조회 성공", data={"endpoints": svc.endpoints()})


@router.get(
    "/{endpoint}",
    summary="문서 검색",
    description=(
        "필드=값 형태의 쿼리 파라미터로 문서를 검색합니다. 쉼표로 구분한 값은 any-of 로 매칭합니다. "
        "`field__range=10..20`, `field__not=x`, `field__exists=true` 를 지원합니다. "
        "옵션은 밑줄로 시작합니다: `_fields`, `_page`, `_per_page`, `_sort`, `_zip`, `_distance`, "
        "`_lat`, `_lon`. `keys_nested=true` 이면 점(.) 키를 중첩 구조로 돌려줍니다."
    ),
    operation_id="searchDocuments",
    status_code=200,
    response_model=ApiResponse,
    responses={
        200: {
            "description": "검색 성공",
            "content": {"application/json": {"examples": {"basic": {
                "summary": "name=Paul,Marilyn&_fields=name,age,city",
                "value": RESULT_EXAMPLE,
            }}}},
        },
        400: {"description": "잘못된 검색어/옵션"},
        404: {"description": "알 수 없는 endpoint"},
        502: {"description": "검색 백엔드 오류"},
    },
)
def search(endpoint: str, request: Request, svc: SearchService = Depends(get_search_service)):
    terms, options = split_search_params(request.query_params.multi_items())
    options["endpoint"] = endpoint
    logger.info("SearchRequest: endpoint=%s terms=%s options=%s", endpoint, terms, options)
    result = svc.search(terms, options)
    return ApiResponse(success=True, message="검색 성공", data=result)


@router.get(
    "/{endpoint}/stats",
    summary="필드 통계",
    description=(
        "검색어에 매칭되는 문서들의 숫자 필드 통계를 반환합니다. `_fields` 는 필수이며 "
        "`_metrics=max,avg` 로 돌려받을 metric 을 제한할 수 있습니다."
    ),
    operation_id="statsDocuments",
    status_code=200,
    response_model=ApiResponse,
    responses={
        200: {
            "description": "통계 성공",
            "content": {"application/json": {"examples": {"basic": {
                "summary": "_fields=age,height&_metrics=max,avg",
                "value": STATS_EXAMPLE,
            }}}},
        },
        400: {"description": "잘못된 검색어/옵션"},
        404: {"description": "알 수 없는 endpoint"},
    },
)
def stats(endpoint: str, request: Request, svc: SearchService = Depends(get_search_service)):
    terms, options = split_search_params(request.query_params.multi_items())
    options.update({"endpoint": endpoint, "command": "stats"})
    logger.info("StatsRequest: endpoint=%s terms=%s options=%s", endpoint, terms, options)
    result = svc.search(terms, options)
    return ApiResponse(success=True, message="통계 성공", data=result)
