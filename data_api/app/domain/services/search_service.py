"""
SearchService
==============

검색 유스케이스 오케스트레이터.

Flow:
    ErrorChecker → QueryBuilder → Searcher → { ResultReshaper, AggregationFilter } → ResponseAssembler

- 도메인은 **Port(인터페이스)** 에만 의존합니다. (DIP)
- 구현체(OpenSearch 검색기, data.yaml 사전, 우편번호 테이블)는 lifespan/DI로 주입합니다.
- 요청 간에 공유하는 가변 상태가 없어서 여러 요청이 동시에 호출해도 된다.

예시:
    svc = SearchService(searcher, dictionary, locator)
    result = svc.search({"name": "Paul,Marilyn"}, {"fields": "name,age", "per_page": 10})
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from data_api.app.domain.ports import DictionaryPort, GeoLocatorPort, SearchPort
from data_api.app.domain.models import JSONDict, QueryOptions
from data_api.app.domain.query import query_builder, result_reshaper, response_assembler
from data_api.app.domain.query.error_checker import ErrorChecker
from data_api.app.domain.utils import normalize_keys
from data_api.app.platform.exceptions import InvalidInput, UnknownEndpoint

logger = logging.getLogger(__name__)


class SearchService:

    def __init__(
        self,
        searcher: SearchPort,
        dictionary: DictionaryPort,
        locator: GeoLocatorPort | None = None) -> None:
        """
        Args:
            searcher: SearchPort          : 백엔드 검색 호출
            dictionary: DictionaryPort    : 논리 필드 → 백엔드 경로/타입
            locator: GeoLocatorPort       : 우편번호 → 좌표 (없으면 zip 옵션 사용 불가)
        """
        self._searcher = searcher
        self._dictionary = dictionary
        self._locator = locator
        self._checker = ErrorChecker(dictionary, locator)

    # ================= public API =================
    def search(
        self,
        terms: Mapping[Any, Any] | None,
        options: Mapping[Any, Any] | None = None) -> JSONDict:
        """
        검색을 수행하는 메서드.
        Args:
            terms: 검색어(필드 → 값, 쉼표는 any-of)
            options: 검색 옵션(fields, page, per_page, sort, distance, zip, command, metrics ...)
        Returns:
            JSONDict: {"metadata": {...}, "results": [...], ["aggregations": {...}]}
        Raises:
            InvalidInput: 검색어/옵션 검증 실패
            UnsupportedQuery: 두 nested 경로에 걸친 검색어
            UnknownEndpoint: 사전에 없는 endpoint
            BackendError: 백엔드 호출 실패
        """
        # 키 정규화는 여기서 한 번만
        terms = normalize_keys(terms)
        raw_options = normalize_keys(options)

        errors = self._checker.check(terms, raw_options)
        if errors:
            raise InvalidInput("invalid search parameters", details=errors)

        opts = self._resolve_anchor(QueryOptions.model_validate(raw_options))
        index_name = self._index_name(opts)

        request = query_builder.build(terms, opts, self._dictionary)
        body = request.to_body()
        logger.info("service.search: index=%s terms=%s body=%s", index_name, terms, body)

        started = time.perf_counter()
        response = self._searcher.search(index_name, body)
        search_time = time.perf_counter() - started

        hits = response.get("hits") or {}
        total = response_assembler.normalize_total(hits.get("total"))
        took_ms = response.get("took")
        logger.info(
            "search done: %s hits in %.3fs",
            total, search_time,
            extra={"index": index_name, "took_ms": took_ms, "total": total})

        rows = result_reshaper.reshape(hits.get("hits") or [], total, request)
        return response_assembler.assemble(
            total,
            request,
            rows,
            opts,
            aggregations=response.get("aggregations"),
            search_time=search_time,
            took_ms=took_ms,
        )

    def endpoints(self) -> list[str]:
        return self._dictionary.all_endpoints()

    # ================= internal helpers =================
    def _resolve_anchor(self, opts: QueryOptions) -> QueryOptions:
        """zip 을 좌표로 풀어 둔다. QueryBuilder 는 I/O 를 하지 않는다."""
        if opts.zip is None or self._locator is None:
            return opts
        point = self._locator.locate(opts.zip)
        if point is None:
            # ErrorChecker 에서 이미 걸렀어야 한다
            raise InvalidInput(
                f"unknown zip code: {opts.zip}",
                details=[{"error": "zipcode_error", "message": f"unknown zip code: {opts.zip}", "input": opts.zip}])
        return opts.model_copy(update={"lat": point["lat"], "lon": point["lon"]})

    def _index_name(self, opts: QueryOptions) -> str:
        if opts.endpoint:
            name = self._dictionary.index_name_for(opts.endpoint)
            if name is None:
                raise UnknownEndpoint(opts.endpoint, self._dictionary.all_endpoints())
            return name
        if opts.index:
            return self._dictionary.scoped_index_name(opts.index)
        return self._dictionary.scoped_index_name()
