from __future__ import annotations

from fastapi import Request

from data_api.app.domain.services.search_service import SearchService
from data_api.app.domain.services.reindex_supervisor import ReindexSupervisor
from data_api.app.platform.context import AppContext


def get_context(request: Request) -> AppContext:
    """
    앱 시작 시 main.py의 lifespan에서 만들어 넣어둔 AppContext를 꺼낸다.
    """
    return request.app.state.context


def get_search_service(request: Request) -> SearchService:
    return get_context(request).search_service


def get_supervisor(request: Request) -> ReindexSupervisor:
    return get_context(request).supervisor
