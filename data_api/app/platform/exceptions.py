from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """도메인/유즈케이스 공통 베이스 예외"""
    pass

class ResourceNotFound(DomainError):
    def __init__(self, resource: str, detail: str | None = None):
        super().__init__(detail or f"{resource} not found")
        self.resource = resource

class InvalidInput(DomainError):
    """
    검색어/옵션 검증 실패.
    details에는 ErrorChecker가 모은 개별 오류 항목이 담긴다.
    """
    def __init__(self, message: str, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.details = details or []

class UnsupportedQuery(InvalidInput):
    """서로 다른 nested 경로 두 곳 이상을 한 번에 조회하는 경우."""
    def __init__(self, paths: list[str]):
        super().__init__(
            f"terms span more than one nested path: {sorted(paths)}",
            details=[{"error": "nested_paths", "message": "only one nested path per query", "input": sorted(paths)}],
        )
        self.paths = paths

class UnknownEndpoint(DomainError):
    def __init__(self, endpoint: str, available: list[str]):
        super().__init__(
            f"no configuration found for '{endpoint}', available endpoints: {available}")
        self.endpoint = endpoint
        self.available = available

class BackendError(DomainError):
    """검색 백엔드(OpenSearch) 전송/실행 실패. 코어에서 재시도하지 않는다."""
    def __init__(self, index_name: str, reason: str):
        super().__init__(f"search failed on {index_name}: {reason}")
        self.index_name = index_name

class InvalidDictionary(DomainError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"invalid dictionary {path}: {reason}")
        self.path = path

class IndexingFailed(DomainError):
    def __init__(self, index_name: str, reason: str):
        super().__init__(f"Indexing failed for {index_name}: {reason}")
        self.index_name = index_name
