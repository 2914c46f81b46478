"""
도메인 포트(추상 인터페이스).

애플리케이션 서비스(유스케이스)는 아래 포트들(추상)에만 의존합니다.
구체 구현은 adapters 레이어에서 제공하고, FastAPI lifespan/DI로 주입합니다.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, List, Protocol

from .models import (
    FieldSpec,
    RawDocument,
    ParsedDocument,
    IndexResult,
    AliasResult,
)


class DictionaryPort(Protocol):
    """논리 필드명 → 백엔드 경로/타입 사전(data.yaml)."""

    def resolve(self, name: str) -> FieldSpec:
        ...

    def has_field(self, name: str) -> bool:
        ...

    def is_object_path(self, name: str) -> bool:
        """leaf 가 아니라 하위 필드를 묶는 경로인지(예: "2012")."""
        ...

    def is_empty(self) -> bool:
        """data.yaml 없이 뜬 경우(필드 검증을 건너뛴다)."""
        ...

    def all_endpoints(self) -> List[str]:
        ...

    def index_name_for(self, endpoint: str) -> str | None:
        """엔드포인트 → 스코프가 적용된 인덱스(alias) 이름. 없으면 None."""
        ...

    def scoped_index_name(self, index: str | None = None) -> str:
        ...

    def nested_paths(self) -> List[str]:
        ...


class GeoLocatorPort(Protocol):
    """우편번호 → 좌표."""

    def locate(self, zipcode: str) -> Dict[str, float] | None:
        ...


class SearchPort(Protocol):
    """
    구조화된 검색 바디를 백엔드에 보내고 원본 응답을 그대로 돌려준다.
    """
    def search(self, index_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        ...


class ListenPort(Protocol):
    """임포트 대상 파일 목록을 가져온다."""
    def listen(self, base_dir: str, extension: str, names: List[str] | None = None) -> List[str]:
        ...


class FetchPort(Protocol):
    """로컬 경로/URI에서 원문을 읽는다."""

    def fetch(self, uri: str) -> RawDocument:
        ...


class ParsePort(Protocol):
    """원문 CSV를 행 블록들로 파싱."""

    def parse(self, raw: RawDocument) -> ParsedDocument:
        ...


class TransformPort(Protocol):
    """파싱된 행을 사전 규칙에 따라 색인 문서로 변환."""

    def transform(self, doc: ParsedDocument) -> Iterable[Dict[str, Any]]:
        ...


class IndexPort(Protocol):
    """
    문서들을 타겟 인덱스에 적재.
    기본은 OpenSearch bulk index를 상정.
    """
    alias_name: str

    def create_index(self, generation: int) -> str:
        ...

    def index(
        self,
        index_name: str,
        docs: Iterable[Dict[str, Any]],
        cancel_event: threading.Event | None = None) -> IndexResult:
        ...

    def rotate_alias(self, index_name: str, delete_old: bool = True) -> AliasResult:
        ...

    def drop_index(self, index_name: str) -> None:
        ...
