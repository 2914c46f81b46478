"""
도메인 모델 정의.

- FieldType/FieldSpec: 필드 사전(data.yaml)이 알려주는 논리 필드 → 백엔드 경로/타입
- QueryOptions: 호출자가 넘기는 검색 옵션(페이지, 정렬, 필드 projection, 지오, 통계)
- NestedFilter/QueryRequest: 검색어/옵션을 번역한 구조화 쿼리
- RawDocument/ParsedDocument/ParsedBlock: CSV 임포트 파이프라인의 중간 산출물
- IndexResult/AliasResult/ReindexStatus: 색인/재색인 결과 요약

Pydantic v2 기반 모델이라 검증/직렬화가 용이합니다.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator


JSONDict = dict[str, Any]

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# index.max_inner_result_window 와 맞춘다. OpenSearch 기본 inner_hits size 는 3
MAX_INNER_HITS = 100


class FieldType(str, Enum):
    """data.yaml 에 쓰는 필드 타입."""
    string = "string"
    literal = "literal"
    name = "name"
    lowercase_name = "lowercase_name"
    autocomplete = "autocomplete"
    integer = "integer"
    float = "float"
    boolean = "boolean"
    lat_lon = "lat_lon"

    @property
    def is_numeric(self) -> bool:
        return self in (FieldType.integer, FieldType.float)

    @property
    def is_exact(self) -> bool:
        """term/terms 로 비교하는 타입(분석되지 않는 값)."""
        return self in (
            FieldType.literal, FieldType.name, FieldType.lowercase_name,
            FieldType.integer, FieldType.float, FieldType.boolean,
        )


class FieldSpec(BaseModel):
    """사전 조회 결과. path는 점(.)으로 구분된 백엔드 필드 경로."""
    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    type: FieldType = FieldType.string
    nested_path: str | None = Field(None, description="이 필드를 감싸는 nested 문서 경로")
    source: str | None = Field(None, description="CSV 원본 컬럼명")

    @property
    def nested(self) -> bool:
        return self.nested_path is not None


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


class QueryOptions(BaseModel):
    """검색 옵션. 인식하지 못한 키는 무시한다."""
    model_config = ConfigDict(extra="ignore")

    fields: list[str] | None = None
    page: int = 1
    per_page: int = DEFAULT_PAGE_SIZE
    sort: str | None = None
    distance: str | None = None
    zip: str | None = None
    lat: float | None = None
    lon: float | None = None
    command: str | None = None
    metrics: list[str] | None = None
    keys_nested: bool = False
    endpoint: str | None = None
    index: str | None = None
    debug: bool = False

    @field_validator("fields", "metrics", mode="before")
    @classmethod
    def _split_lists(cls, value: Any) -> Any:
        return _split_csv(value)

    @field_validator("zip", mode="before")
    @classmethod
    def _zip_as_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def is_stats(self) -> bool:
        return self.command == "stats"


class NestedFilter(BaseModel):
    """nested 문서 경로 하나에 한정된 조건."""
    path: str
    must: list[JSONDict] = Field(default_factory=list, description="nested 필드 조건(term/terms/match)")


class QueryRequest(BaseModel):
    """
    백엔드에 보낼 구조화 쿼리.
    to_body()가 OpenSearch 검색 바디로 렌더링한다.
    """
    filters: list[JSONDict] = Field(default_factory=list)
    must_not: list[JSONDict] = Field(default_factory=list)
    nested: NestedFilter | None = None
    fields: list[str] | None = None
    source_fields: list[str] = Field(default_factory=list, description="_source 로만 돌아오는 필드(nested 출신, 객체 경로)")
    nested_paths: list[str] = Field(default_factory=list, description="요청 필드가 속한 nested 경로들")
    from_: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort: list[JSONDict] = Field(default_factory=list)
    aggs: JSONDict = Field(default_factory=dict)
    stats: bool = False
    keys_nested: bool = False
    inner_hits_size: int = MAX_INNER_HITS

    @property
    def page(self) -> int:
        return self.from_ // self.size + 1

    def nested_clause(self) -> JSONDict | None:
        if self.nested is None:
            return None
        return {
            "nested": {
                "path": self.nested.path,
                "query": {"bool": {"must": list(self.nested.must)}},
                "inner_hits": {"size": self.inner_hits_size},
            }
        }

    def to_body(self) -> JSONDict:
        filters = list(self.filters)
        nested = self.nested_clause()
        if nested is not None:
            filters.append(nested)

        bool_query: JSONDict = {"filter": filters}
        if self.must_not:
            bool_query["must_not"] = list(self.must_not)

        body: JSONDict = {"query": {"bool": bool_query}}
        if self.stats:
            # 통계 요청은 hit 없이 집계만 받는다
            body["size"] = 0
            body["aggs"] = self.aggs
            return body

        body["from"] = self.from_
        body["size"] = self.size
        if self.fields is not None:
            body["fields"] = list(self.fields)
            body["_source"] = list(self.source_fields) if self.source_fields else False
        if self.sort:
            body["sort"] = list(self.sort)
        return body


class FileType(str, Enum):
    """원문 콘텐츠 타입."""
    csv = "csv"


class SourceRef(BaseModel):
    """원본 리소스 식별자/메타데이터."""
    uri: str = Field(..., description="원본 식별자(file:// 또는 로컬 경로)")
    file_type: FileType | None = Field(None, description="확장자로 추정한 파일 타입")


class RawDocument(BaseModel):
    """페치 단계의 결과(텍스트 원문)."""
    source: SourceRef
    body_text: str | None = Field(None, description="디코딩한 CSV 본문")
    encoding: str | None = Field(None, description="디코딩에 사용한 문자셋")
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ParsedBlock(BaseModel):
    """CSV 한 행."""
    type: str = Field("row", description="블록 유형")
    meta: dict[str, str | None] = Field(default_factory=dict, description="컬럼명 → 값")


class ParsedDocument(BaseModel):
    """파싱된 CSV 파일(행 블록 목록)."""
    source: SourceRef
    blocks: list[ParsedBlock] = Field(default_factory=list)
    meta: JSONDict = Field(default_factory=dict)


class IndexErrorItem(BaseModel):
    """인덱싱 실패 항목 요약."""
    doc_id: str
    reason: str


class IndexResult(BaseModel):
    """인덱싱 실행 결과."""
    indexed: int = Field(..., ge=0)
    errors: list[IndexErrorItem] = Field(default_factory=list)


class AliasResult(BaseModel):
    """alias가 가리키는 인덱스."""
    index_name: list[str] = Field(default_factory=list)
    alias_name: str


class ReindexState(str, Enum):
    idle = "idle"
    running = "running"
    cancelled = "cancelled"


class ReindexStatus(BaseModel):
    """재색인 감독자 상태 스냅샷."""
    state: ReindexState = ReindexState.idle
    generation: int = 0
    completed_generation: int | None = None
    last_result: JSONDict | None = None
    last_error: str | None = None
