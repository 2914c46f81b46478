"""
IndexService
==============

CSV 임포트 파이프라인 오케스트레이터.

Flow:
    Listener → Fetcher → Parser → Transformer → Indexer(create → bulk) → publish(alias)

- 도메인은 **Port(인터페이스)** 에만 의존합니다. (DIP)
- 구현체는 adapters 레이어에서 주입(의존성 주입; DI)합니다.
- build_generation 과 publish 를 나눠 두어, 재색인 감독자가 "아직 최신 세대인지"를
  확인한 뒤에만 alias 를 옮길 수 있다.

예시:
    svc = IndexService(listener, fetcher, parser, transformer, indexer, ["cities.csv"], "data/cities")
    built = svc.build_generation(3, threading.Event())
    svc.publish(built["index_name"])
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterator

from data_api.app.domain.ports import (
    FetchPort, ParsePort, TransformPort, IndexPort, ListenPort
)
from data_api.app.domain.models import (
    ParsedDocument,
    RawDocument,
    IndexResult,
    AliasResult,
)

logger = logging.getLogger(__name__)


class IndexService:
    """data.yaml 이 가리키는 CSV 들을 새 세대 인덱스로 적재하는 유스케이스 서비스."""

    def __init__(
        self,
        listener: ListenPort,
        fetcher: FetchPort,
        parser: ParsePort,
        transformer: TransformPort,
        indexer: IndexPort,
        files: list[str] | None = None,
        data_path: str = "data_api/resources/sample-data"
    ) -> None:
        """
        인덱스 서비스 초기화.
        Args:
            listener: ListenPort      : 임포트 파일 리스트 조회
            fetcher: FetchPort        : 파일 읽기
            parser: ParsePort         : CSV 파싱
            transformer: TransformPort: 행 → 색인 문서
            indexer: IndexPort        : 색인/alias
            files: list[str]          : data.yaml 의 files 목록(없으면 *.csv 전부)
            data_path: str            : data.yaml 과 CSV 가 있는 디렉터리
        """
        self._listener = listener
        self._fetcher = fetcher
        self._parser = parser
        self._transformer = transformer
        self._indexer = indexer
        self._files = files
        self._data_path = data_path

    # ================= public API =================
    def build_generation(self, generation: int, cancel_event: threading.Event) -> Dict[str, Any]:
        """
        새 세대 인덱스를 만들고 모든 CSV 를 적재한다. alias 는 건드리지 않는다.
        취소되면 만들던 인덱스를 지운다.

        Args:
            generation: 세대 번호
            cancel_event: 협조적 취소 신호
        Returns:
            Dict[str, Any]: {"index_name", "indexed", "errors", "files", "cancelled"}
        """
        files = self._listener.listen(self._data_path, extension="csv", names=self._files)
        logger.info("service.build_generation: generation=%s files=%s", generation, files)

        index_name = self._indexer.create_index(generation)
        try:
            result: IndexResult = self._indexer.index(
                index_name, self._documents(files, cancel_event), cancel_event=cancel_event)
        except Exception:
            self._indexer.drop_index(index_name)
            raise

        cancelled = cancel_event.is_set()
        if cancelled:
            self._indexer.drop_index(index_name)

        return {
            "index_name": index_name,
            "generation": generation,
            "files": len(files),
            "cancelled": cancelled,
        } | result.model_dump()

    def publish(self, index_name: str) -> Dict[str, Any]:
        """완료된 세대로 alias 를 옮기고 더 오래된 세대를 지운다."""
        logger.info("service.publish: index=%s", index_name)
        alias: AliasResult = self._indexer.rotate_alias(index_name, delete_old=True)
        return alias.model_dump()

    # ================= internal helpers =================
    def _documents(self, files: list[str], cancel_event: threading.Event) -> Iterator[Dict[str, Any]]:
        for resource_file in files:
            if cancel_event.is_set():
                return
            raw: RawDocument = self._fetcher.fetch(resource_file)
            parsed: ParsedDocument = self._parser.parse(raw)
            logger.info("parsed %s rows=%s", resource_file, parsed.meta.get("rows"))
            yield from self._transformer.transform(parsed)
