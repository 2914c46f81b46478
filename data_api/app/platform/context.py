"""
앱 단위 검색 컨텍스트.

OpenSearch 클라이언트 + 필드 사전 + 우편번호 테이블 + 재색인 감독자를 한 곳에 묶는다.
main.py lifespan 이 open()/close() 로 수명을 관리하고 app.state.context 에 둔다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlparse

from opensearchpy import OpenSearch

from data_api.app.adapters.dictionaries.yaml_dictionary import FieldDictionary
from data_api.app.adapters.fetchers.file_fetcher import FileFetcher
from data_api.app.adapters.geo.zipcode_locator import ZipcodeLocator
from data_api.app.adapters.indexers.opensearch_indexer import OpenSearchIndexer
from data_api.app.adapters.listeners.file_listener import FileListener
from data_api.app.adapters.parsers.csv_parser import CsvParser
from data_api.app.adapters.searchers.opensearch_searcher import OpenSearchSearcher
from data_api.app.adapters.transformers.document_transformer import DocumentTransformer
from data_api.app.domain.services.index_service import IndexService
from data_api.app.domain.services.reindex_supervisor import ReindexSupervisor
from data_api.app.domain.services.search_service import SearchService
from data_api.app.platform.config import Settings

logger = logging.getLogger(__name__)


def create_client(settings: Settings) -> OpenSearch:
    u = urlparse(settings.OPENSEARCH_HOST)
    return OpenSearch(
        hosts=[{"host": u.hostname, "port": u.port or 9200, "scheme": u.scheme or "http"}],
        verify_certs=False,
        timeout=settings.OPENSEARCH_TIMEOUT,
    )


@dataclass
class AppContext:
    client: OpenSearch
    dictionary: FieldDictionary
    search_service: SearchService
    supervisor: ReindexSupervisor

    @classmethod
    def open(cls, settings: Settings, client: OpenSearch | None = None) -> "AppContext":
        client = client or create_client(settings)
        dictionary = FieldDictionary.load(
            settings.DATA_PATH, settings.INDEX_SCOPE, allow_missing=settings.ALLOW_MISSING_YML)
        locator = ZipcodeLocator(settings.ZIPCODE_FILE)

        search_service = SearchService(
            OpenSearchSearcher(client, request_timeout=settings.OPENSEARCH_TIMEOUT),
            dictionary,
            locator,
        )
        index_service = IndexService(
            listener=FileListener(),
            fetcher=FileFetcher(),
            parser=CsvParser(),
            transformer=DocumentTransformer(dictionary),
            indexer=OpenSearchIndexer(
                client,
                dictionary,
                batch_size=settings.IMPORT_BATCH_SIZE,
                request_timeout=settings.OPENSEARCH_INDEX_TIMEOUT,
            ),
            files=dictionary.files,
            data_path=settings.DATA_PATH,
        )
        logger.info("search context ready: index=%s", dictionary.scoped_index_name())
        return cls(
            client=client,
            dictionary=dictionary,
            search_service=search_service,
            supervisor=ReindexSupervisor(index_service),
        )

    def close(self) -> None:
        self.supervisor.shutdown()
        self.client.close()
