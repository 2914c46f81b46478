"""
구조화된 검색 바디를 OpenSearch에 보내는 SearchPort 구현체.
"""

from __future__ import annotations

import logging
from typing import Any, Dict
from opensearchpy import OpenSearch
from opensearchpy.exceptions import ConnectionError, NotFoundError, TransportError

from data_api.app.domain.ports import SearchPort
from data_api.app.platform.exceptions import BackendError, ResourceNotFound

logger = logging.getLogger(__name__)

class OpenSearchSearcher(SearchPort):

    def __init__(self, client: OpenSearch, request_timeout: int = 300) -> None:
        self.client = client
        self.request_timeout = request_timeout

    def search(self, index_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Opensearch에 검색을 수행하여 원본 응답을 그대로 반환한다.
        재시도하지 않는다.

        Args:
            index_name (str): 검색할 인덱스(alias) 이름
            body (Dict[str, Any]): QueryRequest.to_body() 결과
        Returns:
            Dict[str, Any]: 검색 결과(hits, aggregations, took, timed_out)
        """
        try:
            return self.client.search(index=index_name, body=body, request_timeout=self.request_timeout)
        except NotFoundError:
            raise ResourceNotFound(index_name, f"index not found: {index_name}")
        except ConnectionError as e:
            logger.error("opensearch unreachable: %s", e, extra={"index": index_name})
            raise BackendError(index_name, f"connection failed: {e}")
        except TransportError as e:
            logger.error("opensearch error: %s", e, extra={"index": index_name})
            raise BackendError(index_name, f"{e.status_code} {e.error}")
