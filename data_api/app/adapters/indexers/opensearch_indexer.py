"""
변환된 문서들을 OpenSearch에 색인하는 IndexPort 구현체
"""

from __future__ import annotations
import json
import logging
import os
import re
import threading
from itertools import islice
from typing import Any, Iterable, List, Dict
from pathlib import Path
from opensearchpy import OpenSearch, helpers
from opensearchpy.exceptions import OpenSearchException

from data_api.app.adapters.dictionaries.yaml_dictionary import FieldDictionary, LOCATION_FIELD
from data_api.app.domain.ports import IndexPort
from data_api.app.domain.models import (
    FieldType, IndexResult, IndexErrorItem, AliasResult
)
from data_api.app.platform.exceptions import IndexingFailed

logger = logging.getLogger(__name__)

# data.yaml 타입 → OpenSearch 매핑
TYPE_MAPPINGS: Dict[FieldType, Dict[str, Any]] = {
    FieldType.string: {"type": "text", "fields": {"keyword": {"type": "keyword", "ignore_above": 256}}},
    FieldType.literal: {"type": "keyword"},
    FieldType.name: {"type": "keyword"},
    FieldType.lowercase_name: {"type": "keyword", "normalizer": "lowercase_normalizer"},
    FieldType.autocomplete: {
        "type": "text",
        "analyzer": "autocomplete_index",
        "search_analyzer": "autocomplete_search",
        "fields": {"keyword": {"type": "keyword", "ignore_above": 256}},
    },
    FieldType.integer: {"type": "long"},
    FieldType.float: {"type": "double"},
    FieldType.boolean: {"type": "boolean"},
    FieldType.lat_lon: {"type": "geo_point"},
}


def build_mapping(dictionary: FieldDictionary) -> Dict[str, Any]:
    """
    사전 → OpenSearch mappings.properties.
    - 점 경로는 object properties 로 펼친다
    - nested 경로는 nested 타입(include_in_parent) 으로 만든다
    - location.lat/location.lon 은 location(geo_point) 에 흡수된다
    """
    properties: Dict[str, Any] = {}

    def node_for(path: str) -> Dict[str, Any]:
        # path 까지의 object 노드를 만들어 그 properties 를 돌려준다
        props = properties
        walked = []
        for part in path.split("."):
            walked.append(part)
            node = props.setdefault(part, {"properties": {}})
            if ".".join(walked) in dictionary.nested_paths():
                node["type"] = "nested"
                node["include_in_parent"] = True
            props = node.setdefault("properties", {})
        return props

    for spec in dictionary.fields():
        if spec.path.startswith(LOCATION_FIELD + "."):
            continue
        parent, _, leaf = spec.path.rpartition(".")
        props = node_for(parent) if parent else properties
        props[leaf] = dict(TYPE_MAPPINGS[spec.type])

    for path in dictionary.nested_paths():
        node_for(path)
    return {"properties": properties}


class OpenSearchIndexer(IndexPort):

    def __init__(
        self,
        client: OpenSearch,
        dictionary: FieldDictionary,
        batch_size: int = 500,
        request_timeout: int = 600) -> None:
        self.client = client
        self.dictionary = dictionary
        self.alias_name = dictionary.scoped_index_name()
        self.batch_size = batch_size
        self.request_timeout = request_timeout
        self._load_index_settings()

    def _load_index_settings(self) -> None:
        """
            인덱스 analysis 설정을 JSON 파일에서 로드한다.
        """
        root_dir = Path(os.path.dirname(__file__)).resolve().parents[2]
        settings_path = root_dir / "resources/schema/index_settings.json"
        with open(settings_path, 'r', encoding='utf-8') as f:
            self.index_settings = json.load(f)

    def _create_index_name(self, generation: int) -> str:
        return f"{self.alias_name}-{generation}"

    def create_index(self, generation: int) -> str:
        """
            사전에서 만든 매핑으로 인덱스를 생성한다.
            인덱스 이름 형식: {alias_name}-{generation}
            ex. dev-cities-1, dev-cities-2

            Args:
                generation: 재색인 세대 번호
            Returns:
                생성된 인덱스 이름
        """
        index_name = self._create_index_name(generation)
        if self.client.indices.exists(index=index_name):
            # 같은 세대 번호가 남아 있으면 이전 실행의 잔여물이다
            logger.warning("index %s already exists, recreating", index_name)
            self.client.indices.delete(index=index_name, ignore=[404])

        body = {
            "settings": self.index_settings,
            "mappings": build_mapping(self.dictionary),
        }
        self.client.indices.create(index=index_name, body=body)
        logger.info("index created", extra={"index": index_name, "generation": generation})
        return index_name

    def index(
        self,
        index_name: str,
        docs: Iterable[Dict[str, Any]],
        cancel_event: threading.Event | None = None) -> IndexResult:
        """
            문서들을 batch_size 단위로 bulk 색인한다.
            배치 사이마다 cancel_event 를 확인하고, 취소되면 남은 배치를 보내지 않는다.

            Args:
                index_name: 인덱스 이름
                docs: 색인 문서
                cancel_event: 협조적 취소 신호
            Returns:
                색인 결과(색인 건수, 실패 상세)
        """
        indexed = 0
        err_items: List[IndexErrorItem] = []
        iterator = iter(docs)
        while True:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("indexing cancelled after %d docs", indexed, extra={"index": index_name})
                break
            batch = list(islice(iterator, self.batch_size))
            if not batch:
                break
            ok, errors = self._bulk(index_name, batch)
            indexed += ok
            err_items.extend(errors)
        return IndexResult(indexed=indexed, errors=err_items)

    def _bulk(self, index_name: str, batch: List[Dict[str, Any]]) -> tuple[int, List[IndexErrorItem]]:
        def actions():
            for doc in batch:
                action = {
                    "_op_type": "index",
                    "_index": index_name,
                    "_source": doc,
                }
                doc_id = self._doc_id(doc)
                if doc_id is not None:
                    action["_id"] = doc_id
                yield action

        # bulk 적재
        try:
            ok, errors = helpers.bulk(
                self.client, actions(), raise_on_error=False, request_timeout=self.request_timeout)
        except OpenSearchException as e:
            raise IndexingFailed(index_name, str(e))
        err_items: List[IndexErrorItem] = []
        for e in errors or []:
            err_items.append(IndexErrorItem(
                doc_id=str(e.get("index", {}).get("_id", "")),
                reason=str(e)))
        if err_items:
            logger.warning("%d documents failed", len(err_items), extra={"index": index_name})
        return ok, err_items

    def _doc_id(self, doc: Dict[str, Any]) -> str | None:
        """unique 필드 값들을 ':' 로 이은 문서 id. unique 가 없으면 자동 id."""
        if not self.dictionary.unique:
            return None
        values = []
        for name in self.dictionary.unique:
            node: Any = doc
            for part in name.split("."):
                node = node.get(part) if isinstance(node, dict) else None
            values.append("" if node is None else str(node))
        return ":".join(values)

    def drop_index(self, index_name: str) -> None:
        """취소되거나 실패한 세대의 인덱스를 지운다."""
        self.client.indices.delete(index=index_name, ignore=[404])
        logger.info("index dropped", extra={"index": index_name})

    # ================== alias ==================
    def rotate_alias(self, index_name: str, delete_old: bool = True) -> AliasResult:
        """
        alias 를 방금 완료된 세대의 인덱스로만 원자적으로 옮기고, 필요 시 그보다 오래된 세대를 삭제한다.

        인덱스 네이밍 규칙 가정: {alias_name}-{generation}
        ex) dev-cities-3 완료 → alias dev-cities 는 dev-cities-3 만 가리킨다.
            dev-cities-1, dev-cities-2 는 삭제, 진행 중일 수 있는 dev-cities-4 는 그대로 둔다.

        Args:
            index_name: 완료된 세대의 인덱스 이름
            delete_old: 오래된 인덱스 삭제 여부
        Returns:
            AliasResult: alias가 가리키는 인덱스 목록
        """
        regex = re.compile(rf"^{re.escape(self.alias_name)}-(?P<ver>\d+)$")
        m = regex.match(index_name)
        if not m:
            raise IndexingFailed(index_name, f"not a generation of alias '{self.alias_name}'")
        current = int(m.group("ver"))

        # alias를 완료된 인덱스로만 갱신하기 위해 기존 index 제거
        actions: List[Dict[str, Any]] = []
        if self.client.indices.exists_alias(name=self.alias_name):
            current_alias_map = self.client.indices.get_alias(name=self.alias_name)
            for idx in current_alias_map.keys():
                if idx != index_name:
                    actions.append({"remove": {"index": idx, "alias": self.alias_name}})
        actions.append({"add": {"index": index_name, "alias": self.alias_name}})
        self.client.indices.update_aliases(body={"actions": actions})
        logger.info("alias %s now points to %s", self.alias_name, index_name)

        # 옵션(delete_old=True)일 경우 오래된 세대만 삭제
        if delete_old:
            all_indices_map: Dict[str, Any] = self.client.indices.get(index=f"{self.alias_name}-*")
            for idx in sorted(all_indices_map.keys()):
                old = regex.match(idx)
                if old and int(old.group("ver")) < current:
                    self.client.indices.delete(index=idx, ignore=[404])
                    logger.info("deleted old index %s", idx)

        return AliasResult(index_name=[index_name], alias_name=self.alias_name)
