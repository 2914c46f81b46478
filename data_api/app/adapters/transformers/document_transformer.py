"""
CSV 에서 파싱된 행을 data.yaml 사전 규칙에 따라 색인 문서로 변환하는 TransformPort 구현체.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator

from data_api.app.adapters.dictionaries.yaml_dictionary import FieldDictionary
from data_api.app.domain.ports import TransformPort
from data_api.app.domain.models import FieldType, ParsedDocument
from data_api.app.domain.utils import convert_value, unflatten

logger = logging.getLogger(__name__)


class DocumentTransformer(TransformPort):

    def __init__(self, dictionary: FieldDictionary) -> None:
        self.dictionary = dictionary

    def transform(self, doc: ParsedDocument) -> Iterator[Dict[str, Any]]:
        """
        ParsedDocument 의 row 블록을 색인 문서로 바꾼다.
        - 매핑 규칙: CSV 컬럼 → data.yaml 의 source 가 같은 필드
        - 사전이 비어 있으면 컬럼명을 그대로 필드명으로 쓴다
        - 타입 변환에 실패한 값은 경고 후 None
        - 점(.) 경로는 중첩 구조로 펼친다(location.lat/location.lon → location geo point)
        Args:
            doc: ParsedDocument
        Returns:
            Iterator[Dict[str, Any]]: 색인 문서
        """
        by_source = self.dictionary.by_source()
        passthrough = self.dictionary.is_empty()

        for i, block in enumerate(doc.blocks):
            if block.type != "row":
                continue
            flat: Dict[str, Any] = {}
            for column, value in block.meta.items():
                if passthrough:
                    flat[column] = value
                    continue
                spec = by_source.get(column)
                if spec is None:
                    continue
                flat[spec.path] = self._convert(spec.type, value, doc.source.uri, i, column)
            yield unflatten(flat)

    def _convert(self, field_type: FieldType, value: Any, uri: str, row: int, column: str) -> Any:
        try:
            return convert_value(value, field_type)
        except ValueError:
            logger.warning("%s row %d: cannot convert %s=%r to %s", uri, row, column, value, field_type.value)
            return None
