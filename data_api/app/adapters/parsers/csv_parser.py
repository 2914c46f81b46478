"""
CSV 파일을 파싱하여 ParsedDocument로 변환하는 구현체.
"""

from __future__ import annotations
from typing import List, Dict
import csv
import io

from data_api.app.domain.ports import ParsePort
from data_api.app.domain.models import ParsedDocument, ParsedBlock, RawDocument
from data_api.app.platform.exceptions import InvalidInput

# 공공 데이터 CSV 에서 값 없음을 나타내는 표기
NULL_VALUES = {"", "NULL", "null", "PrivacySuppressed"}

class CsvParser(ParsePort):

    def __init__(self, delimiter: str = ",") -> None:
        self.delimiter = delimiter

    def parse(self, raw: RawDocument) -> ParsedDocument:
        """
        CSV 텍스트를 읽어 각 행을 ParsedBlock(meta=row)으로 담는다.
        Args:
            raw: 파싱할 RawDocument
        Returns:
            ParsedDocument: 파싱된 문서
        """
        try:
            text = raw.body_text or ""
            reader = csv.DictReader(io.StringIO(text), delimiter=self.delimiter)

            # 헤더 검증
            cols = [c.strip() for c in (reader.fieldnames or [])]
            if not cols:
                raise ValueError("CSV has no header row")

            blocks: List[ParsedBlock] = []
            for row in reader:
                # 공백 정리
                clean: Dict[str, str | None] = {}
                for k, v in row.items():
                    if k is None:
                        raise ValueError(f"row {reader.line_num} has more values than columns")
                    v = v.strip() if isinstance(v, str) else v
                    clean[k.strip()] = None if v is None or v in NULL_VALUES else v
                blocks.append(ParsedBlock(type="row", meta=clean))

            return ParsedDocument(
                source=raw.source,
                blocks=blocks,
                meta={"rows": len(blocks), "columns": cols},
            )
        except (ValueError, csv.Error) as e:
            raise InvalidInput(f"invalid file format: {raw.source.uri} error={e}")
