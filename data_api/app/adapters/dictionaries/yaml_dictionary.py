"""
data.yaml 을 읽어 논리 필드 → 백엔드 경로/타입을 알려주는 DictionaryPort 구현체.

예시 data.yaml:
    version: 1
    api: cities
    index: city-data
    unique: [id]
    nested: [programs]
    dictionary:
      id: {source: ID, type: integer}
      name: {source: NAME, type: name}
      state: STATE
      location.lat: {source: LAT, type: float}
      location.lon: {source: LON, type: float}
    files:
      - name: cities100.csv
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from data_api.app.domain.ports import DictionaryPort
from data_api.app.domain.models import FieldSpec, FieldType
from data_api.app.platform.exceptions import InvalidDictionary, ResourceNotFound

logger = logging.getLogger(__name__)

DESCRIPTOR_NAME = "data.yaml"
LOCATION_FIELD = "location"


class FieldDictionary(DictionaryPort):

    def __init__(self, config: Mapping[str, Any], scope: str, data_path: str = ".") -> None:
        self.scope = scope
        self.data_path = data_path
        self.api: str | None = config.get("api")
        self.index: str = config.get("index") or self.api or Path(data_path).resolve().name
        self.unique: List[str] = list(config.get("unique") or [])
        self._nested: List[str] = sorted(config.get("nested") or [], key=len, reverse=True)
        self.files: List[str] = self._parse_files(config.get("files") or [])
        self._fields: Dict[str, FieldSpec] = self._parse_fields(config.get("dictionary") or {})

    # ================= loading =================
    @classmethod
    def load(cls, data_path: str, scope: str, allow_missing: bool = False) -> "FieldDictionary":
        """
        DATA_PATH/data.yaml 을 읽는다.
        Args:
            data_path: data.yaml 과 CSV 파일이 있는 디렉터리
            scope: 인덱스 이름 앞에 붙는 스코프(dev, test, prod ...)
            allow_missing: data.yaml 이 없어도 빈 사전으로 진행할지 여부
        Returns:
            FieldDictionary
        """
        descriptor = Path(data_path) / DESCRIPTOR_NAME
        if not descriptor.exists():
            if allow_missing:
                logger.info("no %s in %s, continuing with empty dictionary", DESCRIPTOR_NAME, data_path)
                return cls({}, scope=scope, data_path=data_path)
            raise ResourceNotFound(str(descriptor))

        try:
            raw = yaml.safe_load(descriptor.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise InvalidDictionary(str(descriptor), f"yaml error: {e}")
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise InvalidDictionary(str(descriptor), "top level must be a mapping")

        dictionary = cls(raw, scope=scope, data_path=data_path)
        logger.info(
            "loaded dictionary api=%s index=%s fields=%d nested=%s",
            dictionary.api, dictionary.index, len(dictionary._fields), dictionary._nested)
        return dictionary

    def _parse_fields(self, raw: Any) -> Dict[str, FieldSpec]:
        if not isinstance(raw, dict):
            raise InvalidDictionary(self.data_path, "dictionary must be a mapping")

        fields: Dict[str, FieldSpec] = {}
        for name, entry in raw.items():
            name = str(name)
            if isinstance(entry, dict):
                source = entry.get("source")
                type_name = entry.get("type") or FieldType.string.value
            else:
                # 축약형: "state: STATE"
                source = entry
                type_name = FieldType.string.value
            try:
                field_type = FieldType(type_name)
            except ValueError:
                raise InvalidDictionary(self.data_path, f"unknown type '{type_name}' for field '{name}'")
            fields[name] = FieldSpec(
                name=name,
                path=name,
                type=field_type,
                nested_path=self._nested_path_for(name),
                source=str(source) if source is not None else None,
            )

        # location 은 항상 geo point
        fields[LOCATION_FIELD] = FieldSpec(name=LOCATION_FIELD, path=LOCATION_FIELD, type=FieldType.lat_lon)
        return fields

    def _parse_files(self, raw: Any) -> List[str]:
        names = []
        for item in raw:
            if isinstance(item, dict):
                if "name" not in item:
                    raise InvalidDictionary(self.data_path, f"file entry without name: {item}")
                names.append(str(item["name"]))
            else:
                names.append(str(item))
        return names

    # ================= DictionaryPort =================
    def resolve(self, name: str) -> FieldSpec:
        spec = self._fields.get(name)
        if spec is not None:
            return spec
        # 사전에 없는 필드는 문자열 필드로 취급(스키마가 유연한 데이터셋)
        return FieldSpec(name=name, path=name, type=FieldType.string, nested_path=self._nested_path_for(name))

    def has_field(self, name: str) -> bool:
        if name in self._fields:
            return True
        prefix = name + "."
        return any(key.startswith(prefix) for key in self._fields)

    def is_object_path(self, name: str) -> bool:
        return name not in self._fields and self.has_field(name)

    def is_empty(self) -> bool:
        return len(self._fields) <= 1

    def all_endpoints(self) -> List[str]:
        return [self.api] if self.api else []

    def index_name_for(self, endpoint: str) -> str | None:
        if endpoint != self.api:
            return None
        return self.scoped_index_name(self.index)

    def scoped_index_name(self, index: str | None = None) -> str:
        return f"{self.scope}-{index or self.index}"

    def nested_paths(self) -> List[str]:
        return list(self._nested)

    # ================= import helpers =================
    def fields(self) -> List[FieldSpec]:
        return list(self._fields.values())

    def by_source(self) -> Dict[str, FieldSpec]:
        """CSV 컬럼명 → FieldSpec."""
        return {spec.source: spec for spec in self._fields.values() if spec.source}

    def _nested_path_for(self, path: str) -> str | None:
        for nested in self._nested:
            if path == nested or path.startswith(nested + "."):
                return nested
        return None
