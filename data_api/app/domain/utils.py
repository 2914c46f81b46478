"""
유틸리티 함수.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from data_api.app.domain.models import FileType, FieldType


def normalize_key(key: Any) -> str:
    """
    검색어/옵션 키를 한 가지 문자열 표현으로 정규화한다.
    Enum은 값, bytes는 utf-8 디코딩, 나머지는 str().
    Args:
        key: Any (원본 키)
    Returns:
        str: 정규화된 키
    """
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, bytes):
        key = key.decode("utf-8")
    return str(key).strip()


def normalize_keys(mapping: Mapping[Any, Any] | None) -> Dict[str, Any]:
    """시스템 경계에서 한 번만 호출한다. 이후 코어는 str 키만 다룬다."""
    return {normalize_key(k): v for k, v in (mapping or {}).items()}


def split_values(value: Any) -> List[str]:
    """
    쉼표로 구분된 "any-of" 값을 나눈다. 끝에 붙은 쉼표 등 빈 항목은 버린다.
    Args:
        value: Any
    Returns:
        List[str]
    """
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in str(value).split(",") if v.strip()]


def convert_value(value: Any, field_type: FieldType) -> Any:
    """
    필드 타입에 맞춰 문자열 값을 숫자/불리언으로 바꾼다. 변환할 수 없으면 ValueError.
    """
    if value is None:
        return None
    if field_type == FieldType.integer:
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            return int(float(text))
    if field_type == FieldType.float:
        return float(str(value).strip())
    if field_type == FieldType.boolean:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("true", "t", "yes", "y", "1"):
            return True
        if text in ("false", "f", "no", "n", "0"):
            return False
        raise ValueError(f"not a boolean: {value}")
    return value


def collapse(values: Any) -> Any:
    """
    백엔드 fields 값은 항상 리스트로 온다.
    원소가 하나면 스칼라로 풀고, 여럿이면 순서를 유지한 리스트 그대로 둔다.
    """
    if not isinstance(values, list):
        return values
    if len(values) == 0:
        return None
    if len(values) == 1:
        return values[0]
    return values


def dig(doc: Any, dotted: str) -> Any:
    """
    점 경로로 중첩 dict를 따라 내려간다. 중간에 리스트(nested 문서 배열)를 만나면
    각 원소에서 나머지 경로를 찾아 모은다. 없으면 None.
    Args:
        doc: dict 또는 list
        dotted: "2012.sat_average" 같은 경로
    Returns:
        Any: 찾은 값(리스트를 거쳤다면 값 리스트)
    """
    if doc is None:
        return None
    if not dotted:
        return doc
    if isinstance(doc, list):
        found = [dig(item, dotted) for item in doc]
        found = [v for v in found if v is not None]
        return collapse(found)
    if not isinstance(doc, dict):
        return None
    # "2012.sat_average" 처럼 키 자체에 점이 들어간 평면 문서도 허용
    if dotted in doc:
        return doc[dotted]
    head, _, rest = dotted.partition(".")
    if head not in doc:
        return None
    return dig(doc[head], rest)


def _deep_merge(target: Dict[str, Any], key: str, value: Any) -> None:
    if isinstance(value, dict) and isinstance(target.get(key), dict):
        for k, v in value.items():
            _deep_merge(target[key], k, v)
    else:
        target[key] = value


def unflatten(row: Mapping[str, Any]) -> Dict[str, Any]:
    """
    점(.) 키를 중첩 dict 구조로 바꾼다.
    {"2012.sat_average": None} -> {"2012": {"sat_average": None}}
    """
    result: Dict[str, Any] = {}
    for key, value in row.items():
        parts = key.split(".")
        nested: Any = value
        for part in reversed(parts[1:]):
            nested = {part: nested}
        _deep_merge(result, parts[0], nested)
    return result


def strip_prefix(dotted: str, prefix: str) -> str | None:
    """prefix 경로 아래의 나머지 경로. prefix 아래가 아니면 None."""
    if dotted.startswith(prefix + "."):
        return dotted[len(prefix) + 1:]
    return None


def ext_to_file_type(path: Path) -> FileType:
    """
    파일 확장자에서 파일 타입을 추출하는 함수.
    Args:
        path: Path (파일 경로)
    Returns:
        FileType: 파일 타입
    """
    ext = path.suffix.lower()
    if ext in {".csv"}:
        return FileType.csv
    raise ValueError(f"Unsupported file type: {ext}")


def unique_in_order(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
