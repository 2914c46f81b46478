"""
검색어/옵션 사전 검증.

QueryBuilder 는 검증된 입력만 받는다. 여기서 발견한 오류는 한 번에 모아서
[{"error": code, "message": str, "input": ..., "parameters": [...]}] 목록으로 돌려준다.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from data_api.app.domain.ports import DictionaryPort, GeoLocatorPort
from data_api.app.domain.query.query_builder import (
    DISTANCE_RE,
    parse_range,
    parse_term_key,
)
from data_api.app.domain.utils import convert_value, split_values
from data_api.app.domain.models import FieldType

logger = logging.getLogger(__name__)

ALLOWED_METRICS = (
    "count", "min", "max", "avg", "sum", "sum_of_squares",
    "variance", "variance_population", "variance_sampling",
    "std_deviation", "std_deviation_population", "std_deviation_sampling",
    "std_deviation_bounds",
)
COMMANDS = ("stats",)
SORT_DIRECTIONS = ("asc", "desc")
BOOLEAN_WORDS = ("true", "false", "t", "f", "yes", "no", "y", "n", "1", "0")


def _error(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    item: Dict[str, Any] = {"error": code, "message": message}
    item.update(extra)
    return item


class ErrorChecker:

    def __init__(self, dictionary: DictionaryPort, locator: GeoLocatorPort | None = None) -> None:
        self._dictionary = dictionary
        self._locator = locator

    def check(self, terms: Mapping[str, Any], options: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Args:
            terms: 정규화된 검색어
            options: 정규화된 옵션(아직 QueryOptions 로 변환하기 전의 원본 값)
        Returns:
            List[Dict[str, Any]]: 오류 목록. 비어 있으면 통과
        """
        errors: List[Dict[str, Any]] = []
        errors += self._check_paging(options)
        errors += self._check_geo(options)
        errors += self._check_fields(options)
        errors += self._check_sort(options)
        errors += self._check_command(options)
        errors += self._check_terms(terms)
        if errors:
            logger.info("rejected query: %d error(s)", len(errors))
        return errors

    # ================= options =================
    def _check_paging(self, options: Mapping[str, Any]) -> List[Dict[str, Any]]:
        errors = []
        for key in ("page", "per_page"):
            if options.get(key) is None:
                continue
            value = options[key]
            try:
                number = int(str(value).strip())
            except ValueError:
                errors.append(_error(key, f"{key} must be an integer", input=value, parameters=[key]))
                continue
            if number < 1:
                errors.append(_error(key, f"{key} must be 1 or greater", input=value, parameters=[key]))
        return errors

    def _check_geo(self, options: Mapping[str, Any]) -> List[Dict[str, Any]]:
        errors = []
        coords_ok = True
        for key in ("lat", "lon"):
            if options.get(key) is None:
                continue
            try:
                float(str(options[key]).strip())
            except ValueError:
                coords_ok = False
                errors.append(_error("coordinate", f"{key} must be a number", input=options[key], parameters=[key]))

        distance = options.get("distance")
        zipcode = options.get("zip")
        has_point = options.get("lat") is not None and options.get("lon") is not None
        if (options.get("lat") is None) != (options.get("lon") is None):
            errors.append(_error(
                "coordinate", "lat and lon must be given together", parameters=["lat", "lon"]))

        if distance is not None:
            if not DISTANCE_RE.match(str(distance).strip().lower()):
                errors.append(_error(
                    "distance_format", "distance must be a number with an optional unit (e.g. 10mi, 5km)",
                    input=distance, parameters=["distance"]))
            if zipcode is None and not has_point:
                errors.append(_error(
                    "distance_error", "distance requires zip or lat/lon", parameters=["distance"]))
        elif zipcode is not None or has_point:
            errors.append(_error(
                "distance_error", "zip or lat/lon requires distance", parameters=["distance"]))

        if zipcode is not None and self._locator is not None and coords_ok:
            if self._locator.locate(str(zipcode)) is None:
                errors.append(_error("zipcode_error", f"unknown zip code: {zipcode}", input=zipcode, parameters=["zip"]))
        return errors

    def _check_fields(self, options: Mapping[str, Any]) -> List[Dict[str, Any]]:
        if self._dictionary_is_empty():
            return []
        errors = []
        for name in split_values(options.get("fields") or []):
            if not self._dictionary.has_field(name):
                errors.append(_error("field_not_found", f"field '{name}' not found", input=name, parameters=["fields"]))
        return errors

    def _check_sort(self, options: Mapping[str, Any]) -> List[Dict[str, Any]]:
        errors = []
        for item in split_values(options.get("sort") or ""):
            name, _, direction = item.partition(":")
            name = name.strip()
            if not self._dictionary_is_empty() and not self._dictionary.has_field(name):
                errors.append(_error("sort_field_not_found", f"sort field '{name}' not found", input=name, parameters=["sort"]))
            if direction and direction.strip().lower() not in SORT_DIRECTIONS:
                errors.append(_error("sort_direction", "sort direction must be asc or desc", input=item, parameters=["sort"]))
        return errors

    def _check_command(self, options: Mapping[str, Any]) -> List[Dict[str, Any]]:
        errors = []
        command = options.get("command")
        if command is not None and command not in COMMANDS:
            errors.append(_error("command", f"unknown command '{command}'", input=command, parameters=["command"]))
        if command == "stats" and not split_values(options.get("fields") or []):
            errors.append(_error("stats_without_fields", "stats requires fields", parameters=["fields"]))

        for metric in split_values(options.get("metrics") or []):
            if metric not in ALLOWED_METRICS:
                errors.append(_error(
                    "metrics", f"unknown metric '{metric}', allowed: {', '.join(ALLOWED_METRICS)}",
                    input=metric, parameters=["metrics"]))
        return errors

    # ================= terms =================
    def _check_terms(self, terms: Mapping[str, Any]) -> List[Dict[str, Any]]:
        errors = []
        for key, value in terms.items():
            field, op = parse_term_key(key)
            if not self._dictionary_is_empty() and not self._dictionary.has_field(field):
                errors.append(_error("parameter_not_found", f"'{field}' is not a known field", input=key, parameters=[key]))
                continue

            spec = self._dictionary.resolve(field)
            if op == "range":
                errors += self._check_range(key, spec.type, value)
            elif op == "exists":
                if str(value).strip().lower() not in BOOLEAN_WORDS:
                    errors.append(_error("exists_value", "exists must be true or false", input=value, parameters=[key]))
            else:
                for item in split_values(value):
                    try:
                        convert_value(item, spec.type)
                    except ValueError:
                        errors.append(_error(
                            "parameter_type_error", f"'{item}' is not a valid {spec.type.value}",
                            input=item, parameters=[key]))
        return errors

    def _check_range(self, key: str, field_type: FieldType, value: Any) -> List[Dict[str, Any]]:
        errors = []
        for part in split_values(value) or [str(value)]:
            try:
                bounds = parse_range(part)
                if field_type.is_numeric:
                    for bound in bounds:
                        convert_value(bound, field_type)
            except ValueError:
                errors.append(_error(
                    "range_format", "range must look like min..max with numeric bounds",
                    input=part, parameters=[key]))
        return errors

    def _dictionary_is_empty(self) -> bool:
        return self._dictionary.is_empty()
