"""
우편번호 CSV(zip,lat,lon)를 읽어 좌표를 돌려주는 GeoLocatorPort 구현체.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Dict

from data_api.app.domain.ports import GeoLocatorPort
from data_api.app.platform.exceptions import ResourceNotFound

logger = logging.getLogger(__name__)


class ZipcodeLocator(GeoLocatorPort):

    def __init__(self, zipcode_file: str) -> None:
        self.zipcode_file = zipcode_file
        self._table: Dict[str, Dict[str, float]] | None = None

    def locate(self, zipcode: str) -> Dict[str, float] | None:
        """
        우편번호를 좌표로 바꾼다. 앞자리 0이 빠진 숫자형 입력도 5자리로 맞춘다.
        Args:
            zipcode: str (예: "94102")
        Returns:
            {"lat": float, "lon": float} 또는 None
        """
        table = self._load()
        key = str(zipcode).strip()
        if key.isdigit():
            key = key.zfill(5)
        return table.get(key)

    def _load(self) -> Dict[str, Dict[str, float]]:
        if self._table is not None:
            return self._table

        path = Path(self.zipcode_file)
        if not path.exists():
            raise ResourceNotFound(str(path), f"zipcode table not found: {path}")

        table: Dict[str, Dict[str, float]] = {}
        with path.open("r", encoding="utf-8", newline="") as f:
            for row in csv.DictReader(f):
                try:
                    table[row["zip"].strip().zfill(5)] = {
                        "lat": float(row["lat"]),
                        "lon": float(row["lon"]),
                    }
                except (KeyError, TypeError, ValueError):
                    logger.warning("skip malformed zipcode row: %s", row)
        logger.info("loaded %d zipcodes from %s", len(table), path)
        self._table = table
        return table
