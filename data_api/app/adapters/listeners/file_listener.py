"""
DATA_PATH 디렉터리에서 임포트할 파일 목록을 읽는 ListenPort 구현체.
"""

from __future__ import annotations

import os
from typing import List
from data_api.app.domain.ports import ListenPort
from data_api.app.platform.exceptions import ResourceNotFound, DomainError

class FileListener(ListenPort):

    def listen(
        self,
        base_dir: str,
        extension: str,
        names: List[str] | None = None) -> List[str]:
        """
        Args:
            base_dir: 데이터 디렉터리
            extension: 확장자(csv)
            names: data.yaml 의 files 목록. 없으면 확장자가 맞는 파일 전부(이름순)
        Returns:
            List[str]: 파일 경로 목록
        """
        try:
            if names:
                missing = [n for n in names if not os.path.exists(os.path.join(base_dir, n))]
                if missing:
                    raise FileNotFoundError(f"missing files: {missing}")
                return [os.path.join(base_dir, n) for n in names]
            return [
                os.path.join(base_dir, filename)
                for filename in sorted(os.listdir(base_dir))
                if filename.lower().endswith(f".{extension}")
            ]
        except FileNotFoundError as e:
            raise ResourceNotFound(base_dir, f"Resource not found: {base_dir} error={e}")
        except PermissionError as e:
            raise DomainError(f"permission denied: {base_dir} error={e}")
