"""
file:// 경로나 로컬 경로에서 CSV 파일을 읽는 FetchPort 구현체.
"""

from __future__ import annotations

from pathlib import Path

from data_api.app.domain.ports import FetchPort
from data_api.app.domain.models import RawDocument, SourceRef
from data_api.app.domain.utils import ext_to_file_type
from data_api.app.platform.exceptions import DomainError, InvalidInput, ResourceNotFound

class FileFetcher(FetchPort):
    def __init__(self, default_encoding: str = "utf-8") -> None:
        self.default_encoding = default_encoding

    def fetch(self, uri: str) -> RawDocument:
        """
        로컬 파일(plain path 또는 file:// 스킴)에서 텍스트를 읽어 RawDocument로 반환한다.
        - BOM 이 붙은 엑셀 CSV 도 첫 컬럼명이 깨지지 않게 utf-8-sig 로 읽는다
        - 기본 인코딩으로 안 읽히면 latin-1 로 폴백(공공 데이터 CSV)
        - 줄바꿈 정규화

        Args:
            uri: 'file:///abs/path.csv' 또는 'abs/path.csv'
        Returns:
            RawDocument: 원문(텍스트, 인코딩 포함)
        """
        try:
            path = self._convert_uri_to_path(uri)
            if not path.exists():
                raise FileNotFoundError("File not found")
            file_type = ext_to_file_type(path)
            body_bytes = path.read_bytes()

            try:
                body_text = body_bytes.decode(
                    "utf-8-sig" if self.default_encoding == "utf-8" else self.default_encoding)
                encoding = self.default_encoding
            except UnicodeDecodeError:
                body_text = body_bytes.decode("latin-1")
                encoding = "latin-1"
            # 줄바꿈 정규화
            body_text = body_text.replace("\r\n", "\n").replace("\r", "\n")

            return RawDocument(
                source=SourceRef(uri=uri, file_type=file_type),
                body_text=body_text,
                encoding=encoding,
            )
        except FileNotFoundError as e:
            raise ResourceNotFound(uri, f"Resource not found: {uri} error={e}")
        except ValueError as e:
            raise InvalidInput(f"invalid input file type: {uri} error={e}")
        except OSError as e:
            raise DomainError(f"failed to fetch: {uri} error={e}")

    def _convert_uri_to_path(self, uri: str) -> Path:
        """
        상대 경로나 file:// prefix가 있는 경우 절대 경로로 변환한다.
        Args:
            uri: 'file:///abs/path.csv' 또는 '/abs/path.csv'
        Returns:
            Path: 절대 경로
        """
        path_str = uri
        if uri.startswith("file://"):
            path_str = uri.replace("file://", "", 1)
        return Path(path_str).expanduser().resolve()
