import sys
from pathlib import Path

# 프로젝트 루트 경로를 sys.path에 추가 (…/<project-root>)
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient
from data_api.app.main import app
from data_api.app.adapters.dictionaries.yaml_dictionary import FieldDictionary

PEOPLE_CONFIG = {
    "api": "people",
    "index": "people",
    "unique": ["id"],
    "nested": ["latest.programs", "sites"],
    "dictionary": {
        "id": {"source": "ID", "type": "integer"},
        "name": {"source": "NAME", "type": "name"},
        "age": {"source": "AGE", "type": "integer"},
        "height": {"source": "HEIGHT", "type": "integer"},
        "city": {"source": "CITY", "type": "string"},
        "state": "STATE",
        "2012.sat_average": {"source": "SAT_AVG_2012", "type": "float"},
        "latest.programs.title": {"type": "string"},
        "latest.programs.code": {"type": "literal"},
        "latest.programs.degree": {"type": "literal"},
        "sites.name": {"type": "string"},
        "location.lat": {"source": "LAT", "type": "float"},
        "location.lon": {"source": "LON", "type": "float"},
    },
}


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture
def people_dictionary():
    """data.yaml 파일 없이 메모리 설정으로 만든 사전(scope=test)"""
    return FieldDictionary(PEOPLE_CONFIG, scope="test")


@pytest.fixture
def empty_dictionary():
    """data.yaml 없이 뜬 경우의 빈 사전"""
    return FieldDictionary({}, scope="test", data_path="/data/colleges")
