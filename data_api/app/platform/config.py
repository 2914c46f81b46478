from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "data-api"
    DEBUG: bool = False

    # OpenSearch 연결
    OPENSEARCH_HOST: str = "http://localhost:9200"
    OPENSEARCH_TIMEOUT: int = 5 * 60
    OPENSEARCH_INDEX_TIMEOUT: int = 10 * 60

    # 데이터셋(data.yaml + csv) 위치와 인덱스 스코프
    DATA_PATH: str = "data_api/resources/sample-data"
    ALLOW_MISSING_YML: bool = False
    INDEX_SCOPE: str = "dev"
    IMPORT_BATCH_SIZE: int = 500
    INDEX_ON_STARTUP: bool = False

    ZIPCODE_FILE: str = "data_api/resources/zipcodes.csv"

    # 로깅
    LOG_LEVEL: str = "INFO"
    LOG_AS_JSON: bool = True
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "/var/log/app"

settings = Settings()
