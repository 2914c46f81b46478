# data_api/app/platform/logging.py
import os
import json
import logging
import logging.config
from contextvars import ContextVar
from datetime import datetime, timezone

# ===== Request ID =====
request_id_ctx = ContextVar("request_id", default="-")

class RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        return True

# 검색/색인 로그에 extra로 실어 보내는 필드
EXTRA_FIELDS = (
    "http_method", "path", "status_code", "duration_ms", "client_ip",
    "index", "endpoint", "took_ms", "total", "generation",
)

# ===== JSON Formatter =====
class JsonFormatter(logging.Formatter):
    """
    JSON 라인 출력: Logstash에서 바로 파싱 가능.
    검색/색인 로그의 extra 필드(index, took_ms 등)가 있으면 함께 싣는다.
    """
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        # 예외 스택
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in EXTRA_FIELDS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        return json.dumps(payload, ensure_ascii=False, default=str)

# ===== Text Formatter (로컬 확인용) =====
TEXT_DEFAULT = "%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s"

def setup_logging(
    *,
    log_to_file: bool = False,
    log_dir: str = "/var/log/app",
    as_json: bool = True,
    level: str = "INFO",
) -> None:
    """
    - app 로그: root, uvicorn.error
    - access 로그: uvicorn.access (RequestContextMiddleware가 기록)
    - opensearch 클라이언트 로그는 WARNING 이상만
    """
    os.environ.setdefault("TZ", "UTC")

    formatters = {
        "json": {"()": JsonFormatter},
        "text_default": {"format": TEXT_DEFAULT},
        "text_access": {"format": "%(asctime)s %(levelname)s [access] [%(request_id)s] %(message)s"},
    }

    handlers = {
        "console_app": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "json" if as_json else "text_default",
            "filters": ["request_id"],
        },
        "console_access": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "json" if as_json else "text_access",
            "filters": ["request_id"],
        },
    }

    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
        for name, filename in (("file_app", "app.log"), ("file_access", "access.log")):
            handlers[name] = {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "level": level,
                "formatter": "json" if as_json else "text_default",
                "filename": f"{log_dir}/{filename}",
                "when": "midnight",
                "backupCount": 14,
                "encoding": "utf-8",
                "filters": ["request_id"],
            }

    app_handlers = ["console_app"] + (["file_app"] if log_to_file else [])
    access_handlers = ["console_access"] + (["file_access"] if log_to_file else [])

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,

        "filters": {
            "request_id": {"()": RequestIDFilter}
        },

        "formatters": formatters,
        "handlers": handlers,

        "loggers": {
            "": {
                "handlers": app_handlers,
                "level": level,
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": app_handlers,
                "level": level,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": access_handlers,
                "level": level,
                "propagate": False,
            },
            # 요청/응답 트레이스는 너무 많아서 경고 이상만
            "opensearch": {
                "handlers": app_handlers,
                "level": "WARNING",
                "propagate": False,
            },
        },
    })
