from __future__ import annotations

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from data_api.app.api.routers import (
    health,
    search,
    index
)
from data_api.app.platform.config import settings
from data_api.app.platform.context import AppContext
from data_api.app.platform.logging import setup_logging
from data_api.app.platform.errors import (
    http_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
    domain_exception_handler
)
from data_api.app.platform import exceptions as domainex
from data_api.app.middlewares.request_context import RequestContextMiddleware



@asynccontextmanager
async def lifespan(app: FastAPI):
    # 로깅 등 공통 준비
    setup_logging(
        log_to_file=settings.LOG_TO_FILE,
        log_dir=settings.LOG_DIR,
        as_json=settings.LOG_AS_JSON,
        level=settings.LOG_LEVEL,
    )

    # 클라이언트/사전/감독자를 한 번만 만들어서 공유
    app.state.context = AppContext.open(settings)
    if settings.INDEX_ON_STARTUP:
        app.state.context.supervisor.start()
    try:
        yield
    finally:
        app.state.context.close()

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)
app.include_router(health.router)
app.include_router(search.router)
app.include_router(index.router, prefix="/api")

# Global Exception Filter
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(domainex.DomainError, domain_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# 요청 컨텍스트/액세스 로그 미들웨어
app.add_middleware(RequestContextMiddleware)
