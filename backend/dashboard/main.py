from fastapi import FastAPI, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from dashboard.config import settings
from dashboard.db import Base, engine, get_db
from dashboard.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    request_validation_handler,
    general_exception_handler,
)
from dashboard.middleware.request_id import RequestIDMiddleware
from dashboard.middleware.body_limit import BodySizeLimitMiddleware
from dashboard.routers import projects, features, messages, outputs, tasks, credentials, websocket
from dashboard.utils.cache import cache
from dashboard.utils.logging import configure_logging
from dashboard.websocket.manager import manager

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Sentry integration (optional, install the "sentry" extra)
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[FastApiIntegration(), SqlalchemyIntegration()],
        traces_sample_rate=0.1,
        environment=settings.ENVIRONMENT,
    )
    logger.info("Sentry error tracking initialized")


app = FastAPI(
    title="Project Dashboard",
    description="Projects, conversation, execution logs and outputs for autonomous agent projects",
    version="1.0.0",
)

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, general_exception_handler)

allowed_origins = settings.cors_origins_list
if settings.FRONTEND_URL and settings.FRONTEND_URL not in allowed_origins:
    allowed_origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_SIZE)


@app.on_event("startup")
async def startup_event():
    logger.info("Starting Project Dashboard...")
    Base.metadata.create_all(bind=engine)


app.include_router(projects.router)
app.include_router(features.router)
app.include_router(messages.router)
app.include_router(outputs.router)
app.include_router(tasks.router)
app.include_router(credentials.router)
app.include_router(websocket.router)


@app.get("/health")
def health():
    return {"status": "ok", "websocket_connections": manager.get_connection_count()}


@app.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    checks = {"database": False, "redis": False}
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.warning(f"Readiness database check failed: {e}")
    if cache.client:
        try:
            cache.client.ping()
            checks["redis"] = True
        except Exception as e:
            logger.warning(f"Readiness redis check failed: {e}")

    # Redis is optional: the list cache degrades to pass-through
    if checks["database"]:
        return {"status": "ok", "checks": checks}
    raise HTTPException(status_code=503, detail={"status": "not_ready", "checks": checks})
