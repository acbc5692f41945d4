# FILE: curex/main.py
import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from curex.api.exception_handlers import register_exception_handlers
from curex.api.router import api_router
from curex.core.config import settings
from curex.core.logging import configure_logging
from curex.db.init_db import init_db
from curex.db.session import SessionLocal
from curex.utils.resp import ok

configure_logging()
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.on_event("startup")
def _startup():
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()
    logger.info("%s started (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)


# Health
@app.get(f"{settings.API_V1_STR}/health", tags=["Service"])
def health():
    return ok(
        {
            "status": "healthy",
            "timestamp": datetime.utcnow(),
            "version": API_VERSION,
        }, "API is running")


@app.get(f"{settings.API_V1_STR}/status", tags=["Service"])
def status():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception:
        logger.exception("Database check failed")
        database = "unavailable"
    finally:
        db.close()
    return ok(
        {
            "api": "online",
            "database": database,
            "environment": settings.ENVIRONMENT,
            "version": API_VERSION,
            "timestamp": datetime.utcnow(),
        }, "Service status")


@app.get("/", tags=["Service"])
def root():
    return {"message": f"{settings.PROJECT_NAME} running", "version": "v1"}


