"""
Iruka Game Console - FastAPI Main Application
"""

import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.v1 import auth
from app.core.config import settings
from app.core.db import get_db
from app.core.errors import register_exception_handlers
from app.routers import games, lifecycle, storage, uploads
from app.services.object_store import LocalObjectStore
from app.services.storage import StorageGateway

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def build_storage_gateway() -> StorageGateway:
    store = LocalObjectStore(settings.STORAGE_ROOT, public_api_base_url=settings.PUBLIC_API_BASE_URL)
    return StorageGateway(
        store, cdn_base=settings.cdn_base, delete_batch_size=settings.DELETE_BATCH_SIZE
    )


app = FastAPI(
    title="Iruka Game Console API",
    description="Upload, review and publishing pipeline for HTML5 mini-games",
    version="0.1.0",
)
app.state.storage_gateway = build_storage_gateway()
register_exception_handlers(app)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(uploads.router, prefix="/api/v1")
app.include_router(games.router, prefix="/api/v1")
app.include_router(lifecycle.router, prefix="/api/v1")
app.include_router(storage.router, prefix="/api/v1")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # restrict to the console origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Iruka Game Console API",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
def health():
    """Health check endpoint"""
    return {"status": "ok"}


@app.get("/health/db")
def health_db(db: Session = Depends(get_db)):
    """Database health check endpoint"""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "error",
                "database": "unavailable",
                "error": str(exc),
            },
        ) from exc

    return {"status": "ok", "db": "ok"}
