"""
Lab Auditor - FastAPI Application Entry Point
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from labaudit.config import settings
from labaudit.api.v1.endpoints import audit, health
from labaudit.logger import logger

# Create app
app = FastAPI(
    title=settings.APP_NAME,
    description="Weighted audits of a running laboratory application and its source tree",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(audit.router, prefix="/api/v1/audits")

logger.info(f"{settings.APP_NAME} API ready")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }
