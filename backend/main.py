"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import audit, holdings, imports, snapshots, transactions
from config import settings
from database import Base, get_engine
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create any missing ledger tables on startup."""
    try:
        Base.metadata.create_all(bind=get_engine())
    except Exception:
        logger.warning("Table creation failed on startup", exc_info=True)
    yield


app = FastAPI(
    title="Ledger Engine",
    description="Transaction ledger reconciliation and valuation",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(transactions.router)
app.include_router(holdings.router)
app.include_router(audit.router)
app.include_router(snapshots.router)
app.include_router(imports.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
