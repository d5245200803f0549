"""sopgraph FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sopgraph.db.connection import Database
from sopgraph.projects.router import get_project_service
from sopgraph.projects.router import router as projects_router
from sopgraph.projects.service import ProjectService
from sopgraph.transfer.router import get_transfer_service
from sopgraph.transfer.router import router as transfer_router
from sopgraph.transfer.service import TransferService

# Load .env from the project directory before reading any settings
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

logging.basicConfig(
    level=os.environ.get("SOPGRAPH_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def _autosave_interval() -> float | None:
    """Seconds between autosave ticks; 0 or negative disables autosave."""
    seconds = float(os.environ.get("SOPGRAPH_AUTOSAVE_SECONDS", "30"))
    return seconds if seconds > 0 else None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    db = await Database.connect(os.environ.get("SOPGRAPH_DB_PATH", "sopgraph.db"))

    service = ProjectService(db, autosave_interval=_autosave_interval())
    app.dependency_overrides[get_project_service] = lambda: service

    transfer = TransferService(service)
    app.dependency_overrides[get_transfer_service] = lambda: transfer

    app.state.db = db
    yield

    # Autosave tasks must be gone before the connection closes.
    await service.close()
    await db.close()


app = FastAPI(
    title="sopgraph",
    description="Outline and version engine for step-by-step procedure documents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.environ.get(
            "SOPGRAPH_CORS_ORIGINS", "http://localhost:5173"
        ).split(",")
        if origin.strip()
    ],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(projects_router)
app.include_router(transfer_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}
