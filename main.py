"""
FastAPI Application - Entry Point

Document analysis API:
- /api/docAI/v1/analyze/file   upload → OCR extraction → chunked analysis → report
- /api/docAI/v1/health         cached health of the OCR and AI servers

The health monitor and the orchestrator are built in the lifespan and kept
on app.state. Components created by the caller (tests, embedding apps) are
left untouched.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import AI_SERVER_URL, OCR_SERVER_URL
from logs.logging_config import setup_logging, get_llm_logger
from health import router as health_router
from health.config import HEALTH_CACHE_ENABLED
from health.health_store import HealthStore
from health.monitor import ServiceHealthMonitor
from health.schemas import Dependency
from analysis import router as analysis_router
from analysis.orchestrator import AnalysisOrchestrator

logger = get_llm_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the health monitor on startup; stop it and close clients on shutdown."""
    setup_logging()

    store = None
    monitor = getattr(app.state, "health_monitor", None)
    if monitor is None:
        store = HealthStore() if HEALTH_CACHE_ENABLED else None
        monitor = ServiceHealthMonitor(
            {
                Dependency.AI_SERVER: AI_SERVER_URL,
                Dependency.OCR_SERVER: OCR_SERVER_URL,
            },
            store=store
        )
        app.state.health_monitor = monitor

    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = AnalysisOrchestrator(monitor)
        app.state.orchestrator = orchestrator

    await monitor.start()
    logger.info(f"[APP] Started | ai_server={AI_SERVER_URL} | ocr_server={OCR_SERVER_URL}")

    yield

    await monitor.stop()
    await orchestrator.close()
    if store is not None:
        await store.close()
    logger.info("[APP] Stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Document Analysis Utilities",
        description="Health-gated OCR extraction and chunked LLM document analysis.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(analysis_router)
    app.include_router(health_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
