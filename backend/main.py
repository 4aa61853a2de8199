"""Run the FastAPI app for toolpilot."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from src.agent_orchestrator import SessionOrchestrator, configure_logging, load_config
from src.llm_core import create_provider
from src.routers import sessions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # configuration errors are fatal at startup
    config = load_config()
    configure_logging(config.logging.level)
    provider = await create_provider(config.provider_name(), config.provider_config())
    orchestrator = SessionOrchestrator(config, provider)
    app.state.orchestrator = orchestrator
    logger.info("toolpilot ready with %d configured server(s)", len(config.servers))
    try:
        yield
    finally:
        await orchestrator.shutdown()


app = FastAPI(title="toolpilot", version="0.1.0", lifespan=lifespan)
app.include_router(sessions_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
    )
