"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from knowledge_pipeline.config import get_settings
from knowledge_pipeline.infrastructure.dependencies import build_container
from knowledge_pipeline.infrastructure.logging.log_config import setup_logging
from knowledge_pipeline.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — configure logging, build the shared pipeline graph."""
    settings = get_settings()
    setup_logging()

    if not settings.openai_api_key.strip():
        logger.warning("OPENAI_API_KEY is not configured; embedding requests will fail.")

    container = build_container(settings)
    app.state.container = container
    logger.info(
        "Pipeline ready — vector_store=%s, limiter=%r",
        container.vector_store.provider_name,
        container.limiter,
    )

    yield

    # Shutdown
    await container.aclose()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "knowledge_pipeline.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
