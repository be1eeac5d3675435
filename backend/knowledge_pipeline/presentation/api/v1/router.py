"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from knowledge_pipeline.presentation.api.v1.endpoints.health import router as health_router
from knowledge_pipeline.presentation.api.v1.endpoints.knowledgebase import (
    router as knowledgebase_router,
)

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(knowledgebase_router)
