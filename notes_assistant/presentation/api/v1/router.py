"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from notes_assistant.presentation.api.v1.endpoints.health import router as health_router
from notes_assistant.presentation.api.v1.ask_controller import router as ask_router
from notes_assistant.presentation.api.v1.indexing_controller import router as indexing_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(ask_router)
router.include_router(indexing_router)
