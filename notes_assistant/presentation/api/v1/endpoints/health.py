"""Health check endpoint — always available, reports backend readiness."""

from fastapi import APIRouter, Request

from notes_assistant.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Returns the current application health status."""
    settings = get_settings()
    container = getattr(request.app.state, "container", None)
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "embedding_backend": settings.embedding_backend,
        "embedder_ready": bool(container and container.embedder.is_ready),
        "hosted_llm_configured": settings.hosted_llm_configured,
    }
