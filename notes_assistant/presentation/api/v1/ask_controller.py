"""Ask API controller — questions answered from an owner's notes."""

from fastapi import APIRouter, Depends, HTTPException

from notes_assistant.application.schemas.ask import (
    AnswerSourceSchema,
    AskRequest,
    AskResponse,
)
from notes_assistant.application.services.assistant_service import (
    AskParams,
    KnowledgeAssistantService,
)
from notes_assistant.domain.entities import RAGAnswer
from notes_assistant.infrastructure.dependencies import get_assistant_service

router = APIRouter(prefix="/ask", tags=["ask"])


def _to_response(answer: RAGAnswer) -> AskResponse:
    return AskResponse(
        answer=answer.answer,
        sources=[
            AnswerSourceSchema(
                source_id=s.source_id,
                source_type=s.source_type,
                source_title=s.source_title,
                chunk_id=s.chunk_id,
                snippet=s.snippet,
                score=s.score,
                page_number=s.page_number,
            )
            for s in answer.sources
        ],
        used=answer.used,
        reference_url=answer.reference_url,
    )


@router.post("", response_model=AskResponse)
async def ask_from_notes(
    body: AskRequest,
    service: KnowledgeAssistantService = Depends(get_assistant_service),
):
    """Answer a question from the owner's notes, falling back to web knowledge."""
    params = AskParams(
        owner_id=body.owner_id,
        question=body.question,
        top_k=body.top_k,
        max_context_chars=body.max_context_chars,
        prefer_local_llm=body.prefer_local_llm,
        min_score=body.min_score,
        min_top_score=body.min_top_score,
        max_notes=body.max_notes,
        max_chunks_per_note=body.max_chunks_per_note,
        device_profile=body.device_profile,
    )
    try:
        answer = await service.ask_from_notes(params)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(answer)
