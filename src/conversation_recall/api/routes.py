"""Chat router: finalize webhook, search and read endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from conversation_recall.api.schemas import FinalizeWebhook, ServiceResponse, SessionEnded
from conversation_recall.conversation_service import ConversationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_service(request: Request) -> ConversationService:
    return request.app.state.service


@router.post("/end", response_model=ServiceResponse)
async def end_chat(
    payload: FinalizeWebhook,
    background_tasks: BackgroundTasks,
    service: ConversationService = Depends(get_service),
):
    """End a chat session; summarization and indexing run after the response."""
    session = service.end_session(
        chat_id=payload.chat_id,
        owner=payload.owner,
        end_timestamp=payload.timestamp,
        metadata=payload.metadata,
        user_id=payload.user_id,
    )
    background_tasks.add_task(service.process_ended_session, session)

    return ServiceResponse(
        success=True,
        data=SessionEnded(
            chat_id=session.chat_id,
            owner=session.owner,
            status=session.status,
            duration=session.duration,
            ended_at=session.ended_at,
        ),
        message="Chat session ended, summary processing started",
    )


@router.get("/search", response_model=ServiceResponse)
async def search_conversations(
    q: str = Query(..., min_length=1),
    owner: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=20),
    service: ConversationService = Depends(get_service),
):
    """Semantic search across conversation summaries."""
    response = await service.search(q, owner=owner, top_k=limit)
    return ServiceResponse(
        success=True,
        data=response,
        message=f"Found {response.total_found} relevant conversations",
    )


@router.get("/search/owner/{owner}", response_model=ServiceResponse)
async def search_owner_conversations(
    owner: str,
    q: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=50),
    service: ConversationService = Depends(get_service),
):
    """Search one owner's conversations, or list them newest first without ``q``."""
    response = await service.search_user_conversations(owner, query=q, top_k=limit)
    return ServiceResponse(
        success=True,
        data=response,
        message=f"Found {response.total_found} conversations for {owner}",
    )


@router.get("/session/{chat_id}", response_model=ServiceResponse)
def get_session(chat_id: str, service: ConversationService = Depends(get_service)):
    session = service.get_session(chat_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return ServiceResponse(success=True, data=session)


@router.get("/sessions/{owner}", response_model=ServiceResponse)
def list_sessions(owner: str, service: ConversationService = Depends(get_service)):
    sessions = service.list_sessions(owner)
    return ServiceResponse(success=True, data=sessions, message=f"{len(sessions)} sessions")


@router.get("/summary/{chat_id}", response_model=ServiceResponse)
def get_summary(chat_id: str, service: ConversationService = Depends(get_service)):
    summary = service.get_summary(chat_id)
    if not summary:
        raise HTTPException(status_code=404, detail="Summary not found")
    return ServiceResponse(success=True, data=summary)


@router.get("/summaries/{owner}", response_model=ServiceResponse)
def list_summaries(owner: str, service: ConversationService = Depends(get_service)):
    summaries = service.list_summaries(owner)
    return ServiceResponse(success=True, data=summaries, message=f"{len(summaries)} summaries")
