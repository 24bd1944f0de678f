"""
API routes for matching and match completion
"""
from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pairmatch.core.auth import get_current_participant_id
from pairmatch.core.contracts import (CompletionResult, MatchedResult,
                                      QueueStatus, WaitingResult)
from pairmatch.core.database import get_db
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.services.match_lifecycle import MatchLifecycle
from pairmatch.services.queue_matcher import QueueMatcher

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/matches", tags=["matches"])


class FindMatchRequest(BaseModel):
    """Request model for finding a partner"""
    topic: Optional[str] = Field(None, max_length=100, description="Optional topic for the assignment")


class CompleteMatchRequest(BaseModel):
    """Request model for completing a match"""
    repo_url: Optional[str] = Field(None, max_length=500, description="GitHub repository to review")


@router.post("/find", response_model=Union[MatchedResult, WaitingResult])
async def find_match(
    request: Optional[FindMatchRequest] = None,
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    """Pair the caller with a waiting partner, or queue the caller"""
    matcher = QueueMatcher(db)
    return await matcher.request_match(participant_id, topic=request.topic if request else None)


@router.delete("/queue", status_code=status.HTTP_204_NO_CONTENT)
async def leave_queue(
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    """Leave the waiting queue; succeeds when not queued"""
    QueueMatcher(db).cancel_waiting(participant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/status", response_model=QueueStatus)
async def match_status(
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    """Queue position, active match or idle"""
    return QueueMatcher(db).queue_status(participant_id)


@router.post("/{match_id}/complete", response_model=CompletionResult)
async def complete_match(
    match_id: UUID,
    request: Optional[CompleteMatchRequest] = None,
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    """Complete an active match, optionally submitting a repository for review"""
    lifecycle = MatchLifecycle(db)
    return await lifecycle.complete(match_id, participant_id, repo_url=request.repo_url if request else None)
