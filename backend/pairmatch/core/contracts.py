"""
Result contracts returned by the matching and completion services.

The HTTP layer serialises these directly, so they carry only plain values.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PartnerSummary(BaseModel):
    participant_id: UUID
    name: str
    role: str


class AssignmentSummary(BaseModel):
    title: str
    description: str
    archetype_code: Optional[str] = None
    theme_code: Optional[str] = None
    target_complexity: Optional[int] = None
    is_fallback: bool = False


class MatchedResult(BaseModel):
    status: Literal["MATCHED"] = "MATCHED"
    match_id: UUID
    communication_link: Optional[str] = None
    partner: PartnerSummary
    assignment: AssignmentSummary


class WaitingResult(BaseModel):
    status: Literal["WAITING"] = "WAITING"
    waiting_since: datetime
    queue_position: int = Field(..., ge=1)


class QueueStatus(BaseModel):
    status: Literal["IDLE", "WAITING", "MATCHED"] = "IDLE"
    waiting_since: Optional[datetime] = None
    queue_position: Optional[int] = None
    match_id: Optional[UUID] = None


class ReviewSummary(BaseModel):
    score: int = Field(..., ge=0, le=100)
    feedback: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    missing_elements: List[str] = Field(default_factory=list)


class CompletionResult(BaseModel):
    status: Literal["COMPLETED"] = "COMPLETED"
    match_id: UUID
    completed_at: datetime
    repo_url: Optional[str] = None
    review: Optional[ReviewSummary] = None


class ActiveMatchInfo(BaseModel):
    match_id: UUID
    communication_link: Optional[str] = None
    partner_name: str
    partner_role: str
    partner_skills: List[str] = Field(default_factory=list)
    assignment_title: Optional[str] = None
    assignment_description: Optional[str] = None


class ParticipantStatus(BaseModel):
    id: UUID
    display_name: str
    surname: Optional[str] = None
    github_url: Optional[str] = None
    bio: Optional[str] = None
    role: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    waiting_since: Optional[datetime] = None
    has_active_match: bool = False
    active_match: Optional[ActiveMatchInfo] = None
