"""
API routes for participants
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pairmatch.core.auth import get_current_participant_id
from pairmatch.core.contracts import ParticipantStatus
from pairmatch.core.database import get_db
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.models.participant import Participant, ParticipantRole
from pairmatch.services.participant_service import ParticipantService

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/participants", tags=["participants"])


class ParticipantCreateRequest(BaseModel):
    """Request model for registering a participant"""
    display_name: str = Field(..., min_length=1, max_length=100, description="Display name")
    surname: Optional[str] = Field(None, max_length=100, description="Surname")
    github_url: Optional[str] = Field(None, max_length=255, description="GitHub profile URL")
    bio: Optional[str] = Field(None, max_length=255, description="Short bio or title")
    skills: List[str] = Field(default_factory=list, description="Tech stack")
    role: Optional[ParticipantRole] = Field(None, description="FRONTEND or BACKEND")


class RoleSelectionRequest(BaseModel):
    role: ParticipantRole


class SkillsUpdateRequest(BaseModel):
    skills: List[str] = Field(default_factory=list)


class PreferencesUpdateRequest(BaseModel):
    """Request model for assignment preferences"""
    difficulty: Optional[int] = Field(None, ge=1, le=5, description="Preferred difficulty (1-5)")
    theme_codes: List[str] = Field(default_factory=list, description="Preferred theme codes")
    learning_goals: Optional[str] = Field(None, max_length=500, description="What the participant wants to learn")


class ParticipantResponse(BaseModel):
    """Participant response model"""
    id: str
    display_name: str
    surname: Optional[str]
    github_url: Optional[str]
    bio: Optional[str]
    role: Optional[str]
    skills: List[str]
    created_at: str


class PreferencesResponse(BaseModel):
    difficulty: Optional[int]
    theme_codes: List[str]
    learning_goals: Optional[str]


def _to_response(participant: Participant) -> ParticipantResponse:
    return ParticipantResponse(
        id=str(participant.id),
        display_name=participant.display_name,
        surname=participant.surname,
        github_url=participant.github_url,
        bio=participant.bio,
        role=participant.role,
        skills=sorted(participant.skill_set),
        created_at=participant.created_at.isoformat(),
    )


@router.post("", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def register_participant(
    request: ParticipantCreateRequest,
    db: Session = Depends(get_db),
):
    """Register a new participant"""
    participant = ParticipantService(db).register(
        display_name=request.display_name,
        surname=request.surname,
        github_url=request.github_url,
        bio=request.bio,
        skills=request.skills,
        role=request.role,
    )
    return _to_response(participant)


@router.get("/me", response_model=ParticipantStatus)
async def get_me(
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    """Profile and active match of the caller"""
    return ParticipantService(db).get_status(participant_id)


@router.patch("/me/role", response_model=ParticipantResponse)
async def select_role(
    request: RoleSelectionRequest,
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    participant = ParticipantService(db).select_role(participant_id, request.role)
    return _to_response(participant)


@router.put("/me/skills", response_model=ParticipantResponse)
async def update_skills(
    request: SkillsUpdateRequest,
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    participant = ParticipantService(db).update_skills(participant_id, request.skills)
    return _to_response(participant)


@router.put("/me/preferences", response_model=PreferencesResponse)
async def update_preferences(
    request: PreferencesUpdateRequest,
    participant_id: UUID = Depends(get_current_participant_id),
    db: Session = Depends(get_db),
):
    """Replace difficulty, preferred themes and learning goals"""
    preference = ParticipantService(db).update_preferences(
        participant_id,
        difficulty=request.difficulty,
        theme_codes=request.theme_codes,
        learning_goals=request.learning_goals,
    )
    return PreferencesResponse(
        difficulty=preference.difficulty,
        theme_codes=sorted(preference.theme_codes),
        learning_goals=preference.learning_goals,
    )
