"""
Match, participant link and completion models
"""
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import (CheckConstraint, Column, DateTime, ForeignKey, Index,
                        String, UniqueConstraint, Uuid)
from sqlalchemy.orm import relationship

from pairmatch.core.database import Base
from pairmatch.core.exceptions import InvalidStatusTransitionError


class MatchStatus(str, Enum):
    """
    Match status enumeration.

    CREATED is a legal pre-state that the current pairing flow never leaves a
    match in (matches are created ACTIVE); a pending-acceptance step would use it.
    """
    CREATED = "CREATED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


ALLOWED_TRANSITIONS = {
    MatchStatus.CREATED: {MatchStatus.ACTIVE},
    MatchStatus.ACTIVE: {MatchStatus.COMPLETED},
    MatchStatus.COMPLETED: set(),
}


class Match(Base):
    """A pairing of exactly one FRONTEND and one BACKEND participant"""
    __tablename__ = "matches"

    id = Column(Uuid, primary_key=True, default=uuid4)
    status = Column(
        String(20),
        CheckConstraint("status IN ('CREATED', 'ACTIVE', 'COMPLETED')", name="ck_matches_status"),
        nullable=False,
        default=MatchStatus.CREATED.value,
        index=True,
    )
    communication_link = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    participants = relationship("MatchParticipant", back_populates="match", cascade="all, delete-orphan")
    assignment = relationship("Assignment", back_populates="match", uselist=False, cascade="all, delete-orphan")
    completion = relationship("MatchCompletion", back_populates="match", uselist=False, cascade="all, delete-orphan")

    @property
    def status_enum(self) -> MatchStatus:
        return MatchStatus(self.status)

    def can_transition_to(self, new_status: MatchStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status_enum]

    def transition_to(self, new_status: MatchStatus):
        """Move to `new_status` or raise InvalidStatusTransitionError"""
        if not self.can_transition_to(new_status):
            raise InvalidStatusTransitionError(
                f"Match {self.id} cannot move from {self.status} to {new_status.value}"
            )
        self.status = new_status.value

    def has_participant(self, participant_id) -> bool:
        return any(link.participant_id == participant_id for link in self.participants)

    def __repr__(self):
        return f"<Match(id={self.id}, status={self.status})>"


class MatchParticipant(Base):
    """Join record: one row per participant per match"""
    __tablename__ = "match_participants"

    id = Column(Uuid, primary_key=True, default=uuid4)
    match_id = Column(Uuid, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Uuid, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    role = Column(
        String(20),
        CheckConstraint("role IN ('FRONTEND', 'BACKEND')", name="ck_match_participants_role"),
        nullable=False,
    )

    match = relationship("Match", back_populates="participants")
    participant = relationship("Participant")

    __table_args__ = (
        UniqueConstraint("match_id", "participant_id", name="uq_match_participant"),
        UniqueConstraint("match_id", "role", name="uq_match_role"),
        Index("idx_match_participants_participant", "participant_id"),
    )

    def __repr__(self):
        return f"<MatchParticipant(match_id={self.match_id}, participant_id={self.participant_id}, role={self.role})>"


class MatchCompletion(Base):
    """Completion record of a match, optionally with the submitted repository"""
    __tablename__ = "match_completions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    match_id = Column(Uuid, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, unique=True)
    completed_by = Column(Uuid, ForeignKey("participants.id"), nullable=False)
    completed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    repo_url = Column(String(500), nullable=True)

    match = relationship("Match", back_populates="completion")

    def __repr__(self):
        return f"<MatchCompletion(match_id={self.match_id}, repo_url={self.repo_url})>"
