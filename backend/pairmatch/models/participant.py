"""
Participant and preference models
"""
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import (JSON, CheckConstraint, Column, DateTime, ForeignKey,
                        Index, Integer, String, Table, Uuid)
from sqlalchemy.orm import relationship

from pairmatch.core.database import Base


class ParticipantRole(str, Enum):
    """The two complementary roles that get paired"""
    FRONTEND = "FRONTEND"
    BACKEND = "BACKEND"

    @property
    def opposite(self) -> "ParticipantRole":
        return ParticipantRole.BACKEND if self is ParticipantRole.FRONTEND else ParticipantRole.FRONTEND


participant_preferred_themes = Table(
    "participant_preferred_themes",
    Base.metadata,
    Column("preference_id", Uuid, ForeignKey("participant_preferences.id", ondelete="CASCADE"), primary_key=True),
    Column("theme_id", Uuid, ForeignKey("themes.id", ondelete="CASCADE"), primary_key=True),
)


class Participant(Base):
    """
    A developer who can be paired.

    `waiting_since` doubles as the queue entry: non-null means the participant
    is waiting for a partner, and the queue is ordered by (waiting_since, id).
    """
    __tablename__ = "participants"

    id = Column(Uuid, primary_key=True, default=uuid4)
    display_name = Column(String(100), nullable=False)
    surname = Column(String(100), nullable=True)
    github_url = Column(String(255), nullable=True, unique=True)
    bio = Column(String(255), nullable=True)

    # Status - stored as String, values from ParticipantRole
    role = Column(
        String(20),
        CheckConstraint("role IN ('FRONTEND', 'BACKEND')", name="ck_participants_role"),
        nullable=True,
    )
    skills = Column(JSON, nullable=False, default=list)
    waiting_since = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    preference = relationship(
        "ParticipantPreference",
        back_populates="participant",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_participants_queue", "role", "waiting_since", "id"),
    )

    @property
    def role_enum(self):
        return ParticipantRole(self.role) if self.role else None

    @property
    def full_name(self) -> str:
        if self.surname:
            return f"{self.display_name} {self.surname}"
        return self.display_name

    @property
    def skill_set(self) -> set:
        return set(self.skills or [])

    @property
    def is_waiting(self) -> bool:
        return self.waiting_since is not None

    def __repr__(self):
        return f"<Participant(id={self.id}, role={self.role}, waiting_since={self.waiting_since})>"


class ParticipantPreference(Base):
    """Difficulty, theme and learning-goal preferences used when selecting an assignment"""
    __tablename__ = "participant_preferences"

    id = Column(Uuid, primary_key=True, default=uuid4)
    participant_id = Column(
        Uuid,
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    difficulty = Column(
        Integer,
        CheckConstraint("difficulty BETWEEN 1 AND 5", name="ck_preferences_difficulty"),
        nullable=True,
    )
    learning_goals = Column(String(500), nullable=True)

    participant = relationship("Participant", back_populates="preference")
    preferred_themes = relationship("Theme", secondary=participant_preferred_themes, lazy="selectin")

    @property
    def theme_codes(self) -> set:
        return {theme.code for theme in self.preferred_themes}

    def __repr__(self):
        return f"<ParticipantPreference(participant_id={self.participant_id}, difficulty={self.difficulty})>"
