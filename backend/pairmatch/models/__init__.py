"""
SQLAlchemy models
"""
from pairmatch.core.database import Base
# Import all models here so Alembic can detect them
from pairmatch.models.assignment import Assignment, SprintReview  # noqa: F401
from pairmatch.models.catalog import Archetype, Theme  # noqa: F401
from pairmatch.models.match import (ALLOWED_TRANSITIONS,  # noqa: F401
                                    Match, MatchCompletion, MatchParticipant,
                                    MatchStatus)
from pairmatch.models.participant import (Participant,  # noqa: F401
                                          ParticipantPreference,
                                          ParticipantRole,
                                          participant_preferred_themes)

__all__ = [
    "Base",
    "Assignment",
    "SprintReview",
    "Archetype",
    "Theme",
    "ALLOWED_TRANSITIONS",
    "Match",
    "MatchCompletion",
    "MatchParticipant",
    "MatchStatus",
    "Participant",
    "ParticipantPreference",
    "ParticipantRole",
    "participant_preferred_themes",
]
