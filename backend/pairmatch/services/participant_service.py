"""
Participant registration, role selection, skills and preferences
"""
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from pairmatch.core.contracts import ActiveMatchInfo, ParticipantStatus
from pairmatch.core.exceptions import NotFoundError, PreconditionFailedError
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.models.catalog import Theme
from pairmatch.models.match import Match, MatchParticipant, MatchStatus
from pairmatch.models.participant import (Participant, ParticipantPreference,
                                          ParticipantRole)

logger = LoggingConfig.get_logger(__name__)


def normalize_skills(skills: Optional[Iterable[str]]) -> List[str]:
    """Strip, drop blanks and duplicates; skills are a set, stored sorted"""
    return sorted({s.strip() for s in (skills or []) if s and s.strip()})


class ParticipantService:
    """Service for managing participants"""

    def __init__(self, db: Session):
        self.db = db

    def get_participant(self, participant_id: UUID) -> Participant:
        participant = self.db.query(Participant).filter(Participant.id == participant_id).first()
        if not participant:
            raise NotFoundError("Participant", "id", participant_id)
        return participant

    def register(
        self,
        display_name: str,
        surname: Optional[str] = None,
        github_url: Optional[str] = None,
        bio: Optional[str] = None,
        skills: Optional[Iterable[str]] = None,
        role: Optional[ParticipantRole] = None,
    ) -> Participant:
        """
        Create a participant.

        Raises:
            PreconditionFailedError: github_url is already registered
        """
        if github_url:
            exists = self.db.query(Participant.id).filter(Participant.github_url == github_url).first()
            if exists:
                raise PreconditionFailedError(f"Participant with github_url '{github_url}' already exists")

        participant = Participant(
            display_name=display_name.strip(),
            surname=surname.strip() if surname else None,
            github_url=github_url,
            bio=bio,
            skills=normalize_skills(skills),
            role=role.value if role else None,
        )
        self.db.add(participant)
        self.db.commit()
        self.db.refresh(participant)

        logger.info(
            f"Registered participant {participant.id}",
            extra={"participant_id": str(participant.id), "role": participant.role},
        )
        return participant

    def _active_match(self, participant_id: UUID) -> Optional[Match]:
        return self.db.execute(
            select(Match)
            .join(MatchParticipant, MatchParticipant.match_id == Match.id)
            .where(
                MatchParticipant.participant_id == participant_id,
                Match.status == MatchStatus.ACTIVE.value,
            )
            .limit(1)
        ).scalar()

    def select_role(self, participant_id: UUID, role: ParticipantRole) -> Participant:
        """
        Set the participant's role.

        The write is conditional on the participant still being unqueued with the
        role read here, so it cannot interleave with a match request for them.

        Raises:
            NotFoundError: unknown participant
            PreconditionFailedError: participant is queued or in an ACTIVE match
        """
        participant = self.get_participant(participant_id)

        if participant.role == role.value:
            return participant
        if self._active_match(participant.id) is not None:
            raise PreconditionFailedError("Cannot change role while in an active match")
        if participant.is_waiting:
            raise PreconditionFailedError("Cannot change role while waiting for a match")

        old_role = participant.role
        same_role = Participant.role.is_(None) if old_role is None else Participant.role == old_role
        result = self.db.execute(
            update(Participant)
            .where(Participant.id == participant.id, Participant.waiting_since.is_(None), same_role)
            .values(role=role.value)
            .execution_options(synchronize_session=False)
        )
        # The row is locked now; a match committed before that is visible here
        if result.rowcount != 1 or self._active_match(participant.id) is not None:
            self.db.rollback()
            raise PreconditionFailedError(
                f"Participant {participant_id} joined the queue or a match while changing role, please retry"
            )
        self.db.commit()
        self.db.refresh(participant)

        logger.info(
            f"Participant {participant_id} changed role from {old_role} to {role.value}",
            extra={"participant_id": str(participant_id), "role": role.value},
        )
        return participant

    def update_skills(self, participant_id: UUID, skills: Iterable[str]) -> Participant:
        participant = self.get_participant(participant_id)
        participant.skills = normalize_skills(skills)
        self.db.commit()
        self.db.refresh(participant)
        return participant

    def update_preferences(
        self,
        participant_id: UUID,
        difficulty: Optional[int] = None,
        theme_codes: Optional[Iterable[str]] = None,
        learning_goals: Optional[str] = None,
    ) -> ParticipantPreference:
        """
        Replace the participant's preferences.

        Raises:
            NotFoundError: unknown participant or theme code
            ValueError: difficulty outside 1-5 or learning goals too long
        """
        if difficulty is not None and not 1 <= difficulty <= 5:
            raise ValueError("difficulty must be between 1 and 5")
        if learning_goals is not None and len(learning_goals) > 500:
            raise ValueError("learning_goals must be at most 500 characters")

        participant = self.get_participant(participant_id)

        codes = sorted({c.strip() for c in (theme_codes or []) if c and c.strip()})
        themes = self.db.query(Theme).filter(Theme.code.in_(codes)).all() if codes else []
        missing = set(codes) - {t.code for t in themes}
        if missing:
            raise NotFoundError("Theme", "code", sorted(missing)[0])

        preference = participant.preference
        if preference is None:
            preference = ParticipantPreference(participant_id=participant.id)
            participant.preference = preference

        preference.difficulty = difficulty
        preference.preferred_themes = themes
        preference.learning_goals = learning_goals.strip() if learning_goals and learning_goals.strip() else None

        self.db.commit()
        self.db.refresh(preference)

        logger.info(
            f"Updated preferences of participant {participant_id}",
            extra={"participant_id": str(participant_id), "difficulty": difficulty, "themes": codes},
        )
        return preference

    def get_status(self, participant_id: UUID) -> ParticipantStatus:
        """Profile plus the active match (partner and assignment) if there is one"""
        participant = self.get_participant(participant_id)
        match = self._active_match(participant.id)

        active_match = None
        if match is not None:
            partner = next(
                (link.participant for link in match.participants if link.participant_id != participant.id),
                None,
            )
            assignment = match.assignment
            active_match = ActiveMatchInfo(
                match_id=match.id,
                communication_link=match.communication_link,
                partner_name=partner.full_name if partner else "",
                partner_role=partner.role if partner else "",
                partner_skills=sorted(partner.skill_set) if partner else [],
                assignment_title=assignment.title if assignment else None,
                assignment_description=assignment.description if assignment else None,
            )

        return ParticipantStatus(
            id=participant.id,
            display_name=participant.display_name,
            surname=participant.surname,
            github_url=participant.github_url,
            bio=participant.bio,
            role=participant.role,
            skills=sorted(participant.skill_set),
            waiting_since=participant.waiting_since,
            has_active_match=match is not None,
            active_match=active_match,
        )
