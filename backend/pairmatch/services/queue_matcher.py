"""
FIFO matching of FRONTEND and BACKEND participants
"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from pairmatch.core.config import Settings, get_settings
from pairmatch.core.contracts import (AssignmentSummary, MatchedResult,
                                      PartnerSummary, QueueStatus,
                                      WaitingResult)
from pairmatch.core.exceptions import (AlreadyMatchedError, CatalogEmptyError,
                                       NotFoundError, PreconditionFailedError,
                                       RoleNotSelectedError)
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.metrics import (claim_conflicts_total,
                                    match_requests_total,
                                    queue_cancellations_total)
from pairmatch.models.assignment import Assignment
from pairmatch.models.match import Match, MatchParticipant, MatchStatus
from pairmatch.models.participant import Participant, ParticipantRole
from pairmatch.services.generation_client import (GeneratedAssignment,
                                                  GenerationClient,
                                                  fallback_assignment)
from pairmatch.services.prompt_composer import build_prompt
from pairmatch.services.selector import SelectionResult, Selector

logger = LoggingConfig.get_logger(__name__)

# Returned by _attempt when the requester's own row changed under us
_SELF_CHANGED = object()

TOPIC_MAX_LENGTH = Assignment.__table__.c.topic.type.length


def normalize_topic(topic: Optional[str]) -> Optional[str]:
    """Strip the topic; blank means no topic"""
    if topic is None or not topic.strip():
        return None
    topic = topic.strip()
    if len(topic) > TOPIC_MAX_LENGTH:
        raise ValueError(f"topic must be at most {TOPIC_MAX_LENGTH} characters")
    return topic


def _active_match_participants():
    """Subquery of participant ids that are in an ACTIVE match"""
    return (
        select(MatchParticipant.participant_id)
        .join(Match, Match.id == MatchParticipant.match_id)
        .where(Match.status == MatchStatus.ACTIVE.value)
    )


class QueueMatcher:
    """
    Pairs a participant with the longest-waiting participant of the opposite role.

    The queue is every participant with a non-null `waiting_since`, ordered by
    (waiting_since, id). Claiming a partner is a conditional update that clears
    the partner's `waiting_since`, so each waiting participant is claimed at
    most once no matter how many matchers run concurrently.
    """

    def __init__(
        self,
        db: Session,
        generation_client: Optional[GenerationClient] = None,
        selector: Optional[Selector] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.generation_client = generation_client or GenerationClient(self.settings)
        self.selector = selector or Selector(db, default_complexity=self.settings.default_complexity)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_participant(self, participant_id: UUID) -> Participant:
        participant = self.db.query(Participant).filter(Participant.id == participant_id).first()
        if not participant:
            raise NotFoundError("Participant", "id", participant_id)
        return participant

    def _active_match_id(self, participant_id: UUID) -> Optional[UUID]:
        return self.db.execute(
            select(Match.id)
            .join(MatchParticipant, MatchParticipant.match_id == Match.id)
            .where(
                MatchParticipant.participant_id == participant_id,
                Match.status == MatchStatus.ACTIVE.value,
            )
            .limit(1)
        ).scalar()

    def _queue_position(self, participant: Participant) -> int:
        """1-based position among queued participants of the same role"""
        ahead = self.db.query(Participant).filter(
            Participant.role == participant.role,
            Participant.waiting_since.isnot(None),
            or_(
                Participant.waiting_since < participant.waiting_since,
                and_(
                    Participant.waiting_since == participant.waiting_since,
                    Participant.id < participant.id,
                ),
            ),
        ).count()
        return ahead + 1

    def _check_preconditions(self, participant_id: UUID) -> Participant:
        participant = self._get_participant(participant_id)
        if participant.role_enum is None:
            raise RoleNotSelectedError(participant_id)
        if self._active_match_id(participant.id) is not None:
            raise AlreadyMatchedError(participant_id)
        return participant

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    async def request_match(
        self,
        participant_id: UUID,
        topic: Optional[str] = None,
    ) -> Union[MatchedResult, WaitingResult]:
        """
        Pair the participant now, or put them in (or keep them in) the queue.

        Raises:
            NotFoundError: unknown participant
            RoleNotSelectedError: participant has no role yet
            AlreadyMatchedError: participant already has an ACTIVE match
            ValueError: topic longer than an assignment can store
        """
        topic = normalize_topic(topic)
        role_label = "unknown"
        try:
            for attempt in range(1, self.settings.claim_max_attempts + 1):
                self.db.expire_all()
                participant = self._check_preconditions(participant_id)
                role_label = participant.role

                outcome = self._attempt(participant)
                if outcome is _SELF_CHANGED:
                    logger.debug(
                        f"Queue entry of participant {participant_id} changed concurrently, re-evaluating",
                        extra={"participant_id": str(participant_id), "attempt": attempt},
                    )
                    continue

                if isinstance(outcome, Match):
                    match_requests_total.labels(role=role_label, outcome="matched").inc()
                    return await self._finish_match(outcome, participant_id, topic)

                match_requests_total.labels(role=role_label, outcome="waiting").inc()
                return self._waiting_result(participant_id)

            # Every attempt lost the race on our own row; the final state decides
            self.db.expire_all()
            participant = self._check_preconditions(participant_id)
            if participant.is_waiting:
                match_requests_total.labels(role=role_label, outcome="waiting").inc()
                return self._waiting_result(participant_id)
            raise PreconditionFailedError(
                f"Could not update queue entry of participant {participant_id}, please retry"
            )
        except PreconditionFailedError:
            match_requests_total.labels(role=role_label, outcome="rejected").inc()
            raise

    def _lock_self(self, participant: Participant, observed: Optional[datetime]) -> bool:
        """
        Compare-and-swap on our own row: `waiting_since` and `role` must still be
        what the preconditions saw. Writes back the observed `waiting_since`.

        Takes the row lock (the write lock on SQLite) for the rest of the
        transaction. False means a claim, cancel or role change got there first.
        """
        if observed is None:
            unchanged = Participant.waiting_since.is_(None)
        else:
            unchanged = Participant.waiting_since == observed
        result = self.db.execute(
            update(Participant)
            .where(Participant.id == participant.id, Participant.role == participant.role, unchanged)
            .values(waiting_since=observed)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _claim(self, candidate_id: UUID) -> bool:
        result = self.db.execute(
            update(Participant)
            .where(Participant.id == candidate_id, Participant.waiting_since.isnot(None))
            .values(waiting_since=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _candidate_query(self, participant: Participant, exclude: List[UUID], lock: bool = False):
        """Oldest waiting partner for `participant`, at most one row"""
        query = self.db.query(Participant.id).filter(
            Participant.role == participant.role_enum.opposite.value,
            Participant.id != participant.id,
            Participant.waiting_since.isnot(None),
            Participant.id.notin_(_active_match_participants()),
        )
        if exclude:
            query = query.filter(Participant.id.notin_(exclude))
        query = query.order_by(Participant.waiting_since, Participant.id).limit(1)
        if lock:
            # Concurrent matchers skip a row another one is claiming and take the next one
            query = query.with_for_update(skip_locked=True)
        return query

    def _next_candidate(self, participant: Participant, exclude: List[UUID]) -> Optional[UUID]:
        lock = self.db.get_bind().dialect.name == "postgresql"
        row = self._candidate_query(participant, exclude, lock=lock).first()
        return row.id if row else None

    def _claim_partner(self, participant: Participant) -> Optional[UUID]:
        """Claim the oldest claimable partner, one candidate at a time"""
        lost: List[UUID] = []
        while True:
            candidate_id = self._next_candidate(participant, lost)
            if candidate_id is None:
                return None
            if self._claim(candidate_id):
                return candidate_id
            lost.append(candidate_id)
            claim_conflicts_total.inc()
            logger.debug(f"Lost claim on participant {candidate_id}, trying next candidate")

    def _attempt(self, participant: Participant):
        """
        One claim transaction.

        Returns the committed Match, None when the participant is now queued,
        or _SELF_CHANGED when the attempt was rolled back.
        """
        observed = participant.waiting_since
        role = participant.role_enum

        if not self._lock_self(participant, observed):
            self.db.rollback()
            return _SELF_CHANGED

        if self._active_match_id(participant.id) is not None:
            self.db.rollback()
            raise AlreadyMatchedError(participant.id)

        partner_id = self._claim_partner(participant)

        if partner_id is None:
            if observed is None:
                self.db.execute(
                    update(Participant)
                    .where(Participant.id == participant.id)
                    .values(waiting_since=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
                logger.info(
                    f"Participant {participant.id} joined the {participant.role} queue",
                    extra={"participant_id": str(participant.id), "role": participant.role},
                )
            self.db.commit()
            return None

        self.db.execute(
            update(Participant)
            .where(Participant.id == participant.id)
            .values(waiting_since=None)
            .execution_options(synchronize_session=False)
        )

        match = Match(status=MatchStatus.CREATED.value)
        match.transition_to(MatchStatus.ACTIVE)
        match.participants = [
            MatchParticipant(participant_id=participant.id, role=role.value),
            MatchParticipant(participant_id=partner_id, role=role.opposite.value),
        ]
        self.db.add(match)
        self.db.commit()

        logger.info(
            f"Matched participant {participant.id} with {partner_id}",
            extra={
                "match_id": str(match.id),
                "participant_id": str(participant.id),
                "partner_id": str(partner_id),
            },
        )
        return match

    def _waiting_result(self, participant_id: UUID) -> WaitingResult:
        self.db.expire_all()
        participant = self._get_participant(participant_id)
        return WaitingResult(
            waiting_since=participant.waiting_since,
            queue_position=self._queue_position(participant),
        )

    async def _generate(self, frontend: Participant, backend: Participant, topic: Optional[str]):
        try:
            selection = self.selector.select(frontend, backend)
        except CatalogEmptyError as e:
            logger.error(f"Cannot select assignment inputs: {e}")
            return None, fallback_assignment(topic)

        prompt = build_prompt(
            frontend.skills,
            backend.skills,
            selection.archetype,
            selection.theme,
            selection.target_complexity,
            selection.frontend_learning_goals,
            selection.backend_learning_goals,
        )
        generated = await self.generation_client.generate(prompt, topic)
        return selection, generated

    async def _finish_match(self, match: Match, participant_id: UUID, topic: Optional[str]) -> MatchedResult:
        """Attach a generated assignment to a committed match; no row locks are held here"""
        self.db.expire_all()
        match = self.db.query(Match).filter(Match.id == match.id).one()
        by_role = {link.role: link.participant for link in match.participants}
        frontend = by_role[ParticipantRole.FRONTEND.value]
        backend = by_role[ParticipantRole.BACKEND.value]
        partner = backend if frontend.id == participant_id else frontend

        with LoggingConfig.bind(match_id=str(match.id)):
            selection, generated = await self._generate(frontend, backend, topic)
            assignment = self._persist_assignment(match, selection, generated, topic)

        return MatchedResult(
            match_id=match.id,
            communication_link=match.communication_link,
            partner=PartnerSummary(
                participant_id=partner.id,
                name=partner.full_name,
                role=partner.role,
            ),
            assignment=AssignmentSummary(
                title=assignment.title,
                description=assignment.description,
                archetype_code=selection.archetype.code if selection else None,
                theme_code=selection.theme.code if selection else None,
                target_complexity=assignment.target_complexity,
                is_fallback=assignment.is_fallback,
            ),
        )

    def _persist_assignment(
        self,
        match: Match,
        selection: Optional[SelectionResult],
        generated: GeneratedAssignment,
        topic: Optional[str],
    ) -> Assignment:
        start_date = date.today()
        assignment = Assignment(
            match_id=match.id,
            title=generated.title,
            description=generated.description,
            archetype_id=selection.archetype.id if selection else None,
            theme_id=selection.theme.id if selection else None,
            target_complexity=selection.target_complexity if selection else None,
            topic=topic,
            is_fallback=generated.is_fallback,
            start_date=start_date,
            end_date=start_date + timedelta(days=self.settings.project_duration_days),
        )
        self.db.add(assignment)
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    # ------------------------------------------------------------------
    # Queue maintenance
    # ------------------------------------------------------------------

    def cancel_waiting(self, participant_id: UUID) -> bool:
        """
        Leave the queue. A no-op when the participant is not queued.

        Returns True when this call removed the participant from the queue. False
        means they were not queued, which includes having just been claimed.
        """
        self._get_participant(participant_id)
        result = self.db.execute(
            update(Participant)
            .where(Participant.id == participant_id, Participant.waiting_since.isnot(None))
            .values(waiting_since=None)
            .execution_options(synchronize_session=False)
        )
        left = result.rowcount == 1
        self.db.commit()
        self.db.expire_all()

        if left:
            queue_cancellations_total.inc()
            logger.info(
                f"Participant {participant_id} left the queue",
                extra={"participant_id": str(participant_id)},
            )
        return left

    def queue_status(self, participant_id: UUID) -> QueueStatus:
        self.db.expire_all()
        participant = self._get_participant(participant_id)

        match_id = self._active_match_id(participant.id)
        if match_id is not None:
            return QueueStatus(status="MATCHED", match_id=match_id)
        if participant.is_waiting:
            return QueueStatus(
                status="WAITING",
                waiting_since=participant.waiting_since,
                queue_position=self._queue_position(participant),
            )
        return QueueStatus(status="IDLE")
