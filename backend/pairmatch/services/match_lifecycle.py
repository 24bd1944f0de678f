"""
Match completion
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pairmatch.core.contracts import CompletionResult, ReviewSummary
from pairmatch.core.exceptions import (ForbiddenError, InvalidMatchStateError,
                                       NotFoundError)
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.metrics import matches_completed_total
from pairmatch.models.match import Match, MatchCompletion, MatchStatus
from pairmatch.services.review_service import ReviewService

logger = LoggingConfig.get_logger(__name__)


class MatchLifecycle:
    """Moves ACTIVE matches to COMPLETED and triggers the optional README review"""

    def __init__(self, db: Session, review_service: Optional[ReviewService] = None):
        self.db = db
        self._review_service = review_service

    @property
    def review_service(self) -> ReviewService:
        if self._review_service is None:
            self._review_service = ReviewService(self.db)
        return self._review_service

    def get_match(self, match_id: UUID) -> Match:
        match = self.db.query(Match).filter(Match.id == match_id).first()
        if not match:
            raise NotFoundError("Match", "id", match_id)
        return match

    async def complete(
        self,
        match_id: UUID,
        participant_id: UUID,
        repo_url: Optional[str] = None,
    ) -> CompletionResult:
        """
        Complete a match on behalf of one of its participants.

        The completion is committed before the review runs; a failing review
        is logged and never undoes the completion.

        Raises:
            NotFoundError: unknown match
            InvalidMatchStateError: match is not ACTIVE
            ForbiddenError: caller is not a participant of the match
        """
        match = self.get_match(match_id)

        if match.status_enum != MatchStatus.ACTIVE:
            raise InvalidMatchStateError(match_id, match.status, MatchStatus.ACTIVE.value)

        if not match.has_participant(participant_id):
            raise ForbiddenError(f"Participant {participant_id} is not a participant in match {match_id}")

        repo_url = repo_url.strip() if repo_url and repo_url.strip() else None
        completed_at = datetime.now(timezone.utc)

        match.transition_to(MatchStatus.COMPLETED)
        match.completed_at = completed_at
        match.completion = MatchCompletion(
            completed_by=participant_id,
            completed_at=completed_at,
            repo_url=repo_url,
        )
        try:
            self.db.commit()
        except IntegrityError:
            # The other participant completed the match concurrently
            self.db.rollback()
            raise InvalidMatchStateError(match_id, MatchStatus.COMPLETED.value, MatchStatus.ACTIVE.value)

        matches_completed_total.labels(with_repo=str(repo_url is not None).lower()).inc()
        logger.info(
            f"Match {match_id} completed by participant {participant_id}",
            extra={"match_id": str(match_id), "participant_id": str(participant_id), "repo_url": repo_url},
        )

        review = None
        if repo_url:
            try:
                with LoggingConfig.bind(match_id=str(match_id)):
                    sprint_review = await self.review_service.review(match, repo_url)
                review = ReviewSummary(
                    score=sprint_review.score,
                    feedback=sprint_review.feedback,
                    strengths=sprint_review.strengths or [],
                    missing_elements=sprint_review.missing_elements or [],
                )
            except Exception as e:
                self.db.rollback()
                logger.error(
                    f"Review failed for match {match_id}, completion stands: {e}",
                    exc_info=True,
                    extra={"match_id": str(match_id)},
                )

        return CompletionResult(
            match_id=match_id,
            completed_at=completed_at,
            repo_url=repo_url,
            review=review,
        )
