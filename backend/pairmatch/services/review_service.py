"""
README review of a completed match
"""
import time
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from pairmatch.core.exceptions import ExternalServiceDegradedError
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.metrics import (generation_duration_seconds,
                                    generation_requests_total)
from pairmatch.models.assignment import Assignment, SprintReview
from pairmatch.models.match import Match
from pairmatch.services.generation_client import GenerationClient
from pairmatch.services.readme_fetcher import ReadmeFetcher

logger = LoggingConfig.get_logger(__name__)

STORED_README_LIMIT = 9000
PROMPT_README_LIMIT = 4000
BASIC_REVIEW_SCORE = 50

NO_README_FEEDBACK = "No README content found"
BASIC_REVIEW_FEEDBACK = (
    "Review completed without assignment context comparison. "
    "The README was submitted successfully."
)
AI_FAILED_FEEDBACK = "AI analysis failed"


def truncate(content: Optional[str], limit: int) -> Optional[str]:
    if content is None or len(content) <= limit:
        return content
    return content[:limit] + "\n... [truncated]"


def clamp_score(value: Any, default: int = BASIC_REVIEW_SCORE) -> int:
    try:
        score = int(value)
    except (TypeError, ValueError):
        score = default
    return max(0, min(100, score))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def build_review_prompt(assignment: Assignment, readme_content: str) -> str:
    return f"""You are a Senior CTO auditing a completed one-week pair project.

ORIGINAL ASSIGNMENT
Title: {assignment.title}

{assignment.description}

SUBMITTED README
{truncate(readme_content, PROMPT_README_LIMIT)}

YOUR TASK
Evaluate how well the submitted README covers the original assignment.

Consider:
1. Does the solution address the core idea of the assignment?
2. Are the listed API endpoints and tasks implemented or documented?
3. Is the split between frontend and backend work visible?
4. Is the documentation clear and professional?

Return ONLY valid JSON (no markdown, no code blocks):
{{
  "score": <0-100 integer>,
  "feedback": "<2-3 sentence constructive feedback>",
  "strengths": ["<strength 1>", "<strength 2>"],
  "missing_elements": ["<missing 1>", "<missing 2>"]
}}"""


class ReviewService:
    """
    Reviews the README of a submitted repository against the match assignment.

    Never raises for external failures: every outcome is persisted as a
    SprintReview, with score 0 when the README or the analysis is unavailable.
    """

    def __init__(
        self,
        db: Session,
        generation_client: Optional[GenerationClient] = None,
        readme_fetcher: Optional[ReadmeFetcher] = None,
    ):
        self.db = db
        self.generation_client = generation_client or GenerationClient()
        self.readme_fetcher = readme_fetcher or ReadmeFetcher(self.generation_client.settings)

    def _save(self, review: SprintReview) -> SprintReview:
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def _empty_review(self, match: Match, repo_url: str, reason: str) -> SprintReview:
        return self._save(SprintReview(
            match_id=match.id,
            repo_url=repo_url,
            score=0,
            feedback=reason,
            strengths=[],
            missing_elements=[],
            readme_content=None,
        ))

    async def review(self, match: Match, repo_url: str) -> SprintReview:
        logger.info(
            f"Generating sprint review for match {match.id}",
            extra={"match_id": str(match.id), "repo_url": repo_url},
        )

        try:
            readme = await self.readme_fetcher.fetch_readme(repo_url)
        except (ValueError, ExternalServiceDegradedError) as e:
            logger.warning(f"README unavailable for match {match.id}: {e}")
            return self._empty_review(match, repo_url, f"Review generation failed: {e}")

        if not readme or not readme.strip():
            logger.warning(f"Empty README fetched for match {match.id}")
            return self._empty_review(match, repo_url, NO_README_FEEDBACK)

        assignment = match.assignment
        if assignment is None:
            logger.info(f"No assignment for match {match.id}, creating basic review")
            return self._save(SprintReview(
                match_id=match.id,
                repo_url=repo_url,
                score=BASIC_REVIEW_SCORE,
                feedback=BASIC_REVIEW_FEEDBACK,
                strengths=[],
                missing_elements=[],
                readme_content=truncate(readme, STORED_README_LIMIT),
            ))

        return await self._ai_review(match, repo_url, readme, assignment)

    async def _ai_review(self, match: Match, repo_url: str, readme: str, assignment: Assignment) -> SprintReview:
        start_time = time.time()
        try:
            result = await self.generation_client.complete_json(build_review_prompt(assignment, readme))
        except ExternalServiceDegradedError as e:
            generation_requests_total.labels(kind="review", outcome="fallback").inc()
            logger.error(f"AI review generation failed for match {match.id}: {e}")
            return self._empty_review(match, repo_url, AI_FAILED_FEEDBACK)
        finally:
            generation_duration_seconds.labels(kind="review").observe(time.time() - start_time)

        generation_requests_total.labels(kind="review", outcome="success").inc()
        review = self._save(SprintReview(
            match_id=match.id,
            repo_url=repo_url,
            score=clamp_score(result.get("score")),
            feedback=str(result.get("feedback") or "No feedback provided"),
            strengths=_string_list(result.get("strengths")),
            missing_elements=_string_list(result.get("missing_elements")),
            readme_content=truncate(readme, STORED_README_LIMIT),
        ))
        logger.info(
            f"Generated AI review for match {match.id} with score {review.score}",
            extra={"match_id": str(match.id), "score": review.score},
        )
        return review
