"""
Domain exceptions for matching, completion and generation
"""
from typing import Any, Optional


class PairMatchError(Exception):
    """Base class for all domain errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PairMatchError):
    """Unknown participant, match or catalog entry"""

    def __init__(self, resource: str, field: str, value: Any):
        super().__init__(f"{resource} not found with {field}: '{value}'")
        self.resource = resource
        self.field = field
        self.value = value


class PreconditionFailedError(PairMatchError):
    """The request is well formed but the current state does not allow it"""


class RoleNotSelectedError(PreconditionFailedError):
    """Participant must choose FRONTEND or BACKEND before matching"""

    def __init__(self, participant_id: Any):
        super().__init__(
            f"Participant {participant_id} must select a role before requesting a match"
        )
        self.participant_id = participant_id


class AlreadyMatchedError(PreconditionFailedError):
    """Participant already has an ACTIVE match"""

    def __init__(self, participant_id: Any):
        super().__init__(f"Participant {participant_id} already has an active match")
        self.participant_id = participant_id


class InvalidMatchStateError(PreconditionFailedError):
    """Operation requires a different match status"""

    def __init__(self, match_id: Any, status: Any, expected: Any):
        super().__init__(
            f"Match {match_id} cannot be completed. Current status: {status}. "
            f"Only {expected} matches can be completed."
        )
        self.match_id = match_id
        self.status = status


class InvalidStatusTransitionError(PreconditionFailedError):
    """Match status change not allowed by the status machine"""


class ForbiddenError(PairMatchError):
    """Caller is not allowed to act on the resource"""


class CatalogEmptyError(PairMatchError):
    """No active archetypes or themes are configured"""


class ExternalServiceDegradedError(PairMatchError):
    """An external collaborator failed; callers absorb this into fallback content"""


class GenerationError(ExternalServiceDegradedError):
    """Generation service call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(GenerationError):
    """Generation service answered 429 Too Many Requests"""

    def __init__(self, message: str = "Too Many Requests", retry_after: Optional[float] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class ReadmeNotFoundError(ExternalServiceDegradedError):
    """README.md could not be fetched from either default branch"""

    def __init__(self, owner: str, repo: str):
        super().__init__(f"README.md not found in repository {owner}/{repo} on main or master branch")
        self.owner = owner
        self.repo = repo
