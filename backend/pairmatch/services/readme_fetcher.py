"""
README download from public GitHub repositories
"""
import re
from typing import Any, Callable, Optional, Tuple

import httpx

from pairmatch.core.config import Settings, get_settings
from pairmatch.core.exceptions import RateLimitedError, ReadmeNotFoundError
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.retry import is_rate_limited, retry_with_backoff

logger = LoggingConfig.get_logger(__name__)

GITHUB_URL_PATTERN = re.compile(r"^https?://github\.com/([^/]+)/([^/]+)/?.*$")
BRANCHES = ("main", "master")


def parse_repo_url(repo_url: str) -> Tuple[str, str]:
    """
    Extract (owner, repo) from a github.com URL.

    Raises:
        ValueError: the URL does not point at a GitHub repository
    """
    match = GITHUB_URL_PATTERN.match((repo_url or "").strip())
    if not match:
        raise ValueError(f"Invalid GitHub repository URL: {repo_url}")
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[:-4]
    return owner, repo


class ReadmeFetcher:
    """Fetches README.md from the main branch, falling back to master"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        self.settings = settings or get_settings()
        self._http_client = http_client
        self._fetch = retry_with_backoff(
            max_attempts=self.settings.generation_max_attempts,
            base_delay=self.settings.generation_base_delay_seconds,
            multiplier=self.settings.generation_backoff_multiplier,
            retry_if=is_rate_limited,
            sleep=sleep,
        )(self._fetch_once)

    def _raw_url(self, owner: str, repo: str, branch: str) -> str:
        base = self.settings.github_raw_base_url.rstrip("/")
        return f"{base}/{owner}/{repo}/{branch}/README.md"

    async def _get(self, url: str) -> httpx.Response:
        headers = {"Accept": "text/plain", "User-Agent": "PairMatch/1.0"}
        timeout = httpx.Timeout(self.settings.readme_timeout_seconds)
        if self._http_client is not None:
            return await self._http_client.get(url, headers=headers, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.get(url, headers=headers)

    async def _try_branch(self, owner: str, repo: str, branch: str) -> Optional[str]:
        """README text, or None when this branch has none"""
        url = self._raw_url(owner, repo, branch)
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            logger.error(f"Error fetching README from {branch} branch for {owner}/{repo}: {e}")
            return None

        if response.status_code == 429:
            raise RateLimitedError("GitHub rate limit reached while fetching README")
        if response.status_code == 404:
            logger.debug(f"README.md not found at {branch} for {owner}/{repo}")
            return None
        if response.status_code == 403:
            logger.warning(f"Access forbidden for {owner}/{repo} - repository may be private")
            return None
        if response.status_code >= 400:
            logger.error(f"HTTP {response.status_code} fetching README from {branch} branch for {owner}/{repo}")
            return None
        return response.text

    async def _fetch_once(self, owner: str, repo: str) -> str:
        for branch in BRANCHES:
            content = await self._try_branch(owner, repo, branch)
            if content is not None:
                logger.info(f"Fetched README from {branch} branch for {owner}/{repo}")
                return content

        logger.warning(f"README.md not found in repository {owner}/{repo} on main or master branch")
        raise ReadmeNotFoundError(owner, repo)

    async def fetch_readme(self, repo_url: str) -> str:
        """
        Download README.md of the repository behind `repo_url`.

        Raises:
            ValueError: invalid repository URL
            ReadmeNotFoundError: neither branch has a README
            RateLimitedError: still rate limited after all attempts
        """
        owner, repo = parse_repo_url(repo_url)
        logger.info(f"Fetching README from repository: {owner}/{repo}")
        return await self._fetch(owner, repo)
