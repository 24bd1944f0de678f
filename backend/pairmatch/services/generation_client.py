"""
Assignment generation through the chat-completion service, with fallback
"""
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pairmatch.core.config import Settings, get_settings
from pairmatch.core.exceptions import ExternalServiceDegradedError
from pairmatch.core.llm_client import ChatCompletionClient
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.metrics import (generation_duration_seconds,
                                    generation_requests_total)
from pairmatch.core.retry import is_rate_limited, retry_with_backoff

logger = LoggingConfig.get_logger(__name__)

FALLBACK_TITLE = "Collaborative Mini Project"

FALLBACK_DESCRIPTION = (
    "Build a simple but impressive web application together!\n"
    "\n"
    "✨ What makes this special: You get to decide the direction!\n"
    "\n"
    "📡 Suggested API Contract:\n"
    "• [POST] /api/auth/register - User registration\n"
    "• [POST] /api/auth/login - User login with JWT\n"
    "• [GET] /api/items - List items with pagination\n"
    "• [POST] /api/items - Create new item\n"
    "• [GET] /api/items/{id} - Get item details\n"
    "\n"
    "🎨 Frontend Tasks:\n"
    "• Build login/register forms with validation\n"
    "• Create main dashboard with item listing\n"
    "• Implement create/edit item modal\n"
    "• Add responsive navigation\n"
    "\n"
    "⚙️ Backend Tasks:\n"
    "• Set up JWT authentication\n"
    "• Create database schema for items\n"
    "• Implement CRUD REST APIs\n"
    "• Add pagination and filtering\n"
)


@dataclass
class GeneratedAssignment:
    title: str
    description: str
    is_fallback: bool = False


def fallback_assignment(topic: Optional[str] = None) -> GeneratedAssignment:
    """Deterministic assignment that depends on nothing but the topic"""
    cleaned = (topic or "").strip()
    if cleaned:
        title = f"{cleaned[:1].upper()}{cleaned[1:]} {FALLBACK_TITLE}"
        description = f"Topic: {cleaned}\n\n{FALLBACK_DESCRIPTION}"
    else:
        title = FALLBACK_TITLE
        description = FALLBACK_DESCRIPTION
    return GeneratedAssignment(title=title, description=description, is_fallback=True)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def render_description(project: Dict[str, Any]) -> str:
    """
    Render the generated project as plain text.

    Order is fixed: pitch (plus wow factor), API contract, frontend tasks,
    backend tasks. Empty parts are skipped.
    """
    parts = []

    pitch = _text(project.get("description"))
    if pitch:
        parts.append(pitch)

    wow_factor = _text(project.get("wowFactor"))
    if wow_factor:
        parts.append(f"✨ What makes this special: {wow_factor}")

    endpoints = [e for e in _list(project.get("apiEndpoints")) if isinstance(e, dict)]
    if endpoints:
        lines = ["📡 API Contract:"]
        for endpoint in endpoints:
            lines.append(
                f"• [{_text(endpoint.get('method'))}] {_text(endpoint.get('path'))}"
                f" - {_text(endpoint.get('description'))}"
            )
        parts.append("\n".join(lines))

    for heading, key in (("🎨 Frontend Tasks:", "frontendTasks"), ("⚙️ Backend Tasks:", "backendTasks")):
        tasks = [_text(t) for t in _list(project.get(key)) if _text(t)]
        if tasks:
            parts.append("\n".join([heading] + [f"• {t}" for t in tasks]))

    return "\n\n".join(parts)


class GenerationClient:
    """
    Turns a composed prompt into an assignment.

    Only rate limiting (429) is retried, with exponential backoff. Every other
    failure, and exhausted retries, produce the fallback assignment instead of
    an exception, so a pairing never fails because generation did.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[ChatCompletionClient] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        self.settings = settings or get_settings()
        self.llm_client = llm_client or ChatCompletionClient(self.settings)
        self._complete_json = retry_with_backoff(
            max_attempts=self.settings.generation_max_attempts,
            base_delay=self.settings.generation_base_delay_seconds,
            multiplier=self.settings.generation_backoff_multiplier,
            retry_if=is_rate_limited,
            sleep=sleep,
        )(self.llm_client.complete_json)

    async def complete_json(self, prompt: str) -> Dict[str, Any]:
        """Raw JSON completion with the rate-limit retry policy applied"""
        return await self._complete_json(prompt)

    async def generate(self, prompt: str, topic: Optional[str] = None) -> GeneratedAssignment:
        start_time = time.time()
        try:
            project = await self.complete_json(prompt)
            title = _text(project.get("title"))
            if not title:
                raise ExternalServiceDegradedError("Generated project has no title")
            assignment = GeneratedAssignment(
                title=title[:255],
                description=render_description(project),
            )
            generation_requests_total.labels(kind="assignment", outcome="success").inc()
            logger.info(f"Generated assignment: '{assignment.title}'")
            return assignment
        except ExternalServiceDegradedError as e:
            generation_requests_total.labels(kind="assignment", outcome="fallback").inc()
            logger.error(
                f"Assignment generation failed, using fallback: {e}",
                extra={"error_type": type(e).__name__, "topic": topic},
            )
            return fallback_assignment(topic)
        except Exception as e:
            generation_requests_total.labels(kind="assignment", outcome="fallback").inc()
            logger.error(
                f"Unexpected error during assignment generation, using fallback: {e}",
                exc_info=True,
                extra={"error_type": type(e).__name__, "topic": topic},
            )
            return fallback_assignment(topic)
        finally:
            generation_duration_seconds.labels(kind="assignment").observe(time.time() - start_time)
