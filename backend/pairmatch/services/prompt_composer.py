"""
Prompt composition for assignment generation.

The prompt is built from independent sections (role, team, archetype, theme,
complexity, learning goals, principles, output contract) joined by blank
lines, so each section can be tested and varied on its own.
"""
from typing import Iterable, NamedTuple, Optional

DEFAULT_FRONTEND_SKILLS = "React, TypeScript, CSS"
DEFAULT_BACKEND_SKILLS = "Python, FastAPI, PostgreSQL"
DEFAULT_COMPONENT_PATTERNS = "REST,CRUD"
DEFAULT_API_PATTERNS = "REST"
DEFAULT_EXAMPLE_ENTITIES = "item,category,user"

SECTION_SEPARATOR = "\n\n"


class ComplexityTier(NamedTuple):
    label: str
    frontend_tasks: str
    backend_tasks: str
    api_endpoints: str
    guidance: str


LOW_TIER = ComplexityTier(
    "Beginner-Friendly", "3-4", "3-4", "3-5",
    "Keep it simple and achievable.",
)
MID_TIER = ComplexityTier(
    "Intermediate", "4-6", "4-6", "4-8",
    "Balance between learning and achievability.",
)
HIGH_TIER = ComplexityTier(
    "Advanced", "5-7", "5-7", "6-10",
    "Include challenging patterns like real-time features, complex queries, "
    "or advanced state management.",
)


def complexity_tier(target_complexity: int) -> ComplexityTier:
    """Map a 1-5 complexity onto one of the three task-count tiers"""
    if target_complexity <= 1:
        return LOW_TIER
    if target_complexity == 2:
        return MID_TIER
    return HIGH_TIER


def _has_text(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def _format_skills(skills: Optional[Iterable[str]], default: str) -> str:
    cleaned = sorted({s.strip() for s in (skills or []) if s and s.strip()})
    return ", ".join(cleaned) if cleaned else default


def build_role_section() -> str:
    return (
        "You are a creative tech mentor helping two developers build something AWESOME together.\n"
        "Your job is to design a fun, achievable mini-project they can complete in 1 WEEK.\n"
        "The project should be portfolio-worthy and something developers are excited to build."
    )


def build_team_section(frontend_skills: Optional[Iterable[str]], backend_skills: Optional[Iterable[str]]) -> str:
    return (
        "THE TEAM:\n"
        f"Frontend Developer knows: {_format_skills(frontend_skills, DEFAULT_FRONTEND_SKILLS)}\n"
        f"Backend Developer knows: {_format_skills(backend_skills, DEFAULT_BACKEND_SKILLS)}"
    )


def build_archetype_section(archetype) -> str:
    return (
        "PROJECT STRUCTURE (follow this pattern):\n"
        f"Type: {archetype.display_name}\n"
        f"Description: {archetype.structure_description}\n"
        f"Component Patterns to use: {archetype.component_patterns or DEFAULT_COMPONENT_PATTERNS}\n"
        f"API Patterns to use: {archetype.api_patterns or DEFAULT_API_PATTERNS}\n"
        "\n"
        "Design the project around this structural pattern. The architecture should naturally "
        "follow the patterns listed above."
    )


def build_theme_section(theme) -> str:
    return (
        "PROJECT DOMAIN/THEME:\n"
        f"Theme: {theme.display_name}\n"
        f"Context: {theme.domain_context or theme.display_name}\n"
        f"Example domain entities: {theme.example_entities or DEFAULT_EXAMPLE_ENTITIES}\n"
        "\n"
        "The project must be set in this domain. Use domain-specific terminology, "
        "entities, and real-world scenarios from this field."
    )


def build_complexity_section(target_complexity: int) -> str:
    tier = complexity_tier(target_complexity)
    return (
        f"COMPLEXITY LEVEL: {tier.label}\n"
        f"{tier.frontend_tasks} frontend tasks, {tier.backend_tasks} backend tasks, "
        f"{tier.api_endpoints} API endpoints. {tier.guidance}"
    )


def build_learning_goals_section(
    frontend_goals: Optional[str],
    backend_goals: Optional[str],
) -> str:
    """Empty string when neither participant stated a goal"""
    if not _has_text(frontend_goals) and not _has_text(backend_goals):
        return ""

    lines = ["LEARNING GOALS (incorporate where natural):"]
    if _has_text(frontend_goals):
        lines.append(f"Frontend developer wants to learn: {frontend_goals.strip()}")
    if _has_text(backend_goals):
        lines.append(f"Backend developer wants to learn: {backend_goals.strip()}")
    lines.append("Try to include tasks that let them practice these technologies/patterns.")
    return "\n".join(lines)


def build_principles_section() -> str:
    return (
        "DESIGN PRINCIPLES:\n"
        "1. FUN FIRST - The project should be something developers are EXCITED to build\n"
        "2. PORTFOLIO-WORTHY - Something they'd proudly show to recruiters\n"
        "3. ACHIEVABLE - Must be completable in 1 week by 2 people\n"
        "4. MODERN - Use their actual skills, no legacy technologies\n"
        "5. COLLABORATIVE - Clear separation between frontend and backend work\n"
        "6. REAL VALUE - Something that could actually be used by real people"
    )


def build_output_format_section() -> str:
    return (
        "OUTPUT FORMAT (Strictly valid JSON, no markdown):\n"
        "{\n"
        '  "title": "Catchy Project Name (e.g., \'SnapShare - Mini Photo Platform\')",\n'
        '  "description": "2-3 sentence pitch that makes developers excited to build this",\n'
        '  "wowFactor": "What makes this project impressive (1 sentence)",\n'
        '  "frontendTasks": [\n'
        '    "Specific task with technology (e.g., \'Build responsive feed UI with infinite scroll using React\')",\n'
        '    "..."\n'
        "  ],\n"
        '  "backendTasks": [\n'
        '    "Specific task with technology (e.g., \'Implement JWT auth with refresh tokens\')",\n'
        '    "..."\n'
        "  ],\n"
        '  "apiEndpoints": [\n'
        '    { "method": "POST", "path": "/api/auth/login", "description": "User login, returns JWT" },\n'
        '    "..."\n'
        "  ]\n"
        "}"
    )


def build_prompt(
    frontend_skills: Optional[Iterable[str]],
    backend_skills: Optional[Iterable[str]],
    archetype,
    theme,
    target_complexity: int,
    frontend_learning_goals: Optional[str] = None,
    backend_learning_goals: Optional[str] = None,
) -> str:
    """
    Assemble the complete generation prompt.

    Args:
        frontend_skills: Skills of the FRONTEND participant (order is irrelevant)
        backend_skills: Skills of the BACKEND participant
        archetype: Object with display_name, structure_description,
            component_patterns and api_patterns
        theme: Object with display_name, domain_context and example_entities
        target_complexity: 1-5, mapped onto three task-count tiers
        frontend_learning_goals: Optional free text
        backend_learning_goals: Optional free text

    Returns:
        Prompt text; the learning-goals section is left out entirely when
        both goals are blank
    """
    sections = [
        build_role_section(),
        build_team_section(frontend_skills, backend_skills),
        build_archetype_section(archetype),
        build_theme_section(theme),
        build_complexity_section(target_complexity),
        build_learning_goals_section(frontend_learning_goals, backend_learning_goals),
        build_principles_section(),
        build_output_format_section(),
    ]
    return SECTION_SEPARATOR.join(section for section in sections if section)
