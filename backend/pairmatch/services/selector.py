"""
Archetype, theme and complexity selection for a matched pair
"""
import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, TypeVar

from sqlalchemy.orm import Session

from pairmatch.core.config import get_settings
from pairmatch.core.exceptions import CatalogEmptyError
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.models.catalog import Archetype, Theme
from pairmatch.models.participant import Participant, ParticipantPreference

logger = LoggingConfig.get_logger(__name__)

MIN_COMPLEXITY = 1
MAX_COMPLEXITY = 5

T = TypeVar("T")


def calc_complexity(
    frontend_difficulty: Optional[int],
    backend_difficulty: Optional[int],
    default: int = 2,
) -> int:
    """
    Target complexity from two optional difficulty preferences.

    Both set: mean rounded half-up, so (2, 3) gives 3. One set: that value.
    Neither: `default`.
    """
    if frontend_difficulty is not None and backend_difficulty is not None:
        # Half-up rounding of the mean for positive integers
        return (frontend_difficulty + backend_difficulty + 1) // 2
    if frontend_difficulty is not None:
        return frontend_difficulty
    if backend_difficulty is not None:
        return backend_difficulty
    return default


@dataclass
class SelectionResult:
    archetype: Archetype
    theme: Theme
    target_complexity: int
    frontend_learning_goals: Optional[str] = None
    backend_learning_goals: Optional[str] = None


class Selector:
    """
    Chooses archetype + theme + complexity from both participants' preferences.

    Randomness comes from the injected `rng` so selection is reproducible in tests.
    """

    def __init__(self, db: Session, rng: Optional[random.Random] = None, default_complexity: Optional[int] = None):
        self.db = db
        self.rng = rng or random.Random()
        self.default_complexity = (
            default_complexity if default_complexity is not None else get_settings().default_complexity
        )

    def select(self, frontend: Participant, backend: Participant) -> SelectionResult:
        fe_pref = frontend.preference
        be_pref = backend.preference

        target = calc_complexity(
            fe_pref.difficulty if fe_pref else None,
            be_pref.difficulty if be_pref else None,
            default=self.default_complexity,
        )
        archetype = self.select_archetype(target)
        theme = self.select_theme(fe_pref, be_pref)

        logger.info(
            f"Selected archetype {archetype.code} and theme {theme.code} at complexity {target}",
            extra={
                "frontend_id": str(frontend.id),
                "backend_id": str(backend.id),
                "archetype": archetype.code,
                "theme": theme.code,
                "target_complexity": target,
            },
        )

        return SelectionResult(
            archetype=archetype,
            theme=theme,
            target_complexity=target,
            frontend_learning_goals=fe_pref.learning_goals if fe_pref else None,
            backend_learning_goals=be_pref.learning_goals if be_pref else None,
        )

    def _active_archetypes(self) -> List[Archetype]:
        return self.db.query(Archetype).filter(Archetype.active.is_(True)).all()

    def _active_themes(self) -> List[Theme]:
        return self.db.query(Theme).filter(Theme.active.is_(True)).all()

    def _pick(self, candidates: Sequence[T]) -> T:
        # Stable order first so a seeded rng gives the same answer regardless of row order
        ordered = sorted(candidates, key=lambda c: c.code)
        return self.rng.choice(ordered)

    def select_archetype(self, target_complexity: int) -> Archetype:
        """Exact range, then +/-1 widened range, then any active archetype"""
        matching = (
            self.db.query(Archetype)
            .filter(
                Archetype.active.is_(True),
                Archetype.min_complexity <= target_complexity,
                Archetype.max_complexity >= target_complexity,
            )
            .all()
        )

        if not matching:
            lower = max(MIN_COMPLEXITY, target_complexity - 1)
            upper = min(MAX_COMPLEXITY, target_complexity + 1)
            matching = [a for a in self._active_archetypes() if a.overlaps(lower, upper)]
            if matching:
                logger.debug(f"Widened archetype range to {lower}-{upper}")

        if not matching:
            matching = self._active_archetypes()

        if not matching:
            raise CatalogEmptyError("No active archetypes configured")

        return self._pick(matching)

    @staticmethod
    def _theme_codes(pref: Optional[ParticipantPreference]) -> Set[str]:
        if pref is None:
            return set()
        return pref.theme_codes

    def _themes_by_code(self, codes: Iterable[str]) -> List[Theme]:
        return (
            self.db.query(Theme)
            .filter(Theme.active.is_(True), Theme.code.in_(sorted(codes)))
            .all()
        )

    def select_theme(
        self,
        fe_pref: Optional[ParticipantPreference],
        be_pref: Optional[ParticipantPreference],
    ) -> Theme:
        """Intersection of preferred themes, then union, then any active theme"""
        fe_codes = self._theme_codes(fe_pref)
        be_codes = self._theme_codes(be_pref)

        intersection = fe_codes & be_codes
        if intersection:
            themes = self._themes_by_code(intersection)
            if themes:
                logger.debug(f"Using theme intersection: {sorted(intersection)}")
                return self._pick(themes)

        union = fe_codes | be_codes
        if union and not intersection:
            themes = self._themes_by_code(union)
            if themes:
                logger.debug(f"Using theme union: {sorted(union)}")
                return self._pick(themes)

        all_themes = self._active_themes()
        if not all_themes:
            raise CatalogEmptyError("No active themes configured")
        return self._pick(all_themes)
