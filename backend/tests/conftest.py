"""
Pytest configuration and fixtures
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Tests run against a throwaway SQLite file and never reach the real generation service
_test_db_dir = tempfile.mkdtemp(prefix="pairmatch-tests-")
os.environ["DATABASE_DSN"] = f"sqlite:///{Path(_test_db_dir) / 'test.db'}"
os.environ["GROQ_API_KEY"] = ""
os.environ.setdefault("SEED_CATALOG_ON_STARTUP", "false")
os.environ.setdefault("RUN_REAL_LLM_TESTS", "0")

from pairmatch.core.config import Settings
from pairmatch.core.database import Base, get_engine, get_session_local


@pytest.fixture(scope="function")
def db() -> Session:
    """Create a database session on a freshly created schema"""
    import pairmatch.models  # noqa: F401

    engine = get_engine()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = get_session_local()()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def session_factory(db):
    """Factory for independent sessions on the same schema (one per worker thread)"""
    return get_session_local()


@pytest.fixture(scope="function")
def seeded_catalog(db):
    """Default archetypes and themes"""
    from pairmatch.services.catalog_service import CatalogService
    CatalogService(db).seed_defaults()
    return db


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fake API key and no backoff delay"""
    return Settings(
        groq_api_key="gsk_test_key",
        generation_max_attempts=3,
        generation_base_delay_seconds=0.0,
        generation_backoff_multiplier=2.0,
        project_duration_days=7,
    )


class ScriptedLLM:
    """
    Stand-in for ChatCompletionClient.

    Each call consumes the next outcome; the last one repeats. Exceptions are raised,
    anything else is returned as the parsed JSON object.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.prompts = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete_json(self, prompt):
        self.prompts.append(prompt)
        index = min(len(self.prompts), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


@pytest.fixture
def generated_project():
    return {
        "title": "BudgetBuddy - Shared Expense Tracker",
        "description": "Track shared expenses with friends and settle up in one tap.",
        "wowFactor": "Live balance updates as soon as anyone adds an expense",
        "frontendTasks": ["Build expense list with filters", "Add settle-up dialog"],
        "backendTasks": ["Implement expense CRUD", "Compute balances per group"],
        "apiEndpoints": [
            {"method": "GET", "path": "/api/expenses", "description": "List expenses"},
            {"method": "POST", "path": "/api/expenses", "description": "Create expense"},
        ],
    }


@pytest.fixture
def make_participant(db):
    """Factory creating committed participants"""
    from pairmatch.models.participant import (Participant,
                                              ParticipantPreference)

    def _make(name="Dev", role=None, skills=None, difficulty=None, themes=None,
              learning_goals=None, waiting_since=None, surname=None):
        participant = Participant(
            display_name=name,
            surname=surname,
            role=role.value if role is not None else None,
            skills=list(skills or []),
            waiting_since=waiting_since,
        )
        if difficulty is not None or themes or learning_goals:
            participant.preference = ParticipantPreference(
                difficulty=difficulty,
                preferred_themes=list(themes or []),
                learning_goals=learning_goals,
            )
        db.add(participant)
        db.commit()
        db.refresh(participant)
        return participant

    return _make


@pytest.fixture(scope="function")
def client(db: Session):
    """Create test client with database dependency override"""
    import importlib.util

    main_path = backend_dir / "main.py"
    spec = importlib.util.spec_from_file_location("main", main_path)
    main_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(main_module)
    app = main_module.app

    from fastapi.testclient import TestClient

    from pairmatch.core.database import get_db

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def pytest_collection_modifyitems(config, items):
    """Skip real-LLM tests unless RUN_REAL_LLM_TESTS=1 is set in env."""
    if os.environ.get("RUN_REAL_LLM_TESTS", "0") == "1":
        return
    skip_marker = pytest.mark.skip(reason="Real LLM tests disabled. Set RUN_REAL_LLM_TESTS=1 to enable.")
    for item in items:
        if "real_llm" in getattr(item, "keywords", {}):
            item.add_marker(skip_marker)
