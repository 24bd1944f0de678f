"""
Tests for assignment generation and fallback
"""
import pytest

from pairmatch.core.exceptions import GenerationError, RateLimitedError
from pairmatch.services.generation_client import (FALLBACK_TITLE,
                                                  GenerationClient,
                                                  fallback_assignment,
                                                  render_description)


def _generation_client(settings, llm, sleeps=None):
    sleeps = sleeps if sleeps is not None else []
    return GenerationClient(settings, llm_client=llm, sleep=sleeps.append)


def test_render_description_order(generated_project):
    text = render_description(generated_project)

    assert text.startswith("Track shared expenses")
    assert "✨ What makes this special: Live balance updates" in text
    assert "• [GET] /api/expenses - List expenses" in text
    assert (
        text.index("📡 API Contract:")
        < text.index("🎨 Frontend Tasks:")
        < text.index("⚙️ Backend Tasks:")
    )
    assert "• Compute balances per group" in text


def test_render_description_skips_missing_parts():
    text = render_description({"title": "X", "description": "Only a pitch"})
    assert text == "Only a pitch"


def test_fallback_without_topic():
    result = fallback_assignment(None)
    assert result.title == FALLBACK_TITLE
    assert result.is_fallback
    assert "📡 Suggested API Contract:" in result.description


def test_fallback_uses_topic():
    result = fallback_assignment("recipes")
    assert result.title == "Recipes Collaborative Mini Project"
    assert "Topic: recipes" in result.description


def test_fallback_is_deterministic():
    assert fallback_assignment("chess") == fallback_assignment("chess")


@pytest.mark.asyncio
async def test_generate_success(test_settings, scripted_llm, generated_project):
    llm = scripted_llm(generated_project)
    result = await _generation_client(test_settings, llm).generate("PROMPT", topic="money")

    assert result.title == "BudgetBuddy - Shared Expense Tracker"
    assert not result.is_fallback
    assert llm.prompts == ["PROMPT"]


@pytest.mark.asyncio
async def test_rate_limit_is_retried_then_succeeds(test_settings, scripted_llm, generated_project):
    llm = scripted_llm(RateLimitedError(), RateLimitedError(), generated_project)
    sleeps = []
    result = await _generation_client(test_settings, llm, sleeps).generate("p")

    assert not result.is_fallback
    assert llm.calls == 3
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_persistent_rate_limit_falls_back(test_settings, scripted_llm):
    llm = scripted_llm(RateLimitedError())
    result = await _generation_client(test_settings, llm).generate("p", topic="travel")

    assert llm.calls == 3
    assert result.is_fallback
    assert result.title == "Travel Collaborative Mini Project"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    GenerationError("server error", status_code=500),
    GenerationError("unauthorized", status_code=401),
    GenerationError("Generation service returned malformed JSON"),
    GenerationError("Generation request timed out after 30s"),
])
async def test_other_failures_are_not_retried(test_settings, scripted_llm, error):
    llm = scripted_llm(error)
    result = await _generation_client(test_settings, llm).generate("p")

    assert llm.calls == 1
    assert result.is_fallback
    assert result.title == FALLBACK_TITLE


@pytest.mark.asyncio
async def test_reply_without_title_falls_back(test_settings, scripted_llm):
    llm = scripted_llm({"description": "no title here"})
    result = await _generation_client(test_settings, llm).generate("p")
    assert result.is_fallback


@pytest.mark.asyncio
async def test_unexpected_error_falls_back(test_settings, scripted_llm):
    llm = scripted_llm(RuntimeError("bug"))
    result = await _generation_client(test_settings, llm).generate("p")
    assert result.is_fallback


@pytest.mark.asyncio
async def test_missing_api_key_falls_back(test_settings):
    settings = test_settings.model_copy(update={"groq_api_key": None})
    result = await GenerationClient(settings).generate("p", topic="music")
    assert result.is_fallback
    assert result.title == "Music Collaborative Mini Project"
