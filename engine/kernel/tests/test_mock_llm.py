"""Tests for MockLLM: scripted responses and golden-file fallback."""

from __future__ import annotations

from pathlib import Path

import pytest

from engine.kernel.errors import RateLimited
from engine.kernel.mock_llm import MockLLM, scenario_for
from engine.kernel.types import InitialRequest, InteractRequest, RefineRequest

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm_tmp(tmp_path: Path) -> MockLLM:
    """MockLLM pointed at an empty temporary golden directory."""
    return MockLLM(golden_dir=tmp_path)


# ---------------------------------------------------------------------------
# Queued responses
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_queued_responses_come_first(mock_llm: MockLLM) -> None:
    mock_llm.queue("first", "second")
    assert await mock_llm.complete(InitialRequest("a")) == "first"
    assert await mock_llm.complete(InitialRequest("b")) == "second"


@pytest.mark.asyncio
async def test_queued_exception_is_raised(mock_llm: MockLLM) -> None:
    mock_llm.queue(RateLimited())
    with pytest.raises(RateLimited):
        await mock_llm.complete(InitialRequest("a"))


@pytest.mark.asyncio
async def test_calls_are_recorded(mock_llm: MockLLM) -> None:
    await mock_llm.generate_initial("a counter")
    await mock_llm.interact("src", "<p>", "incrementCount", "Increment")

    assert mock_llm.calls[0] == InitialRequest("a counter")
    assert mock_llm.calls[1] == InteractRequest("src", "<p>", "incrementCount", "Increment")


# ---------------------------------------------------------------------------
# Golden files
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_golden_fallback_per_request_kind(mock_llm: MockLLM) -> None:
    initial = await mock_llm.generate_initial("a counter")
    refined = await mock_llm.refine(initial.source_code, initial.preview_markup, "add decrement")
    tapped = await mock_llm.interact(refined.source_code, refined.preview_markup, "incrementCount", "Increment")

    assert 'data-action-id="incrementCount"' in initial.preview_markup
    assert 'data-action-id="decrementCount"' in refined.preview_markup
    assert "Count: 1" in tapped.preview_markup
    # Swift string interpolation survives escape cleanup
    assert "\\(count)" in initial.source_code


def test_list_scenarios(mock_llm: MockLLM) -> None:
    assert mock_llm.list_scenarios() == ["initial", "interact", "refine"]


@pytest.mark.asyncio
async def test_missing_golden_file(mock_llm_tmp: MockLLM) -> None:
    with pytest.raises(FileNotFoundError, match="Golden file not found"):
        await mock_llm_tmp.complete(RefineRequest("s", "m", "i"))


def test_unknown_profile_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown delay profile"):
        MockLLM(profile="glacial")


def test_scenario_for() -> None:
    assert scenario_for(InitialRequest("x")) == "initial"
    assert scenario_for(RefineRequest("s", "m", "i")) == "refine"
    assert scenario_for(InteractRequest("s", "m", "a", "d")) == "interact"
