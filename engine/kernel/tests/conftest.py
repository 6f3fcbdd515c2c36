"""
Engine kernel test configuration.

Kernel tests are pure: no database, no network. Generation is driven by
MockLLM with queued raw responses or the golden files.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import pytest

from engine.kernel.mock_llm import MockLLM
from engine.kernel.session import SessionController
from engine.kernel.types import Session


@pytest.fixture
def raw_pair() -> Callable[[str, str], str]:
    """Build a well-formed raw response for a source/markup pair."""

    def build(source: str, markup: str) -> str:
        return json.dumps({"sourceCode": source, "previewMarkup": markup})

    return build


@pytest.fixture
def session() -> Session:
    return Session(credits_remaining=5)


@pytest.fixture
def mock_llm() -> MockLLM:
    return MockLLM()


@pytest.fixture
def controller(session: Session, mock_llm: MockLLM) -> SessionController:
    return SessionController(session, mock_llm)
