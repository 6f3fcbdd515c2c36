"""
Mock LLM for deterministic testing and UX timing simulation.

Replays scripted raw responses through the real response parser.
Queued responses (strings or exceptions) are consumed first; after that each
request variant falls back to its golden file (initial.txt, refine.txt,
interact.txt).
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Iterable
from pathlib import Path

from engine.kernel.response_parser import parse_response
from engine.kernel.types import GeneratedPair, GenerationRequest, InitialRequest, InteractRequest, RefineRequest

GOLDEN_DIR = Path(__file__).parent / "tests" / "fixtures" / "golden"

DELAY_PROFILES: dict[str, int] = {
    "instant": 0,
    "realistic": 1500,
    "slow": 4000,
}


class MockLLM:
    """Scripted generation backend."""

    def __init__(
        self,
        responses: Iterable[str | BaseException] | None = None,
        golden_dir: Path = GOLDEN_DIR,
        profile: str = "instant",
    ):
        if profile not in DELAY_PROFILES:
            raise ValueError(f"Unknown delay profile: {profile!r}. Valid profiles: {list(DELAY_PROFILES)}")
        self.responses: deque[str | BaseException] = deque(responses or [])
        self.golden_dir = golden_dir
        self.profile = profile
        self.calls: list[GenerationRequest] = []

    def queue(self, *responses: str | BaseException) -> None:
        self.responses.extend(responses)

    async def complete(self, request: GenerationRequest) -> str:
        """
        Return raw response text for a request.

        Raises:
            Whatever exception was queued for this call
            FileNotFoundError: no queued response and no golden file
        """
        self.calls.append(request)

        think_ms = DELAY_PROFILES[self.profile]
        if think_ms > 0:
            await asyncio.sleep(think_ms / 1000)

        if self.responses:
            item = self.responses.popleft()
            if isinstance(item, BaseException):
                raise item
            return item

        return self.load_golden(scenario_for(request))

    def load_golden(self, scenario: str) -> str:
        path = self.golden_dir / f"{scenario}.txt"
        if not path.exists():
            raise FileNotFoundError(f"Golden file not found: {path}")
        return path.read_text()

    def list_scenarios(self) -> list[str]:
        """Return names of all available golden file scenarios."""
        return sorted(p.stem for p in self.golden_dir.glob("*.txt"))

    # GenerationBackend

    async def generate_initial(self, prompt: str) -> GeneratedPair:
        return parse_response(await self.complete(InitialRequest(prompt)))

    async def refine(self, prior_source: str, prior_markup: str, instruction: str) -> GeneratedPair:
        return parse_response(await self.complete(RefineRequest(prior_source, prior_markup, instruction)))

    async def interact(
        self,
        prior_source: str,
        prior_markup: str,
        action_id: str,
        action_description: str,
    ) -> GeneratedPair:
        request = InteractRequest(prior_source, prior_markup, action_id, action_description)
        return parse_response(await self.complete(request))


def scenario_for(request: GenerationRequest) -> str:
    if isinstance(request, InitialRequest):
        return "initial"
    if isinstance(request, RefineRequest):
        return "refine"
    return "interact"
