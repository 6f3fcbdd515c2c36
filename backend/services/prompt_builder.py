"""
Prompt builder for the generation client.

One instruction payload per request variant. Payloads are built only from
their inputs, so the same request always produces the same payload.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from engine.kernel.types import GenerationRequest, InitialRequest, InteractRequest, RefineRequest

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

# Cache loaded prompts in memory (they don't change at runtime)
_cache: dict[str, str] = {}


def _load(name: str) -> str:
    """Load and cache a prompt file."""
    if name not in _cache:
        path = PROMPTS_DIR / f"{name}.md"
        _cache[name] = path.read_text()
    return _cache[name]


def _fill(template: str, values: dict[str, str]) -> str:
    # Single pass, so user text containing {{...}} is never expanded.
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def build_system_prompt() -> str:
    return _load("system")


def build_instruction(request: GenerationRequest) -> str:
    """
    Render a generation request to its natural-language instruction.

    Args:
        request: InitialRequest, RefineRequest or InteractRequest

    Returns:
        Instruction text for the user turn
    """
    if isinstance(request, InitialRequest):
        return _fill(_load("initial"), {"prompt": request.prompt})

    if isinstance(request, RefineRequest):
        return _fill(
            _load("refine"),
            {
                "instruction": request.instruction,
                "prior_source": request.prior_source,
                "prior_markup": request.prior_markup,
            },
        )

    if isinstance(request, InteractRequest):
        return _fill(
            _load("interact"),
            {
                "action_id": request.action_id,
                "action_description": request.action_description,
                "prior_source": request.prior_source,
                "prior_markup": request.prior_markup,
            },
        )

    raise TypeError(f"Unknown generation request: {type(request).__name__}")


def build_messages(request: GenerationRequest) -> list[dict[str, Any]]:
    """Messages array for a single-turn generation call."""
    return [{"role": "user", "content": build_instruction(request)}]
