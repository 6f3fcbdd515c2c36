"""
myPip Kernel — Shared Types

Data classes used across the parser, entitlement gate, preview binder and
session controller. These are the contracts that bind the kernel together.

The action vocabulary lives in the generated preview markup itself: every
interactive element carries a `data-action-id` and a `data-action-description`
attribute. Nothing else registers actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

# ---------------------------------------------------------------------------
# Action registry (attribute contract)
# ---------------------------------------------------------------------------

ACTION_ID_ATTR = "data-action-id"
ACTION_DESCRIPTION_ATTR = "data-action-description"
BINDING_KEY_ATTR = "data-binding-key"

# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

INITIAL_SOURCE = "// Code will appear here once generated..."
INITIAL_MARKUP = (
    '<div class="w-full h-full flex items-center justify-center text-neutral-400 p-4 text-center">'
    "<p>App preview will appear here after you describe your app.</p></div>"
)

EMPTY_SOURCE = "// AI returned empty code. Try adjusting your prompt."
EMPTY_MARKUP = (
    '<div class="p-4 text-center text-neutral-500">AI returned an empty preview. Try adjusting your prompt.</div>'
)

IN_PROGRESS_MARKUP = (
    '<div class="w-full h-full flex items-center justify-center text-neutral-500">'
    '<div class="animate-spin rounded-full h-10 w-10 border-b-2 border-amber-500"></div>'
    '<p class="ml-3 text-neutral-600">Generating app &amp; preview...</p></div>'
)

UNLOCK_SENTINEL = "EARLY_BIRD_ACCESS_GRANTED"

DOWNLOAD_FILENAME = "MyPipApp.swift"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SessionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    ERROR = "error"


class OutcomeStatus(str, Enum):
    APPLIED = "applied"
    DENIED = "denied"
    FAILED = "failed"
    SUPERSEDED = "superseded"


HistoryKind = Literal["user", "assistant", "interaction"]


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActionTag:
    """One interactive element discovered in preview markup."""

    action_id: str
    action_description: str
    binding_key: str = ""


@dataclass(frozen=True)
class HistoryEntry:
    kind: HistoryKind
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "text": self.text, "timestamp": self.timestamp.isoformat()}


@dataclass(frozen=True)
class GeneratedPair:
    """A matched source/markup pair produced by one generation call."""

    source_code: str
    preview_markup: str


@dataclass(frozen=True)
class InitialRequest:
    prompt: str


@dataclass(frozen=True)
class RefineRequest:
    prior_source: str
    prior_markup: str
    instruction: str


@dataclass(frozen=True)
class InteractRequest:
    prior_source: str
    prior_markup: str
    action_id: str
    action_description: str


GenerationRequest = InitialRequest | RefineRequest | InteractRequest


@dataclass
class Session:
    """
    One editing session.

    source_code and preview_markup are only ever replaced together, by the
    session controller, from a single generation result.
    """

    source_code: str = INITIAL_SOURCE
    preview_markup: str = INITIAL_MARKUP
    history: list[HistoryEntry] = field(default_factory=list)
    credits_remaining: int = 5
    unlimited_unlocked: bool = False
    state: SessionState = SessionState.IDLE
    error: str | None = None
    request_seq: int = 0
    prompt: str | None = None

    @property
    def has_generated(self) -> bool:
        return self.source_code != INITIAL_SOURCE

    def to_dict(self) -> dict:
        return {
            "source_code": self.source_code,
            "preview_markup": self.preview_markup,
            "history": [h.to_dict() for h in self.history],
            "credits_remaining": self.credits_remaining,
            "unlimited_unlocked": self.unlimited_unlocked,
            "state": self.state.value,
            "error": self.error,
            "prompt": self.prompt,
        }


@dataclass(frozen=True)
class MutationOutcome:
    """Result of one generate/refine/interact flow."""

    status: OutcomeStatus
    message: str | None = None
    error_kind: str | None = None
    seq: int = 0

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.APPLIED
