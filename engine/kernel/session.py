"""
myPip Kernel — Session Controller

Coordinates the three mutation flows (generate, refine, interact) between
the entitlement gate, the generation client and the preview renderer.

Every flow has the same shape:

    idle → submitting → idle | error

The source/markup pair is snapshotted before the call and restored on
failure, so callers only ever observe the old pair or the new one. Each
call takes a request sequence id; a completion that is no longer the
latest issued request is discarded instead of overwriting newer state.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from engine.kernel.entitlement import UNLOCK_REJECTED, apply_unlock, can_submit, charge, denial_message
from engine.kernel.errors import GenerationError, NothingToDownload, Unknown
from engine.kernel.preview import BoundPreview, PreviewRenderer
from engine.kernel.types import (
    DOWNLOAD_FILENAME,
    EMPTY_MARKUP,
    EMPTY_SOURCE,
    IN_PROGRESS_MARKUP,
    INITIAL_MARKUP,
    INITIAL_SOURCE,
    GeneratedPair,
    HistoryEntry,
    MutationOutcome,
    OutcomeStatus,
    Session,
    SessionState,
)

logger = logging.getLogger(__name__)

DENIED_NO_CREDITS = "no_credits"
DENIED_EMPTY_INPUT = "empty_input"


class GenerationBackend(Protocol):
    """What the controller needs from a generation client."""

    async def generate_initial(self, prompt: str) -> GeneratedPair: ...

    async def refine(self, prior_source: str, prior_markup: str, instruction: str) -> GeneratedPair: ...

    async def interact(
        self,
        prior_source: str,
        prior_markup: str,
        action_id: str,
        action_description: str,
    ) -> GeneratedPair: ...


Snapshot = tuple[str, str]


class SessionController:
    """Owns one Session and runs its mutation flows."""

    def __init__(
        self,
        session: Session,
        client: GenerationBackend,
        renderer: PreviewRenderer | None = None,
    ) -> None:
        self.session = session
        self.client = client
        self.renderer = renderer or PreviewRenderer()
        self.render()

    @property
    def preview(self) -> BoundPreview | None:
        return self.renderer.current

    def render(self) -> BoundPreview:
        """Re-render the authoritative markup and rebind action handlers."""
        return self.renderer.render(self.session.preview_markup, self._on_action)

    def _on_action(self, action_id: str, action_description: str) -> Awaitable[MutationOutcome]:
        return self.interact(action_id, action_description)

    # -----------------------------------------------------------------------
    # Mutation flows
    # -----------------------------------------------------------------------

    async def generate(self, prompt: str) -> MutationOutcome:
        """Generate a new app from a natural-language description."""
        prompt = prompt.strip()

        def remember_prompt() -> None:
            self.session.prompt = prompt

        return await self._mutate(
            call=lambda snap: self.client.generate_initial(prompt),
            entry=HistoryEntry("user", f"App idea: {prompt}"),
            success_text="App generated successfully.",
            failure_prefix="Failed to generate content",
            empty=not prompt,
            on_success=remember_prompt,
        )

    async def refine(self, instruction: str) -> MutationOutcome:
        """Apply a free-text change request to the current app."""
        instruction = instruction.strip()
        return await self._mutate(
            call=lambda snap: self.client.refine(snap[0], snap[1], instruction),
            entry=HistoryEntry("user", instruction),
            success_text="App updated.",
            failure_prefix="Failed to refine app",
            empty=not instruction,
        )

    async def interact(self, action_id: str, action_description: str) -> MutationOutcome:
        """Update the app in response to a tap on a preview element."""
        label = action_description or action_id
        return await self._mutate(
            call=lambda snap: self.client.interact(snap[0], snap[1], action_id, action_description),
            entry=HistoryEntry("interaction", f'User clicked "{label}" in preview.'),
            success_text="App updated based on preview interaction.",
            failure_prefix="Failed to update based on interaction",
            history_prefix="Error processing interaction",
            interaction=True,
            empty=not action_id,
        )

    async def _mutate(
        self,
        call: Callable[[Snapshot], Awaitable[GeneratedPair]],
        entry: HistoryEntry,
        success_text: str,
        failure_prefix: str,
        history_prefix: str | None = None,
        interaction: bool = False,
        empty: bool = False,
        on_success: Callable[[], None] | None = None,
    ) -> MutationOutcome:
        s = self.session

        # 1. Gate. Denials never reach the client and leave history untouched.
        if not can_submit(s):
            message = denial_message(s, interaction=interaction)
            s.error = message
            logger.info("Mutation denied: credits=%d unlimited=%s", s.credits_remaining, s.unlimited_unlocked)
            return MutationOutcome(OutcomeStatus.DENIED, message=message, error_kind=DENIED_NO_CREDITS)
        if empty:
            message = "Prompt cannot be empty."
            s.error = message
            return MutationOutcome(OutcomeStatus.DENIED, message=message, error_kind=DENIED_EMPTY_INPUT)

        # 2. Snapshot for rollback
        snapshot: Snapshot = (s.source_code, s.preview_markup)

        # 3. Submitting; in-progress placeholder is visual only
        s.request_seq += 1
        seq = s.request_seq
        s.state = SessionState.SUBMITTING
        s.error = None
        self.renderer.render(IN_PROGRESS_MARKUP, self._on_action)

        # 4. Log the request before it resolves
        s.history.append(entry)

        # 5. Single suspension point
        error: GenerationError | None = None
        pair: GeneratedPair | None = None
        try:
            pair = await call(snapshot)
        except GenerationError as e:
            error = e
        except Exception as e:
            logger.exception("Unexpected generation failure (seq=%d)", seq)
            error = Unknown(str(e) or None)

        if seq != s.request_seq:
            logger.info("Discarding superseded result: seq=%d latest=%d", seq, s.request_seq)
            return MutationOutcome(OutcomeStatus.SUPERSEDED, seq=seq)

        if pair is not None:
            # 6. Success
            s.source_code = pair.source_code
            s.preview_markup = pair.preview_markup
            s.history.append(HistoryEntry("assistant", success_text))
            charge(s)
            s.error = None
            s.state = SessionState.IDLE
            if on_success is not None:
                on_success()
            outcome = MutationOutcome(OutcomeStatus.APPLIED, seq=seq)
        else:
            # 7. Failure: restore, log, surface
            error = error or Unknown()
            s.source_code, s.preview_markup = snapshot
            s.history.append(HistoryEntry("assistant", f"{history_prefix or failure_prefix}: {error.message}"))
            s.error = f"{failure_prefix}: {error.message}"
            s.state = SessionState.ERROR
            logger.warning("Generation failed (seq=%d, kind=%s): %s", seq, error.kind.value, error.message)
            outcome = MutationOutcome(OutcomeStatus.FAILED, message=s.error, error_kind=error.kind.value, seq=seq)

        # 8. Re-render whatever is authoritative now
        self.render()
        return outcome

    # -----------------------------------------------------------------------
    # Other session operations
    # -----------------------------------------------------------------------

    def unlock(self, verification_result: str) -> bool:
        """Apply an unlock-code verification result to the session."""
        if apply_unlock(self.session, verification_result):
            self.session.error = None
            logger.info("Unlimited access unlocked")
            return True
        self.session.error = UNLOCK_REJECTED
        return False

    def download_source(self) -> tuple[str, str]:
        """
        Export the current source as a file.

        Returns:
            (filename, content)

        Raises:
            NothingToDownload: nothing has been generated yet
        """
        source = self.session.source_code
        if source in (INITIAL_SOURCE, EMPTY_SOURCE) or not source.strip():
            raise NothingToDownload("No valid code to download.")
        return DOWNLOAD_FILENAME, source

    def reset(self) -> None:
        """
        Start a new design in the same session.

        Credits, unlock state and history carry over. Any in-flight request
        is superseded.
        """
        s = self.session
        s.request_seq += 1
        s.source_code = INITIAL_SOURCE
        s.preview_markup = INITIAL_MARKUP
        s.prompt = None
        s.error = None
        s.state = SessionState.IDLE
        self.render()

    def load(self, source_code: str, preview_markup: str, prompt: str | None = None) -> None:
        """Replace the pair with a saved project's pair. Costs no credit."""
        s = self.session
        s.request_seq += 1
        s.source_code = source_code or EMPTY_SOURCE
        s.preview_markup = preview_markup or EMPTY_MARKUP
        s.prompt = prompt
        s.error = None
        s.state = SessionState.IDLE
        self.render()
