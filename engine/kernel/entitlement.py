"""
Entitlement gate.

Decides whether a mutation may proceed. Pure functions over Session; the
session controller is the only caller that mutates credits.
"""

from __future__ import annotations

import hmac

from engine.kernel.types import UNLOCK_SENTINEL, Session

OUT_OF_CREDITS = "You have used all your free prompts."
OUT_OF_CREDITS_INTERACTION = "You have used all your free prompts for interaction-based refinement."
UNLOCK_ACCEPTED = "Early Bird Code applied successfully! You now have unlimited access."
UNLOCK_REJECTED = "Invalid Early Bird Code. Please check your code and try again."


def can_submit(session: Session) -> bool:
    return session.credits_remaining > 0 or session.unlimited_unlocked


def denial_message(session: Session, interaction: bool = False) -> str:
    """User-facing text for a denied attempt."""
    if interaction:
        return OUT_OF_CREDITS_INTERACTION
    return OUT_OF_CREDITS


def charge(session: Session) -> None:
    """Spend one credit for a successful mutation. Unlimited sessions are never charged."""
    if session.unlimited_unlocked:
        return
    session.credits_remaining = max(0, session.credits_remaining - 1)


def verify_unlock_code(code: str, expected: str) -> str:
    """
    Compare a user-entered code against the configured one.

    Returns UNLOCK_SENTINEL on a match, "" otherwise.
    """
    if not code or not expected:
        return ""
    if hmac.compare_digest(code.strip().upper().encode(), expected.strip().upper().encode()):
        return UNLOCK_SENTINEL
    return ""


def apply_unlock(session: Session, verification_result: str) -> bool:
    """
    Accept exactly the success sentinel; anything else is a rejection.

    Once accepted the session stays unlimited for its lifetime.
    """
    if verification_result != UNLOCK_SENTINEL:
        return False
    session.unlimited_unlocked = True
    return True
