"""
myPip Kernel — the pure engine.

Components:
  response_parser — raw LLM text → GeneratedPair (tolerant, tagged outcome)
  entitlement     — credit gate and unlock handling
  preview         — (markup, on_action) → BoundPreview
  session         — SessionController: generate / refine / interact with rollback
"""

from engine.kernel.entitlement import apply_unlock, can_submit, verify_unlock_code
from engine.kernel.errors import ErrorKind, GenerationError
from engine.kernel.preview import BoundPreview, PreviewRenderer, bind_preview, render_document
from engine.kernel.response_parser import parse_outcome, parse_response
from engine.kernel.session import GenerationBackend, SessionController
from engine.kernel.types import GeneratedPair, MutationOutcome, Session

__all__ = [
    "parse_response",
    "parse_outcome",
    "can_submit",
    "apply_unlock",
    "verify_unlock_code",
    "bind_preview",
    "render_document",
    "BoundPreview",
    "PreviewRenderer",
    "SessionController",
    "GenerationBackend",
    "Session",
    "GeneratedPair",
    "MutationOutcome",
    "ErrorKind",
    "GenerationError",
]
