"""REPL for myPip CLI."""
from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path

from backend.config import settings
from backend.services.generation_client import GenerationConfig, build_generation_client
from engine.kernel.entitlement import UNLOCK_ACCEPTED, verify_unlock_code
from engine.kernel.errors import NothingToDownload
from engine.kernel.preview import render_document
from engine.kernel.session import SessionController
from engine.kernel.types import MutationOutcome, OutcomeStatus, Session

GREEN = "\033[32m"
DIM = "\033[90m"
RED = "\033[31m"
RESET = "\033[0m"

OPENAI_DEFAULT_MODEL = "gpt-4o"


class Repl:
    """Interactive REPL over a local SessionController."""

    def __init__(self, controller: SessionController, unlock_code: str = ""):
        self.controller = controller
        self.unlock_code = unlock_code
        self.running = True
        # One loop for the whole REPL; provider SDK clients bind to it
        self.runner = asyncio.Runner()

    @classmethod
    def from_settings(
        cls,
        provider: str | None = None,
        model: str | None = None,
        credits: int | None = None,
    ) -> Repl:
        config = GenerationConfig.from_settings()
        if provider:
            api_key = settings.OPENAI_API_KEY if provider == "openai" else settings.ANTHROPIC_API_KEY
            config = dataclasses.replace(config, provider=provider, api_key=api_key)
            if provider == "openai" and not model and config.model.startswith("claude"):
                model = OPENAI_DEFAULT_MODEL
        if model:
            config = dataclasses.replace(config, model=model)

        session = Session(credits_remaining=settings.FREE_CREDITS if credits is None else credits)
        controller = SessionController(session, build_generation_client(config))
        return cls(controller, unlock_code=settings.UNLOCK_CODE)

    @property
    def session(self) -> Session:
        return self.controller.session

    def start(self):
        """Start the REPL."""
        print("mypip > Describe the app you want to build.")

        try:
            while self.running:
                try:
                    line = input("mypip > ").strip()

                    if not line:
                        continue

                    self.handle_line(line)

                except (EOFError, KeyboardInterrupt):
                    print()
                    break
                except Exception as e:
                    print(f"Error: {e}")
        finally:
            self.runner.close()

    def handle_line(self, line: str):
        """Dispatch one line of input."""
        if line.startswith("/"):
            self._handle_command(line)
        elif self.session.has_generated:
            self._run(self.controller.refine(line))
        else:
            self._run(self.controller.generate(line))

    def _handle_command(self, line: str):
        """Handle REPL commands."""
        parts = line.split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else None

        if cmd == "/quit":
            self.running = False
            print("Goodbye.")
        elif cmd == "/new":
            self.controller.reset()
            if arg:
                self._run(self.controller.generate(arg))
            else:
                print("  New app started. Describe what you want to build.")
        elif cmd == "/actions":
            self._show_actions()
        elif cmd == "/tap":
            if arg:
                self._tap(arg)
            else:
                print("Usage: /tap <number>")
        elif cmd == "/code":
            print()
            print(self.session.source_code)
            print()
        elif cmd == "/history":
            try:
                n = int(arg) if arg else 20
            except ValueError:
                print("  Invalid number.")
                return
            if n < 1:
                print("  Usage: /history [n], with n of 1 or more")
                return
            self._show_history(n)
        elif cmd == "/credits":
            self._show_credits()
        elif cmd == "/unlock":
            if arg:
                self._unlock(arg)
            else:
                print("Usage: /unlock <code>")
        elif cmd == "/save":
            self._save_source(arg)
        elif cmd == "/preview":
            self._save_preview(arg)
        elif cmd == "/help":
            self._show_help()
        else:
            print(f"Unknown command: {cmd}")
            print("Type /help for available commands.")

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def _run(self, flow) -> MutationOutcome:
        print(f"  {DIM}working...{RESET}")
        outcome = self.runner.run(flow)
        self._report(outcome)
        return outcome

    def _report(self, outcome: MutationOutcome):
        if outcome.status == OutcomeStatus.APPLIED:
            print(f"  {GREEN}mypip:{RESET} {self.session.history[-1].text}")
            self._show_actions()
        elif outcome.status == OutcomeStatus.DENIED:
            print(f"  {RED}{outcome.message}{RESET}")
            if not self.session.unlimited_unlocked and self.session.credits_remaining == 0:
                print("  Have an early bird code? Use /unlock <code>.")
        elif outcome.status == OutcomeStatus.FAILED:
            print(f"  {RED}{outcome.message}{RESET}")
            print("  Your previous app is unchanged.")

    def _tap(self, index: str):
        preview = self.controller.preview
        tags = preview.tags if preview is not None else []
        try:
            idx = int(index) - 1
        except ValueError:
            print("  Invalid number.")
            return
        if not 0 <= idx < len(tags):
            print("  Invalid index. Use /actions to see tappable elements.")
            return

        tag = tags[idx]
        print(f'  {DIM}tap "{tag.action_description}"{RESET}')
        pending = preview.activate(tag.binding_key, event="click")
        if pending is not None:
            self._run(pending)

    # -----------------------------------------------------------------------
    # Views
    # -----------------------------------------------------------------------

    def _show_actions(self):
        preview = self.controller.preview
        tags = preview.tags if preview is not None else []
        if not tags:
            print("  Nothing to tap in this preview.")
            return
        print("  Tappable:")
        for i, tag in enumerate(tags, 1):
            print(f"  {i}. {tag.action_description} {DIM}({tag.action_id}){RESET}")

    def _show_history(self, n: int):
        entries = self.session.history[-n:]
        if not entries:
            print("  No history yet.")
            return
        for entry in entries:
            if entry.kind == "assistant":
                prefix = f"{GREEN}mypip:{RESET}"
            elif entry.kind == "interaction":
                prefix = f"{DIM}tap:{RESET}"
            else:
                prefix = f"{DIM}you:{RESET}"
            print(f"  {prefix} {entry.text}")

    def _show_credits(self):
        if self.session.unlimited_unlocked:
            print("  Unlimited prompts.")
        else:
            print(f"  {self.session.credits_remaining} free prompts left.")

    def _unlock(self, code: str):
        if self.controller.unlock(verify_unlock_code(code, self.unlock_code)):
            print(f"  {GREEN}{UNLOCK_ACCEPTED}{RESET}")
        else:
            print(f"  {RED}{self.session.error}{RESET}")

    # -----------------------------------------------------------------------
    # Files
    # -----------------------------------------------------------------------

    def _save_source(self, path: str | None):
        try:
            filename, content = self.controller.download_source()
        except NothingToDownload as e:
            print(f"  {e}")
            return
        target = Path(path or filename)
        target.write_text(content)
        print(f"  Wrote {target}")

    def _save_preview(self, path: str | None):
        bound = self.controller.preview or self.controller.render()
        target = Path(path or "preview.html")
        # Standalone file: taps have nowhere to post, so use /tap instead
        target.write_text(render_document(bound, interact_url=""))
        print(f"  Wrote {target}")

    def _show_help(self):
        """Show help message."""
        print("""
  REPL Commands:
    <text>          - Describe a new app, or change the current one
    /new <prompt>   - Start over with a new app
    /actions        - List tappable elements in the preview
    /tap <n>        - Tap element number <n>
    /code           - Print the Swift source
    /history [n]    - Show last n history entries (default 20)
    /credits        - Show remaining prompts
    /unlock <code>  - Redeem an early bird code
    /save [path]    - Write the Swift source (default MyPipApp.swift)
    /preview [path] - Write the preview page (default preview.html)
    /help           - Show this help
    /quit           - Exit REPL
""")
