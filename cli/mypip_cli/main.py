"""Main entry point for myPip CLI."""
from __future__ import annotations

import logging
import sys

from mypip_cli import __version__
from mypip_cli.repl import Repl

PROVIDERS = ("anthropic", "openai", "mock")


def print_help():
    """Print help message."""
    print(f"""
myPip CLI v{__version__}

Usage:
  mypip [options]

Describe an app, then refine it with plain text or by tapping its buttons.
Runs locally against the generation provider; nothing is saved remotely.

Options:
  --provider NAME   anthropic (default), openai or mock
  --model NAME      Override the generation model
  --credits N       Free prompts for this session (default 5)
  --debug           Log generation calls to stderr
  -h, --help        Show this help
  -v, --version     Show version

Environment:
  ANTHROPIC_API_KEY / OPENAI_API_KEY   Provider credentials
  UNLOCK_CODE                          Code accepted by /unlock

REPL Commands:
  <text>            Describe a new app, or change the current one
  /new <prompt>     Start over with a new app
  /actions          List tappable elements in the preview
  /tap <n>          Tap element number <n>
  /code             Print the Swift source
  /history [n]      Show the last n history entries
  /credits          Show remaining prompts
  /unlock <code>    Redeem an unlock code
  /save <path>      Write the Swift source to a file
  /preview <path>   Write the preview page to an HTML file
  /help             Show REPL help
  /quit             Exit REPL
""")


def _value(args: list[str], i: int, flag: str, what: str) -> str:
    if i + 1 < len(args):
        return args[i + 1]
    print(f"Error: {flag} requires {what}")
    sys.exit(1)


def parse_args(args: list[str]) -> dict:
    """
    Parse command line arguments.

    Returns dict with:
        provider: str | None
        model: str | None
        credits: int | None
        debug: bool
        show_help: bool
        show_version: bool
    """
    result = {
        "provider": None,
        "model": None,
        "credits": None,
        "debug": False,
        "show_help": False,
        "show_version": False,
    }

    i = 0
    while i < len(args):
        arg = args[i]

        if arg == "--provider":
            provider = _value(args, i, arg, "a provider name")
            if provider not in PROVIDERS:
                print(f"Error: unknown provider {provider!r}. Choose from: {', '.join(PROVIDERS)}")
                sys.exit(1)
            result["provider"] = provider
            i += 1
        elif arg == "--model":
            result["model"] = _value(args, i, arg, "a model name")
            i += 1
        elif arg == "--credits":
            raw = _value(args, i, arg, "a number")
            try:
                result["credits"] = int(raw)
            except ValueError:
                print(f"Error: --credits expects a number, got {raw!r}")
                sys.exit(1)
            if result["credits"] < 0:
                print("Error: --credits cannot be negative")
                sys.exit(1)
            i += 1
        elif arg == "--debug":
            result["debug"] = True
        elif arg in ("--help", "-h"):
            result["show_help"] = True
        elif arg in ("--version", "-v"):
            result["show_version"] = True
        else:
            print(f"Unknown option: {arg}")
            print("Run 'mypip --help' for usage.")
            sys.exit(1)

        i += 1

    return result


def main():
    """Main entry point."""
    args = parse_args(sys.argv[1:])

    if args["show_help"]:
        print_help()
        return

    if args["show_version"]:
        print(f"mypip-cli {__version__}")
        return

    logging.basicConfig(
        level=logging.INFO if args["debug"] else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Imported late so --help works without provider SDKs configured
    from backend.config import check_generation_settings

    try:
        check_generation_settings(args["provider"])
    except RuntimeError as e:
        print(f"Error: {e}")
        sys.exit(1)

    repl = Repl.from_settings(
        provider=args["provider"],
        model=args["model"],
        credits=args["credits"],
    )
    repl.start()


if __name__ == "__main__":
    main()
