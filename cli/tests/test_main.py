"""
Tests for CLI argument parsing.
"""

from __future__ import annotations

import pytest

from mypip_cli.main import parse_args


def test_defaults():
    args = parse_args([])

    assert args["provider"] is None
    assert args["credits"] is None
    assert args["debug"] is False


def test_all_options():
    args = parse_args(["--provider", "openai", "--model", "gpt-4o", "--credits", "3", "--debug"])

    assert args["provider"] == "openai"
    assert args["model"] == "gpt-4o"
    assert args["credits"] == 3
    assert args["debug"] is True


def test_help_and_version():
    assert parse_args(["-h"])["show_help"] is True
    assert parse_args(["--version"])["show_version"] is True


@pytest.mark.parametrize(
    "argv",
    [
        ["--provider", "gemini"],
        ["--provider"],
        ["--credits", "many"],
        ["--credits", "-1"],
        ["--verbose"],
    ],
)
def test_bad_arguments_exit(argv, capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(argv)

    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "Error" in out or "Unknown option" in out
