"""
CLI smoke tests.

These tests validate that the CLI entrypoint is wired and that help output for
the root command and key subcommands does not crash.
"""

from __future__ import annotations

import pytest

from linkroute.cli import main


def _run_help(argv: list[str]) -> None:
    """Run the CLI expecting argparse to exit cleanly with code 0 for --help."""
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 0


def test_cli_root_help(capsys: pytest.CaptureFixture[str]) -> None:
    _run_help(["--help"])
    captured = capsys.readouterr()
    assert "usage:" in captured.out.lower()
    assert "linkroute" in captured.out.lower()


@pytest.mark.parametrize(
    "subcommand",
    ["route", "open", "destinations", "rules", "toggle", "fallback", "recent", "notifications"],
)
def test_cli_subcommand_help(subcommand: str, capsys: pytest.CaptureFixture[str]) -> None:
    _run_help([subcommand, "--help"])
    out = capsys.readouterr().out.lower()
    assert "usage:" in out
    assert subcommand in out


@pytest.mark.parametrize("rules_command", ["list", "add", "update", "delete", "move", "test"])
def test_cli_rules_subcommand_help(rules_command: str, capsys: pytest.CaptureFixture[str]) -> None:
    _run_help(["rules", rules_command, "--help"])
    assert rules_command in capsys.readouterr().out.lower()
