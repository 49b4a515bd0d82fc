"""
Module entrypoint for the linkroute CLI.

This file exists so that `python -m linkroute ...` works when the console
script wrapper is not installed. It contains no business logic.
"""

from __future__ import annotations

from linkroute.cli import main


def _run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    _run()
