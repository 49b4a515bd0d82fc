"""
Launching destinations.

The engine only decides; a Launcher opens the URL. Launching is
fire-and-forget: the process is started and never waited on, retried or
observed.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Protocol

from .catalog.profiles import chromium_family_ids, firefox_family_ids
from .data_models import Destination, Profile
from .errors import LaunchError

logger = logging.getLogger(__name__)


class Launcher(Protocol):
    """Opens a URL in a destination."""

    def launch(self, destination: Destination, url: str, profile: Profile | None = None) -> None:
        """
        Start the destination with `url`.

        Raises
        ------
        LaunchError
            If the process could not be started.
        """
        ...


def profile_arguments(destination: Destination, profile: Profile | None) -> list[str]:
    """Command-line flags selecting `profile` for the destination's family."""
    if profile is None:
        return []
    if destination.id in chromium_family_ids():
        return [f"--profile-directory={profile.directory_name}"]
    if destination.id in firefox_family_ids():
        return ["-P", profile.name]
    return []


def build_launch_command(
    destination: Destination,
    url: str,
    profile: Profile | None = None,
    platform: str | None = None,
) -> list[str]:
    """
    Build the argv that opens `url` in `destination`.

    macOS application bundles (``*.app``) go through ``open -a`` so the
    running instance is reused; profile flags follow ``--args``.
    """
    platform = platform or sys.platform
    extra = profile_arguments(destination, profile)
    path = destination.executable_path
    if platform == "darwin" and path.rstrip("/").endswith(".app"):
        argv = ["open", "-a", path, url]
        if extra:
            argv += ["--args", *extra]
        return argv
    return [path, *extra, url]


@dataclass(slots=True)
class SubprocessLauncher:
    """Launcher that spawns the destination as a detached process."""

    platform: str = field(default_factory=lambda: sys.platform)

    def launch(self, destination: Destination, url: str, profile: Profile | None = None) -> None:
        argv = build_launch_command(destination, url, profile, platform=self.platform)
        logger.debug("Launching %s", argv)
        try:
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(f"Failed to launch {destination.name}: {exc}") from exc


@dataclass(slots=True)
class RecordingLauncher:
    """Launcher that only records requests (dry runs and tests)."""

    launches: list[tuple[Destination, str, Profile | None]] = field(default_factory=list)

    def launch(self, destination: Destination, url: str, profile: Profile | None = None) -> None:
        self.launches.append((destination, url, profile))
