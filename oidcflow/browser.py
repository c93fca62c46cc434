"""Opening URLs in the system's default web browser."""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Optional

CommandRunner = Callable[..., None]
BrowserOpener = Callable[[str, CommandRunner], None]


class BrowserError(Exception):
    """Raised when a URL cannot be opened in a browser."""


def run_cmd(prog: str, *args: str) -> None:
    """Run ``prog`` with ``args``, checking first that the program exists."""
    if shutil.which(prog) is None:
        raise BrowserError(
            f"command {prog} not found: executable file not found in PATH"
        )
    try:
        subprocess.run([prog, *args], check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise BrowserError(f"command {prog} failed: {exc}") from exc


def open_browser(url: str, run_cmd: CommandRunner) -> None:
    """Open ``url`` with the platform's URL handler, executed through ``run_cmd``."""
    platform = sys.platform
    if platform == "darwin":
        run_cmd("open", url)
    elif platform.startswith("linux"):
        run_cmd("xdg-open", url)
    elif platform == "win32":
        run_cmd("rundll32", "url.dll,FileProtocolHandler", url)
    else:
        raise BrowserError(f"openBrowser: unsupported operating system: {platform}")


@dataclass
class SystemBrowser:
    """Opens URLs using the operating system's own commands."""

    run_cmd: Optional[CommandRunner] = None
    open_browser: Optional[BrowserOpener] = None

    def open(self, url: str) -> None:
        """Open ``url``; missing strategies fall back to the module defaults."""
        # Inside a method these names refer to the module-level functions.
        if self.run_cmd is None:
            self.run_cmd = run_cmd
        if self.open_browser is None:
            self.open_browser = open_browser
        self.open_browser(url, self.run_cmd)


def new_browser() -> SystemBrowser:
    """Return a browser suitable for the current platform."""
    return SystemBrowser(run_cmd=run_cmd, open_browser=open_browser)