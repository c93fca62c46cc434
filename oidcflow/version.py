"""Version string assembled from build and version-control information."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from importlib import metadata
from typing import Union

Settings = Union[Mapping[str, str], Iterable[tuple[str, str]]]


def build_version(main_version: str, settings: Settings) -> str:
    """Join the main version with the short revision and a dirty marker.

    Settings with empty values are ignored. Returns ``"unknown"`` when
    nothing is known.
    """
    pairs = settings.items() if isinstance(settings, Mapping) else settings
    revision = ""
    dirty = False
    for key, value in pairs:
        if not value:
            continue
        if key == "vcs.revision":
            revision = value
        elif key == "vcs.modified":
            dirty = value == "true"

    parts: list[str] = []
    if main_version:
        parts.append(main_version)
    if revision:
        parts.extend(["rev", revision[:7]])
        if dirty:
            parts.append("dirty")
    return "-".join(parts) if parts else "unknown"


def _installed_version() -> str:
    try:
        return metadata.version("oidcflow")
    except metadata.PackageNotFoundError:
        return ""


VERSION = build_version(_installed_version(), {})