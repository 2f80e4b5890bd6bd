"""
Package version and display name.

Prefers pyproject.toml when running from a source checkout, so an editable
install never reports a stale version; otherwise asks the installed
distribution metadata.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["VERSION", "APP_NAME"]

APP_NAME = "SimpleAI"
DISTRIBUTION = "simpleai"
_PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def _version_from_pyproject(path: Path) -> str | None:
    if not path.is_file():
        return None
    in_project = False
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if stripped.startswith("["):
            in_project = stripped == "[project]"
        elif in_project and stripped.startswith("version") and "=" in stripped:
            return stripped.split("=", 1)[1].strip().strip("\"'")
    return None


def _read_version() -> str:
    found = _version_from_pyproject(_PYPROJECT)
    if found:
        return found
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return "0.0.0"


VERSION = _read_version()
