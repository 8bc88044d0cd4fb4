"""Version lookup for the CLI ``--version`` flag.

Installed distributions report their metadata version; a source checkout run
with ``PYTHONPATH=src`` reads it from the nearest ``pyproject.toml`` instead.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _dist_version
from pathlib import Path

import tomllib


def _find_pyproject(start: Path | None = None) -> Path | None:
    origin = (start or Path(__file__)).resolve()
    for parent in (origin, *origin.parents):
        candidate = parent / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def get_app_version(package_name: str = "guestchat") -> str:
    try:
        return _dist_version(package_name)
    except PackageNotFoundError:
        pyproject = _find_pyproject()
        if pyproject is None:
            return "0.0.0"
        try:
            with pyproject.open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError):
            return "0.0.0"
        return str(data.get("project", {}).get("version", "0.0.0"))
