"""Expose the project version for the health and configuration endpoints."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Final

PACKAGE_NAME: Final = "ringgitcalc"
PYPROJECT_PATH: Final = Path(__file__).resolve().parents[3] / "pyproject.toml"


@lru_cache(maxsize=1)
def get_project_version() -> str:
    """Return the installed distribution version, else the one in ``pyproject.toml``."""

    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        return read_version_from_pyproject(PYPROJECT_PATH)


def read_version_from_pyproject(path: Path) -> str:
    """Return ``[project].version`` from the ``pyproject.toml`` at ``path``."""

    if not path.exists():
        raise RuntimeError(f"Unable to locate project metadata at {path}")

    with path.open("rb") as handle:
        data = tomllib.load(handle)

    version = data.get("project", {}).get("version")
    if not version:
        raise RuntimeError("Unable to determine project version from pyproject.toml")
    return str(version)


__all__ = ["PACKAGE_NAME", "get_project_version", "read_version_from_pyproject"]
