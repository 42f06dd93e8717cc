"""
utils.py

Responsibility: small filesystem helpers shared across the package.

Network access lives in `fetch.py`; this module never touches the network.
"""

from __future__ import annotations

import importlib.util
import re
from pathlib import Path
from types import ModuleType

_URL_RE = re.compile(r"^(?:git\+)?https?://", re.IGNORECASE)


def exists(path: str | Path) -> bool:
    return Path(path).exists()


def read_file(path: str | Path, *, encoding: str = "utf-8") -> str:
    return Path(path).read_text(encoding=encoding)


def is_url(reference: str) -> bool:
    return bool(_URL_RE.match(reference))


def is_file_system_path(reference: str) -> bool:
    """An existing path on disk, relative to the working directory or absolute."""
    try:
        return Path(reference).expanduser().exists()
    except (OSError, ValueError):
        return False


def load_module_from_file(path: Path, module_name: str) -> ModuleType:
    """
    Execute a Python file as a standalone module (not added to sys.modules).
    """
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Unable to load module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
