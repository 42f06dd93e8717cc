"""
filters.py

Responsibility: collect the Jinja2 filters a template makes available to its
files.

Sources, in order (later names win):
- `filters/*.py` modules shipped with the template
- installed modules listed under `generator.filters` in the manifest

A module either exposes a `filters` mapping of name to callable, or every
public function it defines becomes a filter under its own name.
"""

from __future__ import annotations

import importlib
import inspect
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from specgen.errors import TemplateConfigInvalid
from specgen.template_config import TemplateConfig
from specgen.utils import load_module_from_file

FILTERS_DIRNAME = "filters"

FilterRegistry = dict[str, Callable[..., Any]]


def _module_filters(module: ModuleType, origin: str) -> FilterRegistry:
    exported = getattr(module, "filters", None)
    if exported is not None:
        if not isinstance(exported, dict) or not all(callable(f) for f in exported.values()):
            raise TemplateConfigInvalid(f"{origin}: `filters` must map names to callables.")
        return dict(exported)
    return {
        name: obj
        for name, obj in vars(module).items()
        if inspect.isfunction(obj) and obj.__module__ == module.__name__ and not name.startswith("_")
    }


def register_filters(template_root: str | Path, template_config: TemplateConfig) -> FilterRegistry:
    registry: FilterRegistry = {}

    filters_dir = Path(template_root) / FILTERS_DIRNAME
    if filters_dir.is_dir():
        for path in sorted(filters_dir.glob("*.py")):
            if path.name.startswith("_"):
                continue
            try:
                module = load_module_from_file(path, f"specgen_template_filters_{path.stem}")
            except Exception as e:
                raise TemplateConfigInvalid(f"Failed to load filter module {path}: {e}") from e
            registry.update(_module_filters(module, str(path)))

    for module_name in template_config.filters or []:
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise TemplateConfigInvalid(f'Filter module "{module_name}" could not be imported: {e}') from e
        registry.update(_module_filters(module, module_name))

    return registry
