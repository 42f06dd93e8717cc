"""
hooks.py

Responsibility: the named-lifecycle hook engine and the hooks registrar.

A template ships hook modules under `hooks/*.py`. Each module exposes a
module-level `hooks` mapping of hook type to a callable or a list of
callables:

    def create_readme(generator, **kwargs): ...

    hooks = {"generate:after": [create_readme]}

Hooks are identified by their `__name__`, which is what `disabled_hooks`
refers to.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

from specgen.errors import ConfigInvalid, HookExecutionError, TemplateConfigInvalid
from specgen.template_config import TemplateConfig
from specgen.utils import load_module_from_file

logger = logging.getLogger(__name__)

HOOKS_DIRNAME = "hooks"

GENERATE_BEFORE = "generate:before"
GENERATE_AFTER = "generate:after"
SET_FILE_TEMPLATE_NAME = "setFileTemplateName"

HookRegistry = dict[str, list[Callable[..., Any]]]


def hook_name(hook: Any) -> str:
    return getattr(hook, "__name__", None) or str(hook)


@dataclass(frozen=True)
class _Rule:
    whole: bool = False
    names: frozenset[str] = frozenset()


class DisabledHooks:
    """
    `disabled_hooks` normalized to one rule per hook type.

    Accepted values per type: True (whole type), False (nothing), a hook name,
    or a list of hook names.
    """

    def __init__(self, rules: Mapping[str, _Rule] | None = None) -> None:
        self._rules: dict[str, _Rule] = dict(rules or {})

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "DisabledHooks":
        rules: dict[str, _Rule] = {}
        for hook_type, value in (raw or {}).items():
            if value is True:
                rules[hook_type] = _Rule(whole=True)
            elif value is False or value is None:
                continue
            elif isinstance(value, str):
                rules[hook_type] = _Rule(names=frozenset([value]))
            elif isinstance(value, (list, tuple, set, frozenset)) and all(isinstance(v, str) for v in value):
                rules[hook_type] = _Rule(names=frozenset(value))
            else:
                raise ConfigInvalid(
                    f'Invalid disabled_hooks value for "{hook_type}": expected true, a hook name '
                    "or a list of hook names."
                )
        return cls(rules)

    def is_type_disabled(self, hook_type: str) -> bool:
        return self._rules.get(hook_type, _Rule()).whole

    def is_disabled(self, hook_type: str, name: str) -> bool:
        rule = self._rules.get(hook_type, _Rule())
        return rule.whole or name in rule.names


class HookEngine:
    def __init__(self, hooks: HookRegistry | None = None, disabled: DisabledHooks | None = None) -> None:
        self.hooks: HookRegistry = hooks if hooks is not None else {}
        self.disabled = disabled or DisabledHooks()

    def _enabled(self, hook_type: str) -> list[Callable[..., Any]]:
        if self.disabled.is_type_disabled(hook_type):
            return []
        return [h for h in self.hooks.get(hook_type) or [] if not self.disabled.is_disabled(hook_type, hook_name(h))]

    def is_hook_available(self, hook_type: str) -> bool:
        return bool(self._enabled(hook_type))

    def launch_hook(self, hook_type: str, generator: Any = None, **kwargs: Any) -> Any:
        """
        Run the enabled hooks of `hook_type` one after the other.

        Returns the last non-None value a hook returned.
        """
        result = None
        for hook in self._enabled(hook_type):
            name = hook_name(hook)
            logger.debug("Launching %s hook %s", hook_type, name)
            try:
                value = hook(generator, **kwargs)
            except Exception as e:
                raise HookExecutionError(hook_type, name, e) from e
            if value is not None:
                result = value
        return result


def _add_hooks(registry: HookRegistry, exported: Any, origin: str, only: set[str] | None = None) -> None:
    if not isinstance(exported, Mapping):
        raise TemplateConfigInvalid(f"{origin} must expose a `hooks` mapping of hook type to callables.")
    for hook_type, value in exported.items():
        callables = value if isinstance(value, (list, tuple)) else [value]
        for hook in callables:
            if not callable(hook):
                raise TemplateConfigInvalid(f'{origin}: hook for "{hook_type}" is not callable: {hook!r}')
            if only is not None and hook_name(hook) not in only:
                continue
            registry.setdefault(hook_type, []).append(hook)


def register_local_hooks(registry: HookRegistry, template_root: Path) -> None:
    hooks_dir = Path(template_root) / HOOKS_DIRNAME
    if not hooks_dir.is_dir():
        return
    for path in sorted(hooks_dir.glob("*.py")):
        if path.name.startswith("_"):
            continue
        try:
            module = load_module_from_file(path, f"specgen_template_hooks_{path.stem}")
        except Exception as e:
            raise TemplateConfigInvalid(f"Failed to load hook module {path}: {e}") from e
        if hasattr(module, "hooks"):
            _add_hooks(registry, module.hooks, str(path))


def register_config_hooks(registry: HookRegistry, template_config: TemplateConfig) -> None:
    for module_name, names in (template_config.hooks or {}).items():
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise TemplateConfigInvalid(f'Hook module "{module_name}" could not be imported: {e}') from e
        _add_hooks(registry, getattr(module, "hooks", None), module_name, only=set(names))


def register_hooks(template_root: str | Path, template_config: TemplateConfig) -> HookRegistry:
    registry: HookRegistry = {}
    register_local_hooks(registry, Path(template_root))
    register_config_hooks(registry, template_config)
    return registry
