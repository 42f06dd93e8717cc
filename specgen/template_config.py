"""
template_config.py

Responsibility: load and validate a template's manifest (`template.yaml`).

Manifest layout:

    name: my-template
    version: 1.0.0
    generator:
      parameters:
        title: {description: "...", default: "API", required: false}
      non_renderable_files: ["**/*.png"]
      supported_protocols: [kafka, mqtt]
      hooks: {some_installed_module: [hook_name]}
      filters: [some_installed_module]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from specgen.errors import TemplateConfigInvalid

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "template.yaml"

_KNOWN_KEYS = {"parameters", "non_renderable_files", "supported_protocols", "hooks", "filters"}
_PARAMETER_KEYS = {"description", "default", "required"}


@dataclass
class TemplateConfig:
    parameters: dict[str, dict[str, Any]] = field(default_factory=dict)
    non_renderable_files: list[str] = field(default_factory=list)
    supported_protocols: list[str] | None = None
    hooks: dict[str, list[str]] = field(default_factory=dict)
    filters: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


def read_manifest(template_root: Path) -> dict[str, Any] | None:
    """
    Return the parsed manifest, or None when the template has none.
    """
    path = Path(template_root) / MANIFEST_FILENAME
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise TemplateConfigInvalid(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise TemplateConfigInvalid(f"{path} must be a mapping/object at the top level.")
    return data


def _string_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise TemplateConfigInvalid(f"`generator.{key}` must be a string or a list of strings.")
    return list(value)


def _parse_parameters(raw: Any) -> dict[str, dict[str, Any]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise TemplateConfigInvalid("`generator.parameters` must be an object/mapping.")

    parameters: dict[str, dict[str, Any]] = {}
    for name, definition in raw.items():
        definition = {} if definition is None else definition
        if not isinstance(definition, dict):
            raise TemplateConfigInvalid(f'Parameter "{name}" must be an object/mapping.')
        unknown = sorted(set(definition) - _PARAMETER_KEYS)
        if unknown:
            raise TemplateConfigInvalid(f'Parameter "{name}" has unsupported keys: {", ".join(unknown)}')
        if not isinstance(definition.get("required", False), bool):
            raise TemplateConfigInvalid(f'Parameter "{name}": `required` must be a boolean.')
        parameters[str(name)] = dict(definition)
    return parameters


def load_template_config(template_root: str | Path) -> TemplateConfig:
    manifest = read_manifest(Path(template_root))
    if manifest is None:
        logger.debug("No %s found in %s, using an empty template config", MANIFEST_FILENAME, template_root)
        return TemplateConfig()

    section = manifest.get("generator") or {}
    if not isinstance(section, dict):
        raise TemplateConfigInvalid("`generator` must be an object/mapping when provided.")

    hooks_raw = section.get("hooks") or {}
    if not isinstance(hooks_raw, dict):
        raise TemplateConfigInvalid("`generator.hooks` must map module names to hook names.")

    protocols = section.get("supported_protocols")
    return TemplateConfig(
        parameters=_parse_parameters(section.get("parameters")),
        non_renderable_files=_string_list(section.get("non_renderable_files"), "non_renderable_files"),
        supported_protocols=None if protocols is None else _string_list(protocols, "supported_protocols"),
        hooks={str(mod): _string_list(names, f"hooks.{mod}") for mod, names in hooks_raw.items()},
        filters=_string_list(section.get("filters"), "filters"),
        extra={k: v for k, v in section.items() if k not in _KNOWN_KEYS},
    )


def validate_template_config(
    template_config: TemplateConfig,
    params: Mapping[str, Any],
    document: Any = None,
) -> None:
    """
    Check the resolved parameters and document against the template config.

    Raises TemplateConfigInvalid before any file is written.
    """
    declared = template_config.parameters or {}

    missing = [name for name, d in declared.items() if d.get("required") and name not in params]
    if missing:
        raise TemplateConfigInvalid(f"This template requires the following missing params: {', '.join(missing)}.")

    undeclared = [name for name in params if name not in declared]
    if undeclared:
        logger.warning("This template doesn't have the following params: %s.", ", ".join(undeclared))

    if template_config.supported_protocols is not None and document is not None:
        supported = template_config.supported_protocols
        for name, server in getattr(document, "servers", {}).items():
            protocol = server.get("protocol") if isinstance(server, dict) else None
            if protocol and protocol not in supported:
                raise TemplateConfigInvalid(
                    f'Server "{name}" uses the {protocol} protocol but this template only supports '
                    f"the following ones: {', '.join(supported)}."
                )
