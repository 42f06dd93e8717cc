"""
config.py

Responsibility: configuration for a generation run.

- `Settings`: process-wide values (templates root, HTTP timeout, installer dry
  run) read from the environment once and injected where needed.
- `GeneratorOptions`: the per-run options bag, validated against an explicit
  allow-list of option names and accepted types.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from specgen.errors import ConfigInvalid

ENV_TEMPLATES_DIR = "SPECGEN_TEMPLATES_DIR"
ENV_HTTP_TIMEOUT = "SPECGEN_HTTP_TIMEOUT"
ENV_INSTALL_DRY_RUN = "SPECGEN_INSTALL_DRY_RUN"

_TRUTHY = {"1", "true", "yes", "on"}


class OutputMode(str, Enum):
    FS = "fs"
    STRING = "string"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration shared by the installer and the generator."""

    templates_dir: Path
    http_timeout: float = 30.0
    install_dry_run: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        templates_dir = env.get(ENV_TEMPLATES_DIR) or str(Path.home() / ".specgen" / "templates")

        raw_timeout = env.get(ENV_HTTP_TIMEOUT, "").strip()
        try:
            timeout = float(raw_timeout) if raw_timeout else 30.0
        except ValueError as e:
            raise ConfigInvalid(f"{ENV_HTTP_TIMEOUT} must be a number, got {raw_timeout!r}") from e

        dry_run = env.get(ENV_INSTALL_DRY_RUN, "").strip().lower() in _TRUTHY
        return cls(templates_dir=Path(templates_dir).expanduser().resolve(), http_timeout=timeout, install_dry_run=dry_run)


# Option name -> accepted types. Order is irrelevant; unknown keys are reported
# in the order the caller passed them.
_OPTION_TYPES: dict[str, tuple[type, ...]] = {
    "entrypoint": (str, type(None)),
    "no_overwrite_globs": (list, tuple),
    "disabled_hooks": (dict,),
    "output": (str,),
    "force_write": (bool,),
    "install": (bool,),
    "debug": (bool,),
    "template_params": (dict,),
}


@dataclass
class GeneratorOptions:
    entrypoint: str | None = None
    no_overwrite_globs: list[str] = field(default_factory=list)
    disabled_hooks: dict[str, Any] = field(default_factory=dict)
    output: OutputMode = OutputMode.FS
    force_write: bool = False
    install: bool = False
    debug: bool = False
    template_params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_kwargs(cls, options: Mapping[str, Any]) -> "GeneratorOptions":
        unknown = [key for key in options if key not in _OPTION_TYPES]
        if unknown:
            raise ConfigInvalid(f"These options are not supported by the generator: {', '.join(unknown)}")

        for key, value in options.items():
            if not isinstance(value, _OPTION_TYPES[key]):
                raise ConfigInvalid(f'Option "{key}" has an invalid type: {type(value).__name__}')

        output = options.get("output", OutputMode.FS)
        try:
            output = OutputMode(output)
        except ValueError as e:
            raise ConfigInvalid(f"Invalid output type {output}. Valid values are 'fs' and 'string'.") from e

        globs = list(options.get("no_overwrite_globs", []))
        if not all(isinstance(g, str) for g in globs):
            raise ConfigInvalid('Option "no_overwrite_globs" must only contain strings.')

        return cls(
            entrypoint=options.get("entrypoint"),
            no_overwrite_globs=globs,
            disabled_hooks=dict(options.get("disabled_hooks", {})),
            output=output,
            force_write=options.get("force_write", False),
            install=options.get("install", False),
            debug=options.get("debug", False),
            template_params=dict(options.get("template_params", {})),
        )
