"""
spec_parser.py

Responsibility: parse raw API specification text (AsyncAPI / OpenAPI, YAML or
JSON) into a typed `ApiDocument`.

This implementation intentionally stays conservative:
- It validates only the envelope every supported format shares
  (`asyncapi`/`openapi`/`swagger` version key and an `info` block).
- Given a `path` option, relative file `$ref`s are inlined so templates see
  a single tree.

The generator treats the parsed result as the single source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from specgen.errors import InvalidInput
from specgen.utils import is_url

SPEC_TYPES = ("asyncapi", "openapi", "swagger")

_MISSING = object()


@dataclass(frozen=True)
class ApiDocument:
    """Parsed specification document handed to templates as `document`."""

    spec_type: str
    spec_version: str
    info: dict[str, Any]
    raw: dict[str, Any] = field(repr=False)
    source: str | None = None

    @property
    def title(self) -> str:
        return str(self.info.get("title", ""))

    @property
    def api_version(self) -> str:
        return str(self.info.get("version", ""))

    @property
    def servers(self) -> dict[str, Any]:
        """
        Servers keyed by name. OpenAPI lists servers; those are keyed by index.
        """
        servers = self.raw.get("servers") or {}
        if isinstance(servers, list):
            return {str(i): s for i, s in enumerate(servers)}
        return dict(servers) if isinstance(servers, dict) else {}

    def get(self, path: str, default: Any = None) -> Any:
        """Dotted lookup into the raw document, e.g. `info.contact.name`."""
        node: Any = self.raw
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
                node = node[int(part)]
            else:
                return default
        return node


def _load_yaml(text: str, origin: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidInput(f"{origin} is not valid YAML or JSON: {e}") from e


def _follow_pointer(data: Any, pointer: str, ref: str) -> Any:
    node = data
    for raw_part in [p for p in pointer.lstrip("/").split("/") if p]:
        part = raw_part.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            raise InvalidInput(f"Unable to resolve $ref {ref!r}: {pointer!r} not found")
    return node


def _resolve_file_refs(node: Any, base_dir: Path, stack: tuple[str, ...]) -> Any:
    if isinstance(node, list):
        return [_resolve_file_refs(item, base_dir, stack) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str) and ref and not ref.startswith("#") and not is_url(ref):
        file_part, _, pointer = ref.partition("#")
        target = (base_dir / file_part).resolve()
        key = f"{target}#{pointer}"
        if key in stack:
            raise InvalidInput(f"Circular $ref detected: {' -> '.join(stack + (key,))}")
        if not target.is_file():
            raise InvalidInput(f"Unable to resolve $ref {ref!r}: {target} does not exist")
        loaded = _load_yaml(target.read_text(encoding="utf-8"), str(target))
        resolved = _follow_pointer(loaded, pointer, ref) if pointer else loaded
        return _resolve_file_refs(resolved, target.parent, stack + (key,))

    return {k: _resolve_file_refs(v, base_dir, stack) for k, v in node.items()}


def parse_spec(text: str, options: Mapping[str, Any] | None = None) -> ApiDocument:
    """
    Parse specification text into an `ApiDocument`.

    Supported options:
    - path: location of the document on disk; enables relative `$ref` resolution
    """
    options = dict(options or {})
    source = options.get("path")
    origin = str(source) if source else "Specification"

    data = _load_yaml(text, origin)
    if not isinstance(data, dict):
        raise InvalidInput(f"{origin} must be a mapping/object at the top level.")
    if source:
        data = _resolve_file_refs(data, Path(source).resolve().parent, ())

    spec_type = next((t for t in SPEC_TYPES if t in data), None)
    if spec_type is None:
        raise InvalidInput(f"{origin} must define one of: {', '.join(SPEC_TYPES)}.")
    spec_version = str(data[spec_type]).strip()
    if not spec_version:
        raise InvalidInput(f"`{spec_type}` version must not be empty.")

    info = data.get("info")
    if not isinstance(info, dict):
        raise InvalidInput("`info` must be an object/mapping.")
    for key in ("title", "version"):
        if info.get(key, _MISSING) in (_MISSING, None, ""):
            raise InvalidInput(f"`info.{key}` is required.")

    return ApiDocument(
        spec_type=spec_type,
        spec_version=spec_version,
        info=info,
        raw=data,
        source=str(source) if source else None,
    )
