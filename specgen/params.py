"""
params.py

Responsibility: caller-supplied template parameters.

Reads are checked lazily against the template's declared parameters, so a
template config loaded (or patched) after construction is honored.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Iterator

from specgen.errors import ParameterNotDeclared

DeclaredParameters = Callable[[], Mapping[str, Any]]


class TemplateParams(Mapping):
    def __init__(self, values: Mapping[str, Any] | None, declared: DeclaredParameters) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self._declared = declared

    def __getitem__(self, name: str) -> Any:
        if name not in (self._declared() or {}):
            raise ParameterNotDeclared(name)
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TemplateParams):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"TemplateParams({self._values!r})"

    def setdefault(self, name: str, value: Any) -> Any:
        return self._values.setdefault(name, value)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)


def load_default_values(params: TemplateParams, declared_parameters: Mapping[str, Any] | None) -> TemplateParams:
    """
    Inject the declared default of every parameter the caller did not pass.

    A key the caller passed is kept as is, even when its value is falsy.
    """
    for name, definition in (declared_parameters or {}).items():
        if isinstance(definition, Mapping) and "default" in definition and name not in params:
            params.setdefault(name, definition["default"])
    return params
