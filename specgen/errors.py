"""
errors.py

Responsibility: the exception taxonomy shared by every specgen module.

All errors surface to the caller of the top-level `generate*` operation.
Nothing here is retried; these are configuration and logic errors.
"""

from __future__ import annotations


class GeneratorError(RuntimeError):
    pass


class ConfigInvalid(GeneratorError):
    pass


class ParameterNotDeclared(GeneratorError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f'Template parameter "{name}" has not been defined in the template.yaml file '
            "under the generator property. Please make sure it's listed there before you "
            "use it in your template."
        )
        self.name = name


class TemplateInstallError(GeneratorError):
    pass


class TemplateConfigInvalid(GeneratorError):
    pass


class TargetDirectoryInvalid(GeneratorError):
    pass


class EntrypointNotFound(GeneratorError):
    pass


class InvalidInput(GeneratorError):
    pass


class RenderError(GeneratorError):
    pass


class SpecFetchError(GeneratorError):
    pass


class HookExecutionError(GeneratorError):
    """A hook callable raised; the original error is kept as `__cause__`."""

    def __init__(self, hook_type: str, hook_name: str | None, original: BaseException) -> None:
        where = f'hook "{hook_name}"' if hook_name else "a hook"
        super().__init__(f'{where} of type "{hook_type}" failed: {original}')
        self.hook_type = hook_type
        self.hook_name = hook_name
        self.original = original
