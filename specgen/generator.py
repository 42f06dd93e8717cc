"""
generator.py

Responsibility: orchestrate one generation run.

High-level flow (`Generator.generate`):
1) Prepare the target directory
2) Resolve the template (install it when needed)
3) Load, configure and validate the template config; register hooks and filters
4) Launch `generate:before`
5) Render the whole template, or only the entrypoint file
6) Launch `generate:after`

This module should orchestrate behavior but keep concerns isolated:
- Spec parsing: `spec_parser.py`
- Template location/installation: `installer.py`
- Rendering: `renderer.py`
- Hooks: `hooks.py`
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Mapping

from specgen.config import GeneratorOptions, OutputMode, Settings
from specgen.errors import (
    ConfigInvalid,
    EntrypointNotFound,
    InvalidInput,
    TargetDirectoryInvalid,
    TemplateConfigInvalid,
)
from specgen.fetch import fetch_spec
from specgen.filters import FilterRegistry, register_filters
from specgen.hooks import (
    GENERATE_AFTER,
    GENERATE_BEFORE,
    SET_FILE_TEMPLATE_NAME,
    DisabledHooks,
    HookEngine,
    HookRegistry,
    register_hooks,
)
from specgen.installer import ResolvedTemplate, TemplateInstaller, classify_template
from specgen.params import TemplateParams, load_default_values
from specgen.renderer import PARTIALS_DIRNAME, TemplateRenderer, iter_template_files, matches_any
from specgen.spec_parser import ApiDocument, parse_spec
from specgen.template_config import TemplateConfig, load_template_config, validate_template_config
from specgen.utils import exists, read_file

logger = logging.getLogger(__name__)

RENDER_DIRNAME = "template"

TEMPLATE_INSTALL_FLAG_MSG = "you passed the install option"
TEMPLATE_INSTALL_DISK_MSG = "the template cannot be found on disk"


@dataclass
class GenerationResult:
    rendered_files: list[str] = field(default_factory=list)
    copied_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    # Only filled with output="string".
    files: dict[str, str | bytes] = field(default_factory=dict)


def _git(args: list[str], *, cwd: Path) -> str | None:
    """
    Run a git command and return its stdout, or None if it failed or git is missing.
    """
    try:
        proc = subprocess.run(
            ["git", *args], cwd=str(cwd), check=True, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True
        )
    except (subprocess.CalledProcessError, OSError):
        return None
    return proc.stdout


def _escapes_root(rel_path: str) -> bool:
    path = Path(rel_path)
    return path.is_absolute() or ".." in path.parts


def _has_unstaged_changes(porcelain: str) -> bool:
    # `git status --porcelain` lines are "XY path"; Y is the work tree column ("?" for untracked).
    return any(len(line) > 1 and line[1] != " " for line in porcelain.splitlines())


class Generator:
    """
    Generates files from an API specification document using a template.

    Options (keyword arguments):
    - entrypoint: render only this file, relative to the template's render root
    - no_overwrite_globs: existing files matching these globs are never overwritten
    - disabled_hooks: hook type -> True | hook name | list of hook names
    - output: "fs" (write files) or "string" (return contents)
    - force_write: skip the target directory check and the overwrite policy
    - install: install the template even if it's already on disk
    - debug: log at DEBUG level during the run
    - template_params: values for the template's declared parameters
    """

    def __init__(
        self,
        template_name: str | None = None,
        target_dir: str | os.PathLike | None = None,
        *,
        settings: Settings | None = None,
        **options: Any,
    ) -> None:
        if not template_name:
            raise ConfigInvalid("No template name has been specified.")
        if not target_dir:
            raise ConfigInvalid("No target directory has been specified.")

        opts = GeneratorOptions.from_kwargs(options)

        self.template_name = str(template_name)
        self.target_dir = Path(target_dir)
        self.entrypoint = opts.entrypoint
        self.no_overwrite_globs = opts.no_overwrite_globs
        self.disabled_hooks = opts.disabled_hooks
        self.output = opts.output
        self.force_write = opts.force_write
        self.install = opts.install
        self.debug = opts.debug

        self.settings = settings or Settings.from_env()
        self.installer = TemplateInstaller(self.settings)

        self.template_config = TemplateConfig()
        self.template_params = TemplateParams(opts.template_params, lambda: self.template_config.parameters)
        self._hook_engine = HookEngine(disabled=DisabledHooks.from_mapping(self.disabled_hooks))
        self.filters: FilterRegistry = {}

        self.template_dir: Path | None = None
        self.original_spec: str | None = None
        self.result = GenerationResult()
        self._renderer: TemplateRenderer | None = None

    @property
    def hooks(self) -> HookRegistry:
        return self._hook_engine.hooks

    @hooks.setter
    def hooks(self, value: HookRegistry) -> None:
        self._hook_engine.hooks = value

    @property
    def render_root(self) -> Path:
        if self.template_dir is None:
            raise RuntimeError("The template has not been resolved yet.")
        return self.template_dir / RENDER_DIRNAME

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def generate_from_string(self, spec_string: Any, parse_options: Mapping[str, Any] | None = None) -> GenerationResult:
        if not isinstance(spec_string, str) or not spec_string:
            raise InvalidInput('Parameter "spec_string" must be a non-empty string.')
        self.original_spec = spec_string
        document = parse_spec(spec_string, dict(parse_options or {}))
        return self.generate(document)

    def generate_from_file(self, path: str | os.PathLike) -> GenerationResult:
        text = read_file(path, encoding="utf-8")
        return self.generate_from_string(text, {"path": path})

    def generate_from_url(self, url: str) -> GenerationResult:
        text = fetch_spec(url, timeout=self.settings.http_timeout)
        return self.generate_from_string(text)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def generate(self, document: ApiDocument) -> GenerationResult:
        """
        Run the whole pipeline for an already parsed document.

        A failure aborts the run; files already written are left in place.
        """
        package_logger = logging.getLogger("specgen")
        previous_level = package_logger.level
        if self.debug:
            package_logger.setLevel(logging.DEBUG)
        try:
            return self._generate(document)
        finally:
            package_logger.setLevel(previous_level)

    def _generate(self, document: ApiDocument) -> GenerationResult:
        self.result = GenerationResult()
        self._renderer = None

        if self.output is OutputMode.FS:
            self.target_dir.mkdir(parents=True, exist_ok=True)
            if not self.force_write:
                self.verify_target_dir(self.target_dir)

        template = self.install_template(self.install)
        self.template_dir = Path(template.path)
        self.load_template_config()
        self.configure_template()
        self.register_hooks()
        self.register_filters()
        self.validate_template_config(document)

        self.launch_hook(GENERATE_BEFORE)

        if self.entrypoint:
            render_root = self.render_root
            entrypoint_path = render_root / self.entrypoint
            if _escapes_root(self.entrypoint) or not exists(entrypoint_path) or entrypoint_path.is_dir():
                raise EntrypointNotFound(f'Template entrypoint "{entrypoint_path}" couldn\'t be found.')
            self.generate_file(document, self.entrypoint, render_root)
        else:
            self.generate_directory_structure(document)

        self.launch_hook(GENERATE_AFTER)
        return self.result

    def verify_target_dir(self, directory: Path) -> None:
        """
        Refuse to generate where existing work could be lost.

        - The directory must be writable.
        - Inside a git work tree it must have no unstaged or untracked changes.
        - Outside git it must be empty.
        """
        directory = Path(directory)
        if not directory.is_dir() or not os.access(directory, os.W_OK | os.X_OK):
            raise TargetDirectoryInvalid(f'"{directory}" is not a writable directory.')

        if (_git(["rev-parse", "--is-inside-work-tree"], cwd=directory) or "").strip() == "true":
            status = _git(["status", "--porcelain", "--", "."], cwd=directory)
            if status and _has_unstaged_changes(status):
                raise TargetDirectoryInvalid(
                    f'"{directory}" is in a git repository with unstaged changes. Please commit your '
                    "changes before proceeding or add the proper directory to the .gitignore file. You "
                    "can also use the force_write option to skip this rule (not recommended)."
                )
            return

        if any(directory.iterdir()):
            raise TargetDirectoryInvalid(
                f'"{directory}" is not an empty directory. You might override your work. To skip this '
                "rule, please make your code a git repository or use the force_write option (not recommended)."
            )

    def install_template(self, force: bool = False) -> ResolvedTemplate:
        source = classify_template(self.template_name)
        templates_dir = self.settings.templates_dir

        if not force:
            found = source.installed_copy(templates_dir)
            if found is not None:
                logger.debug("Template %s found at %s", found.name, found.path)
                if found.version:
                    logger.debug("Version of the template is %s", found.version)
                return found

        reason = TEMPLATE_INSTALL_FLAG_MSG if force else TEMPLATE_INSTALL_DISK_MSG
        logger.debug("Template installation started because %s", reason)

        installed = self.installer.reify(add=[self.template_name], save_type="prod", save=False)
        if installed:
            return installed[0]

        # Dry run: nothing was installed, use whatever is on disk.
        found = source.installed_copy(templates_dir)
        if found is not None:
            return found
        fallback = getattr(source, "dist_name", None) or Path(self.template_name.rstrip("/")).name
        return ResolvedTemplate(name=fallback, path=Path(templates_dir) / fallback)

    def load_template_config(self) -> None:
        self.template_config = load_template_config(self.template_dir)

    def load_default_values(self) -> None:
        load_default_values(self.template_params, self.template_config.parameters)

    def configure_template(self) -> None:
        self.load_default_values()

    def register_hooks(self) -> None:
        self.hooks = register_hooks(self.template_dir, self.template_config)

    def register_filters(self) -> None:
        self.filters = register_filters(self.template_dir, self.template_config)

    def validate_template_config(self, document: ApiDocument | None = None) -> None:
        validate_template_config(self.template_config, self.template_params, document)

    def is_hook_available(self, hook_type: str) -> bool:
        return self._hook_engine.is_hook_available(hook_type)

    def launch_hook(self, hook_type: str, **kwargs: Any) -> Any:
        return self._hook_engine.launch_hook(hook_type, self, **kwargs)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _get_renderer(self, render_root: Path) -> TemplateRenderer:
        if self._renderer is None or self._renderer.render_root != Path(render_root).resolve():
            partials = self.template_dir / PARTIALS_DIRNAME if self.template_dir else None
            self._renderer = TemplateRenderer(
                render_root,
                partials_dir=partials,
                filters=self.filters,
                non_renderable_files=self.template_config.non_renderable_files,
            )
        return self._renderer

    def _context(self, document: ApiDocument) -> dict[str, Any]:
        return {
            "document": document,
            "params": self.template_params,
            "original_spec": self.original_spec,
        }

    def _target_name(self, rel_path: str) -> str:
        if not self.is_hook_available(SET_FILE_TEMPLATE_NAME):
            return rel_path
        rel = PurePosixPath(rel_path)
        new_name = self.launch_hook(SET_FILE_TEMPLATE_NAME, original_filename=rel.name)
        if isinstance(new_name, str) and new_name:
            return str(rel.with_name(new_name))
        return rel_path

    def _should_write(self, rel_path: str, destination: Path) -> bool:
        if self.force_write:
            return True
        return not (destination.exists() and matches_any(rel_path, self.no_overwrite_globs))

    def generate_file(self, document: ApiDocument, rel_path: str, base_dir: Path) -> None:
        """
        Generate one output file from `base_dir/rel_path`, honoring the
        overwrite policy and the output mode.
        """
        rel_path = PurePosixPath(Path(rel_path).as_posix()).as_posix()
        target_rel = self._target_name(rel_path)
        destination = self.target_dir / target_rel

        if self.output is OutputMode.FS and not self._should_write(target_rel, destination):
            logger.debug("Skipping %s: it matches no_overwrite_globs", target_rel)
            self.result.skipped_files.append(target_rel)
            return

        out = self._get_renderer(base_dir).render_file(rel_path, self._context(document))
        (self.result.rendered_files if out.rendered else self.result.copied_files).append(target_rel)

        if self.output is OutputMode.STRING:
            self.result.files[target_rel] = out.content
            return

        source = Path(base_dir) / rel_path
        destination.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(out.content, str):
            # For rendered output, normalize newlines for stable cross-platform output.
            destination.write_text(out.content, encoding="utf-8", newline="\n")
        else:
            destination.write_bytes(out.content)
        shutil.copymode(source, destination)

    def generate_directory_structure(self, document: ApiDocument) -> None:
        render_root = self.render_root
        if not render_root.is_dir():
            raise TemplateConfigInvalid(
                f'Template "{self.template_dir}" has no "{RENDER_DIRNAME}" directory to render.'
            )
        for src_path in iter_template_files(render_root):
            self.generate_file(document, src_path.relative_to(render_root).as_posix(), render_root)

    # ------------------------------------------------------------------
    # Static accessors
    # ------------------------------------------------------------------

    @staticmethod
    def get_template_file(
        template_name: str,
        path: str,
        templates_dir: str | os.PathLike | None = None,
    ) -> str:
        """Read a file from an installed template without generating anything."""
        root = Path(templates_dir) if templates_dir is not None else Settings.from_env().templates_dir
        return read_file(root.resolve() / template_name / path, encoding="utf-8")
