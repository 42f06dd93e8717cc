"""
installer.py

Responsibility: locate templates on disk and install them into the templates
root.

A template reference is one of:
- a local filesystem path (any path that exists)
- a remote URL to a zip or tar archive
- a package name installable with pip (`name`, `name==1.2`)

Installed templates live at `<templates_dir>/<manifest name>/`, except package
templates, which live at `<templates_dir>/<distribution name>/` so they can be
found again by the name they were installed with.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import sys
import tarfile
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import yaml

from specgen.config import Settings
from specgen.errors import GeneratorError, TemplateInstallError
from specgen.fetch import HttpClient
from specgen.template_config import MANIFEST_FILENAME, read_manifest
from specgen.utils import is_file_system_path, is_url

logger = logging.getLogger(__name__)

INSTALLED_MANIFEST = "templates.yaml"

_DIST_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*")


@dataclass(frozen=True)
class ResolvedTemplate:
    name: str
    path: Path
    version: str | None = None


def read_template_details(template_root: Path, fallback_name: str | None = None) -> ResolvedTemplate | None:
    manifest = read_manifest(template_root)
    if manifest is None:
        if fallback_name is None:
            return None
        return ResolvedTemplate(name=fallback_name, path=template_root)
    name = str(manifest.get("name") or fallback_name or template_root.name)
    version = manifest.get("version")
    return ResolvedTemplate(name=name, path=template_root, version=None if version is None else str(version))


@dataclass(frozen=True)
class LocalTemplate:
    path: Path

    def installed_copy(self, templates_dir: Path) -> ResolvedTemplate | None:
        root = self.path.resolve()
        return read_template_details(root, fallback_name=root.name)


@dataclass(frozen=True)
class RemoteTemplate:
    url: str

    def installed_copy(self, templates_dir: Path) -> ResolvedTemplate | None:
        return None


@dataclass(frozen=True)
class PackageTemplate:
    name: str

    @property
    def dist_name(self) -> str:
        m = _DIST_NAME_RE.match(self.name.strip())
        return m.group(0) if m else self.name.strip()

    def installed_copy(self, templates_dir: Path) -> ResolvedTemplate | None:
        return read_template_details(Path(templates_dir) / self.dist_name)


TemplateSource = Union[LocalTemplate, RemoteTemplate, PackageTemplate]


def classify_template(reference: str) -> TemplateSource:
    if is_file_system_path(reference):
        return LocalTemplate(Path(reference).expanduser())
    if is_url(reference):
        return RemoteTemplate(reference)
    return PackageTemplate(reference)


def get_template_details(reference: str, templates_dir: Path) -> ResolvedTemplate | None:
    return classify_template(reference).installed_copy(templates_dir)


def _find_template_root(directory: Path) -> Path:
    """
    The shallowest directory under `directory` holding a template manifest.
    """
    if (directory / MANIFEST_FILENAME).is_file():
        return directory
    candidates = sorted(directory.rglob(MANIFEST_FILENAME), key=lambda p: (len(p.parts), str(p)))
    if not candidates:
        raise TemplateInstallError(f"No {MANIFEST_FILENAME} found in the installed package.")
    return candidates[0].parent


def _unpack(archive: Path, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    if zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(destination)
    elif tarfile.is_tarfile(archive):
        with tarfile.open(archive) as tf:
            tf.extractall(destination, filter="data")
    else:
        raise TemplateInstallError(f"Downloaded file is neither a zip nor a tar archive: {archive.name}")


class TemplateInstaller:
    def __init__(self, settings: Settings, *, client: HttpClient | None = None) -> None:
        self.templates_dir = Path(settings.templates_dir)
        self.dry_run = settings.install_dry_run
        self._client = client or HttpClient(settings.http_timeout)

    def _run(self, cmd: list[str]) -> None:
        """
        Run a subprocess command, raising a TemplateInstallError on failure.
        """
        try:
            subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        except subprocess.CalledProcessError as e:
            raise TemplateInstallError(f"Command failed: {' '.join(cmd)}\n\n{e.stdout}") from e
        except OSError as e:
            raise TemplateInstallError(f"Command failed: {' '.join(cmd)}: {e}") from e

    def _stage(self, source: TemplateSource, staging: Path) -> Path:
        if isinstance(source, LocalTemplate):
            return source.path.resolve()
        if isinstance(source, RemoteTemplate):
            archive = self._client.download(source.url, staging / "download")
            _unpack(archive, staging / "src")
            return _find_template_root(staging / "src")
        target = staging / "pkg"
        self._run([sys.executable, "-m", "pip", "install", "--no-deps", "--target", str(target), source.name])
        return _find_template_root(target)

    def _save(self, reference: str, name: str, save_type: str) -> None:
        path = self.templates_dir / INSTALLED_MANIFEST
        data = (yaml.safe_load(path.read_text(encoding="utf-8")) or {}) if path.is_file() else {}
        data.setdefault(save_type, {})[name] = reference
        path.write_text(yaml.safe_dump(data, sort_keys=True), encoding="utf-8")

    def reify(self, *, add: list[str], save_type: str = "prod", save: bool = False) -> list[ResolvedTemplate]:
        """
        Install every reference in `add` into the templates root.

        Returns the installed templates; empty on a dry run.
        """
        if self.dry_run:
            logger.warning("Dry run: not installing %s", ", ".join(add))
            return []

        self.templates_dir.mkdir(parents=True, exist_ok=True)
        installed: list[ResolvedTemplate] = []
        for reference in add:
            source = classify_template(reference)
            try:
                with tempfile.TemporaryDirectory(prefix="specgen-install-") as tmp:
                    root = self._stage(source, Path(tmp))
                    details = read_template_details(root, fallback_name=root.name)
                    dirname = source.dist_name if isinstance(source, PackageTemplate) else details.name
                    destination = (self.templates_dir / dirname).resolve()
                    if destination != root:
                        if destination.exists():
                            shutil.rmtree(destination)
                        shutil.copytree(root, destination)
            except GeneratorError as e:
                if isinstance(e, TemplateInstallError):
                    raise
                raise TemplateInstallError(f"Installation of {reference} failed: {e}") from e
            except (OSError, shutil.Error) as e:
                raise TemplateInstallError(f"Installation of {reference} failed: {e}") from e

            logger.debug("Template %s successfully installed in %s", details.name, destination)
            installed.append(ResolvedTemplate(name=details.name, path=destination, version=details.version))
            if save:
                self._save(reference, details.name, save_type)
        return installed
