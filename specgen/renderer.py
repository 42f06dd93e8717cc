"""
renderer.py

Responsibility: turn template files into output content.

Rules:
- Walk template files in sorted order to ensure deterministic output.
- Binary files and files matching non-renderable globs are copied byte for byte.
- For UTF-8 text files, if Jinja2 markers are present, render with the provided context.
- Other text files are copied as authored.

This module intentionally does NOT know about the overwrite policy, output
modes or hooks; the generator decides where content goes.
"""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Mapping, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from specgen.errors import RenderError

PARTIALS_DIRNAME = "partials"


@dataclass(frozen=True)
class RenderedFile:
    content: str | bytes
    rendered: bool


def is_binary_file(path: Path) -> bool:
    """
    Best-effort: treat a file as binary if it cannot be decoded as UTF-8.
    """
    try:
        path.read_text(encoding="utf-8")
        return False
    except UnicodeDecodeError:
        return True


def has_template_markers(text: str) -> bool:
    return ("{{" in text) or ("{%" in text) or ("{#" in text)


def _match_parts(parts: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        return any(_match_parts(parts[i:], rest) for i in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatchcase(parts[0], head) and _match_parts(parts[1:], rest)


def glob_match(rel_path: str, pattern: str) -> bool:
    """
    Match a relative POSIX path against a glob, one path segment at a time.

    `*` and `?` never cross a `/`; a `**` segment matches zero or more segments.
    """
    return _match_parts(PurePosixPath(rel_path).parts, PurePosixPath(pattern).parts)


def matches_any(rel_path: str, globs: Sequence[str]) -> bool:
    return any(glob_match(rel_path, g) for g in globs)


def iter_template_files(template_dir: Path) -> list[Path]:
    """
    Return all files under template_dir, in deterministic lexicographic order
    (relative path ordering).
    """
    files: list[Path] = []
    for root, _dirs, filenames in os.walk(template_dir):
        root_path = Path(root)
        for name in filenames:
            files.append(root_path / name)
    files.sort(key=lambda p: p.relative_to(template_dir).as_posix())
    return files


class TemplateRenderer:
    def __init__(
        self,
        render_root: str | Path,
        *,
        partials_dir: str | Path | None = None,
        filters: Mapping[str, Callable[..., Any]] | None = None,
        non_renderable_files: Sequence[str] = (),
    ) -> None:
        self.render_root = Path(render_root).resolve()
        self.non_renderable_files = list(non_renderable_files)

        search_path = [str(self.render_root)]
        if partials_dir is not None and Path(partials_dir).is_dir():
            search_path.insert(0, str(Path(partials_dir).resolve()))

        self.env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.env.filters.update(filters or {})

    def render_string(self, text: str, context: Mapping[str, Any], name: str = "<string>") -> str:
        try:
            return self.env.from_string(text).render(**context)
        except TemplateError as e:
            raise RenderError(f"Failed rendering template file: {name}: {e}") from e

    def render_file(self, rel_path: str, context: Mapping[str, Any]) -> RenderedFile:
        """
        Render (or read for copying) `rel_path` under the render root.
        """
        src_path = self.render_root / rel_path
        if matches_any(rel_path, self.non_renderable_files) or is_binary_file(src_path):
            return RenderedFile(src_path.read_bytes(), rendered=False)

        text = src_path.read_text(encoding="utf-8")
        if not has_template_markers(text):
            return RenderedFile(src_path.read_bytes(), rendered=False)
        return RenderedFile(self.render_string(text, context, name=rel_path), rendered=True)
