"""
Shared test fixtures.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import yaml

from specgen.config import Settings
from specgen.spec_parser import parse_spec

ROOT_DIR = Path(__file__).resolve().parent.parent
SAMPLE_TEMPLATE_DIR = ROOT_DIR / "templates" / "asyncapi-markdown"

DUMMY_SPEC = textwrap.dedent("""\
    asyncapi: 2.6.0
    info:
      title: Dummy example
      version: 1.2.3
      description: Streetlights as a dummy.
    servers:
      production:
        url: broker.example.com:9092
        protocol: kafka
    channels:
      light/measured:
        publish:
          message:
            payload:
              type: object
      light/turn-on:
        subscribe:
          message:
            payload:
              type: string
""")


@pytest.fixture
def dummy_spec() -> str:
    return DUMMY_SPEC


@pytest.fixture
def dummy_document():
    return parse_spec(DUMMY_SPEC)


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    path = tmp_path / "templates-root"
    path.mkdir()
    return path


@pytest.fixture
def settings(templates_dir: Path) -> Settings:
    return Settings(templates_dir=templates_dir)


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def make_template(tmp_path: Path):
    """
    Build a template directory from a mapping of relative path -> content.

    `generator` becomes the manifest's generator section.
    """

    def _make(name: str = "test-template", files: dict[str, str] | None = None, generator: dict | None = None,
              root: Path | None = None) -> Path:
        template_root = (root or tmp_path / "src-templates") / name
        template_root.mkdir(parents=True)
        manifest = {"name": name, "version": "1.0.0", "generator": generator or {}}
        (template_root / "template.yaml").write_text(yaml.safe_dump(manifest), encoding="utf-8")
        for rel, content in (files or {}).items():
            path = template_root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return template_root

    return _make


@pytest.fixture
def sample_template_dir() -> Path:
    return SAMPLE_TEMPLATE_DIR
