"""
specgen package

Generates code, docs and config from an API specification document by
applying a template.

Key responsibilities are split across modules:
- `spec_parser.py`: parse AsyncAPI/OpenAPI text into an `ApiDocument`
- `installer.py`: classify template references, install templates into the templates root
- `template_config.py`: load and validate a template's `template.yaml`
- `params.py`: template parameters and their declared defaults
- `hooks.py` / `filters.py`: lifecycle hooks and Jinja2 filters shipped by templates
- `renderer.py`: deterministic rendering/copying of template files
- `fetch.py`: isolated HTTP access (spec documents, template archives)
- `generator.py`: orchestration (resolve -> configure -> render -> hooks)
"""

from __future__ import annotations

__all__ = ["Generator", "GenerationResult", "Settings", "__version__"]

__version__ = "0.1.0"

from specgen.config import Settings  # noqa: E402
from specgen.generator import GenerationResult, Generator  # noqa: E402
