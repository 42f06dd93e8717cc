"""
Tests for specgen.config: generator options and process-wide settings.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from specgen.config import GeneratorOptions, OutputMode, Settings
from specgen.errors import ConfigInvalid


def test_options_defaults():
    opts = GeneratorOptions.from_kwargs({})
    assert opts.entrypoint is None
    assert opts.no_overwrite_globs == []
    assert opts.disabled_hooks == {}
    assert opts.output is OutputMode.FS
    assert opts.force_write is False
    assert opts.install is False
    assert opts.debug is False
    assert opts.template_params == {}


def test_options_accept_enum_output():
    assert GeneratorOptions.from_kwargs({"output": OutputMode.STRING}).output is OutputMode.STRING


def test_options_unknown_keys_reported_together():
    with pytest.raises(ConfigInvalid) as exc_info:
        GeneratorOptions.from_kwargs({"write": True, "install": True, "force_install": True})
    assert str(exc_info.value) == "These options are not supported by the generator: write, force_install"


@pytest.mark.parametrize(
    "options, name",
    [
        ({"force_write": "yes"}, "force_write"),
        ({"template_params": ["a"]}, "template_params"),
        ({"entrypoint": 3}, "entrypoint"),
        ({"no_overwrite_globs": "*.md"}, "no_overwrite_globs"),
    ],
)
def test_options_reject_wrong_types(options, name):
    with pytest.raises(ConfigInvalid, match=name):
        GeneratorOptions.from_kwargs(options)


def test_options_reject_non_string_globs():
    with pytest.raises(ConfigInvalid, match="no_overwrite_globs"):
        GeneratorOptions.from_kwargs({"no_overwrite_globs": ["*.md", 1]})


def test_options_copy_mutable_inputs():
    params = {"a": 1}
    opts = GeneratorOptions.from_kwargs({"template_params": params})
    params["b"] = 2
    assert opts.template_params == {"a": 1}


def test_settings_from_env(tmp_path):
    settings = Settings.from_env(
        {
            "SPECGEN_TEMPLATES_DIR": str(tmp_path / "tpl"),
            "SPECGEN_HTTP_TIMEOUT": "5",
            "SPECGEN_INSTALL_DRY_RUN": "true",
        }
    )
    assert settings.templates_dir == (tmp_path / "tpl").resolve()
    assert settings.http_timeout == 5.0
    assert settings.install_dry_run is True


def test_settings_defaults():
    settings = Settings.from_env({})
    assert settings.templates_dir == (Path.home() / ".specgen" / "templates").resolve()
    assert settings.http_timeout == 30.0
    assert settings.install_dry_run is False


def test_settings_rejects_bad_timeout():
    with pytest.raises(ConfigInvalid, match="SPECGEN_HTTP_TIMEOUT"):
        Settings.from_env({"SPECGEN_HTTP_TIMEOUT": "soon"})
