"""
Tests for specgen.hooks and specgen.filters: disabled-hook normalization and
the registrars that load hooks and filters from templates and installed modules.
"""

from __future__ import annotations

import textwrap

import pytest

from specgen.errors import ConfigInvalid, TemplateConfigInvalid
from specgen.filters import register_filters
from specgen.hooks import DisabledHooks, HookEngine, register_hooks
from specgen.template_config import TemplateConfig


def _named(name: str):
    def hook(generator, **kwargs):
        return name
    hook.__name__ = name
    return hook


@pytest.mark.parametrize(
    "value, disabled_names",
    [
        (True, {"a", "b"}),
        (False, set()),
        ("a", {"a"}),
        (["a", "b"], {"a", "b"}),
        (["zzz"], set()),
    ],
)
def test_disabled_hooks_shapes(value, disabled_names):
    disabled = DisabledHooks.from_mapping({"t": value})
    assert {n for n in ("a", "b") if disabled.is_disabled("t", n)} == disabled_names
    assert disabled.is_type_disabled("t") is (value is True)
    assert disabled.is_disabled("other", "a") is False


def test_disabled_hooks_reject_bad_values():
    with pytest.raises(ConfigInvalid):
        DisabledHooks.from_mapping({"t": ["a", 1]})


def test_engine_returns_last_non_none_result():
    engine = HookEngine({"t": [_named("a"), lambda generator: None, _named("c")]})
    assert engine.launch_hook("t") == "c"
    assert engine.launch_hook("missing") is None


def test_register_local_hooks(make_template):
    root = make_template(
        files={
            "hooks/b_second.py": textwrap.dedent("""\
                def second(generator):
                    pass

                hooks = {"generate:after": second}
            """),
            "hooks/a_first.py": textwrap.dedent("""\
                def first(generator):
                    pass

                def before(generator):
                    pass

                hooks = {"generate:after": [first], "generate:before": [before]}
            """),
            "hooks/_private.py": "raise RuntimeError('never loaded')\n",
            "hooks/helpers.py": "VALUE = 1\n",
        }
    )

    registry = register_hooks(root, TemplateConfig())

    assert [h.__name__ for h in registry["generate:after"]] == ["first", "second"]
    assert [h.__name__ for h in registry["generate:before"]] == ["before"]


def test_register_config_hooks_only_named(make_template, tmp_path, monkeypatch):
    modules = tmp_path / "site"
    modules.mkdir()
    (modules / "shared_hooks_pkg.py").write_text(
        textwrap.dedent("""\
            def keep(generator):
                pass

            def drop(generator):
                pass

            hooks = {"generate:after": [keep, drop]}
        """),
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(modules))
    root = make_template()

    registry = register_hooks(root, TemplateConfig(hooks={"shared_hooks_pkg": ["keep"]}))

    assert [h.__name__ for h in registry["generate:after"]] == ["keep"]


def test_register_config_hooks_missing_module(make_template):
    with pytest.raises(TemplateConfigInvalid, match="definitely_not_installed_module"):
        register_hooks(make_template(), TemplateConfig(hooks={"definitely_not_installed_module": ["x"]}))


def test_register_hooks_rejects_non_callables(make_template):
    root = make_template(files={"hooks/bad.py": "hooks = {'generate:after': ['not callable']}\n"})
    with pytest.raises(TemplateConfigInvalid, match="not callable"):
        register_hooks(root, TemplateConfig())


def test_register_hooks_reports_broken_module(make_template):
    root = make_template(files={"hooks/broken.py": "import definitely_not_installed_module\n"})
    with pytest.raises(TemplateConfigInvalid, match="broken.py"):
        register_hooks(root, TemplateConfig())


def test_register_filters_from_template(make_template):
    root = make_template(
        files={
            "filters/text.py": textwrap.dedent("""\
                import re
                from os.path import basename

                def shout(value):
                    return str(value).upper()

                def _hidden(value):
                    return value
            """),
            "filters/explicit.py": "filters = {'double': lambda v: v * 2}\n",
        }
    )

    registry = register_filters(root, TemplateConfig())

    assert sorted(registry) == ["double", "shout"]
    assert registry["shout"]("hi") == "HI"
    assert registry["double"](2) == 4


def test_register_filters_from_installed_module(make_template, tmp_path, monkeypatch):
    modules = tmp_path / "site"
    modules.mkdir()
    (modules / "shared_filters_pkg.py").write_text("def whisper(value):\n    return str(value).lower()\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(modules))

    registry = register_filters(make_template(), TemplateConfig(filters=["shared_filters_pkg"]))

    assert registry["whisper"]("HI") == "hi"
