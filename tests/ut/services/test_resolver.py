"""Override 解析测试"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ecoci.core.exceptions import ConfigError, OverrideConflictError
from ecoci.core.models import BuildOutput, RunOptions
from ecoci.plugins import BuildDefinition, PluginRegistry
from ecoci.services.overrides.resolver import OverrideResolver, manifest_dependencies


def _options(tmp_path, **kwargs):
    defaults = dict(
        workspace=tmp_path / "ws", vite_path=tmp_path / "vite",
        vite_major=4, root=tmp_path,
    )
    defaults.update(kwargs)
    return RunOptions(**defaults)


@pytest.fixture()
def registry():
    return PluginRegistry()


@pytest.fixture()
def nested():
    return MagicMock(return_value=BuildOutput(dir=Path("/built")))


@pytest.fixture()
def resolver(registry, nested, session):
    return OverrideResolver(registry, nested, session)


def _add_build(registry, name="lib-a", packages=None):
    definition = BuildDefinition(name=name, packages=packages or {"A": "dist"}, build=MagicMock())
    registry.add_build(definition)
    return definition


class TestRelease:
    def test_pins_vite(self, resolver, tmp_path):
        out = resolver.resolve({}, _options(tmp_path, release="5.0.0"))
        assert out == {"vite": "5.0.0"}

    def test_same_explicit_ok(self, resolver, tmp_path):
        opts = _options(tmp_path, release="1.2.3", overrides={"vite": "1.2.3"})
        assert resolver.resolve({}, opts)["vite"] == "1.2.3"

    def test_conflict(self, resolver, tmp_path):
        opts = _options(tmp_path, release="9.9.9", overrides={"vite": "1.2.3"})
        with pytest.raises(OverrideConflictError, match="9.9.9"):
            resolver.resolve({}, opts)

    def test_flag_replaced(self, resolver, tmp_path):
        opts = _options(tmp_path, release="5.0.0", overrides={"vite": True})
        assert resolver.resolve({}, opts)["vite"] == "5.0.0"

    def test_other_flags_dropped(self, resolver, tmp_path):
        opts = _options(tmp_path, release="5.0.0", overrides={"A": True, "B": False, "C": "1.0.0"})
        assert resolver.resolve({}, opts) == {"vite": "5.0.0", "C": "1.0.0"}

    def test_no_nested_builds(self, resolver, registry, nested, tmp_path):
        _add_build(registry)
        pkg = {"devDependencies": {"A": "1.0.0"}}
        resolver.resolve(pkg, _options(tmp_path, release="5.0.0"))
        nested.assert_not_called()


class TestLocalDefaults:
    def test_vite4_defaults(self, resolver, tmp_path):
        out = resolver.resolve({}, _options(tmp_path))
        assert out == {
            "vite": str(tmp_path / "vite" / "packages" / "vite"),
            "@vitejs/plugin-legacy": str(tmp_path / "vite" / "packages" / "plugin-legacy"),
        }

    def test_explicit_string_wins(self, resolver, tmp_path):
        out = resolver.resolve({}, _options(tmp_path, overrides={"vite": "4.3.0"}))
        assert out["vite"] == "4.3.0"

    def test_true_replaced_by_default(self, resolver, tmp_path):
        out = resolver.resolve({}, _options(tmp_path, overrides={"vite": True}))
        assert out["vite"] == str(tmp_path / "vite" / "packages" / "vite")

    def test_caller_overrides_untouched(self, resolver, tmp_path):
        opts = _options(tmp_path, overrides={"react": "18.0.0"})
        out = resolver.resolve({}, opts)
        assert out["react"] == "18.0.0"
        assert opts.overrides == {"react": "18.0.0"}

    def test_vite3_pins_plugins_and_types(self, resolver, tmp_path):
        types = tmp_path / "vite" / "node_modules" / "@types" / "node"
        types.mkdir(parents=True)
        out = resolver.resolve({}, _options(tmp_path, vite_major=3))
        vite = tmp_path / "vite" / "packages"
        assert out["@vitejs/plugin-vue"] == str(vite / "plugin-vue")
        assert out["@vitejs/plugin-vue-jsx"] == str(vite / "plugin-vue-jsx")
        assert out["@vitejs/plugin-react"] == str(vite / "plugin-react")
        assert out["@types/node"] == os.path.realpath(types)

    def test_vite3_missing_types_node(self, resolver, tmp_path):
        with pytest.raises(ConfigError, match="@types/node"):
            resolver.resolve({}, _options(tmp_path, vite_major=3))

    def test_vite3_pinned_types_node_not_required(self, resolver, tmp_path):
        opts = _options(tmp_path, vite_major=3, overrides={"@types/node": "18.0.0"})
        assert resolver.resolve({}, opts)["@types/node"] == "18.0.0"

    def test_vite3_skips_nested_builds(self, resolver, registry, nested, tmp_path):
        (tmp_path / "vite" / "node_modules" / "@types" / "node").mkdir(parents=True)
        _add_build(registry, packages={"@vitejs/plugin-react": "packages/plugin-react"})
        pkg = {"devDependencies": {"@vitejs/plugin-react": "^2.0.0"}}
        resolver.resolve(pkg, _options(tmp_path, vite_major=3))
        nested.assert_not_called()


class TestNestedBuilds:
    def test_flagged_dependency_built(self, resolver, registry, nested, tmp_path):
        definition = _add_build(registry)
        pkg = {"devDependencies": {"A": "1.0.0"}}
        out = resolver.resolve(pkg, _options(tmp_path, overrides={"A": True}))
        assert out["A"] == "/built/dist"
        nested.assert_called_once()
        called_def, called_opts = nested.call_args.args
        assert called_def is definition
        assert called_opts.overrides == {}

    @pytest.mark.parametrize("section", ["dependencies", "devDependencies", "peerDependencies"])
    def test_unset_dependency_built(self, resolver, registry, nested, tmp_path, section):
        _add_build(registry)
        out = resolver.resolve({section: {"A": "^1.0.0"}}, _options(tmp_path))
        assert out["A"] == "/built/dist"

    def test_flag_without_dependency_built(self, resolver, registry, nested, tmp_path):
        _add_build(registry)
        out = resolver.resolve({}, _options(tmp_path, overrides={"A": True}))
        assert out["A"] == "/built/dist"

    def test_pinned_not_built(self, resolver, registry, nested, tmp_path):
        _add_build(registry)
        pkg = {"dependencies": {"A": "1.0.0"}}
        out = resolver.resolve(pkg, _options(tmp_path, overrides={"A": "1.2.3"}))
        assert out["A"] == "1.2.3"
        nested.assert_not_called()

    def test_false_not_built(self, resolver, registry, nested, tmp_path):
        _add_build(registry)
        pkg = {"dependencies": {"A": "1.0.0"}}
        out = resolver.resolve(pkg, _options(tmp_path, overrides={"A": False}))
        assert "A" not in out
        nested.assert_not_called()

    def test_unsatisfied_flag_dropped(self, resolver, nested, tmp_path):
        out = resolver.resolve({}, _options(tmp_path, overrides={"A": True, "B": False}))
        assert "A" not in out
        assert "B" not in out
        assert all(isinstance(v, str) for v in out.values())
        nested.assert_not_called()

    def test_unrelated_not_built(self, resolver, registry, nested, tmp_path):
        _add_build(registry)
        resolver.resolve({"dependencies": {"B": "1.0.0"}}, _options(tmp_path))
        nested.assert_not_called()

    def test_only_needed_packages_mapped(self, resolver, registry, nested, tmp_path):
        _add_build(registry, packages={"A": "packages/a", "B": "packages/b"})
        out = resolver.resolve({"dependencies": {"A": "1"}}, _options(tmp_path))
        assert out["A"] == "/built/packages/a"
        assert "B" not in out

    def test_session_dir_restored(self, registry, session, tmp_path):
        def nested(definition, options):
            session.cd(tmp_path / "elsewhere")
            return BuildOutput(dir=Path("/built"))

        _add_build(registry)
        session.cd("app")
        OverrideResolver(registry, nested, session).resolve(
            {"dependencies": {"A": "1"}}, _options(tmp_path),
        )
        assert session.cwd == tmp_path / "app"

    def test_self_recursion_skipped(self, registry, session, tmp_path):
        calls = []

        def nested(definition, options):
            calls.append(definition.name)
            # 被构建的仓库自身也依赖 A
            resolver.resolve({"dependencies": {"A": "1"}}, options)
            return BuildOutput(dir=Path("/built"))

        _add_build(registry)
        resolver = OverrideResolver(registry, nested, session)
        out = resolver.resolve({"dependencies": {"A": "1"}}, _options(tmp_path))
        assert calls == ["lib-a"]
        assert out["A"] == "/built/dist"


def test_manifest_dependencies():
    pkg = {
        "dependencies": {"a": "1"},
        "devDependencies": {"b": "1"},
        "peerDependencies": {"c": "1"},
        "optionalDependencies": {"d": "1"},
        "scripts": None,
    }
    assert manifest_dependencies(pkg) == {"a", "b", "c"}
