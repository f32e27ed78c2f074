"""包管理器检测测试"""

from __future__ import annotations

import json

import pytest

from ecoci.services.manifest.package_manager import (
    detect_agent,
    frozen_install_command,
    package_manager_name,
    run_script_command,
)


def _pkg(path, **fields):
    (path / "package.json").write_text(json.dumps({"name": "x", **fields}), encoding="utf-8")


class TestDetectAgent:
    @pytest.mark.parametrize(("field", "agent"), [
        ("pnpm@8.6.0", "pnpm"),
        ("pnpm@6.32.1", "pnpm@6"),
        ("yarn@1.22.19", "yarn"),
        ("yarn@3.5.0", "yarn@berry"),
        ("npm@9.0.0", "npm"),
        ("bun@1.0.0", "bun"),
    ])
    def test_package_manager_field(self, tmp_path, field, agent):
        _pkg(tmp_path, packageManager=field)
        assert detect_agent(tmp_path) == agent

    def test_field_wins_over_lockfile(self, tmp_path):
        _pkg(tmp_path, packageManager="pnpm@8.0.0")
        (tmp_path / "package-lock.json").write_text("{}", encoding="utf-8")
        assert detect_agent(tmp_path) == "pnpm"

    @pytest.mark.parametrize(("lockfile", "agent"), [
        ("pnpm-lock.yaml", "pnpm"),
        ("yarn.lock", "yarn"),
        ("package-lock.json", "npm"),
        ("npm-shrinkwrap.json", "npm"),
        ("bun.lockb", "bun"),
    ])
    def test_lockfile(self, tmp_path, lockfile, agent):
        _pkg(tmp_path)
        (tmp_path / lockfile).write_text("", encoding="utf-8")
        assert detect_agent(tmp_path) == agent

    def test_lockfile_priority(self, tmp_path):
        _pkg(tmp_path)
        for lockfile in ("npm-shrinkwrap.json", "package-lock.json", "yarn.lock"):
            (tmp_path / lockfile).write_text("", encoding="utf-8")
        assert detect_agent(tmp_path) == "yarn"
        (tmp_path / "pnpm-lock.yaml").write_text("", encoding="utf-8")
        assert detect_agent(tmp_path) == "pnpm"
        (tmp_path / "bun.lockb").write_text("", encoding="utf-8")
        assert detect_agent(tmp_path) == "bun"

    def test_yarn_berry_by_rc(self, tmp_path):
        _pkg(tmp_path)
        (tmp_path / "yarn.lock").write_text("", encoding="utf-8")
        (tmp_path / ".yarnrc.yml").write_text("", encoding="utf-8")
        assert detect_agent(tmp_path) == "yarn@berry"

    def test_unknown_field_falls_back(self, tmp_path):
        _pkg(tmp_path, packageManager="deno@1.0.0")
        (tmp_path / "yarn.lock").write_text("", encoding="utf-8")
        assert detect_agent(tmp_path) == "yarn"

    def test_nothing(self, tmp_path):
        assert detect_agent(tmp_path) is None


class TestCommands:
    def test_name(self):
        assert package_manager_name("yarn@berry") == "yarn"
        assert package_manager_name("pnpm@6") == "pnpm"
        assert package_manager_name(None) is None

    @pytest.mark.parametrize(("agent", "cmd"), [
        ("npm", ["npm", "ci"]),
        (None, ["npm", "ci"]),
        ("yarn", ["yarn", "install", "--frozen-lockfile"]),
        ("yarn@berry", ["yarn", "install", "--immutable"]),
        ("pnpm", ["pnpm", "install", "--frozen-lockfile"]),
        ("bun", ["bun", "install", "--frozen-lockfile"]),
    ])
    def test_frozen_install(self, agent, cmd):
        assert frozen_install_command(agent) == cmd

    def test_run_script(self):
        assert run_script_command("pnpm", "build") == ["pnpm", "run", "build"]
        assert run_script_command("pnpm", "test", "--run") == ["pnpm", "run", "test", "--run"]
        assert run_script_command("npm", "test", "--run") == ["npm", "run", "test", "--", "--run"]
        assert run_script_command(None, "build") == ["npm", "run", "build"]
