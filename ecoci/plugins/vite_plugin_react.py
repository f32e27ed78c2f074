"""vitejs/vite-plugin-react: 本地构建 + 下游测试"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ecoci.core.models import BuildOutput, RepoRunSpec, RunOptions
from ecoci.plugins import BuildDefinition, PluginRegistry

if TYPE_CHECKING:
    from ecoci.services.run_service import RepoRunner

REPO = "vitejs/vite-plugin-react"


def build(runner: RepoRunner, options: RunOptions) -> BuildOutput:
    return runner.run(options, RepoRunSpec(repo=REPO, build="build"))


def test(runner: RepoRunner, options: RunOptions) -> BuildOutput:
    return runner.run(options, RepoRunSpec(
        repo=REPO,
        build="build",
        before_test="pnpm playwright install chromium",
        test="test",
    ))


def register(registry: PluginRegistry) -> None:
    registry.add_build(BuildDefinition(
        name="vite-plugin-react",
        packages={"@vitejs/plugin-react": "packages/plugin-react"},
        build=build,
    ))
    registry.add_suite("vite-plugin-react", test)
