"""下游仓库运行编排

单个下游仓库的完整流程:
1. 检出（skip_git 时仅切换目录）
2. 读取 package.json，执行 before_install
3. 预检（verify 且定义了 test）: 按 lockfile 安装 → before_build → build → before_test → test
4. 解析 overrides 并写入 package.json，重新安装
5. before_build → build
6. 定义了 test 时: before_test → test
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from ecoci.core.models import BuildOutput, RepoRunSpec, RunOptions
from ecoci.core.tasks import Callback, RawCommand, ScriptCommand, Task, to_commands
from ecoci.services.manifest.package_manager import (
    detect_agent,
    frozen_install_command,
    run_script_command,
)
from ecoci.services.manifest.patcher import apply_overrides
from ecoci.services.overrides.resolver import OverrideResolver
from ecoci.services.repo.sync import ensure_repo
from ecoci.utils.manifest import read_manifest

if TYPE_CHECKING:
    from ecoci.plugins import BuildDefinition, PluginRegistry
    from ecoci.utils.shell import Session

logger = logging.getLogger(__name__)


def repo_dir_name(repo: str) -> str:
    """仓库地址最后一段作为本地目录名"""
    return repo.rstrip("/").rsplit("/", 1)[-1]


class RepoRunner:
    """下游仓库运行器"""

    def __init__(self, session: Session, registry: PluginRegistry) -> None:
        self.session = session
        self.registry = registry
        self.resolver = OverrideResolver(registry, self.build, session)

    def build(self, definition: BuildDefinition, options: RunOptions) -> BuildOutput:
        """执行构建定义（供 override 解析时嵌套调用）"""
        return definition.build(self, options)

    def run_task(self, task: Task, scripts: Mapping[str, str], agent: str | None) -> None:
        """执行一个生命周期钩子"""
        for cmd in to_commands(task, scripts):
            if isinstance(cmd, ScriptCommand):
                self.session.run(run_script_command(agent, cmd.name, cmd.args))
            elif isinstance(cmd, RawCommand):
                self.session.run(cmd.cmd)
            elif isinstance(cmd, Callback):
                cmd.fn(scripts)

    def run(self, options: RunOptions, spec: RepoRunSpec) -> BuildOutput:
        """对下游仓库执行完整流程，返回其本地目录"""
        directory = Path(options.workspace) / (spec.dir or repo_dir_name(spec.repo))
        logger.info("=== %s -> %s", spec.repo, directory)

        if not options.skip_git:
            ensure_repo(self.session, spec.repo_options(directory))
        else:
            self.session.cd(directory)

        pkg = read_manifest(directory)
        scripts: Mapping[str, str] = pkg.get("scripts") or {}
        agent = detect_agent(directory)

        self.run_task(spec.before_install, scripts, agent)

        if options.verify and spec.test:
            logger.info("[预检] 未修改依赖的构建与测试: %s", spec.repo)
            self.session.run(frozen_install_command(agent))
            self.run_task(spec.before_build, scripts, agent)
            self.run_task(spec.build, scripts, agent)
            self.run_task(spec.before_test, scripts, agent)
            self.run_task(spec.test, scripts, agent)

        if spec.overrides:
            options = options.with_overrides({**options.overrides, **spec.overrides})
        overrides = self.resolver.resolve(pkg, options)
        self.session.cd(directory)
        apply_overrides(self.session, directory, pkg, overrides)

        logger.info("[构建] 应用 overrides 后: %s", spec.repo)
        self.run_task(spec.before_build, scripts, agent)
        self.run_task(spec.build, scripts, agent)
        if spec.test:
            logger.info("[测试] 应用 overrides 后: %s", spec.repo)
            self.run_task(spec.before_test, scripts, agent)
            self.run_task(spec.test, scripts, agent)
        return BuildOutput(dir=directory)
