"""测试套件服务 — 准备 Vite、运行下游套件、bisect

CLI 通过本服务驱动整个流程。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ecoci.core.config import Config, get_config
from ecoci.core.exceptions import ConfigError
from ecoci.core.models import RunOptions
from ecoci.plugins import PluginRegistry, load_plugins
from ecoci.services.bisect_service import bisect_vite
from ecoci.services.environment import setup_environment
from ecoci.services.repo.vite import (
    build_vite,
    get_permanent_ref,
    parse_major_version,
    parse_vite_major,
    setup_vite_repo,
)
from ecoci.services.run_service import RepoRunner
from ecoci.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


@dataclass
class SuiteRequest:
    """一次 CLI 调用的参数"""

    suites: list[str]
    vite_repo: str = ""
    branch: str = ""
    tag: str | None = None
    commit: str | None = None
    release: str | None = None
    verify: bool = False
    skip_git: bool = False


class SuiteService:
    """测试套件服务"""

    def __init__(
        self,
        config: Config | None = None,
        root: str | Path | None = None,
        executor: CommandExecutor | None = None,
        registry: PluginRegistry | None = None,
    ) -> None:
        self.config = config or get_config()
        self.env, self.session = setup_environment(root, self.config, executor)
        if registry is None:
            registry = PluginRegistry()
            load_plugins(self.config.plugins, registry)
        self.registry = registry
        self.runner = RepoRunner(self.session, self.registry)

    def suite_names(self, requested: list[str] | None = None) -> list[str]:
        """未指定时运行全部已注册套件"""
        names = list(requested or []) or self.registry.suite_names()
        for name in names:
            self.registry.suite(name)
        return names

    def prepare_vite(self, req: SuiteRequest, *, shallow: bool = True) -> None:
        """同步并构建 Vite；指定 release 时跳过"""
        if req.release:
            logger.info("使用已发布的 vite@%s，跳过本地构建", req.release)
            return
        if not req.skip_git:
            setup_vite_repo(
                self.session, self.env.vite_path,
                repo=req.vite_repo or self.config.vite_repo,
                branch=req.branch or self.config.vite_branch,
                tag=req.tag, commit=req.commit, shallow=shallow,
            )
            ref = get_permanent_ref(self.session, self.env.vite_path)
            if ref:
                logger.info("Vite ref: %s", ref)
        build_vite(self.session, self.env.vite_path, verify=req.verify)

    def run_options(self, req: SuiteRequest) -> RunOptions:
        if req.release:
            try:
                major = parse_major_version(req.release)
            except ValueError as e:
                raise ConfigError(f"无法解析 --release={req.release} 的主版本号") from e
        else:
            major = parse_vite_major(self.env.vite_path)
        return RunOptions(
            workspace=self.env.workspace,
            vite_path=self.env.vite_path,
            vite_major=major,
            root=self.env.root,
            skip_git=req.skip_git,
            release=req.release,
            verify=req.verify,
        )

    def run_suites(self, names: list[str], options: RunOptions) -> None:
        for name in names:
            logger.info("运行测试套件: %s", name)
            self.registry.suite(name)(self.runner, options)

    def run(self, req: SuiteRequest) -> None:
        names = self.suite_names(req.suites)
        self.prepare_vite(req)
        self.run_suites(names, self.run_options(req))

    def bisect(self, req: SuiteRequest, good: str) -> None:
        """在 Vite 历史中二分查找第一个让套件失败的提交"""
        if req.release:
            raise ConfigError("bisect 不能与 --release 同时使用")
        names = self.suite_names(req.suites)
        setup_vite_repo(
            self.session, self.env.vite_path,
            repo=req.vite_repo or self.config.vite_repo,
            branch=req.branch or self.config.vite_branch,
            tag=req.tag, commit=req.commit, shallow=False,
        )

        def run_suite() -> Exception | None:
            try:
                build_vite(self.session, self.env.vite_path, verify=req.verify)
                self.run_suites(names, self.run_options(req))
            except Exception as e:
                logger.exception("当前提交失败: %s", e)
                return e
            return None

        bisect_vite(self.session, self.env.vite_path, good, run_suite)
