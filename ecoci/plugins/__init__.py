"""插件系统 - 注册构建定义和测试套件

插件可以提供：
- 构建定义（BuildDefinition）：声明能提供哪些包以及如何构建
- 测试套件：对某个下游仓库执行 RepoRunner.run

注册插件：创建一个包含 `register(registry)` 函数的模块，并加入配置的 plugins 列表。
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ecoci.core.exceptions import ConfigError

if TYPE_CHECKING:
    from ecoci.core.models import BuildOutput, RunOptions
    from ecoci.services.run_service import RepoRunner

logger = logging.getLogger(__name__)

BuildFn = Callable[["RepoRunner", "RunOptions"], "BuildOutput"]
SuiteFn = Callable[["RepoRunner", "RunOptions"], object]


@dataclass
class BuildDefinition:
    """本地构建定义

    packages: 包名 -> 构建产物目录内的相对路径
    build: 在给定运行参数下执行构建，返回产物目录
    """

    name: str
    packages: dict[str, str]
    build: BuildFn = field(repr=False)


class PluginRegistry:
    """构建定义与测试套件的统一注册表"""

    def __init__(self) -> None:
        self._builds: dict[str, BuildDefinition] = {}
        self._suites: dict[str, SuiteFn] = {}

    def add_build(self, definition: BuildDefinition) -> None:
        if definition.name in self._builds:
            raise ConfigError(f"构建定义重复注册: {definition.name}")
        self._builds[definition.name] = definition

    def add_suite(self, name: str, fn: SuiteFn) -> None:
        if name in self._suites:
            raise ConfigError(f"测试套件重复注册: {name}")
        self._suites[name] = fn

    def builds(self) -> list[BuildDefinition]:
        return list(self._builds.values())

    def suite(self, name: str) -> SuiteFn:
        try:
            return self._suites[name]
        except KeyError:
            raise ConfigError(f"测试套件不存在: {name}") from None

    def suite_names(self) -> list[str]:
        return sorted(self._suites)


def load_plugins(plugin_names: list[str], registry: PluginRegistry) -> None:
    """按模块名加载插件并注册

    Raises:
        ConfigError: 模块无法导入
    """
    for name in plugin_names:
        try:
            mod = importlib.import_module(name)
        except ImportError as e:
            raise ConfigError(f"加载插件失败: {name} ({e})") from e
        if hasattr(mod, "register"):
            mod.register(registry)
            logger.info("插件已加载: %s", name)
        else:
            logger.warning("插件 '%s' 没有 register() 函数，跳过。", name)
