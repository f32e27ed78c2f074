"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ecoci.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_PLUGINS = ["ecoci.plugins.vite_plugin_react"]


@dataclass
class Config:
    """全局配置"""

    # 目录（相对 root）
    workspace_dir: str = "workspace"

    # 目标库
    vite_repo: str = "vitejs/vite"
    vite_branch: str = "main"

    # 插件模块（每个模块提供 register(registry)）
    plugins: list[str] = field(default_factory=lambda: list(DEFAULT_PLUGINS))

    # 追加到子进程环境变量
    extra_env: dict[str, str] = field(default_factory=dict)

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "ecoci.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        from dataclasses import asdict
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "ecoci.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    logger.debug("配置内容: %s", _current.to_dict())
    return _current
