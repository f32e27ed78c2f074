"""核心数据模型

代码仓检出参数、单次运行参数、构建产物、运行环境等数据类集中定义。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from ecoci.core.tasks import Task

# 包名 -> 版本号 / 本地路径；True 表示"需要覆盖，自动解析"
Overrides = dict[str, Union[str, bool]]


# =========================================================================
# 代码仓
# =========================================================================


@dataclass
class RepoOptions:
    """单个代码仓的检出目标

    tag / commit 存在时优先于 branch。
    repo 可以是 owner/name 形式，也可以是完整 URL。
    """

    repo: str
    dir: str | Path = ""
    branch: str = "main"
    tag: str | None = None
    commit: str | None = None
    shallow: bool = True


@dataclass
class RepoRunSpec:
    """下游仓库的运行定义 — 检出目标 + 各阶段钩子"""

    repo: str
    dir: str = ""
    branch: str = "main"
    tag: str | None = None
    commit: str | None = None

    build: Task = None
    test: Task = None
    before_install: Task = None
    before_build: Task = None
    before_test: Task = None

    # 仓库级 overrides，与调用方的合并后参与解析（同名时本项优先）
    overrides: Overrides = field(default_factory=dict)

    def repo_options(self, local_dir: Path) -> RepoOptions:
        return RepoOptions(
            repo=self.repo, dir=local_dir, branch=self.branch or "main",
            tag=self.tag, commit=self.commit,
        )


# =========================================================================
# 运行参数
# =========================================================================


@dataclass
class RunOptions:
    """单次调用的运行参数，由 CLI 构造后沿调用链向下传递"""

    workspace: Path
    vite_path: Path
    vite_major: int
    root: Path
    skip_git: bool = False
    release: str | None = None
    verify: bool = True
    overrides: Overrides = field(default_factory=dict)

    def with_overrides(self, overrides: Overrides) -> RunOptions:
        return replace(self, overrides=dict(overrides))

    def for_nested_build(self) -> RunOptions:
        """嵌套构建使用的参数：不携带调用方的 overrides"""
        return replace(self, overrides={})


@dataclass
class BuildOutput:
    """构建结果 — 产物所在目录"""

    dir: Path


@dataclass
class EnvironmentData:
    """进程级运行环境，启动时初始化一次"""

    root: Path
    workspace: Path
    vite_path: Path
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "workspace": str(self.workspace),
            "vite_path": str(self.vite_path),
            "cwd": str(self.cwd),
        }
