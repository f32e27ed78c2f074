"""Override 解析 — 计算最终写入 package.json 的包名 -> 来源映射

规则:
  - 指定 release: vite 固定为该版本，与显式的不同版本冲突时报错
  - 否则 vite 系列包指向本地 Vite 检出目录
      * Vite < 4: 额外固定若干插件和 @types/node
      * Vite >= 4: 对需要覆盖的包执行已注册的构建定义（嵌套构建），
        指向其产物目录
  - 调用方的字符串 override 永远优先，只有 True / 未设置的项才使用默认值
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ecoci.core.exceptions import ConfigError, OverrideConflictError
from ecoci.core.models import BuildOutput, Overrides, RunOptions

if TYPE_CHECKING:
    from ecoci.plugins import BuildDefinition, PluginRegistry
    from ecoci.utils.shell import Session

logger = logging.getLogger(__name__)

TARGET_PACKAGE = "vite"

# 包名 -> Vite 仓库内路径
VITE_PACKAGES: dict[str, str] = {
    "vite": "packages/vite",
    "@vitejs/plugin-legacy": "packages/plugin-legacy",
}
# Vite 3 及以下，插件仍在 Vite 仓库内
LEGACY_VITE_PACKAGES: dict[str, str] = {
    "@vitejs/plugin-vue": "packages/plugin-vue",
    "@vitejs/plugin-vue-jsx": "packages/plugin-vue-jsx",
    "@vitejs/plugin-react": "packages/plugin-react",
}
TYPES_NODE = "@types/node"
AUTO_OVERRIDE_MIN_MAJOR = 4

DEPENDENCY_SECTIONS = ("dependencies", "devDependencies", "peerDependencies")

# (构建定义, 运行参数) -> 产物目录
NestedBuild = Callable[["BuildDefinition", RunOptions], BuildOutput]


def manifest_dependencies(pkg: dict[str, Any]) -> set[str]:
    """dependencies / devDependencies / peerDependencies 中出现的全部包名"""
    deps: set[str] = set()
    for section in DEPENDENCY_SECTIONS:
        deps.update((pkg.get(section) or {}).keys())
    return deps


def _is_pinned(value: str | bool | None) -> bool:
    return isinstance(value, str) and value != ""


def _strings_only(overrides: Overrides) -> Overrides:
    # 未被满足的 True 和 False 不写入 package.json
    return {k: v for k, v in overrides.items() if isinstance(v, str)}


def _types_node_path(vite_path: Path) -> str:
    target = vite_path / "node_modules" / TYPES_NODE
    try:
        return str(target.resolve(strict=True))
    except FileNotFoundError as e:
        raise ConfigError(f"找不到 {target}，请先安装 Vite 的依赖") from e


class OverrideResolver:
    """Override 解析器

    Vite >= 4 时解析可能触发嵌套构建（clone + install + build 其他仓库），
    通过 nested_build 显式执行，并记录正在构建的定义以防自我递归。
    """

    def __init__(
        self,
        registry: PluginRegistry,
        nested_build: NestedBuild,
        session: Session,
    ) -> None:
        self.registry = registry
        self.nested_build = nested_build
        self.session = session
        self._active: set[str] = set()

    def resolve(self, pkg: dict[str, Any], options: RunOptions) -> Overrides:
        """返回合并后的 overrides（不修改 options.overrides），结果只含字符串值

        Raises:
            OverrideConflictError: release 与显式的 vite override 不一致
            ConfigError: Vite < 4 时缺少 node_modules/@types/node
        """
        overrides: Overrides = dict(options.overrides or {})
        if options.release:
            return self._resolve_release(overrides, options.release)

        vite_path = Path(options.vite_path)
        defaults = {name: str(vite_path / rel) for name, rel in VITE_PACKAGES.items()}
        if options.vite_major < AUTO_OVERRIDE_MIN_MAJOR:
            defaults.update(
                {name: str(vite_path / rel) for name, rel in LEGACY_VITE_PACKAGES.items()}
            )
            # Vite 3 依赖 @types/node 版本一致
            if not _is_pinned(overrides.get(TYPES_NODE)):
                defaults[TYPES_NODE] = _types_node_path(vite_path)
        for name, value in defaults.items():
            if not _is_pinned(overrides.get(name)):
                overrides[name] = value

        if options.vite_major >= AUTO_OVERRIDE_MIN_MAJOR:
            overrides.update(self.build_overrides(pkg, options, overrides))
        return _strings_only(overrides)

    @staticmethod
    def _resolve_release(overrides: Overrides, release: str) -> Overrides:
        current = overrides.get(TARGET_PACKAGE)
        if _is_pinned(current) and current != release:
            raise OverrideConflictError(
                f"overrides.{TARGET_PACKAGE}={current} 与 --release={release} 冲突，只能指定其一"
            )
        overrides[TARGET_PACKAGE] = release
        return _strings_only(overrides)

    def build_overrides(
        self, pkg: dict[str, Any], options: RunOptions, repo_overrides: Overrides,
    ) -> dict[str, str]:
        """执行需要的构建定义，返回其提供的包 -> 产物路径"""
        deps = manifest_dependencies(pkg)

        def needs_override(name: str) -> bool:
            value = repo_overrides.get(name)
            return value is True or (name in deps and value is None)

        result: dict[str, str] = {}
        for definition in self.registry.builds():
            if not any(needs_override(p) for p in definition.packages):
                continue
            if definition.name in self._active:
                logger.warning("构建 %s 已在进行中，跳过递归构建", definition.name)
                continue
            logger.info("嵌套构建 %s 以提供 %s", definition.name, ", ".join(definition.packages))
            self._active.add(definition.name)
            try:
                with self.session.pushd(self.session.cwd):
                    output = self.nested_build(definition, options.for_nested_build())
            finally:
                self._active.discard(definition.name)
            for name, rel in definition.packages.items():
                if needs_override(name):
                    result[name] = f"{output.dir}/{rel}"
        return result
