"""Manifest 改写 — 把 overrides 写入 package.json 并重新安装

三种包管理器的差异只在这里体现:
  - pnpm: devDependencies + pnpm.overrides
  - yarn: resolutions
  - npm:  overrides，且直接改写 dependencies / devDependencies 中的同名项
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Any

from ecoci.core.exceptions import UnsupportedPackageManagerError
from ecoci.core.models import Overrides
from ecoci.services.manifest.package_manager import detect_agent, package_manager_name
from ecoci.utils.manifest import write_manifest
from ecoci.utils.shell import Session

logger = logging.getLogger(__name__)

# pnpm 7.18.0 处理绝对路径 overrides 有 bug，改用 7.18.1
PNPM_BUGGY_VERSION = "7.18.0"
PNPM_FIXED_VERSION = "7.18.1"

INSTALL_COMMANDS: dict[str, list[str]] = {
    "pnpm": [
        "pnpm", "install", "--prefer-frozen-lockfile", "--prefer-offline",
        "--strict-peer-dependencies", "false",
    ],
    "yarn": ["yarn", "install"],
    "npm": ["npm", "install"],
}


def is_local_override(value: str, base: str | Path = ".") -> bool:
    """value 是否指向一个已存在的本地目录

    不含 "/" 或以 "@" 开头的视为版本号或包名。符号链接不跟随。
    """
    if "/" not in value or value.startswith("@"):
        return False
    try:
        mode = (Path(base) / value).lstat().st_mode
    except FileNotFoundError:
        return False
    return stat.S_ISDIR(mode)


def normalize_overrides(overrides: Overrides, base: str | Path = ".") -> dict[str, str]:
    """丢弃非字符串值，本地目录改写为 file: 引用"""
    result: dict[str, str] = {}
    for name, value in overrides.items():
        if not isinstance(value, str):
            logger.debug("忽略未解析的 override: %s=%r", name, value)
            continue
        if is_local_override(value, base):
            value = "file:" + os.path.abspath(Path(base) / value)
        result[name] = value
    return result


def _patch_pnpm(session: Session, pkg: dict[str, Any], overrides: dict[str, str]) -> None:
    version = session.run("pnpm --version")
    if version == PNPM_BUGGY_VERSION:
        logger.warning(
            "检测到 pnpm@%s，将 packageManager 与 engines.pnpm 改为 %s",
            PNPM_BUGGY_VERSION, PNPM_FIXED_VERSION,
        )
        # corepack 读取 packageManager 后会切换到对应版本
        pkg["packageManager"] = f"pnpm@{PNPM_FIXED_VERSION}"
        pkg.setdefault("engines", {})["pnpm"] = PNPM_FIXED_VERSION
    # override 必须同时出现在 devDependencies 或 dependencies 中才生效
    pkg["devDependencies"] = {**(pkg.get("devDependencies") or {}), **overrides}
    pnpm = pkg.setdefault("pnpm", {})
    pnpm["overrides"] = {**(pnpm.get("overrides") or {}), **overrides}


def _patch_yarn(pkg: dict[str, Any], overrides: dict[str, str]) -> None:
    pkg["resolutions"] = {**(pkg.get("resolutions") or {}), **overrides}


def _patch_npm(pkg: dict[str, Any], overrides: dict[str, str]) -> None:
    pkg["overrides"] = {**(pkg.get("overrides") or {}), **overrides}
    # npm 不允许通过 overrides 覆盖直接依赖，直接改写依赖表
    for name, version in overrides.items():
        for section in ("dependencies", "devDependencies"):
            deps = pkg.get(section)
            if deps and deps.get(name):
                deps[name] = version


def apply_overrides(
    session: Session,
    directory: str | Path,
    pkg: dict[str, Any],
    overrides: Overrides | None = None,
) -> dict[str, str]:
    """把 overrides 写入 directory/package.json 并重新安装依赖

    返回实际写入的 overrides。pkg 会被原地修改。

    Raises:
        UnsupportedPackageManagerError: 检测到的包管理器不是 pnpm/yarn/npm
        ExecutionError: git clean / 安装命令失败
    """
    directory = Path(directory)
    resolved = normalize_overrides(overrides or {}, base=session.cwd)

    session.cd(directory)
    session.run("git clean -fdxq")  # 清除现有安装

    pm = package_manager_name(detect_agent(directory))
    if pm == "pnpm":
        _patch_pnpm(session, pkg, resolved)
    elif pm == "yarn":
        _patch_yarn(pkg, resolved)
    elif pm == "npm":
        _patch_npm(pkg, resolved)
    else:
        raise UnsupportedPackageManagerError(f"不支持的包管理器: {pm}")

    write_manifest(directory, pkg)
    logger.info("已写入 %d 个 override (%s): %s", len(resolved), pm, ", ".join(resolved))

    # 使用原生安装命令，避免 lockfile 校验失败
    session.run(INSTALL_COMMANDS[pm])
    return resolved
