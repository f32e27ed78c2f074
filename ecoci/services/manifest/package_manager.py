"""包管理器检测与命令

agent 字符串形如 "npm" / "yarn" / "yarn@berry" / "pnpm" / "pnpm@6" / "bun"；
去掉 "@" 之后的部分即为包管理器名称。
"""

from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path

from ecoci.core.exceptions import ManifestError
from ecoci.utils.manifest import read_manifest

logger = logging.getLogger(__name__)

# 按优先级排列
LOCKFILES: list[tuple[str, str]] = [
    ("bun.lockb", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
    ("npm-shrinkwrap.json", "npm"),
]

_PACKAGE_MANAGER_RE = re.compile(r"^(npm|yarn|pnpm|bun)@[\^~]?(\d+)")


def _from_package_manager_field(value: str) -> str | None:
    """解析 package.json 的 packageManager 字段，如 "pnpm@7.18.1" """
    m = _PACKAGE_MANAGER_RE.match(value.strip())
    if not m:
        return None
    name, major = m.group(1), int(m.group(2))
    if name == "yarn" and major > 1:
        return "yarn@berry"
    if name == "pnpm" and major < 7:
        return "pnpm@6"
    return name


def detect_agent(directory: str | Path) -> str | None:
    """检测目录使用的包管理器

    packageManager 字段优先，其次按 lockfile 判断；都没有则返回 None。
    """
    root = Path(directory)
    try:
        field = read_manifest(root).get("packageManager")
    except ManifestError:
        field = None
    if isinstance(field, str):
        agent = _from_package_manager_field(field)
        if agent:
            logger.debug("packageManager 字段: %s -> %s", field, agent)
            return agent

    for lockfile, agent in LOCKFILES:
        if (root / lockfile).exists():
            if agent == "yarn" and (root / ".yarnrc.yml").exists():
                return "yarn@berry"
            return agent
    return None


def package_manager_name(agent: str | None) -> str | None:
    """yarn@berry -> yarn, pnpm@6 -> pnpm"""
    if not agent:
        return None
    return agent.split("@", 1)[0]


def frozen_install_command(agent: str | None) -> list[str]:
    """按 lockfile 精确安装依赖"""
    if agent == "yarn@berry":
        return ["yarn", "install", "--immutable"]
    pm = package_manager_name(agent)
    if pm == "yarn":
        return ["yarn", "install", "--frozen-lockfile"]
    if pm == "pnpm":
        return ["pnpm", "install", "--frozen-lockfile"]
    if pm == "bun":
        return ["bun", "install", "--frozen-lockfile"]
    return ["npm", "ci"]


def run_script_command(agent: str | None, script: str, args: str = "") -> list[str]:
    """通过包管理器运行 package.json 中的脚本"""
    pm = package_manager_name(agent) or "npm"
    cmd = [pm, "run", script]
    if args:
        if pm == "npm":
            cmd.append("--")
        cmd.extend(shlex.split(args))
    return cmd
