"""目标库（Vite monorepo）相关操作"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ecoci.core.exceptions import (
    ExecutionError,
    ManifestError,
    RepositoryVerificationError,
)
from ecoci.core.models import RepoOptions
from ecoci.services.manifest.package_manager import (
    detect_agent,
    frozen_install_command,
    run_script_command,
)
from ecoci.services.repo.sync import ensure_repo
from ecoci.utils.manifest import read_manifest
from ecoci.utils.shell import Session

logger = logging.getLogger(__name__)

DEFAULT_VITE_REPO = "vitejs/vite"
VITE_MONOREPO_NAMES = ("@vitejs/vite-monorepo", "vite-monorepo")


def setup_vite_repo(
    session: Session,
    vite_path: Path,
    *,
    repo: str = DEFAULT_VITE_REPO,
    branch: str = "main",
    tag: str | None = None,
    commit: str | None = None,
    shallow: bool = True,
) -> Path:
    """同步 Vite 仓库并校验根 package.json 的 name

    Raises:
        RepositoryVerificationError: 克隆到的不是 Vite monorepo
    """
    ensure_repo(session, RepoOptions(
        repo=repo or DEFAULT_VITE_REPO, dir=vite_path,
        branch=branch, tag=tag, commit=commit, shallow=shallow,
    ))
    try:
        name = read_manifest(vite_path).get("name")
        if name not in VITE_MONOREPO_NAMES:
            raise ManifestError(
                f'{repo}/package.json 的 "name" 应为 Vite monorepo，实际为 {name}'
            )
    except ManifestError as e:
        raise RepositoryVerificationError(f"setup_vite_repo 克隆的不是 Vite 仓库 ({e})") from e
    return vite_path


def build_vite(session: Session, vite_path: Path, *, verify: bool = False) -> None:
    """安装依赖并构建 Vite，verify 时额外运行其自身测试"""
    session.cd(vite_path)
    agent = detect_agent(vite_path)
    session.run(frozen_install_command(agent))
    session.run(run_script_command(agent, "build"))
    if verify:
        session.run(run_script_command(agent, "test"))


def get_permanent_ref(session: Session, vite_path: Path) -> str | None:
    """当前 HEAD 的短哈希；获取失败只告警，返回 None"""
    session.cd(vite_path)
    try:
        return session.run("git log -1 --pretty=format:%h")
    except ExecutionError as e:
        logger.warning("获取 permanent ref 失败: %s", e)
        return None


def parse_major_version(version: str) -> int:
    """"4.1.0" -> 4"""
    return int(version.split(".", 1)[0])


def parse_vite_major(vite_path: Path) -> int:
    """读取 packages/vite/package.json 的主版本号"""
    pkg_file = Path(vite_path) / "packages" / "vite" / "package.json"
    try:
        version = json.loads(pkg_file.read_text(encoding="utf-8"))["version"]
        return parse_major_version(version)
    except (OSError, ValueError, KeyError) as e:
        raise ManifestError(f"无法解析 Vite 版本: {pkg_file} ({e})") from e
