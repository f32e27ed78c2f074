"""代码仓同步 — 保证工作目录是指定远端/分支/tag/commit 的干净检出

职责:
- 远端 URL 未变时复用已有 clone，否则删除后重新 clone
- 每次都执行 clean + fetch + checkout
- shallow 模式只取单个 ref；完整模式拉取全部 tag，便于后续 bisect
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ecoci.core.exceptions import ConfigError, ExecutionError
from ecoci.core.models import RepoOptions
from ecoci.utils.shell import Session

logger = logging.getLogger(__name__)

GIT = ["git", "-c", "advice.detachedHead=false"]


def normalize_repo_url(repo: str) -> str:
    """owner/name 展开为 GitHub HTTPS 地址，带协议的 URL 原样返回"""
    if ":" in repo:
        return repo
    return f"https://github.com/{repo}.git"


def current_remote(session: Session, directory: Path) -> str | None:
    """读取目录当前的远端 URL；不是 git 仓库时返回 None"""
    with session.pushd(directory):
        try:
            return session.run("git ls-remote --get-url")
        except ExecutionError:
            logger.debug("%s 不是 git 仓库", directory)
            return None


def _fetch_ref(options: RepoOptions) -> list[str]:
    if options.tag:
        return ["tag", options.tag]
    return [options.commit or options.branch]


def _checkout_ref(options: RepoOptions) -> str:
    if options.tag:
        return f"tags/{options.tag}"
    return options.commit or options.branch


def ensure_repo(session: Session, options: RepoOptions) -> Path:
    """幂等地把 options.dir 同步到 options.repo 的指定 ref

    返回检出目录，结束时会话位于该目录。任何 git 失败直接抛出，不重试。

    Raises:
        ConfigError: 未指定 dir
        ExecutionError: git 命令失败
    """
    if not options.branch:
        options.branch = "main"
    if options.shallow is None:
        options.shallow = True
    if not options.dir:
        raise ConfigError("ensure_repo 必须指定 options.dir")

    repo = normalize_repo_url(options.repo)
    directory = (session.cwd / options.dir).resolve()

    need_clone = True
    if directory.exists():
        if current_remote(session, directory) == repo:
            need_clone = False
            logger.info("复用已有 clone: %s -> %s", repo, directory)
        else:
            logger.info("远端不一致，删除后重新 clone: %s", directory)
            shutil.rmtree(directory)

    if need_clone:
        session.run([
            *GIT, "clone",
            *(["--depth=1", "--no-tags"] if options.shallow else []),
            "--branch", options.tag or options.branch,
            repo, str(directory),
        ])

    session.cd(directory)
    session.run("git clean -fdxq")
    session.run([
        "git", "fetch",
        *(["--depth=1", "--no-tags"] if options.shallow else ["--tags"]),
        "origin", *_fetch_ref(options),
    ])
    if options.shallow:
        session.run([*GIT, "checkout", _checkout_ref(options)])
    else:
        session.run(["git", "checkout", options.branch])
        session.run("git merge FETCH_HEAD")
        if options.tag or options.commit:
            session.run(["git", "reset", "--hard", options.tag or options.commit])
    return directory
