"""运行环境初始化 — 计算目录并创建命令执行会话"""

from __future__ import annotations

import logging
from pathlib import Path

from ecoci.core.config import Config, get_config
from ecoci.core.models import EnvironmentData
from ecoci.utils.shell import CommandExecutor, Session, build_env

logger = logging.getLogger(__name__)


def setup_environment(
    root: str | Path | None = None,
    config: Config | None = None,
    executor: CommandExecutor | None = None,
) -> tuple[EnvironmentData, Session]:
    """启动时调用一次

    workspace 位于 root 下（config.workspace_dir），Vite 检出在 workspace/vite。
    """
    cfg = config or get_config()
    root_path = Path(root or Path.cwd()).resolve()
    workspace = (root_path / cfg.workspace_dir).resolve()
    workspace.mkdir(parents=True, exist_ok=True)
    env = build_env(extra=cfg.extra_env)
    session = Session(cwd=Path.cwd(), env=env, executor=executor)
    data = EnvironmentData(
        root=root_path,
        workspace=workspace,
        vite_path=workspace / "vite",
        cwd=session.cwd,
        env=env,
    )
    logger.debug("运行环境: %s", data.to_dict())
    return data, session
