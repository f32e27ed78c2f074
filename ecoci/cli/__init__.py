"""ecosystem-ci 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import os
from collections.abc import Callable
from functools import wraps
from typing import Any

import click

from ecoci import __version__
from ecoci.core.config import init_config
from ecoci.core.exceptions import EcoCIError
from ecoci.utils.logger import setup_logging


def handle_errors(fn: Callable[..., Any]) -> Callable[..., Any]:
    """业务异常转为 ClickException（非零退出码）"""

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except EcoCIError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default="ecoci.yml", help="配置文件路径")
def main(config_path: str) -> None:
    """ecosystem-ci - 用下游项目验证 Vite 的兼容性"""
    setup_logging(
        level=os.getenv("ECOCI_LOG_LEVEL", "INFO"),
        json_output=os.getenv("ECOCI_LOG_JSON", "") == "1",
    )
    init_config(config_path)


# 注册各领域子命令
from ecoci.cli.cmd_run import register as _reg_run  # noqa: E402
from ecoci.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_run(main)
_reg_misc(main)
