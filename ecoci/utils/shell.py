"""Shell 命令执行工具 — 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
Session 显式持有当前工作目录和环境变量，所有外部命令都经由它执行。
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TextIO

from ecoci.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)

# 所有子进程共享的固定环境变量
BASE_ENV: dict[str, str] = {
    "CI": "true",
    "TURBO_FORCE": "true",  # 禁用 turbo 缓存，依赖被改写后不能回放旧结果
    "YARN_ENABLE_IMMUTABLE_INSTALLS": "false",  # overrides 会改动 lockfile
    "NODE_OPTIONS": "--max-old-space-size=6144",
}


def build_env(
    base: Mapping[str, str] | None = None,
    extra: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """继承当前进程环境，叠加固定覆盖项和额外配置"""
    env = dict(os.environ if base is None else base)
    env.update(BASE_ENV)
    env.update(extra or {})
    return env


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 — 抽象子进程调用

    测试时可注入 mock 实现，无需真实的 git / npm。
    """

    def execute(
        self,
        args: list[str],
        *,
        cwd: str,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


class LocalExecutor:
    """本地子进程执行器（默认实现）

    stdout 逐行转发到 stream 的同时收集返回；stderr 直接继承，实时输出。
    不设超时。
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def execute(
        self,
        args: list[str],
        *,
        cwd: str,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        stream = self._stream or sys.stdout
        lines: list[str] = []
        with subprocess.Popen(
            args, cwd=cwd, env=env, text=True,
            stdout=subprocess.PIPE, bufsize=1,
        ) as proc:
            if proc.stdout is not None:
                for line in proc.stdout:
                    stream.write(line)
                    lines.append(line)
            stream.flush()
            returncode = proc.wait()
        return CommandResult(returncode=returncode, stdout="".join(lines))


# =========================================================================
# 会话: 当前目录 + 环境变量
# =========================================================================

class Session:
    """命令执行会话

    替代进程级的全局 cwd：cd() 修改的目录只影响经由本会话执行的后续命令。
    非线程安全，同一会话不可并发使用。
    """

    def __init__(
        self,
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        executor: CommandExecutor | None = None,
        *,
        group_output: bool | None = None,
    ) -> None:
        self.cwd = Path(cwd or os.getcwd()).resolve()
        self.env = env if env is not None else build_env()
        self.executor: CommandExecutor = executor or LocalExecutor()
        if group_output is None:
            group_output = bool(os.environ.get("GITHUB_ACTIONS"))
        self.group_output = group_output

    def cd(self, path: str | Path) -> Path:
        """切换当前目录（相对路径基于当前目录解析）"""
        self.cwd = (self.cwd / path).resolve()
        return self.cwd

    @contextmanager
    def pushd(self, path: str | Path) -> Iterator[Path]:
        """临时切换目录，退出时恢复"""
        previous = self.cwd
        try:
            yield self.cd(path)
        finally:
            self.cwd = previous

    def run(self, cmd: str | list[str]) -> str:
        """在当前目录执行命令，返回去除首尾空白的 stdout

        Raises:
            ExecutionError: 命令返回非零
        """
        args = shlex.split(cmd) if isinstance(cmd, str) else [a for a in cmd if a]
        text = shlex.join(args)
        if self.group_output:
            sys.stdout.write(f"::group::{self.cwd} $> {text}\n")
            sys.stdout.flush()
        else:
            logger.info("%s $> %s", self.cwd, text)
        try:
            result = self.executor.execute(args, cwd=str(self.cwd), env=self.env)
        except FileNotFoundError as e:
            raise ExecutionError(f"命令不存在: {text} ({e})", cmd=text, returncode=127) from e
        finally:
            if self.group_output:
                sys.stdout.write("::endgroup::\n")
                sys.stdout.flush()
        if not result.success:
            raise ExecutionError(
                f"命令失败 (rc={result.returncode}): {text}",
                cmd=text, returncode=result.returncode,
            )
        return result.stdout.strip()
