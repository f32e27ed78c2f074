"""共享 fixture — 录制式命令执行器，无需真实 git / npm"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ecoci.utils.shell import CommandResult, Session


class FakeExecutor:
    """按规则返回结果并记录所有调用

    用法:
        fake.on("git ls-remote --get-url", "https://github.com/a/b.git")
        fake.on("git bisect", "Bisecting: 1 left", "done", prefix=True)
        fake.on("npm ci", CommandResult(1, ""))

    多个输出依次返回，最后一个重复使用。未匹配的命令返回 rc=0、空输出。
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], str]] = []
        self._rules: list[tuple[str, bool, list[CommandResult], Callable | None]] = []

    def on(
        self, pattern: str, *outputs: str | CommandResult,
        prefix: bool = False, action: Callable[[list[str], str], None] | None = None,
    ) -> None:
        results = [
            o if isinstance(o, CommandResult) else CommandResult(returncode=0, stdout=o)
            for o in (outputs or ("",))
        ]
        self._rules.append((pattern, prefix, results, action))

    def execute(
        self, args: list[str], *, cwd: str, env: dict[str, str] | None = None,
    ) -> CommandResult:
        self.calls.append((list(args), cwd))
        cmd = " ".join(args)
        for pattern, prefix, results, action in self._rules:
            if cmd == pattern or (prefix and cmd.startswith(pattern)):
                if action is not None:
                    action(args, cwd)
                return results.pop(0) if len(results) > 1 else results[0]
        return CommandResult(returncode=0, stdout="")

    @property
    def commands(self) -> list[str]:
        return [" ".join(args) for args, _ in self.calls]

    def count(self, cmd: str) -> int:
        return self.commands.count(cmd)


@pytest.fixture()
def fake() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def session(tmp_path: Path, fake: FakeExecutor) -> Session:
    return Session(cwd=tmp_path, env={}, executor=fake, group_output=False)
