"""生命周期钩子命令

钩子（before_install / before_build / before_test / build / test）接受:
  - 字符串: 首个单词命中 package.json scripts 时视为脚本，否则为原始命令
  - 可调用对象: 以 scripts 表为参数直接调用
  - 以上的列表，或 None / 空串（跳过）

归一化后得到显式的 RawCommand / ScriptCommand / Callback。
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from ecoci.core.exceptions import ConfigError


@dataclass(frozen=True)
class RawCommand:
    """直接执行的 shell 命令"""

    cmd: str


@dataclass(frozen=True)
class ScriptCommand:
    """通过包管理器执行的 package.json 脚本"""

    name: str
    args: str = ""


@dataclass(frozen=True)
class Callback:
    """调用方提供的函数"""

    fn: Callable[[Mapping[str, str]], Any]


Command = Union[RawCommand, ScriptCommand, Callback]
Task = Union[str, Command, Callable[..., Any], Sequence[Any], None]


def _from_string(task: str, scripts: Mapping[str, str]) -> Command | None:
    text = task.strip()
    if not text:
        return None
    head, _, rest = text.partition(" ")
    if head in scripts:
        return ScriptCommand(name=head, args=rest.strip())
    return RawCommand(cmd=text)


def to_commands(task: Task, scripts: Mapping[str, str] | None = None) -> list[Command]:
    """把钩子值归一化为命令列表

    Raises:
        ConfigError: 元素既不是字符串也不是可调用对象
    """
    scripts = scripts or {}
    items = list(task) if isinstance(task, (list, tuple)) else [task]
    commands: list[Command] = []
    for item in items:
        if item is None:
            continue
        if isinstance(item, (RawCommand, ScriptCommand, Callback)):
            commands.append(item)
        elif isinstance(item, str):
            cmd = _from_string(item, scripts)
            if cmd is not None:
                commands.append(cmd)
        elif callable(item):
            commands.append(Callback(fn=item))
        else:
            raise ConfigError(
                f"无效的钩子: 需要字符串或函数，实际为 "
                f"{type(item).__name__}: {item!r}"
            )
    return commands
