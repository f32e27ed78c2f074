"""CLI — 运行命令（run-suites / build-vite / bisect）"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import click

from ecoci.cli import handle_errors


def register(group: click.Group) -> None:
    group.add_command(run_suites)
    group.add_command(build_vite)
    group.add_command(bisect)


def vite_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Vite 检出相关的公共选项"""
    for decorator in reversed([
        click.option("--vite", "vite_repo", default="", help="Vite 仓库（owner/name 或 URL）"),
        click.option("--branch", default="", help="Vite 分支"),
        click.option("--tag", default=None, help="Vite tag"),
        click.option("--commit", default=None, help="Vite commit"),
        click.option("--verify/--no-verify", default=False, help="修改依赖前先验证原始构建与测试"),
        click.option("--skip-git", is_flag=True, help="不同步 git，直接使用已有检出"),
    ]):
        fn = decorator(fn)
    return fn


def _request(suites: tuple[str, ...], **kwargs: Any) -> Any:
    from ecoci.services.suite_service import SuiteRequest
    return SuiteRequest(suites=list(suites), **kwargs)


@click.command(name="run-suites")
@click.argument("suites", nargs=-1)
@vite_options
@click.option("--release", default=None, help="使用已发布的 vite 版本而非本地构建")
@handle_errors
def run_suites(suites: tuple[str, ...], **kwargs: Any) -> None:
    """运行下游测试套件（未指定时运行全部）"""
    from ecoci.services.suite_service import SuiteService
    SuiteService().run(_request(suites, **kwargs))


@click.command(name="build-vite")
@vite_options
@handle_errors
def build_vite(**kwargs: Any) -> None:
    """只同步并构建 Vite"""
    from ecoci.services.suite_service import SuiteService
    SuiteService().prepare_vite(_request((), **kwargs))


@click.command()
@click.argument("suites", nargs=-1)
@vite_options
@click.option("--good", required=True, help="已知正常的 Vite 提交/tag")
@handle_errors
def bisect(suites: tuple[str, ...], good: str, **kwargs: Any) -> None:
    """在 Vite 历史中二分查找第一个让套件失败的提交"""
    from ecoci.services.suite_service import SuiteService
    SuiteService().bisect(_request(suites, **kwargs), good)
