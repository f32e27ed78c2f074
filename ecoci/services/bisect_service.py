"""git bisect 驱动 — 在 Vite 提交历史中定位第一个导致下游失败的提交"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path

from ecoci.utils.shell import Session

logger = logging.getLogger(__name__)

# release / docs 提交不改动代码，直接跳过
NON_CODE_COMMIT_RE = re.compile(r"^(?:release|docs)[:(]")

RunSuite = Callable[[], "Exception | None"]


def is_non_code_commit(subject: str) -> bool:
    return NON_CODE_COMMIT_RE.match(subject) is not None


def _has_candidates(output: str) -> bool:
    # git 输出 "Bisecting: ..." 时说明仍有待测提交
    return output[:10].lower() == "bisecting:"


def _reset_changes(session: Session) -> None:
    # 构建可能改动仓库内文件（如 LICENSE.md），会阻止 bisect 切换提交
    session.run("git reset --hard HEAD")


def bisect_vite(
    session: Session, vite_path: Path, good: str, run_suite: RunSuite,
) -> None:
    """从当前 HEAD（bad）到 good 二分查找

    run_suite 返回异常表示当前提交 bad，返回 None 表示 good。
    循环中的错误只记录日志；结束时总会执行 git bisect reset。
    """
    try:
        session.cd(vite_path)
        _reset_changes(session)
        session.run("git bisect start")
        session.run("git bisect bad")
        session.run(["git", "bisect", "good", good])
        bisecting = True
        while bisecting:
            subject = session.run("git log -1 --format=%s")
            if is_non_code_commit(subject):
                logger.info("跳过非代码提交: %s", subject)
                out = session.run("git bisect skip")
                bisecting = _has_candidates(out)
                continue
            error = run_suite()
            session.cd(vite_path)
            _reset_changes(session)
            out = session.run(["git", "bisect", "bad" if error else "good"])
            bisecting = _has_candidates(out)
    except Exception:
        logger.exception("bisect 过程中出错")
    finally:
        try:
            session.cd(vite_path)
            session.run("git bisect reset")
        except Exception:
            logger.exception("重置 bisect 状态失败")
