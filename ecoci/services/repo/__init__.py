"""代码仓服务模块

- sync.py: 通用代码仓同步（clone / 复用 / clean / fetch / checkout）
- vite.py: 目标库 Vite 的检出校验、构建与版本解析
"""

from ecoci.services.repo.sync import ensure_repo, normalize_repo_url
from ecoci.services.repo.vite import (
    build_vite,
    get_permanent_ref,
    parse_major_version,
    parse_vite_major,
    setup_vite_repo,
)

__all__ = [
    "ensure_repo",
    "normalize_repo_url",
    "setup_vite_repo",
    "build_vite",
    "get_permanent_ref",
    "parse_major_version",
    "parse_vite_major",
]
