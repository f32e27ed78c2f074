"""package.json 读写"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ecoci.core.exceptions import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"


def manifest_path(directory: str | Path) -> Path:
    return Path(directory) / MANIFEST_NAME


def read_manifest(directory: str | Path) -> dict[str, Any]:
    """读取并解析目录下的 package.json

    Raises:
        ManifestError: 文件不存在、无法解析或顶层不是对象
    """
    path = manifest_path(directory)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ManifestError(f"找不到 {path}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(f"解析 {path} 失败: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"{path} 顶层必须是对象，实际为 {type(data).__name__}")
    return data


def write_manifest(directory: str | Path, manifest: dict[str, Any]) -> Path:
    """以 2 空格缩进写回 package.json，保持键的插入顺序"""
    path = manifest_path(directory)
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("已写入 %s", path)
    return path
