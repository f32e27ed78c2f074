"""package.json 改写模块

- package_manager.py: 包管理器检测与安装/脚本命令
- patcher.py: 按包管理器方言写入 overrides 并重新安装
"""

from ecoci.services.manifest.package_manager import detect_agent, package_manager_name
from ecoci.services.manifest.patcher import apply_overrides, is_local_override

__all__ = ["detect_agent", "package_manager_name", "apply_overrides", "is_local_override"]
