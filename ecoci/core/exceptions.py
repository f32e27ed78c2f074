"""统一异常体系

所有业务异常继承 EcoCIError。CLI 层据此输出友好提示并以非零码退出。
"""

from __future__ import annotations


class EcoCIError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(EcoCIError):
    """配置缺失或内容无效"""

    code = "CONFIG_ERROR"


class OverrideConflictError(ConfigError):
    """显式 override 与 --release 冲突"""

    code = "OVERRIDE_CONFLICT"


class UnsupportedPackageManagerError(ConfigError):
    """检测到不支持的包管理器"""

    code = "UNSUPPORTED_PACKAGE_MANAGER"


class ExecutionError(EcoCIError):
    """外部命令返回非零"""

    code = "EXECUTION_ERROR"

    def __init__(self, message: str, cmd: str = "", returncode: int = 0) -> None:
        super().__init__(message)
        self.cmd = cmd
        self.returncode = returncode


class ManifestError(EcoCIError):
    """package.json 缺失或无法解析"""

    code = "MANIFEST_ERROR"


class RepositoryVerificationError(EcoCIError):
    """克隆下来的仓库与预期项目不符"""

    code = "REPOSITORY_VERIFICATION_ERROR"
