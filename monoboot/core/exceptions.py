"""统一异常体系

所有业务异常继承 MonobootError，替代散落的 OSError / RuntimeError。
CLI 层可据此输出友好提示，管线层可据此区分"中止当前包"与"仅视为不满足"。
"""

from __future__ import annotations


class MonobootError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(MonobootError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class FilesystemError(MonobootError):
    """删除 / 建目录 / 写文件 / 建链接失败（链接目标已存在除外）"""

    code = "FILESYSTEM_ERROR"

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class InstallerError(MonobootError):
    """外部安装命令执行失败"""

    code = "INSTALLER_ERROR"

    def __init__(
        self, message: str, returncode: int | None = None, stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ManifestReadError(MonobootError):
    """清单文件（package.json）缺失或格式错误

    调用方在判定依赖是否满足时捕获此异常，按"不满足"处理，不会中止流程。
    """

    code = "MANIFEST_READ_ERROR"

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path
