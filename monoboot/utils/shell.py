"""Shell 命令执行工具 — 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换和跨平台适配。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 — 抽象子进程调用

    测试时可注入 fake 实现，无需 patch subprocess，也不会真正调用 npm。
    """

    def execute(self, cmd: list[str], *, cwd: str = ".") -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地命令执行器（默认实现）

    参数列表直接交给 subprocess，不经过 shell，
    因此 ">=1.0.0 <2.0.0" 这类带空格的版本范围无需转义。
    """

    def execute(self, cmd: list[str], *, cwd: str = ".") -> CommandResult:
        logger.debug("执行命令: %s (cwd=%s)", shlex.join(cmd), cwd)
        try:
            r = subprocess.run(
                cmd, capture_output=True, text=True, cwd=cwd, check=False,
            )
        except FileNotFoundError as e:
            # 可执行文件不存在，按 shell 惯例返回 127
            return CommandResult(returncode=127, stdout="", stderr=str(e))
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试或远程执行场景）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor
