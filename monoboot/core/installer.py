"""外部依赖安装

ExternalDependencyInstaller 负责"装什么"：剔除可链接的兄弟包与已安装的兼容副本，
把剩余依赖合并为一次安装调用；InstallBackend 负责"怎么装"，默认实现为 npm。

用法:
    installer = ExternalDependencyInstaller(NpmInstaller())
    installer.install(plan)   # plan 来自 DependencyResolver.plan()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from monoboot.core.exceptions import InstallerError
from monoboot.core.manifest import try_read_manifest
from monoboot.core.models import DependencyPlan, Package
from monoboot.core.version import is_compatible
from monoboot.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)


class InstallBackend(Protocol):
    """外部安装器协议：在 directory 中安装 specs（"name@range" 列表），失败抛 InstallerError"""

    def install(self, directory: Path, specs: list[str]) -> None:
        ...


class NpmInstaller:
    """通过 npm（或兼容客户端）安装依赖"""

    def __init__(
        self,
        client: str = "npm",
        client_args: list[str] | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.client = client
        self.client_args = list(client_args or [])
        self._executor = executor

    def command(self, specs: list[str]) -> list[str]:
        return [self.client, "install", *self.client_args, *specs]

    def install(self, directory: Path, specs: list[str]) -> None:
        cmd = self.command(specs)
        executor = self._executor or get_executor()
        logger.info("  安装外部依赖: %s (cwd=%s)", " ".join(cmd), directory)
        result = executor.execute(cmd, cwd=str(directory))
        if not result.success:
            raise InstallerError(
                f"{self.client} install 失败 (rc={result.returncode}): "
                f"{result.stderr.strip()[:500]}",
                returncode=result.returncode,
                stderr=result.stderr,
            )


def has_dependency_installed(package: Package, name: str, expected: str) -> bool:
    """package 的依赖目录中是否已有满足 expected 的 name 副本"""
    manifest = try_read_manifest(package.external_deps_dir / name)
    if manifest is None:
        return False
    return is_compatible(manifest.version, expected)


class ExternalDependencyInstaller:
    """每个包至多调用一次外部安装器，不重试"""

    def __init__(self, backend: InstallBackend) -> None:
        self.backend = backend

    def pending(self, plan: DependencyPlan) -> list[str]:
        """计算仍需安装的依赖，格式为 name@range"""
        pkg = plan.package
        return [
            f"{name}@{expected}"
            for name, expected in plan.external.items()
            if not has_dependency_installed(pkg, name, expected)
        ]

    def install(self, plan: DependencyPlan) -> list[str]:
        """安装缺失的外部依赖，返回本次安装的 spec 列表（为空则不调用安装器）"""
        specs = self.pending(plan)
        if not specs:
            logger.debug(
                "%s: 无需安装外部依赖", plan.package.name, extra={"package": plan.package.name},
            )
            return []
        self.backend.install(plan.package.location, specs)
        return specs
