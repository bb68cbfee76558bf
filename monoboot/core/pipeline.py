"""单包引导管线

严格顺序执行:
  1. 确保依赖目录存在
  2. 安装外部依赖
  3. 并发链接全部满足版本要求的兄弟包（仅在第 2 步完成后开始）

任一步骤失败只中止当前包，异常原样抛给编排器记录。
"""

from __future__ import annotations

import logging
from typing import Callable

from monoboot.core.installer import ExternalDependencyInstaller
from monoboot.core.linker import DependencyLinker
from monoboot.core.models import Package, PackageResult, VersionMismatch
from monoboot.core.resolver import DependencyResolver
from monoboot.utils import fs
from monoboot.utils.tasks import gather

logger = logging.getLogger(__name__)

MismatchHandler = Callable[[VersionMismatch], None]


class PackageBootstrapPipeline:
    """对单个包执行 建目录 → 安装 → 链接"""

    def __init__(
        self,
        resolver: DependencyResolver,
        installer: ExternalDependencyInstaller,
        linker: DependencyLinker,
        on_mismatch: MismatchHandler | None = None,
    ) -> None:
        self.resolver = resolver
        self.installer = installer
        self.linker = linker
        self._on_mismatch = on_mismatch

    def run(self, package: Package) -> PackageResult:
        fs.mkdirp(package.external_deps_dir)

        plan = self.resolver.plan(package)
        if self._on_mismatch:
            for mismatch in plan.mismatches:
                self._on_mismatch(mismatch)

        installed = self.installer.install(plan)

        gather(
            [lambda s=sib: self.linker.link(s, package) for sib in plan.linked],  # type: ignore[misc]
            name=f"siblings-{package.name}",
        )

        return PackageResult(
            name=package.name,
            status="success",
            linked=[s.name for s in plan.linked],
            installed=installed,
        )
