"""引导编排器 — 在并发上限内对全部包执行引导管线

行为:
  - 同时运行的管线数不超过 concurrency
  - 每个管线结束（成功或失败）都触发一次进度回调
  - 观察到首个失败后不再启动新管线，已启动的管线跑完为止（不回滚磁盘副作用）
  - 整体结果仅在全部管线成功时为成功，否则携带首个失败

通过 BootstrapReporter 注入进度与告警展示，编排器本身不关心输出形式。

用法:
    orchestrator = BootstrapOrchestrator.from_config(cfg, reporter=LoggingReporter())
    result = orchestrator.run(workspace_packages, targets=filtered_packages)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Protocol, Sequence

from monoboot.core.config import Config
from monoboot.core.exceptions import MonobootError
from monoboot.core.installer import (
    ExternalDependencyInstaller,
    InstallBackend,
    NpmInstaller,
)
from monoboot.core.linker import DependencyLinker
from monoboot.core.models import BootstrapResult, Package, PackageResult, VersionMismatch
from monoboot.core.pipeline import PackageBootstrapPipeline
from monoboot.core.resolver import DependencyResolver

logger = logging.getLogger(__name__)


# =========================================================================
# 上报协议
# =========================================================================

class BootstrapReporter(Protocol):
    """进度与告警上报协议（回调可能来自工作线程）"""

    def start(self, total: int) -> None:
        ...

    def progress(self, name: str) -> None:
        ...

    def warning(self, mismatch: VersionMismatch) -> None:
        ...

    def finish(self) -> None:
        ...


class LoggingReporter:
    """默认上报实现：写日志"""

    def __init__(self) -> None:
        self._done = 0
        self._total = 0
        self._lock = threading.Lock()

    def start(self, total: int) -> None:
        self._total = total
        self._done = 0

    def progress(self, name: str) -> None:
        with self._lock:
            self._done += 1
            done = self._done
        logger.info("[%d/%d] %s", done, self._total, name)

    def warning(self, mismatch: VersionMismatch) -> None:
        logger.warning(mismatch.message)

    def finish(self) -> None:
        pass


# =========================================================================
# 编排器
# =========================================================================

class BootstrapOrchestrator:
    """有界并发的引导编排器"""

    def __init__(
        self,
        installer: ExternalDependencyInstaller,
        linker: DependencyLinker,
        *,
        concurrency: int = 4,
        reporter: BootstrapReporter | None = None,
    ) -> None:
        self.installer = installer
        self.linker = linker
        self.concurrency = max(1, concurrency)
        self.reporter: BootstrapReporter = reporter or LoggingReporter()

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        reporter: BootstrapReporter | None = None,
        backend: InstallBackend | None = None,
    ) -> BootstrapOrchestrator:
        """按配置组装默认的 npm 安装器与链接器"""
        backend = backend or NpmInstaller(
            client=config.npm_client, client_args=config.npm_client_args,
        )
        return cls(
            ExternalDependencyInstaller(backend),
            DependencyLinker(
                prefix=config.link_file_prefix,
                source_extensions=config.source_extensions,
            ),
            concurrency=config.concurrency,
            reporter=reporter,
        )

    def run(
        self,
        workspace: Sequence[Package],
        targets: Sequence[Package] | None = None,
    ) -> BootstrapResult:
        """对 targets（默认为整个 workspace）执行引导；链接候选始终是整个 workspace"""
        targets = list(workspace if targets is None else targets)
        pipeline = PackageBootstrapPipeline(
            DependencyResolver(workspace),
            self.installer,
            self.linker,
            on_mismatch=self.reporter.warning,
        )

        logger.info("开始引导 %d 个包 (并发=%d)", len(targets), self.concurrency)
        self.reporter.start(len(targets))
        result = BootstrapResult()
        pending = list(targets)
        running: dict[Future[PackageResult], Package] = {}

        try:
            with ThreadPoolExecutor(
                max_workers=self.concurrency, thread_name_prefix="bootstrap",
            ) as pool:
                while pending or running:
                    # 出现失败后只等待在途管线，不再启动新的
                    while pending and result.error is None and len(running) < self.concurrency:
                        pkg = pending.pop(0)
                        running[pool.submit(pipeline.run, pkg)] = pkg
                    if not running:
                        break

                    done, _ = wait(running, return_when=FIRST_COMPLETED)
                    for future in done:
                        pkg = running.pop(future)
                        self._collect(pkg, future, result)
        finally:
            self.reporter.finish()

        result.skipped = [p.name for p in pending]
        if result.success:
            logger.info("引导完成: %d 个包", len(result.results))
        else:
            logger.error(
                "引导失败: %d 个包失败, %d 个包未执行: %s",
                len(result.failed), len(result.skipped), result.error,
            )
        return result

    def _collect(
        self, pkg: Package, future: Future[PackageResult], result: BootstrapResult,
    ) -> None:
        try:
            pkg_result = future.result()
        except (MonobootError, OSError) as e:
            logger.error("%s 引导失败: %s", pkg.name, e, extra={"package": pkg.name})
            pkg_result = self._record_failure(pkg, e, result)
        except Exception as e:
            # 非领域异常（如线程耗尽）同样只算该包失败，保留堆栈
            logger.exception("%s 引导异常: %s", pkg.name, e, extra={"package": pkg.name})
            pkg_result = self._record_failure(pkg, e, result)
        result.results.append(pkg_result)
        self.reporter.progress(pkg.name)

    @staticmethod
    def _record_failure(
        pkg: Package, error: Exception, result: BootstrapResult,
    ) -> PackageResult:
        if result.error is None:
            result.error = error
        return PackageResult(name=pkg.name, status="failed", error=error)
