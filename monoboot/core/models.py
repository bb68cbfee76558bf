"""领域数据模型

数据类:
- Package: workspace 内单个包的描述（发现阶段生成，引导期间只读）
- VersionMismatch: 兄弟包版本不满足声明范围（仅告警）
- DependencyPlan: 单个包的依赖分类结果（链接 / 外部安装 / 版本不匹配）
- LinkRequest: 一次链接操作的临时描述
- PackageResult / BootstrapResult: 单包与整体执行结果
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Package:
    """workspace 内的一个包"""

    name: str
    version: str
    location: Path
    external_deps_dir: Path
    all_dependencies: dict[str, str] = field(default_factory=dict)
    main_entry: str = "index.js"
    extra_linked_files: tuple[str, ...] = ()

    @property
    def link_patterns(self) -> list[str]:
        """需要暴露给链接的全部 glob 模式（extra_linked_files 在前，main_entry 在后）"""
        return [*self.extra_linked_files, self.main_entry]

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class VersionMismatch:
    """package 声明依赖 dependency@expected，而 workspace 中的版本是 actual"""

    package: str
    dependency: str
    expected: str
    actual: str

    @property
    def message(self) -> str:
        return (
            f'Version mismatch inside "{self.package}". '
            f'Depends on "{self.dependency}@{self.expected}" '
            f'instead of "{self.dependency}@{self.actual}".'
        )


@dataclass
class DependencyPlan:
    """单个包的依赖分类

    每个 (包, 依赖) 对只在这里做一次版本兼容判定，
    linked 与 external 互斥，保证同一依赖不会既链接又外部安装。
    """

    package: Package
    linked: list[Package] = field(default_factory=list)
    external: dict[str, str] = field(default_factory=dict)
    mismatches: list[VersionMismatch] = field(default_factory=list)


@dataclass
class LinkRequest:
    """一次链接操作：把 source 暴露到 destination 的依赖目录下"""

    source: Package
    destination: Package
    matched_files: list[str] = field(default_factory=list)

    @property
    def target_dir(self) -> Path:
        return self.destination.external_deps_dir / self.source.name


@dataclass
class PackageResult:
    """单个包的引导结果"""

    name: str
    status: str  # "success", "failed"
    error: Exception | None = None
    linked: list[str] = field(default_factory=list)
    installed: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == "success"


@dataclass
class BootstrapResult:
    """整体引导结果

    error 为首个观察到的失败；skipped 为失败后未再启动的包。
    """

    results: list[PackageResult] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.skipped

    @property
    def failed(self) -> list[PackageResult]:
        return [r for r in self.results if not r.success]
