"""workspace 包发现与过滤

- discover_packages(): 按配置的 glob 模式查找包目录，读取清单生成 Package，
  并按依赖关系做拓扑排序（被依赖的包在前，存在环时剩余包按名称排序追加）
- filter_packages(): 按 fnmatch 风格模式过滤包名
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Iterable

from monoboot.core.manifest import manifest_path, read_manifest
from monoboot.core.models import Package

logger = logging.getLogger(__name__)

DEPS_DIR_NAME = "node_modules"
DEFAULT_MAIN = "index.js"


def load_package(location: str | Path) -> Package:
    """从包目录读取清单构造 Package，清单不可读时抛 ManifestReadError"""
    loc = Path(location).resolve()
    manifest = read_manifest(loc)
    return Package(
        name=manifest.name,
        version=manifest.version,
        location=loc,
        external_deps_dir=loc / DEPS_DIR_NAME,
        all_dependencies=manifest.all_dependencies,
        main_entry=manifest.main or DEFAULT_MAIN,
        extra_linked_files=tuple(manifest.linked_files),
    )


def discover_packages(root: str | Path, patterns: Iterable[str]) -> list[Package]:
    """在 root 下按 patterns 查找包并返回拓扑序列表"""
    root_path = Path(root).resolve()
    seen: set[Path] = set()
    packages: dict[str, Package] = {}

    for pattern in patterns:
        for candidate in sorted(root_path.glob(pattern)):
            if candidate in seen or not manifest_path(candidate).is_file():
                continue
            seen.add(candidate)
            pkg = load_package(candidate)
            if pkg.name in packages:
                logger.warning(
                    "包名重复，忽略 %s（已存在于 %s）",
                    candidate, packages[pkg.name].location,
                )
                continue
            packages[pkg.name] = pkg

    logger.info("发现 %d 个包", len(packages))
    return topological_sort(packages.values())


def topological_sort(packages: Iterable[Package]) -> list[Package]:
    """依赖在前的稳定拓扑排序（只考虑 workspace 内部依赖）"""
    remaining = {p.name: p for p in packages}
    ordered: list[Package] = []

    while remaining:
        ready = sorted(
            name for name, pkg in remaining.items()
            if not any(
                dep in remaining and dep != name for dep in pkg.all_dependencies
            )
        )
        if not ready:
            cycle = sorted(remaining)
            logger.warning("检测到循环依赖: %s", ", ".join(cycle))
            ready = cycle
        for name in ready:
            ordered.append(remaining.pop(name))

    return ordered


def filter_packages(
    packages: Iterable[Package], pattern: str, negate: bool = False,
) -> list[Package]:
    """按包名匹配 pattern；negate=True 时返回不匹配的包。pattern 为空时不过滤"""
    pkgs = list(packages)
    if not pattern:
        return pkgs
    return [p for p in pkgs if fnmatch.fnmatchcase(p.name, pattern) != negate]
