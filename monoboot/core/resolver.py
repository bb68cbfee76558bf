"""依赖分类

对单个包声明的每个依赖做且仅做一次版本兼容判定，分为三类:
  - linked:     workspace 中存在同名兄弟包且版本满足范围 → 链接
  - mismatches: 存在同名兄弟包但版本不满足 → 告警，并交给外部安装
  - external:   workspace 中不存在 → 外部安装
"""

from __future__ import annotations

import logging
from typing import Iterable

from monoboot.core.models import DependencyPlan, Package, VersionMismatch
from monoboot.core.version import is_compatible

logger = logging.getLogger(__name__)


class DependencyResolver:
    """基于 workspace 全部包的依赖分类器"""

    def __init__(self, workspace: Iterable[Package]) -> None:
        self._by_name: dict[str, Package] = {p.name: p for p in workspace}

    def sibling(self, package: Package, name: str) -> Package | None:
        """返回 package 的同名兄弟包（不含自身）"""
        candidate = self._by_name.get(name)
        if candidate is None or candidate.name == package.name:
            return None
        return candidate

    def plan(self, package: Package) -> DependencyPlan:
        plan = DependencyPlan(package=package)
        for name, expected in package.all_dependencies.items():
            sib = self.sibling(package, name)
            if sib is None or not expected:
                plan.external[name] = expected
                continue
            if is_compatible(sib.version, expected):
                plan.linked.append(sib)
                continue
            plan.mismatches.append(VersionMismatch(
                package=package.name, dependency=name,
                expected=expected, actual=sib.version,
            ))
            plan.external[name] = expected

        logger.debug(
            "%s: 链接 %d, 外部 %d, 版本不匹配 %d",
            package.name, len(plan.linked), len(plan.external), len(plan.mismatches),
        )
        return plan
