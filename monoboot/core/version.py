"""版本兼容性判定（npm semver 范围语义）"""

from __future__ import annotations

import logging

from nodesemver import satisfies

logger = logging.getLogger(__name__)


def is_compatible(actual: str, expected: str) -> bool:
    """actual 版本是否满足声明范围 expected

    支持 ^ / ~ / 比较符 / x-range / 连字符范围 / || 并集，
    预发布版本按 semver 规则处理：只有范围中同一 major.minor.patch 的
    预发布比较符才能匹配预发布版本。无法解析的版本或范围视为不兼容。
    """
    if not actual or expected is None:
        return False
    try:
        return bool(satisfies(actual, expected, loose=False))
    except (ValueError, TypeError) as e:
        logger.debug("无法比较版本 %s 与范围 %s: %s", actual, expected, e)
        return False
