"""包清单（package.json）读写

read_manifest() 显式读取并校验清单，失败时抛 ManifestReadError；
try_read_manifest() 供"是否已安装"这类判定使用，失败统一返回 None。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from monoboot.core.exceptions import ManifestReadError
from monoboot.utils.fs import write_file

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"

# 合并顺序：后者覆盖前者，常规依赖优先级最高
_DEPENDENCY_SECTIONS = ("peerDependencies", "devDependencies", "dependencies")


@dataclass
class Manifest:
    """清单中与引导相关的字段"""

    name: str
    version: str
    main: str = ""
    linked_files: list[str] = field(default_factory=list)
    all_dependencies: dict[str, str] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


def manifest_path(directory: str | Path) -> Path:
    return Path(directory) / MANIFEST_FILE


def read_manifest(directory: str | Path) -> Manifest:
    """读取 directory/package.json

    异常:
        ManifestReadError: 文件不存在、无法读取、JSON 格式错误或缺少 name/version
    """
    path = manifest_path(directory)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ManifestReadError(f"清单文件不存在: {path}", path=str(path)) from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestReadError(f"清单文件无法解析: {path}: {e}", path=str(path)) from e

    if not isinstance(data, dict):
        raise ManifestReadError(f"清单内容不是对象: {path}", path=str(path))

    name, version = data.get("name"), data.get("version")
    if not isinstance(name, str) or not name:
        raise ManifestReadError(f"清单缺少 name 字段: {path}", path=str(path))
    if not isinstance(version, str) or not version:
        raise ManifestReadError(f"清单缺少 version 字段: {path}", path=str(path))

    deps: dict[str, str] = {}
    for section in _DEPENDENCY_SECTIONS:
        entries = data.get(section) or {}
        if isinstance(entries, dict):
            deps.update({str(k): str(v) for k, v in entries.items()})

    lerna_cfg = data.get("lerna") if isinstance(data.get("lerna"), dict) else {}
    files = lerna_cfg.get("files") or []
    main = data.get("main")

    return Manifest(
        name=name,
        version=version,
        main=main if isinstance(main, str) else "",
        linked_files=[str(f) for f in files] if isinstance(files, list) else [],
        all_dependencies=deps,
        raw=data,
    )


def try_read_manifest(directory: str | Path) -> Manifest | None:
    """读取清单，任何失败都返回 None"""
    try:
        return read_manifest(directory)
    except ManifestReadError as e:
        logger.debug("忽略不可读清单: %s", e)
        return None


def write_minimal_manifest(directory: str | Path, name: str, version: str) -> Path:
    """写入仅含 name / version 的最小清单，供后续工具识别链接包的身份"""
    path = manifest_path(directory)
    content = json.dumps({"name": name, "version": version}, indent=2)
    write_file(path, content)
    return path
