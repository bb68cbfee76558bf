"""兄弟包链接

把兄弟包 S 暴露到依赖方 P 的依赖目录 P.external_deps_dir/S.name 下，
使 P 直接从 S 的源码目录解析 S，而不是安装一份副本。

链接步骤（单个依赖对）:
  1. 删除目标路径上已有的任何内容（上次运行的残留一律重建）
  2. 重新创建目标目录
  3. 以 S.location 为根展开 S.extra_linked_files + S.main_entry
  4. 并发处理每个匹配文件:
       - 源码模块（默认 .js）→ 生成代理文件，内容为 prefix + 一条 re-export 语句
       - 其他文件 / 目录     → 创建指向原文件的符号链接，已存在时静默跳过
  5. 与第 4 步并发写入最小清单 {name, version}
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Iterable

from monoboot.core.manifest import write_minimal_manifest
from monoboot.core.models import LinkRequest, Package
from monoboot.utils import fs
from monoboot.utils.tasks import gather

logger = logging.getLogger(__name__)


def proxy_module_source(src_file: Path, prefix: str = "") -> str:
    """生成代理模块内容：prefix 之后只有一条转发到 src_file 绝对路径的语句"""
    return prefix + "module.exports = require(" + json.dumps(str(src_file)) + ");"


class DependencyLinker:
    """单个 (依赖方, 兄弟包) 对的链接器"""

    def __init__(
        self,
        prefix: str = "",
        source_extensions: Iterable[str] = (".js",),
    ) -> None:
        self.prefix = prefix
        self.source_extensions = frozenset(source_extensions)

    def link(self, source: Package, destination: Package) -> LinkRequest:
        """把 source 链接到 destination 的依赖目录下，任一文件操作失败即抛 FilesystemError"""
        request = LinkRequest(source=source, destination=destination)
        target = request.target_dir

        fs.remove_tree(target)
        fs.mkdirp(target)

        request.matched_files = self._match_files(source)
        logger.debug(
            "链接 %s -> %s (%d 个文件)", source.name, target, len(request.matched_files),
            extra={"package": destination.name},
        )

        tasks = [
            lambda f=f: self._materialize(request, f)  # type: ignore[misc]
            for f in request.matched_files
        ]
        tasks.append(lambda: self._write_manifest(request))
        gather(tasks, name=f"link-{source.name}")
        return request

    def _match_files(self, source: Package) -> list[str]:
        files: list[str] = []
        for pattern in source.link_patterns:
            files.extend(fs.glob_files(pattern, source.location))
        return files

    def _materialize(self, request: LinkRequest, rel_file: str) -> None:
        src_file = request.source.location / rel_file
        dest_file = request.target_dir / rel_file
        fs.mkdirp(dest_file.parent)

        # 父目录已是指向源码的目录链接时，文件已经可见，不能再往源码目录里写代理
        if not dest_file.parent.resolve().is_relative_to(request.target_dir.resolve()):
            logger.debug("已通过目录链接暴露，跳过: %s", rel_file)
            return

        if os.path.splitext(rel_file)[1] in self.source_extensions:
            fs.write_file(dest_file, proxy_module_source(src_file, self.prefix))
        else:
            fs.symlink(src_file, dest_file)

    def _write_manifest(self, request: LinkRequest) -> None:
        write_minimal_manifest(
            request.target_dir, request.source.name, request.source.version,
        )
