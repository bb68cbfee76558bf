"""文件系统操作封装

链接与安装流程只通过这里访问文件系统：
所有 OSError 统一包装为 FilesystemError，方便管线按包中止并上报。
"""

from __future__ import annotations

import glob
import logging
import os
import shutil
import tempfile
from pathlib import Path

from monoboot.core.exceptions import FilesystemError

logger = logging.getLogger(__name__)

# 进程 umask 只在导入时读取一次；os.umask 的读写不是线程安全的
_UMASK = os.umask(0)
os.umask(_UMASK)


def remove_tree(path: str | Path) -> None:
    """递归删除 path（文件、目录或符号链接），不存在时静默成功"""
    p = Path(path)
    try:
        if p.is_symlink() or p.is_file():
            p.unlink()
        elif p.is_dir():
            shutil.rmtree(p)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FilesystemError(f"删除失败: {p}: {e}", path=str(p)) from e


def mkdirp(path: str | Path) -> None:
    """递归创建目录，已存在时静默成功"""
    p = Path(path)
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"创建目录失败: {p}: {e}", path=str(p)) from e


def write_file(path: str | Path, content: str) -> None:
    """原子写入文件：先写临时文件再 rename，防止中途崩溃留下半截文件

    同一路径被并发写入时，最后一次 rename 生效，不会出现内容交错。
    mkstemp 创建的文件权限为 0600，落盘前按 umask 恢复为常规权限（通常 0644）。
    """
    p = Path(path)
    try:
        fd, tmp = tempfile.mkstemp(dir=str(p.parent), suffix=".tmp")
    except OSError as e:
        raise FilesystemError(f"写入文件失败: {p}: {e}", path=str(p)) from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            os.fchmod(f.fileno(), 0o666 & ~_UMASK)
            f.write(content)
        os.replace(tmp, str(p))
    except OSError as e:
        try:
            os.unlink(tmp)
        except OSError:
            # 临时文件清理失败不影响原异常抛出
            pass
        raise FilesystemError(f"写入文件失败: {p}: {e}", path=str(p)) from e


def symlink(src: str | Path, dest: str | Path) -> bool:
    """创建 dest -> src 的符号链接

    返回:
        bool: 新建返回 True；dest 已存在时返回 False（不视为错误）
    """
    s, d = Path(src), Path(dest)
    try:
        os.symlink(s, d, target_is_directory=s.is_dir())
    except FileExistsError:
        logger.debug("链接已存在，跳过: %s", d)
        return False
    except OSError as e:
        raise FilesystemError(f"创建链接失败: {d} -> {s}: {e}", path=str(d)) from e
    return True


def glob_files(pattern: str, cwd: str | Path) -> list[str]:
    """以 cwd 为根展开 glob 模式，返回规范化后的相对路径列表

    支持 ** 递归匹配；以 . 开头的文件不参与通配（与 npm 生态的 glob 一致）。
    """
    matches = glob.glob(pattern, root_dir=str(cwd), recursive=True)
    return sorted(os.path.normpath(m) for m in matches)
