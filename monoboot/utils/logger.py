"""monoboot 日志配置

日志一律写 stderr，stdout 留给 CLI 的进度与结果输出。
多个包的管线并发执行，日志交错在一起；按包记录的日志通过
extra={"package": name} 携带包名，两种输出格式都会带上它:

    文本:  12:00:00 [WARNING] monoboot.core.orchestrator: [a] a 引导失败: ...
    JSON:  {"level": "WARNING", "package": "a", "message": "a 引导失败: ...", ...}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# LogRecord 上携带包名的属性，由调用方通过 extra 传入
PACKAGE_ATTR = "package"


def _package_of(record: logging.LogRecord) -> str | None:
    return getattr(record, PACKAGE_ATTR, None)


class PackageTextFormatter(logging.Formatter):
    """人类可读格式，带包名的记录在消息前加 [包名]"""

    def __init__(self) -> None:
        super().__init__("%(asctime)s [%(levelname)-7s] %(name)s: %(message)s", "%H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        text = super().formatMessage(record)
        pkg = _package_of(record)
        if pkg is None:
            return text
        head, sep, msg = text.partition(f"{record.name}: ")
        return f"{head}{sep}[{pkg}] {msg}"


class JSONFormatter(logging.Formatter):
    """每条记录一行 JSON，CI 可按 package 字段筛出单个包的日志"""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        pkg = _package_of(record)
        if pkg is not None:
            entry[PACKAGE_ATTR] = pkg
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "WARNING", json_output: bool = False) -> None:
    """配置根日志器；重复调用只保留一个 handler"""
    root = logging.getLogger()
    reset_logging()
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else PackageTextFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
