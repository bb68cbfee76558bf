"""monoboot 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import os

import click

from monoboot import __version__
from monoboot.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """monoboot - 多包仓库引导工具"""
    setup_logging(
        level=os.getenv("MONOBOOT_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("MONOBOOT_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from monoboot.cli.cmd_bootstrap import register as _reg_bootstrap  # noqa: E402

_reg_bootstrap(main)
