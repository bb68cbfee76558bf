"""CLI — 引导与包列表命令"""

from __future__ import annotations

import threading
from pathlib import Path

import click

from monoboot.core.config import DEFAULT_CONFIG_FILE, Config
from monoboot.core.exceptions import MonobootError
from monoboot.core.models import Package, VersionMismatch
from monoboot.core.orchestrator import BootstrapOrchestrator
from monoboot.core.workspace import discover_packages, filter_packages


def register(group: click.Group) -> None:
    group.add_command(bootstrap)
    group.add_command(list_packages)


class ClickReporter:
    """终端进度输出：进度写 stdout，版本告警写 stderr"""

    def __init__(self) -> None:
        self._total = 0
        self._done = 0
        self._lock = threading.Lock()

    def start(self, total: int) -> None:
        self._total = total
        self._done = 0
        click.echo("Linking all dependencies")

    def progress(self, name: str) -> None:
        with self._lock:
            self._done += 1
            click.echo(f"  [{self._done}/{self._total}] {name}")

    def warning(self, mismatch: VersionMismatch) -> None:
        click.secho(f"WARN {mismatch.message}", fg="yellow", err=True)

    def finish(self) -> None:
        pass


def _load(root: str, config_path: str | None) -> tuple[Config, list[Package]]:
    root_path = Path(root)
    path = Path(config_path) if config_path else root_path / DEFAULT_CONFIG_FILE
    if config_path and not path.exists():
        raise click.ClickException(f"配置文件不存在: {path}")
    try:
        cfg = Config.from_file(path)
        packages = discover_packages(root_path, cfg.packages)
    except MonobootError as e:
        raise click.ClickException(str(e)) from e
    return cfg, packages


@click.command()
@click.option("--root", default=".", type=click.Path(file_okay=False), help="workspace 根目录")
@click.option("--config", "-c", "config_path", default=None, help="配置文件路径（默认 <root>/monoboot.yml）")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="最大并行包数")
@click.option("--ignore", default=None, help="忽略匹配该模式的包名")
def bootstrap(
    root: str, config_path: str | None,
    concurrency: int | None, ignore: str | None,
) -> None:
    """链接 workspace 内的兄弟包并安装其余外部依赖"""
    cfg, packages = _load(root, config_path)
    try:
        cfg = cfg.with_overrides(concurrency=concurrency, ignore=ignore)
    except MonobootError as e:
        raise click.ClickException(str(e)) from e

    targets = filter_packages(packages, cfg.ignore, negate=True)
    orchestrator = BootstrapOrchestrator.from_config(cfg, reporter=ClickReporter())
    result = orchestrator.run(packages, targets=targets)

    if not result.success:
        raise click.ClickException(f"Bootstrap failed: {result.error}")
    click.echo(f"Successfully bootstrapped {len(targets)} packages.")


@click.command(name="ls")
@click.option("--root", default=".", type=click.Path(file_okay=False), help="workspace 根目录")
@click.option("--config", "-c", "config_path", default=None, help="配置文件路径")
def list_packages(root: str, config_path: str | None) -> None:
    """按拓扑顺序列出 workspace 内的包"""
    _, packages = _load(root, config_path)
    if not packages:
        click.echo("没有发现任何包。")
        return
    for p in packages:
        click.echo(f"  {p.name:30s} {p.version}")
