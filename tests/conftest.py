"""测试共享 fixture — 在 tmp_path 下构造 workspace 包

  make_package("b", "1.2.0", files={"index.js": "..."})
    → tmp_path/packages/b/package.json + 源文件，返回 Package

  tree_snapshot(path)
    → {相对路径: ("file", 内容) | ("link", 目标) | ("dir", None)}，用于比较两次运行结果
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable

import pytest

from monoboot.core.models import Package
from monoboot.core.workspace import load_package
from monoboot.utils.shell import CommandResult


def _make_package_factory(root: Path) -> Callable[..., Package]:
    def _make(
        name: str,
        version: str = "1.0.0",
        *,
        deps: dict[str, str] | None = None,
        dev_deps: dict[str, str] | None = None,
        main: str | None = "index.js",
        linked_files: list[str] | None = None,
        files: dict[str, str] | None = None,
    ) -> Package:
        loc = root / "packages" / name
        loc.mkdir(parents=True, exist_ok=True)
        manifest: dict = {"name": name, "version": version}
        if main:
            manifest["main"] = main
        if deps:
            manifest["dependencies"] = deps
        if dev_deps:
            manifest["devDependencies"] = dev_deps
        if linked_files:
            manifest["lerna"] = {"files": linked_files}
        (loc / "package.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")

        if files is None:
            files = {main or "index.js": f"module.exports = {json.dumps(name)};\n"}
        for rel, text in files.items():
            f = loc / rel
            f.parent.mkdir(parents=True, exist_ok=True)
            f.write_text(text, encoding="utf-8")
        return load_package(loc)

    return _make


@pytest.fixture()
def make_package(tmp_path: Path) -> Callable[..., Package]:
    """Package 工厂 fixture，包目录位于 tmp_path/packages/<name>"""
    return _make_package_factory(tmp_path)


def snapshot(path: Path) -> dict[str, tuple[str, str | None]]:
    result: dict[str, tuple[str, str | None]] = {}
    for dirpath, dirnames, filenames in os.walk(path):
        for entry in dirnames + filenames:
            full = Path(dirpath) / entry
            rel = str(full.relative_to(path))
            if full.is_symlink():
                result[rel] = ("link", os.readlink(full))
            elif full.is_dir():
                result[rel] = ("dir", None)
            else:
                result[rel] = ("file", full.read_text(encoding="utf-8"))
    return result


@pytest.fixture()
def tree_snapshot() -> Callable[[Path], dict[str, tuple[str, str | None]]]:
    return snapshot


class FakeExecutor:
    """记录调用的 CommandExecutor，返回预设结果"""

    def __init__(self, returncode: int = 0, stderr: str = "") -> None:
        self.returncode = returncode
        self.stderr = stderr
        self.calls: list[tuple[list[str], str]] = []

    def execute(self, cmd: list[str], *, cwd: str = ".") -> CommandResult:
        self.calls.append((list(cmd), cwd))
        return CommandResult(returncode=self.returncode, stdout="", stderr=self.stderr)


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()
