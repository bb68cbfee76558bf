"""引导编排器单元测试 — 有界并发、失败隔离、进度回调"""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from monoboot.core.config import Config
from monoboot.core.exceptions import InstallerError
from monoboot.core.installer import ExternalDependencyInstaller, NpmInstaller
from monoboot.core.linker import DependencyLinker
from monoboot.core.orchestrator import BootstrapOrchestrator, LoggingReporter
from monoboot.core.models import VersionMismatch


def _orchestrator(backend, *, concurrency: int = 4, reporter=None, prefix: str = "") -> BootstrapOrchestrator:
    return BootstrapOrchestrator(
        ExternalDependencyInstaller(backend),
        DependencyLinker(prefix=prefix),
        concurrency=concurrency,
        reporter=reporter or MagicMock(),
    )


class TestScenarios:
    def test_compatible_sibling_is_linked(self, make_package) -> None:
        a = make_package("a", deps={"b": "^1.0.0"})
        b = make_package("b", "1.2.0", main="index.js")
        backend = MagicMock()

        result = _orchestrator(backend).run([b, a])

        assert result.success
        dep_dir = a.external_deps_dir / "b"
        proxy = (dep_dir / "index.js").read_text(encoding="utf-8")
        assert proxy == f"module.exports = require({json.dumps(str(b.location / 'index.js'))});"
        manifest = json.loads((dep_dir / "package.json").read_text(encoding="utf-8"))
        assert manifest == {"name": "b", "version": "1.2.0"}
        backend.install.assert_not_called()

    def test_incompatible_sibling_warns_and_installs(self, make_package) -> None:
        a = make_package("a", deps={"b": "^2.0.0"})
        b = make_package("b", "1.2.0")
        backend = MagicMock()
        reporter = MagicMock()

        result = _orchestrator(backend, reporter=reporter).run([b, a])

        assert result.success
        assert not (a.external_deps_dir / "b").exists()
        reporter.warning.assert_called_once_with(VersionMismatch("a", "b", "^2.0.0", "1.2.0"))
        backend.install.assert_called_once_with(a.location, ["b@^2.0.0"])

    def test_installer_failure_is_isolated(self, make_package) -> None:
        """C 安装失败时，并发执行的其他包仍各自给出结果"""
        a = make_package("a", deps={"lodash": "^4.0.0"})
        b = make_package("b", deps={"lodash": "^4.0.0"})
        c = make_package("c", deps={"left-pad": "^1.0.0"})
        err = InstallerError("npm ERR! 404")

        def install(directory: Path, specs: list[str]) -> None:
            if directory == c.location:
                raise err

        backend = MagicMock()
        backend.install.side_effect = install

        result = _orchestrator(backend, concurrency=3).run([a, b, c])

        assert not result.success
        assert result.error is err
        by_name = {r.name: r for r in result.results}
        assert by_name["c"].status == "failed" and by_name["c"].error is err
        assert by_name["a"].success and by_name["b"].success
        assert result.skipped == []


class TestScheduling:
    def test_progress_fires_for_every_package(self, make_package) -> None:
        pkgs = [make_package(f"p{i}") for i in range(5)]
        reporter = MagicMock()
        _orchestrator(MagicMock(), reporter=reporter, concurrency=2).run(pkgs)

        reporter.start.assert_called_once_with(5)
        assert sorted(c.args[0] for c in reporter.progress.call_args_list) == [p.name for p in pkgs]
        reporter.finish.assert_called_once()

    def test_concurrency_bound_respected(self, make_package) -> None:
        pkgs = [make_package(f"p{i}", deps={"ext": "^1.0.0"}) for i in range(6)]
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}

        def install(directory: Path, specs: list[str]) -> None:
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.05)
            with lock:
                state["active"] -= 1

        backend = MagicMock()
        backend.install.side_effect = install
        result = _orchestrator(backend, concurrency=2).run(pkgs)

        assert result.success
        assert backend.install.call_count == 6
        assert state["peak"] <= 2

    def test_no_new_pipelines_after_failure(self, make_package) -> None:
        pkgs = [make_package(f"p{i}", deps={"ext": "^1.0.0"}) for i in range(4)]
        backend = MagicMock()
        backend.install.side_effect = InstallerError("first fails")
        reporter = MagicMock()

        result = _orchestrator(backend, concurrency=1, reporter=reporter).run(pkgs)

        assert not result.success
        assert [r.name for r in result.results] == ["p0"]
        assert result.skipped == ["p1", "p2", "p3"]
        assert backend.install.call_count == 1
        reporter.progress.assert_called_once_with("p0")

    def test_unexpected_error_recorded_as_package_failure(self, make_package, caplog: pytest.LogCaptureFixture) -> None:
        """链接阶段的非领域异常也只让该包失败，run 仍返回结果"""
        b = make_package("b", "1.0.0")
        a = make_package("a", deps={"b": "^1.0.0"})
        c = make_package("c", "1.0.0")
        boom = RuntimeError("can't start new thread")
        linker = MagicMock()
        linker.link.side_effect = boom
        reporter = MagicMock()

        orch = BootstrapOrchestrator(
            ExternalDependencyInstaller(MagicMock()), linker,
            concurrency=1, reporter=reporter,
        )
        with caplog.at_level("ERROR", logger="monoboot.core.orchestrator"):
            result = orch.run([b, a, c])

        assert not result.success
        assert result.error is boom
        assert {r.name: r.status for r in result.results} == {"b": "success", "a": "failed"}
        assert result.failed[0].error is boom
        assert result.skipped == ["c"]
        assert [call.args[0] for call in reporter.progress.call_args_list] == ["b", "a"]
        reporter.finish.assert_called_once()
        logged = [r for r in caplog.records if getattr(r, "package", None) == "a"]
        assert logged and logged[0].exc_info is not None

    def test_in_flight_pipelines_finish_after_failure(self, make_package) -> None:
        slow = make_package("slow", deps={"ext": "^1.0.0"})
        bad = make_package("bad", deps={"ext": "^1.0.0"})
        done = threading.Event()

        def install(directory: Path, specs: list[str]) -> None:
            if directory == bad.location:
                raise InstallerError("bad")
            time.sleep(0.1)
            done.set()

        backend = MagicMock()
        backend.install.side_effect = install
        result = _orchestrator(backend, concurrency=2).run([slow, bad])

        assert done.is_set()
        assert {r.name: r.status for r in result.results} == {"slow": "success", "bad": "failed"}

    def test_targets_subset_links_from_whole_workspace(self, make_package) -> None:
        a = make_package("a", deps={"b": "^1.0.0"})
        b = make_package("b", "1.0.0", deps={"a": "^1.0.0"})
        result = _orchestrator(MagicMock()).run([a, b], targets=[a])

        assert [r.name for r in result.results] == ["a"]
        assert (a.external_deps_dir / "b" / "package.json").exists()
        assert not b.external_deps_dir.exists()


class TestIdempotence:
    def test_second_run_yields_identical_tree(self, make_package, tree_snapshot) -> None:
        a = make_package("a", deps={"b": "^1.0.0", "c": "~2.1.0"})
        b = make_package(
            "b", "1.2.0", linked_files=["dist/*", "README.md"],
            files={"index.js": "", "dist/b.min.js": "", "dist/b.css": "", "README.md": "# b"},
        )
        c = make_package("c", "2.1.3", deps={"b": "^1.1.0"})
        orch = _orchestrator(MagicMock(), prefix="'use strict';\n")

        orch.run([b, c, a])
        first = {p.name: tree_snapshot(p.external_deps_dir) for p in (a, b, c)}
        orch.run([b, c, a])
        second = {p.name: tree_snapshot(p.external_deps_dir) for p in (a, b, c)}

        assert first == second
        assert first["a"]["b/dist/b.css"][0] == "link"
        assert first["a"]["b/dist/b.min.js"][0] == "file"


class TestFromConfig:
    def test_builds_npm_installer_and_linker(self) -> None:
        cfg = Config(
            concurrency=7, link_file_prefix="// x\n",
            npm_client="pnpm", npm_client_args=["--silent"], source_extensions=[".js", ".cjs"],
        )
        orch = BootstrapOrchestrator.from_config(cfg)
        assert orch.concurrency == 7
        assert isinstance(orch.installer.backend, NpmInstaller)
        assert orch.installer.backend.command(["x@1"]) == ["pnpm", "install", "--silent", "x@1"]
        assert orch.linker.prefix == "// x\n"
        assert orch.linker.source_extensions == {".js", ".cjs"}
        assert isinstance(orch.reporter, LoggingReporter)


class TestLoggingReporter:
    def test_logs_progress_and_warnings(self, caplog: pytest.LogCaptureFixture) -> None:
        reporter = LoggingReporter()
        with caplog.at_level("INFO", logger="monoboot.core.orchestrator"):
            reporter.start(2)
            reporter.progress("a")
            reporter.warning(VersionMismatch("a", "b", "^2.0.0", "1.2.0"))
        assert "[1/2] a" in caplog.text
        assert 'Depends on "b@^2.0.0"' in caplog.text
