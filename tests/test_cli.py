"""Tests for the depscan CLI — the coordinator is mocked, no network needed."""

from __future__ import annotations

import json
import os
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from depscan.cli import _build_config, main
from depscan.core.config import StopPolicy
from depscan.engines.package_scanner.models import MatchReport, ScanSummary
from depscan.exceptions import NetworkError


class FakeCoordinator:
    """Stands in for Coordinator; reports canned matches through on_match."""

    instances: list[FakeCoordinator] = []
    reports: list[MatchReport] = []
    error: Exception | None = None

    def __init__(self, config, *, on_match=None):
        self.config = config
        self.on_match = on_match
        FakeCoordinator.instances.append(self)

    async def run(self):
        summary = ScanSummary(target_prefix=self.config.target_prefix)
        for report in self.reports:
            summary.matches.append(report)
            self.on_match(report)
        if self.error is not None:
            raise self.error
        return summary


@pytest.fixture
def fake_coordinator():
    FakeCoordinator.instances = []
    FakeCoordinator.reports = [
        MatchReport(package_id="dotnet-foo", version="1.0.0", matched=True, manifest="a.deps.json"),
        MatchReport(package_id="bar.tool", version="2.1.0", matched=True, manifest="b.deps.json"),
    ]
    FakeCoordinator.error = None
    with patch("depscan.cli.Coordinator", FakeCoordinator), patch("depscan.cli.setup_logging"):
        yield FakeCoordinator


class TestMain:
    def test_prints_matches_then_done(self, fake_coordinator):
        result = CliRunner().invoke(main, [])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "dotnet-foo uses System.CommandLine",
            "bar.tool uses System.CommandLine",
            "Done",
        ]

    def test_defaults_match_original_run(self, fake_coordinator):
        CliRunner().invoke(main, [])
        cfg = fake_coordinator.instances[0].config
        assert cfg.package_type == "DotnetTool"
        assert cfg.target_prefix == "System.CommandLine"
        assert cfg.pool_size == 32
        assert cfg.queue_capacity == 1000
        assert cfg.page_size == 1000

    def test_options_override(self, fake_coordinator):
        result = CliRunner().invoke(
            main,
            ["--prefix", "Spectre.Console", "-w", "4", "--queue-capacity", "10", "--stop", "worker"],
        )
        assert result.exit_code == 0, result.output
        cfg = fake_coordinator.instances[0].config
        assert cfg.target_prefix == "Spectre.Console"
        assert cfg.pool_size == 4
        assert cfg.queue_capacity == 10
        assert cfg.stop_policy is StopPolicy.WORKER
        assert result.output.splitlines()[0] == "dotnet-foo uses Spectre.Console"

    def test_json_summary(self, fake_coordinator):
        result = CliRunner().invoke(main, ["--json"])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[-1] == "Done"
        body = json.loads("\n".join(lines[2:-1]))
        assert [m["package_id"] for m in body["matches"]] == ["dotnet-foo", "bar.tool"]

    def test_error_exits_nonzero(self, fake_coordinator):
        fake_coordinator.error = NetworkError("search request failed with status 503")
        result = CliRunner().invoke(main, [])
        assert result.exit_code == 1
        assert "Done" not in result.output

    def test_invalid_worker_count(self, fake_coordinator):
        result = CliRunner().invoke(main, ["-w", "0"])
        assert result.exit_code == 2
        assert fake_coordinator.instances == []


class TestBuildConfig:
    def test_env_then_overrides(self):
        env = {"DEPSCAN_POOL_SIZE": "8", "DEPSCAN_TARGET_PREFIX": "Serilog"}
        with patch.dict(os.environ, env):
            cfg = _build_config(pool_size=None, target_prefix="Polly")
        assert cfg.pool_size == 8
        assert cfg.target_prefix == "Polly"

    def test_env_stop_policy_and_timeout(self):
        env = {"DEPSCAN_STOP_POLICY": "never", "DEPSCAN_HTTP_TIMEOUT": "0"}
        with patch.dict(os.environ, env):
            cfg = _build_config()
        assert cfg.stop_policy is StopPolicy.NEVER
        assert cfg.transport.timeout is None
