"""Shared test fixtures and utilities for azcli-inventory tests.

Provides:
- FakeRunner: scripted stand-in for ProcessRunner (no child processes)
- RecordingSink: PresentationSink that keeps everything it receives
- MockContext for isolating tests from global state
- Settings fixtures with a temporary workspace
"""

from __future__ import annotations

import asyncio
import inspect
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from azcli_inventory.config import (
    Settings,
    reload_settings,
    set_context_settings,
    set_settings,
)
from azcli_inventory.events import LogRecord, PresentationSink, StatusUpdate
from azcli_inventory.models import InventorySnapshot
from azcli_inventory.process import CapturedOutput

SUBSCRIPTION = "/subscriptions/00000000-0000-0000-0000-000000000000"


def resource_id(resource_group: str, provider: str, name: str) -> str:
    return f"{SUBSCRIPTION}/resourceGroups/{resource_group}/providers/{provider}/{name}"


def nsg_id(resource_group: str, name: str) -> str:
    return resource_id(resource_group, "Microsoft.Network/networkSecurityGroups", name)


def vm_id(resource_group: str, name: str) -> str:
    return resource_id(resource_group, "Microsoft.Compute/virtualMachines", name)


@dataclass
class Script:
    """Scripted response for commands containing ``match``."""

    match: str
    output: str = ""
    exit_code: int = 0
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)
    error: Exception | None = None
    gate: asyncio.Event | None = None


class FakeRunner:
    """Replays scripted output instead of spawning processes.

    The most recently registered script whose ``match`` is a substring of
    the command wins. Unmatched commands succeed with empty output.

    Usage:
        runner = FakeRunner()
        runner.on_captured("vm list", output='[{"name": "vm1"}]')
        runner.on_streaming("login", stdout=["Signed in"], exit_code=0)
    """

    def __init__(self) -> None:
        self._captured: list[Script] = []
        self._streaming: list[Script] = []
        self.calls: list[str] = []
        self.timeouts: list[float | None] = []

    def on_captured(self, match: str, output: str = "", exit_code: int = 0, **kwargs) -> Script:
        script = Script(match, output=output, exit_code=exit_code, **kwargs)
        self._captured.insert(0, script)
        return script

    def on_streaming(
        self,
        match: str,
        stdout: list[str] | None = None,
        stderr: list[str] | None = None,
        exit_code: int = 0,
        **kwargs,
    ) -> Script:
        script = Script(
            match, stdout=list(stdout or []), stderr=list(stderr or []), exit_code=exit_code, **kwargs
        )
        self._streaming.insert(0, script)
        return script

    def count(self, fragment: str) -> int:
        """Number of recorded calls containing ``fragment``."""
        return sum(1 for call in self.calls if fragment in call)

    def _find(self, scripts: list[Script], command: str) -> Script | None:
        for script in scripts:
            if script.match in command:
                return script
        return None

    async def _enter(self, script: Script | None) -> None:
        if script is None:
            return
        if script.gate is not None:
            await script.gate.wait()
        if script.error is not None:
            raise script.error

    async def run_captured(self, command: str, *, timeout: float | None = None) -> CapturedOutput:
        self.calls.append(command)
        self.timeouts.append(timeout)
        script = self._find(self._captured, command)
        await self._enter(script)
        if script is None:
            return CapturedOutput(command=command, output="", exit_code=0)
        return CapturedOutput(command=command, output=script.output, exit_code=script.exit_code)

    async def run_streaming(
        self, command: str, on_stdout_line, on_stderr_line, *, timeout: float | None = None
    ) -> int:
        self.calls.append(command)
        self.timeouts.append(timeout)
        script = self._find(self._streaming, command)
        await self._enter(script)
        if script is None:
            return 0
        for line in script.stdout:
            result = on_stdout_line(line)
            if inspect.isawaitable(result):
                await result
        for line in script.stderr:
            result = on_stderr_line(line)
            if inspect.isawaitable(result):
                await result
        return script.exit_code


class RecordingSink(PresentationSink):
    """Keeps every status, log record and snapshot it is handed."""

    def __init__(self) -> None:
        self.statuses: list[StatusUpdate] = []
        self.records: list[LogRecord] = []
        self.snapshots: list[InventorySnapshot] = []

    def on_status(self, update: StatusUpdate) -> None:
        self.statuses.append(update)

    def on_log(self, record: LogRecord) -> None:
        self.records.append(record)

    def on_results(self, snapshot: InventorySnapshot) -> None:
        self.snapshots.append(snapshot)

    @property
    def messages(self) -> list[str]:
        return [record.message for record in self.records]


class MockContext:
    """Context manager for isolating tests from global state.

    Handles:
    - Resetting global settings singleton
    - Providing temporary workspace directories
    - Cleaning up after tests

    Usage:
        with MockContext(permission_filter=True) as ctx:
            settings = ctx.settings
            workspace = ctx.workspace_dir
    """

    def __init__(self, **settings_kwargs):
        self._settings_kwargs = settings_kwargs
        self._temp_dir: tempfile.TemporaryDirectory | None = None
        self._settings: Settings | None = None
        self._original_env: dict[str, str] = {}

    def __enter__(self) -> "MockContext":
        self._temp_dir = tempfile.TemporaryDirectory()
        workspace_dir = Path(self._temp_dir.name)

        # Drop AZINV_* overrides from the developer's shell
        for var in [name for name in os.environ if name.startswith("AZINV_")]:
            self._original_env[var] = os.environ.pop(var)

        self._settings = Settings(
            workspace_dir=workspace_dir,
            _env_file=None,
            **self._settings_kwargs,
        )
        set_settings(self._settings)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        set_context_settings(None)

        os.environ.update(self._original_env)

        reload_settings()

        if self._temp_dir:
            self._temp_dir.cleanup()

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            raise RuntimeError("MockContext not entered")
        return self._settings

    @property
    def workspace_dir(self) -> Path:
        if self._temp_dir is None:
            raise RuntimeError("MockContext not entered")
        return Path(self._temp_dir.name)


@pytest.fixture
def mock_context() -> Generator[MockContext, None, None]:
    """Fixture providing an isolated test context."""
    with MockContext() as ctx:
        yield ctx


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Fixture providing a temporary workspace directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir(parents=True)
    return workspace


@pytest.fixture
def settings(temp_workspace: Path) -> Settings:
    """Default settings rooted in a temporary workspace."""
    with patch.dict(os.environ, {}, clear=True):
        return Settings(workspace_dir=temp_workspace, _env_file=None)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
