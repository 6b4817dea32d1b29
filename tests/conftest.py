# tests/conftest.py
from __future__ import annotations

import dataclasses
import itertools
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import pytest

from fleetlib.commands import CommandResult
from fleetlib.config import FleetConfig, load_config
from fleetlib.errors import CommandNotRun


# Sentinel exit code: the tool could not be started at all.
NOT_RUN = object()

FLEET_ENV_VARS = (
    "DOTENV_OVERRIDE",
    "REPO_URL",
    "BOTS_CONFIG_FILE",
    "FLEET_DIR",
    "SUPERVISION_POLICY",
    "BOT_ENTRY_SCRIPT",
    "BOT_DIRECT_COMMAND",
    "PACKAGE_MANAGER",
    "INSTALL_ARGS",
    "INSTALL_ON_VERIFY_ERROR",
    "PROCESS_MANAGER",
    "RESTART_DELAY_MS",
    "PM2_WATCH",
    "RESTRICT_ENV_FILE",
    "RESTART_BACKOFF",
    "MAX_RESTARTS",
)

_pids = itertools.count(4000)


class FakeProcess:
    """Stands in for subprocess.Popen; `wait()` returns the scripted exit code."""

    def __init__(self, exit_code: int) -> None:
        self.pid = next(_pids)
        self._exit_code = exit_code
        self.returncode: Optional[int] = None
        self.terminated = False

    def wait(self, timeout: Optional[float] = None) -> int:
        if self.returncode is None:
            self.returncode = self._exit_code
        return self.returncode

    def poll(self) -> Optional[int]:
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15


class BlockingProcess(FakeProcess):
    """A child that keeps running until terminate() is called."""

    def __init__(self) -> None:
        super().__init__(exit_code=-15)
        self._done = threading.Event()

    def wait(self, timeout: Optional[float] = None) -> int:
        self._done.wait(timeout)
        return self.returncode

    def terminate(self) -> None:
        super().terminate()
        self._done.set()


class FakeRunner:
    """Records every command and answers from scripted rules keyed by argv prefix."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[str, ...], Optional[Path]]] = []
        self._run_rules: dict[tuple[str, ...], tuple[Any, Optional[Callable]]] = {}
        self._spawn_rules: dict[tuple[str, ...], Iterable[Any]] = {}

    def on_run(self, *prefix: str, code: Any = 0, effect: Optional[Callable] = None) -> None:
        self._run_rules[tuple(prefix)] = (code, effect)

    def on_spawn(self, *prefix: str, codes: Iterable[Any]) -> None:
        self._spawn_rules[tuple(prefix)] = iter(codes)

    @staticmethod
    def _match(rules: dict, argv: tuple[str, ...]) -> Any:
        best = None
        for prefix in rules:
            if argv[: len(prefix)] == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        return rules[best] if best is not None else None

    def run(self, args, *, cwd=None, quiet=False) -> CommandResult:
        argv = tuple(str(a) for a in args)
        self.calls.append(("run", argv, cwd))
        code, effect = self._match(self._run_rules, argv) or (0, None)
        if effect is not None:
            effect(argv, cwd)
        if code is NOT_RUN:
            return CommandResult(args=argv, returncode=None, error="No such file or directory")
        return CommandResult(args=argv, returncode=code)

    def spawn(self, args, *, cwd=None) -> FakeProcess:
        argv = tuple(str(a) for a in args)
        self.calls.append(("spawn", argv, cwd))
        codes = self._match(self._spawn_rules, argv)
        code = next(codes, 0) if codes is not None else 0
        if code is NOT_RUN:
            raise CommandNotRun(list(argv), "No such file or directory")
        if isinstance(code, FakeProcess):
            return code
        return FakeProcess(code)

    def invocations(self, kind: str, *prefix: str) -> list[tuple[str, ...]]:
        return [argv for k, argv, _ in self.calls if k == kind and argv[: len(prefix)] == prefix]


@pytest.fixture
def clean_env(monkeypatch):
    for name in FLEET_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_config(tmp_path, clean_env) -> Callable[..., FleetConfig]:
    def _make(**overrides: Any) -> FleetConfig:
        config = load_config(env_path=tmp_path / ".env")
        return dataclasses.replace(config, **overrides)

    return _make


@pytest.fixture
def config(make_config) -> FleetConfig:
    return make_config()


def make_clone_effect(argv: tuple[str, ...], cwd) -> None:
    """Mimic a successful `git clone <url> <dir>` by creating the directory."""
    Path(argv[-1]).mkdir(parents=True)
