from __future__ import annotations

import enum
import sys
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .commands import CommandRunner
from .config import POLICY_DIRECT, POLICY_MANAGED, FleetConfig, parse_backoff
from .errors import CommandNotRun
from .pm2 import ensure_log_dir, start_command


class State(str, enum.Enum):
    UNSTARTED = "unstarted"
    MANAGED_RUNNING = "managed_running"
    DIRECT_RUNNING = "direct_running"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class SupervisedProcess:
    bot_name: str
    mode: str = POLICY_MANAGED
    pid: Optional[int] = None
    last_exit_code: Optional[int] = None
    state: State = State.UNSTARTED
    restarts: int = 0
    fallbacks: int = 0


class Supervisor:
    """Launches bots and, under the direct policy, keeps them running.

    Managed policy: issue `pm2 start` and hand restart duty to pm2.

    Direct policy: spawn `pm2 start` as a child and watch it from a thread. A
    non-zero exit falls back to running the bot command directly, which is
    relaunched after every non-zero exit. Without MAX_RESTARTS there is no
    upper bound, and the default backoff is zero, so a bot that crashes on
    boot is relaunched as fast as the host allows.
    """

    def __init__(
        self,
        config: FleetConfig,
        runner: CommandRunner,
        *,
        sleep: Callable[[float], None] = time.sleep,
        backoff: Optional[Callable[[int], float]] = None,
    ) -> None:
        self._config = config
        self._runner = runner
        self._sleep = sleep
        self._backoff = backoff or parse_backoff(config.restart_backoff)

        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._children: dict[int, Any] = {}
        self._threads: list[threading.Thread] = []

        self.processes: dict[str, SupervisedProcess] = {}

    @property
    def policy(self) -> str:
        return self._config.policy

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def launch(self, name: str) -> SupervisedProcess:
        record = SupervisedProcess(bot_name=name)
        self.processes[name] = record
        ensure_log_dir(self._config)

        if self.policy == POLICY_MANAGED:
            self._launch_managed(record)
        else:
            self._launch_direct(record)
        return record

    def _launch_managed(self, record: SupervisedProcess) -> None:
        name = record.bot_name
        print(f"[{name}] Starting with {self._config.process_manager}...")
        result = self._runner.run(start_command(name, self._config))
        record.last_exit_code = result.returncode
        if result.ok:
            record.state = State.MANAGED_RUNNING
            print(f"[{name}] Started successfully with {self._config.process_manager}!")
        else:
            record.state = State.FAILED
            print(f"[{name}] Failed to start with {self._config.process_manager}.", file=sys.stderr)

    def _launch_direct(self, record: SupervisedProcess) -> None:
        name = record.bot_name
        print(f"[{name}] Starting with {self._config.process_manager} (direct fallback enabled)...")
        try:
            child = self._runner.spawn(start_command(name, self._config))
        except CommandNotRun as exc:
            print(f"[{name}] {exc}", file=sys.stderr)
            child = None
        else:
            self._track(record, child, State.MANAGED_RUNNING)

        thread = threading.Thread(
            target=self.supervise,
            args=(record, child),
            name=f"supervise-{name}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def supervise(self, record: SupervisedProcess, managed_child: Any = None) -> None:
        """Watch one bot until it reaches STOPPED or FAILED.

        `managed_child` is the running `pm2 start` process, or None when it
        could not be started at all.
        """

        name = record.bot_name

        if managed_child is not None:
            code = managed_child.wait()
            record.last_exit_code = code
            if code == 0:
                record.state = State.STOPPED
                print(f"[{name}] {self._config.process_manager} launcher finished; bot is managed externally.")
                return
            print(f"[{name}] {self._config.process_manager} exited with code {code}; falling back to direct spawn")

        if self._stop.is_set():
            record.state = State.STOPPED
            return

        record.mode = POLICY_DIRECT
        record.fallbacks += 1
        bot_dir = self._config.bot_dir(name)
        command = list(self._config.direct_command)

        while not self._stop.is_set():
            try:
                child = self._runner.spawn(command, cwd=bot_dir)
            except CommandNotRun as exc:
                print(f"[{name}] {exc}", file=sys.stderr)
                code = None
            else:
                self._track(record, child, State.DIRECT_RUNNING)
                code = child.wait()
            record.last_exit_code = code

            if code == 0:
                record.state = State.STOPPED
                print(f"[{name}] Exited cleanly.")
                return
            if self._stop.is_set():
                break

            limit = self._config.max_restarts
            if limit is not None and record.restarts >= limit:
                record.state = State.FAILED
                print(f"[{name}] Giving up after {record.restarts} restart(s).", file=sys.stderr)
                return

            record.restarts += 1
            print(f"[{name}] Exited with code {code}; restarting (attempt {record.restarts})")
            delay = self._backoff(record.restarts)
            if delay > 0:
                self._sleep(delay)

        record.state = State.STOPPED

    def _track(self, record: SupervisedProcess, child: Any, state: State) -> None:
        # Keyed per record so bots sharing a label are still terminated by stop_all().
        with self._lock:
            self._children[id(record)] = child
            stopping = self._stop.is_set()
        record.pid = getattr(child, "pid", None)
        record.state = state
        if stopping and child.poll() is None:
            # stop_all() already took its snapshot; this child would escape it.
            child.terminate()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every watcher thread ends. Returns False on timeout."""

        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in list(self._threads):
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
        return not self.running

    def stop_all(self) -> None:
        self._stop.set()
        with self._lock:
            children = list(self._children.values())
        for child in children:
            if child.poll() is None:
                child.terminate()
