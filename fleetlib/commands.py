from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .errors import CommandFailed, CommandNotRun


@dataclass(frozen=True)
class CommandResult:
    args: tuple[str, ...]
    returncode: Optional[int]
    error: Optional[str] = None  # set when the tool never ran

    @property
    def ran(self) -> bool:
        return self.error is None

    @property
    def ok(self) -> bool:
        return self.ran and self.returncode == 0

    def raise_for_status(self) -> None:
        if not self.ran:
            raise CommandNotRun(list(self.args), self.error or "unknown error")
        if self.returncode != 0:
            raise CommandFailed(list(self.args), int(self.returncode or 0))


class CommandRunner:
    """Runs external tools (git, yarn, pm2, node).

    Every call blocks the caller; there is no timeout. Tests substitute a fake
    with the same two methods.
    """

    def run(self, args: Sequence[str], *, cwd: Optional[Path] = None, quiet: bool = False) -> CommandResult:
        argv = tuple(str(a) for a in args)
        stream = subprocess.DEVNULL if quiet else None
        try:
            completed = subprocess.run(
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                stdin=subprocess.DEVNULL,
                stdout=stream,
                stderr=stream,
                check=False,
            )
        except OSError as exc:
            print(f"Error executing {argv[0]}: {exc}", file=sys.stderr)
            return CommandResult(args=argv, returncode=None, error=str(exc))
        return CommandResult(args=argv, returncode=completed.returncode)

    def spawn(self, args: Sequence[str], *, cwd: Optional[Path] = None) -> subprocess.Popen:
        # Standard streams are inherited so the bot's output reaches the console.
        argv = [str(a) for a in args]
        try:
            return subprocess.Popen(argv, cwd=str(cwd) if cwd is not None else None)
        except OSError as exc:
            raise CommandNotRun(argv, str(exc)) from exc
