from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from typing import Optional

from .commands import CommandResult, CommandRunner
from .config import FleetConfig


class VerifyStatus(str, enum.Enum):
    OK = "ok"
    MISSING = "missing"  # verifier ran and reported a problem
    TOOL_FAILED = "tool_failed"  # verifier could not run


@dataclass(frozen=True)
class DependencyReport:
    status: VerifyStatus
    install: Optional[CommandResult] = None

    @property
    def installed(self) -> bool:
        return self.install is not None and self.install.ok


def classify_verify(result: CommandResult) -> VerifyStatus:
    if not result.ran:
        return VerifyStatus.TOOL_FAILED
    if result.returncode == 0:
        return VerifyStatus.OK
    return VerifyStatus.MISSING


def ensure_dependencies(name: str, config: FleetConfig, runner: CommandRunner) -> DependencyReport:
    bot_dir = config.bot_dir(name)
    print(f"[{name}] Checking dependencies...")

    verify = runner.run([config.package_manager, "check", "--verify-tree"], cwd=bot_dir, quiet=True)
    status = classify_verify(verify)

    if status is VerifyStatus.OK:
        print(f"[{name}] Dependencies are already installed.")
        return DependencyReport(status=status)

    if status is VerifyStatus.TOOL_FAILED and not config.install_on_verify_error:
        print(f"[{name}] Dependency check could not run ({verify.error}); skipping install", file=sys.stderr)
        return DependencyReport(status=status)

    print(f"[{name}] Installing dependencies...")
    install = runner.run([config.package_manager, *config.install_args], cwd=bot_dir)
    if not install.ok:
        print(
            f"[{name}] Dependency install failed (exit={install.returncode}, error={install.error})",
            file=sys.stderr,
        )
    return DependencyReport(status=status, install=install)
