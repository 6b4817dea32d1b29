from __future__ import annotations

import sys
from typing import Optional

from .commands import CommandRunner
from .config import POLICY_DIRECT, FleetConfig
from .deps import ensure_dependencies
from .errors import ConfigMalformed, ConfigMissing, ExternalToolMissing, FleetError
from .naming import sanitize
from .pm2 import ensure_process_manager
from .provision import provision
from .registry import load_bots
from .supervisor import Supervisor


def run_fleet(
    config: FleetConfig,
    *,
    runner: Optional[CommandRunner] = None,
    supervisor: Optional[Supervisor] = None,
    only: Optional[str] = None,
) -> int:
    """Set up and launch every bot in the registry. Returns a process exit code."""

    runner = runner or CommandRunner()
    supervisor = supervisor or Supervisor(config, runner)

    try:
        bots = load_bots(config.bots_file)
    except (ConfigMissing, ConfigMalformed) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if only is not None:
        bots = [b for b in bots if b.name == only or sanitize(b.name) == sanitize(only)]
        if not bots:
            print(f"No bot named {only!r} in {config.bots_file}", file=sys.stderr)
            return 1

    if not bots:
        print(f"No bots in {config.bots_file}; nothing to do.")
        return 0

    try:
        ensure_process_manager(config, runner)
    except ExternalToolMissing as exc:
        print(str(exc), file=sys.stderr)
        return 1

    try:
        launched: set[str] = set()
        for bot in bots:
            name = sanitize(bot.name)
            if name in launched:
                print(f"[{name}] Skipping {bot.name!r}: another bot already uses this name", file=sys.stderr)
                continue
            launched.add(name)
            print(f"[{name}] Setting up bot")
            try:
                provision(name, config, runner)
                ensure_dependencies(name, config, runner)
                supervisor.launch(name)
            except (FleetError, OSError) as exc:
                # One bot's failure never stops the rest of the fleet.
                print(f"[{name}] Setup failed: {type(exc).__name__}: {exc}", file=sys.stderr)

        if config.policy == POLICY_DIRECT:
            supervisor.wait()
    except KeyboardInterrupt:
        supervisor.stop_all()
        supervisor.wait(timeout=10)
        return 130

    return 0
