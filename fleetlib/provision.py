from __future__ import annotations

import os
import sys

from .commands import CommandRunner
from .config import FleetConfig
from .naming import session_id


ENV_FILE_NAME = "config.env"


def render_env_file(name: str) -> str:
    return f"VPS=true\nSESSION_ID={session_id(name)}"


def provision(name: str, config: FleetConfig, runner: CommandRunner) -> bool:
    """Clone the bot repository and write its config.env, once.

    An existing directory counts as provisioned whatever it contains. Returns
    True when a clone was attempted.
    """

    bot_dir = config.bot_dir(name)
    if bot_dir.exists():
        return False

    print(f"[{name}] Cloning repository {config.repo_url}")
    result = runner.run(["git", "clone", config.repo_url, str(bot_dir)])
    if not result.ok:
        # Best effort: later steps run anyway and may fail on their own.
        print(f"[{name}] Clone failed (exit={result.returncode}, error={result.error})", file=sys.stderr)

    env_path = bot_dir / ENV_FILE_NAME
    mode = 0o600 if config.restrict_env_file else 0o644
    try:
        fd = os.open(env_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            # O_CREAT leaves the mode of a file shipped by the clone untouched.
            if config.restrict_env_file and hasattr(os, "fchmod"):
                os.fchmod(fh.fileno(), 0o600)
            fh.write(render_env_file(name))
    except OSError as exc:
        print(f"[{name}] Could not write {env_path}: {exc}", file=sys.stderr)
        return True

    print(f"[{name}] Config file created with SESSION_ID={session_id(name)}")
    return True
