from __future__ import annotations

from .commands import CommandRunner
from .config import FleetConfig
from .errors import ExternalToolMissing


def ensure_process_manager(config: FleetConfig, runner: CommandRunner) -> None:
    """Make sure pm2 is on PATH, installing it globally once if needed."""

    pm = config.process_manager
    print(f"Checking if {pm} is installed...")
    if runner.run([pm, "--version"], quiet=True).ok:
        print(f"{pm} is already installed.")
        return

    print(f"{pm} not found, installing...")
    result = runner.run([config.package_manager, "global", "add", pm])
    if not result.ok:
        raise ExternalToolMissing(
            f"Failed to install {pm}. Please install it manually using: {config.package_manager} global add {pm}"
        )


def ensure_log_dir(config: FleetConfig) -> None:
    config.logs_dir.mkdir(parents=True, exist_ok=True)


def start_command(name: str, config: FleetConfig) -> list[str]:
    logs = config.logs_dir
    args = [
        config.process_manager,
        "start",
        config.entry_script,
        "--name",
        name,
        "--cwd",
        str(config.bot_dir(name)),
        "--restart-delay",
        str(config.restart_delay_ms),
        "--output",
        str(logs / f"{name}-out.log"),
        "--error",
        str(logs / f"{name}-error.log"),
    ]
    if config.watch:
        args.append("--watch")
    return args
