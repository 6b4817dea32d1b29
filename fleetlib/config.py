from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from dotenv import dotenv_values

from .errors import ConfigInvalid


DEFAULT_REPO_URL = "https://github.com/lyfe00011/levanter.git"

POLICY_MANAGED = "managed"
POLICY_DIRECT = "direct"
POLICIES = (POLICY_MANAGED, POLICY_DIRECT)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class FleetConfig:
    base_dir: Path
    bots_file: Path
    env_path: Path

    repo_url: str
    policy: str

    entry_script: str
    direct_command: tuple[str, ...]

    package_manager: str
    install_args: tuple[str, ...]
    install_on_verify_error: bool

    process_manager: str
    restart_delay_ms: int
    watch: bool

    restrict_env_file: bool

    restart_backoff: str
    max_restarts: Optional[int]

    def bot_dir(self, name: str) -> Path:
        return self.base_dir / name

    @property
    def logs_dir(self) -> Path:
        return self.base_dir / "logs"


def load_config(
    *,
    env_path: Optional[Path] = None,
    bots_file: Optional[Path] = None,
    base_dir: Optional[Path] = None,
    policy: Optional[str] = None,
) -> FleetConfig:
    """Build the launcher configuration.

    Keyword arguments (usually from the CLI) win over the process environment,
    which wins over `.env`. Set DOTENV_OVERRIDE=1 to let `.env` win instead.
    """

    env_path = env_path or Path.cwd() / ".env"
    file_values = {k: (v or "") for k, v in dotenv_values(env_path).items() if k} if env_path.exists() else {}

    dotenv_override = os.getenv("DOTENV_OVERRIDE", "").strip().lower() in _TRUTHY

    def get(name: str, default: str) -> str:
        if dotenv_override and name in file_values:
            raw = file_values[name]
        else:
            raw = os.environ.get(name, file_values.get(name, ""))
        raw = raw.strip()
        return raw or default

    def get_bool(name: str, default: bool) -> bool:
        raw = get(name, "").lower()
        if not raw:
            return default
        if raw in _TRUTHY:
            return True
        if raw in _FALSY:
            return False
        raise ConfigInvalid(f"Env var {name} must be a boolean, got: {raw!r}")

    def get_int(name: str, default: Optional[int]) -> Optional[int]:
        raw = get(name, "")
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigInvalid(f"Env var {name} must be an int, got: {raw!r}") from exc
        if value < 0:
            raise ConfigInvalid(f"Env var {name} must not be negative, got: {value}")
        return value

    root = Path(base_dir or get("FLEET_DIR", str(env_path.parent))).resolve()

    if bots_file is None:
        bots_file = Path(get("BOTS_CONFIG_FILE", "bots.json"))
    if not bots_file.is_absolute():
        bots_file = root / bots_file

    policy = (policy or get("SUPERVISION_POLICY", POLICY_MANAGED)).lower()
    if policy not in POLICIES:
        raise ConfigInvalid(f"Unknown supervision policy {policy!r} (expected one of {', '.join(POLICIES)})")

    direct_command = tuple(shlex.split(get("BOT_DIRECT_COMMAND", "node index.js")))
    install_args = tuple(shlex.split(get("INSTALL_ARGS", "install --silent")))
    if not direct_command:
        raise ConfigInvalid("BOT_DIRECT_COMMAND must not be empty")

    restart_backoff = get("RESTART_BACKOFF", "none")
    parse_backoff(restart_backoff)

    return FleetConfig(
        base_dir=root,
        bots_file=bots_file,
        env_path=env_path,
        repo_url=get("REPO_URL", DEFAULT_REPO_URL),
        policy=policy,
        entry_script=get("BOT_ENTRY_SCRIPT", "index.js"),
        direct_command=direct_command,
        package_manager=get("PACKAGE_MANAGER", "yarn"),
        install_args=install_args,
        install_on_verify_error=get_bool("INSTALL_ON_VERIFY_ERROR", True),
        process_manager=get("PROCESS_MANAGER", "pm2"),
        restart_delay_ms=get_int("RESTART_DELAY_MS", 5000) or 0,
        watch=get_bool("PM2_WATCH", True),
        restrict_env_file=get_bool("RESTRICT_ENV_FILE", True),
        restart_backoff=restart_backoff,
        max_restarts=get_int("MAX_RESTARTS", None),
    )


def no_backoff(attempt: int) -> float:
    return 0.0


def fixed_backoff(seconds: float) -> Callable[[int], float]:
    def delay(attempt: int) -> float:
        return seconds

    return delay


def exponential_backoff(base: float, cap: float) -> Callable[[int], float]:
    def delay(attempt: int) -> float:
        return min(cap, base * (2 ** max(0, attempt - 1)))

    return delay


def parse_backoff(value: str) -> Callable[[int], float]:
    """Turn `none`, `fixed:<s>` or `exponential:<base>:<cap>` into a delay function.

    The delay function takes the 1-based restart attempt and returns seconds.
    """

    parts = [p.strip() for p in (value or "none").strip().lower().split(":")]
    kind, params = parts[0], parts[1:]
    try:
        numbers = [float(p) for p in params]
    except ValueError as exc:
        raise ConfigInvalid(f"Bad RESTART_BACKOFF value: {value!r}") from exc
    if any(n < 0 for n in numbers):
        raise ConfigInvalid(f"RESTART_BACKOFF delays must not be negative: {value!r}")

    if kind == "none" and not numbers:
        return no_backoff
    if kind == "fixed" and len(numbers) == 1:
        return fixed_backoff(numbers[0])
    if kind == "exponential" and len(numbers) == 2:
        return exponential_backoff(numbers[0], numbers[1])
    raise ConfigInvalid(f"Bad RESTART_BACKOFF value: {value!r}")
