from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from fleetlib.config import POLICIES, load_config
from fleetlib.errors import ConfigInvalid
from fleetlib.fleet import run_fleet


def add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", type=Path, help="Bot registry file (default: bots.json)")
    p.add_argument("--env", type=Path, help="Path to .env (default: ./.env)")
    p.add_argument("--dir", type=Path, help="Directory bots are cloned into (default: .env's directory)")
    p.add_argument("--policy", choices=POLICIES, help="Supervision policy (default: SUPERVISION_POLICY or managed)")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Clone, install and launch every bot listed in bots.json")
    add_common_args(p)
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(env_path=args.env, bots_file=args.config, base_dir=args.dir, policy=args.policy)
    except ConfigInvalid as exc:
        print(str(exc))
        return 2
    return run_fleet(config)


if __name__ == "__main__":
    raise SystemExit(main())
