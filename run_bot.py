from __future__ import annotations

import argparse
from typing import Optional, Sequence

from fleetlib.config import load_config
from fleetlib.errors import ConfigInvalid
from fleetlib.fleet import run_fleet
from run_all import add_common_args


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Set up and launch one bot from bots.json")
    p.add_argument("--bot-name", required=True)
    add_common_args(p)
    return p.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    try:
        config = load_config(env_path=args.env, bots_file=args.config, base_dir=args.dir, policy=args.policy)
    except ConfigInvalid as exc:
        raise SystemExit(str(exc))
    raise SystemExit(run_fleet(config, only=args.bot_name))
