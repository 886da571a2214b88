"""
osmotic.__main__ — Entry point for ``python -m osmotic``
=========================================================

Prints a day-by-day projection for one configured profile: the smoothed
rate, the amount streamed so far and the conviction of a constant stake.

Wiring:
1. Load .env (``OSMOTIC_CONFIG`` may point at another config file).
2. Load config.yaml and pick a profile.
3. Run the engine over the requested number of days.

Run with::

    python -m osmotic --profile conviction --days 30 --target 1 --staked 10
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from osmotic.config import load_config
from osmotic.constants import DAY
from osmotic.engine.decay import calculate_conviction, calculate_rate
from osmotic.engine.fixed_point import from_decimals, to_decimals
from osmotic.engine.integral import calculate_integral
from osmotic.errors import OsmoticError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("osmotic")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osmotic", description="Project a decaying rate, balance and conviction."
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--profile", default=None, help="Profile name (default from config)")
    parser.add_argument("--days", type=int, default=30, help="Days to project")
    parser.add_argument("--last", default="0", help="Starting rate, tokens/s")
    parser.add_argument("--target", default="1", help="Target rate, tokens/s")
    parser.add_argument("--staked", default="1", help="Constant stake, tokens")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def project(
    days: int, last_rate: int, target_rate: int, staked: int, decay: int
) -> list[tuple[int, int, int, int]]:
    """Return ``(day, rate, streamed, conviction)`` rows, one per day."""
    rows = []
    for day in range(days + 1):
        elapsed = day * DAY
        rows.append(
            (
                day,
                calculate_rate(elapsed, last_rate, target_rate, decay),
                calculate_integral(elapsed, last_rate, target_rate, decay),
                calculate_conviction(elapsed, 0, staked, decay),
            )
        )
    return rows


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load config and print the projection."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config_path = args.config or os.getenv("OSMOTIC_CONFIG", "config.yaml")
    try:
        cfg = load_config(config_path)
        params = cfg.get_profile(args.profile)
        rows = project(
            args.days,
            to_decimals(args.last),
            to_decimals(args.target),
            to_decimals(args.staked),
            params.decay,
        )
    except (OsmoticError, FileNotFoundError) as exc:
        logger.critical("%s", exc)
        return 1

    logger.info(
        "Profile %s (%s): decay %s",
        args.profile or cfg.default_profile, params.mode, from_decimals(params.decay),
    )
    print(f"{'day':>5}  {'rate':>24}  {'streamed':>24}  {'conviction':>24}")
    for day, rate, streamed, conviction in rows:
        print(
            f"{day:>5}  {from_decimals(rate):>24.6f}  "
            f"{from_decimals(streamed):>24.6f}  {from_decimals(conviction):>24.6f}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
