"""One-shot expiry sweep for cron-style schedulers.

Usage:
    noteburn-sweep                  # sweep with configured settings
    noteburn-sweep --batch-size 500 --timeout 60
"""

import argparse
import asyncio
import json
import logging
import sys

from app.config import settings
from app.database import engine, init_db
from app.schemas.sweep import SweepMetrics
from app.services.sweep_service import run_sweep


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="noteburn-sweep", description="Delete expired notes once and print the metrics."
    )
    parser.add_argument("--batch-size", type=int, default=settings.sweep_batch_size)
    parser.add_argument("--timeout", type=float, default=settings.sweep_timeout_seconds, help="seconds")
    parser.add_argument("--lock-name", default=settings.sweep_lock_name)
    parser.add_argument("--init-db", action="store_true", help="create tables before sweeping")
    return parser


async def _sweep(args: argparse.Namespace) -> SweepMetrics:
    try:
        if args.init_db:
            await init_db()
        return await run_sweep(batch_size=args.batch_size, timeout=args.timeout, lock_name=args.lock_name)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    metrics = asyncio.run(_sweep(args))
    print(json.dumps(metrics.model_dump(by_alias=True)))
    return 0 if metrics.success else 1


if __name__ == "__main__":
    sys.exit(main())
