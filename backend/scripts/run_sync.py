"""Run one LiveChat sync pass and print the result.

Usage:
    python -m scripts.run_sync                  # last 20 minutes
    python -m scripts.run_sync --days 1
    python -m scripts.run_sync --start 2024-01-01T00:00:00Z --end 2024-01-02T00:00:00Z
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from chatqc.core.config import settings
from chatqc.core.db import dispose_engine, get_sessionmaker, init_models
from chatqc.core.timeutils import parse_iso
from chatqc.services.chat_sync import ChatSyncPipeline, resolve_window

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def iso_datetime(value: str):
    parsed = parse_iso(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"not an ISO8601 timestamp: {value}")
    return parsed


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync LiveChat chats once")
    parser.add_argument("--days", type=int, default=None, help="sync the last N days")
    parser.add_argument("--start", type=iso_datetime, default=None, help="window start (ISO8601, UTC)")
    parser.add_argument("--end", type=iso_datetime, default=None, help="window end (ISO8601, UTC)")
    return parser.parse_args(argv)


async def main(argv=None):
    args = parse_args(argv)
    try:
        window = resolve_window(
            start_date=args.start,
            end_date=args.end,
            days=args.days,
            default_minutes=settings.sync_default_window_minutes,
            max_days=settings.sync_max_days,
        )
        await init_models()
        result = await ChatSyncPipeline(settings, get_sessionmaker()).run(window)
        print(result.model_dump_json(indent=2))
    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
