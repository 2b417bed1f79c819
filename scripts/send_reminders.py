#!/usr/bin/env python3
"""
Send reminder notifications for tomorrow's approved appointments.

Meant to run once a day from cron or a scheduler:

    python scripts/send_reminders.py
    python scripts/send_reminders.py --date 2026-03-02

Only the live database is used; the in-memory demo store lives inside the API
process and cannot be reached from here.
"""

import argparse
import asyncio
import sys
from datetime import date

import structlog

from app.core.clock import local_now
from app.database import AsyncSessionLocal, dispose_engine
from app.middleware.logging import configure_logging
from app.services.notification_service import NotificationService
from app.stores.provider import store_provider
from app.stores.sql import SQLBookingStore

logger = structlog.get_logger(__name__)


async def send_reminders(today: date) -> int:
    """Emit reminders for appointments on the day after ``today``."""
    mode = await store_provider.connect()
    if not store_provider.is_live or AsyncSessionLocal is None:
        logger.error("reminders_skipped", mode=mode, reason=store_provider.last_error)
        return 0

    async with AsyncSessionLocal() as session:
        store = SQLBookingStore(session)
        sent = await NotificationService.send_reminders(store, today)

    await dispose_engine()
    return sent


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Send appointment reminders")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Pretend today is this date (YYYY-MM-DD)",
    )
    args = parser.parse_args()

    configure_logging()
    today = args.date or local_now().date()
    sent = asyncio.run(send_reminders(today))
    print(f"✓ Sent {sent} reminder(s) for {today.isoformat()}")
    sys.exit(0)


if __name__ == "__main__":
    main()
