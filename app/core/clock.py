"""Wall clock used for past/future decisions on appointments."""

from datetime import datetime
from zoneinfo import ZoneInfo

from app.config import settings


def local_now() -> datetime:
    """Current time in the configured timezone, naive to match stored dates and times."""
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)
