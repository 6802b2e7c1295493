import time
from datetime import datetime
import pytz

DEFAULT_TIMEZONE = 'Europe/Zagreb'


def day_key(timestamp: float = None, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Return the YYYY-MM-DD calendar day of ``timestamp`` in ``tz_name``.

    The key is computed in the reference timezone, never server-local time,
    so every process agrees on when a day starts regardless of where it runs.
    """
    if timestamp is None:
        timestamp = time.time()
    tz = pytz.timezone(tz_name)
    return datetime.fromtimestamp(timestamp, tz).strftime('%Y-%m-%d')


def now_ms(timestamp: float = None) -> int:
    """Milliseconds since the epoch, the unit the game client uses"""
    if timestamp is None:
        timestamp = time.time()
    return int(timestamp * 1000)
