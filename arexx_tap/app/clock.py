# arexx_tap/app/clock.py
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from arexx_tap.core.errors import ConfigError

START_TIME_FORMATS = ("HH:MM:SS", "YYYY-MM-DD", "YYYY-MM-DD HH:MM:SS")


def parse_start_time(
    value: Optional[str],
    *,
    now: Callable[[], datetime] = lambda: datetime.now().astimezone(),
) -> Optional[datetime]:
    """
    Parse a --start-time value into an aware local datetime.

    - "HH:MM:SS"            today at that time
    - "YYYY-MM-DD"          that day at the current time of day
    - "YYYY-MM-DD HH:MM:SS" exactly that local time

    The UTC offset is the one in force on the resulting date, not today's.
    """
    if value is None:
        return None
    text = value.strip()
    local_now = now()

    try:
        t = datetime.strptime(text, "%H:%M:%S").time()
        return datetime.combine(local_now.date(), t).astimezone()
    except ValueError:
        pass

    try:
        d = datetime.strptime(text, "%Y-%m-%d").date()
        return datetime.combine(d, local_now.time()).astimezone()
    except ValueError:
        pass

    try:
        return datetime.strptime(text, "%Y-%m-%d %H:%M:%S").astimezone()
    except ValueError:
        pass

    raise ConfigError(
        f"Invalid start time {value!r}.",
        hint=f"Use one of: {', '.join(START_TIME_FORMATS)}",
        details={"start_time": value},
    )
