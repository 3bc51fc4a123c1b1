"""
Human-friendly date labels for thoughts.

Pure functions, no I/O. Naive datetimes are read as UTC.
"""

import math
from datetime import datetime, timedelta

from unburden.utils.timezone import ensure_aware

ONE_DAY = timedelta(days=1)


def relative_age(created_at: datetime, now: datetime) -> str:
    """
    Describe how long ago a thought was written.

    Counts started days: anything within 24 hours either side of `now` is
    "Today", within 48 hours "Yesterday", up to a week "N days ago".
    Older entries get a short month/day label, with the year added when it
    differs from the year of `now`.

    Args:
        created_at: When the thought was created.
        now: Reference time.

    Returns:
        Display label such as "Today", "3 days ago" or "Mar 5, 2024".
    """
    now = ensure_aware(now)
    created = ensure_aware(created_at).astimezone(now.tzinfo)

    diff_days = math.ceil(abs(now - created) / ONE_DAY)

    if diff_days <= 1:
        return "Today"
    if diff_days == 2:
        return "Yesterday"
    if diff_days <= 7:
        return f"{diff_days - 1} days ago"

    label = f"{created:%b} {created.day}"
    if created.year != now.year:
        label = f"{label}, {created.year}"
    return label


def format_today(now: datetime) -> str:
    """Header label for the home view, e.g. "Sunday, Oct 18"."""
    return f"{now:%A}, {now:%b} {now.day}"
