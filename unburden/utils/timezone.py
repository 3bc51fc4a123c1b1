"""
Timezone utilities for Unburden.

Entries are stamped with timezone-aware datetimes so relative ages stay
correct when the user travels or the system zone changes.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import tzlocal

logger = logging.getLogger(__name__)


# Common timezone abbreviations to full IANA names
TIMEZONE_ABBREVIATIONS: dict[str, str] = {
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    "MST": "America/Denver",
    "MDT": "America/Denver",
    "CST": "America/Chicago",
    "CDT": "America/Chicago",
    "EST": "America/New_York",
    "EDT": "America/New_York",
    "GMT": "Europe/London",
    "UTC": "UTC",
    "BST": "Europe/London",
    "CET": "Europe/Paris",
    "CEST": "Europe/Paris",
    "JST": "Asia/Tokyo",
    "KST": "Asia/Seoul",
    "IST": "Asia/Kolkata",
    "AEST": "Australia/Sydney",
    "AEDT": "Australia/Sydney",
    "NZST": "Pacific/Auckland",
    "NZDT": "Pacific/Auckland",
}


def get_full_timezone_name(abbrev: str) -> Optional[str]:
    """
    Convert a timezone abbreviation to full IANA timezone name.

    Args:
        abbrev: Timezone abbreviation (e.g., "PST", "EST", "JST")

    Returns:
        Full IANA timezone name or None if not recognized
    """
    return TIMEZONE_ABBREVIATIONS.get(abbrev.upper())


def validate_timezone(tz_str: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a timezone string.

    Args:
        tz_str: Timezone string (abbreviation or IANA name)

    Returns:
        Valid IANA timezone name or None if invalid
    """
    if not tz_str:
        return None

    tz_str = tz_str.strip()

    full_name = get_full_timezone_name(tz_str)
    if full_name:
        return full_name

    try:
        ZoneInfo(tz_str)
        return tz_str
    except (ZoneInfoNotFoundError, ValueError):
        return None


def get_timezone_info(timezone_str: Optional[str]) -> Optional[ZoneInfo]:
    """
    Get ZoneInfo object for a timezone string.

    Args:
        timezone_str: IANA timezone name or abbreviation

    Returns:
        ZoneInfo object or None for system default
    """
    name = validate_timezone(timezone_str)
    if name:
        return ZoneInfo(name)
    if timezone_str:
        logger.warning(f"Unknown timezone '{timezone_str}', using system default")
    return None


def detect_system_timezone() -> Optional[str]:
    """
    Detect the system timezone.

    Checks the TZ environment variable first, then asks tzlocal.

    Returns:
        IANA timezone name or None if detection fails
    """
    if tz_env := os.environ.get("TZ"):
        if validated := validate_timezone(tz_env):
            return validated

    try:
        name = tzlocal.get_localzone_name()
    except (ZoneInfoNotFoundError, LookupError, ValueError) as e:
        logger.debug(f"tzlocal could not detect the system timezone: {e}")
        return None
    return validate_timezone(name)


def get_current_time_for_user(timezone_str: Optional[str] = None) -> datetime:
    """
    Get current time in the user's timezone.

    Args:
        timezone_str: User's timezone (IANA name), or None for the system zone

    Returns:
        Timezone-aware current datetime
    """
    tz = get_timezone_info(timezone_str) or get_timezone_info(detect_system_timezone())
    if tz:
        return datetime.now(tz)
    return datetime.now(timezone.utc).astimezone()


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
