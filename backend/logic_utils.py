import re
from datetime import datetime, timezone
from typing import List, Optional

import pytz


def get_now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    return get_now_utc().isoformat()


def parse_iso_datetime(dt_str: str) -> Optional[datetime]:
    """
    Parse ISO datetime strings coming back from Postgres or Javascript clients.
    Handles the 'Z' suffix and over-long fractional seconds.
    """
    if not dt_str:
        return None

    clean_dt = dt_str.replace('Z', '+00:00')
    try:
        return datetime.fromisoformat(clean_dt)
    except ValueError:
        pass

    # Trim fractional seconds to 6 digits, keeping any offset
    match = re.match(r'^(.*?\.)(\d+)(.*)$', clean_dt)
    if match:
        base, fraction, rest = match.groups()
        try:
            return datetime.fromisoformat(f"{base}{fraction[:6].ljust(6, '0')}{rest}")
        except ValueError:
            pass

    for fmt in ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(dt_str[:19], fmt)
        except ValueError:
            continue

    raise ValueError(f"Invalid isoformat string: '{dt_str}'")


def format_match_time(scheduled_time: str, timezone_name: str = "UTC") -> str:
    """
    Format a match time for a WhatsApp message in the venue's timezone.
    Example: 'Fri, Dec 26, 04:00 PM'
    """
    try:
        dt = parse_iso_datetime(scheduled_time)
    except ValueError:
        return scheduled_time
    if not dt:
        return "the scheduled time"

    try:
        tz = pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.utc

    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(tz).strftime("%a, %b %d, %I:%M %p")


def digits_only(phone: str) -> str:
    return re.sub(r'\D', '', phone or "")


def normalize_phone_for_provider(phone: str) -> str:
    """The provider expects the country code without '+' and no whitespace."""
    return re.sub(r'\s', '', (phone or "").strip()).lstrip('+')


def phone_lookup_variants(phone: str) -> List[str]:
    """
    Candidate forms a player's phone may be stored under, in lookup order:
    the literal value, digits only, then digits with a leading '+'.
    """
    literal = (phone or "").strip()
    digits = digits_only(literal)
    variants = []
    for candidate in (literal, digits, f"+{digits}" if digits else ""):
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants
