"""
Production lot codes.

A lot code is 12 characters, ``RRUUIIIIFFFF``:
- RR: recipe initials
- UU: operator initials
- IIII: start time, minutes since 2020-01-01 UTC, base36
- FFFF: finish time, minutes since 2020-01-01 UTC, base36

Four base36 digits hold 36**4 minutes (about 3.2 years); later timestamps
keep only their low-order digits, so decoding wraps around.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

BASE_DATE = datetime(2020, 1, 1, tzinfo=timezone.utc)
BASE36_CHARS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOT_LENGTH = 12
# Range of one 4-digit time field; decoded times are only known modulo this span
LOT_TIME_SPAN = timedelta(minutes=36 ** 4)
_LOT_PATTERN = re.compile(r"^[A-Z0-9]{12}$")


@dataclass(frozen=True)
class LotData:
    """Decoded content of a production lot code."""

    recipe_initials: str
    operator_initials: str
    started_at: datetime
    finished_at: datetime


def to_base36(num: int, length: int) -> str:
    """Encode a non-negative integer in base36, left-padded to ``length``."""
    num = max(num, 0)
    result = ""
    while num > 0 and len(result) < length:
        result = BASE36_CHARS[num % 36] + result
        num //= 36
    return result.rjust(length, "0")


def from_base36(value: str) -> int:
    """Decode a base36 string. Raises ValueError on an invalid character."""
    result = 0
    for char in value.upper():
        digit = BASE36_CHARS.find(char)
        if digit == -1:
            raise ValueError(f"Invalid base36 character: {char}")
        result = result * 36 + digit
    return result


def initials(name: str) -> str:
    """First and last character of a name with whitespace removed."""
    cleaned = re.sub(r"\s+", "", name or "")
    if not cleaned:
        return "XX"
    if len(cleaned) == 1:
        return (cleaned * 2).upper()
    return (cleaned[0] + cleaned[-1]).upper()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _minutes_since_base(value: datetime) -> int:
    return int((_as_utc(value) - BASE_DATE).total_seconds() // 60)


def generate_production_lot(
    recipe_name: str,
    operator_name: str,
    started_at: datetime,
    finished_at: datetime,
) -> str:
    """Build the lot code for a finished production."""
    return (
        initials(recipe_name)
        + initials(operator_name)
        + to_base36(_minutes_since_base(started_at), 4)
        + to_base36(_minutes_since_base(finished_at), 4)
    )


def decode_production_lot(lot: str) -> LotData | None:
    """Decode a lot code; returns None if it is malformed."""
    if len(lot) != LOT_LENGTH:
        return None
    try:
        start_minutes = from_base36(lot[4:8])
        finish_minutes = from_base36(lot[8:12])
    except ValueError:
        return None
    return LotData(
        recipe_initials=lot[0:2],
        operator_initials=lot[2:4],
        started_at=BASE_DATE + timedelta(minutes=start_minutes),
        finished_at=BASE_DATE + timedelta(minutes=finish_minutes),
    )


def is_valid_lot_format(lot: str) -> bool:
    return bool(_LOT_PATTERN.match(lot))
