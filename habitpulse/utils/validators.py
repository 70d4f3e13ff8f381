import re
import unicodedata
from datetime import datetime
from typing import List, Optional, Union

from habitpulse.exceptions import ValidationError

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
HABIT_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
REMINDER_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")
ZERO_WIDTH_RE = re.compile(r"[\u200B-\u200D\uFEFF]")

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def is_valid_date_key(date_key: str) -> bool:
    if not isinstance(date_key, str) or not DATE_KEY_RE.match(date_key):
        return False
    try:
        datetime.strptime(date_key, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def validate_date_key(date_key: str) -> str:
    if not is_valid_date_key(date_key):
        raise ValidationError(f"Invalid date key: {date_key!r} (expected YYYY-MM-DD)")
    return date_key


def validate_habit_id(habit_id: str) -> str:
    if not habit_id or not isinstance(habit_id, str):
        raise ValidationError("Habit ID is required and must be a string")
    if not HABIT_ID_RE.match(habit_id) or len(habit_id) > 1500:
        raise ValidationError("Invalid habit ID format")
    return habit_id


def sanitize_text(text: str) -> str:
    if not isinstance(text, str):
        raise ValidationError("Text must be a string")
    sanitized = CONTROL_CHARS_RE.sub("", text.strip())
    sanitized = ZERO_WIDTH_RE.sub("", sanitized)
    return unicodedata.normalize("NFC", sanitized)


def validate_habit_name(name: str) -> str:
    sanitized = sanitize_text(name)
    if not 1 <= len(sanitized) <= 100:
        raise ValidationError("Habit name must be between 1 and 100 characters")
    return sanitized


def validate_frequency(frequency: Union[str, List[str]]) -> Union[str, List[str]]:
    """Either "daily" or a list of weekday names, normalised to lower case."""
    if frequency == "daily":
        return frequency
    if not isinstance(frequency, (list, tuple, set, frozenset)) or not frequency:
        raise ValidationError('Frequency must be "daily" or a list of weekday names')

    days = []
    for day in frequency:
        if not isinstance(day, str):
            raise ValidationError("Weekday names must be strings")
        normalized = day.strip().lower()
        if normalized not in WEEKDAY_NAMES:
            raise ValidationError(f"Invalid weekday: {day}")
        days.append(normalized)
    return days


def validate_reminder_time(reminder_time: Optional[str]) -> Optional[str]:
    if not reminder_time:
        return None
    if not isinstance(reminder_time, str) or not REMINDER_TIME_RE.match(reminder_time):
        raise ValidationError("Reminder time must be in HH:MM format")
    return reminder_time
