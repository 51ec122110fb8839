"""Named input validators.

A ValidatorTable is built once by the app factory (build_validators) and
handed to the components that check client input: the FilterBuilder and
the registration flow. Nothing registers validators globally.
"""

import re
from datetime import date, datetime
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from taskmanager.errors import ValidationError

# YYYY-MM-DD
DAY_DATE_FORMAT = "%Y-%m-%d"

TASK_STATUSES: tuple[str, ...] = (
    "Won't do",
    "To do",
    "In progress",
    "Done",
)

DEFAULT_TASK_STATUS = "To do"

Validator = Callable[[str], bool]

_DAY_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_LOWER_RE = re.compile(r"[a-z]")
_UPPER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")
_SPECIAL_RE = re.compile(r"[!@#$%^&*()\-_+=<>?]")


def parse_day(value: str) -> Optional[date]:
    """Parse a YYYY-MM-DD string, or return None if it doesn't match.

    Both month and day need two digits; strptime alone accepts "2024-1-5".
    """
    if not isinstance(value, str) or not _DAY_DATE_RE.fullmatch(value):
        return None
    try:
        return datetime.strptime(value, DAY_DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


def is_email(value: str) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def is_strong_password(value: str) -> bool:
    """8-20 chars with a lowercase, an uppercase, a digit and a special char."""
    if not isinstance(value, str):
        return False
    return (
        8 <= len(value) <= 20
        and bool(_LOWER_RE.search(value))
        and bool(_UPPER_RE.search(value))
        and bool(_DIGIT_RE.search(value))
        and bool(_SPECIAL_RE.search(value))
    )


def is_task_status(value: str) -> bool:
    return value in TASK_STATUSES


def is_day_date(value: str) -> bool:
    return parse_day(value) is not None


class ValidatorTable:
    """Immutable name → predicate table."""

    def __init__(self, validators: Mapping[str, Validator]):
        self._validators = MappingProxyType(dict(validators))

    def __contains__(self, name: str) -> bool:
        return name in self._validators

    def names(self) -> list[str]:
        return sorted(self._validators)

    def check(self, name: str, value) -> bool:
        try:
            validator = self._validators[name]
        except KeyError:
            raise KeyError(f"no validator named {name!r}") from None
        return validator(value)

    def require(self, name: str, value, field: str) -> None:
        """Raise ValidationError naming `field` if the check fails."""
        if not self.check(name, value):
            raise ValidationError(f"invalid value for field '{field}' (failed '{name}' check)")


def build_validators() -> ValidatorTable:
    """The default table used by the application."""
    return ValidatorTable(
        {
            "email": is_email,
            "strong_password": is_strong_password,
            "task_status": is_task_status,
            "day_date": is_day_date,
        }
    )
