"""Named field validators and sanitizers shared by every endpoint.

Validators never raise: each returns a list of :class:`FieldError` (empty
when the value is fine) so a handler can collect every problem with a
form before answering.
"""
import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# South African numbers: +27 or 0 followed by nine digits
PHONE_RE = re.compile(r"^(\+27|0)[0-9]{9}$")

SHORT_TEXT = 100
LONG_TEXT = 5000
HTML_TEXT = 50000

MIN_YEAR = 1900


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


def clean_text(value, max_len: int = SHORT_TEXT) -> str:
    """Trim, drop angle brackets and cap the length."""
    if value is None:
        return ""
    text = str(value).replace("<", "").replace(">", "").strip()
    return text[:max_len]


def clean_html(value, max_len: int = HTML_TEXT) -> str:
    if value is None:
        return ""
    return str(value).strip()[:max_len]


def split_tags(value) -> list[str]:
    """Comma separated input to a list of unique, non-blank tags."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        parts = value
    else:
        parts = str(value).split(",")
    tags: list[str] = []
    for part in parts:
        tag = clean_text(part)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def to_number(value) -> Optional[float]:
    try:
        if value is None or str(value).strip() == "":
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def max_year(today: date | None = None) -> int:
    return (today or date.today()).year + 1


def required(field: str, value, label: str | None = None) -> list[FieldError]:
    if value is None or str(value).strip() == "":
        return [FieldError(field, f"{label or field} is required")]
    return []


def valid_email(field: str, value) -> list[FieldError]:
    if value and not EMAIL_RE.match(str(value).strip()):
        return [FieldError(field, "Invalid email address")]
    return []


def valid_phone(field: str, value) -> list[FieldError]:
    if value and not PHONE_RE.match(re.sub(r"\s", "", str(value))):
        return [FieldError(field, "Invalid phone number")]
    return []


def valid_year(field: str, value, today: date | None = None) -> list[FieldError]:
    number = to_number(value)
    if number is None or number != int(number) or not MIN_YEAR <= number <= max_year(today):
        return [FieldError(field, "Invalid year")]
    return []


def valid_price(field: str, value) -> list[FieldError]:
    number = to_number(value)
    if number is None or number < 0:
        return [FieldError(field, "Invalid price")]
    return []
