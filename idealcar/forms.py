"""Turn submitted admin forms into field values for records.

``partial=False`` is a create: absent optional fields take their
defaults and required ones are reported. ``partial=True`` is an update:
only keys present in the form come back, so absent fields keep whatever
the record had. A present but blank value resets an optional field to
its default and is an error for a required one.
"""
import re
from dataclasses import dataclass
from datetime import date

from idealcar.exceptions import ValidationFailed
from idealcar.models import DEFAULT_BLOG_IMAGE
from idealcar.validators import (
    LONG_TEXT, SHORT_TEXT, FieldError, clamp, clean_html, clean_text, required,
    split_tags, to_bool, to_number, valid_email, valid_phone, valid_price, valid_year,
)

DEALER_STATUSES = ("active", "inactive")


@dataclass(frozen=True)
class TextField:
    key: str
    attr: str
    default: str | None = ""
    max_len: int = SHORT_TEXT
    required: bool = False
    label: str | None = None
    html: bool = False

    def clean(self, raw) -> str:
        if self.html:
            return clean_html(raw, self.max_len)
        return clean_text(raw, self.max_len)


def _text_values(form, fields, partial: bool):
    values, errors = {}, []
    for f in fields:
        raw = form.get(f.key)
        if raw is None:
            if partial:
                continue
            if f.required:
                errors += required(f.key, raw, f.label)
            else:
                values[f.attr] = f.default
            continue
        cleaned = f.clean(raw)
        if not cleaned:
            if f.required:
                errors += required(f.key, cleaned, f.label)
                continue
            cleaned = f.default
        values[f.attr] = cleaned
    return values, errors


def _tags(form, key: str, partial: bool, values: dict) -> None:
    raw = form.get(key)
    if raw is None and partial:
        return
    values[key] = split_tags(raw)


VEHICLE_TEXT = (
    TextField("make", "make", required=True, label="Make"),
    TextField("model", "model", required=True, label="Model"),
    TextField("dealerId", "dealer_id", default=None),
    TextField("mileage", "mileage", "N/A"),
    TextField("transmission", "transmission", "Automatic"),
    TextField("fuel", "fuel", "Petrol"),
    TextField("engine", "engine", "N/A"),
    TextField("color", "color", "N/A"),
    TextField("condition", "condition", "Good"),
    TextField("category", "category", "Used"),
    TextField("description", "description", "", max_len=LONG_TEXT),
)


def vehicle_fields(form, partial: bool = False, today: date | None = None) -> dict:
    values, errors = _text_values(form, VEHICLE_TEXT, partial)

    for key, label in (("year", "Year"), ("price", "Price")):
        raw = form.get(key)
        if raw is None and partial:
            continue
        problems = required(key, raw, label)
        if not problems:
            problems = valid_year(key, raw, today) if key == "year" else valid_price(key, raw)
        if problems:
            errors += problems
            continue
        number = to_number(raw)
        values[key] = int(number) if key == "year" or number.is_integer() else number

    for key, default in (("doors", 4), ("seats", 5)):
        raw = form.get(key)
        if raw is None and partial:
            continue
        number = to_number(raw)
        values[key] = clamp(int(number), 1, 10) if number is not None else default

    raw = form.get("featured")
    if raw is not None or not partial:
        values["featured"] = to_bool(raw) if raw is not None else False

    _tags(form, "features", partial, values)

    if errors:
        raise ValidationFailed(errors)
    return values


BLOG_TEXT = (
    TextField("title", "title", required=True, label="Title", max_len=200),
    TextField("excerpt", "excerpt", required=True, label="Excerpt", max_len=1000),
    # blank means "same as the excerpt"; resolved once the record is assembled
    TextField("fullContent", "full_content", "", html=True, max_len=50000),
    TextField("readTime", "read_time", "5 min"),
    TextField("author", "author", "DirkL"),
    TextField("category", "category", "General"),
)


def blog_fields(form, partial: bool = False) -> dict:
    values, errors = _text_values(form, BLOG_TEXT, partial)
    _tags(form, "tags", partial, values)
    if errors:
        raise ValidationFailed(errors)
    if not partial:
        values["image"] = DEFAULT_BLOG_IMAGE
    return values


DEALER_TEXT = (
    TextField("name", "name", required=True, label="Name"),
    TextField("email", "email", required=True, label="Email"),
    TextField("phone", "phone", required=True, label="Phone"),
    TextField("location", "location", "N/A"),
    TextField("description", "description", "", max_len=LONG_TEXT),
)


def dealer_fields(form, partial: bool = False) -> dict:
    values, errors = _text_values(form, DEALER_TEXT, partial)
    if "email" in values:
        errors += valid_email("email", values["email"])
    if "phone" in values:
        values["phone"] = re.sub(r"\s", "", values["phone"])
        errors += valid_phone("phone", values["phone"])
    status = form.get("status")
    if status is not None:
        status = clean_text(status).lower()
        if status not in DEALER_STATUSES:
            errors.append(FieldError("status", "Status must be active or inactive"))
        else:
            values["status"] = status
    elif not partial:
        values["status"] = "active"
    if errors:
        raise ValidationFailed(errors)
    return values
