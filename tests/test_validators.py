from datetime import date

import pytest

from idealcar.exceptions import ValidationFailed
from idealcar.forms import blog_fields, dealer_fields, vehicle_fields
from idealcar.validators import (
    FieldError, clean_text, required, split_tags, to_bool, to_number, valid_email,
    valid_phone, valid_price, valid_year,
)

TODAY = date(2025, 10, 9)


@pytest.mark.parametrize("value", ["sales@idealcar.co.za", "a.b@c.io"])
def test_valid_email(value):
    assert valid_email("email", value) == []


@pytest.mark.parametrize("value", ["plain", "a@b", "a b@c.com", "@c.com"])
def test_invalid_email(value):
    assert valid_email("email", value) == [FieldError("email", "Invalid email address")]


@pytest.mark.parametrize("value", ["0821234567", "+27821234567", "082 123 4567"])
def test_valid_phone(value):
    assert valid_phone("phone", value) == []


@pytest.mark.parametrize("value", ["821234567", "+2782123456", "+44821234567", "08212345678"])
def test_invalid_phone(value):
    assert valid_phone("phone", value)


def test_optional_values_are_not_format_checked():
    assert valid_email("email", "") == []
    assert valid_phone("phone", None) == []


def test_year_bounds():
    assert valid_year("year", "1900", TODAY) == []
    assert valid_year("year", 2026, TODAY) == []
    assert valid_year("year", "1899", TODAY) == [FieldError("year", "Invalid year")]
    assert valid_year("year", "2027", TODAY)
    assert valid_year("year", "2020.5", TODAY)
    assert valid_year("year", "abc", TODAY)


def test_price():
    assert valid_price("price", "0") == []
    assert valid_price("price", "-1")
    assert valid_price("price", "nan")
    assert valid_price("price", "inf")


def test_required_message():
    assert required("make", "  ", "Make") == [FieldError("make", "Make is required")]
    assert required("make", "VW") == []


def test_helpers():
    assert clean_text("  <script>x</script> ") == "scriptx/script"
    assert clean_text("a" * 150) == "a" * 100
    assert split_tags(" a, b ,,a ") == ["a", "b"]
    assert split_tags(["x", "x", " y "]) == ["x", "y"]
    assert to_number("  ") is None
    assert to_number("12.5") == 12.5
    assert to_bool("on") and to_bool(True) and not to_bool("false")


def test_vehicle_fields_create_collects_every_error():
    with pytest.raises(ValidationFailed) as e:
        vehicle_fields({"make": "VW", "year": "1800", "price": "x"}, today=TODAY)
    assert [(err.field, err.message) for err in e.value.errors] == [
        ("model", "Model is required"),
        ("year", "Invalid year"),
        ("price", "Invalid price"),
    ]


def test_vehicle_fields_partial_returns_only_present_keys():
    assert vehicle_fields({"price": "99999.50"}, partial=True, today=TODAY) == {"price": 99999.5}
    assert vehicle_fields({}, partial=True, today=TODAY) == {}
    assert vehicle_fields({"doors": "abc"}, partial=True) == {"doors": 4}


def test_blog_fields_create():
    values = blog_fields({"title": "T", "excerpt": "E", "tags": "a,b"})
    assert values["tags"] == ["a", "b"]
    assert values["full_content"] == ""
    assert values["read_time"] == "5 min"


def test_dealer_fields_status():
    assert dealer_fields({"status": "Inactive"}, partial=True) == {"status": "inactive"}
    with pytest.raises(ValidationFailed):
        dealer_fields({"status": "closed"}, partial=True)
