import pytest

from modules.core.phone import (
    format_phone_number,
    is_spanish_phone_number,
    normalize_phone_number,
    to_international_digits,
)

pytestmark = pytest.mark.unit


class TestNormalizePhoneNumber:
    @pytest.mark.parametrize(
        "raw", ["600111222", "+34600111222", "+34 600 11 12 22", "600-111-222", "(600) 111 222"]
    )
    def test_spanish_numbers_collapse_to_national_form(self, raw):
        assert normalize_phone_number(raw) == "600111222"

    def test_foreign_numbers_are_kept(self):
        assert normalize_phone_number(" +44 20 7946 0958 ") == "+44 20 7946 0958"

    def test_empty(self):
        assert normalize_phone_number("") == ""


class TestFormatPhoneNumber:
    def test_spanish(self):
        assert format_phone_number("+34600111222") == "600 111 222"

    def test_other(self):
        assert format_phone_number("12345") == "12345"


class TestHelpers:
    def test_is_spanish(self):
        assert is_spanish_phone_number("912345678")
        assert not is_spanish_phone_number("512345678")
        assert not is_spanish_phone_number("")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("600111222", "34600111222"),
            ("+34 600 111 222", "34600111222"),
            ("+44 20 7946 0958", "442079460958"),
        ],
    )
    def test_to_international_digits(self, raw, expected):
        assert to_international_digits(raw) == expected
