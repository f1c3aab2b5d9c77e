import pytest

from app.shared.validators import (
    normalize_email,
    normalize_phone,
    phone_digits,
    validate_email,
)


class TestEmail:
    def test_normalize(self):
        assert normalize_email("  Amina@Example.COM \n") == "amina@example.com"
        assert normalize_email(None) == ""

    def test_valid_email_is_normalized(self):
        assert validate_email(" Amina@Example.com ") == "amina@example.com"

    @pytest.mark.parametrize("email", ["amina", "amina@", "amina@example", "am ina@example.com", "a@@b.com"])
    def test_invalid(self, email):
        with pytest.raises(ValueError):
            validate_email(email)

    def test_empty_passes_through(self):
        assert validate_email("") == ""
        assert validate_email(None) is None


class TestPhone:
    def test_trim(self):
        assert normalize_phone("  +966 50 000 0000 ") == "+966 50 000 0000"

    def test_blank_is_none(self):
        assert normalize_phone("   ") is None
        assert normalize_phone(None) is None

    def test_digits(self):
        assert phone_digits("+966 (50) 000-0000") == "966500000000"
        assert phone_digits(None) == ""

