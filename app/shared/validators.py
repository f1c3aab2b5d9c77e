"""Shared validation utilities"""

import re
from typing import Optional

# Anything@anything.tld without whitespace; the confirmation email is the real check
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase an email address. Returns "" for missing input."""
    return (email or "").strip().lower()


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Normalized (trimmed, lowercase) email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = normalize_email(email)

    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")

    return email


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Trim a free-form phone number; blank becomes None.

    Registrants come from many countries so no national format is enforced.
    """
    if phone is None:
        return None
    phone = phone.strip()
    return phone or None


def phone_digits(phone: Optional[str]) -> str:
    """Digits only, as required before hashing for Meta CAPI"""
    return re.sub(r"\D", "", phone or "")
