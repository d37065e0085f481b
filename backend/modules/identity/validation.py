"""
Input normalization for identity fields.

All helpers raise a ValidationError subclass before anything is written.
"""

import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from shared.config import get_settings

from .exceptions import InvalidEmailError, InvalidNameError, InvalidPhoneError, WeakPasswordError

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


def normalize_email(email: str) -> str:
    """Validate syntax and return the lowercased address."""
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidEmailError(email, str(e))
    return result.normalized.lower()


def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number to "+digits".

    Spaces, dashes, dots and parentheses are dropped; anything else that
    is not a digit (apart from one leading "+") is rejected.
    """
    cleaned = _PHONE_SEPARATORS.sub("", phone.strip())
    digits = cleaned[1:] if cleaned.startswith("+") else cleaned
    if not digits.isdigit() or not 7 <= len(digits) <= 15:
        raise InvalidPhoneError(phone)
    return f"+{digits}"


def normalize_optional_phone(phone: Optional[str]) -> Optional[str]:
    if phone is None or not phone.strip():
        return None
    return normalize_phone(phone)


def validate_password(password: str) -> str:
    min_length = get_settings().min_password_length
    if len(password) < min_length:
        raise WeakPasswordError(min_length)
    return password


def normalize_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise InvalidNameError()
    return name
