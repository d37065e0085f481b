"""
RFID token format.
"""

import re

from .exceptions import InvalidTokenFormatError

_TOKEN_PATTERN = re.compile(r"[0-9a-fA-F]{8}")


def normalize_token(token: str) -> str:
    """
    Validate an RFID token and return it lowercased.

    Raises:
        InvalidTokenFormatError: If token is not exactly 8 hex characters
    """
    if not isinstance(token, str) or not _TOKEN_PATTERN.fullmatch(token):
        raise InvalidTokenFormatError(str(token))
    return token.lower()
