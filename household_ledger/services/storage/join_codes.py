"""Household join code generation."""

import secrets
import string


# No 0/O or 1/I, so codes survive being read aloud or retyped
JOIN_CODE_ALPHABET = "".join(
    c for c in string.ascii_uppercase + string.digits if c not in "01IO"
)


def generate_join_code(length: int = 6) -> str:
    """Return a random join code such as 'K7QX2M'."""
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def normalize_join_code(code: str) -> str:
    """Codes are matched case-insensitively and without surrounding spaces."""
    return code.strip().upper()
