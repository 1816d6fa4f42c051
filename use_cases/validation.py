"""Registration field rules.

Each validator returns an error message, or None when the value is fine.
An empty value is "not attempted yet" and never produces a message.
"""

import re
from typing import Optional

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 4
MAX_PASSWORD_LENGTH = 100

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]+")


def validate_username(username: str) -> Optional[str]:
    if not username:
        return None
    if len(username) < MIN_USERNAME_LENGTH:
        return f"Username must be at least {MIN_USERNAME_LENGTH} characters"
    if len(username) > MAX_USERNAME_LENGTH:
        return f"Username cannot be longer than {MAX_USERNAME_LENGTH} characters"
    if not USERNAME_PATTERN.fullmatch(username):
        return "Username may only contain letters, numbers and underscores"
    return None


def validate_password(password: str) -> Optional[str]:
    if not password:
        return None
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if len(password) > MAX_PASSWORD_LENGTH:
        return f"Password cannot be longer than {MAX_PASSWORD_LENGTH} characters"
    if any(ch.isspace() for ch in password):
        return "Password cannot contain spaces"
    return None


def validate_confirmation(confirmation: str, password: str) -> Optional[str]:
    if not confirmation:
        return None
    if confirmation != password:
        return "Passwords do not match"
    return None
