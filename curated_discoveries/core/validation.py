"""
Input normalization and validation rules shared by auth, profiles and curations.

All checks run before any network call and raise `ValidationError` with the
offending field name.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from curated_discoveries.core.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[a-z0-9_]+$")

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 72  # bcrypt input limit on the auth server
FULL_NAME_MAX_LENGTH = 100
BIO_MAX_LENGTH = 500
TITLE_MAX_LENGTH = 200
COMMENT_MAX_LENGTH = 2000
TAG_MAX_LENGTH = 40
MAX_TAGS = 10


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase, then check shape."""
    value = (email or "").strip().lower()
    if not value:
        raise ValidationError("email", "Email is required")
    if not EMAIL_PATTERN.match(value):
        raise ValidationError("email", "Please enter a valid email address")
    return value


def validate_password(password: Optional[str]) -> str:
    if not password:
        raise ValidationError("password", "Password is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError("password", f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError("password", f"Password must be at most {PASSWORD_MAX_LENGTH} characters")
    return password


def normalize_username(username: Optional[str]) -> str:
    value = (username or "").strip().lower()
    if not value:
        raise ValidationError("username", "Username is required")
    if len(value) < USERNAME_MIN_LENGTH or len(value) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            "username",
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
        )
    if not USERNAME_PATTERN.match(value):
        raise ValidationError(
            "username", "Username can only contain lowercase letters, numbers and underscores"
        )
    return value


def normalize_full_name(full_name: Optional[str]) -> str:
    value = (full_name or "").strip()
    if not value:
        raise ValidationError("full_name", "Name is required")
    if len(value) > FULL_NAME_MAX_LENGTH:
        raise ValidationError("full_name", f"Name must be at most {FULL_NAME_MAX_LENGTH} characters")
    return value


def normalize_text(value: Optional[str], field: str, max_length: int, required: bool = False) -> Optional[str]:
    """Trim free text. Empty optional text becomes None."""
    text = (value or "").strip()
    if not text:
        if required:
            raise ValidationError(field, f"{field.replace('_', ' ').capitalize()} is required")
        return None
    if len(text) > max_length:
        raise ValidationError(field, f"{field.replace('_', ' ').capitalize()} must be at most {max_length} characters")
    return text


def normalize_url(value: Optional[str], field: str) -> Optional[str]:
    text = (value or "").strip()
    if not text:
        return None
    parsed = urlparse(text)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(field, "Please enter a valid http(s) URL")
    return text


def normalize_tags(names: Optional[Iterable[str]]) -> List[str]:
    """Trim, lowercase and dedupe tag names, keeping first-seen order."""
    tags: List[str] = []
    for name in names or []:
        tag = (name or "").strip().lower()
        if not tag or tag in tags:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValidationError("tags", f"Tags must be at most {TAG_MAX_LENGTH} characters")
        tags.append(tag)
    if len(tags) > MAX_TAGS:
        raise ValidationError("tags", f"A curation can have at most {MAX_TAGS} tags")
    return tags
