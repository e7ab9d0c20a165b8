import re
import uuid

from usermgmt.exceptions.base import InvalidInputError
from usermgmt.models.user import USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH

USERNAME_PATTERN = r"^[A-Za-z0-9_-]+$"
_USERNAME_RE = re.compile(USERNAME_PATTERN)


def require_not_blank(value: str | None, field: str = "username") -> str:
    """
    Reject None and whitespace-only strings with InvalidInputError.
    The value is returned unchanged (no trimming: lookups are exact).
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(f"{field} cannot be null or blank", fields=[field])
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} must be a string", fields=[field])
    return value


def validate_username(value: str | None, field: str = "username") -> str:
    """
    Enforce the username rules used for every write:
    3-50 characters, letters, digits, hyphens and underscores only.
    """
    require_not_blank(value, field)
    if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
        raise InvalidInputError(
            f"{field} must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
            fields=[field],
        )
    if not _USERNAME_RE.fullmatch(value):
        raise InvalidInputError(
            f"{field} can only contain alphanumeric characters, hyphens, and underscores",
            fields=[field],
        )
    return value


def validate_user_id(value: str | uuid.UUID | None, field: str = "id") -> str:
    """
    Normalize a user id to its canonical 36-character string form.

    Raises InvalidInputError for missing, blank or non-UUID values.
    """
    if isinstance(value, uuid.UUID):
        return str(value)
    require_not_blank(value, field)
    try:
        return str(uuid.UUID(str(value).strip()))
    except ValueError as exc:
        raise InvalidInputError(f"{field} is not a valid identifier", fields=[field]) from exc
