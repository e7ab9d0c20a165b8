import re
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .integrity_classifier import (
    classify_integrity_error,
    UniqueConstraintError,
    NotNullConstraintError,
    ForeignKeyConstraintError,
    CheckConstraintError,
)
from .base import DuplicateUsernameError, ServiceError, StorageError

logger = logging.getLogger(__name__)

# The only unique business key of the users table.
USERNAME_COLUMN = "username"

# -----------------------
# Column extraction helpers
# -----------------------

def _extract_columns_postgres(msg: str) -> list[str] | None:
    """
    Try to extract involved column names from common Postgres messages:
      - 'null value in column "username" violates not-null constraint'
      - 'DETAIL:  Key (username)=(alice) already exists.'
    """
    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r'key \((?P<cols>[^)]+)\)=', msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    return None


def _extract_columns_sqlite(msg: str) -> list[str] | None:
    # 'UNIQUE constraint failed: users.username' / 'NOT NULL constraint failed: users.username'
    m = re.search(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$', msg, flags=re.IGNORECASE)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols"))]
    return None


def _extract_columns_mysql(msg: str) -> list[str] | None:
    # "Duplicate entry 'alice' for key 'users.uq_users_username'" -> the key name, not a column
    m = re.search(r"for key '(?P<key>[^']+)'", msg, flags=re.IGNORECASE)
    if m:
        return [m.group("key").split('.')[-1]]
    # "Column 'username' cannot be null"
    m = re.search(r"column '(?P<col>[^']+)' cannot be null", msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]
    return None


def extract_columns_from_integrity(exc: IntegrityError) -> list[str] | None:
    """
    Best-effort extraction of column names from the DB message (Postgres, SQLite, MySQL).
    """
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)
    if not msg:
        return None

    for extractor in (_extract_columns_postgres, _extract_columns_sqlite, _extract_columns_mysql):
        cols = extractor(msg)
        if cols:
            return cols
    return None


def _refers_to_username(columns: list[str] | None, constraint_name: str | None) -> bool:
    """
    True unless the error clearly names something other than the username.

    With nothing to go on the violation is attributed to the username, which is the
    only unique business key of the table.
    """
    names = list(columns or [])
    if constraint_name:
        names.append(constraint_name)
    if not names:
        return True
    return any(USERNAME_COLUMN in name.lower() for name in names)


# -----------------------
# Mapper
# -----------------------

def raise_mapped_integrity_error(exc: IntegrityError, model_name: str | None = None,
                                 *, username: str | None = None) -> None:
    """
    Map a SQLAlchemy IntegrityError to an app-level exception and raise it.

    - unique violation on the username -> DuplicateUsernameError
    - everything else                 -> StorageError (cause preserved)
    """
    exc_cls, constraint_name = classify_integrity_error(exc)
    columns = extract_columns_from_integrity(exc)

    model_part = f"{model_name}" if model_name else "Record"

    if exc_cls is UniqueConstraintError and _refers_to_username(columns, constraint_name):
        # INFO: duplicates are an expected client-level scenario (409).
        logger.info(
            "mapper.duplicate_detected",
            extra={
                "model": model_part,
                "fields": columns,
                "constraint": constraint_name,
            },
        )
        raise DuplicateUsernameError(username, constraint=constraint_name) from exc

    if exc_cls is UniqueConstraintError:
        # e.g. primary key collision: not something the caller can fix by picking another name
        logger.warning(
            "mapper.unexpected_unique_violation",
            extra={"model": model_part, "fields": columns, "constraint": constraint_name},
        )
        raise StorageError(f"{model_part} unique constraint violated", fields=columns,
                           constraint=constraint_name) from exc

    if exc_cls is NotNullConstraintError:
        logger.info(
            "mapper.not_null_violation",
            extra={"model": model_part, "fields": columns, "constraint": constraint_name},
        )
        raise StorageError(f"Missing required field(s) for {model_part}", fields=columns,
                           constraint=constraint_name) from exc

    if exc_cls is ForeignKeyConstraintError:
        logger.info(
            "mapper.foreign_key_violation",
            extra={"model": model_part, "fields": columns, "constraint": constraint_name},
        )
        raise StorageError(f"{model_part} foreign key constraint violated", fields=columns,
                           constraint=constraint_name) from exc

    raw = str(exc.orig) if exc.orig is not None else str(exc)

    if exc_cls is CheckConstraintError:
        # Keep the raw DB message at DEBUG level only (do not expose it at INFO)
        logger.debug(
            "mapper.check_constraint_failure",
            extra={"model": model_part, "raw": raw, "constraint": constraint_name},
        )
        raise StorageError(f"{model_part} business rule violated (check constraint).",
                           constraint=constraint_name) from exc

    logger.warning(
        "mapper.unknown_integrity_error",
        extra={"model": model_part, "constraint": constraint_name},
    )
    logger.debug("mapper.unknown_integrity_raw", extra={"model": model_part, "raw": raw})

    # Raise a generic, non-leaking message
    raise StorageError(f"{model_part} database integrity error.") from exc


# -----------------------
# Async context manager to DRY error handling in repositories
# -----------------------
@asynccontextmanager
async def db_error_handler(db: AsyncSession, model_name: str | None = None,
                           *, username: str | None = None) -> AsyncIterator[None]:
    """
    Usage:
        async with db_error_handler(self.db, self.model.__name__, username=username):
            ... DB writes that may raise IntegrityError ...

    Rolls the session back on error and raises a mapped app-level exception.
    App-level errors raised inside the block pass through untouched.
    """
    try:
        yield
    except ServiceError:
        raise
    except IntegrityError as exc:
        await _safe_rollback(db, model_name, "IntegrityError")
        raise_mapped_integrity_error(exc, model_name, username=username)
    except Exception as exc:
        await _safe_rollback(db, model_name, "unexpected error")

        # Unexpected exceptions are logged with stack trace for diagnostics.
        logger.exception("Unexpected DB error for %s", model_name, extra={"model": model_name})
        raise StorageError(f"Failed to operate on {model_name or 'database'}") from exc


async def _safe_rollback(db: AsyncSession, model_name: str | None, reason: str) -> None:
    try:
        await db.rollback()
    except Exception:
        # The original error is what the caller needs; a failed rollback is only logged.
        logger.exception("Failed to rollback session after %s", reason, extra={"model": model_name})
