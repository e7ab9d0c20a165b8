r"""
Classification of database integrity errors.

Two levels of exceptions are involved when a write is rejected by the database:

1. Constraint-specific classes (this module). They describe *what* failed inside the
   database (unique, not-null, foreign key, check) and are used only as labels returned
   by `classify_integrity_error()`. They are never raised to callers.

2. App-level errors (`exceptions.base`). `DuplicateUsernameError`, `StorageError`, ...
   are what repositories raise and services/handlers catch. `mapper.py` turns a label
   from this module into one of those.

| Constraint-level (internal) | → | App-level (external)      |
| --------------------------- | - | ------------------------- |
| `UniqueConstraintError`     | → | `DuplicateUsernameError`  |
| anything else               | → | `StorageError`            |

Detection order, most reliable first:
    - SQLSTATE (`pgcode` / `sqlstate` on the DBAPI error: psycopg2, psycopg 3, asyncpg)
    - MySQL / MariaDB error number (`args[0]`: PyMySQL, aiomysql, asyncmy)
    - SQLite extended result code (`sqlite_errorcode`)
    - message substrings, for drivers that expose none of the above
"""
import logging
from enum import Enum
from typing import Type
from sqlalchemy.exc import IntegrityError
from .base import ServiceError

logger = logging.getLogger(__name__)

# =================================================================================================================
# Constraint-specific exceptions
# =================================================================================================================


class ConstraintViolationError(ServiceError):
    """Base for integrity/constraint violations."""
    pass


class UniqueConstraintError(ConstraintViolationError):
    """Unique constraint / duplicate value."""
    pass


class NotNullConstraintError(ConstraintViolationError):
    """NOT NULL violation (missing required field)."""
    pass


class ForeignKeyConstraintError(ConstraintViolationError):
    """Foreign key constraint violated."""
    pass


class CheckConstraintError(ConstraintViolationError):
    """CHECK constraint violated."""
    pass


class UnknownIntegrityError(ConstraintViolationError):
    """Unrecognized integrity error."""
    pass


# =================================================================================================================
# Vendor error code mapping
# =================================================================================================================

# https://www.postgresql.org/docs/current/errcodes-appendix.html
class SqlStateCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"


SQLSTATE_EXCEPTION_MAP = {
    SqlStateCodes.UNIQUE_VIOLATION.value: UniqueConstraintError,
    SqlStateCodes.NOT_NULL_VIOLATION.value: NotNullConstraintError,
    SqlStateCodes.FOREIGN_KEY_VIOLATION.value: ForeignKeyConstraintError,
    SqlStateCodes.CHECK_VIOLATION.value: CheckConstraintError,
}

# https://dev.mysql.com/doc/mysql-errors/8.0/en/server-error-reference.html
# MySQL reports the generic SQLSTATE 23000 for every integrity error, so the errno is what tells them apart.
MYSQL_ERRNO_EXCEPTION_MAP = {
    1062: UniqueConstraintError,        # ER_DUP_ENTRY
    1586: UniqueConstraintError,        # ER_DUP_ENTRY_WITH_KEY_NAME
    1048: NotNullConstraintError,       # ER_BAD_NULL_ERROR
    1451: ForeignKeyConstraintError,    # ER_ROW_IS_REFERENCED_2
    1452: ForeignKeyConstraintError,    # ER_NO_REFERENCED_ROW_2
    3819: CheckConstraintError,         # ER_CHECK_CONSTRAINT_VIOLATED
}

# https://www.sqlite.org/rescode.html (extended result codes)
SQLITE_ERRORCODE_EXCEPTION_MAP = {
    2067: UniqueConstraintError,        # SQLITE_CONSTRAINT_UNIQUE
    1555: UniqueConstraintError,        # SQLITE_CONSTRAINT_PRIMARYKEY
    1299: NotNullConstraintError,       # SQLITE_CONSTRAINT_NOTNULL
    787: ForeignKeyConstraintError,     # SQLITE_CONSTRAINT_FOREIGNKEY
    275: CheckConstraintError,          # SQLITE_CONSTRAINT_CHECK
}

ClassifierResult = tuple[Type[ConstraintViolationError] | None, str | None]


# =================================================================================================================
# Integrity Error Classifiers
# =================================================================================================================

def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _constraint_name_of(orig) -> str | None:
    # psycopg2 / psycopg 3 expose diagnostics; asyncpg keeps them on the wrapped driver exception
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None) if diag else None
    if name:
        return name
    return getattr(getattr(orig, "__cause__", None), "constraint_name", None)


def _classify_from_sqlstate(orig) -> ClassifierResult:
    """
    Classify based on the SQLSTATE reported by the driver (Postgres drivers).
    """
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if not sqlstate:
        return None, None

    constraint_name = _constraint_name_of(orig)
    exception_class = SQLSTATE_EXCEPTION_MAP.get(sqlstate)

    if exception_class:
        logger.debug(
            "classifier.sqlstate_match",
            extra={"sqlstate": sqlstate, "constraint_name": constraint_name},
        )
        return exception_class, constraint_name

    # 23000 is MySQL's catch-all integrity state: leave it to the errno classifier.
    if sqlstate == "23000":
        return None, constraint_name

    logger.warning(
        "Unknown SQLSTATE integrity error code encountered",
        extra={"sqlstate": sqlstate, "constraint_name": constraint_name},
    )
    logger.debug("SQLSTATE orig diagnostic (raw)", extra={"orig_repr": repr(orig)})
    return UnknownIntegrityError, constraint_name


def _classify_from_mysql_errno(orig) -> ClassifierResult:
    args = getattr(orig, "args", None) or ()
    if not args or not isinstance(args[0], int):
        return None, None

    exception_class = MYSQL_ERRNO_EXCEPTION_MAP.get(args[0])
    if exception_class:
        logger.debug("classifier.mysql_errno_match", extra={"errno": args[0]})
    return exception_class, None


def _classify_from_sqlite_errorcode(orig) -> ClassifierResult:
    code = getattr(orig, "sqlite_errorcode", None)
    if code is None:
        return None, None
    return SQLITE_ERRORCODE_EXCEPTION_MAP.get(code), None


def _classify_from_generic_message(msg: str) -> ClassifierResult:
    """
    Classify integrity error based on message content (fallback for drivers without codes).
    """
    normalized = (msg or "").lower()

    if _match_any(normalized, ["unique constraint", "unique failed", "unique violation",
                               "duplicate entry", "duplicate key", "duplicate"]):
        return UniqueConstraintError, None

    if _match_any(normalized, ["not null constraint", "not null", "null value in column", "cannot be null"]):
        return NotNullConstraintError, None

    if _match_any(normalized, ["foreign key constraint", "foreign key", "is not present in table"]):
        return ForeignKeyConstraintError, None

    if _match_any(normalized, ["check constraint", "check failed"]):
        return CheckConstraintError, None

    # Unknown generic message - warn so it surfaces to monitoring
    logger.warning("Unknown integrity error message encountered", extra={"message_snippet": normalized[:200]})
    # Keep full message at DEBUG for developers (don't expose raw DB messages at INFO)
    logger.debug("Unknown integrity raw message", extra={"raw": msg})
    return UnknownIntegrityError, None


def classify_integrity_error(exc: IntegrityError) -> tuple[Type[ConstraintViolationError], str | None]:
    """
    Classify a SQLAlchemy IntegrityError into a specific ConstraintViolationError subclass.

    Returns:
        A tuple of (ExceptionClass, constraint_name if available)
    """
    orig = exc.orig
    constraint_name = None

    for classifier in (_classify_from_sqlstate, _classify_from_mysql_errno, _classify_from_sqlite_errorcode):
        exception_class, name = classifier(orig)
        constraint_name = constraint_name or name
        if exception_class is not None:
            return exception_class, constraint_name

    exception_class, _ = _classify_from_generic_message(str(orig) if orig is not None else str(exc))
    return exception_class, constraint_name
