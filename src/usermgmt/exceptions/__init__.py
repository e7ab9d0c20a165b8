# usermgmt/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # App-level errors (ServiceError, DuplicateUsernameError, ...)
# │   ├── integrity_classifier.py    # SQL-level / DB-specific constraint classification
# │   └── mapper.py                  # Map SQL-level errors to app-level errors + db_error_handler

from .base import (
    ServiceError,
    InvalidInputError,
    UserNotFoundError,
    DuplicateUsernameError,
    StorageError,
    OperationFailedError,
)

__all__ = [
    "ServiceError",
    "InvalidInputError",
    "UserNotFoundError",
    "DuplicateUsernameError",
    "StorageError",
    "OperationFailedError",
]
