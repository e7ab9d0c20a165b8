import pytest

from usermgmt.exceptions.base import (
    ServiceError,
    InvalidInputError,
    UserNotFoundError,
    DuplicateUsernameError,
    StorageError,
    OperationFailedError,
)


@pytest.mark.parametrize(
    "exc, status, code",
    [
        (InvalidInputError("bad", fields=["username"]), 400, "invalid_input"),
        (UserNotFoundError(), 404, "not_found"),
        (DuplicateUsernameError("alice"), 409, "duplicate"),
        (StorageError(), 503, "storage_failure"),
        (OperationFailedError(), 500, "operation_failed"),
        (ServiceError("other"), 400, None),
    ],
)
def test_status_and_code(exc, status, code):
    assert exc.http_status() == status
    assert exc.error_code == code


def test_payload_never_contains_constraint():
    exc = DuplicateUsernameError("alice", constraint="ix_users_username")

    assert exc.to_payload() == {
        "detail": "Username 'alice' already exists",
        "code": "duplicate",
        "fields": ["username"],
    }
    assert "ix_users_username" in str(exc)


def test_all_errors_are_service_errors():
    for exc in (InvalidInputError("x"), UserNotFoundError(), DuplicateUsernameError(),
                StorageError(), OperationFailedError()):
        assert isinstance(exc, ServiceError)


def test_duplicate_without_username():
    exc = DuplicateUsernameError()

    assert exc.message == "Username already exists"
    assert exc.username is None
