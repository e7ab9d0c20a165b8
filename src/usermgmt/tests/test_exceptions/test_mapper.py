import pytest
from sqlalchemy.exc import IntegrityError

from usermgmt.exceptions.base import DuplicateUsernameError, StorageError, InvalidInputError
from usermgmt.exceptions.mapper import (
    raise_mapped_integrity_error,
    extract_columns_from_integrity,
    db_error_handler,
)


class FakeSqliteError(Exception):
    def __init__(self, message, sqlite_errorcode):
        super().__init__(message)
        self.sqlite_errorcode = sqlite_errorcode


class FakeSession:
    """Stands in for AsyncSession; only rollback() is used by db_error_handler."""

    def __init__(self, fail_rollback=False):
        self.rollbacks = 0
        self.fail_rollback = fail_rollback

    async def rollback(self):
        self.rollbacks += 1
        if self.fail_rollback:
            raise RuntimeError("connection gone")


def wrap(orig) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, orig)


def test_extract_columns_sqlite():
    exc = wrap(Exception("UNIQUE constraint failed: users.username"))

    assert extract_columns_from_integrity(exc) == ["username"]


def test_extract_columns_postgres_detail():
    exc = wrap(Exception('duplicate key value violates unique constraint "ix_users_username"\n'
                         "DETAIL:  Key (username)=(alice) already exists."))

    assert extract_columns_from_integrity(exc) == ["username"]


def test_extract_columns_mysql_key_name():
    exc = wrap(Exception(1062, "Duplicate entry 'alice' for key 'users.ix_users_username'"))

    assert extract_columns_from_integrity(exc) == ["ix_users_username"]


def test_username_unique_violation_maps_to_duplicate():
    exc = wrap(FakeSqliteError("UNIQUE constraint failed: users.username", 2067))

    with pytest.raises(DuplicateUsernameError) as exc_info:
        raise_mapped_integrity_error(exc, "User", username="alice")

    assert exc_info.value.username == "alice"
    assert exc_info.value.__cause__ is exc
    assert exc_info.value.http_status() == 409


def test_primary_key_violation_maps_to_storage_error():
    exc = wrap(FakeSqliteError("UNIQUE constraint failed: users.id", 1555))

    with pytest.raises(StorageError) as exc_info:
        raise_mapped_integrity_error(exc, "User", username="alice")

    assert exc_info.value.fields == ["id"]
    assert exc_info.value.__cause__ is exc


def test_not_null_maps_to_storage_error():
    exc = wrap(FakeSqliteError("NOT NULL constraint failed: users.username", 1299))

    with pytest.raises(StorageError) as exc_info:
        raise_mapped_integrity_error(exc, "User")

    assert exc_info.value.fields == ["username"]


def test_unknown_integrity_error_does_not_leak_raw_message():
    exc = wrap(Exception("secret internal detail"))

    with pytest.raises(StorageError) as exc_info:
        raise_mapped_integrity_error(exc, "User")

    assert "secret internal detail" not in exc_info.value.message


@pytest.mark.asyncio
class TestDbErrorHandler:

    async def test_integrity_error_rolls_back_and_maps(self):
        session = FakeSession()

        with pytest.raises(DuplicateUsernameError):
            async with db_error_handler(session, "User", username="alice"):
                raise wrap(FakeSqliteError("UNIQUE constraint failed: users.username", 2067))

        assert session.rollbacks == 1

    async def test_unexpected_error_becomes_storage_error(self):
        session = FakeSession()

        with pytest.raises(StorageError) as exc_info:
            async with db_error_handler(session, "User"):
                raise ConnectionError("db down")

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert session.rollbacks == 1

    async def test_service_errors_pass_through(self):
        session = FakeSession()

        with pytest.raises(InvalidInputError):
            async with db_error_handler(session, "User"):
                raise InvalidInputError("bad", fields=["username"])

        assert session.rollbacks == 0

    async def test_failed_rollback_keeps_original_error(self):
        session = FakeSession(fail_rollback=True)

        with pytest.raises(StorageError) as exc_info:
            async with db_error_handler(session, "User"):
                raise ConnectionError("db down")

        assert isinstance(exc_info.value.__cause__, ConnectionError)
