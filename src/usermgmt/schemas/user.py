from datetime import datetime, timezone
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from usermgmt.models.user import USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH
from usermgmt.validators.user_validators import USERNAME_PATTERN


Username = Annotated[
    str,
    StringConstraints(
        min_length=USERNAME_MIN_LENGTH,
        max_length=USERNAME_MAX_LENGTH,
        pattern=USERNAME_PATTERN,
    ),
]


class UserCreate(BaseModel):
    username: Username


class UsernameUpdate(BaseModel):
    username: Username


class UserResponse(BaseModel):
    """
    Fully-populated user value object returned by the service layer.

    Serialized as {"id", "username", "createdAt"}.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True, populate_by_name=True)

    id: str
    username: str
    created_at: datetime = Field(serialization_alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops the offset; stored timestamps are always UTC
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class UserPage(BaseModel):
    items: list[UserResponse]
    total: int
    offset: int
    limit: int


class UsernameAvailability(BaseModel):
    username: str
    available: bool
