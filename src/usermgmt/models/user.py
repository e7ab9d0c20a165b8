from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from datetime import datetime
from usermgmt.database.base import Base


USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50


class User(Base):
    """
    SQLAlchemy model for User.

    The only entity of the service: an opaque string id, a unique username
    and the creation timestamp. Rows have no relationships.
    """
    __tablename__ = "users"

    # String form of a UUID4, assigned by the repository at creation time
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
    )

    # Username (must be unique and non-null)
    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        unique=True,
        index=True,
        nullable=False
    )

    # Timestamp for when the user was created. The repository sets it explicitly;
    # the server default only covers rows inserted by other tools.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
        nullable=False
    )

    def __repr__(self) -> str:
        # Helpful for debugging/logging
        return f"<User(id={self.id!r}, username={self.username!r})>"
