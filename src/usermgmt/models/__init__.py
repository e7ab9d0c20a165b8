r"""
Centralized access to the database models of the service.

Importing the package registers every model with `Base.metadata`, which is what
`create_all()` (application start-up, test fixtures) relies on.

    from usermgmt.models import User
"""

from .user import User

__all__ = [
    "User",
]
