from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from usermgmt.config import get_settings
from usermgmt.database.session import get_async_session
from usermgmt.repositories.user_repository import UserRepository
from usermgmt.services.user_service import UserService


def get_user_repository(db: AsyncSession = Depends(get_async_session)) -> UserRepository:
    # One repository per request, bound to the request's session
    return UserRepository(db)


def get_user_service(repository: UserRepository = Depends(get_user_repository)) -> UserService:
    settings = get_settings()
    return UserService(
        repository,
        default_page_size=settings.DEFAULT_PAGE_SIZE,
        max_page_size=settings.MAX_PAGE_SIZE,
    )
