from fastapi import APIRouter, Depends, Query, Response, status

from usermgmt.core.dependencies import get_user_service
from usermgmt.exceptions.base import UserNotFoundError
from usermgmt.schemas.user import (
    UserCreate,
    UsernameUpdate,
    UserResponse,
    UserPage,
    UsernameAvailability,
)
from usermgmt.services.user_service import UserService


router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    response: Response,
    service: UserService = Depends(get_user_service),
):
    user = await service.create_user(payload.username)
    response.headers["Location"] = f"{router.prefix}/{user.id}"
    return user


@router.get("", response_model=UserResponse)
async def get_user_by_username(
    username: str = Query(..., description="Exact username to look up"),
    service: UserService = Depends(get_user_service),
):
    return await service.get_user_by_username(username)


# Static paths are declared before "/{user_id}" so they are not captured by it.
@router.get("/list", response_model=UserPage)
async def list_users(
    offset: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1),
    service: UserService = Depends(get_user_service),
):
    return await service.list_users(offset=offset, limit=limit)


@router.get("/availability", response_model=UsernameAvailability)
async def check_username_availability(
    username: str = Query(...),
    service: UserService = Depends(get_user_service),
):
    available = await service.is_username_available(username)
    return UsernameAvailability(username=username, available=available)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_by_id(user_id: str, service: UserService = Depends(get_user_service)):
    return await service.get_user_by_id(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_username(
    user_id: str,
    payload: UsernameUpdate,
    service: UserService = Depends(get_user_service),
):
    return await service.update_username(user_id, payload.username)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    if not await service.delete_user(user_id):
        raise UserNotFoundError(f"User not found with ID: {user_id}", fields=["id"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)
