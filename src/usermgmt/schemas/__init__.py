from .user import UserCreate, UsernameUpdate, UserResponse, UserPage, UsernameAvailability

__all__ = ["UserCreate", "UsernameUpdate", "UserResponse", "UserPage", "UsernameAvailability"]
