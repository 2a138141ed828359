"""Pydantic schemas for API models."""
from .users import (
    REQUIRED_FIELDS,
    CreateUserRequest,
    CreateUserResponse,
    ErrorResponse,
)


__all__ = [
    "REQUIRED_FIELDS",
    "CreateUserRequest",
    "CreateUserResponse",
    "ErrorResponse",
]
