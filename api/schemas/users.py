"""
Pydantic schemas for the create-user endpoint.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

REQUIRED_FIELDS = ("email", "password", "full_name", "role", "sede", "phone")


class CreateUserRequest(BaseModel):
    """Request body for provisioning a new user.

    Fields are optional at the model level so a missing field and an empty one
    produce the same "all fields required" error.
    """
    email: Optional[str] = Field(None, description="User email address")
    password: Optional[str] = Field(None, description="Initial password (plaintext, never stored here)")
    full_name: Optional[str] = Field(None, description="User's full name")
    role: Optional[str] = Field(None, description="Target role, e.g. 'mercaderista'")
    sede: Optional[str] = Field(None, description="Target site")
    phone: Optional[str] = Field(None, description="Contact phone")
    created_by: Optional[str] = Field(None, description="Id of the creating user")

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "maria@example.com",
                "password": "Clave-Segura-123",
                "full_name": "María Pérez",
                "role": "mercaderista",
                "sede": "disbattery",
                "phone": "+58 412 0000000",
            }
        }
    }

    def missing_fields(self) -> List[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]


class CreateUserResponse(BaseModel):
    """Response for successful user creation."""
    success: bool = True
    user_id: str
    message: str


class ErrorResponse(BaseModel):
    """Uniform failure body."""
    success: bool = False
    error: str
