"""
API Request and Response Schemas

Pydantic models for the demo endpoints.
"""

from pydantic import BaseModel, Field


class CreateUserRequest(BaseModel):
    """Request model for user creation endpoint."""
    name: str = Field(..., min_length=1, description="Display name of the user")


class UserResponse(BaseModel):
    """Response model for user endpoints."""
    id: int = Field(..., description="User identifier")
    name: str = Field(..., description="Display name of the user")


class LoginResponse(BaseModel):
    """Response model for login endpoint."""
    username: str
    authenticated: bool
