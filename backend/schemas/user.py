from pydantic import EmailStr, Field
from typing import Optional

from schemas.common import CamelModel

# Shared properties for user models
class UserBase(CamelModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str = Field(min_length=1)

# Schema for user registration requests (role is always "user")
class UserCreate(UserBase):
    password: str = Field(min_length=8)
    display_name: str = Field(min_length=1)

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    display_name: str
    role: str
    avatar_url: Optional[str] = None

# Wrapper returned by login / register / session
class UserEnvelope(CamelModel):
    user: UserResponse

class LogoutResponse(CamelModel):
    success: bool = True
    message: str = "Logged out successfully"

# Public listing of dentists for the booking form
class DentistOut(CamelModel):
    id: int
    display_name: str
    avatar_url: Optional[str] = None
