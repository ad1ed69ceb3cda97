from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class TokenClaims(BaseModel):
    user_id: str
    email: str
    name: str = ""
    metadata: Dict[str, Any] = {}


class TokenValidation(BaseModel):
    """Outcome of validating a session token; never raised, always returned"""
    valid: bool
    claims: Optional[TokenClaims] = None
    error: Optional[str] = None


class IdentityUser(BaseModel):
    id: str
    email: str
    display_name: str = ""
    metadata: Dict[str, Any] = {}


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    access_token: str = Field(..., alias="accessToken")
    metadata: Dict[str, Any] = {}


class GenerateContentRequest(BaseModel):
    title: str = ""
