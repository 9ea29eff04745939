"""
Admin request schemas
"""
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class AdminSignInRequest(BaseModel):
    login: Optional[str] = None
    password: Optional[str] = None
    code: Optional[Union[int, str]] = None


class AdminRegisterRequest(BaseModel):
    login: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class AdminRoleChangeRequest(BaseModel):
    login: Optional[str] = None
    role: Optional[str] = None


class AdminPasswordResetRequest(BaseModel):
    login: Optional[str] = None
    password: Optional[str] = None


class UserModerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId", gt=0)


class AdminInfo(BaseModel):
    """Public view of an admin; secrets and hashes are never exposed."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    login: str
    role: str
    two_steps_auth_enabled: bool = Field(..., serialization_alias="twoStepsAuthEnabled")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")


class AdminListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    admins: List[AdminInfo]
    total: int
    page: int
    page_size: int = Field(..., serialization_alias="pageSize")
