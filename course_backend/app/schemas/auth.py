"""
Auth and profile request/response schemas

Fields are optional at the schema level: presence and shape are checked by
app.core.validation so that missing fields produce the same 400 messages as
malformed ones. Only an unparseable body is rejected here (10101).
"""
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class CredentialsRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ConfirmCodeRequest(BaseModel):
    code: Optional[Union[int, str]] = None


class PasswordRecoveryRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    code: Optional[Union[int, str]] = None


class PasswordChangeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: Optional[str] = Field(None, alias="oldPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")


class EmailChangeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_email: Optional[str] = Field(None, alias="newEmail")


class MessageResponse(BaseModel):
    message: str
    success: bool = True


class VerificationResponse(MessageResponse):
    verified: bool = True


class SessionResponse(BaseModel):
    """Guard context of the current request."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., serialization_alias="userId")
    verified: bool
