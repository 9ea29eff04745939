from app.models.credential import Credential
from app.models.user import User
from app.models.access_token import AccessToken, AdminAccessToken
from app.models.admin import Admin

__all__ = [
    "Credential",
    "User",
    "AccessToken",
    "AdminAccessToken",
    "Admin",
]
