from app.core.config import settings, Settings
from app.core.database import get_db, Base, get_db_session
from app.core.security import (
    PasswordHasher,
    verify_password,
    get_password_hash,
    create_token,
    decode_token,
)
