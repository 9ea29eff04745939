from app.api.routes import admin, auth, profile

__all__ = ["admin", "auth", "profile"]
