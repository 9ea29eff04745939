"""
Course API

Authentication and session backend of the online-course platform.
Run with: python main.py  (or uvicorn main:app)
"""
from app.core.config import settings
from app.main import app  # noqa: F401


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
    )
