"""
Shared dependencies for FastAPI routes
"""
from app.database import get_async_session
from app.apps.publish.services.media_tools import get_media_toolkit

# Re-exported for convenience; tests override these objects
get_db = get_async_session
get_toolkit = get_media_toolkit

__all__ = ["get_db", "get_toolkit"]
