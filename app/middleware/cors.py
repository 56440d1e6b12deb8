"""
CORS middleware configuration
Publish requests come from the authoring tools listed in CORS_ALLOWED_ORIGINS
"""
from fastapi.middleware.cors import CORSMiddleware
from app.config import CORS_ALLOWED_ORIGINS, CORS_ALLOW_CREDENTIALS

PUBLISH_METHODS = ["GET", "POST", "OPTIONS"]


def setup_cors(app):
    """
    Setup CORS middleware for FastAPI app

    Usage:
        from app.middleware.cors import setup_cors
        setup_cors(app)
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_credentials=CORS_ALLOW_CREDENTIALS,
        allow_methods=PUBLISH_METHODS,
        # The raw body of a publish request is a plain-text path
        allow_headers=["Content-Type", "X-Requested-With"],
    )
