"""
Configuration settings for the content publisher service
Values come from the environment (.env supported)
"""
import os
from pathlib import Path
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

DEBUG = os.getenv('DEBUG', 'False') == 'True'

# Get mode (development or production)
MODE = os.getenv("MODE", "development")


def get_env_var(key: str, default: str = None) -> str:
    """Fetch an environment variable and raise an error if it's missing (unless default is provided)."""
    value = os.getenv(key, default)
    if value is None and default is None:
        raise ValueError(f"Missing environment variable: {key}")
    return value


# Database URL
DATABASE_URL = get_env_var(
    "PRODUCTION_DB_URL" if MODE == "production" else "STAGING_DB_URL",
    f"sqlite+aiosqlite:///{BASE_DIR / 'content.db'}"
)

# Optional CA certificate for PostgreSQL connections
DB_SSL_CERT_CONTENT = os.getenv("DB_SSL_CERT", "")

# Create tables on startup instead of running Alembic
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "False") == "True"

# CORS Configuration
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

CORS_ALLOW_CREDENTIALS = True

# Logging
LOG_FILE = os.getenv("LOG_FILE", "")

PORT = int(os.getenv("PORT", "8082"))

# Publishing layout
METADATA_FILENAME = "metadata.txt"
ENTRY_MARKUP_FILENAME = "index.html"
LINK_FILENAME = "link.txt"

# Durable local tree, one directory per content id
STORAGE_ROOT = os.getenv("STORAGE_ROOT", "/var/lib/article-content/")

# Content directories under this root are removed after a successful publish
STAGING_ROOT = os.getenv("STAGING_ROOT", "/tmp/")

# Public host serving the stored markup/script/style files
CONTENT_BASE_URL = os.getenv("CONTENT_BASE_URL", "http://localhost:8082").rstrip("/")

# "upsert" keeps one content_files row per (content_id, file_path),
# "append" records a row on every publish
CONTENT_FILE_POLICY = os.getenv("CONTENT_FILE_POLICY", "upsert")

DEFAULT_ARTICLE_TYPE_ID = int(os.getenv("DEFAULT_ARTICLE_TYPE_ID", "1"))
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "en")

# Bucket holding the public media objects
BUCKET_NAME = os.getenv("BUCKET_NAME", "content-media-public")


# Supabase Configuration
def get_supabase_url() -> str:
    """Get Supabase URL based on mode"""
    if MODE == "production":
        return get_env_var("PRODUCTION_SUPABASE_URL")
    return get_env_var("STAGING_SUPABASE_URL")


def get_supabase_token() -> str:
    """Get Supabase token based on mode"""
    if MODE == "production":
        return get_env_var("PRODUCTION_SUPABASE_TOKEN")
    return get_env_var("STAGING_SUPABASE_TOKEN")


def get_public_media_base_url() -> str:
    """
    Base URL that canonical media keys are resolved against.

    PUBLIC_MEDIA_BASE_URL wins when set; otherwise the public object URL of
    the Supabase bucket is used. Always ends with a slash.
    """
    base_url = os.getenv("PUBLIC_MEDIA_BASE_URL")
    if not base_url:
        supabase_url = get_supabase_url().rstrip("/")
        base_url = f"{supabase_url}/storage/v1/object/public/{BUCKET_NAME}"
    return base_url.rstrip("/") + "/"
