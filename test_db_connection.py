"""
Diagnostic script for the publisher's environment
Checks the database connection, the storage roots and the public media URL
"""
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from app import config
from app.database import async_engine, build_ssl_context, test_db_connection

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def mask_database_url(url: str) -> str:
    """Hide the password of a database URL"""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


def check_directory(label: str, path: str) -> None:
    directory = Path(path)
    if not directory.exists():
        print(f"  ✗ {label} {directory} does not exist")
    elif not os.access(directory, os.W_OK):
        print(f"  ✗ {label} {directory} is not writable")
    else:
        print(f"  ✓ {label} {directory} is writable")


async def main():
    """Run diagnostic tests"""
    print("=" * 60)
    print("Content Publisher Diagnostic")
    print("=" * 60)
    print(f"\nMode: {config.MODE}")
    print(f"Database URL: {mask_database_url(config.DATABASE_URL)[:80]}")

    if config.DB_SSL_CERT_CONTENT:
        ssl_context = build_ssl_context(config.DB_SSL_CERT_CONTENT)
        print(f"  {'✓' if ssl_context else '✗'} SSL context from DB_SSL_CERT")
    else:
        print("  - DB_SSL_CERT not set")

    print("\nDirectories:")
    check_directory("STORAGE_ROOT", config.STORAGE_ROOT)
    check_directory("STAGING_ROOT", config.STAGING_ROOT)

    print("\nPublic URLs:")
    print(f"  - Content base: {config.CONTENT_BASE_URL}")
    try:
        print(f"  - Media base: {config.get_public_media_base_url()}")
    except ValueError as e:
        print(f"  ✗ Media base URL unavailable: {e}")

    print(f"\nTesting database connection...")
    print("-" * 60)
    success = await test_db_connection()
    print("\n✓ Database connection successful!" if success else "\n✗ Database connection failed!")

    await async_engine.dispose()
    print("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
