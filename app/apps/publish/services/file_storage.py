"""
File storage writer
Copies the static files of a content directory into the durable local tree
and records them in content_files.
"""
from pathlib import Path
from typing import List, Union
import logging
import shutil

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app import config
from app.apps.publish.context import PublishContext
from app.apps.publish.exceptions import PersistenceError, PublishError, StorageIOError
from app.apps.publish.models import ContentFile
from app.apps.publish.services.media_classifier import is_static_asset

logger = logging.getLogger(__name__)

APPEND_POLICY = "append"


def content_storage_dir(content_id: int) -> Path:
    return Path(config.STORAGE_ROOT) / str(content_id)


def is_staged(path: Union[str, Path]) -> bool:
    """True when path lives strictly below the staging root."""
    staging_root = Path(config.STAGING_ROOT).resolve()
    resolved = Path(path).resolve()
    if resolved == staging_root:
        return False
    try:
        resolved.relative_to(staging_root)
        return True
    except ValueError:
        return False


def cleanup_staging(content_dir: Union[str, Path]) -> bool:
    """Remove a staged content directory. Failure is logged, never raised."""
    if not is_staged(content_dir):
        return False
    try:
        shutil.rmtree(content_dir)
        logger.info(f"Cleaned up staged directory: {content_dir}")
        return True
    except OSError as e:
        logger.warning(f"Failed to clean up staged directory {content_dir}: {e}")
        return False


async def record_content_file(session, content_id: int, file_type: str, file_path: str, is_main: bool) -> ContentFile:
    """Record a stored file according to CONTENT_FILE_POLICY."""
    content_file = None
    if config.CONTENT_FILE_POLICY != APPEND_POLICY:
        result = await session.execute(
            select(ContentFile).where(
                ContentFile.content_id == content_id,
                ContentFile.file_path == file_path,
            )
        )
        content_file = result.scalars().first()

    if content_file is None:
        content_file = ContentFile(content_id=content_id, file_type=file_type, file_path=file_path, is_main=is_main)
        session.add(content_file)
    else:
        content_file.file_type = file_type
        content_file.is_main = is_main
    return content_file


async def store_files(ctx: PublishContext) -> List[Path]:
    """
    Copy every html/css/js file into STORAGE_ROOT/<content_id>/, keeping relative paths.

    Returns:
        Destination paths of the copied files

    Raises:
        StorageIOError: the storage directory or the entry markup could not be written
        PersistenceError: the content_files rows could not be saved
    """
    content_id = ctx.require_content_id()
    destination_root = content_storage_dir(content_id)
    logger.info(f"Storing files from {ctx.content_dir} for content {content_id} in {destination_root}")

    try:
        destination_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create storage directory {destination_root} for content {content_id}: {e}")
        raise StorageIOError(f"Cannot create storage directory for content {content_id}") from e

    stored: List[Path] = []
    try:
        for path in sorted(ctx.content_dir.rglob("*")):
            if not path.is_file() or not is_static_asset(path):
                continue

            relative = path.relative_to(ctx.content_dir)
            destination = destination_root / relative
            is_main = relative.as_posix() == config.ENTRY_MARKUP_FILENAME
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(path, destination)
            except OSError as e:
                if is_main:
                    logger.error(f"Failed to copy required file {path} for content {content_id}: {e}")
                    raise StorageIOError(f"Failed to store {relative} for content {content_id}") from e
                logger.warning(f"Skipping {path} for content {content_id}, copy failed: {e}")
                continue

            await record_content_file(ctx.session, content_id, path.suffix.lower().lstrip("."), str(destination), is_main)
            stored.append(destination)
            logger.debug(f"Copied {relative} to {destination}")

        await ctx.session.commit()
    except SQLAlchemyError as e:
        await ctx.session.rollback()
        logger.error(f"Failed to record stored files of content {content_id}: {e}", exc_info=True)
        raise PersistenceError(f"Failed to record files for content {content_id}") from e
    except PublishError:
        await ctx.session.rollback()
        raise

    cleanup_staging(ctx.content_dir)
    logger.info(f"Stored {len(stored)} file(s) for content {content_id}")
    return stored
