"""
Publish orchestrator
Sequences the pipeline for one request:
metadata -> content upsert -> media -> reference rewrite -> file storage
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.apps.publish.context import PublishContext
from app.apps.publish.exceptions import PublishValidationError
from app.apps.publish.models import ContentStatus
from app.apps.publish.services.content_upsert import ARTICLE_RULES, upsert_content, validate_metadata
from app.apps.publish.services.file_storage import store_files
from app.apps.publish.services.gallery import (
    GALLERY_RULES,
    ordered_gallery_images,
    store_gallery,
    validate_gallery_structure,
)
from app.apps.publish.services.link_card import read_link_card, store_link_card
from app.apps.publish.services.media_classifier import classify_media
from app.apps.publish.services.media_tools import MediaToolkit
from app.apps.publish.utils.metadata_reader import parse_metadata
from app.apps.publish.utils.reference_rewriter import rewrite_references

logger = logging.getLogger(__name__)

ARTICLE_KIND = "article"
GALLERY_KIND = "gallery"


@dataclass
class PublishResult:
    content_id: int
    status: str
    media: Dict[str, str] = field(default_factory=dict)
    rewritten_files: List[Path] = field(default_factory=list)
    stored_files: List[Path] = field(default_factory=list)


def resolve_content_path(path_param: Optional[str], body: str) -> str:
    """
    The content directory comes from the 'path' query parameter, else the raw body.

    Raises:
        PublishValidationError: neither is provided
    """
    if path_param:
        logger.info(f"Using path from query parameter: {path_param}")
        return path_param
    if body.strip():
        logger.info(f"Using path from request body: {body.strip()}")
        return body.strip()
    raise PublishValidationError(
        "Missing path parameter. Provide it either as a query parameter '?path=' or in the request body."
    )


def resolve_publish_status(status_param: Optional[str]) -> bool:
    """
    Only status=1 publishes. Anything else, or no parameter, keeps a draft;
    the metadata "status" key is not consulted.
    """
    return status_param == "1"


def load_metadata(content_dir: Path) -> Dict[str, str]:
    metadata_file = content_dir / config.METADATA_FILENAME
    if not metadata_file.is_file():
        raise PublishValidationError(f"Missing {config.METADATA_FILENAME} at path: {content_dir}")
    metadata = parse_metadata(metadata_file)
    if not metadata:
        raise PublishValidationError(f"No metadata could be read from {metadata_file}")
    return metadata


async def publish_article(
    session: AsyncSession,
    toolkit: MediaToolkit,
    content_path: str,
    status_param: Optional[str] = None,
) -> PublishResult:
    """
    Publish an article directory.

    Validation happens before any write; each later stage commits on its own.

    Raises:
        PublishValidationError, PersistenceError, CollaboratorError, StorageIOError
    """
    content_dir = Path(content_path).expanduser().resolve()
    metadata = load_metadata(content_dir)
    if not (content_dir / config.ENTRY_MARKUP_FILENAME).is_file():
        raise PublishValidationError(f"Article is missing required file: {config.ENTRY_MARKUP_FILENAME}")

    validate_metadata(metadata, ARTICLE_RULES)
    link_card = read_link_card(content_dir)

    ctx = PublishContext(
        session=session,
        toolkit=toolkit,
        content_dir=content_dir,
        metadata=metadata,
        is_published=resolve_publish_status(status_param),
        content_kind=ARTICLE_KIND,
    )
    logger.info(f"Publishing article from {content_dir} (published={ctx.is_published})")

    content_id = await upsert_content(ctx, ARTICLE_RULES)
    await classify_media(ctx)
    if link_card:
        await store_link_card(ctx, link_card)

    rewritten = rewrite_references(content_dir, ctx.media_map, content_id, ctx.is_published, ARTICLE_KIND)
    stored = await store_files(ctx)

    logger.info(f"Article published with ID: {content_id}")
    return PublishResult(
        content_id=content_id,
        status=ContentStatus.PUBLISHED if ctx.is_published else ContentStatus.DRAFT,
        media=dict(ctx.media_map),
        rewritten_files=rewritten,
        stored_files=stored,
    )


async def publish_gallery(
    session: AsyncSession,
    toolkit: MediaToolkit,
    content_path: str,
    status_param: Optional[str] = None,
) -> PublishResult:
    """Publish an image-set directory (metadata.txt + media/ + optional link/)."""
    content_dir = Path(content_path).expanduser().resolve()
    metadata = load_metadata(content_dir)
    validate_gallery_structure(content_dir)
    validate_metadata(metadata, GALLERY_RULES)

    images = ordered_gallery_images(content_dir, metadata)
    if not images:
        raise PublishValidationError("None of the images listed as 1, 2, 3... were found in the media folder")
    link_card = read_link_card(content_dir)

    ctx = PublishContext(
        session=session,
        toolkit=toolkit,
        content_dir=content_dir,
        metadata=metadata,
        is_published=resolve_publish_status(status_param),
        content_kind=GALLERY_KIND,
    )
    logger.info(f"Publishing gallery from {content_dir} (published={ctx.is_published})")

    content_id = await upsert_content(ctx, GALLERY_RULES)
    await store_gallery(ctx, images, has_link=link_card is not None)
    if link_card:
        await store_link_card(ctx, link_card)

    logger.info(f"Gallery published with ID: {content_id}")
    return PublishResult(
        content_id=content_id,
        status=ContentStatus.PUBLISHED if ctx.is_published else ContentStatus.DRAFT,
        media=dict(ctx.media_map),
    )
