"""
Media classification and upload
Images and videos found in a content directory are probed, uploaded to the
public bucket (published content only) and recorded in images/videos.
"""
from pathlib import Path
from typing import Dict, Optional, Union
import hashlib
import logging

from sqlalchemy.exc import SQLAlchemyError

from app import config
from app.apps.publish.context import PublishContext
from app.apps.publish.exceptions import CollaboratorError, PersistenceError
from app.apps.publish.models import AssetType, ImageAsset, ProcessingStatus, VideoAsset, utc_now
from app.apps.publish.services.media_tools import guess_image_mime_type, video_mime_type

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".bmp", ".tiff"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".webm", ".avi", ".mkv"}
STATIC_EXTENSIONS = {"html", "css", "js"}

# Subtrees handled by their own processors
SEPARATELY_HANDLED_DIRECTORIES = {"thumbnail", "link"}
SHORT_VIDEO_DIRECTORY = "reels"

IMAGE = "image"
VIDEO = "video"

# 63 bits keeps ids positive in a signed BIGINT
ASSET_ID_MASK = (1 << 63) - 1


class MediaCategory:
    IMAGE_ORIGINALS = "images/originals/"
    VIDEO_ORIGINALS = "videos/originals/"
    THUMBNAILS = "images/thumbnails/"
    GALLERY = "images/gallery/"


def media_asset_id(content_id: int, filename: str) -> int:
    """
    Stable id of a media asset.

    SHA-256 of "<content_id>:<filename>" reduced to 63 bits, so republishing
    the same file of the same content always lands on the same row. Collisions
    between different files are accepted (probability ~2**-63 per pair).
    """
    digest = hashlib.sha256(f"{content_id}:{filename}".encode("utf-8")).digest()
    asset_id = int.from_bytes(digest[:8], "big") & ASSET_ID_MASK
    return asset_id or 1


def media_kind(path: Union[str, Path]) -> Optional[str]:
    suffix = Path(path).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return IMAGE
    if suffix in VIDEO_EXTENSIONS:
        return VIDEO
    return None


def is_static_asset(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower().lstrip(".") in STATIC_EXTENSIONS


def build_remote_key(category: str, asset_id: int, suffix: str) -> str:
    return f"{category}{asset_id}{suffix.lower()}"


def canonical_url(remote_key: str) -> str:
    return config.get_public_media_base_url() + remote_key


def _default_category(kind: str, asset_type: str) -> str:
    if asset_type == AssetType.THUMBNAIL:
        return MediaCategory.THUMBNAILS
    if kind == IMAGE:
        return MediaCategory.IMAGE_ORIGINALS
    return MediaCategory.VIDEO_ORIGINALS


async def classify_and_store(
    ctx: PublishContext,
    path: Union[str, Path],
    asset_type: str = AssetType.CONTENT,
    required: bool = False,
    reference: Optional[str] = None,
    category: Optional[str] = None,
) -> Optional[str]:
    """
    Classify one file and record it as a media asset.

    Args:
        ctx: Publish context with a resolved content id
        path: File to store
        asset_type: 'content' or 'thumbnail'
        required: Upload failure is fatal (thumbnail/cover assets)
        reference: Local reference used for the id and the URL map;
            defaults to the path relative to the content directory
        category: Remote key prefix; derived from kind and asset_type when omitted

    Returns:
        The canonical URL, or None when the file is not an image or video

    Raises:
        CollaboratorError: if a required upload fails
    """
    path = Path(path)
    kind = media_kind(path)
    if kind is None:
        return None

    content_id = ctx.require_content_id()
    reference = reference or ctx.relative_key(path)
    asset_id = media_asset_id(content_id, reference)
    remote_key = build_remote_key(category or _default_category(kind, asset_type), asset_id, path.suffix)
    url = canonical_url(remote_key)

    try:
        size_bytes = path.stat().st_size
    except OSError as e:
        logger.warning(f"Cannot stat {path} for content {content_id}: {e}")
        size_bytes = 0

    if kind == IMAGE:
        try:
            width, height, mime_type = ctx.toolkit.probe_image(path)
        except CollaboratorError as e:
            logger.warning(f"{e.message}; storing {reference} of content {content_id} without dimensions")
            width, height, mime_type = 0, 0, guess_image_mime_type(path)
    else:
        try:
            duration_seconds, mime_type = ctx.toolkit.probe_video(path)
        except CollaboratorError as e:
            logger.warning(f"{e.message}; storing {reference} of content {content_id} without duration")
            duration_seconds, mime_type = 0, video_mime_type(path)

    processing_status = ProcessingStatus.PENDING
    if ctx.is_published:
        try:
            ctx.toolkit.upload(path, remote_key, mime_type)
            processing_status = ProcessingStatus.COMPLETE
        except CollaboratorError as e:
            if required:
                logger.error(f"Required upload failed for {reference} of content {content_id}: {e.message}")
                raise
            logger.warning(f"Upload failed for {reference} of content {content_id}, left pending: {e.message}")

    model = ImageAsset if kind == IMAGE else VideoAsset
    asset = await ctx.session.get(model, asset_id)
    if asset is None:
        asset = model(id=asset_id, original_url=url, filename=Path(reference).name, mime_type=mime_type, content_id=content_id)
        ctx.session.add(asset)
        logger.info(f"Recording new {kind} {reference} for content {content_id} as {asset_id}")
    else:
        logger.info(f"Updating {kind} {reference} for content {content_id} ({asset_id})")

    asset.original_url = url
    asset.filename = Path(reference).name
    asset.mime_type = mime_type
    asset.size_bytes = size_bytes
    asset.content_id = content_id
    asset.asset_type = asset_type
    asset.processing_status = processing_status
    asset.updated_at = utc_now()
    if kind == IMAGE:
        asset.width = width
        asset.height = height
    else:
        asset.duration_seconds = duration_seconds
        asset.is_short = reference.startswith(f"{SHORT_VIDEO_DIRECTORY}/")

    ctx.media_map[reference] = url
    return url


async def classify_media(ctx: PublishContext) -> Dict[str, str]:
    """
    Store every image and video of the content directory.

    metadata.txt and the thumbnail/ and link/ subtrees are left out. Static
    files are left to the file storage writer; anything else is skipped.

    Returns:
        The accumulated local reference -> canonical URL map
    """
    content_id = ctx.require_content_id()
    try:
        for path in sorted(ctx.content_dir.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(ctx.content_dir)
            if relative.as_posix() == config.METADATA_FILENAME:
                continue
            if len(relative.parts) > 1 and relative.parts[0] in SEPARATELY_HANDLED_DIRECTORIES:
                continue

            if media_kind(path):
                await classify_and_store(ctx, path)
            elif not is_static_asset(path):
                logger.warning(f"Unsupported media type skipped for content {content_id}: {path}")

        await ctx.session.commit()
    except SQLAlchemyError as e:
        await ctx.session.rollback()
        logger.error(f"Failed to record media of content {content_id} from {ctx.content_dir}: {e}", exc_info=True)
        raise PersistenceError(f"Failed to record media for content {content_id}") from e

    logger.info(f"Classified {len(ctx.media_map)} media file(s) for content {content_id}")
    return ctx.media_map
