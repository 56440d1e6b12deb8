"""
Gallery publisher
Image-set posts: ordered images listed as 1=, 2=, ... in metadata.txt, all
normalized to the same square size. The first image doubles as thumbnail.
"""
from PIL import Image
from pathlib import Path
from typing import List, Optional, Tuple
import logging
import tempfile

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from app.apps.publish.context import PublishContext
from app.apps.publish.exceptions import CollaboratorError, PersistenceError, PublishError, PublishValidationError
from app.apps.publish.models import AssetType, ContentBlock, Gallery, GalleryImage
from app.apps.publish.services.content_upsert import ContentKindRules
from app.apps.publish.services.media_classifier import (
    IMAGE,
    MediaCategory,
    classify_and_store,
    media_asset_id,
    media_kind,
)
from app.apps.publish.services.media_tools import MediaToolkit

logger = logging.getLogger(__name__)

MEDIA_DIRECTORY = "media"

GALLERY_RULES = ContentKindRules(
    name="gallery",
    required_keys=("title", "slug", "site_id", "type_id", "language", "caption", "location", "1"),
    consumed_keys=frozenset({
        "title", "slug", "site_id", "type_id", "language", "status", "tags", "caption", "location", "hashtags",
    }),
    has_article=False,
    scans_thumbnail_directory=False,
    consumes_numeric_keys=True,
)


def validate_gallery_structure(content_dir: Path) -> None:
    """
    Raises:
        PublishValidationError: media/ is missing or holds no image
    """
    media_dir = content_dir / MEDIA_DIRECTORY
    if not media_dir.is_dir():
        raise PublishValidationError("Invalid gallery structure: missing media folder")
    if not any(path.is_file() and media_kind(path) == IMAGE for path in media_dir.iterdir()):
        raise PublishValidationError("Invalid gallery structure: no images in media folder")


def ordered_gallery_images(content_dir: Path, metadata) -> List[Path]:
    """Images named by the consecutive keys 1, 2, 3, ... that exist in media/."""
    images = []
    position = 1
    while str(position) in metadata:
        filename = metadata[str(position)]
        path = content_dir / MEDIA_DIRECTORY / filename
        if path.is_file():
            images.append(path)
        else:
            logger.warning(f"Gallery image {position} not found: {path}")
        position += 1
    return images


def count_hashtags(value: str) -> int:
    return value.count("#")


def smallest_dimensions(toolkit: MediaToolkit, paths: List[Path]) -> Optional[Tuple[int, int]]:
    """Smallest (by area) dimensions among the images that can be probed."""
    smallest = None
    for path in paths:
        try:
            width, height, _ = toolkit.probe_image(path)
        except CollaboratorError as e:
            logger.warning(e.message)
            continue
        if width <= 0 or height <= 0:
            continue
        if smallest is None or width * height < smallest[0] * smallest[1]:
            smallest = (width, height)
    return smallest


def normalize_square(source: Path, destination: Path, target: Tuple[int, int]) -> bool:
    """
    Resize source to target and center-crop it to a square.
    Returns False (and logs) when Pillow cannot process the file.
    """
    width, height = target
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    try:
        with Image.open(source) as img:
            resized = img.resize((width, height))
            resized.crop((left, top, left + side, top + side)).save(destination)
        return True
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to normalize gallery image {source}, using original: {e}")
        return False


async def _upsert_gallery_row(ctx: PublishContext, content_id: int, image_count: int, has_link: bool) -> Gallery:
    gallery = await ctx.session.get(Gallery, content_id)
    if gallery is None:
        gallery = Gallery(content_id=content_id, caption="", location="")
        ctx.session.add(gallery)

    gallery.single = image_count == 1
    gallery.caption = ctx.metadata["caption"]
    gallery.location = ctx.metadata["location"]
    gallery.hashtag_count = count_hashtags(ctx.metadata.get("hashtags", ""))
    gallery.has_link = has_link
    return gallery


async def _upsert_gallery_image(ctx: PublishContext, content_id: int, position: int, image_id: int) -> None:
    entry = await ctx.session.get(GalleryImage, (content_id, position))
    if entry is None:
        ctx.session.add(GalleryImage(content_id=content_id, position=position, image_id=image_id))
    else:
        entry.image_id = image_id


async def store_gallery(ctx: PublishContext, images: List[Path], has_link: bool) -> List[str]:
    """
    Normalize, store and order the gallery images, then update the gallery row.

    Returns:
        Canonical URLs in gallery order

    Raises:
        CollaboratorError: the cover (thumbnail) upload failed on a published gallery
        PersistenceError: database failure
    """
    content_id = ctx.require_content_id()
    target = smallest_dimensions(ctx.toolkit, images)
    logger.info(f"Gallery {content_id}: {len(images)} image(s), target size {target}")

    urls: List[str] = []
    try:
        with tempfile.TemporaryDirectory(prefix="gallery-") as workdir:
            for position, source in enumerate(images, start=1):
                reference = ctx.relative_key(source)
                processed = Path(workdir) / f"{position}{source.suffix.lower()}"
                upload_path = processed if target and normalize_square(source, processed, target) else source

                url = await classify_and_store(ctx, upload_path, reference=reference, category=MediaCategory.GALLERY)
                urls.append(url)
                await _upsert_gallery_image(ctx, content_id, position, media_asset_id(content_id, reference))

                if position == 1:
                    thumbnail_url = await classify_and_store(
                        ctx,
                        upload_path,
                        asset_type=AssetType.THUMBNAIL,
                        required=True,
                        reference=f"thumbnail/{source.name}",
                    )
                    block = await ctx.session.get(ContentBlock, content_id)
                    block.thumbnail_url = thumbnail_url

        await ctx.session.execute(
            delete(GalleryImage).where(
                GalleryImage.content_id == content_id,
                GalleryImage.position > len(images),
            )
        )
        await _upsert_gallery_row(ctx, content_id, len(images), has_link)
        await ctx.session.commit()
    except SQLAlchemyError as e:
        await ctx.session.rollback()
        logger.error(f"Failed to store gallery {content_id}: {e}", exc_info=True)
        raise PersistenceError(f"Failed to process images for gallery {content_id}") from e
    except PublishError:
        await ctx.session.rollback()
        raise

    return urls
