"""
Link card processor
A link/ folder holds link.txt (url=, name=) and exactly one preview image.
"""
from pathlib import Path
from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from app import config
from app.apps.publish.context import PublishContext
from app.apps.publish.exceptions import PersistenceError, PublishError, PublishValidationError
from app.apps.publish.models import ContentLink
from app.apps.publish.schemas import LinkCard
from app.apps.publish.services.media_classifier import IMAGE, classify_and_store, media_asset_id, media_kind
from app.apps.publish.utils.metadata_reader import find_missing_keys, parse_metadata

logger = logging.getLogger(__name__)

LINK_DIRECTORY = "link"


def read_link_card(content_dir: Path) -> Optional[LinkCard]:
    """
    Validate the link/ folder of a content directory.

    Returns:
        The link card, or None when there is no link/ folder

    Raises:
        PublishValidationError: link.txt missing or incomplete, or not exactly one image
    """
    link_dir = content_dir / LINK_DIRECTORY
    if not link_dir.is_dir():
        return None

    link_txt = link_dir / config.LINK_FILENAME
    if not link_txt.is_file():
        raise PublishValidationError("Missing link.txt in link folder")

    images = sorted(
        path for path in link_dir.iterdir()
        if path.is_file() and path.name != config.LINK_FILENAME and media_kind(path) == IMAGE
    )
    if not images:
        raise PublishValidationError("No image found in link folder")
    if len(images) > 1:
        raise PublishValidationError("Multiple images found in link folder")

    link_data = parse_metadata(link_txt)
    missing = find_missing_keys(link_data, ("url", "name"))
    if missing:
        raise PublishValidationError(f"Missing required fields in link.txt: {', '.join(missing)}")

    return LinkCard(url=link_data["url"], name=link_data["name"], image_path=images[0])


async def store_link_card(ctx: PublishContext, link_card: LinkCard) -> ContentLink:
    """Store the preview image and upsert the content's link row."""
    content_id = ctx.require_content_id()
    try:
        await classify_and_store(ctx, link_card.image_path)
        image_id = media_asset_id(content_id, ctx.relative_key(link_card.image_path))

        link = await ctx.session.get(ContentLink, content_id)
        if link is None:
            link = ContentLink(content_id=content_id, image_id=image_id, url=link_card.url, name=link_card.name)
            ctx.session.add(link)
        else:
            link.image_id = image_id
            link.url = link_card.url
            link.name = link_card.name

        await ctx.session.commit()
    except SQLAlchemyError as e:
        await ctx.session.rollback()
        logger.error(f"Failed to store link card of content {content_id}: {e}", exc_info=True)
        raise PersistenceError(f"Failed to process link for content {content_id}") from e
    except PublishError:
        await ctx.session.rollback()
        raise

    logger.info(f"Stored link card '{link_card.name}' for content {content_id}")
    return link
