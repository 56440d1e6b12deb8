"""
Content upsert engine
Resolves whether a publish creates or updates a content block and writes the
block, its article body, thumbnail, tags and extra metadata in one transaction.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple
import logging

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app import config
from app.apps.common.association_tables import content_tags
from app.apps.publish.context import PublishContext
from app.apps.publish.exceptions import PersistenceError, PublishError, PublishValidationError
from app.apps.publish.models import (
    Article,
    AssetType,
    ContentBlock,
    ContentMetadata,
    ContentStatus,
    Tag,
    utc_now,
)
from app.apps.publish.services.media_classifier import IMAGE, classify_and_store, media_kind
from app.apps.publish.utils.locks import content_identity_locks
from app.apps.publish.utils.metadata_reader import find_missing_keys, split_tags

logger = logging.getLogger(__name__)

THUMBNAIL_DIRECTORY = "thumbnail"


@dataclass(frozen=True)
class ContentKindRules:
    """What a content kind requires from metadata.txt and which keys it maps to columns."""
    name: str
    required_keys: Tuple[str, ...]
    consumed_keys: FrozenSet[str]
    has_article: bool = True
    scans_thumbnail_directory: bool = True
    consumes_numeric_keys: bool = False

    def consumes(self, key: str) -> bool:
        return key in self.consumed_keys or (self.consumes_numeric_keys and key.isdigit())


ARTICLE_RULES = ContentKindRules(
    name="article",
    required_keys=("title", "slug", "site_id"),
    consumed_keys=frozenset({
        "title", "slug", "site_id", "type_id", "language", "status", "tags", "summary", "body",
    }),
)


def _parse_int(metadata, key: str, default: Optional[int] = None) -> int:
    raw = metadata.get(key, "")
    if not raw.strip():
        if default is None:
            raise PublishValidationError(f"Metadata key '{key}' is empty")
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise PublishValidationError(f"Metadata key '{key}' must be an integer, got '{raw}'")


def content_identity(metadata) -> Tuple[str, int, int]:
    """(slug, site_id, type_id) identifying a content block."""
    slug = metadata.get("slug", "")
    if not slug.strip():
        raise PublishValidationError("Metadata key 'slug' is empty")
    site_id = _parse_int(metadata, "site_id")
    type_id = _parse_int(metadata, "type_id", config.DEFAULT_ARTICLE_TYPE_ID)
    return slug, site_id, type_id


def validate_metadata(metadata, rules: ContentKindRules) -> Tuple[str, int, int]:
    """
    Check required keys and identity values before anything is written.

    Raises:
        PublishValidationError: listing the missing or invalid keys
    """
    missing = find_missing_keys(metadata, rules.required_keys)
    if missing:
        raise PublishValidationError(f"Metadata is missing required keys: {', '.join(missing)}")
    return content_identity(metadata)


async def find_content_block(session, slug: str, site_id: int, type_id: int) -> Optional[ContentBlock]:
    stmt = select(ContentBlock).where(
        ContentBlock.slug == slug,
        ContentBlock.site_id == site_id,
        ContentBlock.type_id == type_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _upsert_article(ctx: PublishContext, content_id: int) -> Article:
    now = utc_now()
    article = await ctx.session.get(Article, content_id)
    if article is None:
        article = Article(content_id=content_id)
        ctx.session.add(article)

    article.summary = ctx.metadata.get("summary")
    article.body_markdown = ctx.metadata.get("body")
    article.last_edited = now
    if ctx.is_published and article.published_at is None:
        article.published_at = now
        logger.info(f"Content {content_id} published for the first time at {now.isoformat()}")
    return article


async def resolve_thumbnail(ctx: PublishContext, block: ContentBlock) -> Optional[str]:
    """
    Store the lexicographically first image of thumbnail/ and set it on the block.
    A missing directory or image is not an error.
    """
    thumbnail_dir = ctx.content_dir / THUMBNAIL_DIRECTORY
    if not thumbnail_dir.is_dir():
        logger.info(f"No thumbnail directory for content {block.id}")
        return None

    candidates = sorted(
        (path for path in thumbnail_dir.iterdir() if path.is_file() and media_kind(path) == IMAGE),
        key=lambda path: path.name,
    )
    if not candidates:
        logger.info(f"No valid images in thumbnail directory of content {block.id}")
        return None

    url = await classify_and_store(ctx, candidates[0], asset_type=AssetType.THUMBNAIL, required=True)
    block.thumbnail_url = url
    return url


async def sync_tags(ctx: PublishContext, content_id: int) -> int:
    """Ensure every tag and content/tag association exists. Returns the number of tags processed."""
    names = split_tags(ctx.metadata.get("tags", ""))
    for name in names:
        result = await ctx.session.execute(select(Tag).where(Tag.name == name))
        tag = result.scalar_one_or_none()
        if tag is None:
            tag = Tag(name=name)
            ctx.session.add(tag)
            await ctx.session.flush()

        existing = await ctx.session.execute(
            select(content_tags.c.tag_id).where(
                content_tags.c.content_id == content_id,
                content_tags.c.tag_id == tag.id,
            )
        )
        if existing.first() is None:
            await ctx.session.execute(insert(content_tags).values(content_id=content_id, tag_id=tag.id))
    return len(names)


async def store_extra_metadata(ctx: PublishContext, content_id: int, rules: ContentKindRules) -> None:
    """Keep keys the content kind does not map to columns in content_metadata."""
    for key, value in ctx.metadata.items():
        if rules.consumes(key) or not value.strip():
            continue
        row = await ctx.session.get(ContentMetadata, (content_id, key))
        if row is None:
            ctx.session.add(ContentMetadata(content_id=content_id, key=key, value=value))
        else:
            row.value = value


async def upsert_content(ctx: PublishContext, rules: ContentKindRules = ARTICLE_RULES) -> int:
    """
    Create or update the content block described by ctx.metadata.

    Runs as a single transaction; on failure everything is rolled back.

    Returns:
        The content id, also stored on ctx.content_id

    Raises:
        PublishValidationError: missing or invalid metadata (nothing written)
        PersistenceError: database failure
        CollaboratorError: required thumbnail upload failed
    """
    slug, site_id, type_id = validate_metadata(ctx.metadata, rules)
    session = ctx.session
    status = ContentStatus.PUBLISHED if ctx.is_published else ContentStatus.DRAFT

    async with content_identity_locks.hold((slug, site_id, type_id)):
        try:
            block = await find_content_block(session, slug, site_id, type_id)
            if block is None:
                block = ContentBlock(
                    title=ctx.metadata["title"],
                    slug=slug,
                    site_id=site_id,
                    type_id=type_id,
                    status=status,
                    language=ctx.metadata.get("language") or config.DEFAULT_LANGUAGE,
                )
                session.add(block)
                await session.flush()
                logger.info(f"Created {rules.name} content {block.id} for slug '{slug}' on site {site_id}")
            else:
                block.title = ctx.metadata["title"]
                block.language = ctx.metadata.get("language") or block.language
                if block.status != status:
                    logger.info(f"Content {block.id} status {block.status} -> {status}")
                block.status = status
                block.updated_at = utc_now()
                logger.info(f"Updating {rules.name} content {block.id} for slug '{slug}' on site {site_id}")

            ctx.content_id = block.id

            if rules.has_article:
                await _upsert_article(ctx, block.id)
            if rules.scans_thumbnail_directory:
                await resolve_thumbnail(ctx, block)
            await sync_tags(ctx, block.id)
            await store_extra_metadata(ctx, block.id, rules)

            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"Conflicting publish of slug '{slug}' on site {site_id}: {e}", exc_info=True)
            raise PersistenceError(f"Content '{slug}' was modified concurrently") from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error while upserting slug '{slug}' on site {site_id}: {e}", exc_info=True)
            raise PersistenceError("Database update failed") from e
        except PublishError:
            await session.rollback()
            raise

    return ctx.content_id
