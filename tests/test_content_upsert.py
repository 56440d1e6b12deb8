"""
Unit tests for the content upsert engine
"""
import asyncio
from datetime import timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.common.association_tables import content_tags
from app.apps.publish.exceptions import CollaboratorError, PublishValidationError
from app.apps.publish.models import (
    Article,
    AssetType,
    ContentBlock,
    ContentMetadata,
    ContentStatus,
    ImageAsset,
    Tag,
)
from app.apps.publish.services.content_upsert import (
    ARTICLE_RULES,
    content_identity,
    upsert_content,
    validate_metadata,
)
from app.apps.publish.services.media_classifier import MediaCategory, media_asset_id
from app.apps.publish.utils.locks import KeyedLock


ARTICLE_METADATA = {
    "title": "Hello World",
    "slug": "hello-world",
    "site_id": "3",
    "summary": "A first post",
    "tags": "a, b, a",
    "read_time": "4",
    "author": "",
}


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestValidateMetadata:

    def test_missing_keys_are_listed(self):
        with pytest.raises(PublishValidationError) as exc_info:
            validate_metadata({"title": "x"}, ARTICLE_RULES)
        assert "site_id" in exc_info.value.message
        assert "slug" in exc_info.value.message
        assert exc_info.value.status_code == 400

    def test_non_integer_site_id(self):
        with pytest.raises(PublishValidationError, match="site_id"):
            validate_metadata({"title": "x", "slug": "x", "site_id": "abc"}, ARTICLE_RULES)

    def test_type_id_defaults(self):
        assert content_identity({"slug": "x", "site_id": " 2 "}) == ("x", 2, 1)
        assert content_identity({"slug": "x", "site_id": "2", "type_id": "5"}) == ("x", 2, 5)

    def test_empty_slug_rejected(self):
        with pytest.raises(PublishValidationError, match="slug"):
            content_identity({"slug": "  ", "site_id": "2"})


class TestUpsertContent:

    @pytest.mark.asyncio
    async def test_creates_block_article_tags_and_metadata(self, test_session, make_content, make_context):
        content_dir = make_content("hello", ARTICLE_METADATA, files={"index.html": "<p/>"})
        ctx = make_context(content_dir, dict(ARTICLE_METADATA), is_published=True)

        content_id = await upsert_content(ctx)

        assert ctx.content_id == content_id
        block = await test_session.get(ContentBlock, content_id)
        assert block.title == "Hello World"
        assert (block.slug, block.site_id, block.type_id) == ("hello-world", 3, 1)
        assert block.status == ContentStatus.PUBLISHED
        assert block.language == "en"

        article = await test_session.get(Article, content_id)
        assert article.summary == "A first post"
        assert article.published_at is not None

        tags = (await test_session.execute(select(Tag.name).order_by(Tag.name))).scalars().all()
        assert tags == ["a", "b"]
        assert await _count(test_session, content_tags) == 2

        extra = (await test_session.execute(select(ContentMetadata))).scalars().all()
        assert [(row.key, row.value) for row in extra] == [("read_time", "4")]

    @pytest.mark.asyncio
    async def test_republish_updates_in_place(self, test_session, make_content, make_context):
        content_dir = make_content("hello", ARTICLE_METADATA)
        first_id = await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=True))
        published_at = (await test_session.get(Article, first_id)).published_at

        changed = dict(ARTICLE_METADATA, title="Hello Again", read_time="5")
        second_id = await upsert_content(make_context(content_dir, changed, is_published=True))

        assert second_id == first_id
        assert await _count(test_session, ContentBlock) == 1
        assert await _count(test_session, Tag) == 2
        assert await _count(test_session, content_tags) == 2
        assert (await test_session.get(ContentBlock, first_id)).title == "Hello Again"
        assert (await test_session.get(ContentMetadata, (first_id, "read_time"))).value == "5"
        assert (await test_session.get(Article, first_id)).published_at == published_at

    @pytest.mark.asyncio
    async def test_status_follows_each_request(self, test_session, make_content, make_context):
        content_dir = make_content("hello", ARTICLE_METADATA)

        content_id = await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=False))
        block = await test_session.get(ContentBlock, content_id)
        assert block.status == ContentStatus.DRAFT
        assert (await test_session.get(Article, content_id)).published_at is None

        await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=True))
        published_at = (await test_session.get(Article, content_id)).published_at
        assert block.status == ContentStatus.PUBLISHED
        assert published_at is not None

        await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=False))
        assert block.status == ContentStatus.DRAFT
        assert (await test_session.get(Article, content_id)).published_at == published_at

    @pytest.mark.asyncio
    async def test_identity_includes_site_and_type(self, test_session, make_content, make_context):
        content_dir = make_content("hello", ARTICLE_METADATA)

        first = await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=False))
        other_site = await upsert_content(
            make_context(content_dir, dict(ARTICLE_METADATA, site_id="4"), is_published=False)
        )
        other_type = await upsert_content(
            make_context(content_dir, dict(ARTICLE_METADATA, type_id="2"), is_published=False)
        )

        assert len({first, other_site, other_type}) == 3

    @pytest.mark.asyncio
    async def test_thumbnail_is_first_image_by_name(self, test_session, make_content, make_context, storage):
        content_dir = make_content(
            "hello",
            ARTICLE_METADATA,
            images={"thumbnail/b.jpg": (10, 10), "thumbnail/a.png": (12, 12)},
            files={"thumbnail/readme.txt": "ignored"},
        )

        content_id = await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=True))

        asset_id = media_asset_id(content_id, "thumbnail/a.png")
        block = await test_session.get(ContentBlock, content_id)
        assert block.thumbnail_url == f"https://media.test/public/{MediaCategory.THUMBNAILS}{asset_id}.png"
        thumbnail = await test_session.get(ImageAsset, asset_id)
        assert thumbnail.asset_type == AssetType.THUMBNAIL
        assert storage.uploaded_keys == [f"{MediaCategory.THUMBNAILS}{asset_id}.png"]

    @pytest.mark.asyncio
    async def test_thumbnail_upload_failure_rolls_back(self, test_session, make_content, make_context, storage):
        content_dir = make_content("hello", ARTICLE_METADATA, images={"thumbnail/a.jpg": (10, 10)})
        storage.fail_prefixes.append(MediaCategory.THUMBNAILS)

        with pytest.raises(CollaboratorError):
            await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=True))

        assert await _count(test_session, ContentBlock) == 0
        assert await _count(test_session, Tag) == 0

    @pytest.mark.asyncio
    async def test_draft_thumbnail_is_not_uploaded(self, test_session, make_content, make_context, storage):
        content_dir = make_content("hello", ARTICLE_METADATA, images={"thumbnail/a.jpg": (10, 10)})

        content_id = await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=False))

        assert storage.uploads == []
        block = await test_session.get(ContentBlock, content_id)
        assert block.thumbnail_url.endswith(f"{media_asset_id(content_id, 'thumbnail/a.jpg')}.jpg")


class TestKeyedLock:

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        order = []

        async def worker(name):
            async with locks.hold("slug"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = KeyedLock()
        with pytest.raises(ValueError):
            async with locks.hold("slug"):
                raise ValueError("boom")

        assert len(locks) == 0


class TestTimestamps:
    """Timestamps are timezone-aware and survive a round trip through the database"""

    @pytest.mark.asyncio
    async def test_content_block_timestamps_round_trip(self, test_engine, test_session):
        block = ContentBlock(title="Stamped", slug="stamped", site_id=1, type_id=1)
        test_session.add(block)
        await test_session.commit()
        assert block.created_at.tzinfo is not None

        async with AsyncSession(test_engine) as other_session:
            stored = (
                await other_session.execute(select(ContentBlock).where(ContentBlock.slug == "stamped"))
            ).scalar_one()

        assert stored.created_at is not None
        assert stored.updated_at is not None
        assert stored.created_at.replace(tzinfo=None) == block.created_at.astimezone(timezone.utc).replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_upsert_stamps_are_aware(self, test_session, make_content, make_context):
        content_dir = make_content("hello", ARTICLE_METADATA)

        content_id = await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=True))
        await upsert_content(make_context(content_dir, dict(ARTICLE_METADATA), is_published=True))

        article = await test_session.get(Article, content_id)
        block = await test_session.get(ContentBlock, content_id)
        assert article.published_at.tzinfo is not None
        assert article.last_edited.tzinfo is not None
        assert block.updated_at.tzinfo is not None
