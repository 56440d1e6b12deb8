"""
Publish models
Content blocks, their bodies, media assets and stored files
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, BigInteger, ForeignKey, UniqueConstraint
from typing import Optional
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContentStatus:
    DRAFT = "draft"
    PUBLISHED = "published"


class ProcessingStatus:
    PENDING = "pending"
    COMPLETE = "complete"


class AssetType:
    CONTENT = "content"
    THUMBNAIL = "thumbnail"


class ContentBlock(SQLModel, table=True):
    """
    Canonical record of one publishable unit
    Table: content_blocks
    Identity: (slug, site_id, type_id)
    """
    __tablename__ = "content_blocks"
    __table_args__ = (
        UniqueConstraint("slug", "site_id", "type_id", name="uq_content_blocks_identity"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    slug: str = Field(max_length=255, index=True)
    site_id: int = Field(index=True)
    type_id: int
    status: str = Field(default=ContentStatus.DRAFT, max_length=20, index=True)  # 'draft' or 'published'
    language: str = Field(default="en", max_length=10)
    thumbnail_url: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class Article(SQLModel, table=True):
    """
    Article body, one per content block
    Table: articles
    """
    __tablename__ = "articles"

    content_id: int = Field(foreign_key="content_blocks.id", primary_key=True)
    summary: Optional[str] = Field(default=None)
    body_markdown: Optional[str] = Field(default=None)
    last_edited: datetime = Field(default_factory=utc_now)
    published_at: Optional[datetime] = Field(default=None)  # stamped once, never reset


class Tag(SQLModel, table=True):
    """
    Tag model
    Table: tags
    """
    __tablename__ = "tags"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, unique=True, index=True)


class ImageAsset(SQLModel, table=True):
    """
    Image stored in the public bucket
    Table: images
    The id is derived from (content_id, relative path), see media_asset_id
    """
    __tablename__ = "images"

    id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))
    original_url: str = Field(max_length=1000)
    filename: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    size_bytes: int = Field(default=0)
    width: int = Field(default=0)
    height: int = Field(default=0)
    content_id: int = Field(foreign_key="content_blocks.id", index=True)
    asset_type: str = Field(default=AssetType.CONTENT, max_length=20)  # 'content' or 'thumbnail'
    processing_status: str = Field(default=ProcessingStatus.PENDING, max_length=20)
    updated_at: datetime = Field(default_factory=utc_now)


class VideoAsset(SQLModel, table=True):
    """
    Video stored in the public bucket
    Table: videos
    """
    __tablename__ = "videos"

    id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))
    original_url: str = Field(max_length=1000)
    filename: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    size_bytes: int = Field(default=0)
    duration_seconds: int = Field(default=0)
    is_short: bool = Field(default=False)  # videos published from reels/
    content_id: int = Field(foreign_key="content_blocks.id", index=True)
    asset_type: str = Field(default=AssetType.CONTENT, max_length=20)
    processing_status: str = Field(default=ProcessingStatus.PENDING, max_length=20)
    updated_at: datetime = Field(default_factory=utc_now)


class ContentFile(SQLModel, table=True):
    """
    Static asset copied into the local storage tree
    Table: content_files
    """
    __tablename__ = "content_files"

    id: Optional[int] = Field(default=None, primary_key=True)
    content_id: int = Field(foreign_key="content_blocks.id", index=True)
    file_type: str = Field(max_length=20)  # 'html', 'css' or 'js'
    file_path: str = Field(max_length=1000)
    is_main: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)


class ContentMetadata(SQLModel, table=True):
    """
    Free-form scalar attributes of a content block (read_time, author, ...)
    Table: content_metadata
    """
    __tablename__ = "content_metadata"

    content_id: int = Field(foreign_key="content_blocks.id", primary_key=True)
    key: str = Field(max_length=100, primary_key=True)
    value: str


class Gallery(SQLModel, table=True):
    """
    Image-set post attached to a content block
    Table: galleries
    """
    __tablename__ = "galleries"

    content_id: int = Field(foreign_key="content_blocks.id", primary_key=True)
    single: bool = Field(default=False)
    caption: str
    location: str = Field(max_length=255)
    hashtag_count: int = Field(default=0)
    has_link: bool = Field(default=False)
    likes: int = Field(default=0)
    comments: int = Field(default=0)


class GalleryImage(SQLModel, table=True):
    """
    Ordered images of a gallery
    Table: gallery_images
    """
    __tablename__ = "gallery_images"

    content_id: int = Field(foreign_key="content_blocks.id", primary_key=True)
    position: int = Field(primary_key=True)  # 1-based
    image_id: int = Field(sa_column=Column(BigInteger, ForeignKey("images.id"), nullable=False))


class ContentLink(SQLModel, table=True):
    """
    External link card with a preview image
    Table: content_links
    """
    __tablename__ = "content_links"

    content_id: int = Field(foreign_key="content_blocks.id", primary_key=True)
    image_id: int = Field(sa_column=Column(BigInteger, ForeignKey("images.id"), nullable=False))
    url: str = Field(max_length=1000)
    name: str = Field(max_length=255)
