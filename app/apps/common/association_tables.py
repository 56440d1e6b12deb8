"""
Association tables for many-to-many relationships
These are join tables that connect models together
"""
from sqlalchemy import Table, Column, Integer, ForeignKey
from sqlmodel import SQLModel

# Association table for ContentBlock ↔ Tag (many-to-many)
# The composite primary key makes each (content, tag) pair unique
content_tags = Table(
    "content_tags",
    SQLModel.metadata,
    Column(
        "content_id",
        Integer,
        ForeignKey("content_blocks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

# Ensure tables are registered with SQLModel metadata
# This is important for table creation in tests
__all__ = ["content_tags"]
