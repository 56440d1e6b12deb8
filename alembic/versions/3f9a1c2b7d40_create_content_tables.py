"""Create content publishing tables

Revision ID: 3f9a1c2b7d40
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f9a1c2b7d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('content_blocks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('site_id', sa.Integer(), nullable=False),
        sa.Column('type_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('language', sa.String(length=10), nullable=False),
        sa.Column('thumbnail_url', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', 'site_id', 'type_id', name='uq_content_blocks_identity')
    )
    op.create_index(op.f('ix_content_blocks_slug'), 'content_blocks', ['slug'], unique=False)
    op.create_index(op.f('ix_content_blocks_site_id'), 'content_blocks', ['site_id'], unique=False)
    op.create_index(op.f('ix_content_blocks_status'), 'content_blocks', ['status'], unique=False)

    op.create_table('articles',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('body_markdown', sa.Text(), nullable=True),
        sa.Column('last_edited', sa.DateTime(timezone=True), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.PrimaryKeyConstraint('content_id')
    )

    op.create_table('tags',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tags_name'), 'tags', ['name'], unique=True)

    op.create_table('content_tags',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('content_id', 'tag_id')
    )

    op.create_table('images',
        sa.Column('id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('original_url', sa.String(length=1000), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('width', sa.Integer(), nullable=False),
        sa.Column('height', sa.Integer(), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('asset_type', sa.String(length=20), nullable=False),
        sa.Column('processing_status', sa.String(length=20), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_images_content_id'), 'images', ['content_id'], unique=False)

    op.create_table('videos',
        sa.Column('id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('original_url', sa.String(length=1000), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('duration_seconds', sa.Integer(), nullable=False),
        sa.Column('is_short', sa.Boolean(), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('asset_type', sa.String(length=20), nullable=False),
        sa.Column('processing_status', sa.String(length=20), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_videos_content_id'), 'videos', ['content_id'], unique=False)

    op.create_table('content_files',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('file_type', sa.String(length=20), nullable=False),
        sa.Column('file_path', sa.String(length=1000), nullable=False),
        sa.Column('is_main', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_content_files_content_id'), 'content_files', ['content_id'], unique=False)

    op.create_table('content_metadata',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.PrimaryKeyConstraint('content_id', 'key')
    )

    op.create_table('galleries',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('single', sa.Boolean(), nullable=False),
        sa.Column('caption', sa.Text(), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('hashtag_count', sa.Integer(), nullable=False),
        sa.Column('has_link', sa.Boolean(), nullable=False),
        sa.Column('likes', sa.Integer(), nullable=False),
        sa.Column('comments', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.PrimaryKeyConstraint('content_id')
    )

    op.create_table('gallery_images',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('image_id', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.ForeignKeyConstraint(['image_id'], ['images.id']),
        sa.PrimaryKeyConstraint('content_id', 'position')
    )

    op.create_table('content_links',
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('image_id', sa.BigInteger(), nullable=False),
        sa.Column('url', sa.String(length=1000), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_blocks.id']),
        sa.ForeignKeyConstraint(['image_id'], ['images.id']),
        sa.PrimaryKeyConstraint('content_id')
    )


def downgrade():
    op.drop_table('content_links')
    op.drop_table('gallery_images')
    op.drop_table('galleries')
    op.drop_table('content_metadata')
    op.drop_index(op.f('ix_content_files_content_id'), table_name='content_files')
    op.drop_table('content_files')
    op.drop_index(op.f('ix_videos_content_id'), table_name='videos')
    op.drop_table('videos')
    op.drop_index(op.f('ix_images_content_id'), table_name='images')
    op.drop_table('images')
    op.drop_table('content_tags')
    op.drop_index(op.f('ix_tags_name'), table_name='tags')
    op.drop_table('tags')
    op.drop_table('articles')
    op.drop_index(op.f('ix_content_blocks_status'), table_name='content_blocks')
    op.drop_index(op.f('ix_content_blocks_site_id'), table_name='content_blocks')
    op.drop_index(op.f('ix_content_blocks_slug'), table_name='content_blocks')
    op.drop_table('content_blocks')
