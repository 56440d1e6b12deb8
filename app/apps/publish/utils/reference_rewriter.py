"""
Rewrites relative references in markup, script and style files to canonical URLs
"""
from pathlib import Path
from typing import Dict, List, Union
import logging
import re

from app import config
from app.apps.publish.exceptions import StorageIOError

logger = logging.getLogger(__name__)

REWRITABLE_SUFFIXES = {".html", ".js", ".css"}

# Relative values only: no scheme ("https:", "data:") and no leading "/"
_RELATIVE_VALUE = r"(?:\./)?(?![A-Za-z][A-Za-z0-9+.\-]*:|/)"

STYLESHEET_PATTERN = re.compile(r"""href\s*=\s*(["'])""" + _RELATIVE_VALUE + r"""([^"']*\.css)\1""")
SCRIPT_PATTERN = re.compile(r"""src\s*=\s*(["'])""" + _RELATIVE_VALUE + r"""([^"']*\.js)\1""")


def content_base_url(content_kind: str, content_id: int) -> str:
    """Public base of the stored files of one content unit, e.g. https://host/article/42/"""
    return f"{config.CONTENT_BASE_URL}/{content_kind}/{content_id}/"


def replace_media_references(text: str, media_map: Dict[str, str]) -> str:
    """Replace every literal occurrence of each local reference by its canonical URL."""
    # Longest first so "media/a.jpg.webp" is not split by "media/a.jpg"
    for local_reference in sorted(media_map, key=len, reverse=True):
        text = text.replace(local_reference, media_map[local_reference])
    return text


def absolutize_assets(text: str, base_url: str) -> str:
    """Point relative stylesheet hrefs and script srcs of the entry markup at base_url."""
    text = STYLESHEET_PATTERN.sub(lambda m: f'href="{base_url}{m.group(2)}"', text)
    return SCRIPT_PATTERN.sub(lambda m: f'src="{base_url}{m.group(2)}"', text)


def rewrite_references(
    content_dir: Union[str, Path],
    media_map: Dict[str, str],
    content_id: int,
    is_published: bool,
    content_kind: str = "article",
) -> List[Path]:
    """
    Rewrite the top-level .html, .js and .css files of a content directory in place.

    Drafts are left untouched. A file is only written back when its content changed.
    Bytes that are not UTF-8 are kept as they are.

    Returns:
        The files that were rewritten

    Raises:
        StorageIOError: a rewritable file could not be read or written back
    """
    if not is_published:
        logger.info(f"Content {content_id} is a draft, keeping relative references")
        return []

    content_dir = Path(content_dir)
    base_url = content_base_url(content_kind, content_id)
    rewritten: List[Path] = []

    for file_path in sorted(content_dir.iterdir()):
        if not file_path.is_file() or file_path.suffix.lower() not in REWRITABLE_SUFFIXES:
            continue

        try:
            # surrogateescape round-trips bytes that are not UTF-8
            original = file_path.read_bytes().decode("utf-8", errors="surrogateescape")
        except OSError as e:
            raise StorageIOError(f"Failed to read {file_path.name} for content {content_id}") from e

        content = replace_media_references(original, media_map)
        if file_path.name == config.ENTRY_MARKUP_FILENAME:
            content = absolutize_assets(content, base_url)

        if content == original:
            continue

        try:
            file_path.write_bytes(content.encode("utf-8", errors="surrogateescape"))
        except OSError as e:
            raise StorageIOError(f"Failed to rewrite {file_path.name} for content {content_id}") from e

        logger.info(f"Rewrote references in {file_path} for content {content_id}")
        rewritten.append(file_path)

    return rewritten
