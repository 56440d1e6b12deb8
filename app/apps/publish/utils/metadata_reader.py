"""
Reader for metadata.txt files
One key=value pair per line, the first '=' splits key from value
"""
from pathlib import Path
from typing import Dict, Iterable, List, Union
import logging

logger = logging.getLogger(__name__)


def parse_metadata(path: Union[str, Path]) -> Dict[str, str]:
    """
    Parse a flat key=value file.

    Values are kept exactly as written: no trimming, no quoting and no escaping
    ('=' characters after the first one belong to the value). Lines without
    '=' are ignored.

    Args:
        path: Path of the metadata file

    Returns:
        Mapping of keys to values, or an empty dict when the file cannot be read.
        Callers must treat an empty result as a failed precondition.
    """
    try:
        # newline="" keeps a lone "\r" inside a value
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Cannot open metadata file at {path}: {e}")
        return {}

    metadata: Dict[str, str] = {}
    # Only "\n" ends a line, other line separators belong to the value
    for line in text.split("\n"):
        if line.endswith("\r"):
            line = line[:-1]
        key, separator, value = line.partition("=")
        if not separator:
            continue
        metadata[key] = value
        logger.debug(f"Parsed metadata from {path}: {key} = {value}")

    return metadata


def find_missing_keys(metadata: Dict[str, str], required: Iterable[str]) -> List[str]:
    """Return the required keys absent from metadata, sorted."""
    return sorted(key for key in set(required) if key not in metadata)


def split_tags(value: str) -> List[str]:
    """
    Split a comma separated tag list.
    Tokens are trimmed of spaces and tabs; empty tokens and repeats are dropped.
    """
    tags: List[str] = []
    for token in value.split(","):
        tag = token.strip(" \t")
        if tag and tag not in tags:
            tags.append(tag)
    return tags
