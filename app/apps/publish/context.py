"""
Request-scoped state threaded through the publish pipeline
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.publish.services.media_tools import MediaToolkit


@dataclass
class PublishContext:
    session: AsyncSession
    toolkit: MediaToolkit
    content_dir: Path
    metadata: Dict[str, str]
    is_published: bool
    content_kind: str = "article"
    content_id: Optional[int] = None
    # local reference ("media/pic.jpg") -> canonical URL
    media_map: Dict[str, str] = field(default_factory=dict)

    def relative_key(self, path: Union[str, Path]) -> str:
        """Path of a file relative to the content directory, with forward slashes."""
        return Path(path).relative_to(self.content_dir).as_posix()

    def require_content_id(self) -> int:
        if self.content_id is None:
            raise RuntimeError("content id is not resolved yet")
        return self.content_id
