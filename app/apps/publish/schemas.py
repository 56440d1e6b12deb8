"""
Pydantic schemas for the publish module
"""
from pydantic import BaseModel, Field
from pathlib import Path
from typing import Dict, List


class PublishResponse(BaseModel):
    """Publish response"""
    success: bool
    content_id: int
    status: str  # 'draft' or 'published'
    message: str
    media: Dict[str, str] = Field(default_factory=dict)  # local reference -> canonical URL
    rewritten_files: List[str] = Field(default_factory=list)
    stored_files: List[str] = Field(default_factory=list)


class LinkCard(BaseModel):
    """Contents of a link/ folder: link.txt plus its preview image"""
    url: str
    name: str
    image_path: Path
