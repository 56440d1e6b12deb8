"""
Supabase Storage Service
Object store holding the public media of published content
"""
from supabase import Client
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

from app.apps.publish.utils.supabase_client import get_supabase_client
from app.config import BUCKET_NAME

logger = logging.getLogger(__name__)


class SupabaseStorageService:
    def __init__(self, client: Optional[Client] = None, bucket_name: str = BUCKET_NAME):
        self.client: Client = client or get_supabase_client()
        self.bucket_name = bucket_name

    def upload_file(self, local_path: Union[str, Path], remote_key: str, content_type: str = "application/octet-stream") -> Dict[str, Any]:
        """
        Upload a local file to the bucket, replacing any object stored under the same key.

        Args:
            local_path: File to upload.
            remote_key: Object key within the bucket (e.g. "images/originals/123.jpg").
            content_type: The MIME type of the file (default: "application/octet-stream").

        Returns:
            A dictionary with success status and the public URL, or error information.
        """
        try:
            file_content = Path(local_path).read_bytes()
            self.client.storage.from_(self.bucket_name).upload(
                path=remote_key,
                file=file_content,
                file_options={"content-type": content_type, "upsert": "true"}
            )
            public_url = self.client.storage.from_(self.bucket_name).get_public_url(remote_key)
            return {"success": True, "url": public_url}
        except Exception as e:
            logger.error(f"Error uploading {local_path} to {self.bucket_name}/{remote_key}: {str(e)}")
            return {"success": False, "error": str(e)}
