"""
Media collaborators used by the publish pipeline:
upload to the object store, image probing (Pillow) and video probing (ffprobe)
"""
from PIL import Image
from pathlib import Path
from typing import Tuple, Union
import json
import logging
import mimetypes
import subprocess

from app.apps.publish.exceptions import CollaboratorError

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type
IMAGE_FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "MPO": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
    "HEIF": "image/heic",
}

VIDEO_MIME_TYPES = {
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
}

DEFAULT_VIDEO_MIME_TYPE = "video/mp4"

FFPROBE_TIMEOUT_SECONDS = 60


def video_mime_type(path: Union[str, Path]) -> str:
    return VIDEO_MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_VIDEO_MIME_TYPE)


def guess_image_mime_type(path: Union[str, Path]) -> str:
    """MIME type from the file extension, used when probing fails."""
    suffix = Path(path).suffix.lower()
    mime_type, _ = mimetypes.guess_type(f"file{suffix}")
    if mime_type and mime_type.startswith("image/"):
        return mime_type
    return f"image/{suffix.lstrip('.') or 'unknown'}"


class MediaToolkit:
    """
    Narrow interface over the object store and the media probes.

    The storage service is created on first upload so drafts never need
    object store credentials.
    """

    def __init__(self, storage=None, ffprobe_path: str = "ffprobe"):
        self._storage = storage
        self.ffprobe_path = ffprobe_path

    @property
    def storage(self):
        if self._storage is None:
            from app.apps.publish.services.supabase_storage import SupabaseStorageService
            self._storage = SupabaseStorageService()
        return self._storage

    def upload(self, local_path: Union[str, Path], remote_key: str, content_type: str = "application/octet-stream") -> str:
        """
        Upload a file under remote_key.

        Returns:
            The remote URL reported by the store

        Raises:
            CollaboratorError: if the store rejects the upload
        """
        try:
            result = self.storage.upload_file(local_path, remote_key, content_type)
        except Exception as e:
            raise CollaboratorError(f"Upload of {local_path} to {remote_key} failed: {e}") from e

        if not result.get("success"):
            raise CollaboratorError(f"Upload of {local_path} to {remote_key} failed: {result.get('error')}")
        logger.info(f"Uploaded {local_path} to {remote_key}")
        return result.get("url", "")

    def probe_image(self, path: Union[str, Path]) -> Tuple[int, int, str]:
        """
        Read width, height and MIME type of an image.

        Raises:
            CollaboratorError: if Pillow cannot identify the file
        """
        try:
            with Image.open(path) as img:
                width, height = img.size
                image_format = img.format or ""
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise CollaboratorError(f"Cannot probe image {path}: {e}") from e

        if not image_format:
            return width, height, guess_image_mime_type(path)
        mime_type = IMAGE_FORMAT_MIME_TYPES.get(image_format.upper(), f"image/{image_format.lower()}")
        return width, height, mime_type

    def probe_video(self, path: Union[str, Path]) -> Tuple[int, str]:
        """
        Read duration (whole seconds) and MIME type of a video with ffprobe.

        Raises:
            CollaboratorError: if ffprobe is missing, fails or reports no duration
        """
        cmd = [
            self.ffprobe_path, "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            str(path),
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=FFPROBE_TIMEOUT_SECONDS)
            data = json.loads(result.stdout or "{}")
            duration = int(float(data["format"]["duration"]))
        except (OSError, subprocess.SubprocessError, ValueError, KeyError, TypeError) as e:
            raise CollaboratorError(f"Cannot probe video {path}: {e}") from e

        return duration, video_mime_type(path)


def get_media_toolkit() -> MediaToolkit:
    """
    Dependency providing the media collaborators
    Usage: toolkit: MediaToolkit = Depends(get_media_toolkit)
    """
    return MediaToolkit()
