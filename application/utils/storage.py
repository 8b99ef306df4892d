"""Application-level storage helpers to avoid infra coupling: content types, key hygiene, timeouts."""
import mimetypes
import os
from pathlib import PurePath

# Used when the platform mimetypes registry does not know the extension
_FALLBACK_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIN_UPLOAD_TIMEOUT = 30.0
MAX_UPLOAD_TIMEOUT = 120.0
# One extra second per 100 KiB
TIMEOUT_BYTES_PER_SECOND = 102400


def guess_content_type(filename: str) -> str:
    """Guess content type from filename.

    Args:
        filename: File name or path

    Returns:
        MIME type string
    """
    content_type, _ = mimetypes.guess_type(filename)
    if content_type:
        return content_type
    ext = PurePath(filename).suffix.lstrip(".").lower()
    return _FALLBACK_CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def sanitize_remote_key(remote_key: str) -> str:
    """Normalize separators to ``/`` and drop leading slashes."""
    if not remote_key:
        return ""
    return remote_key.replace("\\", "/").lstrip("/")


def adaptive_timeout(size: int) -> float:
    """Upload timeout in seconds, growing with size inside [30, 120]."""
    return max(MIN_UPLOAD_TIMEOUT, min(MAX_UPLOAD_TIMEOUT, MIN_UPLOAD_TIMEOUT + size / TIMEOUT_BYTES_PER_SECOND))


def unique_remote_key(local_path: str, record_id: int) -> str:
    """Collision-free key ``<basename>_<record_id>.<ext>`` for a local file.

    Example:
        unique_remote_key("/srv/media/2024/05/photo.jpg", 42) -> "photo_42.jpg"
    """
    path = PurePath(local_path)
    return f"{path.stem}_{record_id}{path.suffix}"


def is_within_root(path: str, root: str) -> bool:
    """True when absolute ``path`` resolves (symlinks included) to a file under ``root``."""
    if not path or not root or not os.path.isabs(path):
        return False
    real_root = os.path.realpath(root)
    real_path = os.path.realpath(path)
    if real_path == real_root:
        return False
    return os.path.commonpath([real_root, real_path]) == real_root
