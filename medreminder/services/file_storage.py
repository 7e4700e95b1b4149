import logging
import os
import uuid
from typing import Optional

logger = logging.getLogger(__name__)


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _detect_ext(original_filename: Optional[str]) -> str:
    if not original_filename:
        return ""
    _, ext = os.path.splitext(os.path.basename(original_filename))
    return ext.lower()


def store_upload(content_bytes: bytes, original_filename: Optional[str], directory: str) -> str:
    """
    Write an uploaded file into the uploads directory under a random name.

    The stored name is ``<uuid4 hex><original extension>`` so client-supplied
    names never reach the filesystem. Returns the absolute stored path.
    """
    local_root = os.path.abspath(directory)
    _ensure_dir(local_root)
    filename = f"{uuid.uuid4().hex}{_detect_ext(original_filename)}"
    stored_path = os.path.join(local_root, filename)
    with open(stored_path, "wb") as f_out:
        f_out.write(content_bytes)
    logger.info(f"📁 [Uploads] Stored {original_filename or 'upload'} as {filename}")
    return stored_path


def remove_upload(path: Optional[str]) -> None:
    if not path:
        return
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        logger.warning(f"⚠️ [Uploads] Could not remove {path}: {e}")
