"""Upload handling for recipe images.

The transport parses the multipart body; this module decides whether a file
was attached, enforces the size bound, writes it to storage and returns the
public path that gets persisted in ``recipes.image_path``.
"""

import re
import uuid
import logging
from pathlib import PurePosixPath, PureWindowsPath
from typing import Iterable, Optional

from fastapi import UploadFile

from ..errors import MalformedUpload
from .storage import LocalStorage

logger = logging.getLogger("recipebox.uploads")

IMAGES_DIR = "images"

# Path separators, control characters and the URL delimiters ? # %
_UNSAFE_CHARS = re.compile(r"[\\/\x00-\x1f\x7f?#%]")


def safe_filename(filename: str) -> str:
    """Drop client-side directories from an upload name.

    Spaces and non-ASCII letters are kept, so the stored path still carries
    the name the user picked.
    """
    name = PureWindowsPath(PurePosixPath(filename).name).name
    name = _UNSAFE_CHARS.sub("_", name).strip()
    if name in ("", ".", ".."):
        return "upload"
    return name


class UploadHandler:
    def __init__(self, storage: LocalStorage, max_bytes: int):
        self.storage = storage
        self.max_bytes = max_bytes

    def check_request_size(self, content_length: Optional[str]) -> None:
        """Reject bodies declared larger than the bound."""
        if content_length is None:
            return
        try:
            declared = int(content_length)
        except ValueError:
            raise MalformedUpload("Invalid Content-Length header")
        if declared > self.max_bytes:
            raise MalformedUpload(
                f"Request body too large: {declared} bytes (max {self.max_bytes})"
            )

    def ingest(self, upload: Optional[UploadFile], target_id: int) -> Optional[str]:
        """Store an attached file for target_id and return its public path.

        None means no file was attached: the field was absent, or the browser
        sent an empty file part because nothing was chosen.
        """
        if upload is None or not upload.filename:
            return None

        if upload.size is not None and upload.size > self.max_bytes:
            raise MalformedUpload(
                f"File too large: {upload.size} bytes (max {self.max_bytes})"
            )

        name = f"{target_id}_{uuid.uuid4().hex[:8]}_{safe_filename(upload.filename)}"
        key = f"{IMAGES_DIR}/{name}"
        try:
            upload.file.seek(0)
            path = self.storage.put_stream(key, upload.file)
        except OSError as e:
            logger.error(f"Failed to store upload for {target_id}: {e}")
            raise MalformedUpload(f"Could not read uploaded file: {e}")

        logger.info(f"Stored image for recipe {target_id} at {path}")
        return path

    def discard(self, path: Optional[str]) -> bool:
        """Remove a previously stored file by its public path."""
        if not path:
            return True
        key = self.storage.key_for(path)
        if key is None:
            logger.warning(f"Refusing to discard path outside upload root: {path}")
            return False
        return self.storage.delete(key)

    def reconcile(self, referenced_paths: Iterable[Optional[str]]) -> list[str]:
        """Delete stored images that no recipe references. Returns removed paths."""
        referenced = {p for p in referenced_paths if p}
        removed = []
        for key in list(self.storage.keys(IMAGES_DIR)):
            path = self.storage.url_for(key)
            if path in referenced:
                continue
            if self.storage.delete(key):
                removed.append(path)
        if removed:
            logger.info(f"Reconcile removed {len(removed)} orphaned upload(s)")
        return removed
