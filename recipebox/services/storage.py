import os
import shutil
import logging
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

logger = logging.getLogger("recipebox.storage")


class LocalStorage:
    """Files on local disk, addressed by a relative key and served under a URL prefix."""

    def __init__(self, root: Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if ".." in Path(key).parts or key.startswith("/"):
            raise ValueError("Invalid storage key")
        return self.root / key

    def put_stream(self, key: str, src: BinaryIO) -> str:
        """
        Copy a file object to disk under key.
        The copy lands in a temp file next to the target and is moved into
        place with os.replace, so readers never see a half-written file.
        Returns: Public URL path
        """
        file_path = self._path_for(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=file_path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as dst:
                shutil.copyfileobj(src, dst)
            os.replace(tmp_name, file_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.info(f"Saved {file_path.stat().st_size} bytes to {file_path}")
        return self.url_for(key)

    def url_for(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"

    def key_for(self, url: str) -> Optional[str]:
        """Inverse of url_for; None if the URL is not under this storage."""
        prefix = self.url_prefix + "/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):]

    def exists(self, key: str) -> bool:
        return self._path_for(key).exists()

    def keys(self, subdir: str = "") -> Iterator[str]:
        base = self._path_for(subdir) if subdir else self.root
        if not base.exists():
            return
        for path in sorted(base.rglob("*")):
            if path.is_file() and not path.name.startswith(".upload-"):
                yield path.relative_to(self.root).as_posix()

    def delete(self, key: str) -> bool:
        """Remove the file stored under key.

        An already missing file counts as removed. Keys that escape the root,
        and filesystem errors, are logged and reported as False.
        """
        try:
            file_path = self._path_for(key)
        except ValueError:
            logger.warning(f"Invalid delete key: {key}")
            return False

        try:
            if file_path.exists():
                file_path.unlink()
                logger.info(f"Deleted file {file_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to delete {file_path}: {e}")
            return False
