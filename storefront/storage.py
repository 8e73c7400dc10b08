import logging
import time
from functools import lru_cache
from pathlib import Path

from storefront import config

logger = logging.getLogger(__name__)


class LocalMediaStorage:
    """Blob store on the local disk, served by the app under ``/media``."""

    def __init__(self, root, base_url: str = config.MEDIA_BASE_URL):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def put(self, folder: str, filename: str, content: bytes) -> str:
        ext = Path(filename or "").suffix.lstrip(".").lower() or "bin"
        key = f"{folder}/{int(time.time() * 1000)}.{ext}"
        target = self.root / key
        # two uploads in the same millisecond
        counter = 1
        while target.exists():
            key = f"{folder}/{int(time.time() * 1000)}-{counter}.{ext}"
            target = self.root / key
            counter += 1
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.info("Stored %d bytes at %s", len(content), key)
        return key

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"


@lru_cache(maxsize=None)
def get_storage() -> LocalMediaStorage:
    return LocalMediaStorage(config.MEDIA_ROOT)
