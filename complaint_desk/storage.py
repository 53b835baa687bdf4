"""Local disk storage for evidence uploads."""

import logging
import os
import shutil
import time
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


class EvidenceStorage:
    """
    Stores uploaded evidence files below a root directory.

    Files land in ``evidence/{unix_timestamp}_{original_name}``; the returned
    path is relative to the root and is what gets persisted.
    """

    directory = "evidence"

    def __init__(self, root: str):
        self.root = root

    def absolute_path(self, relative_path: str) -> str:
        return os.path.join(self.root, relative_path)

    def save(self, filename: str, stream: BinaryIO, timestamp: Optional[int] = None) -> str:
        """
        Copy ``stream`` into storage.

        Args:
            filename: Client-side file name (directory parts are dropped)
            stream: Readable binary stream
            timestamp: Unix timestamp prefix (defaults to now)

        Returns:
            str: Stored path relative to the storage root
        """
        name = os.path.basename(filename.replace("\\", "/")) or "upload"
        stamp = int(time.time()) if timestamp is None else timestamp
        relative_path = f"{self.directory}/{stamp}_{name}"

        target = self.absolute_path(relative_path)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "wb") as out:
            shutil.copyfileobj(stream, out)

        logger.info("Stored evidence file %s", relative_path)
        return relative_path
