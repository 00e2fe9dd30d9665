"""Object storage collaborator — owns document bytes, hands back locators.

The document store only ever sees the locator string. :class:`LocalObjectStorage`
keeps files under ``settings.upload_dir`` and uses ``local://<key>`` locators;
a cloud bucket implementation only has to honour the same two methods.
"""

import asyncio
import logging
import uuid
from pathlib import Path, PurePosixPath

from onboarding.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

LOCAL_SCHEME = "local://"


class LocalObjectStorage:
    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()

    @staticmethod
    def build_key(merchant_id: str, document_type: str, filename: str | None) -> str:
        suffix = PurePosixPath(filename or "").suffix.lower()
        return f"merchants/{merchant_id}/{document_type}/{uuid.uuid4().hex}{suffix}"

    def _path_for(self, locator: str) -> Path:
        if not locator.startswith(LOCAL_SCHEME):
            raise NotFoundError("Stored file", locator)
        path = (self._root / locator[len(LOCAL_SCHEME):]).resolve()
        # Keys never escape the storage root
        if self._root not in path.parents:
            raise NotFoundError("Stored file", locator)
        return path

    async def put(self, key: str, data: bytes) -> str:
        locator = f"{LOCAL_SCHEME}{key}"
        path = self._path_for(locator)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.debug("Stored %d bytes at %s", len(data), locator)
        return locator

    async def get(self, locator: str) -> bytes:
        path = self._path_for(locator)
        if not path.is_file():
            raise NotFoundError("Stored file", locator)
        return await asyncio.to_thread(path.read_bytes)
