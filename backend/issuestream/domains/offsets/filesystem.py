"""Filesystem offset store.

Implements the OffsetStore protocol with one JSON document per partition:

    {base_path}/{owner}/{repository}.json

Writes go to a temporary file that is then renamed over the target, so a
crash mid-write leaves the previous offset intact.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Dict, Optional, Union

import aiofiles
import aiofiles.os

from issuestream.core.exceptions import OffsetCommitError
from issuestream.core.logging import logger as default_logger
from issuestream.domains.offsets.protocols import OffsetStore

logger = default_logger.with_context(component="offset_store")


class FilesystemOffsetStore(OffsetStore):
    """Filesystem-backed offset store.

    Uses aiofiles for non-blocking file I/O operations.
    """

    def __init__(self, base_path: Union[str, Path]):
        """Initialize the store.

        Args:
            base_path: Root directory for offset documents
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"FilesystemOffsetStore initialized at {self.base_path}")

    def _resolve(self, partition: Dict[str, str]) -> Path:
        """Path of the offset document for ``partition``."""
        parts = [_safe_segment(partition[key]) for key in sorted(partition)]
        return self.base_path.joinpath(*parts[:-1], f"{parts[-1]}.json")

    async def load(self, partition: Dict[str, str]) -> Optional[Dict[str, str]]:
        """Read the committed offset; None when nothing was committed yet."""
        full_path = self._resolve(partition)
        if not await aiofiles.os.path.exists(full_path):
            return None

        async with aiofiles.open(full_path, "r", encoding="utf-8") as f:
            content = await f.read()
        document = json.loads(content)
        return {str(key): str(value) for key, value in document["offset"].items()}

    async def commit(self, partition: Dict[str, str], offset: Dict[str, str]) -> None:
        """Atomically replace the committed offset."""
        full_path = self._resolve(partition)
        tmp_path = full_path.with_suffix(".json.tmp")
        content = json.dumps({"partition": partition, "offset": offset}, indent=2, sort_keys=True)

        try:
            await asyncio.to_thread(full_path.parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
                await f.flush()
            await aiofiles.os.replace(tmp_path, full_path)
        except OSError as e:
            raise OffsetCommitError(str(full_path), f"Failed to write offset: {e}") from e


def _safe_segment(value: str) -> str:
    """Keep partition values from escaping the base directory."""
    cleaned = value.replace(os.sep, "_").replace("/", "_")
    if cleaned in ("", ".", ".."):
        raise ValueError(f"Invalid partition value: {value!r}")
    return cleaned
