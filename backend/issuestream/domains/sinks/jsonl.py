"""JSON-lines file sink.

Appends one JSON document per event:

    {"topic": ..., "partition": {...}, "offset": {...}, "key": {...},
     "value": {...}, "timestamp_ms": ...}
"""

from pathlib import Path
from typing import Optional, Union

import aiofiles
from aiofiles.threadpool.text import AsyncTextIOWrapper

from issuestream.domains.sinks.protocols import EventSink
from issuestream.platform.events import OutboundEvent


class JsonLinesSink(EventSink):
    """Appends events to a ``.jsonl`` file, flushing after every event."""

    def __init__(self, path: Union[str, Path]):
        """Initialize the sink; the file is opened on first publish."""
        self.path = Path(path)
        self._file: Optional[AsyncTextIOWrapper] = None
        self.published = 0

    async def publish(self, event: OutboundEvent) -> None:
        """Append ``event`` as one line."""
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = await aiofiles.open(self.path, "a", encoding="utf-8")
        await self._file.write(event.model_dump_json() + "\n")
        await self._file.flush()
        self.published += 1

    async def close(self) -> None:
        """Close the file."""
        if self._file is not None:
            await self._file.close()
            self._file = None
