from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from beartype import beartype

from .clips import Clip
from .config import ENCODE_QUEUE_FILENAME

_log = logging.getLogger(__name__)


class EncodeQueue(ABC):
    """Sink that accepts clips for encoding.

    Encoding itself happens elsewhere and asynchronously; nothing here waits
    for it to finish.
    """

    @abstractmethod
    def enqueue(self, clip: Clip, destination: Path) -> None:
        """Accept one clip; ``destination`` has no extension, the preset decides it."""

    @abstractmethod
    def start_batch(self) -> None:
        """Hand everything queued so far to the encoder."""

    def discard_pending(self) -> None:
        """Drop jobs left over from an earlier run that were never started."""


class ManifestEncodeQueue(EncodeQueue):
    """Writes the queued jobs to encode_queue.json for a host-side runner."""

    @beartype
    def __init__(self, output_dir: Path, preset_path: str, logger: logging.Logger | None = None) -> None:
        self.output_dir = output_dir
        self.preset_path = preset_path
        self.jobs: list[dict[str, Any]] = []
        self._log = logger or _log

    @beartype
    def enqueue(self, clip: Clip, destination: Path) -> None:
        self.jobs.append(
            {
                "clipIndex": clip.index,
                "clipName": clip.name,
                "sourceName": clip.source_name,
                "startTicks": str(clip.start_ticks),
                "endTicks": str(clip.end_ticks),
                "destination": str(destination),
                "preset": self.preset_path,
            }
        )

    @beartype
    def discard_pending(self) -> None:
        queue_path = self.output_dir / ENCODE_QUEUE_FILENAME
        if queue_path.is_file():
            queue_path.unlink()
            self._log.info("Stale encode batch removed", extra={"path": str(queue_path)})

    @beartype
    def start_batch(self) -> None:
        queue_path = self.output_dir / ENCODE_QUEUE_FILENAME
        payload = {
            "createdAt": datetime.now().strftime("%Y-%m-%dT%H:%M:%S"),
            "jobs": self.jobs,
        }
        with queue_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        self._log.info("Encode batch written", extra={"path": str(queue_path), "queued_clips": len(self.jobs)})
