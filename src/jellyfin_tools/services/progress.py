from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class ProgressEvent:
    """One processed item of a batch operation."""

    category: str
    processed: int
    total: int
    name: str
    succeeded: bool


ProgressCallback = Callable[[ProgressEvent], None]


def queue_progress(queue: asyncio.Queue[ProgressEvent]) -> ProgressCallback:
    """Forward progress events into ``queue`` so a UI loop can consume them."""

    def _report(event: ProgressEvent) -> None:
        queue.put_nowait(event)

    return _report


__all__ = ["ProgressCallback", "ProgressEvent", "queue_progress"]
