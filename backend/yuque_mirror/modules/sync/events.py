"""Run state, cancellation and progress fan-out for the sync orchestrator."""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, Set

from ...infrastructure.logging import generate_sync_run_id
from .schemas import SyncEvent, SyncProgress


class CancellationToken:
    """Cooperative cancellation flag checked between documents."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled


@dataclass
class SyncRunState:
    """What the orchestrator knows about the run in progress."""

    is_running: bool = False
    run_id: Optional[str] = None
    history_id: Optional[int] = None
    session_id: Optional[int] = None
    current_document: Optional[str] = None
    last_progress: Optional[SyncProgress] = None
    token: CancellationToken = field(default_factory=CancellationToken)

    def begin(self) -> None:
        self.is_running = True
        self.run_id = generate_sync_run_id()
        self.token = CancellationToken()

    def reset(self) -> None:
        self.is_running = False
        self.run_id = None
        self.history_id = None
        self.session_id = None
        self.current_document = None
        self.last_progress = None
        self.token = CancellationToken()


class SyncEventStream:
    """Fans sync events out to any number of subscribers.

    Each subscriber gets its own queue. A subscription ends after the event
    that finishes a run has been delivered.

    Example:
        ```python
        async for event in orchestrator.events.subscribe():
            print(event.model_dump_json())
        ```
    """

    def __init__(self, max_queue_size: int = 1000):
        self.max_queue_size = max_queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: SyncEvent) -> None:
        """Deliver an event to every subscriber without waiting.

        A subscriber whose queue is full misses the event.
        """
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                continue

    async def subscribe(self) -> AsyncIterator[SyncEvent]:
        """Yield events until the current run finishes."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.add(queue)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.is_final:
                    return
        finally:
            self._subscribers.discard(queue)
