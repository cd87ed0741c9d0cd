from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from .models import ConnectedUser, JoinResult, LiveClass, LiveClassInput
from .repo import LiveClassArchive
from .store import LiveClassStore
from .ws import LiveClassBroadcaster

logger = logging.getLogger(__name__)


class LiveClassService:
    """Lifecycle operations shared by the REST routes and the WebSocket gateway.

    Mutations go to the store first and are then pushed to every connected
    client as a full snapshot. The archive, when configured, is written in a
    background task after the broadcast and never affects the registry;
    `wait_for_archive` awaits the writes still in flight.
    """

    def __init__(
        self,
        store: LiveClassStore,
        broadcaster: LiveClassBroadcaster,
        archive: Optional[LiveClassArchive] = None,
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.archive = archive
        self._pending: Set[asyncio.Task] = set()

    def start(self, data: LiveClassInput) -> LiveClass:
        live_class = self.store.create(data)
        self.broadcaster.broadcast_snapshot(self.store.list_all())
        return live_class

    def end(self, class_id: str) -> LiveClass:
        ended = self.store.terminate(class_id)
        self.broadcaster.broadcast_snapshot(self.store.list_all())
        if self.archive is not None:
            self._schedule_archive(ended)
        return ended

    async def wait_for_archive(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def join(self, class_id: str, user: ConnectedUser) -> JoinResult:
        return self.store.join(class_id, user)

    def list_all(self) -> List[LiveClass]:
        return self.store.list_all()

    def find(self, class_id: str) -> LiveClass:
        return self.store.find(class_id)

    def list_by_class(self, class_name: str) -> List[LiveClass]:
        return self.store.filter_by_class(class_name)

    def list_by_teacher(self, teacher_id: str) -> List[LiveClass]:
        return self.store.filter_by_teacher(teacher_id)

    async def history(
        self, limit: int = 50, teacher_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        if self.archive is None:
            return []
        await self.wait_for_archive()
        return await self.archive.recent(limit=limit, teacher_id=teacher_id)

    # --- Helpers ---------------------------------------------------------

    def _schedule_archive(self, ended: LiveClass) -> None:
        task = asyncio.create_task(self.archive.record_ended(ended))
        self._pending.add(task)
        task.add_done_callback(lambda t: self._archive_done(t, ended.id))

    def _archive_done(self, task: asyncio.Task, class_id: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Archiving live class %s was cancelled", class_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Failed to archive live class %s: %s", class_id, exc, exc_info=exc)
