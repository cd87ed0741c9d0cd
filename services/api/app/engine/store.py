from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Callable, Dict, List, Optional

from ..meet import default_room_name, join_url
from .errors import LiveClassNotFound, LiveClassValidationError
from .models import ConnectedUser, JoinResult, LiveClass, LiveClassInput, utcnow
from .participants import ParticipantTracker

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    ("subject", "subject"),
    ("teacher", "teacher"),
    ("teacher_id", "teacherId"),
    ("class_name", "class"),
)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class LiveClassStore:
    """In-memory registry of the classes that are live right now.

    Every read hands out deep copies; the only way to change a class is
    through the methods below.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], dt.datetime] = utcnow,
        jitsi_base_url: Optional[str] = None,
    ) -> None:
        self._clock = clock
        self._jitsi_base_url = jitsi_base_url
        self._classes: Dict[str, LiveClass] = {}
        self._issued_ids: set[str] = set()
        self._tracker = ParticipantTracker(clock=clock)

    def __len__(self) -> int:
        return len(self._classes)

    # --- Mutations -------------------------------------------------------

    def create(self, data: LiveClassInput) -> LiveClass:
        missing = [wire for attr, wire in REQUIRED_FIELDS if _blank(getattr(data, attr))]
        if missing:
            raise LiveClassValidationError(f"Missing required fields: {', '.join(missing)}")

        started = self._clock()
        room_name = data.room_name if not _blank(data.room_name) else default_room_name(
            data.subject, data.class_name, int(started.timestamp() * 1000)
        )
        jitsi_url = data.jitsi_url if not _blank(data.jitsi_url) else join_url(
            room_name, self._jitsi_base_url
        )

        live_class = LiveClass(
            id=self._new_id(),
            meeting_id=self._new_id(),
            subject=data.subject,
            teacher=data.teacher,
            teacher_id=data.teacher_id,
            class_name=data.class_name,
            room_name=room_name,
            jitsi_url=jitsi_url,
            is_live=True,
            start_time=started,
        )
        self._classes[live_class.id] = live_class
        logger.info(
            "Live class %s started: %s for %s by %s",
            live_class.id,
            live_class.subject,
            live_class.class_name,
            live_class.teacher_id,
        )
        return live_class.model_copy(deep=True)

    def terminate(self, class_id: str) -> LiveClass:
        live_class = self._classes.pop(class_id, None)
        if live_class is None:
            raise LiveClassNotFound(class_id)
        live_class.is_live = False
        live_class.end_time = self._clock()
        logger.info(
            "Live class %s ended with %d participant(s)",
            class_id,
            len(live_class.participants),
        )
        return live_class

    def join(self, class_id: str, user: ConnectedUser) -> JoinResult:
        live_class = self._get(class_id)
        result = self._tracker.join(live_class, user.id, user.name, user.role)
        return result.model_copy(deep=True)

    # --- Reads -----------------------------------------------------------

    def list_all(self) -> List[LiveClass]:
        return [c.model_copy(deep=True) for c in self._classes.values()]

    def find(self, class_id: str) -> LiveClass:
        return self._get(class_id).model_copy(deep=True)

    def filter_by_class(self, class_name: str) -> List[LiveClass]:
        return [
            c.model_copy(deep=True)
            for c in self._classes.values()
            if c.class_name == class_name and c.is_live
        ]

    def filter_by_teacher(self, teacher_id: str) -> List[LiveClass]:
        return [
            c.model_copy(deep=True)
            for c in self._classes.values()
            if c.teacher_id == teacher_id and c.is_live
        ]

    # --- Helpers ---------------------------------------------------------

    def _get(self, class_id: str) -> LiveClass:
        live_class = self._classes.get(class_id)
        if live_class is None:
            raise LiveClassNotFound(class_id)
        return live_class

    def _new_id(self) -> str:
        while True:
            candidate = str(uuid.uuid4())
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate
