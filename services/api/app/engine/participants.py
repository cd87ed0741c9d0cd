from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Optional

from .errors import LiveClassValidationError
from .models import PARTICIPANT_ROLES, JoinResult, LiveClass, Participant, utcnow

logger = logging.getLogger(__name__)


class ParticipantTracker:
    """Keeps the membership list of a single live class free of duplicates."""

    def __init__(self, clock: Callable[[], dt.datetime] = utcnow) -> None:
        self._clock = clock

    def join(
        self,
        live_class: LiveClass,
        user_id: str,
        name: Optional[str],
        role: Optional[str],
    ) -> JoinResult:
        if not user_id or not str(user_id).strip():
            raise LiveClassValidationError("A user id is required to join a live class")
        user_id = str(user_id)

        existing = next((p for p in live_class.participants if p.user_id == user_id), None)
        if existing is not None:
            return JoinResult(participant=existing, already_joined=True)

        if role not in PARTICIPANT_ROLES:
            raise LiveClassValidationError(
                f"Role '{role}' cannot join a live class (expected student or teacher)"
            )

        # joinTime must never precede the class start, even with a skewed clock
        joined_at = max(self._clock(), live_class.start_time)
        participant = Participant(user_id=user_id, name=name, role=role, joined_at=joined_at)
        live_class.participants.append(participant)
        logger.info("User %s (%s) joined live class %s", user_id, role, live_class.id)
        return JoinResult(participant=participant)
