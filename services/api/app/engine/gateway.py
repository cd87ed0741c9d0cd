from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict

from pydantic import ValidationError

from .errors import LiveClassNotFound, LiveClassValidationError
from .models import ConnectedUser, LiveClassInput
from .service import LiveClassService
from .ws import SNAPSHOT_EVENT, ClientConnection, snapshot_payload

logger = logging.getLogger(__name__)

Handler = Callable[[ClientConnection, Any], Awaitable[None]]


def _class_id(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload.get("classId")
    return payload


class LiveClassGateway:
    """Relays WebSocket events to the live-class service.

    Inbound frames look like ``{"event": "<name>", "payload": ...}``. Replies
    go only to the originating connection; registry changes are broadcast by
    the service.
    """

    def __init__(self, service: LiveClassService) -> None:
        self.service = service
        self.broadcaster = service.broadcaster
        self._handlers: Dict[str, Handler] = {
            "join": self._on_join,
            "startLiveClass": self._on_start,
            "endLiveClass": self._on_end,
            "joinLiveClass": self._on_join_class,
        }

    async def handle(self, connection: ClientConnection, message: Any) -> None:
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            self._error(connection, "Expected a JSON object with an 'event' field")
            return
        event = message["event"]
        handler = self._handlers.get(event)
        if handler is None:
            self._error(connection, f"Unknown event '{event}'")
            return
        await handler(connection, message.get("payload"))

    async def _on_join(self, connection: ClientConnection, payload: Any) -> None:
        try:
            user = ConnectedUser.model_validate(payload)
        except ValidationError:
            self._error(connection, "join requires an object with at least an 'id'")
            return
        self.broadcaster.identify(connection, user)
        logger.info("Client %s identified as %s (%s)", connection.id, user.id, user.role)
        self.broadcaster.send(connection, SNAPSHOT_EVENT, snapshot_payload(self.service.list_all()))

    async def _on_start(self, connection: ClientConnection, payload: Any) -> None:
        try:
            data = LiveClassInput.model_validate(payload if isinstance(payload, dict) else {})
            live_class = self.service.start(data)
        except (ValidationError, LiveClassValidationError) as exc:
            logger.warning("Rejected startLiveClass from %s: %s", connection.id, exc)
            self.broadcaster.send(connection, "classStarted", {"success": False, "message": str(exc)})
            return
        self.broadcaster.send(
            connection,
            "classStarted",
            {"success": True, "liveClass": live_class.to_wire()},
        )

    async def _on_end(self, connection: ClientConnection, payload: Any) -> None:
        class_id = _class_id(payload)
        try:
            self.service.end(str(class_id))
        except LiveClassNotFound as exc:
            self.broadcaster.send(connection, "classEnded", {"success": False, "message": str(exc)})
            return
        self.broadcaster.send(connection, "classEnded", {"success": True})

    async def _on_join_class(self, connection: ClientConnection, payload: Any) -> None:
        if connection.user is None:
            self._join_error(connection, "Send a join event with your identity first")
            return
        class_id = _class_id(payload)
        try:
            result = self.service.join(str(class_id), connection.user)
            live_class = self.service.find(str(class_id))
        except LiveClassNotFound:
            self._join_error(connection, "Class not found")
            return
        except LiveClassValidationError as exc:
            self._join_error(connection, str(exc))
            return
        self.broadcaster.send(
            connection,
            "joinClassSuccess",
            {
                "success": True,
                "meetingId": live_class.meeting_id,
                "alreadyJoined": result.already_joined,
                "liveClass": live_class.to_wire(),
            },
        )

    def _join_error(self, connection: ClientConnection, message: str) -> None:
        self.broadcaster.send(connection, "joinClassError", {"success": False, "message": message})

    def _error(self, connection: ClientConnection, message: str) -> None:
        logger.warning("Client %s sent a bad frame: %s", connection.id, message)
        self.broadcaster.send(connection, "error", {"message": message})
