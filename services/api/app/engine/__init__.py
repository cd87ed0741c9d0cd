"""Live-class registry package."""

from .errors import LiveClassNotFound, LiveClassValidationError
from .gateway import LiveClassGateway
from .service import LiveClassService
from .store import LiveClassStore
from .ws import LiveClassBroadcaster

__all__ = [
    "LiveClassBroadcaster",
    "LiveClassGateway",
    "LiveClassNotFound",
    "LiveClassService",
    "LiveClassStore",
    "LiveClassValidationError",
]
