import os

# Public Jitsi by default; override via JITSI_BASE_URL for a self-hosted deployment
JITSI_BASE_URL = os.getenv("JITSI_BASE_URL", "https://meet.jit.si")


def default_room_name(subject: str, class_name: str, started_ms: int) -> str:
    return f"{subject}-{class_name}-{started_ms}"


def join_url(room_name: str, base_url: str | None = None) -> str:
    """Build the browser URL for a meeting room on the configured Jitsi server."""
    base = (base_url or JITSI_BASE_URL).rstrip("/")
    return f"{base}/{room_name}"
