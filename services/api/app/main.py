import logging
import os
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import SessionLocal
from .engine.errors import LiveClassNotFound, LiveClassValidationError
from .engine.gateway import LiveClassGateway
from .engine.repo import LiveClassArchive
from .engine.service import LiveClassService
from .engine.store import LiveClassStore
from .engine.ws import LiveClassBroadcaster
from .meet import JITSI_BASE_URL
from .routes import live_classes, realtime

logger = logging.getLogger(__name__)

ARCHIVE_ENABLED = os.getenv("LIVE_CLASS_ARCHIVE", "1").lower() not in {"0", "false", "no"}


def _describe(exc: RequestValidationError) -> str:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body"
        problems.append(f"{field}: {error.get('msg', 'invalid')}")
    return "Invalid request: " + "; ".join(problems)


def build_service(*, archive: bool = ARCHIVE_ENABLED) -> LiveClassService:
    return LiveClassService(
        LiveClassStore(),
        LiveClassBroadcaster(),
        archive=LiveClassArchive(SessionLocal) if archive else None,
    )


def create_app(service: Optional[LiveClassService] = None) -> FastAPI:
    app = FastAPI(title="Live Classes API")

    # CORS
    raw_origins = os.getenv("CORS_ORIGIN", "*")
    origin_tokens = [token.strip() for token in raw_origins.split(",") if token.strip() and token.strip() != "*"]
    cors_kwargs: dict[str, Any] = {
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "allow_credentials": True,
    }
    if origin_tokens:
        cors_kwargs["allow_origins"] = origin_tokens
    else:
        cors_kwargs["allow_origins"] = []
        cors_kwargs["allow_origin_regex"] = r"https?://.*"
    app.add_middleware(CORSMiddleware, **cors_kwargs)

    service = service or build_service()
    app.state.live_classes = service
    app.state.live_class_gateway = LiveClassGateway(service)

    @app.on_event("startup")
    async def _startup() -> None:
        if service.archive is not None:
            service.archive.init_schema()
            logger.info("Live class archive ready")

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await service.wait_for_archive()

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": _describe(exc)})

    @app.exception_handler(LiveClassValidationError)
    async def _invalid_live_class(request: Request, exc: LiveClassValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})

    @app.exception_handler(LiveClassNotFound)
    async def _live_class_not_found(request: Request, exc: LiveClassNotFound):
        return JSONResponse(status_code=404, content={"success": False, "message": str(exc)})

    @app.get("/")
    async def health():
        broadcaster = service.broadcaster
        return {
            "status": "ok",
            "service": "live-classes",
            "live_classes": len(service.store),
            "connections": len(broadcaster.connections()),
            "identified_users": len(broadcaster.connected_users()),
        }

    @app.get("/health/meet")
    async def health_meet():
        base = JITSI_BASE_URL
        try:
            async with httpx.AsyncClient(timeout=3.0, follow_redirects=True) as client:
                r = await client.get(base)
                return {"ok": r.status_code < 400, "meet_url": base, "status": r.status_code}
        except Exception as exc:
            detail = str(exc) or repr(exc)
            return {"ok": False, "meet_url": base, "error": detail}

    app.include_router(live_classes.router)
    app.include_router(realtime.router)
    return app


app = create_app()
