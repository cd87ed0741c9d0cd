from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ..engine.models import LiveClass, LiveClassInput
from ..engine.service import LiveClassService

router = APIRouter(prefix="/api/live-classes", tags=["live-classes"])


def get_service(request: Request) -> LiveClassService:
    return request.app.state.live_classes


@router.get("", response_model=list[LiveClass])
async def list_live_classes(service: LiveClassService = Depends(get_service)):
    return service.list_all()


@router.post("/start", status_code=201)
async def start_live_class(body: LiveClassInput, service: LiveClassService = Depends(get_service)):
    """
    Starts a live class and pushes the new registry to every WebSocket client.
    Missing subject/teacher/teacherId/class yields a 400 with a message.
    """
    live_class = service.start(body)
    return {"success": True, "liveClass": live_class.to_wire()}


@router.delete("/end/{class_id}")
async def end_live_class(class_id: str, service: LiveClassService = Depends(get_service)):
    service.end(class_id)
    return {"success": True}


@router.get("/class/{class_name}", response_model=list[LiveClass])
async def live_classes_for_class(class_name: str, service: LiveClassService = Depends(get_service)):
    return service.list_by_class(class_name)


@router.get("/teacher/{teacher_id}", response_model=list[LiveClass])
async def live_classes_for_teacher(teacher_id: str, service: LiveClassService = Depends(get_service)):
    return service.list_by_teacher(teacher_id)


@router.get("/history")
async def ended_live_classes(
    limit: int = Query(50, ge=1, le=500),
    teacher_id: Optional[str] = Query(None, alias="teacherId"),
    service: LiveClassService = Depends(get_service),
):
    return await service.history(limit=limit, teacher_id=teacher_id)


@router.get("/{class_id}", response_model=LiveClass)
async def get_live_class(class_id: str, service: LiveClassService = Depends(get_service)):
    return service.find(class_id)
