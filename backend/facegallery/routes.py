"""
API route handlers for the face gallery service.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from .bg_operations import bg_rebuild, bg_recognize
from .config import Mode
from .exceptions import RebuildInProgressError
from .schemas import AddSampleRequest, AddSampleResponse, RecognizeRequest, RecognizeResponse, TaskSubmitted
from .services import Services
from .tasks import COMPLETED, FAILED
from .utils import decode_base64

router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


# ---------- Recognition routes ----------
@router.post("/recognize", response_model=RecognizeResponse)
def recognize(body: RecognizeRequest, services: Services = Depends(get_services)):
    """Identify the face (or every face, with ``multiple``) in an image."""
    raw = decode_base64(body.data)
    result = services.recognizer.recognize(raw, multiple=body.multiple, mode=body.mode, threshold=body.threshold)
    return result.to_dict()


@router.post("/recognize/async", response_model=TaskSubmitted)
def recognize_async(body: RecognizeRequest, services: Services = Depends(get_services)):
    """Recognize in the background. Returns a task ID to check status."""
    raw = decode_base64(body.data)
    task_id = bg_recognize(services.runner, services.recognizer, raw, body.multiple, body.mode, body.threshold)
    return {"task_id": task_id, "status": "pending"}


# ---------- Training routes ----------
@router.post("/add", response_model=AddSampleResponse)
def add_sample(body: AddSampleRequest, services: Services = Depends(get_services)):
    """Store a labeled training image. It is used from the next rebuild on."""
    raw = decode_base64(body.data)
    path = services.store.add_sample(body.id, raw)
    return {
        "filename": path.name,
        "path": str(path.relative_to(services.store.root)),
        "id": body.id,
    }


@router.post("/train")
def train(
    mode: Optional[Mode] = Query(None, description="Detection mode override"),
    services: Services = Depends(get_services),
):
    """Rebuild the gallery from every stored sample."""
    return services.builder.rebuild(mode=mode).to_dict()


@router.post("/train/async", response_model=TaskSubmitted)
def train_async(
    mode: Optional[Mode] = Query(None, description="Detection mode override"),
    services: Services = Depends(get_services),
):
    """Rebuild the gallery in the background. Returns a task ID to check status."""
    if services.registry.is_rebuilding:
        raise RebuildInProgressError()
    task_id = bg_rebuild(services.runner, services.builder, mode)
    return {"task_id": task_id, "status": "pending"}


@router.get("/samples")
def list_samples(services: Services = Depends(get_services)):
    """List all training samples organized by identity."""
    return {"root": str(services.store.root), "labels": services.store.summary()}


@router.get("/gallery/status")
def gallery_status(services: Services = Depends(get_services)):
    """Describe the active gallery."""
    status = services.registry.snapshot().to_dict()
    status["rebuilding"] = services.registry.is_rebuilding
    return status


# ---------- Task management routes ----------
@router.get("/tasks/{task_id}")
def get_task(task_id: str, services: Services = Depends(get_services)):
    """Get the status of a background task."""
    services.runner.clean_old_tasks()
    return services.runner.status(task_id)


@router.get("/tasks/{task_id}/result")
def get_task_result(task_id: str, services: Services = Depends(get_services)):
    """Get the result of a finished background task."""
    services.runner.clean_old_tasks()
    task = services.runner.get(task_id)

    if task.status == FAILED:
        return JSONResponse(status_code=500, content={"status": FAILED, "error": task.error})
    if task.status != COMPLETED:
        return {"status": task.status, "message": "Task is still in progress"}
    return task.result


# ---------- Debug routes ----------
@router.get("/debug/ping")
def ping():
    """Simple debug endpoint to test connectivity."""
    return {"status": "ok", "message": "API server is running"}
