"""
Request and response bodies for the HTTP API.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .config import Mode


class RecognizeRequest(BaseModel):
    data: str = Field(..., description="Base64-encoded image")
    multiple: bool = Field(False, description="Classify every face instead of the primary one")
    mode: Optional[Mode] = Field(None, description="Detection mode override")
    threshold: Optional[float] = Field(None, ge=0.0, description="Maximum cosine distance for a match")


class RecognizeResponse(BaseModel):
    results: List[Optional[int]]
    no_face: bool
    gallery_version: int
    error: Optional[Dict[str, Any]] = None


class AddSampleRequest(BaseModel):
    data: str = Field(..., description="Base64-encoded image")
    id: int = Field(..., description="Identity label")


class AddSampleResponse(BaseModel):
    filename: str
    path: str
    id: int


class TaskSubmitted(BaseModel):
    task_id: str
    status: str
