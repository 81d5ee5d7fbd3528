"""API client for the face gallery service."""

import base64
import time
from typing import Any, Dict, Optional

import requests

# Constants
DEFAULT_POLLING_INTERVAL = 1.0  # seconds
DEFAULT_TIMEOUT = 300  # seconds (5 minutes)


class FaceGalleryClient:
    """Thin wrapper around the HTTP API.

    Args:
        api_url: Base URL for the API
        session: Optional requests session (for connection reuse or testing)
        timeout: Per-request timeout in seconds
    """

    def __init__(self, api_url: str, session: Optional[requests.Session] = None, timeout: float = 60.0):
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _encode(image_bytes: bytes) -> str:
        return base64.b64encode(image_bytes).decode("ascii")

    def recognize(
        self,
        image_bytes: bytes,
        multiple: bool = False,
        mode: Optional[str] = None,
        threshold: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Identify faces in an image.

        Returns:
            Response with ``results`` (identity or None per face) and ``no_face``
        """
        body = {"data": self._encode(image_bytes), "multiple": multiple}
        if mode is not None:
            body["mode"] = mode
        if threshold is not None:
            body["threshold"] = threshold
        return self._request("post", "recognize", json=body)

    def add_sample(self, identity: int, image_bytes: bytes) -> Dict[str, Any]:
        """Store a training image for an identity."""
        return self._request("post", "add", json={"data": self._encode(image_bytes), "id": identity})

    def train(self, mode: Optional[str] = None) -> Dict[str, Any]:
        """Rebuild the gallery and return the per-sample report."""
        params = {"mode": mode} if mode else None
        return self._request("post", "train", params=params)

    def train_async(self, mode: Optional[str] = None) -> str:
        """Start a background rebuild and return its task ID."""
        params = {"mode": mode} if mode else None
        result = self._request("post", "train/async", params=params)
        if "task_id" not in result:
            raise ValueError("Response did not contain a task_id: " + str(result))
        return result["task_id"]

    def task_status(self, task_id: str) -> Dict[str, Any]:
        return self._request("get", f"tasks/{task_id}")

    def task_result(self, task_id: str) -> Dict[str, Any]:
        return self._request("get", f"tasks/{task_id}/result")

    def wait_for_task(
        self,
        task_id: str,
        timeout: float = DEFAULT_TIMEOUT,
        polling_interval: float = DEFAULT_POLLING_INTERVAL,
    ) -> Dict[str, Any]:
        """Poll a task until it finishes, then return its result.

        Raises:
            TimeoutError: the task did not finish in time (it keeps running server-side)
            requests.HTTPError: the task failed
        """
        start_time = time.time()
        while True:
            status = self.task_status(task_id)
            if status["status"] in ("completed", "failed"):
                return self.task_result(task_id)
            if time.time() - start_time > timeout:
                raise TimeoutError(f"Task {task_id} did not finish within {timeout} seconds")
            time.sleep(polling_interval)

    def samples(self) -> Dict[str, Any]:
        return self._request("get", "samples")

    def gallery_status(self) -> Dict[str, Any]:
        return self._request("get", "gallery/status")
