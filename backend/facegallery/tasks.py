"""
Background task processing for compute-intensive operations (rebuilds, large recognitions).
"""
import asyncio
import logging
import queue
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from . import config
from .exceptions import FaceGalleryError, TaskNotFoundError

logger = logging.getLogger(__name__)

# Task states
PENDING = "pending"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"


class Task:
    """Represents a background processing task."""

    def __init__(self, name: str, func: Callable, *args, **kwargs):
        self.id = str(uuid.uuid4())
        self.name = name
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self.status = PENDING
        self.result = None
        self.error: Optional[Dict[str, Any]] = None
        self.created_at = time.time()
        self.started_at: Optional[float] = None
        self.completed_at: Optional[float] = None

    def execute(self):
        """Execute the task function and capture results."""
        self.status = RUNNING
        self.started_at = time.time()

        try:
            self.result = self.func(*self.args, **self.kwargs)
            self.status = COMPLETED
        except FaceGalleryError as e:
            self.error = e.to_dict()
            self.status = FAILED
            logger.error(f"Task {self.id} ({self.name}) failed: {e.message}")
        except Exception as e:
            self.error = {"code": "INTERNAL_ERROR", "message": str(e)}
            self.status = FAILED
            logger.exception(f"Task {self.id} ({self.name}) crashed")
        finally:
            self.completed_at = time.time()

    @property
    def done(self) -> bool:
        return self.status in (COMPLETED, FAILED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert task to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "execution_time": (self.completed_at - self.started_at) if self.completed_at and self.started_at else None,
            "wait_time": (self.started_at - self.created_at) if self.started_at else None,
            "has_error": self.error is not None,
            "error": self.error,
        }


class TaskRunner:
    """A task queue served by a fixed pool of daemon worker threads.

    Workers start lazily on the first submission and stop with ``shutdown``.
    """

    def __init__(self, max_workers: int = config.MAX_WORKERS, max_age: int = config.TASK_MAX_AGE):
        self.max_workers = max_workers
        self.max_age = max_age
        self._queue: "queue.Queue[Task]" = queue.Queue()
        self._tasks: Dict[str, Task] = {}
        self._tasks_lock = threading.Lock()
        self._workers: List[threading.Thread] = []
        self._stopping = threading.Event()

    def _worker(self):
        logger.info(f"Starting worker thread {threading.current_thread().name}")

        while not self._stopping.is_set():
            try:
                task = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

            logger.info(f"Processing task {task.id} ({task.name})")
            task.execute()
            self._queue.task_done()
            logger.info(f"Completed task {task.id} with status {task.status}")

    def start(self):
        """Start worker threads if not already running."""
        if self._workers:
            return
        self._stopping.clear()
        for i in range(self.max_workers):
            t = threading.Thread(target=self._worker, daemon=True, name=f"FaceGallery-Worker-{i + 1}")
            t.start()
            self._workers.append(t)
        logger.info(f"Started {self.max_workers} worker threads")

    def shutdown(self, timeout: float = 5.0):
        self._stopping.set()
        for t in self._workers:
            t.join(timeout)
        self._workers = []

    def submit(self, name: str, func: Callable, *args, **kwargs) -> str:
        """Submit a task for background processing and return its ID."""
        task = Task(name, func, *args, **kwargs)
        with self._tasks_lock:
            self._tasks[task.id] = task
        self._queue.put(task)
        self.start()
        return task.id

    def get(self, task_id: str) -> Task:
        with self._tasks_lock:
            task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def status(self, task_id: str) -> Dict[str, Any]:
        return self.get(task_id).to_dict()

    def clean_old_tasks(self, max_age_seconds: Optional[int] = None) -> int:
        """Drop finished tasks older than ``max_age_seconds`` (default: runner max age)."""
        max_age = self.max_age if max_age_seconds is None else max_age_seconds
        now = time.time()

        with self._tasks_lock:
            expired = [
                task_id for task_id, task in self._tasks.items()
                if task.completed_at and (now - task.completed_at) > max_age
            ]
            for task_id in expired:
                del self._tasks[task_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} old tasks")
        return len(expired)

    async def wait_for_task(self, task_id: str, timeout: float = 300.0, interval: float = 0.2) -> Dict[str, Any]:
        """Wait for a task to finish without blocking the event loop.

        On timeout the task keeps running; only the wait is abandoned.
        """
        start_time = time.time()

        while True:
            task = self.get(task_id)
            if task.done:
                return task.to_dict()

            if (time.time() - start_time) > timeout:
                status = task.to_dict()
                status["status"] = "timeout"
                status["error"] = {"code": "TIMEOUT", "message": f"Timed out after {timeout} seconds"}
                return status

            await asyncio.sleep(interval)
