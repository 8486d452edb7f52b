"""FastAPI web application for taskcycle.

Exposes the engine's trigger points: task completion (through a status change),
deadline checks for an external scheduler, and the notification inbox.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from taskcycle.database.database import get_db, init_db
from taskcycle.database.notification_repository import NotificationRepository
from taskcycle.database.repository import TaskRepository
from taskcycle.database.subtask_repository import SubtaskRepository
from taskcycle.errors import InvalidPattern, StoreError, TaskNotFound
from taskcycle.models.notification import Notification
from taskcycle.models.results import (
    CompletionResult,
    DeadlineCheckResult,
    DeadlineRunResult,
    ThrottleStatus,
)
from taskcycle.models.task import RecurrencePattern, Subtask, Task, TaskStatus
from taskcycle.models.task_factory import create_task_base
from taskcycle.notifications.deadline_evaluator import DeadlineEvaluator
from taskcycle.notifications.throttle import InvocationThrottle
from taskcycle.recurrence.calendar_math import utc_now
from taskcycle.recurrence.orchestrator import RecurrenceOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="taskcycle API",
    description="Recurring task successors and idempotent deadline notifications",
    version="0.1.0",
)

# One cooldown gate per process, injected so tests can replace it.
deadline_throttle = InvocationThrottle()


def get_deadline_throttle() -> InvocationThrottle:
    return deadline_throttle


def get_clock() -> Callable[[], datetime]:
    return utc_now


# Request models
class TaskCreateRequest(BaseModel):
    """Request to create a task (recurring tasks start a new series)."""
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: Optional[int] = Field(None, ge=1, le=10)
    due_date: Optional[date] = None
    project_id: Optional[int] = None
    status: Optional[TaskStatus] = None
    file: Optional[str] = None
    owner_id: Optional[int] = None
    collaborators: List[int] = Field(default_factory=list)
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_interval: int = Field(1, ge=1)
    recurrence_end_date: Optional[date] = None
    recurrence_max_count: Optional[int] = Field(None, ge=1, description="Total number of occurrences")
    recurrence_weekday: Optional[int] = Field(None, ge=0, le=6, description="Sunday=0")


class StatusUpdateRequest(BaseModel):
    status: TaskStatus


class SubtaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: Optional[int] = Field(None, ge=1, le=10)


class DeadlineCheckRequest(BaseModel):
    force: bool = False


# Response models
class StatusUpdateResponse(BaseModel):
    task: Task
    recurrence: Optional[CompletionResult] = None


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    message: str
    updated_count: int


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/tasks", response_model=Task, status_code=201)
async def create_task(request: TaskCreateRequest, db: Session = Depends(get_db)):
    """Create a task; a recurring one becomes occurrence 1 of a new series."""
    task = create_task_base(
        title=request.title,
        due_date=request.due_date,
        description=request.description,
        priority=request.priority,
        project_id=request.project_id,
        owner_id=request.owner_id,
        collaborators=request.collaborators,
        file=request.file,
        status=request.status,
    )
    try:
        if not request.is_recurring:
            return TaskRepository(db).create(task)
        if request.recurrence_pattern is None:
            raise HTTPException(status_code=400, detail="recurrence_pattern is required for recurring tasks")
        task = task.model_copy(
            update={
                "recurrence_pattern": request.recurrence_pattern,
                "recurrence_interval": request.recurrence_interval,
                "recurrence_end_date": request.recurrence_end_date,
            }
        )
        return RecurrenceOrchestrator(db).create_recurring_task(
            task,
            max_count=request.recurrence_max_count,
            weekday=request.recurrence_weekday,
        )
    except InvalidPattern as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to create task: {str(e)}")


@app.get("/tasks/series/{series_id}", response_model=List[Task])
async def get_series(series_id: str, db: Session = Depends(get_db)):
    tasks = RecurrenceOrchestrator(db).get_series(series_id)
    if not tasks:
        raise HTTPException(status_code=404, detail=f"Series {series_id} not found")
    return tasks


@app.get("/tasks/{task_id}", response_model=Task)
async def get_task(task_id: int, db: Session = Depends(get_db)):
    task = TaskRepository(db).get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return task


@app.patch("/tasks/{task_id}/status", response_model=StatusUpdateResponse)
async def update_task_status(
    task_id: int,
    request: StatusUpdateRequest,
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Change a task's status; setting completed spawns the next occurrence.

    Completion is handed to the orchestrator on every request, including repeats, so a
    retry after a failed successor write still creates it. Repeats of a successful
    completion report `already_spawned`.
    """
    repo = TaskRepository(db)
    if repo.get(task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")

    try:
        updated = repo.update_status(task_id, request.status)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to update task: {str(e)}")

    recurrence = None
    if request.status == TaskStatus.COMPLETED:
        try:
            recurrence = RecurrenceOrchestrator(db, now=clock).on_task_completed(task_id)
        except TaskNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        except InvalidPattern as e:
            logger.error(f"Task {task_id} completed but its recurrence is invalid: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        except StoreError as e:
            logger.error(f"Task {task_id} completed but the next occurrence was not created: {e}")
            raise HTTPException(
                status_code=500,
                detail=f"Task completed but the next occurrence could not be created: {str(e)}",
            )
    return StatusUpdateResponse(task=updated, recurrence=recurrence)


@app.post("/tasks/{task_id}/subtasks", response_model=Subtask, status_code=201)
async def create_subtask(task_id: int, request: SubtaskCreateRequest, db: Session = Depends(get_db)):
    if TaskRepository(db).get(task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    try:
        return SubtaskRepository(db).create(
            Subtask(
                main_task_id=task_id,
                title=request.title,
                description=request.description,
                priority=request.priority,
            )
        )
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to create subtask: {str(e)}")


@app.get("/tasks/{task_id}/subtasks", response_model=List[Subtask])
async def list_subtasks(task_id: int, db: Session = Depends(get_db)):
    return SubtaskRepository(db).list_by_task(task_id)


def _evaluator(db: Session, throttle: InvocationThrottle, clock: Callable[[], datetime]) -> DeadlineEvaluator:
    return DeadlineEvaluator(db, throttle, now=clock)


@app.post("/notifications/check-deadlines", response_model=DeadlineRunResult)
async def check_deadlines(
    request: Optional[DeadlineCheckRequest] = None,
    db: Session = Depends(get_db),
    throttle: InvocationThrottle = Depends(get_deadline_throttle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Run upcoming and missed deadline checks (manual or scheduler trigger)."""
    force = request.force if request else False
    return _evaluator(db, throttle, clock).run_deadline_checks(force)


@app.post("/notifications/check-upcoming", response_model=DeadlineCheckResult)
async def check_upcoming(
    request: Optional[DeadlineCheckRequest] = None,
    db: Session = Depends(get_db),
    throttle: InvocationThrottle = Depends(get_deadline_throttle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    force = request.force if request else False
    return _evaluator(db, throttle, clock).check_upcoming(force)


@app.post("/notifications/check-missed", response_model=DeadlineCheckResult)
async def check_missed(
    db: Session = Depends(get_db),
    throttle: InvocationThrottle = Depends(get_deadline_throttle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return _evaluator(db, throttle, clock).check_missed()


@app.get("/notifications/deadline-status", response_model=ThrottleStatus)
async def deadline_status(throttle: InvocationThrottle = Depends(get_deadline_throttle)):
    return throttle.status()


@app.get("/notifications", response_model=List[Notification])
async def list_notifications(
    emp_id: int = Query(..., ge=1),
    unread_only: bool = False,
    db: Session = Depends(get_db),
):
    try:
        return NotificationRepository(db).list_for_employee(emp_id, unread_only=unread_only)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load notifications: {str(e)}")


@app.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(emp_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    try:
        count = NotificationRepository(db).unread_count(emp_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to count notifications: {str(e)}")
    return UnreadCountResponse(unread_count=count)


@app.patch("/notifications/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(emp_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    try:
        updated = NotificationRepository(db).mark_all_read(emp_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to update notifications: {str(e)}")
    return MarkAllReadResponse(message="All notifications marked as read", updated_count=updated)


@app.patch("/notifications/{notification_id}/read", response_model=Notification)
async def mark_read(notification_id: int, emp_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    try:
        notification = NotificationRepository(db).mark_read(notification_id, emp_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to update notification: {str(e)}")
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
