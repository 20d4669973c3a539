"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the classroom training store.
Controllers are intentionally thin: they check the caller's scope,
resolve the project, delegate to `TrainingStore` and render JSON.
Store errors are mapped to status codes by a single exception handler.

Endpoints implemented (under /api/classes/{class_id}/students/{student_id}):
- GET, POST /projects
- GET, DELETE /projects/{project_id}
- GET, POST /projects/{project_id}/labels
- DELETE /projects/{project_id}/labels/{label}
- GET, POST /projects/{project_id}/training
- DELETE /projects/{project_id}/training/{training_id}

Supervisor endpoints:
- DELETE /api/classes/{class_id}/students/{student_id}
- DELETE /api/classes/{class_id}/resources
"""

from typing import Optional
import json
import logging
import time
import uuid

from fastapi import FastAPI, Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from . import errors, models
from .auth import Caller, get_caller, ensure_student_scope, ensure_supervisor_scope
from .config import settings
from .database import create_db_and_tables, get_session
from .limits import LimitsProvider, get_store_limits
from .pagination import parse_range_header
from .schemas import LabelIn, ProjectIn, ProjectOut, TrainingIn, TrainingOut
from .store import TrainingStore

app = FastAPI(title="Classroom Training Store API")
logger = logging.getLogger("trainingstore.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "X-Request-ID"],
    )

create_db_and_tables()

STUDENT_BASE = "/api/classes/{class_id}/students/{student_id}"


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(errors.StoreError)
async def store_error_handler(request: Request, exc: errors.StoreError):
    if exc.status_code >= 500:
        logger.warning("store_error %s %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Render malformed request bodies in the same `{"error": ...}` shape as store errors."""
    logger.info("request_invalid %s %s", request.url.path, json.dumps(exc.errors(), default=str))
    return JSONResponse(status_code=errors.ValidationError.status_code, content={"error": errors.ValidationError.message})


def get_limits_provider() -> LimitsProvider:
    """FastAPI dependency returning the limits provider consulted on every submission."""
    return get_store_limits


def get_store(db: Session = Depends(get_session), limits_provider: LimitsProvider = Depends(get_limits_provider)) -> TrainingStore:
    return TrainingStore(db, limits_provider=limits_provider)


def student_caller(class_id: str, student_id: str, caller: Caller = Depends(get_caller)) -> Caller:
    """Dependency: the caller must be the student named in the path."""
    ensure_student_scope(caller, class_id, student_id)
    return caller


def supervisor_caller(class_id: str, caller: Caller = Depends(get_caller)) -> Caller:
    """Dependency: the caller must supervise the class named in the path."""
    ensure_supervisor_scope(caller, class_id)
    return caller


def _accessible_project(store: TrainingStore, class_id: str, student_id: str, project_id: str,
                        owner_only: bool = False) -> models.Project:
    """Resolve a project the student may use.

    Projects outside the class are reported as missing. Another
    student's project is forbidden unless it is crowd-sourced and the
    operation does not require ownership.
    """
    project = store.get_project(project_id)
    if project.class_id != class_id:
        raise errors.NotFoundError()
    if project.user_id != student_id and (owner_only or not project.crowd_sourced):
        raise errors.AuthorizationError()
    return project


@app.get(STUDENT_BASE + '/projects')
def list_projects(class_id: str, student_id: str, store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """List the student's projects plus crowd-sourced projects in the class."""
    projects = store.get_projects_for_user(student_id, class_id)
    return [ProjectOut.from_model(p).model_dump(by_alias=True) for p in projects]


@app.post(STUDENT_BASE + '/projects', status_code=201)
def create_project(class_id: str, student_id: str, payload: ProjectIn, store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """Create a new project owned by the calling student."""
    project = store.create_project(
        student_id, class_id, payload.type, payload.name,
        payload.language, payload.field_definitions, payload.crowd_sourced,
    )
    return ProjectOut.from_model(project).model_dump(by_alias=True)


@app.get(STUDENT_BASE + '/projects/{project_id}')
def get_project(class_id: str, student_id: str, project_id: str, store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    project = _accessible_project(store, class_id, student_id, project_id)
    return ProjectOut.from_model(project).model_dump(by_alias=True)


@app.delete(STUDENT_BASE + '/projects/{project_id}', status_code=204)
def delete_project(class_id: str, student_id: str, project_id: str, store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """Delete a project together with its labels and training data."""
    project = _accessible_project(store, class_id, student_id, project_id, owner_only=True)
    store.delete_project(student_id, class_id, project)
    return Response(status_code=204)


@app.get(STUDENT_BASE + '/projects/{project_id}/labels')
def get_labels(class_id: str, student_id: str, project_id: str, store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """Return `{label: number of training examples}` for the project's labels."""
    project = _accessible_project(store, class_id, student_id, project_id)
    return store.get_label_counts(project.id)


@app.post(STUDENT_BASE + '/projects/{project_id}/labels')
def add_label(class_id: str, student_id: str, project_id: str, payload: LabelIn, store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """Register a label on the project and return the project's labels."""
    project = _accessible_project(store, class_id, student_id, project_id, owner_only=True)
    return store.add_label(student_id, class_id, project.id, payload.label)


@app.delete(STUDENT_BASE + '/projects/{project_id}/labels/{label}')
def remove_label(class_id: str, student_id: str, project_id: str, label: str, store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """Remove a label and the training examples that use it."""
    project = _accessible_project(store, class_id, student_id, project_id, owner_only=True)
    return store.remove_label(student_id, class_id, project.id, label)


@app.post(STUDENT_BASE + '/projects/{project_id}/training', status_code=201)
def store_training(class_id: str, student_id: str, project_id: str, payload: Optional[TrainingIn] = None,
                   store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """Submit one audio training example `{label, data}`."""
    project = _accessible_project(store, class_id, student_id, project_id)
    payload = payload or TrainingIn()
    example = store.store_training(project.id, payload.data, payload.label)
    return TrainingOut.from_model(example).model_dump()


@app.get(STUDENT_BASE + '/projects/{project_id}/training')
def get_training(class_id: str, student_id: str, project_id: str, response: Response,
                 range_header: Optional[str] = Header(default=None, alias="Range"),
                 store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """List the project's training examples, optionally one `Range: items=a-b` page."""
    project = _accessible_project(store, class_id, student_id, project_id)
    page = store.get_training(project.id, parse_range_header(range_header))
    response.headers["Content-Range"] = page.content_range()
    return [TrainingOut.from_model(t).model_dump() for t in page.items]


@app.delete(STUDENT_BASE + '/projects/{project_id}/training/{training_id}', status_code=204)
def delete_training(class_id: str, student_id: str, project_id: str, training_id: str,
                    store: TrainingStore = Depends(get_store), caller: Caller = Depends(student_caller)):
    """Delete one training example. The id must belong to the named project."""
    project = _accessible_project(store, class_id, student_id, project_id)
    store.delete_training(project.id, training_id)
    return Response(status_code=204)


@app.delete(STUDENT_BASE, status_code=204)
def delete_student_resources(class_id: str, student_id: str, store: TrainingStore = Depends(get_store), caller: Caller = Depends(supervisor_caller)):
    """Supervisor-only: delete every project a student owns in the class."""
    deleted = store.delete_all_for_user(student_id, class_id)
    logger.info("student_resources_deleted %s", json.dumps({"class_id": class_id, "student_id": student_id, "projects": deleted}))
    return Response(status_code=204)


@app.delete('/api/classes/{class_id}/resources', status_code=204)
def delete_class_resources(class_id: str, store: TrainingStore = Depends(get_store), caller: Caller = Depends(supervisor_caller)):
    """Supervisor-only: delete every project in the class."""
    deleted = store.delete_all_for_class(class_id)
    logger.info("class_resources_deleted %s", json.dumps({"class_id": class_id, "projects": deleted}))
    return Response(status_code=204)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
