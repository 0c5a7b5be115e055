"""
Task store error taxonomy and the HTTP handlers that render it.

Every error is local to one store operation; a raised error means the store
was left exactly as it was before the call.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from taskflow_shared.schemas.common import APIError, ErrorBody

log = structlog.get_logger()


class TaskStoreError(Exception):
    """Base class for failures raised by the task store."""

    code = "TASK_STORE_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskStoreError):
    """Caller-supplied data failed a precondition."""

    code = "VALIDATION_FAILED"
    status_code = 400


class NotFoundError(TaskStoreError):
    code = "TASK_NOT_FOUND"
    status_code = 404

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class ConflictError(TaskStoreError):
    """The caller's expected version is stale."""

    code = "VERSION_CONFLICT"
    status_code = 409

    def __init__(self, task_id: str, expected: int, actual: int):
        super().__init__(
            f"Task {task_id} is at version {actual}, expected {expected}"
        )
        self.task_id = task_id
        self.expected = expected
        self.actual = actual


class InvariantViolationError(TaskStoreError):
    """Re-indexing produced an inconsistent column. Indicates a store bug."""

    code = "INVARIANT_VIOLATION"
    status_code = 500


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------


def error_response(status: int, code: str, message: str) -> JSONResponse:
    body = APIError(error=ErrorBody(code=code, message=message, status=status))
    return JSONResponse(status_code=status, content=body.model_dump())


async def _task_store_error_handler(request: Request, exc: TaskStoreError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("task_store.error", code=exc.code, message=exc.message)
    else:
        log.warning("task_store.rejected", code=exc.code, message=exc.message)
    return error_response(exc.status_code, exc.code, exc.message)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Malformed bodies are client input errors, same as a store ValidationError.
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    log.warning("request.invalid", path=request.url.path, problems=problems)
    return error_response(400, ValidationError.code, problems)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.failed", path=request.url.path)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskStoreError, _task_store_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
