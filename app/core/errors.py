"""
Domain errors for the appointment lifecycle.

Services raise these; ``register_error_handlers`` turns them into
``{"detail": ..., "code": ...}`` responses so clients can show an
actionable message and branch on ``code``.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


class LifecycleError(Exception):
    code = "LifecycleError"
    status_code = 409
    default_detail = "Request could not be applied"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(LifecycleError):
    code = "NotFound"
    status_code = 404
    default_detail = "Not found"


class NotAssigned(LifecycleError):
    code = "NotAssigned"
    status_code = 404
    default_detail = "This worker is not assigned to the appointment"


class DuplicateAssignment(LifecycleError):
    code = "DuplicateAssignment"
    default_detail = "Worker is already assigned to this appointment"


class NoEvidence(LifecycleError):
    code = "NoEvidence"
    status_code = 422
    default_detail = "Add at least one photo of the finished work before submitting"


class NotStarted(LifecycleError):
    code = "NotStarted"
    default_detail = "Start the job before submitting it for review"


class AlreadyCompleted(LifecycleError):
    code = "AlreadyCompleted"
    default_detail = "Your part of this job has already been submitted"


class AppointmentClosed(LifecycleError):
    code = "AppointmentClosed"
    default_detail = "This appointment is closed"


class InvalidTransition(LifecycleError):
    code = "InvalidTransition"
    default_detail = "Status change not allowed"


class NotCompleted(LifecycleError):
    code = "NotCompleted"
    default_detail = "The appointment can be rated once it is completed"


class AlreadyRated(LifecycleError):
    code = "AlreadyRated"
    default_detail = "This appointment has already been rated"


class InvalidRating(LifecycleError):
    code = "InvalidRating"
    status_code = 422
    default_detail = "Rating must be a whole number from 1 to 5"


class TooManyPhotos(LifecycleError):
    code = "TooManyPhotos"
    status_code = 422
    default_detail = "Too many photos staged for one submission"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LifecycleError)
    async def lifecycle_error_handler(request: Request, exc: LifecycleError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})

    @app.exception_handler(OperationalError)
    async def store_unavailable_handler(request: Request, exc: OperationalError):
        logger.exception("Store unavailable while handling %s", request.url.path)
        return JSONResponse(
            status_code=503,
            content={"detail": "Service temporarily unavailable, please try again", "code": "TryAgain"},
        )
