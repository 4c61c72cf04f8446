"""Response shaping and the error-mapping policy.

Every handler ends in exactly one of these helpers, so the status/message
rules for failures live in one place.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from accountkit import messages
from accountkit.errors import ServiceError

DEFAULT_FAILURE_STATUS = 400


def failure_status(err: ServiceError, default: int = DEFAULT_FAILURE_STATUS) -> int:
    """Status embedded in the error, else ``default``."""
    return err.status or default


def failure_message(err: ServiceError) -> str:
    return err.message


def is_user_not_found(err: ServiceError) -> bool:
    """Any collaborator failure carrying the user-not-found message."""
    return err.message == messages.USER_NOT_FOUND


def json_response(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(data))


def message_response(message: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def error_response(
    err: ServiceError,
    log,
    operation: str,
    status_code: Optional[int] = None,
    message: Optional[str] = None,
) -> JSONResponse:
    """Log a collaborator failure and build its response.

    Args:
        err: The collaborator failure
        log: Per-request operation logger
        operation: Handler name for the log line
        status_code: Fixed status overriding the error's own
        message: Fixed message overriding the error's own
    """
    log.error("%s %s", operation, err.message)
    return message_response(
        message if message is not None else failure_message(err),
        status_code if status_code is not None else failure_status(err),
    )


def csv_attachment(content: str, filename: str, status_code: int = 202) -> Response:
    return Response(
        content=content,
        status_code=status_code,
        media_type="text/csv",
        headers={"Content-disposition": f"attachment; filename={filename}"},
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "header")]
    field = ".".join(loc)
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def register_exception_handlers(app: FastAPI) -> None:
    """Render request-shape and dependency failures as ``{message}`` bodies."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return message_response(failure_message(exc), failure_status(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return message_response(_describe_validation_error(exc), DEFAULT_FAILURE_STATUS)
