"""FastAPI dependencies shared by the controllers.

Request metadata, the per-request operation logger and the authenticated
session claim are all resolved here so handlers receive them as arguments.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from accountkit import messages
from accountkit.errors import ServiceError
from accountkit.services import Services, SessionClaim, get_services

logger = logging.getLogger("accountkit.web")

VERBOSE = logging.INFO


@dataclass(frozen=True)
class RequestContext:
    """Transport metadata extracted from request headers."""

    correlation_id: str
    ip: Optional[str] = None
    domain: Optional[str] = None
    user_agent: Optional[str] = None
    origin: Optional[str] = None
    referer: Optional[str] = None


async def get_request_context(
    x_request_id: Optional[str] = Header(None),
    x_real_ip: Optional[str] = Header(None),
    x_real_origin: Optional[str] = Header(None),
    user_agent: Optional[str] = Header(None),
    origin: Optional[str] = Header(None),
    referer: Optional[str] = Header(None),
) -> RequestContext:
    return RequestContext(
        correlation_id=x_request_id or str(uuid.uuid4()),
        ip=x_real_ip,
        domain=x_real_origin,
        user_agent=user_agent,
        origin=origin,
        referer=referer,
    )


class OperationLogger(logging.LoggerAdapter):
    """Logger bound to one request's correlation id.

    Handlers log through this instead of a module logger so every line
    carries the id. ``verbose`` sits between debug and error like the
    other levels; it is emitted at INFO.
    """

    def __init__(self, base: logging.Logger, correlation_id: str):
        super().__init__(base, {"correlation_id": correlation_id})

    def process(self, msg, kwargs):
        return f"[{self.extra['correlation_id']}] {msg}", kwargs

    def verbose(self, msg, *args, **kwargs) -> None:
        self.log(VERBOSE, msg, *args, **kwargs)


async def get_operation_logger(
    context: RequestContext = Depends(get_request_context),
) -> OperationLogger:
    return OperationLogger(logger, context.correlation_id)


async def require_session(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> SessionClaim:
    """Resolve the bearer token into a session claim.

    Raises:
        ServiceError: AUTHENTICATION (401) when the header is missing or the
            token does not verify
    """
    if not authorization:
        raise ServiceError.unauthorized(messages.MISSING_TOKEN)

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise ServiceError.unauthorized(messages.INVALID_TOKEN)

    return await services.security.verify_token(token.strip())
