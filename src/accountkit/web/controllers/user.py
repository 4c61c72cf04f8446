"""Profile, settings, login history and account endpoints.

Every route here requires a session; the claim decides whose account is
read or changed.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from accountkit import messages
from accountkit.config import Settings, get_settings
from accountkit.errors import ServiceError
from accountkit.services import Services, SessionClaim, get_services
from accountkit.web.contracts.auth import MessageResponse
from accountkit.web.contracts.user import (
    AffiliationResponse,
    ChangePasswordRequest,
    UpdateSettingsRequest,
    UsernameRequest,
)
from accountkit.web.dependencies import (
    OperationLogger,
    get_operation_logger,
    require_session,
)
from accountkit.web.responses import (
    csv_attachment,
    error_response,
    json_response,
    message_response,
)

router = APIRouter(prefix="/user", tags=["user"])


@router.get("")
async def get_user(
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("get_user %s", auth.id)

    try:
        user = await services.identity.get_user_by_email(auth.email)
    except ServiceError as err:
        return error_response(err, log, "get_user")

    user.pop("password", None)
    return json_response(user)


@router.put("/settings")
async def update_settings(
    request: UpdateSettingsRequest,
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("update_settings %s %s", auth.id, request.model_dump(exclude_none=True))

    try:
        user = await services.identity.update_user_settings(
            auth.email, request.model_dump(exclude_none=True)
        )
    except ServiceError as err:
        return error_response(err, log, "update_settings")

    return json_response(user)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("change_password %s", auth.id)

    try:
        await services.security.change_user_password(
            auth.email, request.old_password, request.new_password
        )
    except ServiceError as err:
        return error_response(err, log, "change_password")

    return message_response(messages.PASSWORD_CHANGED)


@router.put("/username", response_model=MessageResponse)
async def set_username(
    request: UsernameRequest,
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("set_username %s %s", auth.id, request.username)

    try:
        await services.identity.set_username(auth.id, request.username)
    except ServiceError as err:
        return error_response(err, log, "set_username")

    return message_response(messages.USERNAME_CHANGED)


@router.get("/logins")
async def get_user_logins(
    limit: Optional[int] = Query(None, ge=1),
    page: Optional[int] = Query(None, ge=1),
    order_by: Optional[Literal["timestamp", "ip", "device"]] = Query(None),
    order: Optional[Literal["asc", "desc"]] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    format: Optional[Literal["csv"]] = Query(None),
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Paginated login history, or the same page as a CSV download.

    The CSV variant answers 202 with an attachment named after the exchange.
    """
    log.debug("get_user_logins %s page=%s limit=%s format=%s", auth.id, page, limit, format)

    try:
        logins = await services.identity.get_user_logins(
            auth.id, limit, page, order_by, order, start_date, end_date, format
        )
    except ServiceError as err:
        return error_response(err, log, "get_user_logins")

    if format:
        return csv_attachment(logins, f"{settings.api_name}-logins.csv")
    return json_response(logins)


@router.get("/affiliation", response_model=AffiliationResponse)
async def affiliation_count(
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("affiliation_count %s", auth.id)

    try:
        count = await services.identity.get_affiliation_count(auth.id)
    except ServiceError as err:
        return error_response(err, log, "affiliation_count")

    return json_response(AffiliationResponse(count=count).model_dump())


@router.get("/deactivate", response_model=MessageResponse)
async def deactivate_user(
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.verbose("deactivate_user %s", auth.id)

    try:
        await services.identity.freeze_user(auth.id)
    except ServiceError as err:
        return error_response(err, log, "deactivate_user")

    return message_response(messages.account_deactivated(auth.email))


@router.get("/stats")
async def get_user_stats(
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("get_user_stats %s", auth.id)

    try:
        stats = await services.identity.get_user_stats(auth.id)
    except ServiceError as err:
        return error_response(err, log, "get_user_stats")

    return json_response(stats)
