"""HMAC API token endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from accountkit import messages
from accountkit.errors import ServiceError
from accountkit.services import Services, SessionClaim, get_services
from accountkit.web.contracts.auth import MessageResponse
from accountkit.web.contracts.tokens import CreateTokenRequest, DeleteTokenRequest
from accountkit.web.dependencies import (
    OperationLogger,
    RequestContext,
    get_operation_logger,
    get_request_context,
    require_session,
)
from accountkit.web.responses import error_response, json_response, message_response

router = APIRouter(prefix="/user", tags=["tokens"])


@router.get("/tokens")
async def get_hmac_tokens(
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.debug("get_hmac_tokens %s", auth.id)

    try:
        tokens = await services.security.get_hmac_tokens(auth.id)
    except ServiceError as err:
        return error_response(err, log, "get_hmac_tokens")

    return json_response(tokens)


@router.post("/token")
async def create_hmac_token(
    request: CreateTokenRequest,
    auth: SessionClaim = Depends(require_session),
    context: RequestContext = Depends(get_request_context),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Create a token. The secret is only ever returned by this call."""
    log.verbose("create_hmac_token %s %s", auth.id, request.name)

    try:
        token = await services.security.create_hmac_token(
            auth.id, request.otp_code, context.ip, request.name
        )
    except ServiceError as err:
        return error_response(err, log, "create_hmac_token")

    return json_response(token)


@router.delete("/token", response_model=MessageResponse)
async def delete_hmac_token(
    request: DeleteTokenRequest,
    auth: SessionClaim = Depends(require_session),
    log: OperationLogger = Depends(get_operation_logger),
    services: Services = Depends(get_services),
) -> JSONResponse:
    log.verbose("delete_hmac_token %s %s", auth.id, request.token_id)

    try:
        await services.security.delete_hmac_token(auth.id, request.otp_code, request.token_id)
    except ServiceError as err:
        return error_response(err, log, "delete_hmac_token")

    return message_response(messages.TOKEN_REMOVED)
